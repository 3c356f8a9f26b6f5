"""Integration tests for the HTTP surface (documents, chunks, stats, health)."""

import base64
import io
from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from starlette.datastructures import Headers, UploadFile

from backend.app.api.deps import AppServices, build_services
from backend.app.api.routes.documents import upload_document
from backend.app.config import Settings
from backend.app.db.inmemory import InMemoryDocumentRepository
from backend.app.exceptions import ValidationError
from backend.app.main import create_app

FIFTY_MIB = 50 * 1024 * 1024


class CountingUpload(UploadFile):
    """Upload whose reads are tallied."""

    bytes_read = 0

    async def read(self, size: int = -1) -> bytes:
        data = await super().read(size)
        self.bytes_read += len(data)
        return data


@pytest.fixture
def services(
    settings: Settings,
    repository: InMemoryDocumentRepository,
    make_extractor: Callable[..., Any],
    make_result: Callable[..., Any],
) -> AppServices:
    """Services over the in-memory repository with a three-chunk extractor."""
    return build_services(
        settings, repository=repository, extractor=make_extractor(make_result(3))
    )


@pytest_asyncio.fixture
async def client(services: AppServices) -> AsyncGenerator[AsyncClient, None]:
    """Async client bound to the app in the test's event loop."""
    transport = ASGITransport(app=create_app(services))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def upload_and_process(
    client: AsyncClient, services: AppServices, png_bytes: bytes
) -> dict[str, Any]:
    """Upload a scan, wait for its run, and return the document with chunks."""
    response = await client.post(
        "/documents", files={"file": ("invoice.png", png_bytes, "image/png")}
    )
    assert response.status_code == 202
    document_id = response.json()["document_id"]

    await services.pipeline.wait_idle()

    response = await client.get(f"/documents/{document_id}")
    assert response.status_code == 200
    return response.json()


class TestDocuments:
    """Upload, fetch, list, delete."""

    @pytest.mark.asyncio
    async def test_upload_returns_immediately(
        self,
        settings: Settings,
        repository: InMemoryDocumentRepository,
        make_gated_extractor: Callable[..., Any],
        make_result: Callable[..., Any],
        png_bytes: bytes,
    ) -> None:
        """Test upload answers 202 while the run is still in progress."""
        extractor = make_gated_extractor(make_result(1))
        services = build_services(settings, repository=repository, extractor=extractor)
        transport = ASGITransport(app=create_app(services))

        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(
                "/documents", files={"file": ("invoice.png", png_bytes, "image/png")}
            )

            assert response.status_code == 202
            body = response.json()
            assert body["message"] == "File uploaded successfully and processing started"

            document = (await client.get(f"/documents/{body['document_id']}")).json()
            assert document["status"] == "processing"
            assert document["processing_progress"] in (10, 25)
            assert document["chunks"] == []

            extractor.release.set()
            await services.pipeline.wait_idle()

            document = (await client.get(f"/documents/{body['document_id']}")).json()
            assert document["status"] == "ready_for_review"

    @pytest.mark.asyncio
    async def test_processed_document_has_chunks(
        self, client: AsyncClient, services: AppServices, png_bytes: bytes
    ) -> None:
        """Test a finished run exposes ordered pending chunks."""
        document = await upload_and_process(client, services, png_bytes)

        assert document["status"] == "ready_for_review"
        assert document["processing_progress"] == 100
        assert document["total_chunks"] == 3
        assert document["pending_chunks"] == 3
        assert document["mime_type"] == "image/png"
        assert [c["sequence_number"] for c in document["chunks"]] == [1, 2, 3]
        assert all(c["status"] == "pending" for c in document["chunks"])

    @pytest.mark.asyncio
    async def test_get_without_chunks(
        self, client: AsyncClient, services: AppServices, png_bytes: bytes
    ) -> None:
        """Test include_chunks=false omits the chunk list."""
        document = await upload_and_process(client, services, png_bytes)

        response = await client.get(
            f"/documents/{document['id']}", params={"include_chunks": "false"}
        )

        assert response.status_code == 200
        assert "chunks" not in response.json()

    @pytest.mark.asyncio
    async def test_upload_rejects_unsupported_type(self, client: AsyncClient) -> None:
        """Test non-image uploads are refused with 400."""
        response = await client.post(
            "/documents", files={"file": ("notes.txt", b"hello", "text/plain")}
        )

        assert response.status_code == 400
        assert "Invalid file type" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_oversized_upload_is_refused(self, client: AsyncClient) -> None:
        """Test a 50 MiB upload is refused with 400 and creates nothing."""
        response = await client.post(
            "/documents",
            files={"file": ("huge.png", b"\0" * FIFTY_MIB, "image/png")},
        )

        assert response.status_code == 400
        assert "too large" in response.json()["detail"]
        assert (await client.get("/documents")).json() == []

    @pytest.mark.asyncio
    async def test_oversized_upload_is_not_read_in_full(self, services: AppServices) -> None:
        """Test the upload route stops reading one byte past the limit."""
        limit = services.settings.max_upload_bytes
        upload = CountingUpload(
            io.BytesIO(b"\0" * FIFTY_MIB),
            filename="huge.png",
            headers=Headers({"content-type": "image/png"}),
        )

        with pytest.raises(ValidationError, match="too large"):
            await upload_document(upload, services)

        assert upload.bytes_read == limit + 1

    @pytest.mark.asyncio
    async def test_declared_size_is_checked_before_reading(
        self, services: AppServices
    ) -> None:
        """Test a declared oversized part is refused without any read."""
        upload = CountingUpload(
            io.BytesIO(b"\0" * 16),
            size=FIFTY_MIB,
            filename="huge.png",
            headers=Headers({"content-type": "image/png"}),
        )

        with pytest.raises(ValidationError, match="too large"):
            await upload_document(upload, services)

        assert upload.bytes_read == 0

    @pytest.mark.asyncio
    async def test_preview_returns_stored_upload(
        self, client: AsyncClient, services: AppServices, png_bytes: bytes
    ) -> None:
        """Test preview serves the original bytes as base64 with type and name."""
        document = await upload_and_process(client, services, png_bytes)

        response = await client.get(f"/documents/{document['id']}/preview")

        assert response.status_code == 200
        body = response.json()
        assert base64.b64decode(body["data"]) == png_bytes
        assert body["mime_type"] == "image/png"
        assert body["filename"] == "invoice.png"

    @pytest.mark.asyncio
    async def test_preview_unknown_document_is_404(self, client: AsyncClient) -> None:
        """Test preview of an unknown id returns 404."""
        response = await client.get(
            "/documents/00000000-0000-0000-0000-000000000000/preview"
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_preview_missing_file_is_404(
        self, client: AsyncClient, services: AppServices, png_bytes: bytes
    ) -> None:
        """Test preview returns 404 once the stored file is gone."""
        document = await upload_and_process(client, services, png_bytes)
        Path(document["original_path"]).unlink()

        response = await client.get(f"/documents/{document['id']}/preview")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_document_is_404(self, client: AsyncClient) -> None:
        """Test fetching an unknown id returns 404."""
        response = await client.get("/documents/00000000-0000-0000-0000-000000000000")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_and_filter(
        self, client: AsyncClient, services: AppServices, png_bytes: bytes
    ) -> None:
        """Test listing with and without a status filter."""
        document = await upload_and_process(client, services, png_bytes)

        listed = (await client.get("/documents")).json()
        assert [d["id"] for d in listed] == [document["id"]]

        ready = await client.get("/documents", params={"status": "ready_for_review"})
        assert [d["id"] for d in ready.json()] == [document["id"]]

        approved = await client.get("/documents", params={"status": "approved"})
        assert approved.json() == []

        invalid = await client.get("/documents", params={"status": "bogus"})
        assert invalid.status_code == 422

    @pytest.mark.asyncio
    async def test_delete_document(
        self, client: AsyncClient, services: AppServices, png_bytes: bytes
    ) -> None:
        """Test delete removes the document, its chunks and its stored upload."""
        document = await upload_and_process(client, services, png_bytes)
        chunk_id = document["chunks"][0]["id"]
        stored = Path(document["original_path"])
        assert stored.exists()

        response = await client.delete(f"/documents/{document['id']}")
        assert response.status_code == 204

        assert (await client.get(f"/documents/{document['id']}")).status_code == 404
        assert (await client.post(f"/chunks/{chunk_id}/approve")).status_code == 404
        assert (await client.delete(f"/documents/{document['id']}")).status_code == 404
        assert not stored.exists()


class TestReview:
    """Chunk transitions and finalization over HTTP."""

    @pytest.mark.asyncio
    async def test_review_and_finalize(
        self, client: AsyncClient, services: AppServices, png_bytes: bytes
    ) -> None:
        """Test approving everything finalizes as approved, exactly once."""
        document = await upload_and_process(client, services, png_bytes)
        document_id = document["id"]

        first, *rest = [c["id"] for c in document["chunks"]]
        assert (await client.post(f"/chunks/{first}/approve")).json()["status"] == "approved"

        early = await client.post(f"/documents/{document_id}/finalize")
        assert early.status_code == 400

        for chunk_id in rest:
            response = await client.post(f"/chunks/{chunk_id}/approve")
            assert response.status_code == 200

        response = await client.post(f"/documents/{document_id}/finalize")
        assert response.status_code == 200
        assert response.json() == {"document_id": document_id, "status": "approved"}

        again = await client.post(f"/documents/{document_id}/finalize")
        assert again.status_code == 400

        frozen = await client.post(f"/chunks/{first}/reject")
        assert frozen.status_code == 400

    @pytest.mark.asyncio
    async def test_edit_cycle(
        self, client: AsyncClient, services: AppServices, png_bytes: bytes
    ) -> None:
        """Test edit, cancel and save through the chunk endpoints."""
        document = await upload_and_process(client, services, png_bytes)
        chunk_id = document["chunks"][0]["id"]

        await client.post(f"/chunks/{chunk_id}/reject")

        editing = (await client.post(f"/chunks/{chunk_id}/edit")).json()
        assert editing["status"] == "editing"

        blocked = await client.post(f"/chunks/{chunk_id}/approve")
        assert blocked.status_code == 400

        cancelled = (await client.post(f"/chunks/{chunk_id}/cancel-edit")).json()
        assert cancelled["status"] == "rejected"

        saved = await client.patch(
            f"/chunks/{chunk_id}", json={"extracted_data": {"field": "fixed"}}
        )
        assert saved.status_code == 200
        body = saved.json()
        assert body["status"] == "pending"
        assert body["is_edited"] is True
        assert body["original_data"] == {"field": "value-1", "index": 0}

        refreshed = (await client.get(f"/documents/{document['id']}")).json()
        assert refreshed["rejected_chunks"] == 0
        assert refreshed["pending_chunks"] == 3

    @pytest.mark.asyncio
    async def test_patch_validation(
        self, client: AsyncClient, services: AppServices, png_bytes: bytes
    ) -> None:
        """Test malformed patches are refused with 400."""
        document = await upload_and_process(client, services, png_bytes)
        chunk_id = document["chunks"][0]["id"]

        response = await client.patch(f"/chunks/{chunk_id}", json={"status": "approved"})

        assert response.status_code == 400
        assert "Invalid chunk update" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_patch_non_object_body(
        self, client: AsyncClient, services: AppServices, png_bytes: bytes
    ) -> None:
        """Test a JSON body that is not an object is a 400, not a 422."""
        document = await upload_and_process(client, services, png_bytes)
        chunk_id = document["chunks"][0]["id"]

        response = await client.patch(f"/chunks/{chunk_id}", json=["title", "x"])

        assert response.status_code == 400
        assert "Invalid chunk update" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_cancel_without_edit(
        self, client: AsyncClient, services: AppServices, png_bytes: bytes
    ) -> None:
        """Test cancel-edit on a chunk that is not being edited returns 400."""
        document = await upload_and_process(client, services, png_bytes)
        chunk_id = document["chunks"][0]["id"]

        response = await client.post(f"/chunks/{chunk_id}/cancel-edit")

        assert response.status_code == 400


class TestStatsAndHealth:
    """Dashboard stats, health checks and metrics."""

    @pytest.mark.asyncio
    async def test_stats(
        self, client: AsyncClient, services: AppServices, png_bytes: bytes
    ) -> None:
        """Test stats reflect a processed upload."""
        await upload_and_process(client, services, png_bytes)

        stats = (await client.get("/stats")).json()

        assert stats["processed_today"] == 1
        assert stats["pending_approval"] == 1
        # Mean of 0.5, 0.6, 0.7
        assert stats["accuracy_rate"] == "60.0%"
        assert stats["avg_process_time"] == "2.4s"

    def test_health(self, services: AppServices) -> None:
        """Test /health and /healthz with the in-memory repository."""
        client = TestClient(create_app(services))

        assert client.get("/health").json() == {"status": "ok"}

        response = client.get("/healthz")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["components"]["db"] == "in_memory"
        assert body["components"]["active_runs"] == "0"

    def test_metrics_endpoint(self, services: AppServices) -> None:
        """Test /metrics exposes the pipeline and review series."""
        client = TestClient(create_app(services))

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "pipeline_stage_latency_ms" in response.text
        assert "chunk_decisions_total" in response.text
