"""Processing pipeline - upload to reviewable chunks in staged background runs.

Per document the stages run strictly in order, each checkpointing
``processing_progress``:

    10 created -> 25 encoded -> 50 extracted -> 75 chunks stored -> 100 ready_for_review

Runs for different documents are independent asyncio tasks. Any error in a
run drives its document to ``rejected`` with progress 0 and removes any
chunks it created; the submitter never sees the error.
"""

import asyncio
import logging
import time
from pathlib import Path
from uuid import UUID, uuid4

from backend.app.config import Settings
from backend.app.db.repositories import DocumentRepository
from backend.app.exceptions import ValidationError
from backend.app.llm.client import ExtractionClient
from backend.app.models.common import ChunkStatus, DocumentStatus
from backend.app.models.documents import Chunk, Document
from backend.app.models.extraction import ExtractionResult
from backend.app.processing.encoding import ImageEncoder
from backend.app.utils.logging import StructuredPipelineLogger
from backend.app.utils.metrics import PrometheusReviewMetrics

logger = logging.getLogger(__name__)

PROGRESS_CREATED = 10
PROGRESS_ENCODED = 25
PROGRESS_EXTRACTED = 50
PROGRESS_CHUNKED = 75
PROGRESS_READY = 100


def materialize_chunks(document_id: UUID, result: ExtractionResult) -> list[Chunk]:
    """Build the chunk batch for an extraction result.

    Sequence numbers follow the order the extractor returned, starting at 1.
    """
    return [
        Chunk(
            document_id=document_id,
            chunk_type=entry.type,
            sequence_number=index,
            title=entry.title,
            extracted_data=dict(entry.data),
            bounding_box=entry.bounding_box.model_copy(),
            confidence=entry.confidence,
            status=ChunkStatus.pending,
            is_edited=False,
            original_data=None,
        )
        for index, entry in enumerate(result.chunks, start=1)
    ]


def _store_upload(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


class ProcessingPipeline:
    """Creates documents and supervises one background run per document."""

    def __init__(
        self,
        repository: DocumentRepository,
        extractor: ExtractionClient,
        encoder: ImageEncoder,
        settings: Settings,
        metrics: PrometheusReviewMetrics | None = None,
        structured_logger: StructuredPipelineLogger | None = None,
    ) -> None:
        self._repository = repository
        self._extractor = extractor
        self._encoder = encoder
        self._settings = settings
        self._metrics = metrics or PrometheusReviewMetrics()
        self._log = structured_logger or StructuredPipelineLogger()
        # Strong references keep in-flight runs from being garbage collected
        self._tasks: dict[UUID, asyncio.Task[None]] = {}

    async def submit(self, data: bytes, filename: str, mime_type: str, size: int) -> UUID:
        """Create a document and start processing it in the background.

        Args:
            data: Raw upload bytes
            filename: Original filename
            mime_type: Declared MIME type
            size: Upload size in bytes

        Returns:
            ID of the new document (status=processing, progress=10)

        Raises:
            ValidationError: If the upload type or size is not accepted
        """
        self.validate_upload(mime_type, size)

        document_id = uuid4()
        original_path = Path(self._settings.upload_dir) / f"{document_id}{Path(filename).suffix}"
        await asyncio.to_thread(_store_upload, original_path, data)

        document = Document(
            id=document_id,
            filename=filename,
            mime_type=mime_type,
            file_size=size,
            status=DocumentStatus.processing,
            processing_progress=PROGRESS_CREATED,
            original_path=str(original_path),
        )
        await self._repository.create_document(document)

        self._schedule(document.id, data, mime_type)
        return document.id

    def validate_upload(self, mime_type: str, size: int) -> None:
        """Refuse uploads outside the type allow-list or over the size limit.

        Raises:
            ValidationError: If the upload type or size is not accepted
        """
        if mime_type not in self._settings.allowed_mime_types:
            raise ValidationError(
                f"Invalid file type {mime_type!r}. Allowed: "
                f"{', '.join(self._settings.allowed_mime_types)}"
            )
        if size > self._settings.max_upload_bytes:
            raise ValidationError(
                f"File too large ({size} bytes, limit {self._settings.max_upload_bytes})"
            )

    def active_runs(self) -> set[UUID]:
        """IDs of documents whose run has not finished."""
        return set(self._tasks)

    async def wait_idle(self) -> None:
        """Wait until every in-flight run has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    def _schedule(self, document_id: UUID, data: bytes, mime_type: str) -> None:
        if document_id in self._tasks:
            raise RuntimeError(f"Document {document_id} already has an active run")

        task = asyncio.create_task(
            self._run(document_id, data, mime_type), name=f"pipeline-{document_id}"
        )
        self._tasks[document_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(document_id, None))

    async def _checkpoint(
        self, document_id: UUID, stage: str, progress: int, started: float
    ) -> None:
        await self._repository.update_document(document_id, processing_progress=progress)

        latency_ms = (time.perf_counter() - started) * 1000
        self._metrics.record_stage(stage, latency_ms)
        self._log.log_stage(document_id, stage, progress, latency_ms)

    async def _run(self, document_id: UUID, data: bytes, mime_type: str) -> None:
        stage = "encode"

        try:
            started = time.perf_counter()
            image_b64 = self._encoder.encode(data, mime_type)
            await self._checkpoint(document_id, stage, PROGRESS_ENCODED, started)

            stage = "extract"
            started = time.perf_counter()
            result = await self._extractor.extract(image_b64)
            await self._checkpoint(document_id, stage, PROGRESS_EXTRACTED, started)

            stage = "materialize"
            started = time.perf_counter()
            chunks = await self._repository.create_chunks(
                materialize_chunks(document_id, result)
            )
            await self._checkpoint(document_id, stage, PROGRESS_CHUNKED, started)

            stage = "finalize"
            started = time.perf_counter()
            await self._repository.update_document(
                document_id,
                status=DocumentStatus.ready_for_review,
                processing_progress=PROGRESS_READY,
                extracted_text=result.extracted_text,
                total_chunks=len(chunks),
                approved_chunks=0,
                rejected_chunks=0,
            )
            latency_ms = (time.perf_counter() - started) * 1000
            self._metrics.record_stage(stage, latency_ms)
            self._log.log_stage(document_id, stage, PROGRESS_READY, latency_ms)
        except Exception as e:
            self._log.log_failure(document_id, stage, e)
            self._metrics.inc_run("failed")
            await self._fail(document_id)
            return

        self._metrics.inc_run("succeeded")
        logger.info(f"Document {document_id} ready for review with {len(chunks)} chunks")

    async def _fail(self, document_id: UUID) -> None:
        """Drive a document to its terminal failed state."""
        try:
            await self._repository.delete_chunks(document_id)
            await self._repository.update_document(
                document_id,
                status=DocumentStatus.rejected,
                processing_progress=0,
                total_chunks=0,
                approved_chunks=0,
                rejected_chunks=0,
            )
        except Exception:
            # Storage is unavailable; the run ends here so the event loop survives
            logger.exception(f"Could not mark document {document_id} as rejected")
