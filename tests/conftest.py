"""Shared pytest fixtures for all test suites."""

import asyncio
import io
from collections.abc import Callable
from pathlib import Path
from uuid import UUID

import pytest
import pytest_asyncio
from PIL import Image

from backend.app.config import Settings
from backend.app.db.inmemory import InMemoryDocumentRepository
from backend.app.llm.client import ExtractionClient
from backend.app.models.common import BoundingBox, ChunkType
from backend.app.models.extraction import ExtractedChunk, ExtractionResult
from backend.app.processing.encoding import PillowImageEncoder
from backend.app.processing.pipeline import ProcessingPipeline
from backend.app.review.service import ReviewService

CHUNK_TYPES = [
    ChunkType.header,
    ChunkType.invoice_details,
    ChunkType.bill_to,
    ChunkType.line_item,
    ChunkType.totals,
    ChunkType.payment_terms,
]


class StaticExtractor:
    """Extractor returning a canned result, or raising a canned error."""

    def __init__(
        self, result: ExtractionResult | None = None, error: Exception | None = None
    ) -> None:
        self.result = result
        self.error = error
        self.calls: list[str] = []

    async def extract(self, image_b64: str) -> ExtractionResult:
        self.calls.append(image_b64)
        if self.error is not None:
            raise self.error
        assert self.result is not None
        return self.result


class GatedExtractor(StaticExtractor):
    """Extractor that holds each call until released."""

    def __init__(self, result: ExtractionResult) -> None:
        super().__init__(result)
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def extract(self, image_b64: str) -> ExtractionResult:
        self.entered.set()
        await self.release.wait()
        return await super().extract(image_b64)


def build_result(count: int, text: str = "full text") -> ExtractionResult:
    """Extraction result with ``count`` distinguishable chunks."""
    return ExtractionResult(
        chunks=[
            ExtractedChunk(
                type=CHUNK_TYPES[i % len(CHUNK_TYPES)],
                title=f"Section {i + 1}",
                data={"field": f"value-{i + 1}", "index": i},
                bounding_box=BoundingBox(x=0, y=i * 10, width=100, height=10),
                confidence=0.5 + i * 0.1,
            )
            for i in range(count)
        ],
        extracted_text=text,
    )


@pytest.fixture
def make_result() -> Callable[..., ExtractionResult]:
    """Builder for extraction results with distinguishable chunks."""
    return build_result


@pytest.fixture
def make_extractor() -> type[StaticExtractor]:
    """Extractor double returning a canned result or raising a canned error."""
    return StaticExtractor


@pytest.fixture
def make_gated_extractor() -> type[GatedExtractor]:
    """Extractor double that blocks until its ``release`` event is set."""
    return GatedExtractor


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    """Directory receiving stored uploads."""
    return tmp_path / "uploads"


@pytest.fixture
def settings(upload_dir: Path) -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        database_url=None,
        openai_api_key=None,
        upload_dir=str(upload_dir),
    )


@pytest.fixture
def png_bytes() -> bytes:
    """A small valid PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (64, 48), color=(200, 10, 10)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def repository() -> InMemoryDocumentRepository:
    """Fresh in-memory repository."""
    return InMemoryDocumentRepository()


@pytest.fixture
def make_pipeline(
    repository: InMemoryDocumentRepository, settings: Settings
) -> Callable[[ExtractionClient], ProcessingPipeline]:
    """Factory for a pipeline over the shared repository."""

    def factory(extractor: ExtractionClient) -> ProcessingPipeline:
        return ProcessingPipeline(
            repository=repository,
            extractor=extractor,
            encoder=PillowImageEncoder(),
            settings=settings,
        )

    return factory


@pytest.fixture
def review(repository: InMemoryDocumentRepository) -> ReviewService:
    """Review service over the shared repository."""
    return ReviewService(repository)


@pytest_asyncio.fixture
async def ready_document(
    make_pipeline: Callable[[ExtractionClient], ProcessingPipeline],
    png_bytes: bytes,
) -> UUID:
    """A four-chunk document that has finished processing."""
    pipeline = make_pipeline(StaticExtractor(build_result(4)))
    document_id = await pipeline.submit(png_bytes, "invoice.png", "image/png", len(png_bytes))
    await pipeline.wait_idle()
    return document_id
