"""Models package - re-exports for convenience."""

from backend.app.models.common import (
    BoundingBox,
    ChunkStatus,
    ChunkType,
    DocumentStatus,
    FinalStatus,
)
from backend.app.models.documents import (
    Chunk,
    ChunkUpdate,
    Document,
    DocumentPreview,
    DocumentWithChunks,
    ProcessingStats,
)
from backend.app.models.extraction import ExtractedChunk, ExtractionResult

__all__ = [
    # Common
    "BoundingBox",
    "ChunkStatus",
    "ChunkType",
    "DocumentStatus",
    "FinalStatus",
    # Documents
    "Document",
    "Chunk",
    "ChunkUpdate",
    "DocumentPreview",
    "DocumentWithChunks",
    "ProcessingStats",
    # Extraction
    "ExtractedChunk",
    "ExtractionResult",
]
