"""Extraction collaborator payload models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from backend.app.models.common import BoundingBox, ChunkType


class ExtractedChunk(BaseModel):
    """One chunk entry as returned by the extraction service."""

    model_config = ConfigDict(populate_by_name=True)

    type: ChunkType
    title: str
    data: dict[str, Any] = Field(default_factory=dict)
    bounding_box: BoundingBox = Field(..., alias="boundingBox")
    confidence: float


class ExtractionResult(BaseModel):
    """Ordered chunk list plus the full text of the page."""

    model_config = ConfigDict(populate_by_name=True)

    chunks: list[ExtractedChunk]
    extracted_text: str = Field("", alias="extractedText")
