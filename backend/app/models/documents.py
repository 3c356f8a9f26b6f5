"""Document and chunk domain models."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from backend.app.models.common import BoundingBox, ChunkStatus, ChunkType, DocumentStatus


class Document(BaseModel):
    """Uploaded document and its review aggregates."""

    id: UUID = Field(default_factory=uuid4)
    filename: str
    mime_type: str
    file_size: int = Field(..., ge=0, description="Upload size in bytes")
    status: DocumentStatus = DocumentStatus.uploading
    processing_progress: int = Field(0, ge=0, le=100)
    total_chunks: int = Field(0, ge=0)
    approved_chunks: int = Field(0, ge=0)
    rejected_chunks: int = Field(0, ge=0)
    extracted_text: str | None = None
    original_path: str | None = Field(None, description="Where the upload bytes are stored")
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _check_counts(self) -> "Document":
        if self.approved_chunks + self.rejected_chunks > self.total_chunks:
            raise ValueError(
                "approved_chunks + rejected_chunks must not exceed total_chunks "
                f"({self.approved_chunks} + {self.rejected_chunks} > {self.total_chunks})"
            )
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def pending_chunks(self) -> int:
        """Chunks still awaiting a decision (derived, never stored)."""
        return self.total_chunks - self.approved_chunks - self.rejected_chunks


class Chunk(BaseModel):
    """One extracted section of a document with its own review status."""

    id: UUID = Field(default_factory=uuid4)
    document_id: UUID
    chunk_type: ChunkType
    sequence_number: int = Field(..., ge=1, description="1-based, assigned once")
    title: str
    extracted_data: dict[str, Any]
    bounding_box: BoundingBox
    confidence: float
    status: ChunkStatus = ChunkStatus.pending
    is_edited: bool = False
    # Snapshot of extracted_data taken on first edit
    original_data: dict[str, Any] | None = None
    # Status to restore when an edit is cancelled
    edit_return_status: ChunkStatus | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class DocumentWithChunks(Document):
    """Document with its chunks ordered by sequence number."""

    chunks: list[Chunk] = Field(default_factory=list)


class ChunkUpdate(BaseModel):
    """Patch of a chunk's editable fields."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(None, min_length=1)
    extracted_data: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _require_a_field(self) -> "ChunkUpdate":
        if self.title is None and self.extracted_data is None:
            raise ValueError("update must set title or extracted_data")
        return self


class ProcessingStats(BaseModel):
    """Dashboard aggregates across all documents."""

    processed_today: int
    pending_approval: int
    accuracy_rate: str
    avg_process_time: str


class DocumentPreview(BaseModel):
    """Stored upload returned for display alongside chunk bounding boxes."""

    data: str = Field(..., description="Upload bytes, base64 encoded")
    mime_type: str
    filename: str
