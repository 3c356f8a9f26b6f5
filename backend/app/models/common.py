"""Common types and enums shared across all models."""

from enum import Enum

from pydantic import BaseModel


class DocumentStatus(str, Enum):
    """Document lifecycle status."""

    uploading = "uploading"
    processing = "processing"
    ready_for_review = "ready_for_review"
    approved = "approved"
    rejected = "rejected"


class ChunkStatus(str, Enum):
    """Per-chunk review status."""

    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    editing = "editing"


class ChunkType(str, Enum):
    """Fixed taxonomy of extracted invoice sections."""

    header = "header"
    invoice_details = "invoice_details"
    bill_to = "bill_to"
    line_item = "line_item"
    totals = "totals"
    payment_terms = "payment_terms"


class FinalStatus(str, Enum):
    """Terminal outcome produced by finalization."""

    approved = "approved"
    rejected = "rejected"

    def as_document_status(self) -> DocumentStatus:
        """Map onto the document status taxonomy."""
        return DocumentStatus(self.value)


TERMINAL_DOCUMENT_STATUSES = frozenset({DocumentStatus.approved, DocumentStatus.rejected})
IN_REVIEW_CHUNK_STATUSES = frozenset({ChunkStatus.pending, ChunkStatus.editing})


class BoundingBox(BaseModel):
    """Approximate chunk location as percentages of page width/height.

    Values are passed through from the extractor without range checks.
    """

    x: float
    y: float
    width: float
    height: float
