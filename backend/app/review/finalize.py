"""Finalization gate - terminal outcome once every chunk is decided."""

from collections.abc import Sequence
from uuid import UUID

from backend.app.db.repositories import DocumentRepository
from backend.app.exceptions import NotFoundError, ValidationError
from backend.app.models.common import (
    IN_REVIEW_CHUNK_STATUSES,
    TERMINAL_DOCUMENT_STATUSES,
    ChunkStatus,
    DocumentStatus,
    FinalStatus,
)
from backend.app.models.documents import Chunk


def decide_final_status(chunks: Sequence[Chunk]) -> FinalStatus:
    """Compute the outcome of a fully reviewed chunk set.

    Rejected iff at least one chunk is rejected, approved otherwise.

    Raises:
        ValidationError: If any chunk is still pending or editing
    """
    undecided = [c for c in chunks if c.status in IN_REVIEW_CHUNK_STATUSES]
    if undecided:
        raise ValidationError(
            f"All chunks must be reviewed before finalizing ({len(undecided)} remaining)"
        )

    if any(c.status == ChunkStatus.rejected for c in chunks):
        return FinalStatus.rejected
    return FinalStatus.approved


async def finalize_document(repository: DocumentRepository, document_id: UUID) -> FinalStatus:
    """Close out a document.

    Re-finalizing a terminal document is refused rather than silently
    repeated.

    Args:
        repository: Document repository
        document_id: Document to finalize

    Returns:
        The terminal status written to the document

    Raises:
        NotFoundError: Unknown document
        ValidationError: Document not in review, or chunks still undecided
    """
    document = await repository.get_document(document_id)

    if document is None:
        raise NotFoundError(f"Document {document_id} not found")

    if document.status in TERMINAL_DOCUMENT_STATUSES:
        raise ValidationError(
            f"Document {document_id} is already finalized as {document.status.value}"
        )
    if document.status != DocumentStatus.ready_for_review:
        raise ValidationError(
            f"Document {document_id} is still {document.status.value} and cannot be finalized"
        )

    chunks = await repository.list_chunks(document_id)
    outcome = decide_final_status(chunks)

    await repository.update_document(document_id, status=outcome.as_document_status())
    return outcome
