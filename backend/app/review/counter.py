"""Aggregate counter - document approved/rejected counts from chunk statuses."""

from collections.abc import Iterable
from uuid import UUID

from backend.app.db.repositories import DocumentRepository
from backend.app.exceptions import NotFoundError
from backend.app.models.common import ChunkStatus
from backend.app.models.documents import Chunk, Document


def count_decisions(chunks: Iterable[Chunk]) -> tuple[int, int]:
    """Count approved and rejected chunks.

    Returns:
        (approved, rejected)
    """
    approved = 0
    rejected = 0

    for chunk in chunks:
        if chunk.status == ChunkStatus.approved:
            approved += 1
        elif chunk.status == ChunkStatus.rejected:
            rejected += 1

    return approved, rejected


async def recompute_counts(repository: DocumentRepository, document_id: UUID) -> Document:
    """Re-derive a document's counts from a full scan of its chunks.

    The write-back is last-writer-wins: two reviewers mutating chunks of the
    same document concurrently may briefly publish counts from an older scan.

    Args:
        repository: Document repository
        document_id: Document whose counts to refresh

    Returns:
        Updated document

    Raises:
        NotFoundError: If the document does not exist
    """
    chunks = await repository.list_chunks(document_id)
    approved, rejected = count_decisions(chunks)

    document = await repository.update_document(
        document_id, approved_chunks=approved, rejected_chunks=rejected
    )

    if document is None:
        raise NotFoundError(f"Document {document_id} not found")

    return document
