"""Repository protocol interfaces for data access."""

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from backend.app.models.common import DocumentStatus
from backend.app.models.documents import Chunk, Document, ProcessingStats


class DocumentRepository(Protocol):
    """Repository for documents and the chunks they own.

    Writes are last-writer-wins; no compare-and-swap is offered.
    """

    async def create_document(self, document: Document) -> Document:
        """Persist a new document.

        Args:
            document: Document to store

        Returns:
            Stored document
        """
        ...

    async def get_document(self, document_id: UUID) -> Document | None:
        """Get document by ID.

        Args:
            document_id: Document ID

        Returns:
            Document or None if not found
        """
        ...

    async def update_document(self, document_id: UUID, **fields: Any) -> Document | None:
        """Update selected fields of a document.

        Args:
            document_id: Document ID
            **fields: Field names and new values

        Returns:
            Updated document or None if not found
        """
        ...

    async def delete_document(self, document_id: UUID) -> bool:
        """Delete a document and cascade to its chunks.

        Returns:
            True if a document was deleted
        """
        ...

    async def list_documents(self, limit: int | None = None) -> list[Document]:
        """List documents, newest first."""
        ...

    async def list_documents_by_status(self, status: DocumentStatus) -> list[Document]:
        """List documents with the given status, newest first."""
        ...

    async def create_chunks(self, chunks: list[Chunk]) -> list[Chunk]:
        """Persist a batch of chunks atomically.

        Either every chunk is stored or none is.

        Args:
            chunks: Chunks to store

        Returns:
            Stored chunks in input order
        """
        ...

    async def get_chunk(self, chunk_id: UUID) -> Chunk | None:
        """Get chunk by ID."""
        ...

    async def list_chunks(self, document_id: UUID) -> list[Chunk]:
        """List a document's chunks ordered by sequence number."""
        ...

    async def save_chunk(self, chunk: Chunk) -> Chunk:
        """Overwrite an existing chunk's mutable fields.

        Returns:
            Stored chunk
        """
        ...

    async def delete_chunks(self, document_id: UUID) -> int:
        """Delete every chunk of a document.

        Returns:
            Number of chunks removed
        """
        ...

    async def get_stats(self, now: datetime, avg_process_time: str) -> ProcessingStats:
        """Compute dashboard aggregates.

        Args:
            now: Current local time, used to find local midnight
            avg_process_time: Placeholder figure reported as-is

        Returns:
            ProcessingStats
        """
        ...


def local_midnight(now: datetime) -> datetime:
    """Start of the day containing ``now``."""
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def format_accuracy(mean_confidence: float | None) -> str:
    """Render mean chunk confidence as a percentage with one decimal.

    No chunks at all reports 0.0%.
    """
    return f"{(mean_confidence or 0.0) * 100:.1f}%"
