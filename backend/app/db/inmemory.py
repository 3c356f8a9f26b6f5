"""In-memory implementation of the document repository."""

import uuid
from datetime import datetime
from typing import Any

from backend.app.db.repositories import format_accuracy, local_midnight
from backend.app.models.common import DocumentStatus
from backend.app.models.documents import Chunk, Document, ProcessingStats


class InMemoryDocumentRepository:
    """In-memory implementation of DocumentRepository.

    Stored models are copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self) -> None:
        self._documents: dict[uuid.UUID, Document] = {}
        self._chunks: dict[uuid.UUID, Chunk] = {}

    async def create_document(self, document: Document) -> Document:
        """Persist a new document."""
        self._documents[document.id] = document.model_copy(deep=True)
        return document.model_copy(deep=True)

    async def get_document(self, document_id: uuid.UUID) -> Document | None:
        """Get document by ID."""
        document = self._documents.get(document_id)
        return document.model_copy(deep=True) if document is not None else None

    async def update_document(self, document_id: uuid.UUID, **fields: Any) -> Document | None:
        """Update selected fields of a document."""
        record = self._documents.get(document_id)

        if record is None:
            return None

        # Re-validate so the count invariant is enforced on every write
        data = record.model_dump()
        data.update(fields)
        data["updated_at"] = datetime.now()
        updated = Document.model_validate(data)

        self._documents[document_id] = updated
        return updated.model_copy(deep=True)

    async def delete_document(self, document_id: uuid.UUID) -> bool:
        """Delete a document and cascade to its chunks."""
        if document_id not in self._documents:
            return False

        del self._documents[document_id]
        await self.delete_chunks(document_id)
        return True

    async def list_documents(self, limit: int | None = None) -> list[Document]:
        """List documents, newest first."""
        results = sorted(self._documents.values(), key=lambda d: d.created_at, reverse=True)

        if limit is not None:
            results = results[:limit]

        return [d.model_copy(deep=True) for d in results]

    async def list_documents_by_status(self, status: DocumentStatus) -> list[Document]:
        """List documents with the given status, newest first."""
        return [d for d in await self.list_documents() if d.status == status]

    async def create_chunks(self, chunks: list[Chunk]) -> list[Chunk]:
        """Persist a batch of chunks atomically."""
        for chunk in chunks:
            if chunk.document_id not in self._documents:
                raise KeyError(f"Document {chunk.document_id} does not exist")

        # All checks passed - nothing below can fail part-way
        for chunk in chunks:
            self._chunks[chunk.id] = chunk.model_copy(deep=True)

        return [c.model_copy(deep=True) for c in chunks]

    async def get_chunk(self, chunk_id: uuid.UUID) -> Chunk | None:
        """Get chunk by ID."""
        chunk = self._chunks.get(chunk_id)
        return chunk.model_copy(deep=True) if chunk is not None else None

    async def list_chunks(self, document_id: uuid.UUID) -> list[Chunk]:
        """List a document's chunks ordered by sequence number."""
        chunks = [c for c in self._chunks.values() if c.document_id == document_id]
        chunks.sort(key=lambda c: c.sequence_number)
        return [c.model_copy(deep=True) for c in chunks]

    async def save_chunk(self, chunk: Chunk) -> Chunk:
        """Overwrite an existing chunk's mutable fields."""
        if chunk.id not in self._chunks:
            raise KeyError(f"Chunk {chunk.id} does not exist")

        stored = chunk.model_copy(deep=True, update={"updated_at": datetime.now()})
        self._chunks[chunk.id] = stored
        return stored.model_copy(deep=True)

    async def delete_chunks(self, document_id: uuid.UUID) -> int:
        """Delete every chunk of a document."""
        doomed = [cid for cid, c in self._chunks.items() if c.document_id == document_id]

        for chunk_id in doomed:
            del self._chunks[chunk_id]

        return len(doomed)

    async def get_stats(self, now: datetime, avg_process_time: str) -> ProcessingStats:
        """Compute dashboard aggregates."""
        midnight = local_midnight(now)
        documents = list(self._documents.values())
        confidences = [c.confidence for c in self._chunks.values()]
        mean_confidence = sum(confidences) / len(confidences) if confidences else None

        return ProcessingStats(
            processed_today=sum(1 for d in documents if d.created_at >= midnight),
            pending_approval=sum(
                1 for d in documents if d.status == DocumentStatus.ready_for_review
            ),
            accuracy_rate=format_accuracy(mean_confidence),
            avg_process_time=avg_process_time,
        )
