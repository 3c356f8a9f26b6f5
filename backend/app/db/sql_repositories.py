"""SQL implementation of the document repository."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.db.models import Chunk as ChunkDB
from backend.app.db.models import Document as DocumentDB
from backend.app.db.repositories import format_accuracy, local_midnight
from backend.app.models.common import BoundingBox, ChunkStatus, ChunkType, DocumentStatus
from backend.app.models.documents import Chunk, Document, ProcessingStats

_DOCUMENT_FIELDS = (
    "filename",
    "mime_type",
    "file_size",
    "processing_progress",
    "total_chunks",
    "approved_chunks",
    "rejected_chunks",
    "extracted_text",
    "original_path",
    "created_at",
    "updated_at",
)


def _to_document(row: DocumentDB) -> Document:
    return Document(
        id=row.id,
        filename=row.filename,
        mime_type=row.mime_type,
        file_size=row.file_size,
        status=DocumentStatus(row.status),
        processing_progress=row.processing_progress,
        total_chunks=row.total_chunks,
        approved_chunks=row.approved_chunks,
        rejected_chunks=row.rejected_chunks,
        extracted_text=row.extracted_text,
        original_path=row.original_path,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_chunk(row: ChunkDB) -> Chunk:
    return Chunk(
        id=row.id,
        document_id=row.document_id,
        chunk_type=ChunkType(row.chunk_type),
        sequence_number=row.sequence_number,
        title=row.title,
        extracted_data=row.extracted_data,
        bounding_box=BoundingBox.model_validate(row.bounding_box),
        confidence=row.confidence,
        status=ChunkStatus(row.status),
        is_edited=row.is_edited,
        original_data=row.original_data,
        edit_return_status=(
            ChunkStatus(row.edit_return_status) if row.edit_return_status else None
        ),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _apply_document(row: DocumentDB, document: Document) -> None:
    for name in _DOCUMENT_FIELDS:
        setattr(row, name, getattr(document, name))
    row.status = document.status.value


def _apply_chunk(row: ChunkDB, chunk: Chunk) -> None:
    row.title = chunk.title
    row.extracted_data = dict(chunk.extracted_data)
    row.status = chunk.status.value
    row.is_edited = chunk.is_edited
    row.original_data = dict(chunk.original_data) if chunk.original_data is not None else None
    row.edit_return_status = chunk.edit_return_status.value if chunk.edit_return_status else None
    row.updated_at = chunk.updated_at


class SqlDocumentRepository:
    """SQL implementation of DocumentRepository.

    Opens one session per call so concurrent pipeline runs never share a
    session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_document(self, document: Document) -> Document:
        """Persist a new document."""
        async with self._session_factory() as session:
            row = DocumentDB(id=document.id)
            _apply_document(row, document)
            session.add(row)
            await session.commit()

        return document

    async def get_document(self, document_id: uuid.UUID) -> Document | None:
        """Get document by ID."""
        async with self._session_factory() as session:
            row = await session.get(DocumentDB, document_id)
            return _to_document(row) if row is not None else None

    async def update_document(self, document_id: uuid.UUID, **fields: Any) -> Document | None:
        """Update selected fields of a document."""
        async with self._session_factory() as session:
            row = await session.get(DocumentDB, document_id)

            if row is None:
                return None

            # Validate through the domain model to enforce the count invariant
            data = _to_document(row).model_dump()
            data.update(fields)
            data["updated_at"] = datetime.now()
            updated = Document.model_validate(data)

            _apply_document(row, updated)
            await session.commit()

        return updated

    async def delete_document(self, document_id: uuid.UUID) -> bool:
        """Delete a document and cascade to its chunks."""
        async with self._session_factory() as session:
            await session.execute(delete(ChunkDB).where(ChunkDB.document_id == document_id))
            result = await session.execute(
                delete(DocumentDB).where(DocumentDB.id == document_id)
            )
            await session.commit()

        return result.rowcount > 0

    async def list_documents(self, limit: int | None = None) -> list[Document]:
        """List documents, newest first."""
        query = select(DocumentDB).order_by(DocumentDB.created_at.desc())

        if limit is not None:
            query = query.limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(query)
            return [_to_document(row) for row in result.scalars().all()]

    async def list_documents_by_status(self, status: DocumentStatus) -> list[Document]:
        """List documents with the given status, newest first."""
        query = (
            select(DocumentDB)
            .where(DocumentDB.status == status.value)
            .order_by(DocumentDB.created_at.desc())
        )

        async with self._session_factory() as session:
            result = await session.execute(query)
            return [_to_document(row) for row in result.scalars().all()]

    async def create_chunks(self, chunks: list[Chunk]) -> list[Chunk]:
        """Persist a batch of chunks in a single transaction."""
        async with self._session_factory() as session:
            for document_id in {c.document_id for c in chunks}:
                if await session.get(DocumentDB, document_id) is None:
                    raise KeyError(f"Document {document_id} does not exist")

            for chunk in chunks:
                session.add(
                    ChunkDB(
                        id=chunk.id,
                        document_id=chunk.document_id,
                        chunk_type=chunk.chunk_type.value,
                        sequence_number=chunk.sequence_number,
                        title=chunk.title,
                        extracted_data=dict(chunk.extracted_data),
                        bounding_box=chunk.bounding_box.model_dump(),
                        confidence=chunk.confidence,
                        status=chunk.status.value,
                        is_edited=chunk.is_edited,
                        original_data=chunk.original_data,
                        edit_return_status=None,
                        created_at=chunk.created_at,
                        updated_at=chunk.updated_at,
                    )
                )

            # Commit once - a failure rolls back the whole batch
            await session.commit()

        return list(chunks)

    async def get_chunk(self, chunk_id: uuid.UUID) -> Chunk | None:
        """Get chunk by ID."""
        async with self._session_factory() as session:
            row = await session.get(ChunkDB, chunk_id)
            return _to_chunk(row) if row is not None else None

    async def list_chunks(self, document_id: uuid.UUID) -> list[Chunk]:
        """List a document's chunks ordered by sequence number."""
        query = (
            select(ChunkDB)
            .where(ChunkDB.document_id == document_id)
            .order_by(ChunkDB.sequence_number)
        )

        async with self._session_factory() as session:
            result = await session.execute(query)
            return [_to_chunk(row) for row in result.scalars().all()]

    async def save_chunk(self, chunk: Chunk) -> Chunk:
        """Overwrite an existing chunk's mutable fields."""
        stored = chunk.model_copy(update={"updated_at": datetime.now()})

        async with self._session_factory() as session:
            row = await session.get(ChunkDB, chunk.id)

            if row is None:
                raise KeyError(f"Chunk {chunk.id} does not exist")

            _apply_chunk(row, stored)
            await session.commit()

        return stored

    async def delete_chunks(self, document_id: uuid.UUID) -> int:
        """Delete every chunk of a document."""
        async with self._session_factory() as session:
            result = await session.execute(
                delete(ChunkDB).where(ChunkDB.document_id == document_id)
            )
            await session.commit()

        return result.rowcount

    async def get_stats(self, now: datetime, avg_process_time: str) -> ProcessingStats:
        """Compute dashboard aggregates."""
        midnight = local_midnight(now)

        async with self._session_factory() as session:
            processed_today = await session.scalar(
                select(func.count())
                .select_from(DocumentDB)
                .where(DocumentDB.created_at >= midnight)
            )
            pending_approval = await session.scalar(
                select(func.count())
                .select_from(DocumentDB)
                .where(DocumentDB.status == DocumentStatus.ready_for_review.value)
            )
            mean_confidence = await session.scalar(select(func.avg(ChunkDB.confidence)))

        return ProcessingStats(
            processed_today=processed_today or 0,
            pending_approval=pending_approval or 0,
            accuracy_rate=format_accuracy(mean_confidence),
            avg_process_time=avg_process_time,
        )
