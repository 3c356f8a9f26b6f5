"""Chunk review commands - persist transitions and keep aggregates current."""

import asyncio
import base64
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any
from uuid import UUID

import pydantic

from backend.app.db.repositories import DocumentRepository
from backend.app.exceptions import NotFoundError, ValidationError
from backend.app.models.common import DocumentStatus, FinalStatus
from backend.app.models.documents import (
    Chunk,
    ChunkUpdate,
    Document,
    DocumentPreview,
    DocumentWithChunks,
)
from backend.app.review import transitions
from backend.app.review.counter import recompute_counts
from backend.app.review.finalize import finalize_document
from backend.app.review.navigator import Effect, EffectKind
from backend.app.utils.logging import StructuredPipelineLogger
from backend.app.utils.metrics import PrometheusReviewMetrics

logger = logging.getLogger(__name__)


class ReviewService:
    """Upward interface for fetching documents and reviewing their chunks."""

    def __init__(
        self,
        repository: DocumentRepository,
        metrics: PrometheusReviewMetrics | None = None,
        structured_logger: StructuredPipelineLogger | None = None,
    ) -> None:
        self._repository = repository
        self._metrics = metrics or PrometheusReviewMetrics()
        self._log = structured_logger or StructuredPipelineLogger()

    async def get_document(self, document_id: UUID) -> Document:
        """Fetch a document without its chunks."""
        document = await self._repository.get_document(document_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found")
        return document

    async def get_document_with_chunks(self, document_id: UUID) -> DocumentWithChunks:
        """Fetch a document and its chunks ordered by sequence number."""
        document = await self.get_document(document_id)
        chunks = await self._repository.list_chunks(document_id)
        return DocumentWithChunks(**document.model_dump(), chunks=chunks)

    async def get_preview(self, document_id: UUID) -> DocumentPreview:
        """Return the stored upload, base64 encoded, with its type and name.

        Raises:
            NotFoundError: Unknown document, or its stored file is gone
        """
        document = await self.get_document(document_id)

        if document.original_path is None:
            raise NotFoundError(f"No stored upload for document {document_id}")
        try:
            data = await asyncio.to_thread(Path(document.original_path).read_bytes)
        except FileNotFoundError as e:
            raise NotFoundError(f"No stored upload for document {document_id}") from e

        return DocumentPreview(
            data=base64.b64encode(data).decode("ascii"),
            mime_type=document.mime_type,
            filename=document.filename,
        )

    async def delete_document(self, document_id: UUID) -> None:
        """Delete a document, its chunks and its stored upload."""
        document = await self.get_document(document_id)

        if not await self._repository.delete_document(document_id):
            raise NotFoundError(f"Document {document_id} not found")
        if document.original_path is not None:
            await asyncio.to_thread(Path(document.original_path).unlink, missing_ok=True)

        logger.info(f"Document {document_id} deleted")

    async def approve(self, chunk_id: UUID) -> Chunk:
        """Approve a chunk."""
        return await self._transition(chunk_id, transitions.approve, "approved")

    async def reject(self, chunk_id: UUID) -> Chunk:
        """Reject a chunk."""
        return await self._transition(chunk_id, transitions.reject, "rejected")

    async def start_edit(self, chunk_id: UUID) -> Chunk:
        """Put a chunk into the editing state."""
        return await self._transition(chunk_id, transitions.start_edit, "edit_started")

    async def cancel_edit(self, chunk_id: UUID) -> Chunk:
        """Abandon an edit, restoring the chunk's prior status."""
        return await self._transition(chunk_id, transitions.cancel_edit, "edit_cancelled")

    async def save_edit(self, chunk_id: UUID, extracted_data: dict[str, Any]) -> Chunk:
        """Write edited data and send the chunk back for review."""
        return await self._transition(
            chunk_id, lambda c: transitions.save_edit(c, extracted_data), "edit_saved"
        )

    async def update_chunk(self, chunk_id: UUID, payload: Any) -> Chunk:
        """Apply a patch of editable fields.

        A data change follows save-edit semantics and reopens the chunk;
        a title-only change leaves its status alone.

        Raises:
            ValidationError: Malformed payload, including a non-object body
            NotFoundError: Unknown chunk
        """
        if isinstance(payload, ChunkUpdate):
            update = payload
        else:
            try:
                update = ChunkUpdate.model_validate(payload)
            except pydantic.ValidationError as e:
                raise ValidationError(f"Invalid chunk update: {e}") from e

        def apply(chunk: Chunk) -> Chunk:
            if update.title is not None:
                chunk = transitions.rename(chunk, update.title)
            if update.extracted_data is not None:
                chunk = transitions.save_edit(chunk, update.extracted_data)
            return chunk

        decision = "edit_saved" if update.extracted_data is not None else "renamed"
        return await self._transition(chunk_id, apply, decision)

    async def finalize(self, document_id: UUID) -> FinalStatus:
        """Finalize a fully reviewed document."""
        outcome = await finalize_document(self._repository, document_id)
        self._metrics.inc_finalized(outcome.value)
        logger.info(f"Document {document_id} finalized as {outcome.value}")
        return outcome

    async def apply_effects(self, effects: list[Effect]) -> list[Effect]:
        """Perform the chunk transitions a navigator step asked for.

        Focus and cancel effects have no stored state and are handed back
        to the caller untouched.

        Returns:
            Effects that were not dispatched
        """
        remaining: list[Effect] = []

        for effect in effects:
            if effect.kind == EffectKind.approve:
                await self.approve(effect.chunk_id)
            elif effect.kind == EffectKind.reject:
                await self.reject(effect.chunk_id)
            elif effect.kind == EffectKind.start_edit:
                await self.start_edit(effect.chunk_id)
            elif effect.kind in (EffectKind.cancel, EffectKind.focus_changed):
                remaining.append(effect)
            else:
                raise AssertionError(f"Unhandled navigator effect: {effect.kind!r}")

        return remaining

    async def _load(self, chunk_id: UUID) -> Chunk:
        chunk = await self._repository.get_chunk(chunk_id)
        if chunk is None:
            raise NotFoundError(f"Chunk {chunk_id} not found")

        document = await self._repository.get_document(chunk.document_id)
        if document is None:
            raise NotFoundError(f"Document {chunk.document_id} not found")
        if document.status != DocumentStatus.ready_for_review:
            raise ValidationError(
                f"Document {document.id} is {document.status.value}; chunks can only "
                "change while it is ready_for_review"
            )

        return chunk

    async def _transition(
        self, chunk_id: UUID, step: Callable[[Chunk], Chunk], decision: str
    ) -> Chunk:
        chunk = await self._load(chunk_id)
        updated = step(chunk)

        if updated is chunk:
            # No-op transition: nothing written, counts untouched
            return chunk

        saved = await self._repository.save_chunk(updated)

        if saved.status != chunk.status:
            await recompute_counts(self._repository, saved.document_id)

        self._metrics.inc_decision(decision)
        self._log.log_decision(saved.id, saved.document_id, decision)
        return saved
