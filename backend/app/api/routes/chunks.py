"""Chunk review endpoints - approve, reject, edit."""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Body

from backend.app.api.deps import Services
from backend.app.models.documents import Chunk

router = APIRouter(prefix="/chunks", tags=["chunks"])


@router.patch("/{chunk_id}", response_model=Chunk)
async def update_chunk(
    chunk_id: UUID,
    payload: Annotated[Any, Body()],
    services: Services,
) -> Chunk:
    """Update a chunk's editable fields (title, extracted_data).

    Changing extracted_data sends the chunk back to pending.
    """
    return await services.review.update_chunk(chunk_id, payload)


@router.post("/{chunk_id}/approve", response_model=Chunk)
async def approve_chunk(chunk_id: UUID, services: Services) -> Chunk:
    """Approve a chunk."""
    return await services.review.approve(chunk_id)


@router.post("/{chunk_id}/reject", response_model=Chunk)
async def reject_chunk(chunk_id: UUID, services: Services) -> Chunk:
    """Reject a chunk."""
    return await services.review.reject(chunk_id)


@router.post("/{chunk_id}/edit", response_model=Chunk)
async def start_edit(chunk_id: UUID, services: Services) -> Chunk:
    """Put a chunk into the editing state."""
    return await services.review.start_edit(chunk_id)


@router.post("/{chunk_id}/cancel-edit", response_model=Chunk)
async def cancel_edit(chunk_id: UUID, services: Services) -> Chunk:
    """Abandon an edit and restore the chunk's prior status."""
    return await services.review.cancel_edit(chunk_id)
