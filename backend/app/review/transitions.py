"""Chunk status state machine.

Pure functions from a chunk to its next version. Each returns the input
object unchanged when the transition is a no-op, so callers can skip the
write with an identity check.

    pending --approve--> approved        pending --reject--> rejected
    any decided/pending --start_edit--> editing
    editing --cancel_edit--> (status before the edit)
    editing --save_edit--> pending (is_edited, original_data on first edit)
"""

import copy
from typing import Any

from backend.app.exceptions import ValidationError
from backend.app.models.common import ChunkStatus
from backend.app.models.documents import Chunk


def _unhandled(status: ChunkStatus) -> AssertionError:
    return AssertionError(f"Unhandled chunk status: {status!r}")


def _decide(chunk: Chunk, target: ChunkStatus) -> Chunk:
    status = chunk.status

    if status == target:
        # Idempotent re-decision
        return chunk
    if status in (ChunkStatus.pending, ChunkStatus.approved, ChunkStatus.rejected):
        return chunk.model_copy(update={"status": target})
    if status == ChunkStatus.editing:
        raise ValidationError(
            f"Chunk {chunk.id} is being edited; save or cancel the edit first"
        )
    raise _unhandled(status)


def approve(chunk: Chunk) -> Chunk:
    """Mark a chunk approved."""
    return _decide(chunk, ChunkStatus.approved)


def reject(chunk: Chunk) -> Chunk:
    """Mark a chunk rejected."""
    return _decide(chunk, ChunkStatus.rejected)


def start_edit(chunk: Chunk) -> Chunk:
    """Enter the editing state, remembering where to return on cancel."""
    status = chunk.status

    if status == ChunkStatus.editing:
        return chunk
    if status in (ChunkStatus.pending, ChunkStatus.approved, ChunkStatus.rejected):
        return chunk.model_copy(
            update={"status": ChunkStatus.editing, "edit_return_status": status}
        )
    raise _unhandled(status)


def cancel_edit(chunk: Chunk) -> Chunk:
    """Leave the editing state without touching data."""
    status = chunk.status

    if status == ChunkStatus.editing:
        return chunk.model_copy(
            update={
                "status": chunk.edit_return_status or ChunkStatus.pending,
                "edit_return_status": None,
            }
        )
    if status in (ChunkStatus.pending, ChunkStatus.approved, ChunkStatus.rejected):
        raise ValidationError(f"Chunk {chunk.id} is not being edited")
    raise _unhandled(status)


def save_edit(chunk: Chunk, extracted_data: dict[str, Any]) -> Chunk:
    """Write edited data and reopen the chunk for review.

    Saving without a prior start_edit is treated as an implicit one.
    """
    status = chunk.status

    if status not in (
        ChunkStatus.pending,
        ChunkStatus.approved,
        ChunkStatus.rejected,
        ChunkStatus.editing,
    ):
        raise _unhandled(status)

    original_data = chunk.original_data
    if not chunk.is_edited:
        original_data = copy.deepcopy(chunk.extracted_data)

    return chunk.model_copy(
        update={
            "extracted_data": copy.deepcopy(extracted_data),
            "is_edited": True,
            "original_data": original_data,
            "status": ChunkStatus.pending,
            "edit_return_status": None,
        }
    )


def rename(chunk: Chunk, title: str) -> Chunk:
    """Change a chunk's title; status is left alone."""
    if title == chunk.title:
        return chunk
    return chunk.model_copy(update={"title": title})
