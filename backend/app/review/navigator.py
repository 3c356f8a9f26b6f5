"""Review queue navigator - a pure command reducer over an ordered chunk list.

The navigator owns nothing but a cursor. ``reduce`` maps
``(state, command, chunks)`` to ``(new_state, effects)``; effects name the
chunk transitions the caller should perform. Nothing here touches storage
or a UI, so it is driven identically by keyboard handlers and tests.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol
from uuid import UUID

from backend.app.models.common import ChunkStatus


class ReviewItem(Protocol):
    """Anything with an id and a review status (Chunk satisfies this)."""

    @property
    def id(self) -> UUID: ...

    @property
    def status(self) -> ChunkStatus: ...


class Command(str, Enum):
    """Discrete navigator input."""

    next = "next"
    previous = "previous"
    step_down = "step_down"
    step_up = "step_up"
    approve = "approve"
    reject = "reject"
    edit = "edit"
    cancel = "cancel"


class EffectKind(str, Enum):
    """Side effect requested of the caller."""

    approve = "approve"
    reject = "reject"
    start_edit = "start_edit"
    cancel = "cancel"
    focus_changed = "focus_changed"


@dataclass(frozen=True)
class Effect:
    """A requested side effect targeting one chunk."""

    kind: EffectKind
    chunk_id: UUID


@dataclass(frozen=True)
class NavigatorState:
    """Cursor into the chunk list (ordered by sequence number)."""

    cursor: int = 0


# Key name -> (command without shift, command with shift)
_KEY_BINDINGS: dict[str, tuple[Command, Command]] = {
    "Tab": (Command.next, Command.previous),
    "ArrowDown": (Command.step_down, Command.step_down),
    "ArrowUp": (Command.step_up, Command.step_up),
    "Enter": (Command.approve, Command.approve),
    "r": (Command.reject, Command.reject),
    "R": (Command.reject, Command.reject),
    "e": (Command.edit, Command.edit),
    "E": (Command.edit, Command.edit),
    "Escape": (Command.cancel, Command.cancel),
}


def command_for_key(
    key: str, *, shift: bool = False, in_text_field: bool = False
) -> Command | None:
    """Translate a key press into a navigator command.

    Args:
        key: Key name as reported by the input layer (e.g. "Tab", "r")
        shift: Whether shift was held
        in_text_field: Whether input focus is inside a text-entry field

    Returns:
        Command, or None when the key is unbound or typing must not be intercepted
    """
    if in_text_field:
        return None

    binding = _KEY_BINDINGS.get(key)
    if binding is None:
        return None

    return binding[1] if shift else binding[0]


def first_pending_index(chunks: Sequence[ReviewItem]) -> int | None:
    """Index of the first pending chunk, if any."""
    for index, chunk in enumerate(chunks):
        if chunk.status == ChunkStatus.pending:
            return index
    return None


def next_pending_after(chunks: Sequence[ReviewItem], index: int) -> int | None:
    """Index of the first pending chunk strictly after ``index`` (no wraparound)."""
    for candidate in range(index + 1, len(chunks)):
        if chunks[candidate].status == ChunkStatus.pending:
            return candidate
    return None


def initial_state(chunks: Sequence[ReviewItem]) -> NavigatorState:
    """Cursor for a freshly loaded (or changed) chunk list."""
    index = first_pending_index(chunks)
    return NavigatorState(cursor=index if index is not None else 0)


def _move(
    state: NavigatorState, cursor: int, chunks: Sequence[ReviewItem]
) -> tuple[NavigatorState, list[Effect]]:
    if cursor == state.cursor:
        return state, []
    return NavigatorState(cursor=cursor), [Effect(EffectKind.focus_changed, chunks[cursor].id)]


def reduce(
    state: NavigatorState, command: Command, chunks: Sequence[ReviewItem]
) -> tuple[NavigatorState, list[Effect]]:
    """Apply one command.

    Args:
        state: Current navigator state
        command: Command to apply
        chunks: Chunk list ordered by sequence number, as currently displayed

    Returns:
        (new_state, effects) - effects are listed in the order to perform them
    """
    count = len(chunks)

    # Movement commands
    if command in (Command.next, Command.previous, Command.step_down, Command.step_up):
        if count == 0:
            return state, []

        if command == Command.next:
            cursor = (state.cursor + 1) % count if state.cursor < count else 0
        elif command == Command.previous:
            cursor = state.cursor - 1 if 0 < state.cursor <= count else count - 1
        elif command == Command.step_down:
            cursor = min(state.cursor + 1, count - 1)
        else:
            cursor = max(min(state.cursor, count) - 1, 0)

        return _move(state, cursor, chunks)

    # Everything else acts on the focused chunk
    if not 0 <= state.cursor < count:
        return state, []

    focused = chunks[state.cursor]

    if command in (Command.approve, Command.reject):
        kind = EffectKind.approve if command == Command.approve else EffectKind.reject
        effects = [Effect(kind, focused.id)]

        if focused.status != ChunkStatus.pending:
            return state, effects

        target = next_pending_after(chunks, state.cursor)
        if target is None:
            return state, effects

        new_state, focus_effects = _move(state, target, chunks)
        return new_state, effects + focus_effects

    if command == Command.edit:
        return state, [Effect(EffectKind.start_edit, focused.id)]

    if command == Command.cancel:
        return state, [Effect(EffectKind.cancel, focused.id)]

    raise AssertionError(f"Unhandled navigator command: {command!r}")
