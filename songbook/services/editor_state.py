"""
TSA Songbook Editor - Editor State Machine

The editor moves through ``loading -> ready -> saving -> ready`` and ends in
``redirecting`` (after a renumber), ``deleted``, or ``error`` (song missing).
Each step produces a new immutable EditorSnapshot from the previous one and
an EditorEvent via :func:`reduce`; nothing is mutated in place.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional

from songbook.services.editor import LOCKED_MESSAGE


class EditorState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    SAVING = "saving"
    REDIRECTING = "redirecting"
    DELETED = "deleted"
    ERROR = "error"


@dataclass(frozen=True)
class EditorEvent:
    kind: str
    song: Optional[Dict[str, Any]] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class EditorSnapshot:
    state: EditorState = EditorState.LOADING
    song: Optional[Dict[str, Any]] = None
    message: Optional[str] = None
    redirect_to: Optional[str] = None

    @property
    def locked(self) -> bool:
        return bool(self.song and self.song.get("verified"))

    @property
    def editable(self) -> bool:
        return self.state == EditorState.READY and not self.locked


# (state, event kind) pairs that are allowed
_TRANSITIONS = {
    (EditorState.LOADING, "loaded"),
    (EditorState.LOADING, "not_found"),
    (EditorState.READY, "save_started"),
    (EditorState.READY, "verify_toggled"),
    (EditorState.READY, "deleted"),
    (EditorState.SAVING, "saved"),
    (EditorState.SAVING, "renamed"),
    (EditorState.SAVING, "save_failed"),
}


def reduce(snapshot: EditorSnapshot, event: EditorEvent) -> EditorSnapshot:
    """Return the snapshot that follows *snapshot* after *event*."""
    if (snapshot.state, event.kind) not in _TRANSITIONS:
        raise ValueError(
            f"Invalid editor transition: {event.kind!r} in state {snapshot.state.value!r}"
        )

    if event.kind == "loaded":
        return EditorSnapshot(state=EditorState.READY, song=event.song)

    if event.kind == "not_found":
        return EditorSnapshot(
            state=EditorState.ERROR, message=event.message or "Song not found"
        )

    if event.kind == "save_started":
        if snapshot.locked:
            return replace(snapshot, message=LOCKED_MESSAGE)
        return replace(snapshot, state=EditorState.SAVING, message=None)

    if event.kind == "saved":
        return EditorSnapshot(
            state=EditorState.READY,
            song=event.song,
            message=event.message or "Changes saved successfully",
        )

    if event.kind == "renamed":
        new_id = (event.song or {}).get("id")
        return EditorSnapshot(
            state=EditorState.REDIRECTING,
            song=event.song,
            message=event.message,
            redirect_to=new_id,
        )

    if event.kind == "save_failed":
        return replace(
            snapshot,
            state=EditorState.READY,
            message=event.message or "Failed to save changes. Please try again.",
        )

    if event.kind == "verify_toggled":
        return replace(snapshot, song=event.song, message=event.message)

    # deleted
    return EditorSnapshot(state=EditorState.DELETED, message=event.message)
