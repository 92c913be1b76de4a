"""
TSA Songbook Editor - Song Editor Service

Single-song workflows: load, save (including moving a song to a new hymn
number), delete, verify/unverify, and create.

A verified song is locked: saving and deleting are refused here, not just
hidden in the UI.  Only the verification toggle itself stays available.
"""

from typing import Any, Dict, Optional

from loguru import logger

from songbook import database
from songbook.errors import (
    ConfirmationRequiredError,
    SongLockedError,
    SongNotFoundError,
    SongValidationError,
)
from songbook.models import SongCreate, SongUpdate, normalize_key, now_timestamp
from songbook.services.catalog import lyrics_stats

LOCKED_MESSAGE = "This song is verified and cannot be edited."


def _require_text(value: str, label: str) -> str:
    if not value or not value.strip():
        raise SongValidationError(f"{label} is required")
    return value


async def load_song(doc_id: str) -> Dict[str, Any]:
    """Fetch a song by key or raise SongNotFoundError."""
    song = await database.get_song(doc_id)
    if not song:
        raise SongNotFoundError("Song not found")
    return song


async def save_song(doc_id: str, update: SongUpdate) -> Dict[str, Any]:
    """
    Save edited fields of the song at *doc_id*.

    Returns ``{"song": <saved document>, "redirect": <new key or None>}``.
    When the submitted hymn number differs from *doc_id* the song is moved
    to the new key in one transaction and ``redirect`` holds the new key.
    """
    song = await load_song(doc_id)
    if song["verified"]:
        logger.warning("🔒 Refused edit of verified song #{}", doc_id)
        raise SongLockedError(LOCKED_MESSAGE)

    new_id = normalize_key(update.hymnNumber)
    fields = {
        "titleMarathi": _require_text(update.titleMarathi, "Marathi title"),
        "titleEnglish": update.titleEnglish or "",
        "category": _require_text(update.category, "Category"),
        "lyrics": update.lyrics,
        "lastEditedAt": now_timestamp(),
    }

    if new_id == doc_id:
        if not await database.update_song_fields(doc_id, **fields):
            raise SongNotFoundError("Song not found")
        return {"song": {**song, **fields}, "redirect": None}

    moved = {
        **song,
        **fields,
        "id": new_id,
        "hymnNumber": int(new_id),
    }
    await database.move_song(doc_id, new_id, moved)
    logger.info("🔀 Song #{} renumbered to #{}", doc_id, new_id)
    return {"song": moved, "redirect": new_id}


async def remove_song(doc_id: str, confirmed: bool) -> None:
    """Delete the song at *doc_id* after confirmation, unless it is verified."""
    if not confirmed:
        raise ConfirmationRequiredError("Please confirm deleting this song.")

    song = await load_song(doc_id)
    if song["verified"]:
        logger.warning("🔒 Refused delete of verified song #{}", doc_id)
        raise SongLockedError("This song is verified and cannot be deleted.")

    if not await database.delete_song(doc_id):
        raise SongNotFoundError("Song not found")


async def toggle_verified(doc_id: str, confirmed: bool) -> Dict[str, Any]:
    """Flip the verified flag of a song after confirmation."""
    if not confirmed:
        raise ConfirmationRequiredError("Please confirm changing the verification status.")

    song = await load_song(doc_id)
    verified = not song["verified"]
    timestamp = now_timestamp()
    await database.update_song_fields(doc_id, verified=verified, lastEditedAt=timestamp)

    if verified:
        logger.info("🔒 Song #{} marked as verified", doc_id)
    else:
        logger.info("🔓 Song #{} unverified", doc_id)

    return {
        "song": {**song, "verified": verified, "lastEditedAt": timestamp},
        "message": "Song marked as verified" if verified else "Song unverified successfully",
    }


async def create_song(payload: SongCreate) -> Dict[str, Any]:
    """
    Create a new, unverified song.

    Returns ``{"song": <document>, "redirect": <key>}`` so the caller can
    continue in the editor.  Fails with SongConflictError if the hymn number
    is already taken; the existing song is left untouched.
    """
    key = normalize_key(payload.hymnNumber)
    song = {
        "id": key,
        "hymnNumber": int(key),
        "titleMarathi": _require_text(payload.titleMarathi, "Marathi title"),
        "titleEnglish": payload.titleEnglish or "",
        "category": _require_text(payload.category, "Category"),
        "lyrics": payload.lyrics,
        "verified": False,
        "lastEditedAt": now_timestamp(),
        "engRef": "",
        "tuneRef": "",
    }

    await database.insert_song(key, song)
    return {"song": song, "redirect": key}


def editor_view(song: Dict[str, Any], message: Optional[str] = None) -> Dict[str, Any]:
    """Song plus the flags the editor needs to render a locked or editable form."""
    return {
        "song": song,
        "locked": bool(song.get("verified")),
        "lyricsStats": lyrics_stats(song.get("lyrics") or ""),
        "message": message,
    }
