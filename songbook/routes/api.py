"""
TSA Songbook Editor - JSON API Routes

Provides all REST API endpoints for:
- Songs CRUD (list + filter, create, load, save/renumber, delete)
- Verification lock toggle
- Bulk import (validate, then replace the whole songbook)
- Export of the whole songbook as a downloadable JSON file
- Health check

Service errors (not found, conflict, locked, validation) are raised by the
services and translated to HTTP responses by the handlers in main.py.
"""

import time
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import Response
from loguru import logger

from songbook import database
from songbook.config import (
    ALLOWED_IMPORT_EXTENSIONS,
    APP_VERSION,
    EXPORT_FILENAME,
    MAX_IMPORT_SIZE_BYTES,
    MAX_IMPORT_SIZE_MB,
)
from songbook.errors import SongLockedError
from songbook.models import SongCreate, SongUpdate
from songbook.services import editor
from songbook.services.bulk_import import run_bulk_import
from songbook.services.catalog import catalog_stats, filter_songs
from songbook.services.editor_state import (
    EditorEvent,
    EditorSnapshot,
    EditorState,
    reduce,
)
from songbook.services.exporter import export_json
from songbook.services.import_validator import check_import_text

router = APIRouter(prefix="/api", tags=["API"])

# Track startup time for health check
_START_TIME = time.time()


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@router.get("/health")
async def health_check():
    """Health check endpoint for the service."""
    uptime = round(time.time() - _START_TIME, 2)
    db_ok = database.DB_PATH.exists()

    return {
        "status": "ok" if db_ok else "degraded",
        "database": "ok" if db_ok else "missing",
        "uptime_seconds": uptime,
        "version": APP_VERSION,
    }


# ---------------------------------------------------------------------------
# Songs
# ---------------------------------------------------------------------------
@router.get("/songs")
async def api_list_songs(search: Optional[str] = Query(None)):
    """List every song ordered by hymn number, optionally filtered."""
    songs = await database.get_all_songs()
    filtered = filter_songs(songs, search)
    return {
        "stats": catalog_stats(songs, filtered),
        "songs": [
            {
                "id": s["id"],
                "hymnNumber": s["hymnNumber"],
                "titleMarathi": s["titleMarathi"],
                "category": s["category"],
                "verified": s["verified"],
            }
            for s in filtered
        ],
    }


@router.post("/songs", status_code=201)
async def api_create_song(body: SongCreate):
    """Create a new, unverified song and return where to continue editing."""
    return await editor.create_song(body)


@router.get("/songs/{song_id}")
async def api_get_song(song_id: str):
    """Load a single song for the editor."""
    song = await editor.load_song(song_id)
    return editor.editor_view(song)


async def _open_editor(song_id: str) -> EditorSnapshot:
    """Load *song_id* into a ready editor snapshot."""
    song = await editor.load_song(song_id)
    return reduce(EditorSnapshot(), EditorEvent("loaded", song=song))


@router.put("/songs/{song_id}")
async def api_update_song(song_id: str, body: SongUpdate):
    """
    Save a song.

    Submitting a different hymn number moves the song to that number; the
    response then carries ``redirect`` with the new key.
    """
    snapshot = reduce(await _open_editor(song_id), EditorEvent("save_started"))
    if snapshot.state != EditorState.SAVING:
        raise SongLockedError(snapshot.message)

    result = await editor.save_song(song_id, body)
    if result["redirect"]:
        snapshot = reduce(snapshot, EditorEvent("renamed", song=result["song"]))
    else:
        snapshot = reduce(snapshot, EditorEvent("saved", song=result["song"]))

    return {
        "state": snapshot.state.value,
        "song": snapshot.song,
        "redirect": snapshot.redirect_to,
        "message": snapshot.message,
    }


@router.delete("/songs/{song_id}")
async def api_delete_song(song_id: str, confirm: bool = Query(False)):
    """Delete a song. Requires ``confirm=true``; verified songs are refused."""
    snapshot = await _open_editor(song_id)
    await editor.remove_song(song_id, confirmed=confirm)
    snapshot = reduce(
        snapshot,
        EditorEvent("deleted", message=f"Song {song_id} deleted successfully"),
    )
    return {"state": snapshot.state.value, "message": snapshot.message}


@router.post("/songs/{song_id}/verify")
async def api_toggle_verified(song_id: str, confirm: bool = Query(False)):
    """Flip the verification lock of a song. Requires ``confirm=true``."""
    snapshot = await _open_editor(song_id)
    result = await editor.toggle_verified(song_id, confirmed=confirm)
    snapshot = reduce(
        snapshot,
        EditorEvent("verify_toggled", song=result["song"], message=result["message"]),
    )
    return {
        "state": snapshot.state.value,
        **editor.editor_view(snapshot.song, message=snapshot.message),
    }


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------
def _validate_extension(filename: str, allowed: set) -> str:
    """Validate and return the file extension, raising HTTPException if invalid."""
    ext = Path(filename).suffix.lower()
    if ext not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file extension: {ext}. Allowed: {', '.join(sorted(allowed))}",
        )
    return ext


async def _read_import_file(file: UploadFile) -> str:
    """Read an uploaded import file as UTF-8 text, enforcing the size cap."""
    filename = file.filename
    if not filename:
        raise HTTPException(
            status_code=400,
            detail="Uploaded file must have a filename.",
        )

    _validate_extension(filename, ALLOWED_IMPORT_EXTENSIONS)

    chunks = []
    total_size = 0
    while chunk := await file.read(65536):
        total_size += len(chunk)
        if total_size > MAX_IMPORT_SIZE_BYTES:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Maximum size is {MAX_IMPORT_SIZE_MB}MB.",
            )
        chunks.append(chunk)

    logger.info(f"📤 Import file received: {filename} ({total_size} bytes)")

    try:
        return b"".join(chunks).decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="Import file must be UTF-8 text.")


@router.post("/import/validate")
async def api_validate_import(file: UploadFile = File(...)):
    """Validate an import file and summarise it without changing anything."""
    text = await _read_import_file(file)
    result = check_import_text(text)
    return {"filename": file.filename, **result.to_dict()}


@router.post("/import")
async def api_run_import(
    file: UploadFile = File(...),
    confirm: bool = Form(False),
    confirm_text: str = Form(""),
):
    """
    Replace the whole songbook with the uploaded file.

    Needs both ``confirm=true`` and ``confirm_text`` equal to the configured
    phrase.  Either every song is replaced or nothing changes.
    """
    text = await _read_import_file(file)
    return await run_bulk_import(text, confirmed=confirm, confirm_text=confirm_text)


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------
@router.get("/export")
async def api_export():
    """Download the whole songbook as a JSON file."""
    content = await export_json()
    return Response(
        content=content,
        media_type="application/json; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )
