"""
TSA Songbook Editor - Song Models

Request bodies for the JSON API and the mapping between the internal
document schema (camelCase, stored in the database) and the flat external
schema used by import/export files (snake_case, ``id`` as the key).
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Union

from pydantic import BaseModel

from songbook.config import DEFAULT_CATEGORY
from songbook.errors import SongValidationError

# Largest value an SQLite INTEGER column can hold
MAX_HYMN_NUMBER = 2**63 - 1


class SongCreate(BaseModel):
    hymnNumber: Union[int, str]
    titleMarathi: str = ""
    titleEnglish: str = ""
    category: str = DEFAULT_CATEGORY
    lyrics: str = ""


class SongUpdate(BaseModel):
    hymnNumber: Union[int, str]
    titleMarathi: str
    titleEnglish: str = ""
    category: str
    lyrics: str


class ImportSummary(BaseModel):
    totalSongs: int
    categories: List[str]
    missingEnglishTitles: int


def now_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string for ``lastEditedAt``."""
    return datetime.now(timezone.utc).isoformat()


def normalize_key(value: Any) -> str:
    """
    Turn a submitted hymn number into its canonical document key.

    ``" 105 "``, ``"0105"`` and ``105`` all become ``"105"`` so the key and
    the stored ``hymnNumber`` can never disagree.
    """
    if isinstance(value, bool):
        raise SongValidationError("Hymn number must be a whole number")
    text = str(value).strip() if value is not None else ""
    if not text:
        raise SongValidationError("Hymn number is required")
    try:
        number = int(text)
    except ValueError:
        raise SongValidationError(f"Hymn number must be a whole number, got '{text}'")
    if number < 0:
        raise SongValidationError("Hymn number cannot be negative")
    if number > MAX_HYMN_NUMBER:
        raise SongValidationError(f"Hymn number cannot be larger than {MAX_HYMN_NUMBER}")
    return str(number)


def _text_field(raw: Dict[str, Any], field: str) -> str:
    value = raw.get(field) or ""
    if not isinstance(value, str):
        raise SongValidationError(f"'{field}' must be text")
    return value


def from_import_record(raw: Dict[str, Any], timestamp: str) -> Dict[str, Any]:
    """Map one external import record onto a new internal document."""
    key = normalize_key(raw["id"])
    return {
        "id": key,
        "hymnNumber": int(key),
        "titleMarathi": _text_field(raw, "title_marathi"),
        "titleEnglish": _text_field(raw, "title_english"),
        "category": _text_field(raw, "category"),
        "lyrics": _text_field(raw, "lyrics"),
        "engRef": _text_field(raw, "eng_ref"),
        "tuneRef": _text_field(raw, "tune_ref"),
        "verified": False,
        "lastEditedAt": timestamp,
    }


def to_export_record(song: Dict[str, Any]) -> Dict[str, str]:
    """Map one stored document onto the flat export schema."""
    return {
        "id": song["id"],
        "title_marathi": song["titleMarathi"],
        "title_english": song.get("titleEnglish") or "",
        "category": song["category"],
        "eng_ref": song.get("engRef") or "",
        "tune_ref": song.get("tuneRef") or "",
        "lyrics": song["lyrics"],
    }
