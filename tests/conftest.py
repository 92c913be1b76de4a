"""
TSA Songbook Editor - Pytest Configuration & Shared Fixtures

Provides reusable fixtures for:
- A fresh, initialized SQLite song store per test
- Seeding songs directly into the store
- Sample import files (valid and invalid)
- A FastAPI TestClient bound to the temporary store
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List

import pytest

from songbook import database

OLD_TIMESTAMP = "2020-01-01T00:00:00+00:00"


def run(coro):
    """Drive an async store/service call from a synchronous test."""
    return asyncio.run(coro)


def make_song(hymn_number: int, **overrides) -> Dict[str, Any]:
    """Build a complete internal song document."""
    song = {
        "id": str(hymn_number),
        "hymnNumber": hymn_number,
        "titleMarathi": f"गीत {hymn_number}",
        "titleEnglish": f"Song {hymn_number}",
        "category": "Salvation",
        "lyrics": f"Verse one of {hymn_number}\nVerse two of {hymn_number}",
        "verified": False,
        "engRef": "",
        "tuneRef": "",
        "lastEditedAt": OLD_TIMESTAMP,
    }
    song.update(overrides)
    return song


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path(tmp_path: Path, monkeypatch) -> Path:
    """Point the song store at a fresh database file and create the schema."""
    path = tmp_path / "songbook.db"
    monkeypatch.setattr(database, "DB_PATH", path)
    database.init_db()
    return path


@pytest.fixture
def seed_songs(db_path: Path):
    """
    Factory fixture: call with song documents (or hymn numbers) to write
    them straight into the store. Returns the documents written.
    """

    def _factory(*songs) -> List[Dict[str, Any]]:
        docs = [make_song(s) if isinstance(s, int) else s for s in songs]
        for doc in docs:
            run(database.set_song(doc["id"], doc))
        return docs

    return _factory


# ---------------------------------------------------------------------------
# Import file fixtures
# ---------------------------------------------------------------------------

SAMPLE_IMPORT_RECORDS = [
    {
        "id": "1",
        "title_marathi": "येशू माझा मित्र",
        "title_english": "Jesus My Friend",
        "category": "Salvation",
        "eng_ref": "SASB 101",
        "tune_ref": "Tune 12",
        "lyrics": "पहिले कडवे\nदुसरे कडवे",
    },
    {
        "id": "2",
        "title_marathi": "स्तुती करा",
        "title_english": "",
        "category": "Praise",
        "lyrics": "स्तुती स्तुती",
    },
    {
        "id": "105",
        "title_marathi": "कृपा",
        "category": "Salvation",
        "lyrics": "कृपेचे गीत",
    },
]


@pytest.fixture
def sample_import_records() -> List[Dict[str, Any]]:
    return [dict(r) for r in SAMPLE_IMPORT_RECORDS]


@pytest.fixture
def sample_import_text(sample_import_records) -> str:
    return json.dumps(sample_import_records, ensure_ascii=False)


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
def client(db_path: Path):
    """A TestClient running the full application against the temporary store."""
    from fastapi.testclient import TestClient

    from songbook.main import create_app

    with TestClient(create_app()) as c:
        yield c
