"""
TSA Songbook Editor - Song Store (SQLite)

Each row of the songs table is one document keyed by ``doc_id`` (the hymn
number as a string).  Uses aiosqlite for async operations within FastAPI
and plain sqlite3 for the startup schema helpers.

Documents leave this module as plain dicts in the internal schema::

    {"id": "105", "hymnNumber": 105, "titleMarathi": ..., "titleEnglish": ...,
     "category": ..., "lyrics": ..., "verified": False, "engRef": ...,
     "tuneRef": ..., "lastEditedAt": "2024-01-01T00:00:00+00:00"}

Multi-document writes (bulk replace, rename) go through a single SQLite
transaction so they either land completely or not at all.
"""

import sqlite3
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Tuple

import aiosqlite
from loguru import logger

from songbook.config import DB_PATH, SONGS_COLLECTION
from songbook.errors import SongConflictError

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------
SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS {SONGS_COLLECTION} (
    doc_id TEXT PRIMARY KEY,
    hymn_number INTEGER NOT NULL,
    title_marathi TEXT NOT NULL,
    title_english TEXT DEFAULT '',
    category TEXT NOT NULL,
    lyrics TEXT NOT NULL DEFAULT '',
    verified INTEGER NOT NULL DEFAULT 0,
    eng_ref TEXT DEFAULT '',
    tune_ref TEXT DEFAULT '',
    last_edited_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_{SONGS_COLLECTION}_hymn_number
    ON {SONGS_COLLECTION}(hymn_number);
"""

# Internal document field -> column
FIELD_COLUMNS = {
    "hymnNumber": "hymn_number",
    "titleMarathi": "title_marathi",
    "titleEnglish": "title_english",
    "category": "category",
    "lyrics": "lyrics",
    "verified": "verified",
    "engRef": "eng_ref",
    "tuneRef": "tune_ref",
    "lastEditedAt": "last_edited_at",
}

_INSERT_SQL = f"""
INSERT OR REPLACE INTO {SONGS_COLLECTION} (
    doc_id, hymn_number, title_marathi, title_english, category,
    lyrics, verified, eng_ref, tune_ref, last_edited_at
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

# Same columns, but a taken doc_id fails instead of being replaced
_CREATE_SQL = _INSERT_SQL.replace("INSERT OR REPLACE", "INSERT", 1)

# ---------------------------------------------------------------------------
# Migration helpers
# ---------------------------------------------------------------------------
_MIGRATIONS = [
    # Migration 1: English hymn reference (older songbooks lacked it)
    {
        "check": f"SELECT COUNT(*) FROM pragma_table_info('{SONGS_COLLECTION}') WHERE name='eng_ref'",
        "apply": [
            f"ALTER TABLE {SONGS_COLLECTION} ADD COLUMN eng_ref TEXT DEFAULT ''",
        ],
        "description": "Add eng_ref column",
    },
    # Migration 2: tune reference
    {
        "check": f"SELECT COUNT(*) FROM pragma_table_info('{SONGS_COLLECTION}') WHERE name='tune_ref'",
        "apply": [
            f"ALTER TABLE {SONGS_COLLECTION} ADD COLUMN tune_ref TEXT DEFAULT ''",
        ],
        "description": "Add tune_ref column",
    },
]


def _run_migrations(conn: sqlite3.Connection) -> None:
    """Run any pending schema migrations."""
    for migration in _MIGRATIONS:
        cursor = conn.execute(str(migration["check"]))
        (count,) = cursor.fetchone()
        if count == 0:
            logger.info("🔄 Running migration: {}", migration["description"])
            for stmt in migration["apply"]:
                conn.execute(stmt)
            conn.commit()
            logger.success("✅ Migration applied: {}", migration["description"])


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------
def init_db() -> None:
    """Initialize the SQLite database, create tables, and run migrations."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    try:
        with sqlite3.connect(str(DB_PATH)) as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()
            _run_migrations(conn)
        logger.success(f"✅ Database initialized at {DB_PATH}")
    except Exception as e:
        logger.critical(f"❌ Failed to initialize database: {e}")
        raise


# ---------------------------------------------------------------------------
# Async context manager (for use in FastAPI routes and services)
# ---------------------------------------------------------------------------
@asynccontextmanager
async def get_async_connection():
    """Async context manager for an aiosqlite connection with row factory."""
    db = await aiosqlite.connect(str(DB_PATH))
    db.row_factory = aiosqlite.Row
    try:
        yield db
    finally:
        await db.close()


# ---------------------------------------------------------------------------
# Row <-> document conversion
# ---------------------------------------------------------------------------
def row_to_song(row) -> Dict[str, Any]:
    """Convert a database row to a song document in the internal schema."""
    if row is None:
        return {}
    return {
        "id": row["doc_id"],
        "hymnNumber": row["hymn_number"],
        "titleMarathi": row["title_marathi"],
        "titleEnglish": row["title_english"] or "",
        "category": row["category"],
        "lyrics": row["lyrics"],
        "verified": bool(row["verified"]),
        "engRef": row["eng_ref"] or "",
        "tuneRef": row["tune_ref"] or "",
        "lastEditedAt": row["last_edited_at"],
    }


def _song_params(doc_id: str, data: Dict[str, Any]) -> Tuple[Any, ...]:
    return (
        doc_id,
        int(data["hymnNumber"]),
        data["titleMarathi"],
        data.get("titleEnglish") or "",
        data["category"],
        data.get("lyrics", ""),
        1 if data.get("verified") else 0,
        data.get("engRef") or "",
        data.get("tuneRef") or "",
        data.get("lastEditedAt"),
    )


# ---------------------------------------------------------------------------
# Single-document operations
# ---------------------------------------------------------------------------
async def get_song(doc_id: str) -> Optional[Dict[str, Any]]:
    """Fetch a single song by its document key."""
    async with get_async_connection() as db:
        cursor = await db.execute(
            f"SELECT * FROM {SONGS_COLLECTION} WHERE doc_id = ?", (doc_id,)
        )
        row = await cursor.fetchone()
        return row_to_song(row) if row else None


async def song_exists(doc_id: str) -> bool:
    """Return True if a document is stored under *doc_id*."""
    async with get_async_connection() as db:
        cursor = await db.execute(
            f"SELECT 1 FROM {SONGS_COLLECTION} WHERE doc_id = ?", (doc_id,)
        )
        return await cursor.fetchone() is not None


async def get_all_songs() -> List[Dict[str, Any]]:
    """Fetch every song ordered by hymn number ascending."""
    async with get_async_connection() as db:
        cursor = await db.execute(
            f"SELECT * FROM {SONGS_COLLECTION} ORDER BY hymn_number ASC, doc_id ASC"
        )
        rows = await cursor.fetchall()
        return [row_to_song(r) for r in rows]


async def get_all_keys() -> List[str]:
    """Return the document key of every stored song."""
    async with get_async_connection() as db:
        cursor = await db.execute(f"SELECT doc_id FROM {SONGS_COLLECTION}")
        rows = await cursor.fetchall()
        return [r["doc_id"] for r in rows]


async def set_song(doc_id: str, data: Dict[str, Any]) -> None:
    """Write a full document at *doc_id*, replacing whatever was there."""
    async with get_async_connection() as db:
        await db.execute(_INSERT_SQL, _song_params(doc_id, data))
        await db.commit()
    logger.success(f"✅ Song #{doc_id} written: {data.get('titleMarathi', '')}")


async def insert_song(doc_id: str, data: Dict[str, Any]) -> None:
    """
    Write a new document at *doc_id*.

    Raises SongConflictError if *doc_id* is already taken; the existing
    document is never replaced.
    """
    async with get_async_connection() as db:
        try:
            await db.execute(_CREATE_SQL, _song_params(doc_id, data))
            await db.commit()
        except sqlite3.IntegrityError as e:
            if "UNIQUE" not in str(e):
                raise
            logger.warning(f"⚠️ Song #{doc_id} already exists, create refused")
            raise SongConflictError(
                f"Song #{doc_id} already exists. Please delete it first or choose another number."
            ) from e
    logger.success(f"✅ Song #{doc_id} created: {data.get('titleMarathi', '')}")


async def update_song_fields(doc_id: str, **fields) -> bool:
    """Update specific fields of a song. Returns True if a row was modified."""
    filtered = {k: v for k, v in fields.items() if k in FIELD_COLUMNS}
    if not filtered:
        return False

    if "verified" in filtered:
        filtered["verified"] = 1 if filtered["verified"] else 0

    set_clause = ", ".join(f"{FIELD_COLUMNS[k]} = ?" for k in filtered)
    values = list(filtered.values()) + [doc_id]

    async with get_async_connection() as db:
        cursor = await db.execute(
            f"UPDATE {SONGS_COLLECTION} SET {set_clause} WHERE doc_id = ?",
            values,
        )
        await db.commit()
        updated = cursor.rowcount > 0
        if updated:
            logger.info(f"✏️ Song #{doc_id} updated: {list(filtered.keys())}")
        return updated


async def delete_song(doc_id: str) -> bool:
    """Delete a song by its key. Returns True if a row was deleted."""
    async with get_async_connection() as db:
        cursor = await db.execute(
            f"DELETE FROM {SONGS_COLLECTION} WHERE doc_id = ?", (doc_id,)
        )
        await db.commit()
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"🗑️ Song #{doc_id} deleted from database")
        else:
            logger.warning(f"⚠️ Song #{doc_id} not found for deletion")
        return deleted


async def count_songs() -> int:
    """Return total number of songs."""
    async with get_async_connection() as db:
        cursor = await db.execute(f"SELECT COUNT(*) as cnt FROM {SONGS_COLLECTION}")
        row = await cursor.fetchone()
        return row["cnt"] if row else 0


async def count_verified_songs() -> int:
    """Return the number of verified (locked) songs."""
    async with get_async_connection() as db:
        cursor = await db.execute(
            f"SELECT COUNT(*) as cnt FROM {SONGS_COLLECTION} WHERE verified = 1"
        )
        row = await cursor.fetchone()
        return row["cnt"] if row else 0


# ---------------------------------------------------------------------------
# Multi-document writes
# ---------------------------------------------------------------------------
class WriteBatch:
    """
    Collects deletes and full-document sets to be committed together.

    Operations are applied in the order they were added, inside one
    transaction, by :func:`commit_batch`.
    """

    def __init__(self):
        self.operations: List[Tuple[str, str, Optional[Dict[str, Any]]]] = []

    def delete(self, doc_id: str) -> "WriteBatch":
        self.operations.append(("delete", doc_id, None))
        return self

    def set(self, doc_id: str, data: Dict[str, Any]) -> "WriteBatch":
        self.operations.append(("set", doc_id, data))
        return self

    @property
    def delete_count(self) -> int:
        return sum(1 for op, _, _ in self.operations if op == "delete")

    @property
    def set_count(self) -> int:
        return sum(1 for op, _, _ in self.operations if op == "set")

    def __len__(self) -> int:
        return len(self.operations)


async def commit_batch(batch: WriteBatch) -> None:
    """
    Apply every operation in *batch* atomically.

    On any failure the transaction is rolled back and the error re-raised,
    leaving the collection exactly as it was.
    """
    async with get_async_connection() as db:
        try:
            await db.execute("BEGIN IMMEDIATE")
            for op, doc_id, data in batch.operations:
                if op == "delete":
                    await db.execute(
                        f"DELETE FROM {SONGS_COLLECTION} WHERE doc_id = ?", (doc_id,)
                    )
                else:
                    await db.execute(_INSERT_SQL, _song_params(doc_id, data or {}))
            await db.commit()
        except Exception:
            await db.rollback()
            logger.error(
                "❌ Batch of {} operation(s) rolled back", len(batch.operations)
            )
            raise

    logger.success(
        "✅ Batch committed: {} delete(s), {} write(s)",
        batch.delete_count,
        batch.set_count,
    )


async def move_song(old_id: str, new_id: str, data: Dict[str, Any]) -> None:
    """
    Move a song document from *old_id* to *new_id* in one transaction.

    Raises SongConflictError (and changes nothing) if *new_id* is occupied.
    """
    async with get_async_connection() as db:
        try:
            await db.execute("BEGIN IMMEDIATE")
            cursor = await db.execute(
                f"SELECT 1 FROM {SONGS_COLLECTION} WHERE doc_id = ?", (new_id,)
            )
            if await cursor.fetchone() is not None:
                raise SongConflictError(
                    f"Song #{new_id} already exists. Choose another number."
                )
            await db.execute(_INSERT_SQL, _song_params(new_id, data))
            await db.execute(
                f"DELETE FROM {SONGS_COLLECTION} WHERE doc_id = ?", (old_id,)
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    logger.info("🔀 Song #{} moved to #{}", old_id, new_id)
