"""
TSA Songbook Editor - Configuration
All settings loaded from environment variables with sensible defaults.

The songbook lives in a single SQLite database file.  Each row of the
``songs`` table is one document keyed by its hymn number, so the store
behaves like a small document collection with transactional batches.
"""

import os
import tempfile
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
_ = load_dotenv()

# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------
APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
APP_PORT = int(os.getenv("APP_PORT", "8000"))
APP_ENV = os.getenv("APP_ENV", "development")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
DEBUG = os.getenv("DEBUG", "true").lower() == "true"

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = BASE_DIR.parent

DATA_DIR = Path(os.getenv("DATA_DIR", os.path.join(tempfile.gettempdir(), "songbook")))
DB_PATH = Path(os.getenv("DB_PATH", os.path.join(DATA_DIR, "songbook.db")))

# Name of the table holding the song documents
SONGS_COLLECTION = os.getenv("SONGS_COLLECTION", "songs")

# ---------------------------------------------------------------------------
# Logging — stdout only
# ---------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------
EXPORT_FILENAME = os.getenv("EXPORT_FILENAME", "tsa_songbook.json")

# Literal phrase the operator must type before a bulk replace runs
IMPORT_CONFIRM_PHRASE = os.getenv("IMPORT_CONFIRM_PHRASE", "IMPORT")

# An empty import array would wipe the whole collection; refused unless enabled
ALLOW_EMPTY_IMPORT = os.getenv("ALLOW_EMPTY_IMPORT", "false").lower() == "true"

MAX_IMPORT_SIZE_MB = int(os.getenv("MAX_IMPORT_SIZE_MB", "20"))
MAX_IMPORT_SIZE_BYTES = MAX_IMPORT_SIZE_MB * 1024 * 1024

ALLOWED_IMPORT_EXTENSIONS = {".json"}

# ---------------------------------------------------------------------------
# Songs
# ---------------------------------------------------------------------------
DEFAULT_CATEGORY = os.getenv("DEFAULT_CATEGORY", "Salvation")

# Fields of the external import format that must be present and non-empty
REQUIRED_IMPORT_FIELDS = ["id", "title_marathi", "category", "lyrics"]


def ensure_directories() -> None:
    """Create the local directory holding the database file."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
