"""
TSA Songbook Editor - Songbook Export

Produces the full songbook in the flat JSON format consumed by the
Android app (and accepted back by the bulk import).
"""

import json
from typing import Dict, List

from loguru import logger

from songbook import database
from songbook.models import to_export_record


async def export_songs() -> List[Dict[str, str]]:
    """Return every song, ordered by hymn number, in the external schema."""
    songs = await database.get_all_songs()
    return [to_export_record(song) for song in songs]


async def export_json() -> str:
    """Serialize the whole songbook to indented JSON text."""
    records = await export_songs()
    logger.info("📤 Exporting {} song(s)", len(records))
    return json.dumps(records, indent=2, ensure_ascii=False)
