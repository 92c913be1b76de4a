"""
TSA Songbook Editor - Song Catalog Helpers

Client-side style filtering of an already-loaded song list plus the small
counters shown next to the list and the lyrics editor.
"""

from typing import Any, Dict, List, Optional


def filter_songs(
    songs: List[Dict[str, Any]], search: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Keep songs whose Marathi title or category contains *search*
    (case-insensitive) or whose hymn number contains it as a substring.
    """
    if not search:
        return list(songs)

    needle = search.lower()
    return [
        s
        for s in songs
        if needle in (s.get("titleMarathi") or "").lower()
        or search in str(s.get("hymnNumber", ""))
        or needle in (s.get("category") or "").lower()
    ]


def catalog_stats(
    songs: List[Dict[str, Any]], filtered: List[Dict[str, Any]]
) -> Dict[str, int]:
    return {
        "total": len(songs),
        "verified": sum(1 for s in songs if s.get("verified")),
        "showing": len(filtered),
    }


def lyrics_stats(lyrics: str) -> Dict[str, int]:
    """Character and word counts for the lyrics editor."""
    stripped = lyrics.strip()
    return {
        "characters": len(lyrics),
        "words": len(stripped.split()) if stripped else 0,
    }
