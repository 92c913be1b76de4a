"""
TSA Songbook Editor - Bulk Import (full songbook replace)

Replaces the entire songs collection with the contents of an uploaded
file.  The sequence is:

1. Re-validate the exact text being imported
2. Check the operator's double confirmation (checkbox + typed phrase)
3. Map every record to the internal schema (nothing written yet)
4. Read every existing key
5. Commit one batch: delete every existing song, then write every new one

Step 5 is a single transaction, so a failure anywhere leaves the songbook
exactly as it was.
"""

from typing import Any, Dict, List

from loguru import logger

from songbook import database
from songbook.config import ALLOW_EMPTY_IMPORT, IMPORT_CONFIRM_PHRASE
from songbook.errors import (
    BulkImportError,
    ConfirmationRequiredError,
    ImportValidationError,
    SongValidationError,
)
from songbook.models import from_import_record, now_timestamp
from songbook.services.import_validator import parse_import_text, summarize_records

IMPORT_FAILED = "Import failed. No data was changed."


def check_confirmation(confirmed: bool, confirm_text: str) -> None:
    """Raise unless the operator ticked the box and typed the exact phrase."""
    if not confirmed:
        raise ConfirmationRequiredError(
            "Please confirm that all existing songs will be deleted."
        )
    if confirm_text != IMPORT_CONFIRM_PHRASE:
        raise ConfirmationRequiredError(
            f"Type {IMPORT_CONFIRM_PHRASE} exactly to confirm the import."
        )


def build_documents(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Map validated import records to internal documents, all sharing one timestamp.

    Records whose ids normalize to the same key collapse into one document;
    the later record wins.
    """
    timestamp = now_timestamp()
    documents: Dict[str, Dict[str, Any]] = {}

    for index, raw in enumerate(records):
        try:
            doc = from_import_record(raw, timestamp)
        except SongValidationError as e:
            raise ImportValidationError(f"Song at position {index + 1}: {e.message}")

        if doc["id"] in documents:
            logger.warning(
                "⚠️ Duplicate id {} at position {}: the later record wins",
                doc["id"],
                index + 1,
            )
        documents[doc["id"]] = doc

    return list(documents.values())


async def run_bulk_import(
    text: str,
    confirmed: bool,
    confirm_text: str,
) -> Dict[str, Any]:
    """
    Replace every song with the records in *text*.

    Returns ``{"imported", "deleted", "message"}`` on success.  Validation and
    confirmation problems raise before the store is read; a store failure
    raises BulkImportError and guarantees that no data changed.
    """
    records = parse_import_text(text)
    summarize_records(records)
    check_confirmation(confirmed, confirm_text)

    if not records and not ALLOW_EMPTY_IMPORT:
        raise ImportValidationError(
            "Import file contains no songs. Refusing to empty the songbook."
        )

    documents = build_documents(records)

    try:
        existing_keys = await database.get_all_keys()

        batch = database.WriteBatch()
        for key in existing_keys:
            batch.delete(key)
        for doc in documents:
            batch.set(doc["id"], doc)

        await database.commit_batch(batch)
    except Exception as e:
        logger.exception(f"❌ Bulk import failed: {e}")
        raise BulkImportError(IMPORT_FAILED) from e

    inserted = len(documents)
    logger.success(
        "📥 Songbook replaced: {} song(s) removed, {} imported",
        len(existing_keys),
        inserted,
    )
    return {
        "imported": inserted,
        "deleted": len(existing_keys),
        "message": f"Successfully imported {inserted} songs",
    }
