"""
TSA Songbook Editor - Import Validation Service

Checks an uploaded songbook file before anything touches the database.
The file must be a JSON array of flat song records::

    [{"id": "105", "title_marathi": "...", "title_english": "",
      "category": "Salvation", "eng_ref": "", "tune_ref": "", "lyrics": "..."}]

``id``, ``title_marathi``, ``category`` and ``lyrics`` are required and must
be non-empty; everything else is optional.

Key entry points:
- ``validate_import_text()`` — raise on bad input, return an ImportSummary
- ``check_import_text()``    — never raises, returns a ValidationResult
"""

import json
from typing import Any, Dict, List, Optional

from songbook.config import REQUIRED_IMPORT_FIELDS
from songbook.errors import ImportParseError, ImportValidationError
from songbook.models import ImportSummary

NOT_AN_ARRAY = "Root JSON must be an array."
MISSING_FIELDS = "One or more songs are missing required fields."


class ValidationResult:
    """Outcome of validating one import file."""

    def __init__(
        self,
        summary: Optional[ImportSummary] = None,
        error: Optional[str] = None,
    ):
        self.summary = summary
        self.error = error

    @property
    def is_valid(self) -> bool:
        return self.error is None and self.summary is not None

    def to_dict(self) -> Dict[str, Any]:
        if not self.is_valid:
            return {"valid": False, "error": self.error}
        return {"valid": True, "summary": self.summary.model_dump()}


def parse_import_text(text: str) -> List[Any]:
    """Parse *text* and return the top-level array, raising on bad input."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportParseError(str(e))

    if not isinstance(data, list):
        raise ImportValidationError(NOT_AN_ARRAY)
    return data


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _has_required_fields(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    return all(item.get(field) for field in REQUIRED_IMPORT_FIELDS)


def summarize_records(records: List[Any]) -> ImportSummary:
    """Validate each record and build the summary shown to the operator."""
    categories: Dict[str, None] = {}
    missing_english = 0

    for item in records:
        if not _has_required_fields(item):
            raise ImportValidationError(MISSING_FIELDS)

        categories.setdefault(str(item["category"]), None)

        if _is_blank(item.get("title_english")):
            missing_english += 1

    return ImportSummary(
        totalSongs=len(records),
        categories=list(categories),
        missingEnglishTitles=missing_english,
    )


def validate_import_text(text: str) -> ImportSummary:
    """
    Validate raw import text.

    Raises ImportParseError for malformed JSON (carrying the parser's
    message) and ImportValidationError for a non-array root or a record
    missing a required field.  No partial summary is ever returned.
    """
    return summarize_records(parse_import_text(text))


def check_import_text(text: str) -> ValidationResult:
    """Non-raising variant of validate_import_text() for the API."""
    try:
        return ValidationResult(summary=validate_import_text(text))
    except (ImportParseError, ImportValidationError) as e:
        return ValidationResult(error=e.message)
