#!/usr/bin/env python3
"""
validate_songbook.py — Check songbook JSON files before importing them

Runs the same validation the import page uses, without touching any
database, and prints the summary an operator would see.

Usage:
    python scripts/validate_songbook.py tsa_songbook.json
    python scripts/validate_songbook.py --json a.json b.json

Flags:
    --json      Output results as JSON
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

from songbook.services.import_validator import ValidationResult, check_import_text


def validate_file(path: Path) -> ValidationResult:
    """Validate one file on disk."""
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        return ValidationResult(error=f"Cannot read file: {e}")
    return check_import_text(text)


def format_result(path: Path, result: ValidationResult) -> str:
    if not result.is_valid:
        return f"❌ INVALID: {path}\n  {result.error}"

    summary = result.summary
    lines = [
        f"✅ VALID: {path}",
        f"  {summary.totalSongs} song(s)",
        f"  {len(summary.categories)} categorie(s): {', '.join(summary.categories)}",
    ]
    if summary.missingEnglishTitles:
        lines.append(f"  ⚠️ {summary.missingEnglishTitles} song(s) without an English title")
    return "\n".join(lines)


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Validate songbook JSON import files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("path", nargs="+", help="Songbook JSON file(s) to validate")
    parser.add_argument("--json", action="store_true", help="Output results as JSON")

    args = parser.parse_args(argv)
    results: List[tuple[Path, ValidationResult]] = [
        (Path(p), validate_file(Path(p))) for p in args.path
    ]

    if args.json:
        output: List[Dict[str, Any]] = [
            {"path": str(p), **r.to_dict()} for p, r in results
        ]
        print(json.dumps(output, indent=2, ensure_ascii=False))
    else:
        for path, result in results:
            print(format_result(path, result))

    # Non-zero if any file would be rejected by the import
    if any(not r.is_valid for _, r in results):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
