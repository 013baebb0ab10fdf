"""Helpers for the pipe-delimited record lines used by the data files."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

FIELD_SEPARATOR = "|"
NULL_DATE = "NULL"


def split_fields(line: str, expected: int) -> List[str]:
    """Split a record line, raising ValueError when the field count is wrong."""
    parts = line.rstrip("\r\n").split(FIELD_SEPARATOR)
    if len(parts) != expected:
        raise ValueError(f"expected {expected} fields, got {len(parts)}")
    return parts


def join_fields(*fields: object) -> str:
    return FIELD_SEPARATOR.join(str(f) for f in fields)


def format_date(value: Optional[date]) -> str:
    """yyyy-MM-dd, or the literal NULL for a missing date."""
    if value is None:
        return NULL_DATE
    return value.strftime("%Y-%m-%d")


def parse_date(raw: str) -> Optional[date]:
    raw = raw.strip()
    if raw == NULL_DATE:
        return None
    return date.fromisoformat(raw)


def days_between(start: date, end: date) -> int:
    """Whole calendar days from start to end (negative if end is earlier)."""
    return (end - start).days
