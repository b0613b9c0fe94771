"""
UTC timestamp formatting for the publish path.

All timestamps that cross component boundaries on the publish path are
ISO 8601 strings in UTC with millisecond precision and a ``Z`` suffix,
e.g. ``2024-01-01T15:00:00.000Z``.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime

from post_scheduler.core.errors import InvalidDateTimeError

UTC_ISO_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def format_utc_iso(dt: datetime) -> str:
    """Format a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` (naive treated as UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    utc_dt = dt.astimezone(UTC)
    return utc_dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc_dt.microsecond // 1000:03d}Z"


def parse_iso(value: str) -> datetime:
    """
    Parse an ISO 8601 string.

    Accepts a trailing ``Z``, an explicit offset, or no zone at all (the
    result is then naive). Raises InvalidDateTimeError for anything else.
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidDateTimeError(value)
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError as e:
        raise InvalidDateTimeError(value) from e


def parse_utc_iso(value: str) -> datetime:
    """Parse an ISO string as a UTC-aware datetime (naive input is UTC)."""
    dt = parse_iso(value)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def is_utc_iso(value: str) -> bool:
    """True if value is in the canonical ``...mmmZ`` form."""
    return bool(UTC_ISO_PATTERN.match(value))
