"""
Lenient date parsing for values found in meta tags and JSON-LD.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from dateutil import parser as dateutil_parser

_MS_THRESHOLD = 1_000_000_000_000
_SECONDS_THRESHOLD = 1_000_000_000


def _from_epoch(value: int) -> Optional[datetime]:
    try:
        if value >= _MS_THRESHOLD:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        if value >= _SECONDS_THRESHOLD:
            return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return None


def to_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse epoch numbers (13+ digits as milliseconds, 10 digits as seconds)
    and ISO-8601 strings. Returns an aware UTC datetime or None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, int):
        return _from_epoch(value)
    if isinstance(value, float) and value.is_integer():
        return _from_epoch(int(value))
    if not isinstance(value, str):
        return None

    raw = value.strip()
    if not raw:
        return None

    if raw.isdigit():
        if len(raw) >= 13:
            return _from_epoch(int(raw)) if int(raw) >= _MS_THRESHOLD else None
        if len(raw) == 10:
            return _from_epoch(int(raw))

    try:
        return to_utc(dateutil_parser.isoparse(raw))
    except (ValueError, OverflowError):
        return None
