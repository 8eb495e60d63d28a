"""
UTC timestamp helpers (stdlib-only).

Tickets carry timestamps as strings in one canonical shape,
``YYYY-MM-DDTHH:MM:SS.mmmZ``. Fixed width, UTC and millisecond precision
mean lexical order equals temporal order, which the deduplication and
date-range filters rely on.

STDLIB ONLY - NO PYDANTIC.
"""

import time
from datetime import UTC, datetime


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def now_ms() -> float:
    """Milliseconds since the epoch (pending-change ordering key)."""
    return time.time() * 1000


def to_iso8601(dt: datetime) -> str:
    """Encode *dt* canonically; naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    dt = dt.astimezone(UTC)
    return (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"
        f"T{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}"
        f".{dt.microsecond // 1000:03d}Z"
    )


def utc_now_iso() -> str:
    return to_iso8601(utc_now())


def parse_instant(value: object) -> datetime | None:
    """Parse an ISO-8601 date or datetime string into an aware UTC datetime.

    Returns None for non-strings and anything that is not a valid calendar
    instant. Date-only strings and values without an offset are read as UTC.
    """
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    try:
        return parsed.astimezone(UTC)
    except OverflowError:
        return None


def add_years(dt: datetime, years: int) -> datetime:
    """Shift *dt* by calendar years; Feb 29 rolls forward to Mar 1."""
    try:
        return dt.replace(year=dt.year + years)
    except ValueError:
        return dt.replace(year=dt.year + years, month=3, day=1)


__all__ = [
    "utc_now",
    "now_ms",
    "to_iso8601",
    "utc_now_iso",
    "parse_instant",
    "add_years",
]
