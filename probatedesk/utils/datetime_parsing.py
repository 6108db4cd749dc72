"""Datetime helpers for stored and client-supplied timestamps."""

from __future__ import annotations

from datetime import datetime, timezone


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_optional_datetime(raw_value: str | None) -> datetime | None:
    """
    Parse an ISO 8601 date or datetime string into an aware UTC datetime.

    Returns None for empty or unparseable input so callers can fall back.
    Date-only values are taken as midnight UTC.
    """
    if not raw_value:
        return None
    value = raw_value.strip()
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return ensure_utc(dt)
