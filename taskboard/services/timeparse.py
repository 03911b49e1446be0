"""Service for parsing form-style date/time input into UTC instants."""

from __future__ import annotations

from datetime import datetime, timezone

import dateparser

_SETTINGS = {
    "TIMEZONE": "UTC",
    "TO_TIMEZONE": "UTC",
    "RETURN_AS_TIMEZONE_AWARE": True,
}


class InvalidInstant(ValueError):
    """Raised when a date/time value cannot be understood."""


def to_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def combine_date_time(date_part: str, time_part: str | None) -> str:
    """Join separate date and time inputs the way the task form submits them."""
    if not time_part:
        return date_part
    return f"{date_part}T{time_part}"


def parse_instant(raw: str | datetime | None, label: str = "date") -> datetime:
    """Parse *raw* into an aware UTC datetime.

    ISO strings (``2024-01-10T09:00``) are read directly; anything else goes
    through ``dateparser`` (``Jan 10 2024 9am``). Raises
    ``InvalidInstant`` when nothing usable is found.
    """
    if isinstance(raw, datetime):
        return to_utc(raw)
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidInstant(f'Invalid "{label}" date or time.')

    text = raw.strip()
    try:
        return to_utc(datetime.fromisoformat(text))
    except ValueError:
        pass

    result = dateparser.parse(text, settings=_SETTINGS)
    if result is None:
        raise InvalidInstant(f'Invalid "{label}" date or time.')
    return to_utc(result)
