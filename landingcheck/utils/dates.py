"""Date helpers shared by the EOD engine, licence index and landing query.

All calendar dates are exchanged as ``YYYY-MM-DD`` strings; timestamps are
treated as UTC when they carry no offset.
"""
from __future__ import annotations

import re
from datetime import date, datetime, timezone

_CALENDAR_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_calendar_date(value: object) -> bool:
    """Return True if *value* is a strict ``YYYY-MM-DD`` string naming a real day."""
    if not isinstance(value, str) or not _CALENDAR_DATE_RE.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def to_utc_datetime(value: str | date | datetime) -> datetime:
    """Parse an ISO string, date or datetime into an aware UTC datetime.

    Raises:
        ValueError: if *value* cannot be interpreted as a date.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Unsupported date value: {value!r}")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_calendar_date(value: str | date | datetime) -> date:
    """Return the UTC calendar day of *value*."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    return to_utc_datetime(value).date()


def format_calendar_date(value: date | datetime) -> str:
    return value.strftime("%Y-%m-%d")
