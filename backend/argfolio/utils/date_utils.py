# backend/argfolio/utils/date_utils.py
"""
Date utility functions for Argfolio.

Ledger timestamps are timezone-aware UTC datetimes. SQLite drops tzinfo on
the way back, and metadata blocks carry ISO strings, so everything that
compares timestamps goes through these helpers first.

Usage:
    from argfolio.utils.date_utils import ensure_utc, parse_timestamp

    start = parse_timestamp(movement.meta.get("start_date")) or movement.timestamp
"""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive datetimes are assumed to already be in UTC (that is how the
    ledger stores them).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: object) -> datetime | None:
    """
    Parse a timestamp from a datetime, date or ISO-8601 string.

    Returns:
        Aware UTC datetime, or None if the value is missing or unparseable
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        # fromisoformat() only accepts a trailing "Z" from Python 3.11 on
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def days_between(start: date, end: date) -> int:
    """Whole calendar days from start to end (negative if end is earlier)."""
    return (end - start).days
