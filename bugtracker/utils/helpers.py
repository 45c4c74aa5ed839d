"""Shared time helpers.

utcnow:       timezone-aware "now", the default clock for services
as_utc:       normalise naive datetimes (SQLite drops tzinfo) to UTC
whole_hours:  truncated hour difference, the unit used by SLA and
              resolution-time reporting
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value):
    """Return *value* as an aware UTC datetime.

    Naive datetimes are assumed to already be UTC (that is what the models
    write).  ``None`` passes through.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def whole_hours(start, end) -> int:
    """Number of complete hours between *start* and *end* (truncated toward zero)."""
    delta = as_utc(end) - as_utc(start)
    return int(delta.total_seconds() / 3600)
