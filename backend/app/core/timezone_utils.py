"""
Timezone utilities for the CoachLane platform.

Timestamps are stored in UTC. Booking requests carry the athlete's IANA
timezone name, which is only used when rendering times for people.
"""

from datetime import datetime, timezone

import pytz

DISPLAY_FORMAT = "%a, %b %d, %Y at %I:%M %p %Z"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    SQLite hands back naive values for ``DateTime(timezone=True)`` columns;
    those are treated as UTC.
    """
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def resolve_timezone(tz_name: str | None, fallback: str = "UTC") -> pytz.BaseTzInfo:
    try:
        return pytz.timezone(tz_name or fallback)
    except pytz.UnknownTimeZoneError:
        return pytz.timezone(fallback)


def format_for_timezone(dt: datetime, tz_name: str | None) -> str:
    """Render ``dt`` in the named timezone, falling back to UTC for unknown names."""
    local = ensure_utc(dt).astimezone(resolve_timezone(tz_name))
    return local.strftime(DISPLAY_FORMAT)


def hours_between(start: datetime, end: datetime) -> float:
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 3600
