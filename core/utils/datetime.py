"""Datetime utilities for common operations."""

from datetime import datetime, timedelta, timezone
from typing import Optional


def now() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to a naive datetime.

    Some drivers (SQLite) hand back naive values for timezone-aware columns.

    Args:
        dt: Datetime to normalize

    Returns:
        Timezone-aware datetime, or None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def add_seconds(dt: datetime, seconds: int) -> datetime:
    """
    Add seconds to a datetime.

    Args:
        dt: Datetime
        seconds: Number of seconds to add (can be negative)

    Returns:
        New datetime
    """
    return dt + timedelta(seconds=seconds)


def add_hours(dt: datetime, hours: int) -> datetime:
    """
    Add hours to a datetime.

    Args:
        dt: Datetime
        hours: Number of hours to add (can be negative)

    Returns:
        New datetime
    """
    return dt + timedelta(hours=hours)


def is_past(dt: datetime, reference: Optional[datetime] = None) -> bool:
    """
    Check if a datetime is in the past.

    Args:
        dt: Datetime to check
        reference: Point in time to compare against (defaults to now)

    Returns:
        True if in the past
    """
    return ensure_aware(dt) <= (reference or now())
