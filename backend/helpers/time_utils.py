"""
Time helpers shared by the analytics services.

SQLite returns naive datetimes, so values read back from storage go through
``ensure_utc`` before they are compared with clock readings.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def ensure_utc(dt: datetime) -> datetime:
    """
    Return ``dt`` as a timezone-aware UTC datetime.

    Naive values are assumed to already be in UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime(value: object) -> Optional[datetime]:
    """Parse a stored datetime or ISO 8601 string; ``None`` if not a timestamp."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        try:
            return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def window_start(now: datetime, minutes: int) -> datetime:
    """Start of a trailing window of ``minutes`` ending at ``now``."""
    return ensure_utc(now) - timedelta(minutes=minutes)


def start_of_day(now: datetime) -> datetime:
    """Midnight UTC of the day containing ``now``."""
    return ensure_utc(now).replace(hour=0, minute=0, second=0, microsecond=0)


def format_iso8601(dt: datetime) -> str:
    """
    Format a datetime as ISO 8601 string.

    Args:
        dt: The datetime to format

    Returns:
        ISO 8601 formatted string (e.g., "2024-01-15T10:30:00Z")
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")
