"""Day Boundaries - Pure functions for reference-timezone calendar days.

Every event is bucketed into the calendar day of one fixed reference zone, so
an evening drink in New York never lands on the next UTC day.
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "America/New_York"


def reference_zone(name: str | None = None) -> ZoneInfo:
    """Resolve the reference timezone (defaults to America/New_York)."""
    return ZoneInfo(name or DEFAULT_TIMEZONE)


def local_date(ts: datetime, tz: ZoneInfo) -> str:
    """Calendar date (YYYY-MM-DD) of a timestamp in the reference zone."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(tz).date().isoformat()


def local_hour(ts: datetime, tz: ZoneInfo) -> int:
    """Hour of day (0-23) of a timestamp in the reference zone."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(tz).hour


def day_bounds(day: str, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """UTC instants bounding a reference-zone day as [start, end).

    Args:
        day: Date in YYYY-MM-DD format
        tz: Reference timezone

    Returns:
        Tuple of (start, end) as aware UTC datetimes
    """
    d = date.fromisoformat(day)
    start = datetime.combine(d, time.min, tzinfo=tz)
    end = datetime.combine(d + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def today(tz: ZoneInfo, now: datetime | None = None) -> str:
    """Today's date in the reference zone."""
    return local_date(now or datetime.now(timezone.utc), tz)


def is_valid_day(day: str) -> bool:
    try:
        date.fromisoformat(day)
    except (TypeError, ValueError):
        return False
    return len(day) == 10
