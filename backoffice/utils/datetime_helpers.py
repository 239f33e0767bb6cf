"""Datetime utility functions for timezone handling."""
from datetime import datetime, timedelta, UTC
from typing import Optional


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is timezone-aware in UTC.

    SQLite hands back naive datetimes; treat them as UTC.

    Example:
        >>> ensure_utc(datetime(2025, 1, 1, 12, 0, 0)).tzinfo == UTC
        True
        >>> ensure_utc(None) is None
        True
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


DATE_RANGES = ("all", "today", "yesterday", "monthly", "yearly")


def date_range_bounds(
    date_range: str, now: Optional[datetime] = None
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Return ``(start, end)`` UTC bounds for a dashboard range filter.

    ``end`` is exclusive. ``"all"`` returns ``(None, None)``.

    Raises:
        ValueError: If ``date_range`` is not one of DATE_RANGES.
    """
    now = ensure_utc(now) or datetime.now(UTC)
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if date_range == "all":
        return None, None
    if date_range == "today":
        return start_of_day, None
    if date_range == "yesterday":
        return start_of_day - timedelta(days=1), start_of_day
    if date_range == "monthly":
        return start_of_day.replace(day=1), None
    if date_range == "yearly":
        return start_of_day.replace(month=1, day=1), None
    raise ValueError(f"Unknown date range: {date_range}")
