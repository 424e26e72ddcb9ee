"""Timestamp utilities for calendar-day and calendar-month arithmetic.

This module provides the date helpers shared by the status classifier,
the notification window matcher, and the scheduler:
- Getting the current time in UTC or a configured timezone
- Converting timezone-naive datetimes to timezone-aware UTC
- Start/end of a calendar day
- Day and calendar-month offsets
- Date-only keys used for the daily watermark
"""

import calendar
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC time with timezone info
    """
    return datetime.now(timezone.utc)


def resolve_timezone(name: str) -> tzinfo:
    """Resolve an IANA timezone name.

    Args:
        name: Timezone name such as "UTC" or "Europe/Amsterdam"

    Returns:
        tzinfo instance

    Raises:
        ValueError: If the timezone name is unknown
    """
    if name.strip().upper() in ("UTC", "Z"):
        return timezone.utc
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: '{name}'") from e


def make_clock(tz_name: str = "UTC") -> Clock:
    """Build a clock returning the current time in the given timezone.

    Example:
        >>> clock = make_clock("UTC")
        >>> clock().tzinfo is not None
        True
    """
    tz = resolve_timezone(tz_name)

    def clock() -> datetime:
        return datetime.now(tz)

    return clock


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    If the datetime is timezone-naive, it's treated as UTC.
    If the datetime has a different timezone, it's converted to UTC.

    Args:
        dt: Datetime to convert (can be None)

    Returns:
        Timezone-aware datetime in UTC, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def to_reference_zone(dt: datetime, reference: datetime) -> datetime:
    """Express ``dt`` in the timezone of ``reference``.

    Naive values on either side are treated as UTC so comparisons never
    mix naive and aware datetimes.
    """
    dt = ensure_utc(dt)
    tz = reference.tzinfo or timezone.utc
    return dt.astimezone(tz)


def start_of_day(dt: datetime) -> datetime:
    """Return midnight at the start of the calendar day of ``dt``."""
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(dt: datetime) -> datetime:
    """Return the last representable instant of the calendar day of ``dt``."""
    return dt.replace(hour=23, minute=59, second=59, microsecond=999999)


def add_days(dt: datetime, days: int) -> datetime:
    """Shift ``dt`` by whole calendar days, keeping the wall-clock time."""
    return dt + timedelta(days=days)


def add_months(dt: datetime, months: int) -> datetime:
    """Shift ``dt`` by calendar months.

    The day of month is kept and clamped to the last day of the target
    month, so Jan 31 + 1 month is Feb 28 (Feb 29 in leap years). Time of
    day and tzinfo are preserved.

    Args:
        dt: Datetime to shift
        months: Number of months (may be negative)

    Returns:
        Shifted datetime

    Example:
        >>> add_months(datetime(2025, 1, 31), 1)
        datetime.datetime(2025, 2, 28, 0, 0)
    """
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return dt.replace(year=year, month=month, day=min(dt.day, last_day))


def date_key(dt: datetime) -> str:
    """Return the date-only key (YYYY-MM-DD) for the calendar day of ``dt``.

    Example:
        >>> date_key(datetime(2025, 11, 4, 23, 59))
        '2025-11-04'
    """
    return dt.date().isoformat()


def days_between(start: datetime, end: datetime) -> int:
    """Count calendar days from the day of ``start`` to the day of ``end``.

    Both values are compared in the timezone of ``start``.
    """
    end_local = to_reference_zone(end, start)
    return (end_local.date() - start.date()).days


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as an ISO 8601 UTC string with 'Z' suffix.

    Example:
        >>> format_timestamp(datetime(2025, 11, 4, 12, 0, 0, tzinfo=timezone.utc))
        '2025-11-04T12:00:00Z'
    """
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return ""
    return dt_utc.strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_iso_datetime(iso_string: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 datetime or date string to a UTC datetime.

    Supports "2025-11-04T12:00:00Z", "2025-11-04T12:00:00+00:00",
    "2025-11-04T12:00:00.000Z" and "2025-11-04".

    Returns:
        Timezone-aware datetime in UTC, or None if parsing fails
    """
    if not iso_string or not iso_string.strip():
        return None

    cleaned = iso_string.strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"

    try:
        return ensure_utc(datetime.fromisoformat(cleaned))
    except ValueError:
        return None
