"""Utility functions for time handling and calendar arithmetic."""

from .timestamps import (
    Clock,
    add_days,
    add_months,
    date_key,
    days_between,
    end_of_day,
    ensure_utc,
    format_timestamp,
    make_clock,
    parse_iso_datetime,
    resolve_timezone,
    start_of_day,
    to_reference_zone,
    utc_now,
)

__all__ = [
    "Clock",
    "utc_now",
    "make_clock",
    "resolve_timezone",
    "ensure_utc",
    "to_reference_zone",
    "start_of_day",
    "end_of_day",
    "add_days",
    "add_months",
    "date_key",
    "days_between",
    "format_timestamp",
    "parse_iso_datetime",
]
