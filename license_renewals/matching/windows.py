"""Notification window matching for renewal reminder tiers.

Each tier is a single-day-boundary window positioned at its lead time, not
a cumulative "renews within N days" range: a license renewing in 15 days
matches no tier, and a license matches at most one tier per check.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Tuple

from license_renewals.domain.models import License, Tier
from license_renewals.utils.timestamps import (
    add_days,
    end_of_day,
    start_of_day,
    to_reference_zone,
)

# Tier -> (range start offset, range end offset) in days from today
TIER_OFFSETS: Dict[Tier, Tuple[int, int]] = {
    Tier.ONE_DAY: (0, 1),
    Tier.SEVEN_DAYS: (6, 7),
    Tier.THIRTY_DAYS: (29, 30),
}

# Order in which tiers are evaluated during a check cycle
TIER_ORDER: Tuple[Tier, ...] = (Tier.ONE_DAY, Tier.SEVEN_DAYS, Tier.THIRTY_DAYS)


@dataclass(frozen=True)
class TierWindow:
    """Date range for one tier, inclusive on both calendar days."""

    tier: Tier
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        """Check whether ``moment`` falls within the window's calendar days."""
        return _day_range(self.start, self.end).contains(moment)


def tier_window(tier: Tier, now: datetime) -> TierWindow:
    """Compute the date range of ``tier`` for a check running at ``now``.

    Args:
        tier: Reminder tier
        now: Instant the check executes

    Returns:
        TierWindow whose start and end are ``now`` shifted by the tier offsets
    """
    start_offset, end_offset = TIER_OFFSETS[Tier(tier)]
    return TierWindow(
        tier=Tier(tier),
        start=add_days(now, start_offset),
        end=add_days(now, end_offset),
    )


def find_in_range(
    licenses: Iterable[License], start_date: datetime, end_date: datetime
) -> List[License]:
    """Select licenses renewing between two calendar days, inclusive.

    A license matches when
    ``start_of_day(start_date) <= renewal_date <= end_of_day(end_date)``.
    Renewal dates are expressed in the timezone of ``start_date`` first, so
    day boundaries follow the reference timezone.

    Args:
        licenses: License collection
        start_date: First calendar day of the range
        end_date: Last calendar day of the range

    Returns:
        Matching licenses in input order
    """
    day_range = _day_range(start_date, end_date)
    return [license for license in licenses if day_range.contains(license.renewal_date)]


def has_recipient(license: License) -> bool:
    """Whether a license has a non-empty service owner email."""
    return license.has_recipient


def match_tier(licenses: Iterable[License], tier: Tier, now: datetime) -> List[License]:
    """Find licenses in the window of ``tier`` at ``now``, recipient or not."""
    window = tier_window(tier, now)
    return find_in_range(licenses, window.start, window.end)


@dataclass(frozen=True)
class _DayRange:
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= to_reference_zone(moment, self.start) <= self.end


def _day_range(start_date: datetime, end_date: datetime) -> _DayRange:
    # Naive inputs are treated as UTC
    reference = to_reference_zone(start_date, start_date)
    return _DayRange(
        start=start_of_day(reference),
        end=end_of_day(to_reference_zone(end_date, reference)),
    )
