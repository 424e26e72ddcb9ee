"""Renewal window matching for reminder tiers."""

from .windows import (
    TIER_OFFSETS,
    TIER_ORDER,
    TierWindow,
    find_in_range,
    has_recipient,
    match_tier,
    tier_window,
)

__all__ = [
    "TIER_OFFSETS",
    "TIER_ORDER",
    "TierWindow",
    "tier_window",
    "find_in_range",
    "match_tier",
    "has_recipient",
]
