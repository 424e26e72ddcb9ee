"""In-memory dispatcher for dry runs and test assertions."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Collection, List, Optional

from license_renewals.domain.models import License, Tier

logger = logging.getLogger(__name__)


@dataclass
class SentReminder:
    """Record of a reminder handed to the dispatcher."""

    license_id: str
    recipient: str
    tier: Tier
    message: str
    delivered: bool


class RecordingDispatcher:
    """Dispatch port that stores reminders in a list instead of sending them.

    Args:
        fail_for: License ids whose sends report failure
        raise_for: License ids whose sends raise RuntimeError
        delay: Seconds to await before completing each send
    """

    def __init__(
        self,
        fail_for: Optional[Collection[str]] = None,
        raise_for: Optional[Collection[str]] = None,
        delay: float = 0.0,
    ) -> None:
        self.sent: List[SentReminder] = []
        self.fail_for = set(fail_for or ())
        self.raise_for = set(raise_for or ())
        self.delay = delay

    async def send(self, license: License, message: str, tier: Tier) -> bool:
        if self.delay:
            await asyncio.sleep(self.delay)
        if license.id in self.raise_for:
            raise RuntimeError(f"dispatch failed for {license.id}")

        delivered = license.id not in self.fail_for
        self.sent.append(
            SentReminder(
                license_id=license.id,
                recipient=license.service_owner_email or "",
                tier=tier,
                message=message,
                delivered=delivered,
            )
        )
        logger.info(f"[recorded] {tier.value} reminder for {license.id}: {message}")
        return delivered

    def sent_for(self, tier: Tier) -> List[SentReminder]:
        """Reminders recorded for one tier."""
        return [record for record in self.sent if record.tier == tier]

    def assert_sent(self, license_id: str, tier: Tier, count: int = 1) -> None:
        """Helper for test assertions."""
        matches = [
            record
            for record in self.sent
            if record.license_id == license_id and record.tier == tier
        ]
        if len(matches) != count:
            raise AssertionError(
                f"Expected {count} {tier.value} reminders for {license_id}, "
                f"but found {len(matches)}."
            )

    def clear(self) -> None:
        """Clear all recorded reminders."""
        self.sent.clear()
