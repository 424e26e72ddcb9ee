"""One check cycle: match licenses to reminder tiers and dispatch emails.

A cycle evaluates the three tiers against the same "now", renders the tier
template for every license that has a recipient, and awaits all dispatches
together. A failed or raising dispatch is recorded as a failed outcome and
never cancels its siblings.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from license_renewals.config.models import EmailSettings, NotificationSettings
from license_renewals.domain.models import License, Tier
from license_renewals.logging import get_logger
from license_renewals.logging.context import log_context
from license_renewals.matching.windows import TIER_ORDER, has_recipient, match_tier
from license_renewals.notifications.models import DispatchOutcome
from license_renewals.notifications.ports import EmailDispatchPort, FailureNotifier
from license_renewals.notifications.templates import render
from license_renewals.utils.timestamps import utc_now

logger = get_logger(__name__, component="cycle")

# Trigger labels
TRIGGER_SCHEDULED = "scheduled"
TRIGGER_MANUAL = "manual"
TRIGGER_STARTUP = "startup"

# Cycle statuses
STATUS_COMPLETED = "completed"
STATUS_DISABLED = "disabled"
STATUS_NOT_CONFIGURED = "not_configured"


@dataclass
class TierReport:
    """Counts for one tier within a cycle."""

    tier: Tier
    matched: int = 0
    skipped_no_recipient: int = 0
    sent: int = 0
    failed: int = 0


@dataclass
class CycleReport:
    """Summary of one check cycle.

    Attributes:
        cycle_id: Short identifier used in log context
        status: "completed", "disabled" or "not_configured"
        trigger: "scheduled", "manual" or "startup"
        started_at: When the cycle began
        finished_at: When every dispatch had settled
        tiers: Per-tier counts, in evaluation order (empty unless completed)
        outcomes: One entry per dispatch attempt
    """

    cycle_id: str
    status: str
    trigger: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    tiers: List[TierReport] = field(default_factory=list)
    outcomes: List[DispatchOutcome] = field(default_factory=list)

    @property
    def total_matched(self) -> int:
        return sum(tier.matched for tier in self.tiers)

    @property
    def total_sent(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.is_success())

    @property
    def total_failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.is_success())

    def failures(self) -> List[DispatchOutcome]:
        """Outcomes of dispatches that did not succeed."""
        return [outcome for outcome in self.outcomes if not outcome.is_success()]

    def tier_report(self, tier: Tier) -> Optional[TierReport]:
        for report in self.tiers:
            if report.tier == tier:
                return report
        return None


def log_failure_notice(outcome: DispatchOutcome) -> None:
    """Default failure notifier: log a warning carrying the notice text."""
    logger.warning(
        outcome.failure_notice(),
        extra={
            "event": "dispatch.failure_notice",
            "license_id": outcome.license_id,
            "tier": outcome.tier.value,
        },
    )


async def run_check_cycle(
    licenses: Iterable[License],
    dispatcher: EmailDispatchPort,
    email_settings: Optional[EmailSettings],
    notification_settings: Optional[NotificationSettings],
    now: Optional[datetime] = None,
    trigger: str = TRIGGER_MANUAL,
    failure_notifier: Optional[FailureNotifier] = None,
) -> CycleReport:
    """Run one check cycle and wait for every dispatch to settle.

    Scheduled and startup cycles also honor ``email_settings.automatic_sending``;
    manual cycles ignore it.

    Args:
        licenses: Licenses to evaluate
        dispatcher: Email dispatch port
        email_settings: Provider and sender settings (None counts as unconfigured)
        notification_settings: Master switch and tier templates
        now: Instant the cycle runs (defaults to the current UTC time)
        trigger: Why the cycle runs
        failure_notifier: Receives each failed outcome (logs a warning if None)

    Returns:
        CycleReport describing what was matched, sent and failed
    """
    now = now or utc_now()
    notify = failure_notifier or log_failure_notice
    report = CycleReport(
        cycle_id=uuid.uuid4().hex[:8], status=STATUS_COMPLETED, trigger=trigger, started_at=now
    )

    with log_context(cycle_id=report.cycle_id, trigger=trigger):
        if notification_settings is None or email_settings is None:
            return _finish_without_dispatch(report, STATUS_NOT_CONFIGURED, "No settings available")

        if not notification_settings.enabled:
            return _finish_without_dispatch(report, STATUS_DISABLED, "Notifications are disabled")

        if trigger != TRIGGER_MANUAL and not email_settings.automatic_sending:
            return _finish_without_dispatch(
                report, STATUS_DISABLED, "Automatic sending is disabled"
            )

        if not email_settings.is_configured():
            return _finish_without_dispatch(
                report,
                STATUS_NOT_CONFIGURED,
                "Email settings not configured "
                f"(missing: {', '.join(email_settings.missing_fields())})",
            )

        licenses = list(licenses)
        logger.info(
            f"Checking {len(licenses)} licenses for renewal reminders",
            extra={"event": "cycle.started", "license_count": len(licenses)},
        )

        jobs: List[Tuple[License, Tier, TierReport]] = []
        coroutines = []
        for tier in TIER_ORDER:
            tier_report = TierReport(tier=tier)
            report.tiers.append(tier_report)

            matched = match_tier(licenses, tier, now)
            tier_report.matched = len(matched)
            template = notification_settings.template_for(tier)

            for license in matched:
                if not has_recipient(license):
                    tier_report.skipped_no_recipient += 1
                    logger.debug(
                        f"Skipping '{license.name}': no service owner email",
                        extra={"event": "cycle.skipped_no_recipient", "license_id": license.id},
                    )
                    continue
                message = render(
                    template, license, notification_settings.date_format, tz=now.tzinfo
                )
                jobs.append((license, tier, tier_report))
                coroutines.append(_send(dispatcher, license, message, tier))

            logger.info(
                f"{tier.value}: {tier_report.matched} licenses matched",
                extra={
                    "event": "cycle.tier.matched",
                    "tier": tier.value,
                    "matched": tier_report.matched,
                    "skipped_no_recipient": tier_report.skipped_no_recipient,
                },
            )

        results = await asyncio.gather(*coroutines, return_exceptions=True)

        for (license, tier, tier_report), result in zip(jobs, results):
            outcome = _to_outcome(license, tier, result)
            report.outcomes.append(outcome)
            if outcome.is_success():
                tier_report.sent += 1
                continue
            tier_report.failed += 1
            try:
                notify(outcome)
            except Exception:
                logger.exception(
                    "Failure notifier raised",
                    extra={"event": "cycle.notifier_failed", "license_id": license.id},
                )

        report.finished_at = utc_now()
        logger.info(
            f"Check cycle completed: {report.total_sent} sent, {report.total_failed} failed"
            if jobs
            else "No reminders needed today",
            extra={
                "event": "cycle.completed",
                "matched": report.total_matched,
                "sent": report.total_sent,
                "failed": report.total_failed,
            },
        )
        return report


async def _send(
    dispatcher: EmailDispatchPort, license: License, message: str, tier: Tier
) -> bool:
    with log_context(license_id=license.id, tier=tier.value):
        return await dispatcher.send(license, message, tier)


def _to_outcome(license: License, tier: Tier, result: object) -> DispatchOutcome:
    error = None
    if isinstance(result, BaseException):
        error = f"{type(result).__name__}: {result}"
        status = "failed"
    elif result is True:
        status = "sent"
    else:
        error = "dispatcher reported failure"
        status = "failed"

    if error:
        logger.error(
            f"Reminder for '{license.name}' failed: {error}",
            extra={"event": "dispatch.failed", "license_id": license.id, "tier": tier.value},
        )
    return DispatchOutcome(
        license_id=license.id,
        license_name=license.name,
        tier=tier,
        recipient=license.service_owner_email or "",
        status=status,
        error=error,
    )


def _finish_without_dispatch(report: CycleReport, status: str, reason: str) -> CycleReport:
    report.status = status
    report.finished_at = report.started_at
    event = "cycle.not_configured" if status == STATUS_NOT_CONFIGURED else "cycle.disabled"
    logger.info(reason, extra={"event": event, "status": status})
    return report
