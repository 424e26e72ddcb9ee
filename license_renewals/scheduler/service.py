"""Notification scheduler driving the daily renewal-reminder check."""

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from license_renewals.config.models import EmailSettings, NotificationSettings
from license_renewals.logging import get_logger
from license_renewals.notifications.ports import (
    EmailDispatchPort,
    FailureNotifier,
    LicenseSource,
)
from license_renewals.utils.timestamps import Clock, date_key, utc_now

from .cycle import (
    TRIGGER_MANUAL,
    TRIGGER_SCHEDULED,
    TRIGGER_STARTUP,
    CycleReport,
    run_check_cycle,
)
from .state import SchedulerState, WatermarkStore

logger = get_logger(__name__, component="scheduler")

JOB_ID = "license-renewal-check"

DEFAULT_CHECK_INTERVAL = 3600


def default_scheduler_factory() -> AsyncIOScheduler:
    return AsyncIOScheduler(timezone=timezone.utc)


class NotificationScheduler:
    """
    Runs the reminder check at most once per calendar day.

    An APScheduler interval job ticks every ``check_interval_seconds``; a
    tick runs a check cycle only when the persisted watermark is not today.
    Manual checks run on demand and leave the watermark alone. One cycle is
    in flight at a time: a tick finding a cycle running is skipped, a manual
    check waits for it.
    """

    def __init__(
        self,
        license_source: LicenseSource,
        dispatcher: EmailDispatchPort,
        watermark_store: WatermarkStore,
        check_interval_seconds: int = DEFAULT_CHECK_INTERVAL,
        clock: Optional[Clock] = None,
        failure_notifier: Optional[FailureNotifier] = None,
        scheduler_factory: Optional[Callable[[], AsyncIOScheduler]] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            license_source: Returns the current licenses; called once per cycle
            dispatcher: Email dispatch port
            watermark_store: Persists the date of the last automatic check
            check_interval_seconds: Seconds between ticks
            clock: Returns "now"; its timezone defines calendar days (UTC if None)
            failure_notifier: Receives each failed dispatch
            scheduler_factory: Builds the APScheduler instance (for testing)
        """
        if check_interval_seconds <= 0:
            raise ValueError("check_interval_seconds must be positive")

        self.license_source = license_source
        self.dispatcher = dispatcher
        self.watermark_store = watermark_store
        self.check_interval_seconds = check_interval_seconds
        self.clock = clock or utc_now
        self.failure_notifier = failure_notifier
        self.scheduler_factory = scheduler_factory or default_scheduler_factory

        self.last_report: Optional[CycleReport] = None
        self._state = SchedulerState.STOPPED
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._lock = asyncio.Lock()
        self._email_settings: Optional[EmailSettings] = None
        self._notification_settings: Optional[NotificationSettings] = None
        # Bumped by every start/stop; a start only installs its timer if still current
        self._generation = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    def is_running(self) -> bool:
        return self._state == SchedulerState.RUNNING

    async def start(
        self, email_settings: EmailSettings, notification_settings: NotificationSettings
    ) -> None:
        """
        Start (or restart) the scheduler with a snapshot of the settings.

        Runs one check immediately when today's automatic check has not
        happened yet, then installs the interval job. Calling ``start`` again
        replaces the previous job. A ``stop`` or newer ``start`` issued while
        the startup check is running wins: this call then installs nothing.
        """
        self._email_settings = email_settings.model_copy(deep=True)
        self._notification_settings = notification_settings.model_copy(deep=True)

        if self._state == SchedulerState.RUNNING:
            logger.info("Restarting scheduler", extra={"event": "scheduler.restarting"})
            self._teardown_timer()

        self._generation += 1
        generation = self._generation
        self._state = SchedulerState.RUNNING

        async with self._lock:
            await self._run_daily_cycle(TRIGGER_STARTUP)

        if generation != self._generation:
            logger.info(
                "Scheduler start superseded during the startup check",
                extra={"event": "scheduler.start.superseded"},
            )
            return

        self._install_timer()

        next_run = self.get_next_run_time()
        logger.info(
            f"Scheduler started with interval: {self.check_interval_seconds} seconds",
            extra={
                "event": "scheduler.started",
                "interval_seconds": self.check_interval_seconds,
                "next_run_time": next_run.isoformat() if next_run else None,
            },
        )

    def stop(self) -> None:
        """
        Cancel the interval job. The watermark is kept, and dispatches
        already in flight are not cancelled.
        """
        if self._state == SchedulerState.STOPPED:
            return

        self._generation += 1
        self._teardown_timer()
        self._state = SchedulerState.STOPPED
        logger.info("Scheduler stopped", extra={"event": "scheduler.stopped"})

    async def trigger_manual_check(
        self,
        email_settings: Optional[EmailSettings] = None,
        notification_settings: Optional[NotificationSettings] = None,
    ) -> CycleReport:
        """
        Run one check now, regardless of the watermark, without updating it.

        Settings default to the snapshot taken by ``start``. Waits for a
        cycle already in flight before running.
        """
        logger.info(
            "Manual notification check triggered",
            extra={"event": "scheduler.trigger_manual"},
        )
        async with self._lock:
            report = await run_check_cycle(
                self.license_source(),
                self.dispatcher,
                email_settings or self._email_settings,
                notification_settings or self._notification_settings,
                now=self.clock(),
                trigger=TRIGGER_MANUAL,
                failure_notifier=self.failure_notifier,
            )
        self.last_report = report
        return report

    async def run_scheduled_check(self) -> Optional[CycleReport]:
        """
        Timer tick: run today's automatic check unless it already ran.

        Returns:
            The cycle report, or None when the tick was skipped
        """
        if self._lock.locked():
            logger.info(
                "Skipping tick: a check cycle is already running",
                extra={"event": "scheduler.tick.skipped", "reason": "cycle_in_flight"},
            )
            return None

        async with self._lock:
            return await self._run_daily_cycle(TRIGGER_SCHEDULED)

    def get_next_run_time(self) -> Optional[datetime]:
        """
        Get the next scheduled tick.

        Returns:
            Next run time as a datetime, or None if not scheduled
        """
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    def _already_checked(self, today: str, trigger: str) -> bool:
        try:
            checked = self.watermark_store.get() == today
        except Exception:
            logger.exception(
                "Cannot read the daily-check watermark; skipping this automatic check",
                extra={"event": "scheduler.watermark.read_failed", "trigger": trigger},
            )
            return True
        if checked:
            logger.debug(
                "Today's check already ran",
                extra={"event": "scheduler.tick.skipped", "reason": "already_checked"},
            )
        return checked

    def _record_checked(self, today: str) -> None:
        try:
            self.watermark_store.set(today)
        except Exception:
            logger.exception(
                "Cannot record today's check; the next tick will run it again",
                extra={"event": "scheduler.watermark.write_failed"},
            )

    async def _run_daily_cycle(self, trigger: str) -> Optional[CycleReport]:
        # Caller holds the lock, so the watermark read below sees every
        # earlier cycle of the day
        today = date_key(self.clock())
        if self._already_checked(today, trigger):
            return None

        try:
            report = await run_check_cycle(
                self.license_source(),
                self.dispatcher,
                self._email_settings,
                self._notification_settings,
                now=self.clock(),
                trigger=trigger,
                failure_notifier=self.failure_notifier,
            )
        except Exception:
            logger.exception(
                "Check cycle failed; will retry on the next tick",
                extra={"event": "cycle.failed", "trigger": trigger},
            )
            return None

        self._record_checked(today)
        self.last_report = report
        return report

    def _install_timer(self) -> None:
        self._teardown_timer()
        scheduler = self.scheduler_factory()
        scheduler.add_job(
            self.run_scheduled_check,
            trigger=IntervalTrigger(seconds=self.check_interval_seconds),
            id=JOB_ID,
            name="License renewal check",
            replace_existing=True,
            max_instances=1,  # Prevent overlapping ticks
            coalesce=True,  # Delayed ticks run once
            misfire_grace_time=self.check_interval_seconds,
        )
        scheduler.start()
        self._scheduler = scheduler

    def _teardown_timer(self) -> None:
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is not None and scheduler.running:
            scheduler.shutdown(wait=False)
