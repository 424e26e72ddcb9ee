"""Unit tests for the notification scheduler.

Tests the NotificationScheduler including:
- Startup check gated by the daily watermark
- Interval job registration (max_instances=1, coalescing)
- Tick skipping while a cycle is in flight
- Manual checks leaving the watermark untouched
- Start/stop/restart lifecycle, including overlapping starts
- Watermark store failures
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from apscheduler.triggers.interval import IntervalTrigger

from license_renewals.domain.models import Tier
from license_renewals.notifications.memory import RecordingDispatcher
from license_renewals.scheduler import (
    JOB_ID,
    InMemoryWatermarkStore,
    NotificationScheduler,
    SchedulerState,
)
from license_renewals.scheduler.cycle import TRIGGER_SCHEDULED, TRIGGER_STARTUP


class FakeClock:
    """Clock that tests can move forward."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class BrokenStore(InMemoryWatermarkStore):
    """Watermark store whose reads or writes can be made to fail."""

    def __init__(self, fail_get=False, fail_set=False):
        super().__init__()
        self.fail_get = fail_get
        self.fail_set = fail_set

    def get(self):
        if self.fail_get:
            raise RuntimeError("db down")
        return super().get()

    def set(self, value):
        if self.fail_set:
            raise RuntimeError("db down")
        super().set(value)


@pytest.fixture
def clock(now):
    return FakeClock(now)


@pytest.fixture
def licenses(make_license):
    return [make_license("tomorrow", days=1), make_license("next-week", days=7)]


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def store():
    return InMemoryWatermarkStore()


@pytest.fixture
def apscheduler():
    mock_scheduler = MagicMock()
    mock_scheduler.running = True
    mock_scheduler.get_job.return_value = None
    return mock_scheduler


@pytest.fixture
def make_scheduler(licenses, dispatcher, store, clock, apscheduler):
    def _make(**overrides):
        kwargs = {
            "license_source": lambda: licenses,
            "dispatcher": dispatcher,
            "watermark_store": store,
            "check_interval_seconds": 3600,
            "clock": clock,
            "scheduler_factory": lambda: apscheduler,
        }
        kwargs.update(overrides)
        return NotificationScheduler(**kwargs)

    return _make


class TestLifecycle:
    """Start/stop behavior."""

    def test_initial_state(self, make_scheduler):
        scheduler = make_scheduler()

        assert scheduler.state is SchedulerState.STOPPED
        assert not scheduler.is_running()
        assert scheduler.last_report is None
        assert scheduler.get_next_run_time() is None

    @pytest.mark.parametrize("interval", [0, -5])
    def test_rejects_non_positive_interval(self, make_scheduler, interval):
        with pytest.raises(ValueError):
            make_scheduler(check_interval_seconds=interval)

    async def test_start_runs_startup_check_and_sets_watermark(
        self, make_scheduler, dispatcher, store, email_settings, notification_settings
    ):
        scheduler = make_scheduler()

        await scheduler.start(email_settings, notification_settings)

        assert scheduler.is_running()
        assert store.get() == "2025-06-10"
        assert scheduler.last_report.trigger == TRIGGER_STARTUP
        dispatcher.assert_sent("tomorrow", Tier.ONE_DAY)
        dispatcher.assert_sent("next-week", Tier.SEVEN_DAYS)

    async def test_start_installs_interval_job(
        self, make_scheduler, apscheduler, email_settings, notification_settings
    ):
        scheduler = make_scheduler()

        await scheduler.start(email_settings, notification_settings)

        apscheduler.add_job.assert_called_once()
        args, kwargs = apscheduler.add_job.call_args
        assert args[0] == scheduler.run_scheduled_check
        assert isinstance(kwargs["trigger"], IntervalTrigger)
        assert kwargs["trigger"].interval == timedelta(seconds=3600)
        assert kwargs["id"] == JOB_ID
        assert kwargs["max_instances"] == 1
        assert kwargs["coalesce"] is True
        assert kwargs["replace_existing"] is True
        apscheduler.start.assert_called_once()

    async def test_start_twice_same_day_sends_once(
        self, make_scheduler, dispatcher, email_settings, notification_settings
    ):
        scheduler = make_scheduler()

        await scheduler.start(email_settings, notification_settings)
        await scheduler.start(email_settings, notification_settings)

        assert len(dispatcher.sent) == 2

    async def test_restart_replaces_timer(
        self, make_scheduler, apscheduler, email_settings, notification_settings
    ):
        scheduler = make_scheduler()

        await scheduler.start(email_settings, notification_settings)
        await scheduler.start(email_settings, notification_settings)

        apscheduler.shutdown.assert_called_once_with(wait=False)
        assert apscheduler.add_job.call_count == 2
        assert scheduler.is_running()

    async def test_existing_watermark_skips_startup_check(
        self, make_scheduler, dispatcher, store, email_settings, notification_settings
    ):
        store.set("2025-06-10")
        scheduler = make_scheduler()

        await scheduler.start(email_settings, notification_settings)

        assert dispatcher.sent == []
        assert scheduler.is_running()

    async def test_stop_keeps_watermark(
        self, make_scheduler, apscheduler, store, email_settings, notification_settings
    ):
        scheduler = make_scheduler()
        await scheduler.start(email_settings, notification_settings)

        scheduler.stop()

        assert scheduler.state is SchedulerState.STOPPED
        assert store.get() == "2025-06-10"
        apscheduler.shutdown.assert_called_once_with(wait=False)

    def test_stop_when_stopped_is_noop(self, make_scheduler, apscheduler):
        scheduler = make_scheduler()

        scheduler.stop()

        apscheduler.shutdown.assert_not_called()

    async def test_settings_are_snapshotted(
        self, make_scheduler, dispatcher, store, email_settings, notification_settings
    ):
        """Test that later edits to the settings objects do not reach the scheduler."""
        store.set("2025-06-10")
        scheduler = make_scheduler()
        await scheduler.start(email_settings, notification_settings)

        notification_settings.enabled = False
        report = await scheduler.trigger_manual_check()

        assert report.status == "completed"
        assert len(dispatcher.sent) == 2

    async def test_startup_failure_does_not_set_watermark(
        self, make_scheduler, store, email_settings, notification_settings
    ):
        def broken_source():
            raise RuntimeError("database unavailable")

        scheduler = make_scheduler(license_source=broken_source)

        await scheduler.start(email_settings, notification_settings)

        assert store.get() is None
        assert scheduler.is_running()

    async def test_concurrent_starts_send_once(
        self, make_scheduler, make_license, apscheduler, email_settings, notification_settings
    ):
        slow = RecordingDispatcher(delay=0.05)
        scheduler = make_scheduler(
            dispatcher=slow, license_source=lambda: [make_license("tomorrow", days=1)]
        )

        await asyncio.gather(
            scheduler.start(email_settings, notification_settings),
            scheduler.start(email_settings, notification_settings),
        )

        assert len(slow.sent) == 1
        apscheduler.add_job.assert_called_once()
        assert scheduler.is_running()

    async def test_stop_during_startup_check_wins(
        self, make_scheduler, apscheduler, email_settings, notification_settings
    ):
        slow = RecordingDispatcher(delay=0.1)
        scheduler = make_scheduler(dispatcher=slow)

        starting = asyncio.create_task(scheduler.start(email_settings, notification_settings))
        await asyncio.sleep(0.02)
        scheduler.stop()
        await starting

        assert scheduler.state is SchedulerState.STOPPED
        apscheduler.add_job.assert_not_called()
        assert scheduler.get_next_run_time() is None

    async def test_unreadable_watermark_skips_startup_check(
        self, make_scheduler, dispatcher, apscheduler, email_settings, notification_settings
    ):
        scheduler = make_scheduler(watermark_store=BrokenStore(fail_get=True))

        await scheduler.start(email_settings, notification_settings)

        assert dispatcher.sent == []
        assert scheduler.is_running()
        apscheduler.add_job.assert_called_once()

    async def test_unwritable_watermark_still_reports(
        self, make_scheduler, dispatcher, email_settings, notification_settings
    ):
        scheduler = make_scheduler(watermark_store=BrokenStore(fail_set=True))

        await scheduler.start(email_settings, notification_settings)

        assert scheduler.is_running()
        assert scheduler.last_report.trigger == TRIGGER_STARTUP
        assert len(dispatcher.sent) == 2


class TestScheduledTicks:
    """Interval tick behavior."""

    async def test_tick_same_day_is_skipped(
        self, make_scheduler, dispatcher, email_settings, notification_settings
    ):
        scheduler = make_scheduler()
        await scheduler.start(email_settings, notification_settings)
        dispatcher.clear()

        assert await scheduler.run_scheduled_check() is None
        assert dispatcher.sent == []

    async def test_tick_next_day_runs_cycle(
        self, make_scheduler, clock, dispatcher, store, email_settings, notification_settings
    ):
        scheduler = make_scheduler()
        await scheduler.start(email_settings, notification_settings)
        dispatcher.clear()

        clock.advance(days=1)
        report = await scheduler.run_scheduled_check()

        assert report.trigger == TRIGGER_SCHEDULED
        assert store.get() == "2025-06-11"
        # "next-week" is now 6 days out, still in the seven-day window
        dispatcher.assert_sent("next-week", Tier.SEVEN_DAYS)
        dispatcher.assert_sent("tomorrow", Tier.ONE_DAY)

    async def test_tick_skipped_while_cycle_in_flight(
        self, make_scheduler, store, email_settings, notification_settings
    ):
        slow = RecordingDispatcher(delay=0.2)
        scheduler = make_scheduler(dispatcher=slow)
        store.set("2025-06-10")
        await scheduler.start(email_settings, notification_settings)

        manual = asyncio.create_task(scheduler.trigger_manual_check())
        await asyncio.sleep(0.05)
        store.set("2025-06-09")

        assert await scheduler.run_scheduled_check() is None
        await manual
        assert len(slow.sent) == 2

    async def test_disabled_startup_check_still_sets_watermark(
        self, make_scheduler, dispatcher, store, email_settings, notification_settings
    ):
        scheduler = make_scheduler()
        disabled = notification_settings.model_copy(update={"enabled": False})
        await scheduler.start(email_settings, disabled)

        assert dispatcher.sent == []
        assert store.get() == "2025-06-10"

    async def test_tick_with_unreadable_watermark_is_skipped(
        self, make_scheduler, dispatcher, email_settings, notification_settings
    ):
        store = BrokenStore()
        scheduler = make_scheduler(watermark_store=store)
        await scheduler.start(email_settings, notification_settings)
        dispatcher.clear()
        store.fail_get = True

        assert await scheduler.run_scheduled_check() is None
        assert dispatcher.sent == []

    async def test_tick_after_failed_watermark_write_runs_again(
        self, make_scheduler, dispatcher, email_settings, notification_settings
    ):
        scheduler = make_scheduler(watermark_store=BrokenStore(fail_set=True))
        await scheduler.start(email_settings, notification_settings)
        dispatcher.clear()

        report = await scheduler.run_scheduled_check()

        assert report.trigger == TRIGGER_SCHEDULED
        assert len(dispatcher.sent) == 2


class TestManualCheck:
    """trigger_manual_check behavior."""

    async def test_manual_check_ignores_and_keeps_watermark(
        self, make_scheduler, dispatcher, store, email_settings, notification_settings
    ):
        store.set("2025-06-10")
        scheduler = make_scheduler()
        await scheduler.start(email_settings, notification_settings)

        report = await scheduler.trigger_manual_check()

        assert report.trigger == "manual"
        assert len(dispatcher.sent) == 2
        assert store.get() == "2025-06-10"
        assert scheduler.last_report is report

    async def test_manual_check_does_not_set_watermark(
        self, make_scheduler, store, email_settings, notification_settings
    ):
        scheduler = make_scheduler()

        await scheduler.trigger_manual_check(email_settings, notification_settings)

        assert store.get() is None

    async def test_manual_check_without_settings_is_not_configured(self, make_scheduler):
        scheduler = make_scheduler()

        report = await scheduler.trigger_manual_check()

        assert report.status == "not_configured"


class TestRealScheduler:
    """Integration with a real AsyncIOScheduler."""

    async def test_next_run_time_is_scheduled(
        self, licenses, dispatcher, store, clock, email_settings, notification_settings
    ):
        scheduler = NotificationScheduler(
            license_source=lambda: licenses,
            dispatcher=dispatcher,
            watermark_store=store,
            check_interval_seconds=600,
            clock=clock,
        )

        await scheduler.start(email_settings, notification_settings)
        try:
            next_run = scheduler.get_next_run_time()
            assert next_run is not None
            assert next_run > datetime.now(timezone.utc)
        finally:
            scheduler.stop()

        assert scheduler.get_next_run_time() is None
