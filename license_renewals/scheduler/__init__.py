"""Scheduling of the daily renewal-reminder check."""

from .cycle import (
    STATUS_COMPLETED,
    STATUS_DISABLED,
    STATUS_NOT_CONFIGURED,
    TRIGGER_MANUAL,
    TRIGGER_SCHEDULED,
    TRIGGER_STARTUP,
    CycleReport,
    TierReport,
    log_failure_notice,
    run_check_cycle,
)
from .service import JOB_ID, NotificationScheduler
from .state import WATERMARK_KEY, InMemoryWatermarkStore, SchedulerState, WatermarkStore

__all__ = [
    "NotificationScheduler",
    "SchedulerState",
    "WatermarkStore",
    "InMemoryWatermarkStore",
    "WATERMARK_KEY",
    "JOB_ID",
    "run_check_cycle",
    "log_failure_notice",
    "CycleReport",
    "TierReport",
    "STATUS_COMPLETED",
    "STATUS_DISABLED",
    "STATUS_NOT_CONFIGURED",
    "TRIGGER_MANUAL",
    "TRIGGER_SCHEDULED",
    "TRIGGER_STARTUP",
]
