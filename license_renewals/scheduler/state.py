"""Scheduler lifecycle state and the daily-check watermark."""

from enum import Enum
from typing import Optional, Protocol, runtime_checkable

# Storage key of the last automatic check date
WATERMARK_KEY = "lastNotificationCheck"


class SchedulerState(str, Enum):
    """Lifecycle of the notification scheduler."""

    STOPPED = "stopped"
    RUNNING = "running"


@runtime_checkable
class WatermarkStore(Protocol):
    """Persists the date (``YYYY-MM-DD``) of the last automatic check."""

    def get(self) -> Optional[str]:
        ...

    def set(self, value: str) -> None:
        ...


class InMemoryWatermarkStore:
    """Watermark store that lives as long as the process."""

    def __init__(self, value: Optional[str] = None) -> None:
        self.value = value

    def get(self) -> Optional[str]:
        return self.value

    def set(self, value: str) -> None:
        self.value = value
