"""Structured logging helpers shared by every component."""

import logging
from typing import Optional, Union

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges its ``component`` with per-call extra fields.

    Fields passed in a call's ``extra`` win over the adapter's defaults.
    """

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str, component: Optional[str] = None) -> LoggerLike:
    """Get a logger with optional default component field.

    Example:
        >>> logger = get_logger(__name__, component="scheduler")
        >>> logger.info("Scheduler started", extra={"event": "scheduler.started"})
    """
    logger = logging.getLogger(name)
    if component:
        return ComponentLoggerAdapter(logger, {"component": component})
    return logger
