"""Context propagation for structured logging.

Fields pushed here (``cycle_id``, ``trigger``, ``tier``, ``license_id``) are
injected into every log record emitted within the scope. Context lives in a
ContextVar, so each asyncio task sees the fields of the scope it was created
in and concurrent dispatches do not leak fields into each other.
"""

from contextvars import ContextVar, Token
from typing import Any, Dict, Optional

_context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Get a copy of the current logging context."""
    return dict(_context.get())


def push_log_context(**fields: Any) -> Token:
    """Merge ``fields`` into the logging context.

    Returns:
        Token to pass to ``pop_log_context`` to restore the previous state
    """
    return _context.set({**_context.get(), **fields})


def pop_log_context(token: Token) -> None:
    """Restore the logging context captured by ``token``."""
    _context.reset(token)


def clear_log_context() -> None:
    """Drop every context field (used by tests)."""
    _context.set({})


class log_context:
    """Context manager for scoped logging context.

    Example:
        >>> with log_context(cycle_id="3f2a", trigger="manual"):
        ...     logger.info("Check cycle started")  # includes cycle_id and trigger
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self.token: Optional[Token] = None

    def __enter__(self):
        self.token = push_log_context(**self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token is not None:
            pop_log_context(self.token)
            self.token = None
        return False
