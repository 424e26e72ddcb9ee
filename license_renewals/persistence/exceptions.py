"""Persistence layer exceptions.

All persistence exceptions inherit from PersistenceError, so callers can
catch every database failure with a single except clause.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when the database cannot be initialized or is not initialized yet."""

    pass


class RecordNotFoundError(PersistenceError):
    """Raised when an operation requires a license that does not exist.

    Lookups return None instead of raising this.
    """

    pass


class DataIntegrityError(PersistenceError):
    """Raised when a write violates a database constraint."""

    pass
