"""Persistence layer for licenses and scheduler state (SQLAlchemy, SQLite by default).

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repositories and adapters
    - LicenseRepository: list/get/upsert/delete licenses
    - load_all_licenses(): license source for the scheduler
    - SqlWatermarkStore: persisted daily-check watermark

Example usage:
    >>> from license_renewals.persistence import init_database, get_session, LicenseRepository
    >>> init_database("sqlite:///./data/license_renewals.db")
    >>> with get_session() as session:
    ...     licenses = LicenseRepository(session).list_all()
"""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import LicenseRepository, SqlWatermarkStore, load_all_licenses

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    # Repositories
    "LicenseRepository",
    "SqlWatermarkStore",
    "load_all_licenses",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
