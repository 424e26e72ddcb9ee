"""Engine and session lifecycle for the license store.

One engine per process, created by ``init_database`` at startup and
disposed by ``close_database``. SQLite is the default backend.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from license_renewals.logging import get_logger

from .exceptions import DatabaseConnectionError

_engine: Engine | None = None
_session_factory: sessionmaker | None = None

logger = get_logger(__name__, component="database")

_NOT_READY = "License database is not open; call init_database() at startup"


def _sqlite_path(url: URL) -> Optional[Path]:
    """Database file for a SQLite URL, or None when the database lives in memory."""
    if not url.database or url.database == ":memory:":
        return None
    return Path(url.database)


def _build_engine(url: URL) -> Engine:
    if url.get_backend_name() != "sqlite":
        return create_engine(url, pool_pre_ping=True)

    kwargs: Dict[str, Any] = {
        "connect_args": {"check_same_thread": False, "timeout": 30},
    }
    db_path = _sqlite_path(url)
    if db_path is None:
        # Every session must reach the same in-memory database
        kwargs["poolclass"] = StaticPool
    else:
        db_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, **kwargs)
    use_wal = db_path is not None

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if use_wal:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return engine


def init_database(database_url: str) -> None:
    """Open the license database and create any missing tables.

    Args:
        database_url: SQLAlchemy URL, e.g. ``sqlite:///./data/license_renewals.db``
            or ``sqlite://`` for a throwaway in-memory store

    Raises:
        DatabaseConnectionError: If the URL is invalid or the database is unreachable
    """
    global _engine, _session_factory

    if not isinstance(database_url, str) or not database_url:
        raise DatabaseConnectionError("DATABASE_URL is empty")
    try:
        url = make_url(database_url)
    except ArgumentError as e:
        raise DatabaseConnectionError(f"DATABASE_URL is not a valid URL: {e}") from e

    safe_url = url.render_as_string(hide_password=True)
    logger.info(
        "Opening license database",
        extra={"event": "database.opening", "database_url": safe_url},
    )

    from .schema import create_schema

    try:
        engine = _build_engine(url)
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        create_schema(engine)
    except Exception as e:
        logger.error(
            f"Could not open license database {safe_url}: {e}",
            extra={"event": "database.open_failed"},
            exc_info=True,
        )
        raise DatabaseConnectionError(f"Could not open license database {safe_url}: {e}") from e

    _engine = engine
    # Loaded licenses stay usable after the session commits
    _session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    logger.info("License database ready", extra={"event": "database.ready"})


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Transactional session: commit on success, roll back on error, always close.

    Raises:
        DatabaseConnectionError: If init_database() has not run
    """
    if _session_factory is None:
        raise DatabaseConnectionError(_NOT_READY)

    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.warning(
            f"Rolled back database session: {e}",
            extra={"event": "database.session.rolled_back", "error_type": type(e).__name__},
        )
        raise
    finally:
        session.close()


def get_engine() -> Engine:
    if _engine is None:
        raise DatabaseConnectionError(_NOT_READY)
    return _engine


def close_database() -> None:
    """Dispose of the engine; safe to call when nothing is open."""
    global _engine, _session_factory

    if _engine is None:
        return
    _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("License database closed", extra={"event": "database.closed"})
