"""Data access layer (repositories) for persistence operations.

Repositories encapsulate database operations and return domain models
rather than ORM models.
"""

import logging
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from license_renewals.domain.models import License
from license_renewals.scheduler.state import WATERMARK_KEY
from license_renewals.utils.timestamps import utc_now

from .database import get_session
from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import LicenseModel, SchedulerStateModel, _format_datetime

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractContextManager]


class LicenseRepository:
    """Repository for license records."""

    def __init__(self, session: Session, clock: Callable[[], datetime] = utc_now):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
            clock: Source of created_at/updated_at timestamps
        """
        self.session = session
        self.clock = clock

    def list_all(self) -> List[License]:
        """Retrieve every license, soonest renewal first.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = select(LicenseModel).order_by(LicenseModel.renewal_date, LicenseModel.id)
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error listing licenses: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list licenses: {e}") from e

    def get_by_id(self, license_id: str) -> Optional[License]:
        """Retrieve a license by id.

        Returns:
            License domain model if found, None otherwise

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            model = self.session.get(LicenseModel, license_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving license {license_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve license: {e}") from e

    def upsert(self, license: License) -> License:
        """Insert a new license or update the existing one with the same id.

        Raises:
            DataIntegrityError: On constraint violations
            PersistenceError: If database error occurs
        """
        now = self.clock()
        try:
            existing = self.session.get(LicenseModel, license.id)
            if existing:
                existing.apply(license)
                existing.updated_at = _format_datetime(now)
                model = existing
            else:
                model = LicenseModel.from_domain(license, now)
                self.session.add(model)
            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error upserting license {license.id}: {e}", exc_info=True)
            raise DataIntegrityError(
                f"Failed to upsert license due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting license {license.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert license: {e}") from e

    def delete(self, license_id: str) -> None:
        """Delete a license.

        Raises:
            RecordNotFoundError: If no license has this id
            PersistenceError: If database error occurs
        """
        try:
            model = self.session.get(LicenseModel, license_id)
            if model is None:
                raise RecordNotFoundError(f"License with id {license_id} not found")
            self.session.delete(model)
            self.session.flush()
        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error deleting license {license_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete license: {e}") from e


def load_all_licenses(session_factory: SessionFactory = get_session) -> List[License]:
    """License source backed by the database: one short session per call."""
    with session_factory() as session:
        return LicenseRepository(session).list_all()


class SqlWatermarkStore:
    """Watermark store persisted in the scheduler_state table.

    Each call uses its own short session so the value survives restarts
    and is committed immediately.
    """

    def __init__(
        self,
        key: str = WATERMARK_KEY,
        session_factory: SessionFactory = get_session,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.key = key
        self.session_factory = session_factory
        self.clock = clock

    def get(self) -> Optional[str]:
        try:
            with self.session_factory() as session:
                row = session.get(SchedulerStateModel, self.key)
                return row.value if row else None
        except SQLAlchemyError as e:
            logger.error(f"Error reading scheduler state {self.key}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to read scheduler state: {e}") from e

    def set(self, value: str) -> None:
        timestamp = _format_datetime(self.clock())
        try:
            with self.session_factory() as session:
                row = session.get(SchedulerStateModel, self.key)
                if row is None:
                    session.add(
                        SchedulerStateModel(key=self.key, value=value, updated_at=timestamp)
                    )
                else:
                    row.value = value
                    row.updated_at = timestamp
        except SQLAlchemyError as e:
            logger.error(f"Error writing scheduler state {self.key}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to write scheduler state: {e}") from e
