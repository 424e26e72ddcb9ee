"""Database schema definition and ORM models.

This module defines SQLAlchemy ORM models for the database schema and provides
conversion methods between ORM models and domain models.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Float, Index, String, Text, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from license_renewals.domain.models import License

logger = logging.getLogger(__name__)

Base = declarative_base()

_STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


class LicenseModel(Base):
    """ORM model for the licenses table.

    Dates are stored as ISO 8601 UTC strings. ``status`` is a cached value
    written for reporting and is recomputed on every read of the domain model.
    """

    __tablename__ = "licenses"

    id = Column(String(64), primary_key=True, nullable=False)

    name = Column(String(255), nullable=False)
    type = Column(String(32), nullable=False)
    department = Column(String(255), nullable=False, default="")
    supplier = Column(String(255), nullable=False, default="")

    start_date = Column(String(50), nullable=True)
    renewal_date = Column(String(50), nullable=False)

    cost_type = Column(String(32), nullable=False, default="monthly")
    monthly_cost = Column(Float, nullable=False, default=0.0)
    payment_method = Column(String(32), nullable=False)
    credit_card_digits = Column(String(4), nullable=True)

    service_owner = Column(String(255), nullable=True)
    service_owner_email = Column(String(320), nullable=True)
    status = Column(String(16), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(String(50), nullable=False)
    updated_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_licenses_renewal_date", "renewal_date"),)

    def to_domain(self) -> License:
        """Convert ORM model to domain model."""
        return License(
            id=self.id,
            name=self.name,
            type=self.type,
            department=self.department or "",
            supplier=self.supplier or "",
            start_date=_parse_datetime(self.start_date),
            renewal_date=_parse_datetime(self.renewal_date),
            cost_type=self.cost_type,
            monthly_cost=self.monthly_cost or 0.0,
            payment_method=self.payment_method,
            credit_card_digits=self.credit_card_digits,
            service_owner=self.service_owner,
            service_owner_email=self.service_owner_email,
            status=self.status,
            notes=self.notes,
        )

    def apply(self, license: License) -> None:
        """Copy every field of ``license`` onto this row (except the id)."""
        self.name = license.name
        self.type = license.type.value
        self.department = license.department
        self.supplier = license.supplier
        self.start_date = _format_datetime(license.start_date)
        self.renewal_date = _format_datetime(license.renewal_date)
        self.cost_type = license.cost_type.value
        self.monthly_cost = license.monthly_cost
        self.payment_method = license.payment_method.value
        self.credit_card_digits = license.credit_card_digits
        self.service_owner = license.service_owner
        self.service_owner_email = license.service_owner_email
        self.status = license.status.value if license.status else None
        self.notes = license.notes

    @classmethod
    def from_domain(cls, license: License, timestamp: datetime) -> "LicenseModel":
        """Create ORM model from domain model."""
        model = cls(
            id=license.id,
            created_at=_format_datetime(timestamp),
            updated_at=_format_datetime(timestamp),
        )
        model.apply(license)
        return model


class SchedulerStateModel(Base):
    """ORM model for the scheduler_state key/value table."""

    __tablename__ = "scheduler_state"

    key = Column(String(64), primary_key=True, nullable=False)
    value = Column(Text, nullable=True)
    updated_at = Column(String(50), nullable=False)


def _format_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Format datetime as an ISO 8601 UTC string (naive values are taken as UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(_STORAGE_FORMAT)


def _parse_datetime(dt_str: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO 8601 string back into a UTC datetime."""
    if not dt_str:
        return None
    dt_str = dt_str.rstrip("Z")
    for pattern in ("%Y-%m-%dT%H:%M:%S.%f", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d"):
        try:
            return datetime.strptime(dt_str, pattern).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    raise ValueError(f"Unrecognized stored timestamp: '{dt_str}'")


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent)."""
    logger.info("Creating database schema if not exists")
    try:
        Base.metadata.create_all(engine, checkfirst=True)
        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")
    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
