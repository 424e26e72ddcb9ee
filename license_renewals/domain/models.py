"""Core domain models for licenses and renewal reminders.

This module defines the data structures used throughout the application:
- License: a tracked software/service license with its renewal date
- LicenseStatus: derived lifecycle state (never authoritative when stored)
- Tier: the three fixed reminder lead times
"""

import re
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from license_renewals.utils.timestamps import ensure_utc


class LicenseStatus(str, Enum):
    """Lifecycle state derived from the renewal date."""

    ACTIVE = "active"
    PENDING = "pending"
    EXPIRED = "expired"


class LicenseType(str, Enum):
    """Kinds of licenses tracked."""

    SOFTWARE = "software"
    HARDWARE = "hardware"
    SERVICE = "service"
    SUBSCRIPTION = "subscription"


class PaymentMethod(str, Enum):
    """How a license is paid for."""

    CREDIT_CARD = "credit_card"
    BANK_TRANSFER = "bank_transfer"
    PURCHASE_ORDER = "purchase_order"
    PAYPAL = "paypal"


class CostType(str, Enum):
    """Billing cadence of a license cost."""

    MONTHLY = "monthly"
    YEARLY = "yearly"
    ONE_TIME = "one_time"


class Tier(str, Enum):
    """Reminder lead time before renewal.

    Values match the keys used for email templates in notification settings.
    """

    ONE_DAY = "oneDay"
    SEVEN_DAYS = "sevenDays"
    THIRTY_DAYS = "thirtyDays"


class License(BaseModel):
    """A tracked license as supplied by the license source.

    The core only reads licenses. ``status`` may be present when the record
    comes from storage, but it is never trusted: use ``current_status(now)``,
    which recomputes it from ``renewal_date``.
    """

    id: str = Field(..., min_length=1, description="Opaque unique identifier")
    name: str = Field(..., description="License or product name")
    type: LicenseType = Field(LicenseType.SOFTWARE, description="License kind")
    department: str = Field("", description="Owning department")
    supplier: str = Field("", description="Vendor or supplier")
    start_date: Optional[datetime] = Field(None, description="Start of the license term (UTC)")
    renewal_date: datetime = Field(..., description="Renewal/expiry instant (UTC)")
    cost_type: CostType = Field(CostType.MONTHLY, description="Billing cadence")
    monthly_cost: float = Field(0.0, ge=0, description="Cost per month")
    payment_method: PaymentMethod = Field(
        PaymentMethod.CREDIT_CARD, description="Payment method"
    )
    credit_card_digits: Optional[str] = Field(
        None, description="Last digits of the card (0-4 digits), templates only"
    )
    service_owner: Optional[str] = Field(None, description="Name of the service owner")
    service_owner_email: Optional[str] = Field(
        None, description="Reminder recipient; reminders are skipped when empty"
    )
    notes: Optional[str] = Field(None, description="Free-form notes")
    status: Optional[LicenseStatus] = Field(
        None, description="Cached status from storage, not a source of truth"
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Strip whitespace and reject empty names."""
        if not v or not v.strip():
            raise ValueError("Field cannot be empty or whitespace-only")
        return v.strip()

    @field_validator("department", "supplier", "service_owner", "notes")
    @classmethod
    def strip_optional_text(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip()

    @field_validator("service_owner_email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        """Blank addresses are stored as None."""
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None

    @field_validator("credit_card_digits")
    @classmethod
    def validate_card_digits(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        stripped = v.strip()
        if not stripped:
            return None
        if not re.fullmatch(r"\d{1,4}", stripped):
            raise ValueError("credit_card_digits must contain at most 4 digits")
        return stripped

    @field_validator("start_date", "renewal_date")
    @classmethod
    def normalize_datetimes(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return ensure_utc(v)

    @property
    def has_recipient(self) -> bool:
        """Whether the license has a usable reminder recipient."""
        return bool(self.service_owner_email and self.service_owner_email.strip())

    def current_status(self, now: datetime) -> LicenseStatus:
        """Recompute the lifecycle status at ``now``."""
        from license_renewals.lifecycle.classifier import classify

        return classify(self.renewal_date, now)

    model_config = {"json_schema_extra": {"example": {
        "id": "3f1c9d2e-7a4b-4c1e-9f0a-2b6d8e5c4a10",
        "name": "Figma Organization",
        "type": "subscription",
        "department": "Design",
        "supplier": "Figma",
        "renewal_date": "2025-12-01T00:00:00Z",
        "cost_type": "monthly",
        "monthly_cost": 450.0,
        "payment_method": "credit_card",
        "credit_card_digits": "4242",
        "service_owner": "Dana Smith",
        "service_owner_email": "dana@example.com",
    }}}
