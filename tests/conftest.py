"""Shared fixtures for license renewal tests."""

from datetime import datetime, timedelta, timezone

import pytest

from license_renewals.config.models import EmailSettings, NotificationSettings
from license_renewals.domain.models import License
from license_renewals.logging.context import clear_log_context

# Tuesday morning, mid-month
FIXED_NOW = datetime(2025, 6, 10, 9, 30, tzinfo=timezone.utc)

ENV_VARS = (
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USER",
    "SMTP_PASS",
    "EMAILJS_ACCESS_TOKEN",
    "LOG_LEVEL",
    "DATABASE_URL",
)


@pytest.fixture
def now():
    """Fixed reference instant."""
    return FIXED_NOW


@pytest.fixture
def make_license(now):
    """Factory for License models renewing ``days`` after ``now``."""

    def _make(id="lic-1", days=10, **overrides):
        fields = {
            "id": id,
            "name": f"License {id}",
            "type": "software",
            "department": "Engineering",
            "supplier": "Acme",
            "renewal_date": now + timedelta(days=days),
            "monthly_cost": 10.0,
            "payment_method": "credit_card",
            "service_owner": "Owner",
            "service_owner_email": f"{id}@example.com",
        }
        fields.update(overrides)
        return License(**fields)

    return _make


@pytest.fixture
def email_settings():
    """Complete email settings."""
    return EmailSettings(
        provider_id="service_abc",
        template_id="template_xyz",
        public_key="public-key",
        sender_email="licenses@example.com",
    )


@pytest.fixture
def notification_settings():
    """Enabled notifications with default templates."""
    return NotificationSettings()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every environment variable the service reads."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture(autouse=True)
def clean_log_context():
    """Clear logging context before and after each test."""
    clear_log_context()
    yield
    clear_log_context()
