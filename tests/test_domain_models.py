"""Unit tests for domain models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from license_renewals.domain.models import (
    CostType,
    License,
    LicenseStatus,
    LicenseType,
    PaymentMethod,
    Tier,
)


class TestLicense:
    """Tests for the License model."""

    def test_minimal_license(self):
        """Test creating a license with only required fields."""
        license = License(
            id="abc", name="Tool", renewal_date=datetime(2025, 7, 1, tzinfo=timezone.utc)
        )

        assert license.type == LicenseType.SOFTWARE
        assert license.cost_type == CostType.MONTHLY
        assert license.payment_method == PaymentMethod.CREDIT_CARD
        assert license.service_owner_email is None
        assert license.status is None

    def test_naive_renewal_date_is_treated_as_utc(self):
        license = License(id="abc", name="Tool", renewal_date=datetime(2025, 7, 1, 12, 0))

        assert license.renewal_date == datetime(2025, 7, 1, 12, 0, tzinfo=timezone.utc)

    def test_renewal_date_from_iso_string(self):
        license = License(id="abc", name="Tool", renewal_date="2025-07-01T14:00:00+02:00")

        assert license.renewal_date == datetime(2025, 7, 1, 12, 0, tzinfo=timezone.utc)

    def test_name_is_stripped(self):
        license = License(id="abc", name="  Tool  ", renewal_date=datetime(2025, 7, 1))

        assert license.name == "Tool"

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            License(id="abc", name="   ", renewal_date=datetime(2025, 7, 1))

    def test_blank_email_becomes_none(self):
        """Test that a whitespace-only recipient is treated as missing."""
        license = License(
            id="abc", name="Tool", renewal_date=datetime(2025, 7, 1), service_owner_email="  "
        )

        assert license.service_owner_email is None
        assert not license.has_recipient

    def test_unvalidated_blank_email_has_no_recipient(self):
        """Test that has_recipient strips even when validation was bypassed."""
        license = License.model_construct(
            id="abc", name="Tool", renewal_date=datetime(2025, 7, 1), service_owner_email="  "
        )

        assert not license.has_recipient

    @pytest.mark.parametrize("digits", ["4", "42", "4242", " 1234 "])
    def test_valid_card_digits(self, digits):
        license = License(
            id="abc", name="Tool", renewal_date=datetime(2025, 7, 1), credit_card_digits=digits
        )

        assert license.credit_card_digits == digits.strip()

    @pytest.mark.parametrize("digits", ["12345", "12a4", "****"])
    def test_invalid_card_digits(self, digits):
        with pytest.raises(ValidationError):
            License(
                id="abc", name="Tool", renewal_date=datetime(2025, 7, 1), credit_card_digits=digits
            )

    def test_negative_cost_rejected(self):
        with pytest.raises(ValidationError):
            License(id="abc", name="Tool", renewal_date=datetime(2025, 7, 1), monthly_cost=-1)

    def test_current_status_ignores_stored_status(self, now):
        """Test that the stored status is never trusted."""
        license = License(
            id="abc",
            name="Tool",
            renewal_date=now - timedelta(days=1),
            status=LicenseStatus.ACTIVE,
        )

        assert license.status == LicenseStatus.ACTIVE
        assert license.current_status(now) == LicenseStatus.EXPIRED


class TestTier:
    """Tests for the Tier enum."""

    def test_tier_values_match_template_keys(self):
        assert {tier.value for tier in Tier} == {"oneDay", "sevenDays", "thirtyDays"}

    def test_tier_from_value(self):
        assert Tier("sevenDays") is Tier.SEVEN_DAYS
