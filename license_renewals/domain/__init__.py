"""Domain models for the license renewal tracker."""

from .models import CostType, License, LicenseStatus, LicenseType, PaymentMethod, Tier

__all__ = ["License", "LicenseStatus", "LicenseType", "PaymentMethod", "CostType", "Tier"]
