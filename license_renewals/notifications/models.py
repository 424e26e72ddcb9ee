"""Data models and exceptions for reminder delivery.

This module defines result types and custom exceptions used throughout
the notification pipeline.
"""

from dataclasses import dataclass
from typing import Optional

from license_renewals.domain.models import Tier


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class NotificationTemplateError(NotificationError):
    """Raised when email layout rendering fails due to configuration or missing variables."""

    pass


class DeliveryError(NotificationError):
    """Raised when a transport fails to deliver a reminder."""

    pass


class SMTPDeliveryError(DeliveryError):
    """Raised when SMTP delivery fails."""

    pass


class EmailJSDeliveryError(DeliveryError):
    """Raised when the EmailJS API rejects or cannot receive a send request."""

    pass


@dataclass
class DispatchOutcome:
    """Result of one dispatch attempt for a (license, tier) match.

    Attributes:
        license_id: Identifier of the license
        license_name: Display name of the license (for failure notices)
        tier: Reminder tier that matched
        recipient: Address the reminder was sent to
        status: Outcome status ("sent" or "failed")
        error: Optional error message if delivery failed
    """

    license_id: str
    license_name: str
    tier: Tier
    recipient: str
    status: str  # "sent", "failed"
    error: Optional[str] = None

    def is_success(self) -> bool:
        """Check if the reminder was delivered.

        Returns:
            True if status is "sent", False otherwise
        """
        return self.status == "sent"

    def failure_notice(self) -> str:
        """Human-readable notice for a failed delivery."""
        reason = f": {self.error}" if self.error else ""
        return (
            f"Failed to send {self.tier.value} reminder for "
            f"'{self.license_name}' to {self.recipient}{reason}"
        )
