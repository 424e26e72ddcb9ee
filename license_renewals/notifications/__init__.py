"""Reminder rendering and delivery.

This module provides the notification pipeline used by the scheduler:
- templates: Placeholder substitution for administrator-edited reminder text
- EmailLayoutRenderer: Jinja2-based subject/HTML/text layout
- SmtpEmailDispatcher / EmailJSDispatcher: Transports implementing the dispatch port
- RecordingDispatcher: In-memory transport for dry runs and tests
"""

from .emailjs import EMAILJS_SEND_URL, EmailJSDispatcher
from .layout import EmailLayoutRenderer, build_layout_context
from .memory import RecordingDispatcher, SentReminder
from .models import (
    DeliveryError,
    DispatchOutcome,
    EmailJSDeliveryError,
    NotificationError,
    NotificationTemplateError,
    SMTPDeliveryError,
)
from .ports import EmailDispatchPort, FailureNotifier, LicenseSource
from .smtp_client import (
    SMTPClient,
    SmtpEmailDispatcher,
    build_sender_address,
    normalize_recipient,
)
from .templates import (
    DEFAULT_DATE_FORMAT,
    RECOGNIZED_PLACEHOLDERS,
    find_placeholders,
    render,
)

__all__ = [
    # Ports
    "EmailDispatchPort",
    "FailureNotifier",
    "LicenseSource",
    # Dispatchers
    "SmtpEmailDispatcher",
    "EmailJSDispatcher",
    "RecordingDispatcher",
    "SentReminder",
    "EMAILJS_SEND_URL",
    # Models and results
    "DispatchOutcome",
    # Exceptions
    "NotificationError",
    "NotificationTemplateError",
    "DeliveryError",
    "SMTPDeliveryError",
    "EmailJSDeliveryError",
    # Components
    "EmailLayoutRenderer",
    "SMTPClient",
    # Utilities
    "render",
    "find_placeholders",
    "build_layout_context",
    "build_sender_address",
    "normalize_recipient",
    "DEFAULT_DATE_FORMAT",
    "RECOGNIZED_PLACEHOLDERS",
]
