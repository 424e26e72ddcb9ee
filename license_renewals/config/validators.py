"""Additional validation utilities for configuration."""

import warnings
from typing import Any, Dict, List

from license_renewals.notifications.templates import find_placeholders


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for potential issues and return warnings.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    notifications = config_dict.get("notifications", {})
    if isinstance(notifications, dict):
        if notifications.get("enabled") is False:
            warning_messages.append("Notifications are disabled; no reminders will be sent")

        templates = notifications.get("email_templates", {})
        if isinstance(templates, dict):
            for tier, template in templates.items():
                if not isinstance(template, str):
                    continue
                placeholders = find_placeholders(template)
                unknown = sorted(name for name, known in placeholders.items() if not known)
                if unknown:
                    warning_messages.append(
                        f"Template '{tier}' contains unknown placeholders that will be "
                        f"sent verbatim: {', '.join('{' + name + '}' for name in unknown)}"
                    )
                elif not placeholders:
                    warning_messages.append(
                        f"Template '{tier}' contains no placeholders; every reminder "
                        "will have the same text"
                    )

    email = config_dict.get("email")
    if email is None:
        warning_messages.append(
            "No email section configured; checks will not dispatch any reminders"
        )
    elif isinstance(email, dict):
        if email.get("automatic_sending") is False:
            warning_messages.append(
                "Automatic sending is disabled; only manual checks will send reminders"
            )

        required = ("provider_id", "template_id", "public_key", "sender_email")
        missing = [name for name in required if not str(email.get(name) or "").strip()]
        if missing:
            warning_messages.append(
                f"Email settings incomplete (missing: {', '.join(missing)}); "
                "checks will not dispatch any reminders"
            )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """
    Emit warning messages using Python's warnings module.

    Args:
        warning_messages: List of warning messages to emit
    """
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
