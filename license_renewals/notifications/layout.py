"""Email layout rendering for reminder messages using Jinja2.

The reminder text itself comes from the administrator's placeholder template
(see ``templates.render``). This module wraps that text into a full email:
subject line, HTML body and plain text body. Templates live in the
``license_renewals.notifications`` package under ``email_templates``.
"""

import logging
from datetime import tzinfo
from typing import Any, Dict, Optional

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError, select_autoescape

from license_renewals.domain.models import License, Tier

from .models import NotificationTemplateError
from .templates import renewal_date_in

logger = logging.getLogger(__name__)

TIER_LABELS = {
    Tier.ONE_DAY: "1 day",
    Tier.SEVEN_DAYS: "7 days",
    Tier.THIRTY_DAYS: "30 days",
}


class EmailLayoutRenderer:
    """Renders reminder emails using Jinja2.

    Templates are cached by the Jinja2 environment for reuse across
    multiple invocations.
    """

    def __init__(
        self,
        template_dir: str = "email_templates",
        subject_template: str = "reminder_subject.j2",
        html_template: str = "reminder_body.html.j2",
        text_template: str = "reminder_body.txt.j2",
        timezone: Optional[tzinfo] = None,
    ):
        """Initialize layout renderer with Jinja2 environment.

        Args:
            template_dir: Directory name within the notifications package
            subject_template: Filename of subject line template
            html_template: Filename of HTML body template
            text_template: Filename of plain text body template
            timezone: Zone the renewal date is shown in (UTC if None)
        """
        self.subject_template_name = subject_template
        self.html_template_name = html_template
        self.text_template_name = text_template
        self.timezone = timezone

        self.env = Environment(
            loader=PackageLoader("license_renewals.notifications", template_dir),
            autoescape=select_autoescape(enabled_extensions=("html.j2",), default=False),
            undefined=StrictUndefined,
        )

        logger.debug(f"Initialized EmailLayoutRenderer with templates from {template_dir}")

    def render(self, context: Dict[str, Any]) -> Dict[str, str]:
        """Render subject, HTML body and text body.

        Args:
            context: Dictionary of template variables (see ``build_layout_context``)

        Returns:
            Dictionary with keys "subject", "html_body" and "text_body"

        Raises:
            NotificationTemplateError: If template rendering fails
        """
        try:
            subject_template = self.env.get_template(self.subject_template_name)
            html_template = self.env.get_template(self.html_template_name)
            text_template = self.env.get_template(self.text_template_name)

            # Subject must be a single line
            subject = subject_template.render(context).strip().replace("\n", " ")

            return {
                "subject": subject,
                "html_body": html_template.render(context),
                "text_body": text_template.render(context),
            }

        except TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e

    def render_reminder(
        self, license: License, message: str, tier: Tier, sender_name: str
    ) -> Dict[str, str]:
        """Render the email for one reminder."""
        return self.render(
            build_layout_context(license, message, tier, sender_name, tz=self.timezone)
        )


def build_layout_context(
    license: License,
    message: str,
    tier: Tier,
    sender_name: str,
    tz: Optional[tzinfo] = None,
) -> Dict[str, Any]:
    """Build the Jinja2 context for a reminder email.

    Args:
        license: License the reminder is about
        message: Rendered reminder text
        tier: Reminder tier
        sender_name: Display name of the sender
        tz: Zone the renewal date is shown in (UTC if None)

    Returns:
        Dictionary with message, tier, tier_label, sender_name and license fields
    """
    return {
        "message": message,
        "tier": tier.value,
        "tier_label": TIER_LABELS[tier],
        "sender_name": sender_name,
        "license_name": license.name,
        "license_type": license.type.value,
        "department": license.department,
        "supplier": license.supplier,
        "service_owner": license.service_owner or "",
        "renewal_date": renewal_date_in(license, tz).date().isoformat(),
    }
