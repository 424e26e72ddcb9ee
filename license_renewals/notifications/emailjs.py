"""EmailJS transport for reminder emails.

Posts reminders to the EmailJS REST API. The EmailJS template configured in
the dashboard receives ``to_email``, ``from_name``, ``subject`` and
``message`` plus a few license fields it may choose to use.
"""

import asyncio
from datetime import tzinfo
from typing import Any, Dict, Optional

import requests

from license_renewals.config.environment import EnvironmentConfig
from license_renewals.config.models import EmailSettings
from license_renewals.domain.models import License, Tier
from license_renewals.logging import get_logger
from license_renewals.logging.context import log_context

from .layout import EmailLayoutRenderer
from .models import EmailJSDeliveryError, NotificationTemplateError
from .templates import renewal_date_in

logger = get_logger(__name__, component="emailjs")

EMAILJS_SEND_URL = "https://api.emailjs.com/api/v1.0/email/send"


class EmailJSDispatcher:
    """Dispatch port that delivers reminders through the EmailJS API.

    Attributes:
        email_settings: Provider, template and key identifiers plus sender identity
        access_token: Optional EmailJS private key (strict mode)
    """

    def __init__(
        self,
        email_settings: EmailSettings,
        env_config: Optional[EnvironmentConfig] = None,
        session: Optional[requests.Session] = None,
        layout_renderer: Optional[EmailLayoutRenderer] = None,
        url: str = EMAILJS_SEND_URL,
        timezone: Optional[tzinfo] = None,
    ) -> None:
        self.email_settings = email_settings
        self.access_token = env_config.emailjs_access_token if env_config else None
        self.url = url
        self.timezone = timezone
        self.layout_renderer = layout_renderer or EmailLayoutRenderer(timezone=timezone)
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": "LicenseRenewals/1.0"})

    def build_payload(self, license: License, message: str, tier: Tier) -> Dict[str, Any]:
        """Build the JSON body for one send request.

        Raises:
            NotificationTemplateError: If the subject cannot be rendered
        """
        settings = self.email_settings
        subject = self.layout_renderer.render_reminder(
            license, message, tier, settings.sender_name
        )["subject"]

        payload: Dict[str, Any] = {
            "service_id": settings.provider_id,
            "template_id": settings.template_id,
            "user_id": settings.public_key,
            "template_params": {
                "to_email": license.service_owner_email,
                "to_name": license.service_owner or "",
                "from_name": settings.sender_name,
                "from_email": settings.sender_email,
                "subject": subject,
                "message": message,
                "license_name": license.name,
                "expiry_date": renewal_date_in(license, self.timezone).date().isoformat(),
                "tier": tier.value,
            },
        }
        if self.access_token:
            payload["accessToken"] = self.access_token
        return payload

    def post(self, payload: Dict[str, Any]) -> None:
        """Send one request to EmailJS.

        Raises:
            EmailJSDeliveryError: On timeout, connection failure or a non-2xx response
        """
        timeout = self.email_settings.request_timeout
        try:
            response = self._session.post(self.url, json=payload, timeout=timeout)
        except requests.exceptions.Timeout as e:
            raise EmailJSDeliveryError(
                f"EmailJS request timed out after {timeout} seconds"
            ) from e
        except requests.exceptions.RequestException as e:
            raise EmailJSDeliveryError(f"EmailJS request failed: {e}") from e

        if response.status_code >= 400:
            # EmailJS answers errors with a plain text body
            detail = (response.text or response.reason or "").strip()
            raise EmailJSDeliveryError(f"EmailJS HTTP {response.status_code}: {detail}")

    async def send(self, license: License, message: str, tier: Tier) -> bool:
        """Send one reminder.

        Returns:
            True when EmailJS accepted the request, False otherwise
        """
        with log_context(license_id=license.id, tier=tier.value):
            if not license.service_owner_email:
                logger.error(
                    f"License '{license.name}' has no service owner email",
                    extra={"event": "dispatch.build_failed"},
                )
                return False

            try:
                payload = self.build_payload(license, message, tier)
                await asyncio.to_thread(self.post, payload)
            except NotificationTemplateError as e:
                logger.error(
                    f"Cannot build reminder for '{license.name}': {e}",
                    extra={"event": "dispatch.build_failed"},
                )
                return False
            except EmailJSDeliveryError as e:
                logger.error(
                    f"EmailJS delivery failed for '{license.name}': {e}",
                    extra={"event": "dispatch.failed", "error_type": type(e).__name__},
                )
                return False

            logger.info(
                f"Reminder sent for '{license.name}' to {license.service_owner_email}",
                extra={"event": "dispatch.sent"},
            )
            return True
