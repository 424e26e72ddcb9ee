"""SMTP transport for reminder emails.

``SMTPClient`` does the blocking smtplib work for one message;
``SmtpEmailDispatcher`` builds reminder emails and drives it with retries.
"""

import asyncio
import smtplib
import ssl
from email.message import EmailMessage
from typing import Callable, Optional

from email_validator import EmailNotValidError, validate_email

from license_renewals.config.environment import EnvironmentConfig
from license_renewals.config.models import EmailSettings
from license_renewals.domain.models import License, Tier
from license_renewals.logging import get_logger
from license_renewals.logging.context import log_context

from .layout import EmailLayoutRenderer
from .models import NotificationTemplateError, SMTPDeliveryError

logger = get_logger(__name__, component="smtp")

# Upper bound for a single retry delay, in seconds
MAX_RETRY_DELAY = 60.0

IMPLICIT_TLS_PORT = 465


class SMTPClient:
    """Blocking smtplib sender; one connection per message.

    The connection factories are injectable so tests never open sockets.
    """

    def __init__(
        self,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
    ):
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL

    def _connect(self, env_config: EnvironmentConfig, use_tls: bool):
        host, port = env_config.smtp_host, env_config.smtp_port

        if port == IMPLICIT_TLS_PORT:
            logger.debug(f"Opening implicit TLS connection to {host}:{port}")
            return self.smtp_ssl_factory(host, port, context=ssl.create_default_context())

        logger.debug(f"Opening connection to {host}:{port} (starttls={use_tls})")
        smtp = self.smtp_factory(host, port)
        if use_tls:
            smtp.starttls(context=ssl.create_default_context())
        return smtp

    def send(
        self,
        message: EmailMessage,
        env_config: EnvironmentConfig,
        use_tls: bool = True,
    ) -> None:
        """Deliver one message.

        Port 465 gets an SMTP_SSL connection; other ports connect in plain
        text and upgrade with STARTTLS when ``use_tls`` is set. Credentials
        are used only when both SMTP_USER and SMTP_PASS are present.

        Raises:
            SMTPDeliveryError: On any SMTP protocol or socket failure
        """
        smtp = None
        try:
            smtp = self._connect(env_config, use_tls)
            if env_config.has_smtp_credentials:
                smtp.login(env_config.smtp_user, env_config.smtp_pass)
            smtp.send_message(message)
        except smtplib.SMTPException as e:
            raise SMTPDeliveryError(f"SMTP error while sending to {message['To']}: {e}") from e
        except OSError as e:
            raise SMTPDeliveryError(
                f"Network error talking to {env_config.smtp_host}:{env_config.smtp_port}: {e}"
            ) from e
        finally:
            if smtp is not None:
                _close_quietly(smtp)

        logger.debug(f"SMTP server accepted message for {message['To']}")


def _close_quietly(smtp) -> None:
    try:
        smtp.quit()
    except (smtplib.SMTPException, OSError) as e:
        logger.warning(f"Ignoring error while closing SMTP connection: {e}")


def normalize_recipient(address: str) -> str:
    """Validate a recipient address and return its normalized form.

    Raises:
        ValueError: If the address is invalid
    """
    try:
        return validate_email(address.strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValueError(f"Invalid recipient address '{address}': {e}") from e


def build_sender_address(email_settings: EmailSettings) -> str:
    """Build the 'From' header, e.g. "License Manager <it@example.com>"."""
    return f"{email_settings.sender_name} <{email_settings.sender_email}>"


class SmtpEmailDispatcher:
    """Dispatch port that delivers reminders over SMTP.

    Builds a multipart message (plain text plus HTML alternative) with the
    Jinja2 layout, then sends it with exponential backoff between attempts.
    Blocking smtplib calls run in a worker thread so concurrent dispatches
    overlap on the event loop.
    """

    def __init__(
        self,
        email_settings: EmailSettings,
        env_config: EnvironmentConfig,
        smtp_client: Optional[SMTPClient] = None,
        layout_renderer: Optional[EmailLayoutRenderer] = None,
        sleep: Optional[Callable] = None,
    ):
        """Initialize the dispatcher.

        Args:
            email_settings: Sender identity and retry settings
            env_config: Environment configuration with SMTP connection settings
            smtp_client: SMTP client instance (creates default if None)
            layout_renderer: Layout renderer instance (creates default if None)
            sleep: Awaitable sleep used between retries (asyncio.sleep if None)
        """
        self.email_settings = email_settings
        self.env_config = env_config
        self.smtp_client = smtp_client or SMTPClient()
        self.layout_renderer = layout_renderer or EmailLayoutRenderer()
        self.sleep = sleep or asyncio.sleep

    def build_message(self, license: License, message: str, tier: Tier) -> EmailMessage:
        """Build the email for one reminder.

        Raises:
            ValueError: If the recipient address is invalid
            NotificationTemplateError: If the layout cannot be rendered
        """
        recipient = normalize_recipient(license.service_owner_email or "")
        rendered = self.layout_renderer.render_reminder(
            license, message, tier, self.email_settings.sender_name
        )

        email = EmailMessage()
        email["Subject"] = rendered["subject"]
        email["From"] = build_sender_address(self.email_settings)
        email["To"] = recipient
        email.set_content(rendered["text_body"])
        email.add_alternative(rendered["html_body"], subtype="html")
        return email

    async def send(self, license: License, message: str, tier: Tier) -> bool:
        """Send one reminder, retrying transport failures.

        Returns:
            True when the message was accepted by the SMTP server, False otherwise
        """
        with log_context(license_id=license.id, tier=tier.value):
            try:
                email = self.build_message(license, message, tier)
            except (ValueError, NotificationTemplateError) as e:
                logger.error(
                    f"Cannot build reminder email for '{license.name}': {e}",
                    extra={"event": "dispatch.build_failed"},
                )
                return False

            settings = self.email_settings
            max_attempts = settings.max_retries + 1

            for attempt in range(1, max_attempts + 1):
                if attempt > 1:
                    delay = min(
                        settings.retry_initial_delay
                        * (settings.retry_backoff_multiplier ** (attempt - 2)),
                        MAX_RETRY_DELAY,
                    )
                    logger.warning(
                        f"Retrying delivery for '{license.name}' "
                        f"(attempt {attempt}/{max_attempts}) after {delay:.1f}s delay",
                        extra={"event": "dispatch.retry", "attempt": attempt},
                    )
                    await self.sleep(delay)

                try:
                    await asyncio.to_thread(
                        self.smtp_client.send, email, self.env_config, settings.use_tls
                    )
                    logger.info(
                        f"Reminder sent for '{license.name}' to {email['To']} (attempts: {attempt})",
                        extra={"event": "dispatch.sent", "attempt": attempt},
                    )
                    return True
                except SMTPDeliveryError as e:
                    logger.warning(
                        f"SMTP delivery failed for '{license.name}' "
                        f"(attempt {attempt}/{max_attempts}): {e}",
                        extra={
                            "event": "dispatch.attempt_failed",
                            "attempt": attempt,
                            "retry_remaining": attempt < max_attempts,
                        },
                    )

            logger.error(
                f"SMTP delivery failed for '{license.name}' after {max_attempts} attempts",
                extra={"event": "dispatch.failed", "attempts": max_attempts},
            )
            return False
