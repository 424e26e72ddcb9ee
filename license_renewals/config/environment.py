"""Settings read from the process environment (and ``.env`` via python-dotenv)."""

import os
from typing import List, Optional

from .exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./data/license_renewals.db"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class EnvironmentConfig:
    """Secrets and deployment settings that do not belong in config.yaml."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_pass: Optional[str] = None,
        emailjs_access_token: Optional[str] = None,
        log_level: Optional[str] = None,
        database_url: Optional[str] = None,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_pass = smtp_pass
        self.emailjs_access_token = emailjs_access_token
        self.log_level = log_level
        self.database_url = database_url or DEFAULT_DATABASE_URL

    @property
    def has_smtp_credentials(self) -> bool:
        return bool(self.smtp_user and self.smtp_pass)


def _env(name: str) -> Optional[str]:
    """Read a variable, treating an empty value as unset."""
    return os.getenv(name) or None


def _parse_port(raw: Optional[str], errors: List[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        port = int(raw)
    except ValueError:
        errors.append(f"SMTP_PORT must be an integer between 1 and 65535 (got '{raw}')")
        return None
    if not 1 <= port <= 65535:
        errors.append(f"SMTP_PORT must be an integer between 1 and 65535 (got {port})")
    return port


def load_environment_config(require_smtp: bool = False) -> EnvironmentConfig:
    """
    Collect environment settings, reporting every problem at once.

    ``SMTP_HOST`` and ``SMTP_PORT`` are only required when the smtp
    transport is selected (``require_smtp``). ``SMTP_USER`` and
    ``SMTP_PASS`` must be given together. ``EMAILJS_ACCESS_TOKEN``,
    ``LOG_LEVEL`` and ``DATABASE_URL`` are optional.

    Raises:
        ConfigurationError: Listing each invalid or missing variable
    """
    errors: List[str] = []

    smtp_host = _env("SMTP_HOST")
    smtp_port_raw = _env("SMTP_PORT")
    smtp_user = _env("SMTP_USER")
    smtp_pass = _env("SMTP_PASS")
    log_level = _env("LOG_LEVEL")

    if require_smtp:
        for name, value in (("SMTP_HOST", smtp_host), ("SMTP_PORT", smtp_port_raw)):
            if value is None:
                errors.append(f"{name} is required for the smtp transport")

    smtp_port = _parse_port(smtp_port_raw, errors)

    if log_level and log_level.upper() not in LOG_LEVELS:
        errors.append(f"LOG_LEVEL '{log_level}' is not one of {', '.join(LOG_LEVELS)}")

    if bool(smtp_user) != bool(smtp_pass):
        present = "SMTP_USER" if smtp_user else "SMTP_PASS"
        errors.append(f"SMTP_USER and SMTP_PASS must be set together (only {present} is set)")

    if errors:
        raise ConfigurationError(
            "Invalid environment configuration",
            errors=errors,
            suggestions=[
                "Start from .env.example when creating .env",
                "Unset SMTP_* variables when email.transport is 'emailjs'",
            ],
        )

    return EnvironmentConfig(
        smtp_host=smtp_host,
        smtp_port=smtp_port,
        smtp_user=smtp_user,
        smtp_pass=smtp_pass,
        emailjs_access_token=_env("EMAILJS_ACCESS_TOKEN"),
        log_level=log_level.upper() if log_level else None,
        database_url=_env("DATABASE_URL"),
    )
