"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import Any, Dict, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, Field, field_validator, model_validator

from license_renewals.domain.models import Tier
from license_renewals.utils.timestamps import resolve_timezone

from .duration import DurationParseError, parse_duration, validate_duration_range

# Bounds for scheduler.check_interval, in seconds
MIN_CHECK_INTERVAL = 60
MAX_CHECK_INTERVAL = 86400

DEFAULT_EMAIL_TEMPLATES: Dict[Tier, str] = {
    Tier.THIRTY_DAYS: (
        "Your license {LICENSE_NAME} will expire in 30 days on {EXPIRY_DATE}. "
        "Please take action."
    ),
    Tier.SEVEN_DAYS: (
        "REMINDER: Your license {LICENSE_NAME} will expire in 7 days on {EXPIRY_DATE}."
    ),
    Tier.ONE_DAY: "URGENT: Your license {LICENSE_NAME} expires tomorrow on {EXPIRY_DATE}!",
}


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class EmailTransport(str, Enum):
    """Delivery backends for reminder emails."""

    EMAILJS = "emailjs"
    SMTP = "smtp"


class SchedulerConfig(BaseModel):
    """Timing of the automatic daily check."""

    check_interval: str = Field("1h", description="How often the daily check is attempted")
    timezone: str = Field("UTC", description="IANA timezone defining calendar days")

    # Computed field
    check_interval_seconds: Optional[int] = None

    @field_validator("check_interval")
    @classmethod
    def validate_check_interval(cls, v: str) -> str:
        """Validate and parse the check interval."""
        try:
            seconds = parse_duration(v)
            validate_duration_range(
                seconds, min_seconds=MIN_CHECK_INTERVAL, max_seconds=MAX_CHECK_INTERVAL
            )
            return v
        except DurationParseError as e:
            raise ValueError(str(e)) from e

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Ensure the timezone name resolves."""
        resolve_timezone(v)
        return v.strip()

    @model_validator(mode="after")
    def compute_interval_seconds(self):
        self.check_interval_seconds = parse_duration(self.check_interval)
        return self


class NotificationSettings(BaseModel):
    """Reminder switch and per-tier message templates."""

    enabled: bool = Field(True, description="Master switch for reminder emails")
    email_templates: Dict[Tier, str] = Field(
        default_factory=lambda: dict(DEFAULT_EMAIL_TEMPLATES),
        description="Reminder text per tier (thirtyDays, sevenDays, oneDay)",
    )
    date_format: str = Field(
        "%m/%d/%Y", min_length=1, description="strftime pattern for {EXPIRY_DATE}"
    )

    @field_validator("email_templates", mode="before")
    @classmethod
    def merge_default_templates(cls, v: Any) -> Any:
        """Fill tiers missing from a partial override with the default text."""
        if v is None:
            v = {}
        if not isinstance(v, dict):
            return v
        merged = {tier.value: text for tier, text in DEFAULT_EMAIL_TEMPLATES.items()}
        for key, text in v.items():
            merged[key.value if isinstance(key, Tier) else str(key)] = text
        return merged

    def template_for(self, tier: Tier) -> str:
        """Get the reminder text for a tier."""
        return self.email_templates.get(tier, DEFAULT_EMAIL_TEMPLATES[tier])


class EmailSettings(BaseModel):
    """Email provider credentials, sender identity and delivery tuning."""

    provider_id: str = Field("", description="EmailJS service id or provider account id")
    template_id: str = Field("", description="EmailJS template id")
    public_key: str = Field("", description="EmailJS public key (user id)")
    sender_email: str = Field("", description="Address reminders are sent from")
    sender_name: str = Field("License Manager", description="Display name of the sender")
    transport: EmailTransport = Field(
        EmailTransport.EMAILJS, description="Delivery backend (emailjs or smtp)"
    )
    automatic_sending: bool = Field(
        True, description="Whether scheduled checks send reminders"
    )
    use_tls: bool = Field(True, description="Use TLS/STARTTLS for secure connection")
    max_retries: int = Field(
        3, ge=0, le=10, description="Number of retry attempts for failed email sends"
    )
    retry_backoff_multiplier: float = Field(
        2.0, ge=1.0, le=5.0, description="Exponential backoff multiplier for retries"
    )
    retry_initial_delay: int = Field(
        5, ge=1, le=60, description="Initial retry delay in seconds"
    )
    request_timeout: int = Field(
        30, ge=1, le=120, description="HTTP timeout for provider API calls (seconds)"
    )

    model_config = {"use_enum_values": True}

    @field_validator("provider_id", "template_id", "public_key", "sender_name")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Strip whitespace from string fields."""
        return v.strip()

    @field_validator("sender_email")
    @classmethod
    def validate_sender_email(cls, v: str) -> str:
        """Validate the sender address when one is given."""
        v = v.strip()
        if not v:
            return v
        try:
            return validate_email(v, check_deliverability=False).normalized
        except EmailNotValidError as e:
            raise ValueError(f"Invalid sender_email '{v}': {e}") from e

    def is_configured(self) -> bool:
        """Check that every field required for dispatch is present."""
        return all(
            (self.provider_id, self.template_id, self.public_key, self.sender_email)
        )

    def missing_fields(self) -> list[str]:
        """Names of the required fields that are empty."""
        return [
            name
            for name in ("provider_id", "template_id", "public_key", "sender_email")
            if not getattr(self, name)
        ]


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the license renewal reminder service."""

    scheduler: SchedulerConfig = Field(
        default_factory=SchedulerConfig, description="Check timing"
    )
    notifications: NotificationSettings = Field(
        default_factory=NotificationSettings, description="Reminder templates"
    )
    email: EmailSettings = Field(default_factory=EmailSettings, description="Email settings")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
