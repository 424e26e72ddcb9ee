"""Configuration management module for the license renewal reminder service."""

from .duration import DurationParseError, parse_duration
from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, parse_config, validate_config_file
from .models import (
    DEFAULT_EMAIL_TEMPLATES,
    AppConfig,
    EmailSettings,
    EmailTransport,
    LogFormat,
    LogLevel,
    LoggingConfig,
    NotificationSettings,
    SchedulerConfig,
)

__all__ = [
    # Main loader functions
    "load_config",
    "parse_config",
    "validate_config_file",
    "load_environment_config",
    "parse_duration",
    # Configuration models
    "AppConfig",
    "SchedulerConfig",
    "NotificationSettings",
    "EmailSettings",
    "LoggingConfig",
    "EnvironmentConfig",
    "DEFAULT_EMAIL_TEMPLATES",
    # Enums
    "EmailTransport",
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
    "DurationParseError",
]
