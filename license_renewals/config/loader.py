"""Reads config.yaml and the environment into validated settings objects."""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .models import AppConfig, EmailTransport
from .validators import check_for_warnings, emit_warnings

DEFAULT_CONFIG_LOCATIONS = (
    Path("config.yaml"),
    Path("config") / "config.yaml",
)

_TYPE_ERRORS = {
    "string_type": "a string",
    "int_type": "an integer",
    "int_parsing": "an integer",
    "bool_type": "true or false",
    "bool_parsing": "true or false",
    "dict_type": "a mapping",
}


def load_config(config_path: Optional[Path] = None) -> tuple[AppConfig, EnvironmentConfig]:
    """
    Build the runtime settings.

    The YAML file is ``config_path`` when given, otherwise the first of
    DEFAULT_CONFIG_LOCATIONS that exists. SMTP environment variables are
    only required when ``email.transport`` is ``smtp``.

    Raises:
        ConfigurationError: If the file is missing or invalid, or the
            environment is incomplete for the chosen transport
    """
    app_config = parse_config(_read_yaml(_find_config_file(config_path)))
    env_config = load_environment_config(
        require_smtp=app_config.email.transport == EmailTransport.SMTP
    )
    return app_config, env_config


def parse_config(config_dict: Any) -> AppConfig:
    """
    Validate a raw configuration mapping into an AppConfig.

    Non-fatal problems (disabled reminders, unknown template placeholders,
    incomplete email settings) are emitted as warnings first.

    Raises:
        ConfigurationError: If the mapping does not match the schema
    """
    if not config_dict:
        raise ConfigurationError(
            "Configuration file contains no settings",
            suggestions=["Start from config.example.yaml"],
        )
    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            "Configuration must be a mapping of sections (scheduler, notifications, email, logging)",
            suggestions=["Start from config.example.yaml"],
        )

    found = check_for_warnings(config_dict)
    if found:
        emit_warnings(found)

    try:
        return AppConfig.model_validate(config_dict)
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid license reminder configuration",
            errors=_describe_errors(e),
            suggestions=[
                "Reminder templates are keyed by thirtyDays, sevenDays or oneDay",
                "check_interval takes durations like 30m, 1h or PT1H",
                "email.transport is either 'emailjs' or 'smtp'",
            ],
        ) from e


def _read_yaml(config_file: Path) -> Dict[str, Any]:
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"No configuration file at {config_file}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"{config_file} is not valid YAML: {e}",
            suggestions=["Indent nested keys with spaces, never tabs"],
        ) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {config_file}: {e}") from e


def _describe_errors(error: ValidationError) -> List[str]:
    """One readable line per pydantic error, prefixed with its dotted path."""
    lines = []
    for item in error.errors():
        path = ".".join(str(part) for part in item["loc"]) or "(root)"
        kind = item["type"]
        if kind == "missing":
            lines.append(f"{path}: required")
        elif kind in _TYPE_ERRORS:
            lines.append(f"{path}: expected {_TYPE_ERRORS[kind]}, got {item.get('input')!r}")
        else:
            lines.append(f"{path}: {item['msg']}")
    return lines


def _find_config_file(config_path: Optional[Path] = None) -> Path:
    if config_path:
        if not config_path.exists():
            raise ConfigurationError(f"--config points to a missing file: {config_path}")
        return config_path

    for candidate in DEFAULT_CONFIG_LOCATIONS:
        if candidate.exists():
            return candidate

    raise ConfigurationError(
        "No configuration file found",
        errors=[f"Looked for {candidate}" for candidate in DEFAULT_CONFIG_LOCATIONS],
        suggestions=["Copy config.example.yaml to config.yaml, or pass --config PATH"],
    )


def validate_config_file(config_path: Path) -> bool:
    """
    Check a config file without touching the environment.

    Prints the outcome and returns whether the file is valid.
    """
    try:
        parse_config(_read_yaml(config_path))
    except ConfigurationError as e:
        print(f"✗ {config_path} is invalid:\n{e}")
        return False
    print(f"✓ {config_path} is valid")
    return True
