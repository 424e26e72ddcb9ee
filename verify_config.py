#!/usr/bin/env python3
"""Simple script to verify config.example.yaml structure."""

import sys
from pathlib import Path

import yaml

TIER_KEYS = {"thirtyDays", "sevenDays", "oneDay"}
EMAIL_REQUIRED = ("provider_id", "template_id", "public_key", "sender_email")


def verify_config_structure(config_file: Path = Path("config.example.yaml")) -> bool:
    """Verify a config file has the expected sections and keys."""
    if not config_file.exists():
        print(f"✗ {config_file} not found")
        return False

    try:
        with open(config_file, "r") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        print(f"✗ Failed to parse {config_file}: {e}")
        return False

    if not isinstance(config, dict):
        print(f"✗ {config_file} must contain a mapping")
        return False

    errors = []

    for key in ("scheduler", "notifications", "email", "logging"):
        if key in config and not isinstance(config[key], dict):
            errors.append(f"'{key}' must be a dictionary")

    templates = (config.get("notifications") or {}).get("email_templates", {})
    if isinstance(templates, dict):
        unknown = set(templates) - TIER_KEYS
        if unknown:
            errors.append(f"Unknown template tiers: {', '.join(sorted(unknown))}")
    else:
        errors.append("'notifications.email_templates' must be a dictionary")

    email = config.get("email") or {}
    transport = email.get("transport", "emailjs")
    if transport not in ("emailjs", "smtp"):
        errors.append(f"Invalid email.transport: {transport}")

    if errors:
        print(f"✗ {config_file} validation failed:")
        for error in errors:
            print(f"  - {error}")
        return False

    missing = [key for key in EMAIL_REQUIRED if not email.get(key)]
    print(f"✓ {config_file} structure is valid")
    print(f"  - Check interval: {(config.get('scheduler') or {}).get('check_interval', '1h')}")
    print(f"  - Transport: {transport}")
    print(f"  - Templates overridden: {', '.join(sorted(templates)) or 'none'}")
    if missing:
        print(f"  - Email settings incomplete: {', '.join(missing)}")
    return True


if __name__ == "__main__":
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("config.example.yaml")
    sys.exit(0 if verify_config_structure(path) else 1)
