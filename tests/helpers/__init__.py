"""Test helper utilities for license renewal tests."""

from .license_fixtures import (
    SAMPLE_LICENSES,
    load_fixture_licenses,
    load_fixture_records,
)

__all__ = ["SAMPLE_LICENSES", "load_fixture_licenses", "load_fixture_records"]
