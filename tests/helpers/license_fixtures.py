"""Fixture-based license data for tests and the sample-check harness.

Licenses are described in YAML with ``renewal_in_days`` offsets instead of
absolute dates, so the same fixture file lines up with the reminder tiers on
any day it is loaded.
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List

import yaml

from license_renewals.domain.models import License

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"

SAMPLE_LICENSES = FIXTURES_DIR / "sample_licenses.yaml"


def load_fixture_records(fixture_path: Path = SAMPLE_LICENSES) -> List[Dict[str, Any]]:
    """Load raw license records from a YAML fixture file.

    Raises:
        FileNotFoundError: If fixture file doesn't exist
        yaml.YAMLError: If YAML parsing fails
    """
    if not fixture_path.exists():
        raise FileNotFoundError(f"Fixture file not found: {fixture_path}")

    with open(fixture_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    return data.get("licenses", [])


def load_fixture_licenses(now: datetime, fixture_path: Path = SAMPLE_LICENSES) -> List[License]:
    """Build License models whose renewal dates are ``now`` plus each record's offset."""
    licenses = []
    for record in load_fixture_records(fixture_path):
        record = dict(record)
        offset = record.pop("renewal_in_days")
        record["renewal_date"] = now + timedelta(days=offset)
        licenses.append(License.model_validate(record))
    return licenses
