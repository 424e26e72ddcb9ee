#!/usr/bin/env python3
"""Sample check harness for end-to-end validation.

Seeds a database with the fixture licenses (renewal dates relative to
today), prints the dashboard summary and renewal alerts, then runs one
manual check with the in-memory dispatcher and prints what would be sent.
No network access and no email credentials are needed.

Usage:
    python scripts/run_sample_check.py
    python scripts/run_sample_check.py --database /tmp/sample.db
    python scripts/run_sample_check.py --fixtures tests/fixtures/sample_licenses.yaml
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from license_renewals.config.models import EmailSettings, NotificationSettings
from license_renewals.lifecycle import renewal_alerts, summarize_licenses, upcoming_renewals
from license_renewals.logging.config import configure_logging
from license_renewals.notifications import RecordingDispatcher
from license_renewals.persistence import (
    LicenseRepository,
    SqlWatermarkStore,
    close_database,
    get_session,
    init_database,
    load_all_licenses,
)
from license_renewals.scheduler import NotificationScheduler
from license_renewals.utils.timestamps import utc_now
from tests.helpers.license_fixtures import SAMPLE_LICENSES, load_fixture_licenses

SAMPLE_EMAIL_SETTINGS = EmailSettings(
    provider_id="service_sample",
    template_id="template_sample",
    public_key="sample-public-key",
    sender_email="licenses@example.com",
)


def print_header(title: str) -> None:
    """Print a formatted section header."""
    width = 80
    print("\n" + "=" * width)
    print(f" {title}")
    print("=" * width + "\n")


def print_table(rows, headers) -> None:
    """Print rows as a boxed table."""
    widths = [
        max(len(str(header)), *(len(str(row[i])) for row in rows)) if rows else len(header)
        for i, header in enumerate(headers)
    ]
    line = "+".join("-" * (width + 2) for width in widths)
    print(f"+{line}+")
    print("| " + " | ".join(f"{h:<{w}}" for h, w in zip(headers, widths)) + " |")
    print(f"+{line}+")
    for row in rows:
        print("| " + " | ".join(f"{str(v):<{w}}" for v, w in zip(row, widths)) + " |")
    print(f"+{line}+")


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a sample renewal check on fixture data")
    parser.add_argument(
        "--database",
        default="sqlite://",
        help="Database URL (default: in-memory SQLite)",
    )
    parser.add_argument(
        "--fixtures",
        type=Path,
        default=SAMPLE_LICENSES,
        help="YAML file with sample licenses",
    )
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    configure_logging(level=args.log_level)
    now = utc_now()

    init_database(args.database)
    try:
        with get_session() as session:
            repository = LicenseRepository(session)
            for license in load_fixture_licenses(now, args.fixtures):
                repository.upsert(license)

        licenses = load_all_licenses()

        print_header("Dashboard")
        summary = summarize_licenses(licenses, now)
        print_table(
            [
                ("Total", summary.total),
                ("Active", summary.active),
                ("Pending (30 days)", summary.pending),
                ("Expired", summary.expired),
                ("Monthly cost", f"{summary.total_monthly_cost:.2f}"),
            ],
            ("Metric", "Value"),
        )

        print_header("Upcoming Renewals")
        print_table(
            [(item.license.name, item.days_remaining) for item in upcoming_renewals(licenses, now)],
            ("License", "Days remaining"),
        )

        print_header("Alerts")
        print_table(
            [(alert.severity, alert.title, alert.description) for alert in renewal_alerts(licenses, now)],
            ("Severity", "Title", "Description"),
        )

        dispatcher = RecordingDispatcher()
        scheduler = NotificationScheduler(
            license_source=load_all_licenses,
            dispatcher=dispatcher,
            watermark_store=SqlWatermarkStore(),
        )
        report = asyncio.run(
            scheduler.trigger_manual_check(SAMPLE_EMAIL_SETTINGS, NotificationSettings())
        )

        print_header(f"Manual Check ({report.status})")
        print_table(
            [
                (t.tier.value, t.matched, t.skipped_no_recipient, t.sent, t.failed)
                for t in report.tiers
            ],
            ("Tier", "Matched", "No recipient", "Sent", "Failed"),
        )
        for record in dispatcher.sent:
            print(f"  -> {record.recipient} [{record.tier.value}] {record.message}")

        return 0 if report.total_failed == 0 else 1
    finally:
        close_database()


if __name__ == "__main__":
    sys.exit(main())
