"""Dashboard summaries computed from the license collection.

The dashboard uses a flat day-count window for "pending renewal"
(DASHBOARD_PENDING_WINDOW_DAYS), while the lifecycle classifier uses a
calendar-month window (classifier.PENDING_WINDOW_MONTHS). The two disagree
by up to three days depending on the month.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from license_renewals.domain.models import License, LicenseStatus
from license_renewals.utils.timestamps import (
    add_days,
    days_between,
    end_of_day,
    ensure_utc,
    start_of_day,
)

DASHBOARD_PENDING_WINDOW_DAYS = 30

# Days remaining at or below which an upcoming renewal is flagged as urgent.
URGENT_WINDOW_DAYS = 7

_SEVERITY_RANK = {"error": 0, "warning": 1, "info": 2}


@dataclass
class DashboardSummary:
    """Aggregate counts and costs for the dashboard cards.

    Attributes:
        total: Number of licenses
        active: Licenses renewing after the dashboard window
        pending: Licenses renewing within the dashboard window
        expired: Licenses whose renewal instant has passed
        total_monthly_cost: Sum of monthly costs
        cost_by_department: Monthly cost per department
    """

    total: int = 0
    active: int = 0
    pending: int = 0
    expired: int = 0
    total_monthly_cost: float = 0.0
    cost_by_department: Dict[str, float] = field(default_factory=dict)


@dataclass
class UpcomingRenewal:
    """A license due for renewal soon, with calendar days remaining."""

    license: License
    days_remaining: int


@dataclass
class RenewalAlert:
    """In-app alert about an expired or soon-expiring license."""

    id: str
    title: str
    description: str
    severity: str  # "error", "warning", "info"
    license_id: Optional[str]
    created_at: datetime


def dashboard_status(renewal_date: datetime, now: datetime) -> LicenseStatus:
    """Classify a license with the dashboard's flat 30-day window.

    EXPIRED if the renewal instant has passed, PENDING if it falls between
    the start of today and the end of today + 30 days, ACTIVE otherwise.
    """
    renewal = ensure_utc(renewal_date)
    if renewal < ensure_utc(now):
        return LicenseStatus.EXPIRED

    window_end = end_of_day(add_days(start_of_day(now), DASHBOARD_PENDING_WINDOW_DAYS))
    if ensure_utc(start_of_day(now)) <= renewal <= ensure_utc(window_end):
        return LicenseStatus.PENDING
    return LicenseStatus.ACTIVE


def summarize_licenses(licenses: Iterable[License], now: datetime) -> DashboardSummary:
    """Build the dashboard summary for a license collection.

    Args:
        licenses: License collection
        now: Reference instant

    Returns:
        DashboardSummary with status counts and cost totals
    """
    summary = DashboardSummary()

    for license in licenses:
        summary.total += 1
        status = dashboard_status(license.renewal_date, now)
        if status is LicenseStatus.EXPIRED:
            summary.expired += 1
        elif status is LicenseStatus.PENDING:
            summary.pending += 1
        else:
            summary.active += 1

        summary.total_monthly_cost += license.monthly_cost
        department = license.department or "Unassigned"
        summary.cost_by_department[department] = (
            summary.cost_by_department.get(department, 0.0) + license.monthly_cost
        )

    return summary


def upcoming_renewals(
    licenses: Iterable[License], now: datetime, limit: int = 5
) -> List[UpcomingRenewal]:
    """List the soonest non-expired renewals within the dashboard window.

    Args:
        licenses: License collection
        now: Reference instant
        limit: Maximum number of entries returned

    Returns:
        Entries sorted by renewal date, soonest first
    """
    horizon = ensure_utc(add_days(now, DASHBOARD_PENDING_WINDOW_DAYS))
    upcoming = [
        license
        for license in licenses
        if dashboard_status(license.renewal_date, now) is not LicenseStatus.EXPIRED
        and license.renewal_date <= horizon
    ]
    upcoming.sort(key=lambda license: license.renewal_date)

    return [
        UpcomingRenewal(license=license, days_remaining=days_between(now, license.renewal_date))
        for license in upcoming[:limit]
    ]


def _plural(count: int) -> str:
    return "" if count == 1 else "s"


def renewal_alerts(licenses: Iterable[License], now: datetime) -> List[RenewalAlert]:
    """Build in-app alerts for expired and soon-expiring licenses.

    Expired licenses raise an error alert; licenses renewing within
    DASHBOARD_PENDING_WINDOW_DAYS raise a warning, escalated to an error at
    URGENT_WINDOW_DAYS or fewer. Alerts are ordered by severity, then
    newest first.
    """
    reference = ensure_utc(now)
    alerts: List[RenewalAlert] = []

    for license in licenses:
        # Whole days, truncated toward zero
        days_until = int((license.renewal_date - reference) / timedelta(days=1))

        if license.renewal_date < reference:
            days_expired = abs(days_until)
            description = (
                "Expired today"
                if days_expired == 0
                else f"Expired {days_expired} day{_plural(days_expired)} ago"
            )
            alerts.append(RenewalAlert(
                id=f"expired-{license.id}",
                title=f"{license.name} expired",
                description=description,
                severity="error",
                license_id=license.id,
                created_at=license.renewal_date,
            ))
        elif days_until <= DASHBOARD_PENDING_WINDOW_DAYS:
            alerts.append(RenewalAlert(
                id=f"expiring-{license.id}",
                title=f"{license.name} expiring soon",
                description=f"Renewal due in {days_until} day{_plural(days_until)}",
                severity="error" if days_until <= URGENT_WINDOW_DAYS else "warning",
                license_id=license.id,
                created_at=reference,
            ))

    alerts.sort(key=lambda alert: alert.created_at, reverse=True)
    alerts.sort(key=lambda alert: _SEVERITY_RANK[alert.severity])
    return alerts
