"""License lifecycle: status classification and dashboard summaries."""

from .classifier import PENDING_WINDOW_MONTHS, classify
from .dashboard import (
    DASHBOARD_PENDING_WINDOW_DAYS,
    DashboardSummary,
    RenewalAlert,
    UpcomingRenewal,
    dashboard_status,
    renewal_alerts,
    summarize_licenses,
    upcoming_renewals,
)

__all__ = [
    "classify",
    "PENDING_WINDOW_MONTHS",
    "DASHBOARD_PENDING_WINDOW_DAYS",
    "dashboard_status",
    "summarize_licenses",
    "upcoming_renewals",
    "renewal_alerts",
    "DashboardSummary",
    "UpcomingRenewal",
    "RenewalAlert",
]
