"""License lifecycle classification.

Status is a pure function of the renewal date and the current instant.
It is recomputed on every use and never read back from storage.
"""

from datetime import datetime

from license_renewals.domain.models import LicenseStatus
from license_renewals.utils.timestamps import add_months, ensure_utc

# Calendar months before renewal during which a license counts as pending.
PENDING_WINDOW_MONTHS = 1


def classify(renewal_date: datetime, now: datetime) -> LicenseStatus:
    """Classify a license by its renewal date.

    - EXPIRED if the renewal instant is before ``now`` (time of day included)
    - PENDING if ``now <= renewal_date <= now + PENDING_WINDOW_MONTHS``
      using calendar-month arithmetic (day clamped to the end of the month)
    - ACTIVE otherwise

    Args:
        renewal_date: Renewal instant (naive values are treated as UTC)
        now: Reference instant (naive values are treated as UTC)

    Returns:
        LicenseStatus for the license at ``now``

    Example:
        >>> from datetime import timezone
        >>> now = datetime(2025, 1, 31, 12, 0, tzinfo=timezone.utc)
        >>> classify(datetime(2025, 2, 28, 12, 0, tzinfo=timezone.utc), now)
        <LicenseStatus.PENDING: 'pending'>
    """
    renewal = ensure_utc(renewal_date)
    reference = ensure_utc(now)

    if renewal < reference:
        return LicenseStatus.EXPIRED
    if renewal <= ensure_utc(add_months(now, PENDING_WINDOW_MONTHS)):
        return LicenseStatus.PENDING
    return LicenseStatus.ACTIVE
