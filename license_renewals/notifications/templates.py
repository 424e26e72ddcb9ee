"""Placeholder substitution for reminder message templates.

Reminder templates are plain strings edited by administrators, for example
``"URGENT: Your license {LICENSE_NAME} expires tomorrow on {EXPIRY_DATE}!"``.
Recognized placeholders are replaced in a single pass; anything else in
braces is left untouched.
"""

import re
from datetime import datetime, tzinfo
from typing import Callable, Dict, Optional

from license_renewals.domain.models import License

DEFAULT_DATE_FORMAT = "%m/%d/%Y"

NOT_AVAILABLE = "N/A"

_PLACEHOLDER_PATTERN = re.compile(r"\{([A-Z0-9_]+)\}")


def renewal_date_in(license: License, tz: Optional[tzinfo] = None) -> datetime:
    """Renewal instant expressed in ``tz`` (stored UTC when None)."""
    return license.renewal_date.astimezone(tz) if tz else license.renewal_date


def _expiry_date(license: License, date_format: str, tz: Optional[tzinfo]) -> str:
    return renewal_date_in(license, tz).strftime(date_format)


_RESOLVERS: Dict[str, Callable[[License, str, Optional[tzinfo]], str]] = {
    "LICENSE_TYPE": lambda license, *_: license.type.value,
    "LICENSE_NAME": lambda license, *_: license.name,
    "EXPIRY_DATE": _expiry_date,
    "CARD_LAST_4": lambda license, *_: license.credit_card_digits or NOT_AVAILABLE,
    "DEPARTMENT": lambda license, *_: license.department,
    "SUPPLIER": lambda license, *_: license.supplier,
    "COST": lambda license, *_: f"{license.monthly_cost:.2f}",
    "SERVICE_OWNER": lambda license, *_: license.service_owner or NOT_AVAILABLE,
}

RECOGNIZED_PLACEHOLDERS = frozenset(_RESOLVERS)


def render(
    template: str,
    license: License,
    date_format: str = DEFAULT_DATE_FORMAT,
    tz: Optional[tzinfo] = None,
) -> str:
    """Fill a reminder template with license fields.

    Supported placeholders: {LICENSE_TYPE}, {LICENSE_NAME}, {EXPIRY_DATE},
    {CARD_LAST_4} ("N/A" when absent), {DEPARTMENT}, {SUPPLIER}, {COST}
    and {SERVICE_OWNER} ("N/A" when absent). Unrecognized placeholders are
    kept verbatim and substituted values are never expanded again.

    Args:
        template: Template text
        license: License supplying the values
        date_format: strftime pattern for {EXPIRY_DATE}
        tz: Timezone {EXPIRY_DATE} is shown in (stored UTC when None)

    Returns:
        Rendered text (a new string; the template is not modified)

    Example:
        >>> render("Plain text", license)
        'Plain text'
    """

    def substitute(match: "re.Match[str]") -> str:
        resolver = _RESOLVERS.get(match.group(1))
        if resolver is None:
            return match.group(0)
        return resolver(license, date_format, tz)

    return _PLACEHOLDER_PATTERN.sub(substitute, template)


def find_placeholders(template: str) -> Dict[str, bool]:
    """Map every placeholder found in ``template`` to whether it is recognized."""
    return {
        name: name in RECOGNIZED_PLACEHOLDERS
        for name in _PLACEHOLDER_PATTERN.findall(template)
    }
