"""Collaborator interfaces consumed by the reminder scheduler."""

from typing import Callable, Iterable, Protocol, runtime_checkable

from license_renewals.domain.models import License, Tier

from .models import DispatchOutcome

# Returns the current full set of licenses; called once per check cycle.
LicenseSource = Callable[[], Iterable[License]]

# Receives every failed dispatch so it can be shown to a user.
FailureNotifier = Callable[[DispatchOutcome], None]


@runtime_checkable
class EmailDispatchPort(Protocol):
    """Sends one rendered reminder email.

    Implementations own transport details, timeouts and retries. ``send``
    returns True on success and False (or raises) on failure.
    """

    async def send(self, license: License, message: str, tier: Tier) -> bool:
        ...

