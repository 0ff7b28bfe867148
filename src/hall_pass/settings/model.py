from __future__ import annotations

from dataclasses import dataclass

from ..core.constants import (
    DEFAULT_BATHROOM_EXPECTED_MINUTES,
    DEFAULT_LOCKER_EXPECTED_MINUTES,
    DEFAULT_MAX_CONCURRENT_BATHROOM,
    DEFAULT_OFFICE_EXPECTED_MINUTES,
    DEFAULT_OTHER_EXPECTED_MINUTES,
    DEFAULT_WEEKLY_BATHROOM_LIMIT,
)
from ..core.enums import Destination


@dataclass(frozen=True)
class OrganizationSettings:
    """Tenant-wide pass configuration.

    Passed explicitly to the admission policy; there is no global instance.
    """

    organization_id: int
    weekly_bathroom_limit: int = DEFAULT_WEEKLY_BATHROOM_LIMIT
    max_concurrent_bathroom: int = DEFAULT_MAX_CONCURRENT_BATHROOM
    bathroom_expected_minutes: int = DEFAULT_BATHROOM_EXPECTED_MINUTES
    locker_expected_minutes: int = DEFAULT_LOCKER_EXPECTED_MINUTES
    office_expected_minutes: int = DEFAULT_OFFICE_EXPECTED_MINUTES

    @classmethod
    def defaults(cls, organization_id: int) -> "OrganizationSettings":
        return cls(organization_id=int(organization_id))

    def expected_minutes(self, destination: Destination) -> int:
        return {
            Destination.RESTROOM: self.bathroom_expected_minutes,
            Destination.LOCKER: self.locker_expected_minutes,
            Destination.OFFICE: self.office_expected_minutes,
            Destination.OTHER: DEFAULT_OTHER_EXPECTED_MINUTES,
        }[destination]
