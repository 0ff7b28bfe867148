from __future__ import annotations

import logging
from dataclasses import asdict

from ..common.validators import require_positive_int
from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from .model import OrganizationSettings
from .repository import SettingsRepository

logger = logging.getLogger(__name__)


class SettingsService:
    def __init__(self, settings: SettingsRepository):
        self._settings = settings

    def get(self, organization_id: int) -> OrganizationSettings:
        """Settings for an organization, or the defaults when no row exists."""
        found = self._settings.get(int(organization_id))
        if found is None:
            logger.debug("No settings row for organization %s, using defaults", organization_id)
            return OrganizationSettings.defaults(organization_id)
        return found

    def update(
        self,
        *,
        current_role: Role,
        organization_id: int,
        weekly_bathroom_limit,
        max_concurrent_bathroom,
        bathroom_expected_minutes,
        locker_expected_minutes,
        office_expected_minutes,
    ) -> OrganizationSettings:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only administrators can change organization settings")

        settings = OrganizationSettings(
            organization_id=int(organization_id),
            weekly_bathroom_limit=require_positive_int(weekly_bathroom_limit, "Weekly restroom limit"),
            max_concurrent_bathroom=require_positive_int(max_concurrent_bathroom, "Max concurrent restroom passes"),
            bathroom_expected_minutes=require_positive_int(bathroom_expected_minutes, "Restroom minutes"),
            locker_expected_minutes=require_positive_int(locker_expected_minutes, "Locker minutes"),
            office_expected_minutes=require_positive_int(office_expected_minutes, "Office minutes"),
        )
        self._settings.upsert(settings)
        logger.info("Updated settings for organization %s: %s", organization_id, asdict(settings))
        return settings
