from __future__ import annotations

from typing import Optional, Protocol

from .model import OrganizationSettings


class SettingsRepository(Protocol):
    def get(self, organization_id: int) -> Optional[OrganizationSettings]:
        raise NotImplementedError

    def upsert(self, settings: OrganizationSettings) -> None:
        raise NotImplementedError
