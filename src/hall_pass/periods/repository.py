from __future__ import annotations

from typing import Protocol, Sequence

from .model import Period


class PeriodRepository(Protocol):
    def list_all(self) -> Sequence[Period]:
        raise NotImplementedError

    def list_for_organization(self, organization_id: int) -> Sequence[Period]:
        raise NotImplementedError
