from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from ..core.enums import FreezeType
from .model import PassFreeze


class FreezeRepository(Protocol):
    def get_active(self, class_id: int) -> Optional[PassFreeze]:
        raise NotImplementedError

    def create(
        self,
        *,
        class_id: int,
        teacher_id: int,
        freeze_type: FreezeType,
        started_at: datetime,
        ends_at: Optional[datetime],
    ) -> int:
        raise NotImplementedError

    def deactivate(self, *, class_id: int, freeze_id: Optional[int] = None) -> int:
        """Deactivate the active freezes of the class, or only ``freeze_id``; return the number of rows changed."""

        raise NotImplementedError
