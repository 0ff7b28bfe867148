from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Destination, FreezeType


@dataclass(frozen=True)
class PassFreeze:
    """Class-scoped block on new pass requests.

    Existing passes are never touched by a freeze.
    """

    freeze_id: int
    class_id: int
    teacher_id: int
    freeze_type: FreezeType
    started_at: datetime
    ends_at: Optional[datetime] = None
    is_active: bool = True

    def is_expired(self, now: datetime) -> bool:
        return self.ends_at is not None and now >= self.ends_at

    def is_in_effect(self, now: datetime) -> bool:
        return self.is_active and not self.is_expired(now)

    def blocks(self, destination: Destination) -> bool:
        if self.freeze_type == FreezeType.ALL:
            return True
        return destination == Destination.RESTROOM

    def seconds_remaining(self, now: datetime) -> Optional[int]:
        """Seconds until auto-unfreeze; None for a manual (open-ended) freeze."""
        if self.ends_at is None:
            return None
        return max(0, int((self.ends_at - now).total_seconds()))
