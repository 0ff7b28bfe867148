from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time


@dataclass(frozen=True)
class Period:
    """A bell-schedule slot. Classes point at it through ``period_order``."""

    period_id: int
    organization_id: int
    period_order: int
    name: str
    start_time: time
    end_time: time

    def contains(self, moment: time) -> bool:
        return self.start_time <= moment < self.end_time

    def ends_on(self, now: datetime) -> datetime:
        return datetime.combine(now.date(), self.end_time)
