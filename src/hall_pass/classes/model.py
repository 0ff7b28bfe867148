from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..settings.model import OrganizationSettings


@dataclass(frozen=True)
class SchoolClass:
    """A teacher-owned class students join with a code."""

    class_id: int
    organization_id: int
    teacher_id: int
    name: str
    period_order: int
    join_code: str
    max_concurrent_bathroom: Optional[int] = None
    is_queue_autonomous: bool = False
    auto_clear_queue: bool = False

    def effective_max_concurrent(self, settings: OrganizationSettings) -> int:
        if self.max_concurrent_bathroom is not None:
            return int(self.max_concurrent_bathroom)
        return int(settings.max_concurrent_bathroom)


@dataclass(frozen=True)
class RosterStudent:
    student_id: int
    full_name: str
