from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Destination, PassStatus


@dataclass(frozen=True)
class Pass:
    """Domain entity: one hallway-exit event.

    Timestamps are set once each; ``is_quota_override`` is fixed at approval.
    """

    pass_id: int
    student_id: int
    class_id: int
    destination: Destination
    status: PassStatus
    requested_at: datetime
    approved_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    denied_at: Optional[datetime] = None
    denied_by: Optional[int] = None
    returned_at: Optional[datetime] = None
    confirmed_by: Optional[int] = None
    expected_return_at: Optional[datetime] = None
    is_quota_override: bool = False
    student_name: Optional[str] = None
    class_name: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return not self.status.is_terminal
