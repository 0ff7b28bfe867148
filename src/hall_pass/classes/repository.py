from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import RosterStudent, SchoolClass


class ClassRepository(Protocol):
    def get_by_id(self, class_id: int) -> Optional[SchoolClass]:
        raise NotImplementedError

    def get_by_join_code(self, join_code: str) -> Optional[SchoolClass]:
        raise NotImplementedError

    def create(
        self,
        *,
        organization_id: int,
        teacher_id: int,
        name: str,
        period_order: int,
        join_code: str,
    ) -> int:
        raise NotImplementedError

    def update_settings(
        self,
        *,
        class_id: int,
        max_concurrent_bathroom: Optional[int],
        is_queue_autonomous: bool,
    ) -> None:
        raise NotImplementedError

    def set_auto_clear(self, *, class_id: int, enabled: bool) -> None:
        raise NotImplementedError

    def set_auto_clear_for_teacher(self, *, teacher_id: int, enabled: bool) -> int:
        """Return the number of classes updated."""

        raise NotImplementedError

    def list_for_teacher(self, teacher_id: int) -> Sequence[SchoolClass]:
        """Ordered by period."""

        raise NotImplementedError

    def list_for_student(self, student_id: int) -> Sequence[SchoolClass]:
        raise NotImplementedError

    def list_auto_clear(self, *, organization_id: int, period_order: int) -> Sequence[SchoolClass]:
        raise NotImplementedError

    def enroll(self, *, class_id: int, student_id: int) -> None:
        raise NotImplementedError

    def is_enrolled(self, *, class_id: int, student_id: int) -> bool:
        raise NotImplementedError

    def list_students(self, class_id: int) -> Sequence[RosterStudent]:
        """Enrolled students ordered by name."""

        raise NotImplementedError
