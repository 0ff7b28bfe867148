from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence, Tuple

from ..core.enums import Destination, PassStatus
from .model import Pass


class PassRepository(Protocol):
    def create(
        self,
        *,
        student_id: int,
        class_id: int,
        destination: Destination,
        status: PassStatus,
        requested_at: datetime,
        approved_at: Optional[datetime] = None,
        approved_by: Optional[int] = None,
        expected_return_at: Optional[datetime] = None,
        is_quota_override: bool = False,
    ) -> int:
        """Insert a pass unless the student already has an open one.

        Returns the new id, or 0 when an open pass blocked the insert.
        """

        raise NotImplementedError

    def get(self, pass_id: int) -> Optional[Pass]:
        raise NotImplementedError

    def get_open_for_student(self, student_id: int) -> Optional[Pass]:
        raise NotImplementedError

    def count_for_student(
        self,
        *,
        student_id: int,
        destination: Destination,
        statuses: Iterable[PassStatus],
        since: datetime,
        until: datetime,
    ) -> int:
        raise NotImplementedError

    def count_in_class(self, *, class_id: int, destination: Destination, statuses: Iterable[PassStatus]) -> int:
        raise NotImplementedError

    def list_in_class(
        self,
        *,
        class_id: int,
        statuses: Iterable[PassStatus],
        destination: Optional[Destination] = None,
    ) -> Sequence[Pass]:
        """Rows joined with the student name, oldest request first."""

        raise NotImplementedError

    def list_for_student(self, *, student_id: int, limit: int = 50) -> Sequence[Pass]:
        """Newest first."""

        raise NotImplementedError

    def list_for_organization(
        self,
        *,
        organization_id: int,
        statuses: Optional[Iterable[PassStatus]] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[Pass]:
        """Passes of every class in the organization, newest first.

        ``since`` is inclusive and ``until`` exclusive; ``None`` leaves a filter off.
        """

        raise NotImplementedError

    def update_status(
        self,
        *,
        pass_id: int,
        from_status: PassStatus,
        to_status: PassStatus,
        fields: Mapping[str, Any],
    ) -> bool:
        """Guarded write: applies only while the row is still in ``from_status``."""

        raise NotImplementedError

    def clear_class(self, *, class_id: int, now: datetime) -> Tuple[int, int]:
        """Close every open pass of a class in one transaction.

        Out-of-room passes become returned, pending ones denied.
        Returns ``(returned, denied)`` counts.
        """

        raise NotImplementedError
