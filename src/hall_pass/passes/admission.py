"""Weekly quota and restroom capacity rules.

Pure functions over counts the service has already read; nothing here talks
to the database. Exceeding the quota or the capacity never blocks a teacher:
it produces warnings and, at approval time, the override flag.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from ..core.constants import QUEUE_WAIT_MINUTES_PER_POSITION
from ..core.enums import Destination, PassStatus
from ..settings.model import OrganizationSettings
from .model import Pass


@dataclass(frozen=True)
class QuotaSummary:
    weekly_limit: int
    used_passes: int

    @property
    def remaining(self) -> int:
        return max(0, self.weekly_limit - self.used_passes)

    @property
    def is_exceeded(self) -> bool:
        return self.used_passes >= self.weekly_limit


@dataclass(frozen=True)
class CapacitySummary:
    max_concurrent: int
    active_count: int

    @property
    def is_full(self) -> bool:
        return self.active_count >= self.max_concurrent


@dataclass(frozen=True)
class AdmissionDecision:
    status: PassStatus
    destination: Destination
    quota: QuotaSummary
    capacity: Optional[CapacitySummary] = None
    is_quota_override: bool = False
    warnings: Tuple[str, ...] = ()

    @property
    def used_passes(self) -> int:
        return self.quota.used_passes

    @property
    def weekly_limit(self) -> int:
        return self.quota.weekly_limit

    @property
    def quota_exceeded(self) -> bool:
        return self.destination == Destination.RESTROOM and self.quota.is_exceeded

    @property
    def is_full(self) -> bool:
        return self.capacity is not None and self.capacity.is_full


class AdmissionPolicy:
    def __init__(self, settings: OrganizationSettings, *, max_concurrent: Optional[int] = None):
        self._settings = settings
        self._max_concurrent = int(max_concurrent if max_concurrent is not None else settings.max_concurrent_bathroom)

    @property
    def settings(self) -> OrganizationSettings:
        return self._settings

    def quota(self, used_passes: int) -> QuotaSummary:
        return QuotaSummary(weekly_limit=int(self._settings.weekly_bathroom_limit), used_passes=int(used_passes))

    def capacity(self, active_count: int) -> CapacitySummary:
        return CapacitySummary(max_concurrent=self._max_concurrent, active_count=int(active_count))

    def _warnings(self, quota: QuotaSummary, capacity: Optional[CapacitySummary]) -> Tuple[str, ...]:
        out: List[str] = []
        if quota.is_exceeded:
            out.append(f"Weekly restroom limit reached ({quota.used_passes}/{quota.weekly_limit})")
        if capacity is not None and capacity.is_full:
            out.append(f"Restroom is at capacity ({capacity.active_count}/{capacity.max_concurrent} out)")
        return tuple(out)

    def for_student_request(self, destination: Destination, *, used_passes: int, active_count: int = 0) -> AdmissionDecision:
        """Student requests always queue as pending; the override flag waits for approval."""
        quota = self.quota(used_passes)
        capacity = self.capacity(active_count) if destination == Destination.RESTROOM else None
        is_restroom = destination == Destination.RESTROOM
        return AdmissionDecision(
            status=PassStatus.PENDING,
            destination=destination,
            quota=quota,
            capacity=capacity,
            is_quota_override=False,
            warnings=self._warnings(quota, capacity) if is_restroom else (),
        )

    def for_approval(self, destination: Destination, *, used_passes: int, active_count: int = 0) -> AdmissionDecision:
        quota = self.quota(used_passes)
        is_restroom = destination == Destination.RESTROOM
        capacity = self.capacity(active_count) if is_restroom else None
        exceeded = is_restroom and quota.is_exceeded
        return AdmissionDecision(
            status=PassStatus.APPROVED,
            destination=destination,
            quota=quota,
            capacity=capacity,
            is_quota_override=exceeded,
            warnings=self._warnings(quota, capacity) if is_restroom else (),
        )

    def for_quick_pass(self, destination: Destination, *, used_passes: int) -> AdmissionDecision:
        """Teacher-issued pass: created approved, capacity is not consulted."""
        quota = self.quota(used_passes)
        exceeded = destination == Destination.RESTROOM and quota.is_exceeded
        return AdmissionDecision(
            status=PassStatus.APPROVED,
            destination=destination,
            quota=quota,
            capacity=None,
            is_quota_override=exceeded,
            warnings=self._warnings(quota, None) if exceeded else (),
        )


def fifo_order(passes: Iterable[Pass]) -> List[Pass]:
    """Queue order: oldest request first. ``sorted`` is stable, so ties keep read order."""
    return sorted(passes, key=lambda p: p.requested_at)


def queue_position(pending: Sequence[Pass], pass_id: int) -> Optional[int]:
    """1-based position of a pass in the FIFO queue, or None when it is not queued."""
    for index, p in enumerate(fifo_order(pending), start=1):
        if p.pass_id == int(pass_id):
            return index
    return None


def estimated_wait_minutes(position: int, max_concurrent: int) -> int:
    if position <= max_concurrent:
        return 0
    return (position - max_concurrent) * QUEUE_WAIT_MINUTES_PER_POSITION
