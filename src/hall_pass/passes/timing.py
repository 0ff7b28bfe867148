from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import format_mm_ss
from ..core.constants import TIMER_WARNING_RATIO
from ..settings.model import OrganizationSettings
from .model import Pass


@dataclass(frozen=True)
class PassTiming:
    """How long a student has been out, against the destination's expected duration."""

    elapsed_seconds: int
    threshold_seconds: int
    seconds_until_expected: Optional[int] = None

    @property
    def is_overdue(self) -> bool:
        return self.elapsed_seconds >= self.threshold_seconds

    @property
    def is_warning(self) -> bool:
        return not self.is_overdue and self.elapsed_seconds >= self.threshold_seconds * TIMER_WARNING_RATIO

    @property
    def elapsed_label(self) -> str:
        return format_mm_ss(self.elapsed_seconds)

    def as_dict(self) -> dict:
        return {
            "elapsed_seconds": self.elapsed_seconds,
            "elapsed": self.elapsed_label,
            "threshold_seconds": self.threshold_seconds,
            "seconds_until_expected": self.seconds_until_expected,
            "is_warning": self.is_warning,
            "is_overdue": self.is_overdue,
        }


def timing_for(hall_pass: Pass, *, now: datetime, settings: OrganizationSettings) -> PassTiming:
    started = hall_pass.approved_at or hall_pass.requested_at
    elapsed = max(0, int((now - started).total_seconds()))

    until_expected = None
    if hall_pass.expected_return_at is not None:
        until_expected = int((hall_pass.expected_return_at - now).total_seconds())

    return PassTiming(
        elapsed_seconds=elapsed,
        threshold_seconds=settings.expected_minutes(hall_pass.destination) * 60,
        seconds_until_expected=until_expected,
    )
