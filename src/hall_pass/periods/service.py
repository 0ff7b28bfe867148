from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from ..classes.repository import ClassRepository
from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_AUTO_CLEAR_WINDOW_MINUTES
from ..passes.service import ClearResult, PassService
from .model import Period
from .repository import PeriodRepository

logger = logging.getLogger(__name__)


class PeriodService:
    def __init__(self, periods: PeriodRepository):
        self._periods = periods

    def list_for_organization(self, organization_id: int) -> Sequence[Period]:
        return self._periods.list_for_organization(int(organization_id))

    def current_period(self, organization_id: int, *, now: Optional[datetime] = None) -> Optional[Period]:
        now = now or now_local()
        for period in self._periods.list_for_organization(int(organization_id)):
            if period.contains(now.time()):
                return period
        return None


class AutoClearService:
    """Closes the queue of every opted-in class once its period has ended."""

    def __init__(self, periods: PeriodRepository, classes: ClassRepository, passes: PassService):
        self._periods = periods
        self._classes = classes
        self._passes = passes

    def due_periods(self, *, now: datetime, window_minutes: int) -> List[Period]:
        window_start = now - timedelta(minutes=int(window_minutes))
        return [p for p in self._periods.list_all() if window_start < p.ends_on(now) <= now]

    def run_due(
        self,
        *,
        now: Optional[datetime] = None,
        window_minutes: int = DEFAULT_AUTO_CLEAR_WINDOW_MINUTES,
    ) -> List[ClearResult]:
        now = now or now_local()
        results: List[ClearResult] = []
        for period in self.due_periods(now=now, window_minutes=window_minutes):
            classes = self._classes.list_auto_clear(
                organization_id=period.organization_id,
                period_order=period.period_order,
            )
            for school_class in classes:
                results.append(self._passes.sweep_class(school_class.class_id, now=now))

        cleared = sum(r.changed for r in results)
        logger.info("Auto-clear run at %s: %d classes swept, %d passes closed", now, len(results), cleared)
        return results
