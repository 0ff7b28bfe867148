from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from ..classes.service import ClassService
from ..common.datetime_utils import now_local
from ..common.validators import optional_positive_int
from ..core.enums import Destination, FreezeType, Role
from ..core.exceptions import PassesFrozenError, ValidationError
from ..realtime.events import FREEZES_TABLE, ChangeAction, ChangeFeed
from .model import PassFreeze
from .repository import FreezeRepository

logger = logging.getLogger(__name__)


class FreezeService:
    def __init__(self, freezes: FreezeRepository, classes: ClassService, *, feed: Optional[ChangeFeed] = None):
        self._freezes = freezes
        self._classes = classes
        self._feed = feed

    def _publish(self, action: ChangeAction, class_id: int, **row) -> None:
        if self._feed is not None:
            self._feed.publish(FREEZES_TABLE, action, {"class_id": int(class_id), **row})

    def get_active(self, class_id: int, *, now: Optional[datetime] = None) -> Optional[PassFreeze]:
        """Active freeze for a class; an expired one is switched off and reported as none."""
        now = now or now_local()
        freeze = self._freezes.get_active(int(class_id))
        if freeze is None:
            return None
        if not freeze.is_in_effect(now):
            # Only this row: a freeze created since the read stays in place.
            if self._freezes.deactivate(class_id=int(class_id), freeze_id=freeze.freeze_id):
                logger.info("Freeze %s on class %s expired at %s", freeze.freeze_id, class_id, freeze.ends_at)
                self._publish(ChangeAction.UPDATE, class_id, freeze_id=freeze.freeze_id, is_active=False)
            return None
        return freeze

    def ensure_request_allowed(self, *, class_id: int, destination: Destination, now: Optional[datetime] = None) -> None:
        freeze = self.get_active(class_id, now=now)
        if freeze is not None and freeze.blocks(destination):
            if freeze.freeze_type == FreezeType.ALL:
                raise PassesFrozenError("All passes are temporarily frozen for this class")
            raise PassesFrozenError("Restroom passes are temporarily frozen for this class")

    def freeze(
        self,
        *,
        current_role: Role,
        actor_id: int,
        class_id: int,
        freeze_type: FreezeType | str,
        duration_minutes=None,
        organization_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> PassFreeze:
        now = now or now_local()
        self._classes.get_managed(
            current_role=current_role, actor_id=actor_id, class_id=class_id, organization_id=organization_id
        )

        try:
            freeze_type = FreezeType(freeze_type)
        except ValueError:
            raise ValidationError("Unknown freeze type")

        minutes = optional_positive_int(duration_minutes, "Freeze duration")
        ends_at = now + timedelta(minutes=minutes) if minutes else None

        # One active freeze per class: a new one replaces the previous.
        self._freezes.deactivate(class_id=int(class_id))
        freeze_id = self._freezes.create(
            class_id=int(class_id),
            teacher_id=int(actor_id),
            freeze_type=freeze_type,
            started_at=now,
            ends_at=ends_at,
        )
        logger.info("Class %s frozen (%s) by %s until %s", class_id, freeze_type.value, actor_id, ends_at or "unfrozen")
        self._publish(ChangeAction.INSERT, class_id, freeze_id=freeze_id, is_active=True)

        return PassFreeze(
            freeze_id=freeze_id,
            class_id=int(class_id),
            teacher_id=int(actor_id),
            freeze_type=freeze_type,
            started_at=now,
            ends_at=ends_at,
            is_active=True,
        )

    def unfreeze(self, *, current_role: Role, actor_id: int, class_id: int, organization_id: Optional[int] = None) -> bool:
        self._classes.get_managed(
            current_role=current_role, actor_id=actor_id, class_id=class_id, organization_id=organization_id
        )
        changed = self._freezes.deactivate(class_id=int(class_id)) > 0
        if changed:
            logger.info("Class %s unfrozen by %s", class_id, actor_id)
            self._publish(ChangeAction.UPDATE, class_id, is_active=False)
        return changed

    @staticmethod
    def to_view(freeze: Optional[PassFreeze], now: datetime) -> Optional[dict]:
        if freeze is None:
            return None
        return {
            "freeze_id": freeze.freeze_id,
            "freeze_type": freeze.freeze_type.value,
            "started_at": freeze.started_at.isoformat(),
            "ends_at": freeze.ends_at.isoformat() if freeze.ends_at else None,
            "seconds_remaining": freeze.seconds_remaining(now),
        }
