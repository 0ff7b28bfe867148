from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional

from ..classes.model import SchoolClass
from ..common.datetime_utils import now_local
from ..passes.service import PassService
from .events import FREEZES_TABLE, PASSES_TABLE, ChangeEvent, ChangeFeed, Subscription

logger = logging.getLogger(__name__)


class PassBoardReconciler:
    """Keeps one class's board in memory, refetched in full on every change.

    The board is the same dict ``PassService.board_for_class`` returns. Any
    event for the class (a pass or a freeze) triggers a refetch; events are
    never applied as deltas.
    """

    def __init__(
        self,
        feed: ChangeFeed,
        passes: PassService,
        school_class: SchoolClass,
        *,
        clock: Callable[[], datetime] = now_local,
        on_change: Optional[Callable[[dict], None]] = None,
    ):
        self._feed = feed
        self._passes = passes
        self._class = school_class
        self._clock = clock
        self._on_change = on_change
        self._lock = threading.Lock()
        self._subscriptions: List[Subscription] = []
        self._board: Optional[dict] = None
        self.refresh_count = 0

    @property
    def board(self) -> Optional[dict]:
        with self._lock:
            return self._board

    @property
    def is_running(self) -> bool:
        return bool(self._subscriptions)

    def start(self) -> dict:
        if not self._subscriptions:
            class_id = self._class.class_id
            self._subscriptions = [
                self._feed.subscribe(PASSES_TABLE, self._handle, class_id=class_id),
                self._feed.subscribe(FREEZES_TABLE, self._handle, class_id=class_id),
            ]
            logger.debug("Board reconciler started for class %s", class_id)
        return self.refresh()

    def stop(self) -> None:
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []
        logger.debug("Board reconciler stopped for class %s", self._class.class_id)

    def refresh(self) -> dict:
        board = self._passes.board_for_class(self._class, now=self._clock())
        with self._lock:
            self._board = board
            self.refresh_count += 1
        if self._on_change is not None:
            self._on_change(board)
        return board

    def _handle(self, event: ChangeEvent) -> None:
        logger.debug("Class %s board refetch after %s %s", self._class.class_id, event.table, event.action.value)
        self.refresh()
