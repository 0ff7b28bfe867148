"""In-process change feed.

Writers publish a ``ChangeEvent`` after every successful insert/update/delete;
observers subscribe by table plus equality filters on row fields. Delivery is
synchronous and in publish order.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping

logger = logging.getLogger(__name__)

PASSES_TABLE = "passes"
FREEZES_TABLE = "pass_freezes"


class ChangeAction(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    action: ChangeAction
    row: Mapping[str, Any] = field(default_factory=dict)


Callback = Callable[[ChangeEvent], None]


class Subscription:
    def __init__(self, feed: "ChangeFeed", table: str, callback: Callback, filters: Mapping[str, Any]):
        self._feed = feed
        self.table = table
        self.callback = callback
        self.filters = dict(filters)

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table:
            return False
        for key, expected in self.filters.items():
            actual = event.row.get(key)
            if getattr(actual, "value", actual) != getattr(expected, "value", expected):
                return False
        return True

    def unsubscribe(self) -> None:
        self._feed._remove(self)


class ChangeFeed:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: list[Subscription] = []

    def subscribe(self, table: str, callback: Callback, **filters: Any) -> Subscription:
        sub = Subscription(self, table, callback, filters)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    def publish(self, table: str, action: ChangeAction, row: Mapping[str, Any]) -> int:
        """Deliver an event to matching subscribers; return how many received it."""
        event = ChangeEvent(table=table, action=action, row=dict(row))
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(event)]

        for sub in targets:
            try:
                sub.callback(event)
            except Exception:
                # A broken observer must not fail the write that already committed.
                logger.exception("Change subscriber failed for %s %s", table, action.value)
        return len(targets)

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscriptions)
