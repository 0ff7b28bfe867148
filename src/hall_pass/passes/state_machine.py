"""Pass lifecycle.

    pending --approve--> approved --check_in--> pending_return --confirm_return--> returned
    pending --deny--> denied

``denied`` and ``returned`` are terminal. Teacher quick passes are inserted
directly as ``approved``; the period-end sweep is the only bulk move.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, FrozenSet, Optional

from ..core.enums import PassAction, PassStatus
from ..core.exceptions import InvalidTransitionError
from .model import Pass

_TRANSITIONS: Dict[tuple[PassStatus, PassAction], PassStatus] = {
    (PassStatus.PENDING, PassAction.APPROVE): PassStatus.APPROVED,
    (PassStatus.PENDING, PassAction.DENY): PassStatus.DENIED,
    (PassStatus.APPROVED, PassAction.CHECK_IN): PassStatus.PENDING_RETURN,
    (PassStatus.PENDING_RETURN, PassAction.CONFIRM_RETURN): PassStatus.RETURNED,
}

_SWEEP_TARGETS: Dict[PassStatus, Optional[PassStatus]] = {
    PassStatus.PENDING: PassStatus.DENIED,
    PassStatus.APPROVED: PassStatus.RETURNED,
    PassStatus.PENDING_RETURN: PassStatus.RETURNED,
    PassStatus.DENIED: None,
    PassStatus.RETURNED: None,
}

_ACTION_LABELS = {
    PassAction.APPROVE: "approved",
    PassAction.DENY: "denied",
    PassAction.CHECK_IN: "checked in",
    PassAction.CONFIRM_RETURN: "confirmed as returned",
}


def next_status(current: PassStatus, action: PassAction) -> PassStatus:
    try:
        return _TRANSITIONS[(current, action)]
    except KeyError:
        raise InvalidTransitionError(
            f"A {current.value.replace('_', ' ')} pass cannot be {_ACTION_LABELS[action]}"
        )


def allowed_actions(current: PassStatus) -> FrozenSet[PassAction]:
    return frozenset(action for (status, action) in _TRANSITIONS if status == current)


def sweep_target(current: PassStatus) -> Optional[PassStatus]:
    """Where the period-end sweep sends a pass; None when it is already terminal."""
    return _SWEEP_TARGETS[current]


@dataclass(frozen=True)
class Transition:
    pass_id: int
    action: PassAction
    from_status: PassStatus
    to_status: PassStatus
    fields: Dict[str, Any] = field(default_factory=dict)


def plan_transition(
    hall_pass: Pass,
    action: PassAction,
    *,
    actor_id: int,
    now: datetime,
    expected_minutes: Optional[int] = None,
    is_quota_override: bool = False,
) -> Transition:
    """Compute the status change and the columns it stamps, without writing anything."""
    to_status = next_status(hall_pass.status, action)

    if action == PassAction.APPROVE:
        if expected_minutes is None:
            raise ValueError("expected_minutes is required to approve a pass")
        fields = {
            "approved_at": now,
            "approved_by": int(actor_id),
            "expected_return_at": now + timedelta(minutes=int(expected_minutes)),
            "is_quota_override": bool(is_quota_override),
        }
    elif action == PassAction.DENY:
        fields = {"denied_at": now, "denied_by": int(actor_id)}
    elif action == PassAction.CHECK_IN:
        fields = {"returned_at": now}
    else:
        fields = {"confirmed_by": int(actor_id)}

    return Transition(
        pass_id=hall_pass.pass_id,
        action=action,
        from_status=hall_pass.status,
        to_status=to_status,
        fields=fields,
    )
