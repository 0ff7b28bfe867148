from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for authorization."""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"

    @property
    def is_staff(self) -> bool:
        return self in (Role.TEACHER, Role.ADMIN)


class PassStatus(str, Enum):
    """Lifecycle status of a pass, stored as-is in the database."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    PENDING_RETURN = "pending_return"
    RETURNED = "returned"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


class Destination(str, Enum):
    RESTROOM = "Restroom"
    LOCKER = "Locker"
    OFFICE = "Office"
    OTHER = "Other"


class FreezeType(str, Enum):
    """Which destinations a freeze suppresses."""

    BATHROOM = "bathroom"
    ALL = "all"


class PassAction(str, Enum):
    APPROVE = "approve"
    DENY = "deny"
    CHECK_IN = "check_in"
    CONFIRM_RETURN = "confirm_return"


TERMINAL_STATUSES = frozenset({PassStatus.DENIED, PassStatus.RETURNED})
OPEN_STATUSES = frozenset({PassStatus.PENDING, PassStatus.APPROVED, PassStatus.PENDING_RETURN})
OUT_OF_ROOM_STATUSES = frozenset({PassStatus.APPROVED, PassStatus.PENDING_RETURN})
QUOTA_STATUSES = frozenset({PassStatus.APPROVED, PassStatus.PENDING_RETURN, PassStatus.RETURNED})
