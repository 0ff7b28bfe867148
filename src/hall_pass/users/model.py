from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """A student, teacher or admin of one organization."""

    user_id: int
    organization_id: int
    full_name: str
    username: str
    password_hash: str
    role: Role
    is_active: bool = True
