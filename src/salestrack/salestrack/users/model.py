from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Note: Plain data object (no DB access code).
    """

    user_id: int
    username: str
    email: str
    password_hash: str
    role: Role
    assigned_admin_id: Optional[int] = None

    def to_ref(self) -> "UserRef":
        return UserRef(
            user_id=self.user_id,
            username=self.username,
            role=self.role,
            assigned_admin_id=self.assigned_admin_id,
        )


@dataclass(frozen=True)
class UserRef:
    """Populated reference to a user (what entries and listings expose)."""

    user_id: int
    username: str
    role: Role
    assigned_admin_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.user_id,
            "username": self.username,
            "role": self.role.value,
            "assignedAdmin": self.assigned_admin_id,
        }


@dataclass(frozen=True)
class Claims:
    """Identity recovered from a signed token."""

    user_id: int
    username: str
    email: str
    role: Role
