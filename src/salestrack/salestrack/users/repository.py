from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): services depend on this interface, not on a concrete DB.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def get_many(self, user_ids: Iterable[int]) -> Sequence[User]:
        raise NotImplementedError

    def create_user(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: Role,
        assigned_admin_id: Optional[int] = None,
    ) -> int:
        raise NotImplementedError

    def list_all(self) -> Sequence[User]:
        raise NotImplementedError

    def list_team(self, admin_id: int) -> Sequence[User]:
        raise NotImplementedError

    def list_unassigned(self, role: Role) -> Sequence[User]:
        raise NotImplementedError

    def set_assigned_admin(self, user_id: int, admin_id: Optional[int]) -> bool:
        raise NotImplementedError
