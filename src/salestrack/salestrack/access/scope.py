"""Role-based visibility rules shared by every read and delete path.

superadmin sees everything; an admin sees their own records plus those of
their team (users whose ``assigned_admin_id`` points at them); everyone else
sees only their own. Entries are additionally visible to the users they are
assigned to.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional

from ..core.enums import Role
from ..users.model import Claims
from ..users.repository import UserRepository


@dataclass(frozen=True)
class EntryScope:
    """Which entries a requester may read.

    ``owner_ids`` is ``None`` for an unrestricted scope. ``assignee_id`` adds
    entries whose assignee list contains that user.
    """

    owner_ids: Optional[FrozenSet[int]]
    assignee_id: Optional[int] = None

    @property
    def unrestricted(self) -> bool:
        return self.owner_ids is None

    def permits(self, entry) -> bool:
        if self.owner_ids is None:
            return True
        if entry.created_by in self.owner_ids:
            return True
        return self.assignee_id is not None and self.assignee_id in entry.assigned_to


class AccessScopeResolver:
    def __init__(self, users: UserRepository):
        self._users = users

    def visible_owner_ids(self, requester: Claims) -> Optional[FrozenSet[int]]:
        """Owner ids visible to ``requester``; ``None`` means no filter."""
        if requester.role == Role.SUPERADMIN:
            return None
        if requester.role == Role.ADMIN:
            team = self._users.list_team(requester.user_id)
            return frozenset({requester.user_id, *(u.user_id for u in team)})
        return frozenset({requester.user_id})

    def all_user_ids(self, requester: Claims) -> FrozenSet[int]:
        """Materialised form of :meth:`visible_owner_ids` (superadmin gets every user)."""
        owner_ids = self.visible_owner_ids(requester)
        if owner_ids is None:
            return frozenset(u.user_id for u in self._users.list_all())
        return owner_ids

    def entry_scope(self, requester: Claims) -> EntryScope:
        owner_ids = self.visible_owner_ids(requester)
        if owner_ids is None:
            return EntryScope(owner_ids=None)
        return EntryScope(owner_ids=owner_ids, assignee_id=requester.user_id)

    def can_delete(self, requester: Claims, owner_id: int) -> bool:
        owner_ids = self.visible_owner_ids(requester)
        return owner_ids is None or owner_id in owner_ids
