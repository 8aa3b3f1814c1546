from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..access.scope import AccessScopeResolver
from ..common.validators import is_valid_email, parse_id
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from .model import Claims, User
from .repository import UserRepository
from .tokens import TokenService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    user: User
    token: str


def public_user(user: User) -> dict:
    return {
        "id": user.user_id,
        "username": user.username,
        "email": user.email,
        "role": user.role.value,
        "assignedAdmin": user.assigned_admin_id,
    }


class AuthService:
    """Use case: signup and login."""

    def __init__(self, users: UserRepository, tokens: TokenService):
        self._users = users
        self._tokens = tokens

    def signup(self, *, username: str, email: str, password: str, role: str) -> AuthResult:
        username = (username or "").strip()
        email = (email or "").strip()
        if not username or not email or not password or not role:
            raise ValidationError("All fields are required")

        try:
            role_enum = Role(role)
        except ValueError:
            raise ValidationError("Invalid role")

        if not is_valid_email(email):
            raise ValidationError("Please fill a valid email address")
        if self._users.get_by_email(email):
            raise ValidationError("Email already exists")

        user_id = self._users.create_user(
            username=username,
            email=email,
            password_hash=generate_password_hash(password),
            role=role_enum,
            assigned_admin_id=None,
        )
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        logger.info("Registered user %s with role %s", user.email, user.role.value)
        return AuthResult(user=user, token=self._tokens.issue(user))

    def login(self, *, email: str, password: str) -> AuthResult:
        if not email or not password:
            raise ValidationError("All fields are required")

        user = self._users.get_by_email(email.strip())
        if not user:
            raise AuthenticationError("Invalid credentials")

        try:
            ok = check_password_hash(user.password_hash, password)
        except ValueError:
            # unknown hash method stored for this account
            ok = False
        if not ok:
            raise AuthenticationError("Invalid credentials")

        return AuthResult(user=user, token=self._tokens.issue(user))


class UserService:
    """Use case: user listing and admin team management."""

    def __init__(self, users: UserRepository, scope: AccessScopeResolver):
        self._users = users
        self._scope = scope

    def role_info(self, requester: Claims) -> dict:
        user = self._users.get_by_id(requester.user_id)
        if not user:
            raise NotFoundError("User not found")
        return {
            "isAdmin": user.role in {Role.ADMIN, Role.SUPERADMIN},
            "role": user.role.value,
            "userId": user.user_id,
        }

    def list_users(self, requester: Claims) -> Sequence[User]:
        owner_ids = self._scope.visible_owner_ids(requester)
        if owner_ids is None:
            return list(self._users.list_all())
        return sorted(self._users.get_many(owner_ids), key=lambda u: u.user_id)

    def list_assignable(self, requester: Claims) -> Sequence[User]:
        self._require_manager(requester)
        return list(self._users.list_unassigned(Role.OTHERS))

    def assign_user(self, requester: Claims, *, user_id, admin_id=None) -> User:
        self._require_manager(requester)
        target_id = parse_id(user_id, label="user ID")

        if requester.role == Role.ADMIN:
            new_admin_id = requester.user_id
        else:
            if admin_id is None:
                raise ValidationError("adminId is required")
            new_admin_id = parse_id(admin_id, label="admin ID")
            admin = self._users.get_by_id(new_admin_id)
            if not admin or admin.role != Role.ADMIN:
                raise NotFoundError("Admin not found")

        target = self._get_others(target_id)
        self._users.set_assigned_admin(target.user_id, new_admin_id)
        logger.info("User %s assigned to admin %s by %s", target.user_id, new_admin_id, requester.user_id)
        return self._reload(target.user_id)

    def unassign_user(self, requester: Claims, *, user_id) -> User:
        self._require_manager(requester)
        target = self._get_others(parse_id(user_id, label="user ID"))

        if requester.role == Role.ADMIN and target.assigned_admin_id != requester.user_id:
            raise AuthorizationError("Unauthorized to unassign this user")

        self._users.set_assigned_admin(target.user_id, None)
        logger.info("User %s unassigned by %s", target.user_id, requester.user_id)
        return self._reload(target.user_id)

    @staticmethod
    def _require_manager(requester: Claims) -> None:
        if requester.role not in {Role.ADMIN, Role.SUPERADMIN}:
            raise AuthorizationError("Unauthorized")

    def _get_others(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user or user.role != Role.OTHERS:
            raise NotFoundError("User not found or not an 'others' role")
        return user

    def _reload(self, user_id: int) -> User:
        user: Optional[User] = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user
