from __future__ import annotations

import pytest

from conftest import ADMIN_ID, LONER_ID, MEMBER_ID, OTHER_ADMIN_ID, SUPERADMIN_ID, TEAMMATE_ID
from src.salestrack.salestrack.core.enums import Role
from src.salestrack.salestrack.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)


def test_signup_then_login(auth_service, tokens):
    created = auth_service.signup(username=" zoe ", email="zoe@example.com", password="pw", role="others")
    assert created.user.username == "zoe"
    assert created.user.role == Role.OTHERS
    assert created.user.password_hash != "pw"

    logged_in = auth_service.login(email="zoe@example.com", password="pw")
    claims = tokens.decode(logged_in.token)
    assert claims.user_id == created.user.user_id
    assert claims.role == Role.OTHERS


@pytest.mark.parametrize(
    "kwargs, message",
    [
        (dict(username="", email="a@b.co", password="pw", role="admin"), "All fields are required"),
        (dict(username="a", email="a@b.co", password="pw", role="owner"), "Invalid role"),
        (dict(username="a", email="not-an-email", password="pw", role="admin"), "Please fill a valid email address"),
        (dict(username="a", email="bob@example.com", password="pw", role="admin"), "Email already exists"),
    ],
)
def test_signup_validation(auth_service, kwargs, message):
    with pytest.raises(ValidationError, match=message):
        auth_service.signup(**kwargs)


def test_login_rejects_bad_credentials(auth_service):
    with pytest.raises(AuthenticationError, match="Invalid credentials"):
        auth_service.login(email="bob@example.com", password="wrong")
    with pytest.raises(AuthenticationError, match="Invalid credentials"):
        auth_service.login(email="nobody@example.com", password="secret")


def test_token_header_parsing(tokens, users):
    token = tokens.issue(users.get_by_id(MEMBER_ID))

    assert tokens.from_header(f"Bearer {token}").user_id == MEMBER_ID
    with pytest.raises(AuthenticationError, match="No token provided"):
        tokens.from_header(None)
    with pytest.raises(AuthenticationError, match="Invalid or expired token"):
        tokens.from_header("Bearer garbage")


def test_role_info(user_service, claims):
    assert user_service.role_info(claims(ADMIN_ID)) == {"isAdmin": True, "role": "admin", "userId": ADMIN_ID}
    assert user_service.role_info(claims(LONER_ID))["isAdmin"] is False


def test_user_listing_is_scoped(user_service, claims):
    def ids(requester_id):
        return [u.user_id for u in user_service.list_users(claims(requester_id))]

    assert ids(SUPERADMIN_ID) == [1, 2, 3, 4, 5, 6]
    assert ids(ADMIN_ID) == [ADMIN_ID, MEMBER_ID, TEAMMATE_ID]
    assert ids(LONER_ID) == [LONER_ID]


def test_assignable_users_need_manager(user_service, claims):
    assert [u.user_id for u in user_service.list_assignable(claims(ADMIN_ID))] == [LONER_ID]
    with pytest.raises(AuthorizationError):
        user_service.list_assignable(claims(MEMBER_ID))


def test_admin_assigns_to_self(user_service, claims, users):
    user = user_service.assign_user(claims(ADMIN_ID), user_id=str(LONER_ID))

    assert user.assigned_admin_id == ADMIN_ID
    assert users.get_by_id(LONER_ID).assigned_admin_id == ADMIN_ID


def test_superadmin_assigns_to_named_admin(user_service, claims):
    user = user_service.assign_user(claims(SUPERADMIN_ID), user_id=LONER_ID, admin_id=OTHER_ADMIN_ID)
    assert user.assigned_admin_id == OTHER_ADMIN_ID

    with pytest.raises(ValidationError):
        user_service.assign_user(claims(SUPERADMIN_ID), user_id=LONER_ID)
    with pytest.raises(NotFoundError):
        user_service.assign_user(claims(SUPERADMIN_ID), user_id=LONER_ID, admin_id=MEMBER_ID)


def test_assign_rejects_non_others(user_service, claims):
    with pytest.raises(NotFoundError, match="not an 'others' role"):
        user_service.assign_user(claims(ADMIN_ID), user_id=OTHER_ADMIN_ID)
    with pytest.raises(ValidationError, match="Invalid user ID"):
        user_service.assign_user(claims(ADMIN_ID), user_id="x")
    with pytest.raises(AuthorizationError):
        user_service.assign_user(claims(MEMBER_ID), user_id=LONER_ID)


def test_unassign_only_own_team(user_service, claims):
    with pytest.raises(AuthorizationError, match="Unauthorized to unassign this user"):
        user_service.unassign_user(claims(OTHER_ADMIN_ID), user_id=MEMBER_ID)

    user = user_service.unassign_user(claims(ADMIN_ID), user_id=MEMBER_ID)
    assert user.assigned_admin_id is None

    user_service.unassign_user(claims(SUPERADMIN_ID), user_id=TEAMMATE_ID)
