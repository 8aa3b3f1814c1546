from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Iterable, Optional

import pytest
from werkzeug.security import generate_password_hash

from src.salestrack.salestrack.access.scope import AccessScopeResolver
from src.salestrack.salestrack.attendance.model import AttendanceRecord
from src.salestrack.salestrack.attendance.service import AttendanceService
from src.salestrack.salestrack.core.enums import Role
from src.salestrack.salestrack.entries.service import EntryService
from src.salestrack.salestrack.notifications.model import Notification
from src.salestrack.salestrack.notifications.service import NotificationService
from src.salestrack.salestrack.users.model import Claims, User
from src.salestrack.salestrack.users.service import AuthService, UserService
from src.salestrack.salestrack.users.tokens import TokenService

SUPERADMIN_ID = 1
ADMIN_ID = 2
MEMBER_ID = 3
LONER_ID = 4
OTHER_ADMIN_ID = 5
TEAMMATE_ID = 6


class InMemoryUsers:
    def __init__(self, users: Iterable[User] = ()):
        self._users = {u.user_id: u for u in users}
        self._next_id = max(self._users, default=0) + 1

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self._users.values() if u.email == email), None)

    def get_many(self, user_ids):
        return [self._users[i] for i in sorted(set(user_ids)) if i in self._users]

    def create_user(self, *, username, email, password_hash, role, assigned_admin_id=None) -> int:
        uid = self._next_id
        self._next_id += 1
        self._users[uid] = User(uid, username, email, password_hash, role, assigned_admin_id)
        return uid

    def list_all(self):
        return [self._users[i] for i in sorted(self._users)]

    def list_team(self, admin_id: int):
        return [u for u in self.list_all() if u.assigned_admin_id == admin_id]

    def list_unassigned(self, role):
        return [u for u in self.list_all() if u.role == role and u.assigned_admin_id is None]

    def set_assigned_admin(self, user_id: int, admin_id: Optional[int]) -> bool:
        user = self._users.get(user_id)
        if not user:
            return False
        self._users[user_id] = replace(user, assigned_admin_id=admin_id)
        return True


class InMemoryEntries:
    def __init__(self):
        self.rows = {}
        self._next_id = 1
        self.inserted_batches = []

    def get_by_id(self, entry_id: int):
        return self.rows.get(entry_id)

    def create(self, entry) -> int:
        eid = self._next_id
        self._next_id += 1
        self.rows[eid] = replace(entry, entry_id=eid)
        return eid

    def update(self, entry) -> bool:
        # Mirrors MySQL affected-rows: an identical write reports no change.
        current = self.rows.get(entry.entry_id)
        if current is None:
            return False
        self.rows[entry.entry_id] = entry
        return current != entry

    def delete_by_id(self, entry_id: int) -> bool:
        return self.rows.pop(entry_id, None) is not None

    def find(self, scope, filters=None):
        return [
            e for e in self.rows.values()
            if scope.permits(e) and (filters is None or filters.matches(e))
        ]

    def insert_many(self, entries) -> int:
        self.inserted_batches.append(len(entries))
        for e in entries:
            self.create(e)
        return len(entries)

    def find_due_between(self, start: datetime, end: datetime):
        def _due(value):
            return value is not None and start <= value < end

        return [e for e in self.rows.values() if _due(e.follow_up_date) or _due(e.expected_closing_date)]


class InMemoryNotifications:
    def __init__(self):
        self.items: list[Notification] = []
        self.fail = False

    def create(self, *, user_id, message, entry_id, created_at) -> int:
        if self.fail:
            raise RuntimeError("notification store down")
        nid = len(self.items) + 1
        self.items.append(Notification(nid, user_id, message, created_at, entry_id))
        return nid

    def list_for_user(self, user_id: int):
        return [n for n in reversed(self.items) if n.user_id == user_id]

    def get_for_user(self, *, notification_id, user_id):
        return next(
            (n for n in self.items if n.notification_id == notification_id and n.user_id == user_id),
            None,
        )

    def mark_read(self, *, notification_id, user_id) -> bool:
        # Mirrors MySQL affected-rows: an already-read row reports no change.
        for idx, n in enumerate(self.items):
            if n.notification_id == notification_id and n.user_id == user_id and not n.is_read:
                self.items[idx] = replace(n, is_read=True)
                return True
        return False

    def delete_for_user(self, user_id: int) -> int:
        before = len(self.items)
        self.items = [n for n in self.items if n.user_id != user_id]
        return before - len(self.items)

    def for_user(self, user_id: int):
        return [n for n in self.items if n.user_id == user_id]


class RecordingChannel:
    def __init__(self):
        self.events = []

    def emit(self, user_id, event, payload):
        self.events.append((user_id, event, payload))


class InMemoryAttendance:
    def __init__(self):
        self._by_user_date = {}
        self._id = 0

    def get_for_user_and_date(self, user_id: int, work_date: date):
        return self._by_user_date.get((user_id, work_date))

    def create_checkin(self, *, user_id, work_date, check_in_time, location, status, remarks=None) -> int:
        self._id += 1
        self._by_user_date[(user_id, work_date)] = AttendanceRecord(
            attendance_id=self._id,
            user_id=user_id,
            work_date=work_date,
            check_in_time=check_in_time,
            check_in_location=location,
            status=status,
            remarks=remarks,
        )
        return self._id

    def update_checkout(self, *, attendance_id, check_out_time, location, status, remarks=None) -> bool:
        for key, rec in self._by_user_date.items():
            if rec.attendance_id == attendance_id:
                self._by_user_date[key] = replace(
                    rec,
                    check_out_time=check_out_time,
                    check_out_location=location,
                    status=status,
                    remarks=remarks,
                )
                return True
        return False

    def find(self, *, user_ids=None, start_date=None, end_date=None):
        out = []
        for rec in self._by_user_date.values():
            if user_ids is not None and rec.user_id not in user_ids:
                continue
            if start_date and rec.work_date < start_date:
                continue
            if end_date and rec.work_date > end_date:
                continue
            out.append(rec)
        return sorted(out, key=lambda r: (r.work_date, r.user_id))


def _user(uid, name, role, admin=None):
    return User(uid, name, f"{name}@example.com", generate_password_hash("secret"), role, admin)


def claims_for(user: User) -> Claims:
    return Claims(user_id=user.user_id, username=user.username, email=user.email, role=user.role)


@pytest.fixture
def fixed_now():
    return datetime(2026, 3, 10, 9, 30)


@pytest.fixture
def users():
    return InMemoryUsers(
        [
            _user(SUPERADMIN_ID, "root", Role.SUPERADMIN),
            _user(ADMIN_ID, "alice", Role.ADMIN),
            _user(MEMBER_ID, "bob", Role.OTHERS, ADMIN_ID),
            _user(LONER_ID, "carol", Role.OTHERS),
            _user(OTHER_ADMIN_ID, "dave", Role.ADMIN),
            _user(TEAMMATE_ID, "erin", Role.OTHERS, ADMIN_ID),
        ]
    )


@pytest.fixture
def claims(users):
    def _claims(user_id: int) -> Claims:
        return claims_for(users.get_by_id(user_id))

    return _claims


@pytest.fixture
def scope(users):
    return AccessScopeResolver(users)


@pytest.fixture
def entries_repo():
    return InMemoryEntries()


@pytest.fixture
def notifications_repo():
    return InMemoryNotifications()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def notification_service(notifications_repo, entries_repo, channel):
    return NotificationService(notifications_repo, entries_repo, channel=channel)


@pytest.fixture
def entry_service(entries_repo, users, scope, notification_service):
    return EntryService(entries_repo, users, scope, notification_service, batch_size=2)


@pytest.fixture
def attendance_repo():
    return InMemoryAttendance()


@pytest.fixture
def attendance_service(attendance_repo, scope):
    return AttendanceService(attendance_repo, scope)


@pytest.fixture
def tokens():
    return TokenService("test-secret", expires_days=1)


@pytest.fixture
def auth_service(users, tokens):
    return AuthService(users, tokens)


@pytest.fixture
def user_service(users, scope):
    return UserService(users, scope)
