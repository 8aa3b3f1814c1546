from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .access.scope import AccessScopeResolver
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .core.constants import DEFAULT_TOKEN_DAYS
from .database.connection import DatabaseConnection
from .entries.mysql_entry_repository import MySQLEntryRepository
from .entries.service import EntryService
from .notifications.mysql_notification_repository import MySQLNotificationRepository
from .notifications.realtime import RealtimeChannel
from .notifications.service import NotificationService
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService, UserService
from .users.tokens import TokenService


@dataclass(frozen=True)
class Container:
    tokens: TokenService
    scope: AccessScopeResolver

    auth_service: AuthService
    user_service: UserService
    entry_service: EntryService
    notification_service: NotificationService
    attendance_service: AttendanceService


def build_container(
    *,
    db_config: dict,
    jwt_secret: str,
    token_expire_days: int = DEFAULT_TOKEN_DAYS,
    channel: Optional[RealtimeChannel] = None,
) -> Container:
    conn = DatabaseConnection.from_settings(db_config)

    users_repo = MySQLUserRepository(conn)
    entries_repo = MySQLEntryRepository(conn)
    notifications_repo = MySQLNotificationRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)

    tokens = TokenService(jwt_secret, expires_days=token_expire_days)
    scope = AccessScopeResolver(users_repo)
    notification_service = NotificationService(notifications_repo, entries_repo, channel=channel)

    return Container(
        tokens=tokens,
        scope=scope,
        auth_service=AuthService(users_repo, tokens),
        user_service=UserService(users_repo, scope),
        entry_service=EntryService(entries_repo, users_repo, scope, notification_service),
        notification_service=notification_service,
        attendance_service=AttendanceService(attendance_repo, scope),
    )
