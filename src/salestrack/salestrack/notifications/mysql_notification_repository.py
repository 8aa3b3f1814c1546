from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Notification
from .repository import NotificationRepository

_COLUMNS = "notification_id, user_id, entry_id, message, is_read, created_at"


def _row_to_notification(r: Dict[str, Any]) -> Notification:
    return Notification(
        notification_id=int(r["notification_id"]),
        user_id=int(r["user_id"]),
        entry_id=int(r["entry_id"]) if r.get("entry_id") is not None else None,
        message=r["message"],
        is_read=bool(r["is_read"]),
        created_at=r["created_at"],
    )


class MySQLNotificationRepository(NotificationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, *, user_id: int, message: str, entry_id: Optional[int], created_at: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO notifications(user_id, entry_id, message, is_read, created_at)
                VALUES(%s,%s,%s,0,%s)
                """,
                (user_id, entry_id, message[:500], created_at),
            )
            return int(cur.lastrowid)

    def list_for_user(self, user_id: int) -> Sequence[Notification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM notifications
                WHERE user_id=%s
                ORDER BY created_at DESC, notification_id DESC
                """,
                (user_id,),
            )
            return [_row_to_notification(r) for r in fetchall(cur)]

    def get_for_user(self, *, notification_id: int, user_id: int) -> Optional[Notification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM notifications WHERE notification_id=%s AND user_id=%s",
                (notification_id, user_id),
            )
            row = fetchone(cur)
            return _row_to_notification(row) if row else None

    def mark_read(self, *, notification_id: int, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE notifications SET is_read=1 WHERE notification_id=%s AND user_id=%s",
                (notification_id, user_id),
            )
            # Affected rows: 0 for an already-read notification.
            return cur.rowcount > 0

    def delete_for_user(self, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM notifications WHERE user_id=%s", (user_id,))
            return int(cur.rowcount)
