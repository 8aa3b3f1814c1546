from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import User
from .repository import UserRepository

_COLUMNS = "user_id, username, email, password_hash, role, assigned_admin_id"


def _row_to_user(row: Dict[str, Any]) -> User:
    admin_id = row.get("assigned_admin_id")
    return User(
        user_id=int(row["user_id"]),
        username=row["username"],
        email=row["email"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        assigned_admin_id=int(admin_id) if admin_id is not None else None,
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE user_id=%s", (user_id,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE email=%s", (email,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def get_many(self, user_ids: Iterable[int]) -> Sequence[User]:
        placeholders, params = in_clause(sorted(set(int(i) for i in user_ids)))
        if not params:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE user_id IN {placeholders}", params)
            return [_row_to_user(r) for r in fetchall(cur)]

    def create_user(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: Role,
        assigned_admin_id: Optional[int] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(username, email, password_hash, role, assigned_admin_id)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (username, email, password_hash, role.value, assigned_admin_id),
            )
            return int(cur.lastrowid)

    def list_all(self) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users ORDER BY user_id")
            return [_row_to_user(r) for r in fetchall(cur)]

    def list_team(self, admin_id: int) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE assigned_admin_id=%s ORDER BY user_id", (admin_id,))
            return [_row_to_user(r) for r in fetchall(cur)]

    def list_unassigned(self, role: Role) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM users WHERE role=%s AND assigned_admin_id IS NULL ORDER BY user_id",
                (role.value,),
            )
            return [_row_to_user(r) for r in fetchall(cur)]

    def set_assigned_admin(self, user_id: int, admin_id: Optional[int]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET assigned_admin_id=%s WHERE user_id=%s", (admin_id, user_id))
            return cur.rowcount > 0
