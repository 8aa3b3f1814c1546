from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..access.scope import EntryScope
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, in_clause, load_json
from .model import Entry, EntryFilters, HistoryLog, Product
from .repository import EntryRepository

_COLUMNS = (
    "entry_id",
    "customer_name",
    "mobile_number",
    "contact_person",
    "first_date",
    "estimated_value",
    "address",
    "state",
    "city",
    "organization",
    "type",
    "category",
    "products",
    "status",
    "expected_closing_date",
    "close_amount",
    "close_type",
    "follow_up_date",
    "remarks",
    "live_location",
    "next_action",
    "first_person_meet",
    "second_person_meet",
    "third_person_meet",
    "fourth_person_meet",
    "created_by",
    "created_at",
    "updated_at",
    "history",
)
_WRITE_COLUMNS = _COLUMNS[1:]
_SELECT = "SELECT " + ", ".join(f"e.{c}" for c in _COLUMNS) + " FROM entries e"


def _optional_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


def _row_to_entry(row: Dict[str, Any], assigned_to: Tuple[int, ...]) -> Entry:
    return Entry(
        entry_id=int(row["entry_id"]),
        customer_name=row["customer_name"],
        mobile_number=row.get("mobile_number"),
        contact_person=row.get("contact_person"),
        first_date=row.get("first_date"),
        estimated_value=_optional_float(row.get("estimated_value")),
        address=row.get("address"),
        state=row.get("state"),
        city=row.get("city"),
        organization=row.get("organization"),
        type=row.get("type"),
        category=row.get("category"),
        products=tuple(Product.from_dict(p) for p in load_json(row.get("products"), [])),
        status=row["status"],
        expected_closing_date=row.get("expected_closing_date"),
        close_amount=_optional_float(row.get("close_amount")),
        close_type=row.get("close_type"),
        follow_up_date=row.get("follow_up_date"),
        remarks=row.get("remarks"),
        live_location=row.get("live_location"),
        next_action=row.get("next_action"),
        first_person_meet=row.get("first_person_meet"),
        second_person_meet=row.get("second_person_meet"),
        third_person_meet=row.get("third_person_meet"),
        fourth_person_meet=row.get("fourth_person_meet"),
        created_by=int(row["created_by"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        assigned_to=assigned_to,
        history=HistoryLog.from_list(load_json(row.get("history"), [])),
    )


def _entry_params(entry: Entry) -> Tuple[Any, ...]:
    values = {
        "products": dump_json([p.to_dict() for p in entry.products]),
        "history": dump_json(entry.history.to_list()),
    }
    return tuple(values[c] if c in values else getattr(entry, c) for c in _WRITE_COLUMNS)


class MySQLEntryRepository(EntryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load_assignees(self, cur, entry_ids: Sequence[int]) -> Dict[int, Tuple[int, ...]]:
        placeholders, params = in_clause(entry_ids)
        if not params:
            return {}
        cur.execute(
            f"SELECT entry_id, user_id FROM entry_assignees WHERE entry_id IN {placeholders} ORDER BY entry_id, position",
            params,
        )
        out: Dict[int, List[int]] = {}
        for r in fetchall(cur):
            out.setdefault(int(r["entry_id"]), []).append(int(r["user_id"]))
        return {k: tuple(v) for k, v in out.items()}

    def _hydrate(self, cur, rows: List[Dict[str, Any]]) -> List[Entry]:
        assignees = self._load_assignees(cur, [int(r["entry_id"]) for r in rows])
        return [_row_to_entry(r, assignees.get(int(r["entry_id"]), ())) for r in rows]

    @staticmethod
    def _write_assignees(cur, entry_id: int, assigned_to: Sequence[int]) -> None:
        cur.execute("DELETE FROM entry_assignees WHERE entry_id=%s", (entry_id,))
        if assigned_to:
            cur.executemany(
                "INSERT INTO entry_assignees(entry_id, user_id, position) VALUES(%s,%s,%s)",
                [(entry_id, user_id, pos) for pos, user_id in enumerate(assigned_to)],
            )

    def get_by_id(self, entry_id: int) -> Optional[Entry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE e.entry_id=%s", (entry_id,))
            row = fetchone(cur)
            if not row:
                return None
            return self._hydrate(cur, [row])[0]

    def create(self, entry: Entry) -> int:
        placeholders = ",".join(["%s"] * len(_WRITE_COLUMNS))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO entries({', '.join(_WRITE_COLUMNS)}) VALUES({placeholders})",
                _entry_params(entry),
            )
            entry_id = int(cur.lastrowid)
            self._write_assignees(cur, entry_id, entry.assigned_to)
            return entry_id

    def update(self, entry: Entry) -> bool:
        assignments = ", ".join(f"{c}=%s" for c in _WRITE_COLUMNS if c not in {"created_by", "created_at"})
        params = tuple(
            v for c, v in zip(_WRITE_COLUMNS, _entry_params(entry)) if c not in {"created_by", "created_at"}
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE entries SET {assignments} WHERE entry_id=%s", params + (entry.entry_id,))
            changed = cur.rowcount > 0
            self._write_assignees(cur, entry.entry_id, entry.assigned_to)
            return changed

    def delete_by_id(self, entry_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM entries WHERE entry_id=%s", (entry_id,))
            return cur.rowcount > 0

    def find(self, scope: EntryScope, filters: Optional[EntryFilters] = None) -> Sequence[Entry]:
        clauses: List[str] = []
        params: List[Any] = []

        if not scope.unrestricted:
            owner_sql, owner_params = in_clause(sorted(scope.owner_ids))
            scope_sql = f"e.created_by IN {owner_sql}"
            params.extend(owner_params)
            if scope.assignee_id is not None:
                scope_sql += " OR e.entry_id IN (SELECT entry_id FROM entry_assignees WHERE user_id=%s)"
                params.append(scope.assignee_id)
            clauses.append(f"({scope_sql})")

        if filters:
            if filters.customer_name:
                clauses.append("LOWER(e.customer_name) LIKE %s")
                params.append(f"%{filters.customer_name.lower()}%")
            for name in EntryFilters.EXACT_FIELDS:
                value = getattr(filters, name)
                if value is not None:
                    clauses.append(f"e.{name}=%s")
                    params.append(value)
            if filters.created_from:
                clauses.append("e.created_at>=%s")
                params.append(filters.created_from)
            if filters.created_to:
                clauses.append("e.created_at<=%s")
                params.append(filters.created_to)

        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT}{where}", tuple(params))
            return self._hydrate(cur, fetchall(cur))

    def insert_many(self, entries: Sequence[Entry]) -> int:
        if not entries:
            return 0
        placeholders = ",".join(["%s"] * len(_WRITE_COLUMNS))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                f"INSERT IGNORE INTO entries({', '.join(_WRITE_COLUMNS)}) VALUES({placeholders})",
                [_entry_params(e) for e in entries],
            )
            return max(int(cur.rowcount), 0)

    def find_due_between(self, start: datetime, end: datetime) -> Sequence[Entry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_SELECT}
                WHERE (e.follow_up_date >= %s AND e.follow_up_date < %s)
                   OR (e.expected_closing_date >= %s AND e.expected_closing_date < %s)
                """,
                (start, end, start, end),
            )
            return self._hydrate(cur, fetchall(cur))
