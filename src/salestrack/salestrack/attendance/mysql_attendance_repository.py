from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import AttendanceRecord, Location
from .repository import AttendanceRepository

_SELECT = """
    SELECT attendance_id, user_id, work_date,
           check_in_time, check_in_lat, check_in_lng, check_in_address,
           check_out_time, check_out_lat, check_out_lng, check_out_address,
           status, remarks
    FROM attendance_records
"""


def _row_to_record(r: Dict[str, Any]) -> AttendanceRecord:
    check_out_location = None
    if r.get("check_out_lat") is not None and r.get("check_out_lng") is not None:
        check_out_location = Location(
            latitude=float(r["check_out_lat"]),
            longitude=float(r["check_out_lng"]),
            address=r.get("check_out_address"),
        )
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        work_date=r["work_date"],
        check_in_time=r["check_in_time"],
        check_in_location=Location(
            latitude=float(r["check_in_lat"]),
            longitude=float(r["check_in_lng"]),
            address=r.get("check_in_address"),
        ),
        check_out_time=r.get("check_out_time"),
        check_out_location=check_out_location,
        status=AttendanceStatus(r["status"]),
        remarks=r.get("remarks"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE user_id=%s AND work_date=%s", (user_id, work_date))
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def create_checkin(
        self,
        *,
        user_id: int,
        work_date: date,
        check_in_time: datetime,
        location: Location,
        status: AttendanceStatus,
        remarks: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(
                    user_id, work_date, check_in_time,
                    check_in_lat, check_in_lng, check_in_address, status, remarks
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    user_id,
                    work_date,
                    check_in_time,
                    location.latitude,
                    location.longitude,
                    location.address,
                    status.value,
                    remarks,
                ),
            )
            return int(cur.lastrowid)

    def update_checkout(
        self,
        *,
        attendance_id: int,
        check_out_time: datetime,
        location: Location,
        status: AttendanceStatus,
        remarks: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_out_time=%s, check_out_lat=%s, check_out_lng=%s, check_out_address=%s,
                    status=%s, remarks=%s
                WHERE attendance_id=%s
                """,
                (
                    check_out_time,
                    location.latitude,
                    location.longitude,
                    location.address,
                    status.value,
                    remarks,
                    attendance_id,
                ),
            )
            return cur.rowcount > 0

    def find(
        self,
        *,
        user_ids: Optional[Iterable[int]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        clauses = []
        params: list[object] = []

        if user_ids is not None:
            placeholders, ids = in_clause(user_ids)
            clauses.append(f"user_id IN {placeholders}")
            params.extend(ids)
        if start_date is not None:
            clauses.append("work_date >= %s")
            params.append(start_date)
        if end_date is not None:
            clauses.append("work_date <= %s")
            params.append(end_date)

        where = (" WHERE " + " AND ".join(clauses)) if clauses else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + where + " ORDER BY work_date DESC, user_id ASC", tuple(params))
            return [_row_to_record(r) for r in fetchall(cur)]
