from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional, Sequence

from ..access.scope import AccessScopeResolver
from ..common.datetime_utils import now_local, parse_iso_date
from ..common.validators import parse_id
from ..core.enums import AttendanceStatus
from ..core.exceptions import AuthorizationError, ValidationError
from ..users.model import Claims
from .model import AttendanceRecord, Location
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

LOCATION_ERROR = "Valid location with latitude and longitude is required"


def _clean_remarks(remarks: Any) -> Optional[str]:
    if remarks is None:
        return None
    text = str(remarks).strip()
    return text or None


def _parse_date(value: Any, field: str) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(str(value).strip())
    except ValueError:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)")


class AttendanceService:
    """Daily check-in/check-out: no record -> checked in -> checked out."""

    def __init__(self, attendance: AttendanceRepository, scope: AccessScopeResolver):
        self._attendance = attendance
        self._scope = scope

    def check_in(self, user_id: int, *, location: Any, remarks: Any = None, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or now_local()
        today = now.date()

        loc = Location.from_dict(location)
        if loc is None:
            raise ValidationError(LOCATION_ERROR)

        if self._attendance.get_for_user_and_date(user_id, today):
            raise ValidationError("Already checked in today")

        attendance_id = self._attendance.create_checkin(
            user_id=user_id,
            work_date=today,
            check_in_time=now,
            location=loc,
            status=AttendanceStatus.PENDING,
            remarks=_clean_remarks(remarks),
        )
        logger.info("User %s checked in (attendance %s)", user_id, attendance_id)
        return self._attendance.get_for_user_and_date(user_id, today) or AttendanceRecord(
            attendance_id=attendance_id,
            user_id=user_id,
            work_date=today,
            check_in_time=now,
            check_in_location=loc,
            status=AttendanceStatus.PENDING,
            remarks=_clean_remarks(remarks),
        )

    def check_out(self, user_id: int, *, location: Any, remarks: Any = None, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or now_local()
        today = now.date()

        loc = Location.from_dict(location)
        if loc is None:
            raise ValidationError(LOCATION_ERROR)

        record = self._attendance.get_for_user_and_date(user_id, today)
        if not record:
            raise ValidationError("No check-in record found for today")
        if record.checked_out:
            raise ValidationError("Already checked out today")

        new_remarks = _clean_remarks(remarks)
        self._attendance.update_checkout(
            attendance_id=record.attendance_id,
            check_out_time=now,
            location=loc,
            status=AttendanceStatus.PRESENT,
            remarks=new_remarks if new_remarks is not None else record.remarks,
        )
        logger.info("User %s checked out (attendance %s)", user_id, record.attendance_id)
        return self._attendance.get_for_user_and_date(user_id, today) or record

    def today(self, user_id: int, *, now: Optional[datetime] = None) -> Optional[AttendanceRecord]:
        now = now or now_local()
        return self._attendance.get_for_user_and_date(user_id, now.date())

    def list_attendance(
        self,
        requester: Claims,
        *,
        start_date: Any = None,
        end_date: Any = None,
        user_id: Any = None,
    ) -> Sequence[AttendanceRecord]:
        start = _parse_date(start_date, "startDate")
        end = _parse_date(end_date, "endDate")
        if start and end and start > end:
            raise ValidationError("startDate must not be after endDate")

        owner_ids = self._scope.visible_owner_ids(requester)
        if user_id not in (None, ""):
            target = parse_id(user_id, label="user ID")
            if owner_ids is not None and target not in owner_ids:
                raise AuthorizationError("Unauthorized")
            owner_ids = frozenset({target})

        return self._attendance.find(user_ids=owner_ids, start_date=start, end_date=end)
