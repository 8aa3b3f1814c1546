from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    address: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["Location"]:
        """Parse ``{"latitude", "longitude", "address"?}``; ``None`` when unusable."""
        if not isinstance(raw, Mapping):
            return None
        lat, lng = raw.get("latitude"), raw.get("longitude")
        if isinstance(lat, bool) or isinstance(lng, bool):
            return None
        try:
            lat, lng = float(lat), float(lng)
        except (TypeError, ValueError):
            return None
        address = raw.get("address")
        return cls(latitude=lat, longitude=lng, address=str(address).strip() if address else None)

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude, "address": self.address}


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one user's attendance for one calendar day."""

    attendance_id: int
    user_id: int
    work_date: date
    check_in_time: datetime
    check_in_location: Location
    status: AttendanceStatus
    check_out_time: Optional[datetime] = None
    check_out_location: Optional[Location] = None
    remarks: Optional[str] = None

    @property
    def checked_out(self) -> bool:
        return self.check_out_time is not None

    def to_dict(self) -> dict:
        return {
            "id": self.attendance_id,
            "userId": self.user_id,
            "date": self.work_date.isoformat(),
            "checkIn": self.check_in_time.isoformat(),
            "checkInLocation": self.check_in_location.to_dict(),
            "checkOut": self.check_out_time.isoformat() if self.check_out_time else None,
            "checkOutLocation": self.check_out_location.to_dict() if self.check_out_location else None,
            "status": self.status.value,
            "remarks": self.remarks,
        }
