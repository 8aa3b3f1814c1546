from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for scoping and permission checks."""

    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    OTHERS = "others"


class AttendanceStatus(str, Enum):
    PRESENT = "Present"
    ABSENT = "Absent"
    PENDING = "Pending"


class EntryType(str, Enum):
    PARTNER = "Partner"
    CUSTOMER = "Customer"


class EntryCategory(str, Enum):
    PRIVATE = "Private"
    GOVERNMENT = "Government"


class CloseType(str, Enum):
    WON = "Closed Won"
    LOST = "Closed Lost"
    NONE = ""
