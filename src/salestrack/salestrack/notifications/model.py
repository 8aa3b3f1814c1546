from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Notification:
    notification_id: int
    user_id: int
    message: str
    created_at: datetime
    entry_id: Optional[int] = None
    is_read: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.notification_id,
            "userId": self.user_id,
            "message": self.message,
            "entryId": self.entry_id,
            "read": self.is_read,
            "timestamp": self.created_at.isoformat(),
        }
