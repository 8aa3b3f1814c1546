from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import Notification


class NotificationRepository(Protocol):
    def create(self, *, user_id: int, message: str, entry_id: Optional[int], created_at: datetime) -> int:
        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[Notification]:
        raise NotImplementedError

    def get_for_user(self, *, notification_id: int, user_id: int) -> Optional[Notification]:
        raise NotImplementedError

    def mark_read(self, *, notification_id: int, user_id: int) -> bool:
        """Flag the notification read. Returns ``False`` when nothing changed, e.g. already read."""
        raise NotImplementedError

    def delete_for_user(self, user_id: int) -> int:
        raise NotImplementedError
