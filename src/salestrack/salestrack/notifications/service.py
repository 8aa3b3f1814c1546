from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import now_local, tomorrow_window
from ..common.validators import parse_id
from ..core.exceptions import NotFoundError
from ..entries.model import Entry
from ..entries.repository import EntryRepository
from ..users.model import Claims
from .model import Notification
from .realtime import NOTIFICATION_EVENT, NullChannel, RealtimeChannel
from .repository import NotificationRepository

logger = logging.getLogger(__name__)


def _unique(ids: Iterable[int]) -> list[int]:
    out: list[int] = []
    for i in ids:
        if i not in out:
            out.append(i)
    return out


class NotificationService:
    """Derives notifications from entry mutations and upcoming dates.

    Delivery is fire-and-forget: every failure is logged and swallowed so a
    notification problem never fails the request that triggered it.
    """

    def __init__(
        self,
        notifications: NotificationRepository,
        entries: EntryRepository,
        *,
        channel: Optional[RealtimeChannel] = None,
    ):
        self._notifications = notifications
        self._entries = entries
        self._channel = channel or NullChannel()

    def notify(self, user_id: int, message: str, *, entry_id: Optional[int] = None, now: Optional[datetime] = None) -> bool:
        now = now or now_local()
        try:
            notification_id = self._notifications.create(
                user_id=user_id, message=message, entry_id=entry_id, created_at=now
            )
        except Exception:
            logger.exception("Failed to store notification for user %s", user_id)
            return False

        payload = Notification(
            notification_id=notification_id,
            user_id=user_id,
            message=message,
            entry_id=entry_id,
            created_at=now,
        ).to_dict()
        try:
            self._channel.emit(user_id, NOTIFICATION_EVENT, payload)
        except Exception:
            logger.exception("Failed to push notification %s to user %s", notification_id, user_id)
        return True

    def on_entry_mutated(self, actor_id: int, entry: Entry, change: str, *, link: bool = True) -> int:
        """Tell the actor and every assignee that ``entry`` changed."""
        message = f'Entry "{entry.customer_name}" {change}'
        entry_id = entry.entry_id if link else None
        sent = 0
        for user_id in _unique([actor_id, *entry.assigned_to]):
            sent += self.notify(user_id, message, entry_id=entry_id)
        return sent

    def on_assignment_delta(self, entry: Entry, old: Sequence[int], new: Sequence[int]) -> int:
        added = [i for i in _unique(new) if i not in old]
        removed = [i for i in _unique(old) if i not in new]
        sent = 0
        for user_id in added:
            sent += self.notify(
                user_id, f'You have been assigned to entry "{entry.customer_name}"', entry_id=entry.entry_id
            )
        for user_id in removed:
            sent += self.notify(
                user_id, f'You have been unassigned from entry "{entry.customer_name}"', entry_id=entry.entry_id
            )
        return sent

    def check_date_notifications(self, now: Optional[datetime] = None) -> int:
        """Remind creators and assignees about dates falling due tomorrow."""
        now = now or now_local()
        start, end = tomorrow_window(now)
        try:
            due = self._entries.find_due_between(start, end)
        except Exception:
            logger.exception("Date notification sweep failed to load entries")
            return 0

        sent = 0
        for entry in due:
            reasons = []
            if entry.follow_up_date and start <= entry.follow_up_date < end:
                reasons.append("follow-up")
            if entry.expected_closing_date and start <= entry.expected_closing_date < end:
                reasons.append("expected closing")
            if not reasons:
                continue
            message = (
                f'Reminder: {" and ".join(reasons)} date for "{entry.customer_name}" '
                f"is {start.strftime('%d/%m/%Y')}"
            )
            for user_id in _unique([entry.created_by, *entry.assigned_to]):
                sent += self.notify(user_id, message, entry_id=entry.entry_id, now=now)

        logger.info("Date notification sweep: %s entries due, %s notifications sent", len(due), sent)
        return sent

    def list_for_user(self, requester: Claims) -> Sequence[Notification]:
        return self._notifications.list_for_user(requester.user_id)

    def mark_read(self, requester: Claims, notification_id) -> None:
        ident = parse_id(notification_id, label="notification ID")
        if self._notifications.get_for_user(notification_id=ident, user_id=requester.user_id) is None:
            raise NotFoundError("Notification not found")
        self._notifications.mark_read(notification_id=ident, user_id=requester.user_id)

    def clear_for_user(self, requester: Claims) -> int:
        return self._notifications.delete_for_user(requester.user_id)
