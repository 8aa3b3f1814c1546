from __future__ import annotations

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

NOTIFICATION_EVENT = "notification"


class RealtimeChannel(Protocol):
    """Best-effort push to a connected user; no connection is not an error."""

    def emit(self, user_id: int, event: str, payload: dict[str, Any]) -> None:
        raise NotImplementedError


class NullChannel(RealtimeChannel):
    """Used when no push transport is wired in."""

    def emit(self, user_id: int, event: str, payload: dict[str, Any]) -> None:
        logger.debug("No realtime transport; dropped %s for user %s", event, user_id)
