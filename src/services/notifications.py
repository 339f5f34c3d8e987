"""User-facing notifications (toasts).

뷰가 응답을 만들 때 쌓여 있는 알림을 drain하여 함께 반환합니다.
"""
from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Deque, List, Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

NotificationLevel = Literal["success", "error", "info"]


class Notification(BaseModel):
    level: NotificationLevel
    message: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationCenter:
    """Bounded queue of pending notifications."""

    def __init__(self, max_pending: int = 50) -> None:
        self._pending: Deque[Notification] = deque(maxlen=max_pending)

    def push(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level=level, message=message)
        self._pending.append(notification)
        log = logger.warning if level == "error" else logger.info
        log("[%s] %s", level, message)
        return notification

    def success(self, message: str) -> Notification:
        return self.push("success", message)

    def error(self, message: str) -> Notification:
        return self.push("error", message)

    def info(self, message: str) -> Notification:
        return self.push("info", message)

    def pending(self) -> List[Notification]:
        return list(self._pending)

    def drain(self) -> List[Notification]:
        drained = list(self._pending)
        self._pending.clear()
        return drained
