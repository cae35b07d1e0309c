from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.notification import Notification, NotificationType


class NotificationRepo(Protocol):
    async def create(
        self, user_id: UUID, type: NotificationType, message: str
    ) -> Notification: ...
    async def list_for_user(self, user_id: UUID) -> list[Notification]: ...
    async def mark_read(self, notification_ids: Iterable[UUID]) -> None: ...


def _epoch() -> int:
    return int(time.time())


class InMemoryNotificationRepo:
    """Notifications for every user.

    create() may target any user; it stands in for the store-side
    procedure that runs with elevated privilege.
    """

    def __init__(self, clock: Callable[[], int] = _epoch) -> None:
        self._by_id: dict[UUID, Notification] = {}
        self._clock = clock

    async def create(
        self, user_id: UUID, type: NotificationType, message: str
    ) -> Notification:
        n = Notification.new(
            user_id=user_id, type=type, message=message, created_at=self._clock()
        )
        self._by_id[n.id] = n
        return n

    async def list_for_user(self, user_id: UUID) -> list[Notification]:
        mine = [n for n in self._by_id.values() if n.user_id == user_id]
        # newest first; insertion order breaks ties within the same second
        return list(reversed(sorted(mine, key=lambda n: n.created_at)))

    async def mark_read(self, notification_ids: Iterable[UUID]) -> None:
        for nid in notification_ids:
            n = self._by_id.get(nid)
            if n is not None:
                self._by_id[nid] = replace(n, read=True)
