"""Realtime notification feed.

Every created notification is published here.  Two kinds of consumer
hang off the feed:

  listeners    plain callables run for every notification; the session
               registry registers one to append notifications to the
               target user's open session
  subscribers  per-user async iterators; the SSE endpoint streams one

InMemoryNotificationFeed dispatches inside publish().  RedisNotificationFeed
publishes to a channel and dispatches from run(), a background task that
reads the channel, so every API instance sees every notification.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import defaultdict
from collections.abc import AsyncIterator, Callable
from typing import Protocol
from uuid import UUID

from redis.exceptions import RedisError

from app.db.redis import redis_pool
from app.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)

Listener = Callable[[Notification], None]

CHANNEL = "portal:notifications"


class NotificationFeed(Protocol):
    async def publish(self, notification: Notification) -> None: ...
    def add_listener(self, listener: Listener) -> None: ...
    def subscribe(self, user_id: UUID) -> AsyncIterator[Notification]: ...


def encode_notification(n: Notification) -> str:
    return json.dumps(
        {
            "id": str(n.id),
            "user_id": str(n.user_id),
            "type": n.type.value,
            "message": n.message,
            "created_at": n.created_at,
            "read": n.read,
        }
    )


def decode_notification(raw: str) -> Notification:
    data = json.loads(raw)
    return Notification(
        id=UUID(data["id"]),
        user_id=UUID(data["user_id"]),
        type=NotificationType(data["type"]),
        message=data["message"],
        created_at=int(data["created_at"]),
        read=bool(data.get("read", False)),
    )


class _LocalFanout:
    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._queues: dict[UUID, set[asyncio.Queue[Notification]]] = defaultdict(set)

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _dispatch(self, notification: Notification) -> None:
        for listener in self._listeners:
            listener(notification)
        for queue in self._queues.get(notification.user_id, ()):
            queue.put_nowait(notification)

    async def subscribe(self, user_id: UUID) -> AsyncIterator[Notification]:
        queue: asyncio.Queue[Notification] = asyncio.Queue()
        self._queues[user_id].add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._queues[user_id].discard(queue)
            if not self._queues[user_id]:
                del self._queues[user_id]


class InMemoryNotificationFeed(_LocalFanout):
    async def publish(self, notification: Notification) -> None:
        self._dispatch(notification)


class RedisNotificationFeed(_LocalFanout):
    def __init__(self, redis_client) -> None:
        super().__init__()
        self._redis = redis_client

    async def publish(self, notification: Notification) -> None:
        try:
            await self._redis.publish(CHANNEL, encode_notification(notification))
        except RedisError:
            # the notification is already stored; clients see it on next load
            logger.exception("Realtime publish failed  notification_id=%s", notification.id)

    async def run(self) -> None:
        """Read the channel forever and dispatch locally.  Cancel to stop."""
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(CHANNEL)
        logger.info("Notification feed listening on %s", CHANNEL)
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    notification = decode_notification(message["data"])
                except (ValueError, KeyError):
                    logger.warning("Dropping malformed feed message: %r", message["data"])
                    continue
                self._dispatch(notification)
        finally:
            await pubsub.unsubscribe(CHANNEL)
            await pubsub.aclose()


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    notification_feed: NotificationFeed = RedisNotificationFeed(redis_pool)
else:
    notification_feed = InMemoryNotificationFeed()
