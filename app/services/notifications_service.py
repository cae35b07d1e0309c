from __future__ import annotations

import logging
from dataclasses import replace
from uuid import UUID

from app.core.metrics import NOTIFICATIONS_PUBLISHED
from app.models.notification import Notification, NotificationType
from app.repos.store import PortalStore
from app.services.errors import remote_write
from app.services.notification_feed import NotificationFeed
from app.services.portal_session import PortalSession

logger = logging.getLogger(__name__)


async def notify(
    store: PortalStore,
    feed: NotificationFeed,
    user_id: UUID,
    type: NotificationType,
    message: str,
) -> Notification:
    """Store a notification for ``user_id`` and push it to the realtime feed.

    Raises RemoteWriteError if the store rejects it; nothing is published then.
    """
    n = await remote_write(
        "create_notification", store.notifications.create(user_id, type, message)
    )
    NOTIFICATIONS_PUBLISHED.labels(type=type.value).inc()
    await feed.publish(n)
    logger.info("Notification sent  user_id=%s type=%s", user_id, type.value)
    return n


async def mark_all_read(session: PortalSession, store: PortalStore) -> int:
    """Mark every unread notification in the session as read.

    The session is updated before the write so the badge count clears
    at once; if the write fails the previous list is restored and
    RemoteWriteError propagates.
    """
    unread = [n.id for n in session.notifications if not n.read]
    if not unread:
        return 0

    previous = list(session.notifications)
    session.notifications = [replace(n, read=True) for n in previous]
    try:
        await remote_write("mark_notifications_read", store.notifications.mark_read(unread))
    except Exception:
        session.notifications = previous
        raise
    return len(unread)
