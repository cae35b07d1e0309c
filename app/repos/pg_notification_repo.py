"""PostgreSQL implementation of NotificationRepo."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.tables import NotificationRow
from app.models.notification import Notification, NotificationType
from app.repos.pg_session import store_session


def _epoch() -> int:
    return int(time.time())


class PgNotificationRepo:
    def __init__(
        self,
        factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], int] = _epoch,
    ) -> None:
        self._factory = factory
        self._clock = clock

    async def create(
        self, user_id: UUID, type: NotificationType, message: str
    ) -> Notification:
        row = NotificationRow(
            id=uuid4(),
            user_id=user_id,
            type=type.value,
            message=message,
            read=False,
            created_at=self._clock(),
        )
        async with store_session(self._factory) as s:
            s.add(row)
        return _row_to_notification(row)

    async def list_for_user(self, user_id: UUID) -> list[Notification]:
        async with store_session(self._factory) as s:
            stmt = (
                select(NotificationRow)
                .where(NotificationRow.user_id == user_id)
                .order_by(NotificationRow.created_at.desc())
            )
            return [_row_to_notification(r) for r in (await s.execute(stmt)).scalars()]

    async def mark_read(self, notification_ids: Iterable[UUID]) -> None:
        ids = list(notification_ids)
        if not ids:
            return
        async with store_session(self._factory) as s:
            await s.execute(
                update(NotificationRow)
                .where(NotificationRow.id.in_(ids))
                .values(read=True)
            )


def _row_to_notification(row: NotificationRow) -> Notification:
    return Notification(
        id=row.id,
        user_id=row.user_id,
        type=NotificationType(row.type),
        message=row.message,
        created_at=row.created_at,
        read=row.read,
    )
