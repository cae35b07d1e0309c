"""Notification endpoints.

GET  /v1/notifications         the caller's notifications, newest first
POST /v1/notifications/read    mark all as read
GET  /v1/notifications/stream  server-sent events, one per new notification
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from app.api.dependencies import get_portal_session, portal_store, require_user
from app.api.errors import SERVICE_ERRORS, http_error
from app.api.schemas import NotificationOut
from app.models.notification import Notification
from app.models.principal import Principal
from app.services import notifications_service
from app.services.notification_feed import notification_feed
from app.services.portal_session import PortalSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/notifications", tags=["notifications"])


class NotificationListOut(BaseModel):
    unread: int
    items: list[NotificationOut]


class MarkReadOut(BaseModel):
    marked: int


@router.get("", response_model=NotificationListOut)
async def list_notifications(
    session: Annotated[PortalSession, Depends(get_portal_session)],
) -> NotificationListOut:
    return NotificationListOut(
        unread=session.unread_count,
        items=[NotificationOut.of(n) for n in session.notifications],
    )


@router.post("/read", response_model=MarkReadOut)
async def mark_all_read(
    session: Annotated[PortalSession, Depends(get_portal_session)],
) -> MarkReadOut:
    try:
        marked = await notifications_service.mark_all_read(session, portal_store)
    except SERVICE_ERRORS as e:
        raise http_error(e) from None
    return MarkReadOut(marked=marked)


async def sse_events(notifications: AsyncIterator[Notification]) -> AsyncIterator[str]:
    """Format notifications as text/event-stream frames."""
    async for n in notifications:
        yield f"event: notification\ndata: {NotificationOut.of(n).model_dump_json()}\n\n"


@router.get("/stream")
async def stream_notifications(
    principal: Annotated[Principal, Depends(require_user)],
) -> StreamingResponse:
    logger.info("Notification stream opened  user_id=%s", principal.user_id)
    return StreamingResponse(
        sse_events(notification_feed.subscribe(UUID(principal.user_id))),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
