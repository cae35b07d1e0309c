"""Logout: drops the caller's portal session.

Tokens are short-lived and not revoked; the next request with the same
token restores a fresh session from the store.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response

from app.api.dependencies import require_user, session_registry
from app.models.principal import Principal

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/auth/logout", status_code=204)
async def logout(
    principal: Annotated[Principal, Depends(require_user)],
) -> Response:
    session_registry.drop(UUID(principal.user_id))
    logger.info("Logout  user_id=%s", principal.user_id)
    return Response(status_code=204)
