"""Profile endpoints with ownership-based access control.

GET   /auth/me           load own profile
POST  /auth/password     change own password
PATCH /users/{user_id}   edit profile (self or admin)
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from app.api.access import check_owner_or_admin
from app.api.errors import SERVICE_ERRORS, http_error
from app.api.dependencies import get_portal_session, portal_store, require_user, session_registry
from app.api.schemas import UserOut
from app.models.principal import Principal
from app.repos.errors import DuplicateError
from app.services import auth_service
from app.services.cache import cache_service
from app.services.leaderboard_service import invalidate_leaderboard
from app.services.portal_session import PortalSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["profile"])


class ProfileOut(UserOut):
    unread_notifications: int


class UpdateProfileIn(BaseModel):
    name: str | None = None
    email: str | None = None
    profile_image_url: str | None = None


class ChangePasswordIn(BaseModel):
    current_password: str
    new_password: str


@router.get("/auth/me", response_model=ProfileOut)
async def get_my_profile(
    session: Annotated[PortalSession, Depends(get_portal_session)],
) -> ProfileOut:
    """The signed-in user's profile, from their session."""
    return ProfileOut(
        **UserOut.of(session.identity).model_dump(),
        unread_notifications=session.unread_count,
    )


@router.post("/auth/password", status_code=204)
async def change_password(
    body: ChangePasswordIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> Response:
    user_id = UUID(principal.user_id)
    try:
        await auth_service.change_password(
            portal_store.users,
            user_id,
            current_password=body.current_password,
            new_password=body.new_password,
        )
    except auth_service.WrongPasswordError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from None
    except auth_service.PasswordChangeError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(e)
        ) from None
    except SERVICE_ERRORS as e:
        raise http_error(e) from None

    updated = await portal_store.users.get_by_id(user_id)
    if updated is not None:
        session_registry.apply_user(updated)
    return Response(status_code=204)


@router.patch("/users/{user_id}", response_model=UserOut)
async def update_profile(
    user_id: UUID,
    body: UpdateProfileIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> UserOut:
    """Edit a user's profile. Self or admin only."""
    check_owner_or_admin(principal, str(user_id))

    current = await portal_store.users.get_by_id(user_id)
    if current is None:
        raise HTTPException(status_code=404, detail="user not found")

    name = body.name.strip() if body.name is not None else current.name
    if not name:
        raise HTTPException(status_code=422, detail="name must not be empty")
    email = (
        auth_service.normalize_email(body.email)
        if body.email is not None
        else current.email
    )
    if "@" not in email:
        raise HTTPException(status_code=422, detail="invalid email address")
    image = (
        body.profile_image_url
        if "profile_image_url" in body.model_fields_set
        else current.profile_image_url
    )

    try:
        updated = await portal_store.users.update_profile(
            user_id, name=name, email=email, profile_image_url=image or None
        )
    except DuplicateError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="email already exists"
        ) from None
    if updated is None:
        raise HTTPException(status_code=404, detail="user not found")

    session_registry.apply_user(updated)
    await invalidate_leaderboard(cache_service)
    logger.info("Profile updated  user_id=%s by=%s", user_id, principal.user_id)
    return UserOut.of(updated)
