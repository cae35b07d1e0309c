from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from app.db.engine import async_session_factory
from app.middleware.request_context import user_id_var
from app.models.principal import Principal
from app.models.user import Role
from app.repos.store import PortalStore, build_in_memory_store, build_pg_store
from app.services import token_service
from app.services.notification_feed import NotificationFeed, notification_feed
from app.services.portal_session import (
    PortalSession,
    SessionRegistry,
    load_portal_session,
)
from app.services.reconciler import ProgressReconciler

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

# ---------------------------------------------------------------------------
# Module-level singletons
# ---------------------------------------------------------------------------

if async_session_factory is not None:
    portal_store: PortalStore = build_pg_store(async_session_factory)
else:
    portal_store = build_in_memory_store()

session_registry = SessionRegistry()
notification_feed.add_listener(session_registry.apply_notification)


def get_store() -> PortalStore:
    return portal_store


def get_feed() -> NotificationFeed:
    return notification_feed


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal.

    Async so the user_id logging context is set on the request task itself.
    """
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise _unauthorized("Invalid token") from None

    try:
        UUID(claims["sub"])
        role = Role(claims["role"])
    except ValueError:
        logger.warning("Token with malformed claims rejected")
        raise _unauthorized("Invalid token") from None

    principal = Principal(user_id=claims["sub"], role=role)
    user_id_var.set(principal.user_id)
    logger.debug("Token validated for user=%s role=%s", principal.user_id, role.value)
    return principal


def require_role(role: Role):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role(Role.ADMIN))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s",
                principal.user_id,
                role.value,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


async def get_portal_session(
    principal: Annotated[Principal, Depends(require_user)],
) -> PortalSession:
    """The caller's PortalSession, restoring it from the store if needed.

    A token whose user no longer exists, or who is no longer allowed to
    sign in, ends the session.
    """
    user_id = UUID(principal.user_id)
    session = session_registry.get(user_id)
    if session is not None:
        return session

    user = await portal_store.users.get_by_id(user_id)
    if user is None:
        logger.warning("Session restore failed: no profile for user=%s", user_id)
        raise _unauthorized("Profile not found; please sign in again")
    if not user.can_sign_in:
        logger.warning("Session restore refused: user=%s awaiting approval", user_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account is awaiting administrator approval",
        )

    session = await load_portal_session(portal_store, user)
    session_registry.put(session)
    logger.info("Session restored  user_id=%s", user_id)
    return session


def get_reconciler(
    session: Annotated[PortalSession, Depends(get_portal_session)],
) -> ProgressReconciler:
    return ProgressReconciler(session, portal_store, notification_feed)
