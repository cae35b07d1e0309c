"""JSON auth endpoints (/auth/register, /auth/login).

Registration creates an unapproved learner and issues no token: the
account cannot sign in until an administrator approves it.  Login
returns { accessToken, user } and loads the caller's portal session.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from app.api.dependencies import portal_store, session_registry
from app.api.schemas import UserOut
from app.services import auth_service, token_service
from app.services.navigation import landing_view
from app.services.portal_session import load_portal_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginIn(BaseModel):
    email: str
    password: str


class RegisterIn(BaseModel):
    name: str
    email: str
    password: str


class AuthResponse(BaseModel):
    accessToken: str
    landing_view: str
    user: UserOut


class RegisterResponse(BaseModel):
    message: str
    user: UserOut


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginIn) -> AuthResponse:
    try:
        user = await auth_service.authenticate_user(
            portal_store.users, payload.email, payload.password
        )
    except auth_service.PendingApprovalError as e:
        logger.warning("Login refused, awaiting approval  email=%s", payload.email)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail={"message": str(e)}
        ) from None

    if user is None:
        logger.warning("Login failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Invalid email or password"},
        )

    session_registry.put(await load_portal_session(portal_store, user))
    logger.info("Login succeeded  user_id=%s", user.id)

    return AuthResponse(
        accessToken=token_service.create_access_token(
            sub=str(user.id), role=user.role.value
        ),
        landing_view=landing_view(user.role).value,
        user=UserOut.of(user),
    )


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(payload: RegisterIn) -> RegisterResponse:
    try:
        user = await auth_service.register_user(
            portal_store.users,
            email=payload.email,
            name=payload.name,
            password=payload.password,
        )
    except auth_service.RegistrationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail={"message": str(e)},
        ) from None
    except auth_service.EmailTakenError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail={"message": str(e)}
        ) from None

    return RegisterResponse(
        message="Registration received. An administrator will approve your account.",
        user=UserOut.of(user),
    )
