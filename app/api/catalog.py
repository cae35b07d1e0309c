"""Read-only catalog endpoints: leaderboard, categories, resources, navigation."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app.api.dependencies import get_portal_session, portal_store, require_user
from app.models.principal import Principal
from app.services.cache import cache_service
from app.services.leaderboard_service import get_leaderboard
from app.services.navigation import (
    Page,
    View,
    allowed_views,
    landing_view,
    resolve_page,
    resolve_view,
)
from app.services.portal_session import PortalSession

router = APIRouter(prefix="/v1", tags=["catalog"])


class LeaderboardEntryOut(BaseModel):
    rank: int
    user_id: str
    name: str
    points: int
    badges: list[str]


class CategoryOut(BaseModel):
    id: str
    name: str


class ResourceOut(BaseModel):
    id: str
    title: str
    url: str
    description: str
    category_id: str | None
    created_at: int


class NavigationOut(BaseModel):
    page: str
    view: str
    landing_view: str
    allowed_views: list[str]


@router.get("/leaderboard", response_model=list[LeaderboardEntryOut])
async def leaderboard(
    _principal: Annotated[Principal, Depends(require_user)],
) -> list[LeaderboardEntryOut]:
    """Approved learners by points.  Cached for LEADERBOARD_CACHE_TTL seconds."""
    entries = await get_leaderboard(portal_store, cache_service)
    return [
        LeaderboardEntryOut(
            rank=e.rank, user_id=e.user_id, name=e.name, points=e.points, badges=e.badges
        )
        for e in entries
    ]


@router.get("/categories", response_model=list[CategoryOut])
async def list_categories(
    session: Annotated[PortalSession, Depends(get_portal_session)],
) -> list[CategoryOut]:
    return [CategoryOut(id=str(c.id), name=c.name) for c in session.categories]


@router.get("/resources", response_model=list[ResourceOut])
async def list_resources(
    session: Annotated[PortalSession, Depends(get_portal_session)],
    category_id: Annotated[UUID | None, Query()] = None,
) -> list[ResourceOut]:
    return [
        ResourceOut(
            id=str(r.id),
            title=r.title,
            url=r.url,
            description=r.description,
            category_id=str(r.category_id) if r.category_id else None,
            created_at=r.created_at,
        )
        for r in session.resources
        if category_id is None or r.category_id == category_id
    ]


@router.get("/navigation", response_model=NavigationOut)
async def navigation(
    principal: Annotated[Principal, Depends(require_user)],
    view: Annotated[View | None, Query()] = None,
    page: Annotated[Page | None, Query()] = None,
) -> NavigationOut:
    """Resolve a requested view against the caller's role."""
    return NavigationOut(
        page=resolve_page(True, page).value,
        view=resolve_view(principal.role, view).value,
        landing_view=landing_view(principal.role).value,
        allowed_views=[v.value for v in allowed_views(principal.role)],
    )
