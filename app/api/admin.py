"""Administrator endpoints.  Every route requires the admin role.

Catalog changes are pushed into every open portal session so learners
see new or edited courses without signing in again.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from app.api.catalog import CategoryOut, LeaderboardEntryOut, ResourceOut
from app.api.dependencies import portal_store, require_role, session_registry
from app.api.errors import SERVICE_ERRORS, http_error
from app.api.schemas import CourseDetailOut, ProgressOut, UserOut
from app.models.principal import Principal
from app.models.user import Role
from app.services import admin_service
from app.services.admin_service import CourseDraft, ModuleDraft, QuestionDraft
from app.services.cache import cache_service
from app.services.leaderboard_service import get_leaderboard, invalidate_leaderboard
from app.services.notification_feed import notification_feed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

AdminPrincipal = Annotated[Principal, Depends(require_role(Role.ADMIN))]


# --- schemas ---------------------------------------------------------------


class AdminUserOut(UserOut):
    enrollments: int
    completed_courses: int
    progress: list[ProgressOut]


class AnnouncementIn(BaseModel):
    message: str
    user_id: UUID | None = None


class AnnouncementOut(BaseModel):
    sent: int


class ModuleIn(BaseModel):
    id: UUID | None = None
    title: str
    content_type: str = "text"
    content_ref: str = ""


class QuestionIn(BaseModel):
    id: UUID | None = None
    prompt: str
    options: list[str]
    correct_index: int


class CourseIn(BaseModel):
    title: str
    description: str = ""
    category_id: UUID | None = None
    passing_score: int = 70
    modules: list[ModuleIn] = []
    questions: list[QuestionIn] = []

    def to_draft(self) -> CourseDraft:
        return CourseDraft(
            title=self.title,
            description=self.description,
            category_id=self.category_id,
            passing_score=self.passing_score,
            modules=[
                ModuleDraft(
                    id=m.id,
                    title=m.title,
                    content_type=m.content_type,
                    content_ref=m.content_ref,
                )
                for m in self.modules
            ],
            questions=[
                QuestionDraft(
                    id=q.id,
                    prompt=q.prompt,
                    options=q.options,
                    correct_index=q.correct_index,
                )
                for q in self.questions
            ],
        )


class CategoryIn(BaseModel):
    name: str


class ResourceIn(BaseModel):
    title: str
    url: str
    description: str = ""
    category_id: UUID | None = None


class CourseStatsOut(BaseModel):
    course_id: str
    title: str
    enrollments: int
    completions: int
    completion_rate: float
    average_score: float | None
    average_rating: float | None


class AnalyticsOut(BaseModel):
    courses: list[CourseStatsOut]
    leaderboard: list[LeaderboardEntryOut]


# --- users -----------------------------------------------------------------


@router.get("/users", response_model=list[AdminUserOut])
async def admin_list_users(principal: AdminPrincipal) -> list[AdminUserOut]:
    logger.info("Admin user list requested by user=%s", principal.user_id)
    overviews = await admin_service.list_users_with_progress(portal_store)
    courses = {c.id: c for c in await portal_store.courses.list_all()}

    def _modules(course_id: UUID) -> int:
        course = courses.get(course_id)
        return len(course.modules) if course else 0

    return [
        AdminUserOut(
            **UserOut.of(o.user).model_dump(),
            enrollments=len(o.progress),
            completed_courses=o.completed_courses,
            progress=[ProgressOut.of(p, _modules(p.course_id)) for p in o.progress],
        )
        for o in overviews
    ]


@router.post("/users/{user_id}/approve", response_model=UserOut)
async def approve_user(user_id: UUID, principal: AdminPrincipal) -> UserOut:
    try:
        user = await admin_service.approve_user(portal_store, notification_feed, user_id)
    except SERVICE_ERRORS as e:
        raise http_error(e) from None

    session_registry.apply_user(user)
    await invalidate_leaderboard(cache_service)
    logger.info("User %s approved by admin=%s", user_id, principal.user_id)
    return UserOut.of(user)


@router.post(
    "/notifications",
    response_model=AnnouncementOut,
    status_code=status.HTTP_201_CREATED,
)
async def send_announcement(
    body: AnnouncementIn, principal: AdminPrincipal
) -> AnnouncementOut:
    try:
        sent = await admin_service.send_announcement(
            portal_store, notification_feed, body.message, body.user_id
        )
    except SERVICE_ERRORS as e:
        raise http_error(e) from None
    logger.info("Announcement by admin=%s to %d user(s)", principal.user_id, len(sent))
    return AnnouncementOut(sent=len(sent))


# --- courses ---------------------------------------------------------------


@router.post(
    "/courses",
    response_model=CourseDetailOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_course(body: CourseIn, _principal: AdminPrincipal) -> CourseDetailOut:
    try:
        course = await admin_service.create_course(portal_store, body.to_draft())
    except SERVICE_ERRORS as e:
        raise http_error(e) from None
    session_registry.apply_course(course)
    return CourseDetailOut.detail(course, with_answers=True)


@router.put("/courses/{course_id}", response_model=CourseDetailOut)
async def update_course(
    course_id: UUID, body: CourseIn, _principal: AdminPrincipal
) -> CourseDetailOut:
    try:
        course = await admin_service.update_course(portal_store, course_id, body.to_draft())
    except SERVICE_ERRORS as e:
        raise http_error(e) from None
    session_registry.apply_course(course)
    return CourseDetailOut.detail(course, with_answers=True)


@router.delete("/courses/{course_id}", status_code=204)
async def delete_course(course_id: UUID, _principal: AdminPrincipal) -> Response:
    try:
        await admin_service.delete_course(portal_store, course_id)
    except SERVICE_ERRORS as e:
        raise http_error(e) from None
    session_registry.remove_course(course_id)
    return Response(status_code=204)


# --- categories ------------------------------------------------------------


async def _publish_categories() -> None:
    session_registry.set_catalog(categories=await portal_store.categories.list_all())


@router.post(
    "/categories",
    response_model=CategoryOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_category(body: CategoryIn, _principal: AdminPrincipal) -> CategoryOut:
    try:
        category = await admin_service.create_category(portal_store, body.name)
    except SERVICE_ERRORS as e:
        raise http_error(e) from None
    await _publish_categories()
    return CategoryOut(id=str(category.id), name=category.name)


@router.put("/categories/{category_id}", response_model=CategoryOut)
async def rename_category(
    category_id: UUID, body: CategoryIn, _principal: AdminPrincipal
) -> CategoryOut:
    try:
        category = await admin_service.rename_category(portal_store, category_id, body.name)
    except SERVICE_ERRORS as e:
        raise http_error(e) from None
    await _publish_categories()
    return CategoryOut(id=str(category.id), name=category.name)


@router.delete("/categories/{category_id}", status_code=204)
async def delete_category(category_id: UUID, _principal: AdminPrincipal) -> Response:
    try:
        cleared = await admin_service.delete_category(portal_store, category_id)
    except SERVICE_ERRORS as e:
        raise http_error(e) from None

    await _publish_categories()
    if cleared:
        for course in await portal_store.courses.list_all():
            session_registry.apply_course(course)
    return Response(status_code=204)


# --- resources -------------------------------------------------------------


@router.post(
    "/resources",
    response_model=ResourceOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_resource(body: ResourceIn, _principal: AdminPrincipal) -> ResourceOut:
    try:
        r = await admin_service.create_resource(
            portal_store,
            title=body.title,
            url=body.url,
            description=body.description,
            category_id=body.category_id,
        )
    except SERVICE_ERRORS as e:
        raise http_error(e) from None
    session_registry.set_catalog(resources=await portal_store.resources.list_all())
    return ResourceOut(
        id=str(r.id),
        title=r.title,
        url=r.url,
        description=r.description,
        category_id=str(r.category_id) if r.category_id else None,
        created_at=r.created_at,
    )


@router.delete("/resources/{resource_id}", status_code=204)
async def delete_resource(resource_id: UUID, _principal: AdminPrincipal) -> Response:
    try:
        await admin_service.delete_resource(portal_store, resource_id)
    except SERVICE_ERRORS as e:
        raise http_error(e) from None
    session_registry.set_catalog(resources=await portal_store.resources.list_all())
    return Response(status_code=204)


# --- analytics -------------------------------------------------------------


@router.get("/analytics", response_model=AnalyticsOut)
async def analytics(_principal: AdminPrincipal) -> AnalyticsOut:
    stats = await admin_service.course_analytics(portal_store)
    board = await get_leaderboard(portal_store, cache_service)
    return AnalyticsOut(
        courses=[
            CourseStatsOut(
                course_id=str(s.course_id),
                title=s.title,
                enrollments=s.enrollments,
                completions=s.completions,
                completion_rate=s.completion_rate,
                average_score=s.average_score,
                average_rating=s.average_rating,
            )
            for s in stats
        ],
        leaderboard=[
            LeaderboardEntryOut(
                rank=e.rank, user_id=e.user_id, name=e.name, points=e.points, badges=e.badges
            )
            for e in board
        ],
    )
