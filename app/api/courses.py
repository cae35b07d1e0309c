"""Course catalog and enrollment endpoints.

The catalog is served from the caller's portal session; enrolling and
opening a course go through the reconciler.  Each course also carries a
discussion forum of posts and nested replies.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from app.api.dependencies import (
    get_portal_session,
    get_reconciler,
    portal_store,
    session_registry,
)
from app.api.errors import SERVICE_ERRORS, http_error
from app.api.schemas import CourseDetailOut, CourseOut, ProgressOut
from app.models.course import DiscussionPost
from app.services import discussion_service
from app.services.discussion_service import DiscussionThread
from app.services.portal_session import PortalSession
from app.services.reconciler import ProgressReconciler

router = APIRouter(prefix="/v1/courses", tags=["courses"])


class CatalogEntryOut(CourseOut):
    enrolled: bool
    completed: bool
    percent_complete: int


class CourseViewOut(CourseDetailOut):
    progress: ProgressOut | None


class TouchOut(BaseModel):
    enrolled: bool
    last_viewed_at: int | None = None


class DiscussionPostIn(BaseModel):
    body: str = Field(min_length=1, max_length=discussion_service.MAX_POST_LENGTH)


class DiscussionPostOut(BaseModel):
    id: UUID
    parent_id: UUID | None
    author_id: UUID
    author_name: str
    body: str
    created_at: int
    replies: list[DiscussionPostOut] = []

    @staticmethod
    def of(post: DiscussionPost) -> DiscussionPostOut:
        return DiscussionPostOut(
            id=post.id,
            parent_id=post.parent_id,
            author_id=post.author_id,
            author_name=post.author_name,
            body=post.body,
            created_at=post.created_at,
        )

    @staticmethod
    def thread(thread: DiscussionThread) -> DiscussionPostOut:
        out = DiscussionPostOut.of(thread.post)
        out.replies = [DiscussionPostOut.thread(r) for r in thread.replies]
        return out


@router.get("", response_model=list[CatalogEntryOut])
async def list_courses(
    session: Annotated[PortalSession, Depends(get_portal_session)],
    category_id: Annotated[UUID | None, Query()] = None,
) -> list[CatalogEntryOut]:
    entries = []
    for course in sorted(session.courses.values(), key=lambda c: -c.created_at):
        if category_id is not None and course.category_id != category_id:
            continue
        record = session.progress_for(session.user_id, course.id)
        entries.append(
            CatalogEntryOut(
                **CourseOut.of(course).model_dump(),
                enrolled=record is not None,
                completed=record is not None and record.is_completed,
                percent_complete=(
                    record.percent_complete(len(course.modules)) if record else 0
                ),
            )
        )
    return entries


@router.get("/{course_id}", response_model=CourseViewOut)
async def get_course(
    course_id: UUID,
    session: Annotated[PortalSession, Depends(get_portal_session)],
) -> CourseViewOut:
    course = session.courses.get(course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="course not found")

    record = session.progress_for(session.user_id, course_id)
    detail = CourseDetailOut.detail(course, with_answers=session.identity.is_admin)
    return CourseViewOut(
        **detail.model_dump(),
        progress=ProgressOut.of(record, len(course.modules)) if record else None,
    )


@router.post(
    "/{course_id}/enroll",
    response_model=ProgressOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll_in_course(
    course_id: UUID,
    session: Annotated[PortalSession, Depends(get_portal_session)],
    reconciler: Annotated[ProgressReconciler, Depends(get_reconciler)],
) -> ProgressOut:
    try:
        record = await reconciler.enroll(course_id)
    except SERVICE_ERRORS as e:
        raise http_error(e) from None
    return ProgressOut.of(record, len(session.courses[course_id].modules))


@router.post("/{course_id}/view", response_model=TouchOut)
async def view_course(
    course_id: UUID,
    session: Annotated[PortalSession, Depends(get_portal_session)],
    reconciler: Annotated[ProgressReconciler, Depends(get_reconciler)],
) -> TouchOut:
    if course_id not in session.courses:
        raise HTTPException(status_code=404, detail="course not found")
    try:
        record = await reconciler.touch_course(course_id)
    except SERVICE_ERRORS as e:
        raise http_error(e) from None
    if record is None:
        return TouchOut(enrolled=False)
    return TouchOut(enrolled=True, last_viewed_at=record.last_viewed_at)


@router.get("/{course_id}/discussion", response_model=list[DiscussionPostOut])
async def get_discussion(
    course_id: UUID,
    session: Annotated[PortalSession, Depends(get_portal_session)],
) -> list[DiscussionPostOut]:
    course = session.courses.get(course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="course not found")
    return [
        DiscussionPostOut.thread(t) for t in discussion_service.discussion_tree(course)
    ]


async def _post(
    session: PortalSession,
    course_id: UUID,
    body: DiscussionPostIn,
    parent_id: UUID | None = None,
) -> DiscussionPostOut:
    try:
        post = await discussion_service.post_to_discussion(
            session, portal_store, course_id, body.body, parent_id=parent_id
        )
    except SERVICE_ERRORS as e:
        raise http_error(e) from None
    session_registry.apply_post(post)
    return DiscussionPostOut.of(post)


@router.post(
    "/{course_id}/discussion",
    response_model=DiscussionPostOut,
    status_code=status.HTTP_201_CREATED,
)
async def start_discussion(
    course_id: UUID,
    body: DiscussionPostIn,
    session: Annotated[PortalSession, Depends(get_portal_session)],
) -> DiscussionPostOut:
    return await _post(session, course_id, body)


@router.post(
    "/{course_id}/discussion/{post_id}/replies",
    response_model=DiscussionPostOut,
    status_code=status.HTTP_201_CREATED,
)
async def reply_to_post(
    course_id: UUID,
    post_id: UUID,
    body: DiscussionPostIn,
    session: Annotated[PortalSession, Depends(get_portal_session)],
) -> DiscussionPostOut:
    return await _post(session, course_id, body, parent_id=post_id)
