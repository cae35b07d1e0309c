"""Learner progress endpoints: modules, final quiz and rating.

Every write goes through the ProgressReconciler bound to the caller's
session.  Writes that award points invalidate the cached leaderboard.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from app.api.dependencies import get_portal_session, get_reconciler
from app.api.errors import SERVICE_ERRORS, http_error
from app.api.schemas import CertificateOut, ProgressOut, ReviewOut
from app.services.cache import cache_service
from app.services.errors import CourseNotFoundError
from app.services.leaderboard_service import invalidate_leaderboard
from app.services.portal_session import PortalSession
from app.services.reconciler import ProgressReconciler, grade_quiz

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/progress", tags=["progress"])


class ModuleCompletionOut(BaseModel):
    newly_completed: bool
    points_awarded: int
    points: int
    progress: ProgressOut
    warnings: list[str]


class QuizIn(BaseModel):
    """Either a precomputed score or the chosen option index per question."""

    score: int | None = None
    answers: list[int] | None = None


class QuizOutcomeOut(BaseModel):
    passed: bool
    score: int
    passing_score: int
    first_completion: bool
    points_awarded: int
    new_badges: list[str]
    certificate: CertificateOut | None
    warnings: list[str]


class RatingIn(BaseModel):
    rating: int
    comment: str


class RatingOut(BaseModel):
    review: ReviewOut
    rating_saved: bool


def _module_count(session: PortalSession, course_id: UUID) -> int:
    course = session.courses.get(course_id)
    return len(course.modules) if course else 0


@router.get("", response_model=list[ProgressOut])
async def list_my_progress(
    session: Annotated[PortalSession, Depends(get_portal_session)],
) -> list[ProgressOut]:
    records = session.progress.get(session.user_id, {}).values()
    return [ProgressOut.of(r, _module_count(session, r.course_id)) for r in records]


@router.post(
    "/{course_id}/modules/{module_id}/complete",
    response_model=ModuleCompletionOut,
)
async def complete_module(
    course_id: UUID,
    module_id: UUID,
    session: Annotated[PortalSession, Depends(get_portal_session)],
    reconciler: Annotated[ProgressReconciler, Depends(get_reconciler)],
) -> ModuleCompletionOut:
    try:
        outcome = await reconciler.record_module_completion(course_id, module_id)
    except SERVICE_ERRORS as e:
        raise http_error(e) from None
    if outcome.points_awarded:
        await invalidate_leaderboard(cache_service)

    record = session.progress_for(session.user_id, course_id)
    assert record is not None
    return ModuleCompletionOut(
        newly_completed=outcome.newly_completed,
        points_awarded=outcome.points_awarded,
        points=session.identity.points,
        progress=ProgressOut.of(record, _module_count(session, course_id)),
        warnings=list(outcome.warnings),
    )


@router.post("/{course_id}/quiz", response_model=QuizOutcomeOut)
async def submit_quiz(
    course_id: UUID,
    body: QuizIn,
    session: Annotated[PortalSession, Depends(get_portal_session)],
    reconciler: Annotated[ProgressReconciler, Depends(get_reconciler)],
) -> QuizOutcomeOut:
    if (body.score is None) == (body.answers is None):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail="send exactly one of score or answers",
        )

    try:
        course = session.courses.get(course_id)
        if course is None:
            raise CourseNotFoundError(f"course {course_id} not found")
        score = body.score if body.answers is None else grade_quiz(course, body.answers)
        outcome = await reconciler.submit_quiz(course_id, score)
    except SERVICE_ERRORS as e:
        raise http_error(e) from None

    if outcome.points_awarded:
        await invalidate_leaderboard(cache_service)

    return QuizOutcomeOut(
        passed=outcome.passed,
        score=outcome.score,
        passing_score=course.passing_score,
        first_completion=outcome.first_completion,
        points_awarded=outcome.points_awarded,
        new_badges=[b.value for b in outcome.new_badges],
        certificate=CertificateOut.of(outcome.certificate) if outcome.certificate else None,
        warnings=list(outcome.warnings),
    )


@router.post(
    "/{course_id}/rating",
    response_model=RatingOut,
    status_code=status.HTTP_201_CREATED,
)
async def rate_course(
    course_id: UUID,
    body: RatingIn,
    reconciler: Annotated[ProgressReconciler, Depends(get_reconciler)],
) -> RatingOut:
    try:
        outcome = await reconciler.rate_course(course_id, body.rating, body.comment)
    except SERVICE_ERRORS as e:
        raise http_error(e) from None
    return RatingOut(review=ReviewOut.of(outcome.review), rating_saved=outcome.rating_saved)
