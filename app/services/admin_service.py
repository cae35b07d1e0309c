"""Administrator operations: users, catalog, announcements and analytics."""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from uuid import UUID, uuid4

from app.models.course import (
    Course,
    CourseCategory,
    CourseModule,
    ExternalResource,
    QuizQuestion,
)
from app.models.notification import Notification, NotificationType
from app.models.progress import ProgressRecord
from app.models.user import Role, User
from app.repos.store import PortalStore
from app.services import notifications_service
from app.services.errors import (
    CategoryNotFoundError,
    CourseNotFoundError,
    PortalValidationError,
    RemoteWriteError,
    ResourceNotFoundError,
    UserNotFoundError,
    remote_write,
)
from app.services.notification_feed import NotificationFeed

logger = logging.getLogger(__name__)

CONTENT_TYPES = frozenset({"text", "video", "pdf", "link"})


def _epoch() -> int:
    return int(time.time())


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class UserOverview:
    user: User
    progress: list[ProgressRecord]

    @property
    def completed_courses(self) -> int:
        return sum(1 for p in self.progress if p.is_completed)


async def list_users_with_progress(store: PortalStore) -> list[UserOverview]:
    users = await store.users.list_all()
    by_user: dict[UUID, list[ProgressRecord]] = defaultdict(list)
    for record in await store.progress.list_all():
        by_user[record.user_id].append(record)
    return [
        UserOverview(user=u, progress=by_user.get(u.id, []))
        for u in sorted(users, key=lambda u: u.email)
    ]


async def approve_user(
    store: PortalStore, feed: NotificationFeed, user_id: UUID
) -> User:
    """Approve an account and tell its owner.

    A failed notification is logged; the approval itself stands.
    """
    user = await store.users.get_by_id(user_id)
    if user is None:
        raise UserNotFoundError(f"user {user_id} not found")
    if user.approved:
        return user

    approved = await remote_write("approve_user", store.users.set_approved(user_id, True))
    logger.info("User approved  user_id=%s", user_id)
    try:
        await notifications_service.notify(
            store,
            feed,
            user_id,
            NotificationType.APPROVAL,
            "Your account has been approved. Welcome aboard!",
        )
    except RemoteWriteError:
        logger.warning("Approval notification not sent  user_id=%s", user_id)
    return approved


async def send_announcement(
    store: PortalStore,
    feed: NotificationFeed,
    message: str,
    user_id: UUID | None = None,
) -> list[Notification]:
    """Notify one user, or every approved learner when ``user_id`` is None."""
    message = message.strip()
    if not message:
        raise PortalValidationError("message must not be empty")

    if user_id is not None:
        target = await store.users.get_by_id(user_id)
        if target is None:
            raise UserNotFoundError(f"user {user_id} not found")
        targets = [target]
    else:
        targets = [
            u for u in await store.users.list_all() if u.role is Role.LEARNER and u.approved
        ]

    sent = [
        await notifications_service.notify(
            store, feed, u.id, NotificationType.ANNOUNCEMENT, message
        )
        for u in targets
    ]
    logger.info("Announcement sent to %d user(s)", len(sent))
    return sent


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ModuleDraft:
    title: str
    content_type: str = "text"
    content_ref: str = ""
    id: UUID | None = None


@dataclass(frozen=True, slots=True)
class QuestionDraft:
    prompt: str
    options: Sequence[str]
    correct_index: int
    id: UUID | None = None


@dataclass(frozen=True, slots=True)
class CourseDraft:
    title: str
    description: str = ""
    category_id: UUID | None = None
    passing_score: int = 70
    modules: Sequence[ModuleDraft] = field(default_factory=tuple)
    questions: Sequence[QuestionDraft] = field(default_factory=tuple)


async def _validate_draft(store: PortalStore, draft: CourseDraft) -> None:
    if not draft.title.strip():
        raise PortalValidationError("title is required")
    if not 0 <= draft.passing_score <= 100:
        raise PortalValidationError("passing score must be between 0 and 100")
    for m in draft.modules:
        if not m.title.strip():
            raise PortalValidationError("every module needs a title")
        if m.content_type not in CONTENT_TYPES:
            raise PortalValidationError(f"unknown content type {m.content_type!r}")
    for q in draft.questions:
        if not q.prompt.strip():
            raise PortalValidationError("every question needs a prompt")
        if len(q.options) < 2:
            raise PortalValidationError("every question needs at least two options")
        if not 0 <= q.correct_index < len(q.options):
            raise PortalValidationError("correct answer must be one of the options")
    if draft.category_id is not None:
        if await store.categories.get(draft.category_id) is None:
            raise PortalValidationError("unknown category")


def _build_modules(
    drafts: Sequence[ModuleDraft], existing: tuple[CourseModule, ...] = ()
) -> tuple[CourseModule, ...]:
    # Modules that survive an edit keep their id; progress records point at it.
    known = {m.id for m in existing}
    return tuple(
        CourseModule(
            id=d.id if d.id in known else uuid4(),
            position=position,
            title=d.title.strip(),
            content_type=d.content_type,
            content_ref=d.content_ref,
        )
        for position, d in enumerate(drafts, start=1)
    )


def _build_questions(
    drafts: Sequence[QuestionDraft], existing: tuple[QuizQuestion, ...] = ()
) -> tuple[QuizQuestion, ...]:
    known = {q.id for q in existing}
    return tuple(
        QuizQuestion(
            id=d.id if d.id in known else uuid4(),
            position=position,
            prompt=d.prompt.strip(),
            options=tuple(d.options),
            correct_index=d.correct_index,
        )
        for position, d in enumerate(drafts, start=1)
    )


async def create_course(
    store: PortalStore, draft: CourseDraft, clock: Callable[[], int] = _epoch
) -> Course:
    await _validate_draft(store, draft)
    course = Course.new(
        title=draft.title.strip(),
        description=draft.description,
        category_id=draft.category_id,
        passing_score=draft.passing_score,
        modules=_build_modules(draft.modules),
        questions=_build_questions(draft.questions),
        created_at=clock(),
    )
    await remote_write("create_course", store.courses.add(course))
    logger.info("Course created  course_id=%s", course.id)
    return course


async def update_course(store: PortalStore, course_id: UUID, draft: CourseDraft) -> Course:
    current = await store.courses.get(course_id)
    if current is None:
        raise CourseNotFoundError(f"course {course_id} not found")
    await _validate_draft(store, draft)

    edited = Course(
        id=course_id,
        title=draft.title.strip(),
        description=draft.description,
        category_id=draft.category_id,
        passing_score=draft.passing_score,
        modules=_build_modules(draft.modules, current.modules),
        questions=_build_questions(draft.questions, current.questions),
        reviews=current.reviews,
        discussion=current.discussion,
        created_at=current.created_at,
    )
    updated = await remote_write("update_course", store.courses.update(edited))
    if updated is None:
        raise CourseNotFoundError(f"course {course_id} not found")
    logger.info("Course updated  course_id=%s", course_id)
    return updated


async def delete_course(store: PortalStore, course_id: UUID) -> None:
    if not await remote_write("delete_course", store.courses.delete(course_id)):
        raise CourseNotFoundError(f"course {course_id} not found")
    logger.info("Course deleted  course_id=%s", course_id)


# ---------------------------------------------------------------------------
# Categories & resources
# ---------------------------------------------------------------------------


def _clean_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise PortalValidationError("name must not be empty")
    return name


async def create_category(store: PortalStore, name: str) -> CourseCategory:
    category = CourseCategory.new(name=_clean_name(name))
    await remote_write("create_category", store.categories.add(category))
    return category


async def rename_category(store: PortalStore, category_id: UUID, name: str) -> CourseCategory:
    renamed = await remote_write(
        "rename_category", store.categories.rename(category_id, _clean_name(name))
    )
    if renamed is None:
        raise CategoryNotFoundError(f"category {category_id} not found")
    return renamed


async def delete_category(store: PortalStore, category_id: UUID) -> int:
    """Delete a category; its courses become uncategorized.  Returns how many."""
    if await store.categories.get(category_id) is None:
        raise CategoryNotFoundError(f"category {category_id} not found")
    cleared = await remote_write("clear_category", store.courses.clear_category(category_id))
    await remote_write("delete_category", store.categories.delete(category_id))
    logger.info("Category deleted  category_id=%s courses_cleared=%d", category_id, cleared)
    return cleared


async def create_resource(
    store: PortalStore,
    *,
    title: str,
    url: str,
    description: str = "",
    category_id: UUID | None = None,
    clock: Callable[[], int] = _epoch,
) -> ExternalResource:
    title = title.strip()
    url = url.strip()
    if not title:
        raise PortalValidationError("title is required")
    if not url.startswith(("http://", "https://")):
        raise PortalValidationError("url must start with http:// or https://")

    resource = ExternalResource.new(
        title=title,
        url=url,
        description=description,
        category_id=category_id,
        created_at=clock(),
    )
    await remote_write("create_resource", store.resources.add(resource))
    return resource


async def delete_resource(store: PortalStore, resource_id: UUID) -> None:
    if not await remote_write("delete_resource", store.resources.delete(resource_id)):
        raise ResourceNotFoundError(f"resource {resource_id} not found")


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CourseStats:
    course_id: UUID
    title: str
    enrollments: int
    completions: int
    average_score: float | None
    average_rating: float | None

    @property
    def completion_rate(self) -> float:
        if self.enrollments == 0:
            return 0.0
        return round(self.completions * 100 / self.enrollments, 1)


def _mean(values: list[int]) -> float | None:
    return round(sum(values) / len(values), 2) if values else None


async def course_analytics(store: PortalStore) -> list[CourseStats]:
    courses = await store.courses.list_all()
    by_course: dict[UUID, list[ProgressRecord]] = defaultdict(list)
    for record in await store.progress.list_all():
        by_course[record.course_id].append(record)

    stats = []
    for course in courses:
        records = by_course.get(course.id, [])
        stats.append(
            CourseStats(
                course_id=course.id,
                title=course.title,
                enrollments=len(records),
                completions=sum(1 for r in records if r.is_completed),
                average_score=_mean([r.quiz_score for r in records if r.quiz_score is not None]),
                average_rating=course.average_rating,
            )
        )
    return stats
