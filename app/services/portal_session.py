"""Session-scoped mirror of portal state.

A PortalSession holds what one signed-in identity has loaded: the
users list (for the leaderboard), the course catalog, progress records,
notifications, categories and resources.  The reconciler updates it
after each confirmed store write, so it always equals durable state for
the rows it holds.

SessionRegistry keeps one session per signed-in user in this process.
Sessions are created on login (or restored on the first request after a
restart) and dropped on logout.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from uuid import UUID

from app.models.course import (
    Course,
    CourseCategory,
    DiscussionPost,
    ExternalResource,
    Review,
)
from app.models.notification import Notification
from app.models.progress import CertificateData, ProgressRecord
from app.models.user import User
from app.repos.store import PortalStore

logger = logging.getLogger(__name__)

ProgressMap = dict[UUID, dict[UUID, ProgressRecord]]


@dataclass(slots=True)
class PortalSession:
    identity: User
    users: dict[UUID, User] = field(default_factory=dict)
    courses: dict[UUID, Course] = field(default_factory=dict)
    progress: ProgressMap = field(default_factory=dict)
    notifications: list[Notification] = field(default_factory=list)
    categories: list[CourseCategory] = field(default_factory=list)
    resources: list[ExternalResource] = field(default_factory=list)

    @property
    def user_id(self) -> UUID:
        return self.identity.id

    # --- progress ---

    def progress_for(self, user_id: UUID, course_id: UUID) -> ProgressRecord | None:
        return self.progress.get(user_id, {}).get(course_id)

    def set_progress(self, record: ProgressRecord) -> None:
        """Mirror a confirmed record.

        Completed modules and completed_at only ever grow: a response from
        an older write that lands after a newer one cannot take them back.
        """
        records = self.progress.setdefault(record.user_id, {})
        held = records.get(record.course_id)
        if held is not None:
            extra = tuple(
                m for m in held.completed_modules if m not in record.completed_modules
            )
            record = replace(
                record,
                completed_modules=(*record.completed_modules, *extra),
                completed_at=record.completed_at or held.completed_at,
            )
        records[record.course_id] = record

    def completed_count(self, user_id: UUID) -> int:
        return sum(1 for p in self.progress.get(user_id, {}).values() if p.is_completed)

    def certificate_for(self, course_id: UUID) -> CertificateData | None:
        record = self.progress_for(self.identity.id, course_id)
        course = self.courses.get(course_id)
        if record is None or record.completed_at is None or course is None:
            return None
        return CertificateData(
            course_id=course_id,
            learner_name=self.identity.name,
            course_title=course.title,
            completed_at=record.completed_at,
        )

    def certificates(self) -> list[CertificateData]:
        found = (self.certificate_for(cid) for cid in self.progress.get(self.identity.id, {}))
        return sorted(
            (c for c in found if c is not None), key=lambda c: c.completed_at, reverse=True
        )

    # --- users ---

    def set_user(self, user: User) -> None:
        self.users[user.id] = user
        if user.id == self.identity.id:
            self.identity = user

    def apply_points(self, user_id: UUID, total: int) -> None:
        """Mirror a confirmed points total onto every local copy of the user."""
        user = self.users.get(user_id)
        if user is not None:
            self.users[user_id] = replace(user, points=total)
        if user_id == self.identity.id:
            self.identity = replace(self.identity, points=total)

    def apply_badges(self, user_id: UUID, badges: frozenset[str]) -> None:
        user = self.users.get(user_id)
        if user is not None:
            self.users[user_id] = replace(user, badges=badges)
        if user_id == self.identity.id:
            self.identity = replace(self.identity, badges=badges)

    # --- catalog ---

    def set_course(self, course: Course) -> None:
        self.courses[course.id] = course

    def remove_course(self, course_id: UUID) -> None:
        self.courses.pop(course_id, None)
        for records in self.progress.values():
            records.pop(course_id, None)

    def append_review(self, review: Review) -> None:
        course = self.courses.get(review.course_id)
        if course is not None:
            self.courses[course.id] = replace(course, reviews=(*course.reviews, review))

    def add_post(self, post: DiscussionPost) -> bool:
        """Append ``post`` to its course's discussion unless already held."""
        course = self.courses.get(post.course_id)
        if course is None or course.has_post(post.id):
            return False
        self.courses[course.id] = replace(course, discussion=(*course.discussion, post))
        return True

    def remove_post(self, course_id: UUID, post_id: UUID) -> None:
        course = self.courses.get(course_id)
        if course is not None:
            kept = tuple(p for p in course.discussion if p.id != post_id)
            self.courses[course_id] = replace(course, discussion=kept)

    # --- notifications ---

    def apply_notification(self, notification: Notification) -> bool:
        """Prepend a pushed notification if it targets this identity.

        Returns False for other users' notifications and for ids already held.
        """
        if notification.user_id != self.identity.id:
            return False
        if any(n.id == notification.id for n in self.notifications):
            return False
        self.notifications.insert(0, notification)
        return True

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.read)


async def load_portal_session(store: PortalStore, identity: User) -> PortalSession:
    """Fetch the role-scoped rows for ``identity`` concurrently.

    Admins get every user's progress; learners only their own.
    """
    progress_call = (
        store.progress.list_all()
        if identity.is_admin
        else store.progress.list_for_user(identity.id)
    )
    users, courses, records, notifications, categories, resources = await asyncio.gather(
        store.users.list_all(),
        store.courses.list_all(),
        progress_call,
        store.notifications.list_for_user(identity.id),
        store.categories.list_all(),
        store.resources.list_all(),
    )

    progress: ProgressMap = defaultdict(dict)
    for record in records:
        progress[record.user_id][record.course_id] = record

    session = PortalSession(
        identity=identity,
        users={u.id: u for u in users},
        courses={c.id: c for c in courses},
        progress=dict(progress),
        notifications=list(notifications),
        categories=list(categories),
        resources=list(resources),
    )
    logger.debug(
        "Session loaded  user_id=%s courses=%d progress_rows=%d",
        identity.id,
        len(session.courses),
        len(records),
    )
    return session


class SessionRegistry:
    def __init__(self) -> None:
        self._sessions: dict[UUID, PortalSession] = {}

    def get(self, user_id: UUID) -> PortalSession | None:
        return self._sessions.get(user_id)

    def put(self, session: PortalSession) -> None:
        self._sessions[session.user_id] = session

    def drop(self, user_id: UUID) -> None:
        if self._sessions.pop(user_id, None) is not None:
            logger.info("Session dropped  user_id=%s", user_id)

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)

    # --- fan-out of changes made outside a session's own reconciler ---

    def apply_notification(self, notification: Notification) -> None:
        session = self._sessions.get(notification.user_id)
        if session is not None:
            session.apply_notification(notification)

    def apply_course(self, course: Course) -> None:
        for session in self._sessions.values():
            session.set_course(course)

    def remove_course(self, course_id: UUID) -> None:
        for session in self._sessions.values():
            session.remove_course(course_id)

    def apply_post(self, post: DiscussionPost) -> None:
        for session in self._sessions.values():
            session.add_post(post)

    def apply_user(self, user: User) -> None:
        for session in self._sessions.values():
            session.set_user(user)

    def set_catalog(
        self,
        *,
        categories: list[CourseCategory] | None = None,
        resources: list[ExternalResource] | None = None,
    ) -> None:
        for session in self._sessions.values():
            if categories is not None:
                session.categories = list(categories)
            if resources is not None:
                session.resources = list(resources)
