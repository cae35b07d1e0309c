"""Course discussion forum.

Posts are stored flat with an optional parent_id; discussion_tree()
nests them for display.  New posts show in the author's session before
the store confirms them and are taken back out if the write fails.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from uuid import UUID, uuid4

from app.models.course import Course, DiscussionPost
from app.repos.store import PortalStore
from app.services.errors import (
    CourseNotFoundError,
    PortalValidationError,
    PostNotFoundError,
    remote_write,
)
from app.services.portal_session import PortalSession

logger = logging.getLogger(__name__)

MAX_POST_LENGTH = 5000


@dataclass(frozen=True, slots=True)
class DiscussionThread:
    post: DiscussionPost
    replies: tuple[DiscussionThread, ...] = ()


def discussion_tree(course: Course) -> list[DiscussionThread]:
    """Nest the course's posts under their parents.

    Top-level posts come newest first, replies oldest first.  A reply
    whose parent is missing is dropped.
    """
    children: dict[UUID | None, list[DiscussionPost]] = {}
    for post in course.discussion:
        children.setdefault(post.parent_id, []).append(post)

    def build(post: DiscussionPost) -> DiscussionThread:
        return DiscussionThread(
            post=post, replies=tuple(build(r) for r in children.get(post.id, ()))
        )

    return [build(p) for p in reversed(children.get(None, []))]


async def post_to_discussion(
    session: PortalSession,
    store: PortalStore,
    course_id: UUID,
    body: str,
    *,
    parent_id: UUID | None = None,
) -> DiscussionPost:
    """Add a post, or a reply to ``parent_id``, as the session's identity.

    The post is added to the session first; if the store rejects it the
    post is removed again and RemoteWriteError propagates.
    """
    course = session.courses.get(course_id)
    if course is None:
        raise CourseNotFoundError(f"course {course_id} not found")
    text = body.strip()
    if not text:
        raise PortalValidationError("post must not be empty")
    if len(text) > MAX_POST_LENGTH:
        raise PortalValidationError(f"post exceeds {MAX_POST_LENGTH} characters")
    if parent_id is not None and not course.has_post(parent_id):
        raise PostNotFoundError(f"post {parent_id} not found")

    post = DiscussionPost(
        id=uuid4(),
        course_id=course_id,
        author_id=session.user_id,
        author_name=session.identity.name,
        body=text,
        created_at=int(time.time()),
        parent_id=parent_id,
    )
    session.add_post(post)
    try:
        await remote_write("insert_post", store.courses.insert_post(post))
    except Exception:
        session.remove_post(course_id, post.id)
        raise

    logger.info(
        "Discussion post added  course_id=%s post_id=%s reply=%s",
        course_id,
        post.id,
        parent_id is not None,
    )
    return post
