"""Tests for course discussion posts and replies."""

from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from app.models.course import Course, DiscussionPost
from app.models.user import User
from app.repos.store import PortalStore, build_in_memory_store
from app.services.discussion_service import discussion_tree, post_to_discussion
from app.services.errors import (
    CourseNotFoundError,
    PortalValidationError,
    PostNotFoundError,
    RemoteWriteError,
)
from app.services.portal_session import PortalSession, load_portal_session
from tests.conftest import FlakyRepo, make_course


def _setup() -> tuple[PortalStore, PortalSession, Course]:
    store = build_in_memory_store()
    user = User.new(email="lee@example.com", password_hash="x", name="Lee", approved=True)
    course = make_course()

    async def _load() -> PortalSession:
        await store.users.add(user)
        await store.courses.add(course)
        return await load_portal_session(store, user)

    return store, asyncio.run(_load()), course


def test_post_is_stored_with_its_author() -> None:
    store, session, course = _setup()

    post = asyncio.run(post_to_discussion(session, store, course.id, "  Where is part 2?  "))

    assert post.body == "Where is part 2?"
    assert post.author_id == session.user_id
    assert post.author_name == "Lee"
    assert post.parent_id is None
    stored = asyncio.run(store.courses.get(course.id))
    assert stored is not None
    assert stored.discussion == (post,)
    assert session.courses[course.id].discussion == (post,)


def test_reply_to_a_reply() -> None:
    store, session, course = _setup()

    async def _thread() -> tuple[DiscussionPost, DiscussionPost, DiscussionPost]:
        root = await post_to_discussion(session, store, course.id, "Question")
        answer = await post_to_discussion(
            session, store, course.id, "Answer", parent_id=root.id
        )
        follow_up = await post_to_discussion(
            session, store, course.id, "Thanks", parent_id=answer.id
        )
        return root, answer, follow_up

    root, answer, follow_up = asyncio.run(_thread())

    (thread,) = discussion_tree(session.courses[course.id])
    assert thread.post == root
    (reply,) = thread.replies
    assert reply.post == answer
    assert [r.post for r in reply.replies] == [follow_up]


def test_tree_lists_newest_posts_first_and_replies_oldest_first() -> None:
    course = make_course()

    def post(body: str, created_at: int, parent_id=None) -> DiscussionPost:
        return DiscussionPost(
            id=uuid4(),
            course_id=course.id,
            author_id=uuid4(),
            author_name="Lee",
            body=body,
            created_at=created_at,
            parent_id=parent_id,
        )

    first = post("first", 1)
    second = post("second", 2)
    r1 = post("r1", 3, first.id)
    r2 = post("r2", 4, first.id)
    orphan = post("orphan", 5, uuid4())
    course = Course(
        id=course.id, title=course.title, discussion=(first, second, r1, r2, orphan)
    )

    tree = discussion_tree(course)

    assert [t.post.body for t in tree] == ["second", "first"]
    assert [r.post.body for r in tree[1].replies] == ["r1", "r2"]


@pytest.mark.parametrize("body", ["", "   ", "x" * 5001])
def test_post_body_is_validated(body: str) -> None:
    store, session, course = _setup()
    with pytest.raises(PortalValidationError):
        asyncio.run(post_to_discussion(session, store, course.id, body))
    assert session.courses[course.id].discussion == ()


def test_post_to_unknown_course() -> None:
    store, session, _ = _setup()
    with pytest.raises(CourseNotFoundError):
        asyncio.run(post_to_discussion(session, store, uuid4(), "Hello"))


def test_reply_to_unknown_post() -> None:
    store, session, course = _setup()
    with pytest.raises(PostNotFoundError):
        asyncio.run(
            post_to_discussion(session, store, course.id, "Hello", parent_id=uuid4())
        )


class _WatchingCourseRepo:
    """Records what the session shows for the course while the write is in flight."""

    def __init__(self, inner, session: PortalSession, course_id) -> None:
        self._inner = inner
        self._session = session
        self._course_id = course_id
        self.seen_during_write: tuple[DiscussionPost, ...] | None = None

    def __getattr__(self, name: str):
        return getattr(self._inner, name)

    async def insert_post(self, post: DiscussionPost) -> DiscussionPost:
        self.seen_during_write = self._session.courses[self._course_id].discussion
        return await self._inner.insert_post(post)


def test_post_shows_in_the_session_before_the_store_confirms() -> None:
    store, session, course = _setup()
    watcher = _WatchingCourseRepo(store.courses, session, course.id)
    store.courses = watcher  # type: ignore[assignment]

    post = asyncio.run(post_to_discussion(session, store, course.id, "Hello"))

    assert watcher.seen_during_write == (post,)


def test_failed_post_is_taken_back_out() -> None:
    store, session, course = _setup()
    kept = asyncio.run(post_to_discussion(session, store, course.id, "First"))
    store.courses = FlakyRepo(store.courses, "insert_post")  # type: ignore[assignment]

    with pytest.raises(RemoteWriteError, match="insert_post failed"):
        asyncio.run(post_to_discussion(session, store, course.id, "Second"))

    assert session.courses[course.id].discussion == (kept,)


def test_admin_edit_keeps_the_discussion() -> None:
    store, session, course = _setup()
    post = asyncio.run(post_to_discussion(session, store, course.id, "Hello"))

    edited = Course(id=course.id, title="Renamed", modules=course.modules)
    updated = asyncio.run(store.courses.update(edited))

    assert updated is not None
    assert updated.title == "Renamed"
    assert updated.discussion == (post,)
