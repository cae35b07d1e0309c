from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import replace
from typing import Protocol
from uuid import UUID, uuid4

from app.models.course import Course, DiscussionPost, Review
from app.repos.errors import DuplicateError, StoreError


class CourseRepo(Protocol):
    async def get(self, course_id: UUID) -> Course | None: ...
    async def list_all(self) -> list[Course]: ...
    async def add(self, course: Course) -> None: ...
    async def update(self, course: Course) -> Course | None: ...
    async def delete(self, course_id: UUID) -> bool: ...
    async def clear_category(self, category_id: UUID) -> int: ...
    async def insert_review(
        self,
        *,
        course_id: UUID,
        author_id: UUID,
        author_name: str,
        rating: int,
        comment: str,
    ) -> Review: ...
    async def insert_post(self, post: DiscussionPost) -> DiscussionPost: ...


def _epoch() -> int:
    return int(time.time())


class InMemoryCourseRepo:
    """Courses with their modules, quiz and reviews.

    Reviews and discussion posts are stored on the course tuple; update()
    never overwrites them so an admin edit cannot drop what learners wrote
    in the meantime.
    """

    def __init__(self, clock: Callable[[], int] = _epoch) -> None:
        self._by_id: dict[UUID, Course] = {}
        self._clock = clock

    async def get(self, course_id: UUID) -> Course | None:
        return self._by_id.get(course_id)

    async def list_all(self) -> list[Course]:
        return sorted(self._by_id.values(), key=lambda c: c.created_at, reverse=True)

    async def add(self, course: Course) -> None:
        if course.id in self._by_id:
            raise StoreError(f"course {course.id} already exists")
        self._by_id[course.id] = course

    async def update(self, course: Course) -> Course | None:
        current = self._by_id.get(course.id)
        if current is None:
            return None
        updated = replace(
            course,
            reviews=current.reviews,
            discussion=current.discussion,
            created_at=current.created_at,
        )
        self._by_id[course.id] = updated
        return updated

    async def delete(self, course_id: UUID) -> bool:
        return self._by_id.pop(course_id, None) is not None

    async def clear_category(self, category_id: UUID) -> int:
        affected = [c for c in self._by_id.values() if c.category_id == category_id]
        for c in affected:
            self._by_id[c.id] = replace(c, category_id=None)
        return len(affected)

    async def insert_review(
        self,
        *,
        course_id: UUID,
        author_id: UUID,
        author_name: str,
        rating: int,
        comment: str,
    ) -> Review:
        course = self._by_id.get(course_id)
        if course is None:
            raise StoreError(f"course {course_id} not found")

        review = Review(
            id=uuid4(),
            course_id=course_id,
            author_id=author_id,
            author_name=author_name,
            rating=rating,
            comment=comment,
            created_at=self._clock(),
        )
        self._by_id[course_id] = replace(course, reviews=(*course.reviews, review))
        return review

    async def insert_post(self, post: DiscussionPost) -> DiscussionPost:
        course = self._by_id.get(post.course_id)
        if course is None:
            raise StoreError(f"course {post.course_id} not found")
        if course.has_post(post.id):
            raise DuplicateError(f"post {post.id} already exists")
        if post.parent_id is not None and not course.has_post(post.parent_id):
            raise StoreError(f"post {post.parent_id} not found")

        self._by_id[course.id] = replace(course, discussion=(*course.discussion, post))
        return post
