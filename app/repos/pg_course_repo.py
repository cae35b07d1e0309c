"""PostgreSQL implementation of CourseRepo.

A course is spread over five tables (courses, course_modules,
quiz_questions, reviews, discussion_posts).  Reads load the children with
one query per table and group them in Python; update() replaces modules
and questions wholesale and never touches reviews or posts.
"""

from __future__ import annotations

import time
from collections import defaultdict
from collections.abc import Callable, Iterable
from uuid import UUID, uuid4

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.tables import (
    CourseModuleRow,
    CourseRow,
    DiscussionPostRow,
    QuizQuestionRow,
    ReviewRow,
)
from app.models.course import Course, CourseModule, DiscussionPost, QuizQuestion, Review
from app.repos.errors import StoreError
from app.repos.pg_session import store_session


def _epoch() -> int:
    return int(time.time())


class PgCourseRepo:
    def __init__(
        self,
        factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], int] = _epoch,
    ) -> None:
        self._factory = factory
        self._clock = clock

    async def get(self, course_id: UUID) -> Course | None:
        async with store_session(self._factory) as s:
            row = await s.get(CourseRow, course_id)
            if row is None:
                return None
            courses = await _assemble(s, [row])
            return courses[0]

    async def list_all(self) -> list[Course]:
        async with store_session(self._factory) as s:
            stmt = select(CourseRow).order_by(CourseRow.created_at.desc())
            rows = list((await s.execute(stmt)).scalars())
            return await _assemble(s, rows)

    async def add(self, course: Course) -> None:
        async with store_session(self._factory) as s:
            s.add(
                CourseRow(
                    id=course.id,
                    title=course.title,
                    description=course.description,
                    category_id=course.category_id,
                    passing_score=course.passing_score,
                    created_at=course.created_at or self._clock(),
                )
            )
            await s.flush()
            _add_children(s, course)

    async def update(self, course: Course) -> Course | None:
        async with store_session(self._factory) as s:
            row = await s.get(CourseRow, course.id)
            if row is None:
                return None
            row.title = course.title
            row.description = course.description
            row.category_id = course.category_id
            row.passing_score = course.passing_score

            await s.execute(
                delete(CourseModuleRow).where(CourseModuleRow.course_id == course.id)
            )
            await s.execute(
                delete(QuizQuestionRow).where(QuizQuestionRow.course_id == course.id)
            )
            _add_children(s, course)
            await s.flush()
            courses = await _assemble(s, [row])
            return courses[0]

    async def delete(self, course_id: UUID) -> bool:
        async with store_session(self._factory) as s:
            result = await s.execute(delete(CourseRow).where(CourseRow.id == course_id))
            return result.rowcount > 0

    async def clear_category(self, category_id: UUID) -> int:
        async with store_session(self._factory) as s:
            result = await s.execute(
                update(CourseRow)
                .where(CourseRow.category_id == category_id)
                .values(category_id=None)
            )
            return result.rowcount

    async def insert_review(
        self,
        *,
        course_id: UUID,
        author_id: UUID,
        author_name: str,
        rating: int,
        comment: str,
    ) -> Review:
        async with store_session(self._factory) as s:
            if await s.get(CourseRow, course_id) is None:
                raise StoreError(f"course {course_id} not found")
            row = ReviewRow(
                id=uuid4(),
                course_id=course_id,
                author_id=author_id,
                author_name=author_name,
                rating=rating,
                comment=comment,
                created_at=self._clock(),
            )
            s.add(row)
            await s.flush()
            return _row_to_review(row)

    async def insert_post(self, post: DiscussionPost) -> DiscussionPost:
        async with store_session(self._factory) as s:
            if await s.get(CourseRow, post.course_id) is None:
                raise StoreError(f"course {post.course_id} not found")
            if post.parent_id is not None:
                parent = await s.get(DiscussionPostRow, post.parent_id)
                if parent is None or parent.course_id != post.course_id:
                    raise StoreError(f"post {post.parent_id} not found")
            s.add(
                DiscussionPostRow(
                    id=post.id,
                    course_id=post.course_id,
                    parent_id=post.parent_id,
                    author_id=post.author_id,
                    author_name=post.author_name,
                    body=post.body,
                    created_at=post.created_at,
                )
            )
            await s.flush()
            return post


def _add_children(s: AsyncSession, course: Course) -> None:
    for m in course.modules:
        s.add(
            CourseModuleRow(
                id=m.id,
                course_id=course.id,
                position=m.position,
                title=m.title,
                content_type=m.content_type,
                content_ref=m.content_ref,
            )
        )
    for q in course.questions:
        s.add(
            QuizQuestionRow(
                id=q.id,
                course_id=course.id,
                position=q.position,
                prompt=q.prompt,
                options=list(q.options),
                correct_index=q.correct_index,
            )
        )


async def _children(s: AsyncSession, table: type, ids: Iterable[UUID]) -> dict:
    grouped: dict[UUID, list] = defaultdict(list)
    stmt = select(table).where(table.course_id.in_(list(ids)))
    for row in (await s.execute(stmt)).scalars():
        grouped[row.course_id].append(row)
    return grouped


async def _assemble(s: AsyncSession, rows: list[CourseRow]) -> list[Course]:
    if not rows:
        return []
    ids = [r.id for r in rows]
    modules = await _children(s, CourseModuleRow, ids)
    questions = await _children(s, QuizQuestionRow, ids)
    reviews = await _children(s, ReviewRow, ids)
    posts = await _children(s, DiscussionPostRow, ids)

    return [
        Course(
            id=r.id,
            title=r.title,
            description=r.description,
            category_id=r.category_id,
            passing_score=r.passing_score,
            modules=tuple(
                CourseModule(
                    id=m.id,
                    position=m.position,
                    title=m.title,
                    content_type=m.content_type,
                    content_ref=m.content_ref,
                )
                for m in sorted(modules[r.id], key=lambda m: m.position)
            ),
            questions=tuple(
                QuizQuestion(
                    id=q.id,
                    position=q.position,
                    prompt=q.prompt,
                    options=tuple(q.options),
                    correct_index=q.correct_index,
                )
                for q in sorted(questions[r.id], key=lambda q: q.position)
            ),
            reviews=tuple(
                _row_to_review(v)
                for v in sorted(reviews[r.id], key=lambda v: v.created_at)
            ),
            discussion=tuple(
                _row_to_post(p)
                for p in sorted(posts[r.id], key=lambda p: p.created_at)
            ),
            created_at=r.created_at,
        )
        for r in rows
    ]


def _row_to_review(row: ReviewRow) -> Review:
    return Review(
        id=row.id,
        course_id=row.course_id,
        author_id=row.author_id,
        author_name=row.author_name,
        rating=row.rating,
        comment=row.comment,
        created_at=row.created_at,
    )


def _row_to_post(row: DiscussionPostRow) -> DiscussionPost:
    return DiscussionPost(
        id=row.id,
        course_id=row.course_id,
        author_id=row.author_id,
        author_name=row.author_name,
        body=row.body,
        created_at=row.created_at,
        parent_id=row.parent_id,
    )
