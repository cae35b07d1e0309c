from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class CourseModule:
    id: UUID
    position: int
    title: str
    content_type: str = "text"  # text|video|pdf|link
    content_ref: str = ""

    @staticmethod
    def new(
        *, position: int, title: str, content_type: str = "text", content_ref: str = ""
    ) -> CourseModule:
        return CourseModule(
            id=uuid4(),
            position=position,
            title=title,
            content_type=content_type,
            content_ref=content_ref,
        )


@dataclass(frozen=True, slots=True)
class QuizQuestion:
    id: UUID
    position: int
    prompt: str
    options: tuple[str, ...]
    correct_index: int

    @staticmethod
    def new(
        *, position: int, prompt: str, options: tuple[str, ...], correct_index: int
    ) -> QuizQuestion:
        return QuizQuestion(
            id=uuid4(),
            position=position,
            prompt=prompt,
            options=options,
            correct_index=correct_index,
        )


@dataclass(frozen=True, slots=True)
class Review:
    """A learner's review of a completed course.

    id and created_at are assigned by the store on insert.
    """

    id: UUID
    course_id: UUID
    author_id: UUID
    author_name: str
    rating: int
    comment: str
    created_at: int


@dataclass(frozen=True, slots=True)
class DiscussionPost:
    """A message in a course's discussion forum.

    Top-level posts have no parent_id; a reply names the post it answers,
    which may itself be a reply.
    """

    id: UUID
    course_id: UUID
    author_id: UUID
    author_name: str
    body: str
    created_at: int
    parent_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    title: str
    description: str = ""
    category_id: UUID | None = None
    passing_score: int = 70
    modules: tuple[CourseModule, ...] = ()
    questions: tuple[QuizQuestion, ...] = ()
    reviews: tuple[Review, ...] = ()
    # flat, oldest first; replies point at their parent by id
    discussion: tuple[DiscussionPost, ...] = ()
    created_at: int = 0

    def has_module(self, module_id: UUID) -> bool:
        return any(m.id == module_id for m in self.modules)

    def has_post(self, post_id: UUID) -> bool:
        return any(p.id == post_id for p in self.discussion)

    @property
    def average_rating(self) -> float | None:
        if not self.reviews:
            return None
        return round(sum(r.rating for r in self.reviews) / len(self.reviews), 2)

    @staticmethod
    def new(
        *,
        title: str,
        description: str = "",
        category_id: UUID | None = None,
        passing_score: int = 70,
        modules: tuple[CourseModule, ...] = (),
        questions: tuple[QuizQuestion, ...] = (),
        created_at: int = 0,
    ) -> Course:
        return Course(
            id=uuid4(),
            title=title,
            description=description,
            category_id=category_id,
            passing_score=passing_score,
            modules=modules,
            questions=questions,
            created_at=created_at,
        )


@dataclass(frozen=True, slots=True)
class CourseCategory:
    id: UUID
    name: str

    @staticmethod
    def new(*, name: str) -> CourseCategory:
        return CourseCategory(id=uuid4(), name=name)


@dataclass(frozen=True, slots=True)
class ExternalResource:
    """A link in the resource library, optionally filed under a category."""

    id: UUID
    title: str
    url: str
    description: str = ""
    category_id: UUID | None = None
    created_at: int = 0

    @staticmethod
    def new(
        *,
        title: str,
        url: str,
        description: str = "",
        category_id: UUID | None = None,
        created_at: int = 0,
    ) -> ExternalResource:
        return ExternalResource(
            id=uuid4(),
            title=title,
            url=url,
            description=description,
            category_id=category_id,
            created_at=created_at,
        )
