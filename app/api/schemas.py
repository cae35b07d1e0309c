"""Response models shared by several routers, with their converters."""

from __future__ import annotations

from pydantic import BaseModel

from app.models.course import Course, CourseModule, QuizQuestion, Review
from app.models.notification import Notification
from app.models.progress import CertificateData, ProgressRecord
from app.models.user import User


class UserOut(BaseModel):
    id: str
    email: str
    name: str
    role: str
    approved: bool
    points: int
    badges: list[str]
    profile_image_url: str | None = None

    @classmethod
    def of(cls, u: User) -> UserOut:
        return cls(
            id=str(u.id),
            email=u.email,
            name=u.name,
            role=u.role.value,
            approved=u.approved,
            points=u.points,
            badges=sorted(u.badges),
            profile_image_url=u.profile_image_url,
        )


class ProgressOut(BaseModel):
    course_id: str
    completed_modules: list[str]
    percent_complete: int
    quiz_score: int | None
    completed_at: int | None
    rating: int | None
    last_viewed_at: int | None

    @classmethod
    def of(cls, p: ProgressRecord, module_count: int) -> ProgressOut:
        return cls(
            course_id=str(p.course_id),
            completed_modules=[str(m) for m in p.completed_modules],
            percent_complete=p.percent_complete(module_count),
            quiz_score=p.quiz_score,
            completed_at=p.completed_at,
            rating=p.rating,
            last_viewed_at=p.last_viewed_at,
        )


class ReviewOut(BaseModel):
    id: str
    author_id: str
    author_name: str
    rating: int
    comment: str
    created_at: int

    @classmethod
    def of(cls, r: Review) -> ReviewOut:
        return cls(
            id=str(r.id),
            author_id=str(r.author_id),
            author_name=r.author_name,
            rating=r.rating,
            comment=r.comment,
            created_at=r.created_at,
        )


class ModuleOut(BaseModel):
    id: str
    position: int
    title: str
    content_type: str
    content_ref: str

    @classmethod
    def of(cls, m: CourseModule) -> ModuleOut:
        return cls(
            id=str(m.id),
            position=m.position,
            title=m.title,
            content_type=m.content_type,
            content_ref=m.content_ref,
        )


class QuestionOut(BaseModel):
    id: str
    position: int
    prompt: str
    options: list[str]
    # only sent to admins
    correct_index: int | None = None

    @classmethod
    def of(cls, q: QuizQuestion, *, with_answer: bool = False) -> QuestionOut:
        return cls(
            id=str(q.id),
            position=q.position,
            prompt=q.prompt,
            options=list(q.options),
            correct_index=q.correct_index if with_answer else None,
        )


class CourseOut(BaseModel):
    id: str
    title: str
    description: str
    category_id: str | None
    passing_score: int
    module_count: int
    question_count: int
    average_rating: float | None
    review_count: int
    created_at: int

    @classmethod
    def of(cls, c: Course) -> CourseOut:
        return cls(
            id=str(c.id),
            title=c.title,
            description=c.description,
            category_id=str(c.category_id) if c.category_id else None,
            passing_score=c.passing_score,
            module_count=len(c.modules),
            question_count=len(c.questions),
            average_rating=c.average_rating,
            review_count=len(c.reviews),
            created_at=c.created_at,
        )


class CourseDetailOut(CourseOut):
    modules: list[ModuleOut]
    questions: list[QuestionOut]
    reviews: list[ReviewOut]

    @classmethod
    def detail(cls, c: Course, *, with_answers: bool = False) -> CourseDetailOut:
        return cls(
            **CourseOut.of(c).model_dump(),
            modules=[ModuleOut.of(m) for m in c.modules],
            questions=[QuestionOut.of(q, with_answer=with_answers) for q in c.questions],
            reviews=[ReviewOut.of(r) for r in c.reviews],
        )


class NotificationOut(BaseModel):
    id: str
    type: str
    message: str
    read: bool
    created_at: int

    @classmethod
    def of(cls, n: Notification) -> NotificationOut:
        return cls(
            id=str(n.id),
            type=n.type.value,
            message=n.message,
            read=n.read,
            created_at=n.created_at,
        )


class CertificateOut(BaseModel):
    course_id: str
    learner_name: str
    course_title: str
    completed_at: int
    completion_date: str

    @classmethod
    def of(cls, c: CertificateData) -> CertificateOut:
        return cls(
            course_id=str(c.course_id),
            learner_name=c.learner_name,
            course_title=c.course_title,
            completed_at=c.completed_at,
            completion_date=c.completion_date,
        )
