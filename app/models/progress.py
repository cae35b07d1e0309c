from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class ProgressRecord:
    """A learner's progress in one course, keyed by (user_id, course_id).

    completed_modules keeps completion order; membership is what counts.
    completed_at is set once, on the first passing quiz score.
    """

    user_id: UUID
    course_id: UUID
    completed_modules: tuple[UUID, ...] = ()
    quiz_score: int | None = None
    completed_at: int | None = None
    rating: int | None = None
    last_viewed_at: int | None = None

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def has_completed_module(self, module_id: UUID) -> bool:
        return module_id in self.completed_modules

    def percent_complete(self, module_count: int) -> int:
        if module_count <= 0:
            return 100 if self.is_completed else 0
        done = len(set(self.completed_modules))
        return min(100, round(done * 100 / module_count))


# Columns a caller may set through ProgressRepo.upsert().
PROGRESS_FIELDS = frozenset(
    {"completed_modules", "quiz_score", "completed_at", "rating", "last_viewed_at"}
)


@dataclass(frozen=True, slots=True)
class CertificateData:
    """Everything a certificate view needs.

    completion_date is always the original completion, never a retake.
    """

    course_id: UUID
    learner_name: str
    course_title: str
    completed_at: int

    @property
    def completion_date(self) -> str:
        # "March 4, 2026"
        dt = datetime.fromtimestamp(self.completed_at, UTC)
        return f"{dt:%B} {dt.day}, {dt.year}"
