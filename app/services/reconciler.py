"""Progress and gamification reconciler.

Turns a learner's actions (finish a module, submit the final quiz, rate
a course) into store writes, and mirrors each confirmed write into the
learner's PortalSession.  Nothing is mirrored before the store confirms
it, so after any failure the session still equals durable state.

Quiz submission is the central state machine:

    not-attempted -> scored-failed <-> scored-passed-first-time
                                        -> scored-passed-retake

Every submission stores the score.  Only the first passing submission
stores completed_at, awards the course bonus, sends the certificate
notification and evaluates badges.  Retakes change the score only.

Writes within one call are awaited one after another; later steps read
state the earlier ones committed.  Points go through an atomic
increment and badges through a union-then-replace, never a blind
overwrite.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from uuid import UUID

from app.core.metrics import BADGES_AWARDED, POINTS_AWARDED, QUIZ_SUBMISSIONS
from app.models.badge import BadgeContext, BadgeId, newly_earned
from app.models.course import Course, Review
from app.models.notification import NotificationType
from app.models.progress import CertificateData, ProgressRecord
from app.repos.store import PortalStore
from app.services import notifications_service
from app.services.errors import (
    CourseNotFoundError,
    NotCompletedError,
    NotEnrolledError,
    PortalValidationError,
    RemoteWriteError,
    remote_write,
)
from app.services.notification_feed import NotificationFeed
from app.services.portal_session import PortalSession

logger = logging.getLogger(__name__)

MODULE_POINTS = 10
COURSE_POINTS = 100


def _epoch() -> int:
    return int(time.time())


@dataclass(frozen=True, slots=True)
class ModuleOutcome:
    """Result of marking a module done.

    newly_completed is False when the store already held the module; no
    points are awarded then.  A points award that fails after the module
    was stored is reported in warnings.
    """

    newly_completed: bool
    points_awarded: int = 0
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class QuizOutcome:
    """Result of one quiz submission.

    warnings lists side effects of a first completion that failed after
    the completion itself was stored (points, notifications, badges).
    """

    passed: bool
    score: int
    first_completion: bool = False
    points_awarded: int = 0
    new_badges: tuple[BadgeId, ...] = ()
    certificate: CertificateData | None = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class RatingOutcome:
    review: Review
    rating_saved: bool


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def grade_quiz(course: Course, answers: Sequence[int]) -> int:
    """Percentage of correct answers, rounded to an int."""
    if not course.questions:
        raise PortalValidationError("course has no quiz questions")
    if len(answers) != len(course.questions):
        raise PortalValidationError(
            f"expected {len(course.questions)} answers, got {len(answers)}"
        )
    correct = sum(
        1 for q, a in zip(course.questions, answers, strict=True) if a == q.correct_index
    )
    return round(correct * 100 / len(course.questions))


class ProgressReconciler:
    def __init__(
        self,
        session: PortalSession,
        store: PortalStore,
        feed: NotificationFeed,
        clock: Callable[[], int] = _epoch,
    ) -> None:
        self._session = session
        self._store = store
        self._feed = feed
        self._clock = clock

    @property
    def _user_id(self) -> UUID:
        return self._session.user_id

    def _course(self, course_id: UUID) -> Course:
        course = self._session.courses.get(course_id)
        if course is None:
            raise CourseNotFoundError(f"course {course_id} not found")
        return course

    # ------------------------------------------------------------------
    # Enrollment
    # ------------------------------------------------------------------

    async def enroll(self, course_id: UUID) -> ProgressRecord:
        """Create the progress record for a course.  Safe to repeat."""
        self._course(course_id)
        existed = self._session.progress_for(self._user_id, course_id) is not None

        record = await remote_write(
            "enroll",
            self._store.progress.upsert(
                self._user_id, course_id, last_viewed_at=self._clock()
            ),
        )
        self._session.set_progress(record)
        if not existed:
            logger.info(
                "Enrolled  user_id=%s course_id=%s",
                self._user_id,
                course_id,
                extra={"user_id": str(self._user_id), "course_id": str(course_id)},
            )
        return record

    async def touch_course(self, course_id: UUID) -> ProgressRecord | None:
        """Record that the learner opened a course.  None when not enrolled."""
        if self._session.progress_for(self._user_id, course_id) is None:
            return None
        record = await remote_write(
            "touch_course",
            self._store.progress.upsert(
                self._user_id, course_id, last_viewed_at=self._clock()
            ),
        )
        self._session.set_progress(record)
        return record

    # ------------------------------------------------------------------
    # Modules
    # ------------------------------------------------------------------

    async def record_module_completion(
        self, course_id: UUID, module_id: UUID
    ) -> ModuleOutcome:
        """Mark a module done and award MODULE_POINTS.

        The store merges the module into the record and says whether it was
        new, so overlapping calls for one course never drop each other's
        module and each module is paid for once.
        """
        record = self._session.progress_for(self._user_id, course_id)
        if record is None:
            raise NotEnrolledError("enroll in the course before completing modules")
        course = self._session.courses.get(course_id)
        if course is not None and not course.has_module(module_id):
            raise PortalValidationError("module does not belong to this course")

        if record.has_completed_module(module_id):
            return ModuleOutcome(newly_completed=False)

        updated, added = await remote_write(
            "complete_module",
            self._store.progress.add_completed_module(self._user_id, course_id, module_id),
        )
        self._session.set_progress(updated)
        if not added:
            return ModuleOutcome(newly_completed=False)
        logger.info(
            "Module completed  user_id=%s course_id=%s module_id=%s",
            self._user_id,
            course_id,
            module_id,
            extra={"user_id": str(self._user_id), "course_id": str(course_id)},
        )

        # The module is stored.  A failed award is reported, not raised;
        # a retry would find the module done and award nothing.
        warnings: list[str] = []
        if not await self._attempt(
            warnings, self.award_points(self._user_id, MODULE_POINTS, reason="module")
        ):
            logger.warning(
                "Module stored without its points  user_id=%s course_id=%s module_id=%s",
                self._user_id,
                course_id,
                module_id,
                extra={"operation": "complete_module", "course_id": str(course_id)},
            )
            return ModuleOutcome(newly_completed=True, warnings=tuple(warnings))
        return ModuleOutcome(newly_completed=True, points_awarded=MODULE_POINTS)

    # ------------------------------------------------------------------
    # Quiz
    # ------------------------------------------------------------------

    async def submit_quiz(self, course_id: UUID, score: int) -> QuizOutcome:
        if not _is_int(score) or not 0 <= score <= 100:
            raise PortalValidationError("score must be an integer between 0 and 100")
        course = self._course(course_id)

        record = await remote_write(
            "save_quiz_score",
            self._store.progress.upsert(self._user_id, course_id, quiz_score=score),
        )
        self._session.set_progress(record)

        if score < course.passing_score:
            QUIZ_SUBMISSIONS.labels(result="failed").inc()
            logger.info(
                "Quiz failed  user_id=%s course_id=%s score=%d passing=%d",
                self._user_id,
                course_id,
                score,
                course.passing_score,
            )
            return QuizOutcome(passed=False, score=score)

        if record.is_completed:
            QUIZ_SUBMISSIONS.labels(result="passed_retake").inc()
            return QuizOutcome(
                passed=True,
                score=score,
                certificate=self._session.certificate_for(course_id),
            )

        record = await remote_write(
            "complete_course",
            self._store.progress.upsert(
                self._user_id, course_id, completed_at=self._clock()
            ),
        )
        self._session.set_progress(record)
        QUIZ_SUBMISSIONS.labels(result="passed_first_time").inc()
        logger.info(
            "Course completed  user_id=%s course_id=%s score=%d",
            self._user_id,
            course_id,
            score,
            extra={"user_id": str(self._user_id), "course_id": str(course_id)},
        )

        # The completion is stored.  From here on a failed write is
        # reported on the outcome instead of raised.
        warnings: list[str] = []
        awarded = 0
        if await self._attempt(
            warnings, self.award_points(self._user_id, COURSE_POINTS, reason="course")
        ):
            awarded += COURSE_POINTS

        await self._attempt(
            warnings,
            self._notify(
                NotificationType.CERTIFICATE,
                f'Congratulations! You earned a certificate for "{course.title}".',
            ),
        )

        new_badges, badge_points = await self._evaluate_badges(score, warnings)
        awarded += badge_points

        if warnings:
            logger.warning(
                "Course completed with %d failed side effects  user_id=%s course_id=%s",
                len(warnings),
                self._user_id,
                course_id,
                extra={"operation": "submit_quiz", "course_id": str(course_id)},
            )

        return QuizOutcome(
            passed=True,
            score=score,
            first_completion=True,
            points_awarded=awarded,
            new_badges=new_badges,
            certificate=self._session.certificate_for(course_id),
            warnings=tuple(warnings),
        )

    async def _evaluate_badges(
        self, score: int, warnings: list[str]
    ) -> tuple[tuple[BadgeId, ...], int]:
        identity = self._session.identity
        ctx = BadgeContext(
            completed_count=self._session.completed_count(identity.id),
            total_courses=len(self._session.courses),
            score=score,
        )
        earned = newly_earned(ctx, identity.badges)
        if not earned:
            return (), 0

        badges = identity.badges | {b.id.value for b in earned}
        try:
            await remote_write(
                "replace_badges", self._store.users.replace_badges(identity.id, badges)
            )
        except RemoteWriteError as e:
            warnings.append(str(e))
            return (), 0
        self._session.apply_badges(identity.id, badges)

        for badge in earned:
            BADGES_AWARDED.labels(badge=badge.id.value).inc()
            logger.info("Badge awarded  user_id=%s badge=%s", identity.id, badge.id.value)
            await self._attempt(
                warnings,
                self._notify(
                    NotificationType.BADGE,
                    f'You unlocked the "{badge.name}" badge! {badge.description}',
                ),
            )

        bonus = sum(b.points for b in earned)
        if not await self._attempt(
            warnings, self.award_points(identity.id, bonus, reason="badge")
        ):
            bonus = 0
        return tuple(b.id for b in earned), bonus

    # ------------------------------------------------------------------
    # Rating
    # ------------------------------------------------------------------

    async def rate_course(
        self, course_id: UUID, rating: int, comment: str
    ) -> RatingOutcome:
        """Store a review, then copy the rating onto the progress record.

        The second write is best effort: if it fails the review stands and
        the outcome reports rating_saved=False.
        """
        if not _is_int(rating) or not 1 <= rating <= 5:
            raise PortalValidationError("rating must be an integer between 1 and 5")
        comment = comment.strip()
        if not comment:
            raise PortalValidationError("comment must not be empty")
        self._course(course_id)
        record = self._session.progress_for(self._user_id, course_id)
        if record is None or not record.is_completed:
            raise NotCompletedError("only learners who completed the course can rate it")

        identity = self._session.identity
        review = await remote_write(
            "insert_review",
            self._store.courses.insert_review(
                course_id=course_id,
                author_id=identity.id,
                author_name=identity.name,
                rating=rating,
                comment=comment,
            ),
        )
        self._session.append_review(review)

        try:
            updated = await remote_write(
                "save_rating",
                self._store.progress.upsert(identity.id, course_id, rating=rating),
            )
        except RemoteWriteError:
            logger.warning(
                "Review %s stored but progress rating was not  user_id=%s course_id=%s",
                review.id,
                identity.id,
                course_id,
                extra={"operation": "rate_course", "course_id": str(course_id)},
            )
            return RatingOutcome(review=review, rating_saved=False)

        self._session.set_progress(updated)
        return RatingOutcome(review=review, rating_saved=True)

    # ------------------------------------------------------------------
    # Points
    # ------------------------------------------------------------------

    async def award_points(
        self, user_id: UUID, amount: int, *, reason: str = "manual"
    ) -> int:
        """Atomically add ``amount`` points; returns the new total."""
        if not _is_int(amount) or amount <= 0:
            raise PortalValidationError("amount must be a positive integer")

        total = await remote_write(
            "award_points", self._store.users.increment_points(user_id, amount)
        )
        self._session.apply_points(user_id, total)
        POINTS_AWARDED.labels(reason=reason).inc(amount)
        logger.info(
            "Points awarded  user_id=%s amount=%d reason=%s total=%d",
            user_id,
            amount,
            reason,
            total,
        )
        return total

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    async def _notify(self, type: NotificationType, message: str) -> None:
        n = await notifications_service.notify(
            self._store, self._feed, self._user_id, type, message
        )
        self._session.apply_notification(n)

    @staticmethod
    async def _attempt(warnings: list[str], call: Awaitable[object]) -> bool:
        try:
            await call
        except RemoteWriteError as e:
            warnings.append(str(e))
            return False
        return True
