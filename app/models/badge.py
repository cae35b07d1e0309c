"""Badge registry.

Badges form a closed set.  Each BadgeId maps to exactly one
BadgeDefinition whose predicate decides, from a BadgeContext snapshot,
whether the badge is earned.  Registry order is the evaluation order
(and therefore the order badge notifications are emitted in).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum


class BadgeId(str, Enum):
    FIRST_COURSE = "first-course"
    PROLIFIC_LEARNER = "prolific-learner"
    QUIZ_MASTER = "quiz-master"
    COMPLETIONIST = "completionist"


@dataclass(frozen=True, slots=True)
class BadgeContext:
    """Snapshot the badge predicates are evaluated against."""

    completed_count: int
    total_courses: int
    score: int


@dataclass(frozen=True, slots=True)
class BadgeDefinition:
    id: BadgeId
    name: str
    description: str
    points: int
    predicate: Callable[[BadgeContext], bool]

    def is_earned(self, ctx: BadgeContext) -> bool:
        return self.predicate(ctx)


BADGE_DEFINITIONS: dict[BadgeId, BadgeDefinition] = {
    BadgeId.FIRST_COURSE: BadgeDefinition(
        id=BadgeId.FIRST_COURSE,
        name="First Steps",
        description="Completed your first course.",
        points=50,
        predicate=lambda ctx: ctx.completed_count >= 1,
    ),
    BadgeId.PROLIFIC_LEARNER: BadgeDefinition(
        id=BadgeId.PROLIFIC_LEARNER,
        name="Prolific Learner",
        description="Completed three courses.",
        points=150,
        predicate=lambda ctx: ctx.completed_count >= 3,
    ),
    BadgeId.QUIZ_MASTER: BadgeDefinition(
        id=BadgeId.QUIZ_MASTER,
        name="Quiz Master",
        description="Scored 100% on a final quiz.",
        points=75,
        predicate=lambda ctx: ctx.score == 100,
    ),
    BadgeId.COMPLETIONIST: BadgeDefinition(
        id=BadgeId.COMPLETIONIST,
        name="Completionist",
        description="Completed every course in the catalog.",
        points=250,
        predicate=lambda ctx: (
            ctx.total_courses > 0 and ctx.completed_count == ctx.total_courses
        ),
    ),
}


def newly_earned(ctx: BadgeContext, held: frozenset[str]) -> list[BadgeDefinition]:
    """Badges earned by ``ctx`` that are not already in ``held``, in registry order.

    All predicates see the same snapshot; a badge found in this pass does
    not feed back into the others.
    """
    return [
        badge
        for badge in BADGE_DEFINITIONS.values()
        if badge.id.value not in held and badge.is_earned(ctx)
    ]
