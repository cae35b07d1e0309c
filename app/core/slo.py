"""Service level objectives for the learning portal.

Three objectives are evaluated from in-process Prometheus counters and
reported by /health:

  availability     99.5% of requests return a non-5xx status
  latency_p95      95% of requests complete in under 500ms
  progress_writes  99% of store writes issued by the reconciler succeed

The progress_writes objective exists because a failed write is the only
way a learner loses credit (a module completion that never landed, a
rating that only reached the review table).  Its error budget is the
number of such writes the team tolerates before investigating the store.

All evaluators are pure functions: numbers in, SLOStatus out.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SLODefinition:
    name: str
    description: str
    target: float  # percent
    window: str


@dataclass(frozen=True, slots=True)
class SLOStatus:
    """Result of evaluating one SLO.

    budget_remaining is current - target: positive while healthy,
    negative once breached.
    """

    slo: SLODefinition
    current: float
    budget_remaining: float
    healthy: bool


AVAILABILITY_SLO = SLODefinition(
    name="availability",
    description="Percentage of non-5xx responses",
    target=99.5,
    window="30d",
)

LATENCY_SLO = SLODefinition(
    name="latency_p95",
    description="95th percentile response time under 500ms",
    target=95.0,
    window="30d",
)

PROGRESS_WRITES_SLO = SLODefinition(
    name="progress_writes",
    description="Percentage of reconciler store writes that succeed",
    target=99.0,
    window="7d",
)

ALL_SLOS = [AVAILABILITY_SLO, LATENCY_SLO, PROGRESS_WRITES_SLO]


def _ratio_status(slo: SLODefinition, total: int, bad: int) -> SLOStatus:
    if total == 0:
        current = 100.0
    else:
        current = ((total - bad) / total) * 100

    return SLOStatus(
        slo=slo,
        current=round(current, 3),
        budget_remaining=round(current - slo.target, 3),
        healthy=current >= slo.target,
    )


def evaluate_availability(total_requests: int, error_requests: int) -> SLOStatus:
    """availability = (total - 5xx) / total x 100; no traffic counts as 100%."""
    return _ratio_status(AVAILABILITY_SLO, total_requests, error_requests)


def evaluate_latency(p95_ms: float) -> SLOStatus:
    """Map a p95 latency onto "percent of requests under 500ms".

    A p95 at or under the threshold means at least 95% of requests are
    fast enough; the value is scaled into 95..100.  Above the threshold
    the value drops linearly toward 0.
    """
    threshold_ms = 500.0
    if p95_ms <= threshold_ms:
        current = min(95.0 + (threshold_ms - p95_ms) / threshold_ms * 5.0, 100.0)
    else:
        current = max(0.0, 95.0 - (p95_ms - threshold_ms) / threshold_ms * 95.0)

    return SLOStatus(
        slo=LATENCY_SLO,
        current=round(current, 3),
        budget_remaining=round(current - LATENCY_SLO.target, 3),
        healthy=current >= LATENCY_SLO.target,
    )


def evaluate_progress_writes(total_writes: int, failed_writes: int) -> SLOStatus:
    """success = (writes - failures) / writes x 100; no writes counts as 100%."""
    return _ratio_status(PROGRESS_WRITES_SLO, total_writes, failed_writes)
