"""Health and readiness endpoints.

  /health  liveness: the process answers.  Always 200; the body carries
           dependency checks and SLO status, and "degraded" when a
           dependency is down.
  /ready   readiness: 503 while a configured database is unreachable, so
           the load balancer stops routing here without a restart.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from prometheus_client import REGISTRY
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.slo import (
    evaluate_availability,
    evaluate_latency,
    evaluate_progress_writes,
)
from app.db.engine import engine
from app.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _sum_counter(metric_name: str, label_filter: dict | None = None) -> float:
    """Sum a counter across every label combination matching ``label_filter``."""
    total = 0.0
    for metric in REGISTRY.collect():
        for sample in metric.samples:
            if sample.name != metric_name:
                continue
            if label_filter and not all(
                sample.labels.get(k) == v for k, v in label_filter.items()
            ):
                continue
            total += sample.value
    return total


async def _database_ok() -> bool:
    assert engine is not None
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        return False
    return True


@router.get("/health")
async def health() -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if redis_pool is not None:
        try:
            await redis_pool.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except RedisError:
            checks["redis"] = "degraded"
            overall = "degraded"
    else:
        checks["redis"] = "not_configured"

    if engine is not None:
        if await _database_ok():
            checks["database"] = "ok"
        else:
            checks["database"] = "degraded"
            overall = "degraded"
    else:
        checks["database"] = "in_memory"

    # Per-process approximations from in-process counters; Prometheus
    # aggregates the real values across replicas.
    total_all = _sum_counter("http_requests_total")
    total_5xx = sum(
        _sum_counter("http_requests_total", {"status_code": str(code)})
        for code in range(500, 512)
    )
    availability_status = evaluate_availability(int(total_all), int(total_5xx))

    # p95 estimated as twice the mean; histogram_quantile() does this
    # properly on the Prometheus side.
    duration_sum = _sum_counter("http_request_duration_seconds_sum")
    duration_count = _sum_counter("http_request_duration_seconds_count")
    if duration_count > 0:
        p95_estimate_ms = (duration_sum / duration_count) * 1000 * 2.0
    else:
        p95_estimate_ms = 0.0
    latency_status = evaluate_latency(p95_estimate_ms)

    writes_status = evaluate_progress_writes(
        int(_sum_counter("store_writes_total")),
        int(_sum_counter("store_write_failures_total")),
    )

    slos = {}
    for s in [availability_status, latency_status, writes_status]:
        slos[s.slo.name] = {
            "current": s.current,
            "target": s.slo.target,
            "healthy": s.healthy,
        }

    return {
        "status": overall,
        "checks": checks,
        "slos": slos,
    }


@router.get("/ready")
async def ready() -> Response:
    """Redis is optional (in-process fallbacks); the database is not."""
    if engine is not None and not await _database_ok():
        return Response(status_code=503)
    return Response(status_code=200)
