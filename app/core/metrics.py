"""Prometheus metric inventory for the learning portal.

All metrics are declared here and imported by the module that owns the
behavior.  Counters only go up; the dashboards derive rates with rate().

HTTP metrics are filled in by MetricsMiddleware.  Portal metrics are
filled in by the reconciler, the notification service and the
leaderboard cache.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, route, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # quiz submission is the slowest route: up to five sequential store
    # writes, so the upper buckets matter more than for a plain read API
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Progress & gamification
# ---------------------------------------------------------------------------

POINTS_AWARDED = Counter(
    "points_awarded_total",
    "Points awarded to learners",
    ["reason"],  # module|course|badge
)

BADGES_AWARDED = Counter(
    "badges_awarded_total",
    "Badges unlocked by learners",
    ["badge"],
)

QUIZ_SUBMISSIONS = Counter(
    "quiz_submissions_total",
    "Final quiz submissions by outcome",
    ["result"],  # failed|passed_first_time|passed_retake
)

STORE_WRITES = Counter(
    "store_writes_total",
    "Store writes issued by the reconciler",
    ["operation"],
)

STORE_WRITE_FAILURES = Counter(
    "store_write_failures_total",
    "Store writes that failed, by operation",
    ["operation"],
)

NOTIFICATIONS_PUBLISHED = Counter(
    "notifications_published_total",
    "Notifications created, by type",
    ["type"],
)

# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # hit|miss
)
