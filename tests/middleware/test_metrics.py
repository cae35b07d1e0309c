"""Tests for the Prometheus metrics middleware.

The default registry is global and counters never reset, so every test
asserts on the delta between a before and an after reading.
"""

from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY


def _sample(name: str, labels: dict[str, str]) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels)
    return value if value is not None else 0.0


def test_requests_are_counted_per_route(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
    before = _sample("http_requests_total", labels)
    client.get("/health")
    assert _sample("http_requests_total", labels) - before >= 1


def test_path_parameters_collapse_into_the_route_template(
    client: TestClient, learner_headers: dict[str, str]
) -> None:
    labels = {"method": "GET", "endpoint": "/v1/courses/{course_id}", "status_code": "404"}
    before = _sample("http_requests_total", labels)

    client.get(f"/v1/courses/{uuid4()}", headers=learner_headers)
    client.get(f"/v1/courses/{uuid4()}", headers=learner_headers)

    assert _sample("http_requests_total", labels) - before == 2


def test_unknown_paths_share_one_label(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "unmatched", "status_code": "404"}
    before = _sample("http_requests_total", labels)
    client.get("/no/such/page")
    client.get("/another/missing/page")
    assert _sample("http_requests_total", labels) - before == 2


def test_duration_histogram_observes(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/ready"}
    before = _sample("http_request_duration_seconds_count", labels)
    client.get("/ready")
    assert _sample("http_request_duration_seconds_count", labels) - before >= 1


def test_metrics_endpoint_exposes_portal_metrics(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert "store_writes_total" in resp.text
    assert "points_awarded_total" in resp.text


def test_scrapes_are_not_counted(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/metrics", "status_code": "200"}
    before = _sample("http_requests_total", labels)
    client.get("/metrics")
    client.get("/metrics")
    assert _sample("http_requests_total", labels) == before
