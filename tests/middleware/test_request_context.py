"""Tests for the request context middleware."""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from app.middleware.request_context import (
    RequestContextFilter,
    request_id_var,
    user_id_var,
)


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    uuid.UUID(resp.headers["x-request-id"])


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "trace-abc-123"})
    assert resp.headers["x-request-id"] == "trace-abc-123"


def test_request_id_present_on_auth_errors(client: TestClient) -> None:
    resp = client.get("/v1/courses")
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_summary_line_carries_request_fields(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="app.middleware.request_context"):
        client.get("/ready", headers={"X-Request-ID": "req-77"})

    (record,) = [
        r for r in caplog.records if r.name == "app.middleware.request_context"
    ]
    assert record.request_id == "req-77"
    assert record.path == "/ready"
    assert record.status_code == 200


def test_context_var_defaults_outside_requests() -> None:
    assert request_id_var.get() == "-"


def _bare_record() -> logging.LogRecord:
    return logging.LogRecord("app.services.reconciler", logging.INFO, "x.py", 1, "m", (), None)


def test_filter_stamps_context_onto_records() -> None:
    rid = request_id_var.set("req-9")
    uid = user_id_var.set("user-42")
    try:
        record = _bare_record()
        assert RequestContextFilter().filter(record) is True
    finally:
        request_id_var.reset(rid)
        user_id_var.reset(uid)

    assert record.request_id == "req-9"
    assert record.user_id == "user-42"


def test_filter_keeps_explicit_extras() -> None:
    uid = user_id_var.set("user-42")
    try:
        record = _bare_record()
        record.request_id = "from-extra"
        record.user_id = "someone-else"
        RequestContextFilter().filter(record)
    finally:
        user_id_var.reset(uid)

    assert record.request_id == "from-extra"
    assert record.user_id == "someone-else"


def test_filter_leaves_user_unset_for_anonymous_requests() -> None:
    record = _bare_record()
    RequestContextFilter().filter(record)
    assert record.request_id == "-"
    assert not hasattr(record, "user_id")
