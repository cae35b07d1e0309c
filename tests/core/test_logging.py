"""Tests for app.core.logging: levels, text format and JSON lines."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from app.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging


def _record(level: int = logging.INFO, msg: str = "hello", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="app.services.reconciler",
        level=level,
        pathname="reconciler.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# ---- setup_logging ----


@pytest.mark.parametrize(
    ("name", "expected"),
    [("debug", logging.DEBUG), ("warning", logging.WARNING), ("bogus", logging.INFO)],
)
def test_setup_logging_sets_root_level(name: str, expected: int) -> None:
    setup_logging(name)
    assert logging.getLogger().level == expected


def test_setup_logging_keeps_sqlalchemy_quiet_at_debug() -> None:
    setup_logging("debug")
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    assert logging.getLogger("uvicorn").level == logging.WARNING


def test_setup_logging_installs_json_formatter() -> None:
    setup_logging("info", json_format=True)
    (handler,) = logging.getLogger().handlers
    assert isinstance(handler.formatter, _JsonFormatter)
    setup_logging("info")


def test_setup_logging_attaches_filters_to_the_handler() -> None:
    stamp = logging.Filter()
    setup_logging("info", filters=[stamp])
    (handler,) = logging.getLogger().handlers
    assert handler.filters == [stamp]
    setup_logging("info")


# ---- text format ----


def test_container_formatter_omits_location_below_warning() -> None:
    output = _ContainerFormatter().format(_record(logging.INFO, "enrolled"))
    assert "enrolled" in output
    assert "[reconciler.py:" not in output


def test_container_formatter_adds_location_from_warning() -> None:
    output = _ContainerFormatter().format(_record(logging.WARNING, "partial"))
    assert "[reconciler.py:42]" in output


def test_container_formatter_is_not_json() -> None:
    output = _ContainerFormatter().format(_record())
    with pytest.raises(json.JSONDecodeError):
        json.loads(output)


# ---- JSON lines ----


def test_json_formatter_produces_core_keys() -> None:
    parsed = json.loads(_JsonFormatter().format(_record(msg="Points awarded")))
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "app.services.reconciler"
    assert parsed["message"] == "Points awarded"
    assert "timestamp" in parsed


def test_json_formatter_lifts_portal_context() -> None:
    record = _record(
        logging.WARNING,
        "Course completed with 1 failed side effects",
        request_id="req-1",
        operation="submit_quiz",
        course_id="c-1",
        user_id="u-1",
    )
    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["request_id"] == "req-1"
    assert parsed["operation"] == "submit_quiz"
    assert parsed["course_id"] == "c-1"
    assert parsed["user_id"] == "u-1"


def test_json_formatter_skips_absent_context() -> None:
    parsed = json.loads(_JsonFormatter().format(_record()))
    assert "operation" not in parsed
    assert "course_id" not in parsed


def test_json_formatter_includes_exception() -> None:
    try:
        raise RuntimeError("store down")
    except RuntimeError:
        record = _record(logging.ERROR, "Store write failed")
        record.exc_info = sys.exc_info()
        output = _JsonFormatter().format(record)
    assert "RuntimeError: store down" in json.loads(output)["exception"]
