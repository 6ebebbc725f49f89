"""Tests for sensitive data filtering and JSON formatting in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from batchguard.core.logging import (
    JsonFormatter,
    SensitiveDataFilter,
    clear_request_id,
    redact,
    set_request_id,
)


@pytest.fixture
def capture():
    """Logger wired to a StringIO through the service filter and formatter."""

    logger = logging.getLogger("test_batchguard_logging")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers.clear()
    clear_request_id()


def test_redacts_credentials(capture):
    logger, stream = capture

    logger.info(
        "auth_event",
        extra={
            "authorization": "Bearer abc.def",
            "password": "hunter2",
            "safe_field": "visible",
        },
    )

    output = stream.getvalue()
    assert "abc.def" not in output
    assert "hunter2" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_redacts_nested_headers(capture):
    logger, stream = capture

    logger.info(
        "headers_event",
        extra={"headers": {"Cookie": "session=1", "user-agent": "pytest"}},
    )

    payload = json.loads(stream.getvalue())
    assert payload["headers"] == {"Cookie": "[REDACTED]", "user-agent": "pytest"}


def test_safe_fields_pass_through(capture):
    logger, stream = capture

    logger.info(
        "loader.dispatch",
        extra={"loader": "users", "batch_size": 3},
    )

    payload = json.loads(stream.getvalue())
    assert payload["message"] == "loader.dispatch"
    assert payload["level"] == "info"
    assert payload["loader"] == "users"
    assert payload["batch_size"] == 3


def test_request_id_from_context(capture):
    logger, stream = capture
    set_request_id("req-abc")

    logger.info("event")

    assert json.loads(stream.getvalue())["request_id"] == "req-abc"


def test_redact_handles_sequences():
    value = [{"token": "t"}, ("plain",)]

    assert redact(value) == [{"token": "[REDACTED]"}, ("plain",)]
