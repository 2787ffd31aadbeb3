"""Tests for logging utilities and sensitive data redaction."""

from __future__ import annotations

import json
import logging

import pytest

from larder.logging_utils import JsonFormatter, SensitiveDataFilter, configure_logging, redact


def _record(msg: str, *args) -> logging.LogRecord:
    return logging.LogRecord(
        name="larder.test.redaction",
        level=logging.INFO,
        pathname=__file__,
        lineno=0,
        msg=msg,
        args=args,
        exc_info=None,
    )


@pytest.mark.parametrize("fmt", ["plain", "json"])
def test_sensitive_data_filter_redacts_tokens(fmt):
    secret = "top-secret-token"
    configure_logging("INFO", fmt, [secret])

    handler = logging.getLogger().handlers[0]
    record = _record("Authorization header Bearer %s", secret)

    for filter_ in handler.filters:
        filter_.filter(record)

    formatted = handler.format(record)
    assert secret not in formatted
    assert "[redacted]" in formatted


@pytest.mark.parametrize(
    "message",
    [
        "GET /barcode/123?api_token=abc123",
        "sync upload https://sync.test/larder-sync.json?access_token=abc123",
        "X-API-Key: abc123",
    ],
)
def test_known_token_patterns_are_masked(message):
    record = _record(message)

    SensitiveDataFilter([]).filter(record)

    assert "abc123" not in record.getMessage()
    assert "[redacted]" in record.getMessage()


def test_json_formatter_includes_request_id():
    record = _record("HTTP GET /healthz status=200")
    record.request_id = "req-42"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "HTTP GET /healthz status=200"
    assert payload["request_id"] == "req-42"
    assert payload["level"] == "INFO"


def test_json_formatter_carries_structured_extras():
    record = _record("Retention removed records")
    record.collection = "pricingHistory"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["collection"] == "pricingHistory"
    assert "device_id" not in payload


def test_redact_masks_literal_secrets():
    assert redact("token is hunter2", ["hunter2"]) == "token is [redacted]"


def test_configure_logging_quiets_httpx():
    configure_logging("DEBUG", "plain", [])

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger().level == logging.DEBUG
