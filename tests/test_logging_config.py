"""
Tests for the logging filters and JSON formatter.
"""

import json
import logging

from event_management_platform.utils.logging_config import (
    JSONFormatter,
    RequestIDFilter,
    SensitiveDataFilter,
    request_id_var,
)


def make_record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("event_management_platform.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_sensitive_values_are_masked():
    record = make_record(
        "Booking confirmed for alex@example.com",
        check_in_token="abc123",
        payload={"bank_details": "GB00 1234", "amount": "10.00"},
    )

    assert SensitiveDataFilter().filter(record) is True
    assert "alex@example.com" not in record.msg
    assert record.check_in_token == "***"
    assert record.payload == {"bank_details": "***", "amount": "10.00"}


def test_request_id_comes_from_context():
    token = request_id_var.set("req-42")
    try:
        record = make_record("hello")
        RequestIDFilter().filter(record)
    finally:
        request_id_var.reset(token)

    assert record.request_id == "req-42"

    outside = make_record("hello")
    RequestIDFilter().filter(outside)
    assert outside.request_id == "-"


def test_json_formatter_nests_extra_fields():
    record = make_record("booking_created", request_id="req-1", event_id="e-1", points_earned=1000)

    entry = json.loads(JSONFormatter().format(record))

    assert entry["message"] == "booking_created"
    assert entry["request_id"] == "req-1"
    assert entry["level"] == "INFO"
    assert entry["context"] == {"event_id": "e-1", "points_earned": 1000}
