"""Unit tests for the JSON log formatter."""

from __future__ import annotations

import json
import logging

from bassball.logging_config import JsonFormatter, configure_logging
from bassball.middleware.request_id import RequestIdLogFilter, _current_request_id


def _record(message: str, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="bassball.rpc.rotation",
        level=logging.WARNING,
        pathname="rotation.py",
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    def test_required_fields(self):
        entry = json.loads(JsonFormatter().format(_record("hello")))
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "bassball.rpc.rotation"
        assert entry["message"] == "hello"
        assert entry["request_id"] is None
        assert "timestamp" in entry

    def test_failover_fields(self):
        record = _record(
            "Switching RPC endpoint from A to B",
            endpoint="B",
            previous_endpoint="A",
            failure_count=3,
        )
        entry = json.loads(JsonFormatter().format(record))
        assert entry["endpoint"] == "B"
        assert entry["previous_endpoint"] == "A"
        assert entry["failure_count"] == 3

    def test_event_fields(self):
        record = _record("Created club", event="club_created", entity_id="club_1")
        entry = json.loads(JsonFormatter().format(record))
        assert entry["event"] == "club_created"
        assert entry["entity_id"] == "club_1"

    def test_redacts_secrets(self):
        entry = json.loads(JsonFormatter().format(_record("login signature=0xdeadbeef ok")))
        assert "0xdeadbeef" not in entry["message"]
        assert "[REDACTED]" in entry["message"]

    def test_redacts_service_key(self):
        entry = json.loads(JsonFormatter().format(_record("service_key: hunter2")))
        assert "hunter2" not in entry["message"]


class TestConfigureLogging:
    def test_installs_single_json_handler(self):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            configure_logging("debug")
            configure_logging("debug")
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JsonFormatter)
            assert root.level == logging.DEBUG
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)


class TestRequestIdLogFilter:
    def test_stamps_current_request_id(self):
        token = _current_request_id.set("req-42")
        try:
            record = _record("inside a request")
            assert RequestIdLogFilter().filter(record)
        finally:
            _current_request_id.reset(token)
        entry = json.loads(JsonFormatter().format(record))
        assert entry["request_id"] == "req-42"

    def test_outside_request(self):
        record = _record("background sweep")
        RequestIdLogFilter().filter(record)
        assert record.request_id is None

    def test_explicit_extra_wins(self):
        token = _current_request_id.set("req-42")
        try:
            record = _record("explicit", request_id="given")
            RequestIdLogFilter().filter(record)
        finally:
            _current_request_id.reset(token)
        assert record.request_id == "given"
