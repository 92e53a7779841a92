"""Tests for log formatting."""

from __future__ import annotations

import json
import logging

from line_relay.logging_setup import JsonFormatter, configure_logging


def _record(msg: str, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("line_relay.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_fields() -> None:
    parsed = json.loads(JsonFormatter().format(_record("Reply delivered")))
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "line_relay.test"
    assert parsed["message"] == "Reply delivered"
    assert "timestamp" in parsed
    assert "data" not in parsed


def test_json_formatter_includes_data() -> None:
    parsed = json.loads(JsonFormatter().format(_record("sent", data={"length": 12})))
    assert parsed["data"] == {"length": 12}


def test_configure_logging_replaces_handlers() -> None:
    root = logging.getLogger()
    saved = (list(root.handlers), root.level)
    try:
        configure_logging("debug", json_output=True)
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.level == logging.DEBUG
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])
