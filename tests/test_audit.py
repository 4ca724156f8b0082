"""Tests for nfc_router/logging/audit.py — JSON audit logging."""

import json
import logging
import sys

from nfc_router.logging.audit import (
    AUDIT_LOGGER_NAME,
    JSONFormatter,
    USER_AGENT_LOG_LIMIT,
    RequestTimer,
    audit_extra,
    generate_request_id,
    get_audit_logger,
    lookup_context,
    request_id_var,
    setup_logging,
)


def _record(msg="test", exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="test", level=logging.INFO, pathname="",
        lineno=0, msg=msg, args=(), exc_info=exc_info,
    )


class TestJSONFormatter:

    def test_output_is_valid_json(self):
        parsed = json.loads(JSONFormatter().format(_record("hello")))
        assert parsed["message"] == "hello"
        assert parsed["level"] == "INFO"
        assert "timestamp" in parsed

    def test_includes_request_id(self):
        token = request_id_var.set("req-abc123")
        try:
            parsed = json.loads(JSONFormatter().format(_record()))
            assert parsed["request_id"] == "req-abc123"
        finally:
            request_id_var.reset(token)

    def test_includes_audit_data(self):
        record = _record()
        record.audit_data = {"slug": "WindowShopping", "event": "served"}
        parsed = json.loads(JSONFormatter().format(record))
        assert parsed["slug"] == "WindowShopping"
        assert parsed["event"] == "served"

    def test_empty_request_id_default(self):
        parsed = json.loads(JSONFormatter().format(_record()))
        assert parsed["request_id"] == ""

    def test_includes_exception_text(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record(exc_info=sys.exc_info())
        parsed = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in parsed["exception"]


class TestAuditFields:

    def test_lookup_context_truncates_user_agent(self):
        context = lookup_context("WindowShopping", "203.0.113.7", "x" * 1000)
        assert context["slug"] == "WindowShopping"
        assert context["client_ip"] == "203.0.113.7"
        assert len(context["user_agent"]) == USER_AGENT_LOG_LIMIT

    def test_audit_extra_merges_context_and_fields(self):
        context = lookup_context("WindowShopping", "203.0.113.7", "ArduinoCalendar/1.2")
        extra = audit_extra("served", context, latency_ms=4.2)
        assert extra == {"audit_data": {**context, "event": "served", "latency_ms": 4.2}}

    def test_audit_extra_event_cannot_be_shadowed_by_context(self):
        extra = audit_extra("redirect", {"event": "stale", "slug": "a"})
        assert extra["audit_data"]["event"] == "redirect"

    def test_formatted_event_line(self):
        record = _record("Bot blocked")
        record.audit_data = audit_extra("bot_blocked", lookup_context("a", "b", "Googlebot"))["audit_data"]
        parsed = json.loads(JSONFormatter().format(record))
        assert parsed["event"] == "bot_blocked"
        assert parsed["user_agent"] == "Googlebot"


class TestGenerateRequestId:

    def test_length(self):
        assert len(generate_request_id()) == 12

    def test_uniqueness(self):
        ids = {generate_request_id() for _ in range(100)}
        assert len(ids) == 100


class TestRequestTimer:

    def test_measures_elapsed(self):
        with RequestTimer() as timer:
            _ = sum(range(1000))
        assert timer.elapsed_ms >= 0
        assert isinstance(timer.elapsed_ms, float)


class TestSetupLogging:

    def test_creates_stdout_handler(self, override_settings):
        override_settings(AUDIT_LOG_FILE="")
        setup_logging()
        logger = get_audit_logger()
        assert logger.name == AUDIT_LOGGER_NAME
        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_file_handler(self, override_settings, tmp_path):
        log_file = tmp_path / "audit.log"
        override_settings(AUDIT_LOG_FILE=str(log_file), LOG_LEVEL="DEBUG")
        setup_logging()
        logger = get_audit_logger()
        try:
            assert any(isinstance(h, logging.FileHandler) for h in logger.handlers)
            assert logger.level == logging.DEBUG
        finally:
            for handler in logger.handlers:
                handler.close()
            logger.handlers.clear()
