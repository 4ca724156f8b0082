"""Structured JSON audit logging for the artwork router.

Every pipeline exit writes one JSON line carrying an `event` name:
- bot_blocked, rate_limited, rate_limit_degraded
- redirect, discovery, auth_failed, invalid_slug
- served, not_found, artwork_store_failed, machine_token_failed
- internal_error

Lookup events share the slug, client address, truncated user agent and
caller class, so one request can be traced across its events. Output
goes to stdout, plus AUDIT_LOG_FILE when set.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone

from nfc_router.config.settings import get_settings

AUDIT_LOGGER_NAME = "router.audit"
USER_AGENT_LOG_LIMIT = 200

# Request-scoped context for correlating log entries
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_var.get(""),
        }
        # Merge any extra fields passed via `extra={}` kwarg
        if hasattr(record, "audit_data"):
            log_entry.update(record.audit_data)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging() -> None:
    """Configure the audit logger with JSON output."""
    settings = get_settings()

    logger = logging.getLogger(AUDIT_LOGGER_NAME)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    logger.handlers.clear()

    formatter = JSONFormatter()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    logger.addHandler(stdout_handler)

    if settings.audit_log_file:
        file_handler = logging.FileHandler(settings.audit_log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Prevent propagation to root logger (avoids duplicate output)
    logger.propagate = False


def get_audit_logger() -> logging.Logger:
    return logging.getLogger(AUDIT_LOGGER_NAME)


def lookup_context(slug: str, client_ip: str, user_agent: str) -> dict:
    """Fields shared by every audit event of one artwork lookup."""
    return {
        "slug": slug,
        "client_ip": client_ip,
        "user_agent": (user_agent or "")[:USER_AGENT_LOG_LIMIT],
    }


def audit_extra(event: str, context: dict | None = None, **fields) -> dict:
    """`extra=` payload for the audit logger."""
    return {"audit_data": {**(context or {}), "event": event, **fields}}


def generate_request_id() -> str:
    return uuid.uuid4().hex[:12]


class RequestTimer:
    """Context manager to measure request latency."""

    def __init__(self):
        self.start_time: float = 0
        self.elapsed_ms: float = 0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed_ms = round((time.perf_counter() - self.start_time) * 1000, 2)
