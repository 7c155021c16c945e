"""
Structured JSON logging configuration.

Every log line is one JSON object with a channel (http, db, auth, results,
admin), the current request ID and any business context attached by the
caller. Output goes to stdout for container log aggregation.
"""

import logging
import json
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

from examgate.config import LOG_LEVEL

# Request ID of the HTTP request being served; empty outside a request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

CHANNELS = ["http", "db", "auth", "results", "admin"]


class StructuredJsonFormatter(logging.Formatter):
    """One JSON object per record; context always carries the request ID."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
            "channel": getattr(record, "channel", record.name.split(".")[-1] if "." in record.name else "app"),
            "context": {
                "request_id": request_id_var.get(""),
                **(getattr(record, "context", {}) or {})
            },
            "extra": getattr(record, "extra_data", {}) or {}
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging():
    """Install the JSON formatter on the root logger and set channel levels."""
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredJsonFormatter())

    level = getattr(logging, LOG_LEVEL, logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    for channel in CHANNELS:
        logging.getLogger(f"examgate.{channel}").setLevel(level)

    return root_logger


def get_logger(channel: str) -> logging.Logger:
    """Return the logger for a channel (http, db, auth, results, admin)."""
    return logging.getLogger(f"examgate.{channel}")


def log_with_context(logger: logging.Logger, level: str, message: str,
                     context: dict = None, extra_data: dict = None):
    """
    Emit a structured log entry.

    Args:
        logger: The channel logger to use
        level: Level name (INFO, WARNING, ERROR, DEBUG)
        message: Human-readable message
        context: Business context, e.g. {"student_name": "bob"}
        extra_data: Additional metadata, e.g. {"duration_ms": 1.2}
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.log(
        log_level,
        message,
        extra={"context": context or {}, "extra_data": extra_data or {}, "channel": logger.name.split(".")[-1]}
    )


def generate_request_id() -> str:
    return str(uuid.uuid4())
