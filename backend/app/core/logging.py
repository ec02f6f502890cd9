"""
Structured JSON Logging Module.

Every record is one JSON object carrying the request's correlation and
event ids. Access decisions and creates add their resource fields through
``extra={"extra_data": {...}}``; keys that could hold a password, hash or
grant token are masked before the record is written.
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from contextvars import ContextVar

# Context vars to store correlation and event IDs for the current request context
correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
event_id_ctx: ContextVar[Optional[str]] = ContextVar("event_id", default=None)

SECRET_KEY_MARKERS = ("password", "hash", "token", "cookie")
REDACTED = "[redacted]"


def redact(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Mask values whose key names a password, hash, token or cookie."""
    return {
        key: REDACTED if any(marker in key.lower() for marker in SECRET_KEY_MARKERS) else value
        for key, value in fields.items()
    }


class JSONFormatter(logging.Formatter):
    """
    Formatter that dumps records as JSON.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "func": record.funcName,
            "line": record.lineno,
            "service": "briefings-backend",
        }

        cid = correlation_id_ctx.get()
        if cid:
            log_data["correlation_id"] = cid

        eid = event_id_ctx.get()
        if eid:
            log_data["event_id"] = eid

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            log_data.update(redact(extra_data))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO"):
    """
    Configures the root logger to use JSON formatting.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)

    # Request lines come from TracingMiddleware
    logging.getLogger("uvicorn.access").disabled = True
    logging.getLogger("aiosqlite").setLevel("WARNING")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
