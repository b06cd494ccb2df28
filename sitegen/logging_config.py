"""
JSON line logging for the generation and edit pipelines.

``setup_logging()`` runs once in the FastAPI lifespan. Each record carries
the current ``request_id`` (set by the HTTP middleware, or taken from an
inbound ``X-Request-Id`` header) and any pipeline context passed as
``extra=`` (``stage``, ``repo``, ``percentage``).

A background edit task inherits the request id of the request that
started it, so its stage transitions stay correlated after the response
headers have gone out.
"""

from __future__ import annotations

import contextvars
import json
import logging
import re
import sys
import uuid
from datetime import datetime, timezone
from typing import TextIO

request_id_ctx: contextvars.ContextVar[str] = contextvars.ContextVar(
    "request_id", default="-"
)

PIPELINE_FIELDS = ("stage", "repo", "percentage")

# Chatty client libraries; their request lines duplicate our own stage logs
_QUIET_LOGGERS = ("httpx", "httpcore", "openai")

_INBOUND_ID_RE = re.compile(r"^[A-Za-z0-9\-_.]{1,64}$")


class RequestContextFilter(logging.Filter):
    """Stamp the active request id onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get()
        return True


class JSONFormatter(logging.Formatter):
    def __init__(self, service: str = "sitegen") -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }
        for name in PIPELINE_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
            entry["error_type"] = type(record.exc_info[1]).__name__
        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    """Route the root logger to one JSON handler; safe to call repeatedly."""
    root = logging.getLogger()
    root.setLevel(level.upper())

    for existing in root.handlers[:]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestContextFilter())
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def new_request_id(inbound: str | None = None) -> str:
    """Reuse a well-formed inbound id, else mint a short one."""
    if inbound and _INBOUND_ID_RE.match(inbound):
        return inbound
    return uuid.uuid4().hex[:12]
