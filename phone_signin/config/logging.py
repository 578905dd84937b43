"""Structured JSON logging for the sign-in service."""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import TYPE_CHECKING, cast, override

if TYPE_CHECKING:
    from phone_signin.config.settings import LogLevel

# Sign-in attempt the current task is serving, stamped on every record.
attempt_id: ContextVar[str | None] = ContextVar("attempt_id", default=None)

_RECORD_BUILTIN_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
        "asctime",
    },
)


class JSONFormatter(logging.Formatter):
    """Render each log record as one JSON object per line."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as a JSON string."""
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "attempt_id": attempt_id.get(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_trace"] = self.formatStack(record.stack_info)

        reserved = frozenset(payload)
        extras = cast("dict[str, object]", record.__dict__)
        for key, value in extras.items():
            if key in _RECORD_BUILTIN_ATTRS or key.startswith("_"):
                continue
            payload[f"extra_{key}" if key in reserved else key] = value

        return json.dumps(payload, default=str)


def init_logging(level: LogLevel) -> None:
    """Route all logging through one stdout JSON handler at `level`."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Keep pytest's capture handler so caplog still sees records.
    for existing in root_logger.handlers[:]:
        if type(existing).__name__ != "LogCaptureHandler":
            root_logger.removeHandler(existing)

    root_logger.addHandler(handler)


def mask_phone(phone: str) -> str:
    """Return a log-safe rendering of a phone number."""
    digits = "".join(ch for ch in phone if ch.isdigit())
    if len(digits) <= 2:  # noqa: PLR2004
        return "*" * len(digits)
    return "*" * (len(digits) - 2) + digits[-2:]
