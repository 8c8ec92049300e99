"""Structured JSON logging for the record store, sync engine and HTTP surface.

Every line carries the correlation id and, inside :func:`operation_context`,
the name of the sync or maintenance operation that emitted it. Field values
pass through :func:`redact_for_log` so user ids, image locations and free-text
notes never reach the log sink.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import os
import re
import sys
import uuid
from typing import IO, Any, Dict, Iterator, Optional

CORRELATION_ID: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("correlation_id", default=None)
OPERATION: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("operation", default=None)

# attributes every LogRecord carries; anything else arrived through ``extra``
_RECORD_ATTRIBUTES = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "asctime"}
_SENSITIVE_KEYS = frozenset(
    {
        "user_id",
        "email",
        "image_uri",
        "link",
        "notes",
        "destination",
        "api_key",
        "remote_api_key",
        "weather_api_key",
    }
)
_EMAIL = re.compile(r"[\w.\-+]+@[\w.\-]+")
_URL_PREFIXES = ("http://", "https://", "file:", "data:")
_HANDLER_MARKER = "_wardrobe_json_handler"


class JsonFormatter(logging.Formatter):
    """Render records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        message = super().format(record)
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
            "event": getattr(record, "event", record.getMessage()),
            "correlation_id": getattr(record, "correlation_id", None) or CORRELATION_ID.get(),
        }
        operation = getattr(record, "operation", None) or OPERATION.get()
        if operation:
            payload["operation"] = operation

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRIBUTES or key in payload:
                continue
            payload[key] = redact_for_log(value, key)
        return json.dumps(payload, default=str)


def configure_logging(level: int | str | None = None, stream: IO[str] | None = None) -> logging.Handler:
    """Install the JSON handler on the root logger.

    Calling this again replaces the previously installed JSON handler and
    leaves handlers added by other code (test capture, ASGI servers) in place.
    """

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter())
    setattr(handler, _HANDLER_MARKER, True)
    root.addHandler(handler)
    root.setLevel(level or os.getenv("LOG_LEVEL", "INFO"))
    return handler


def _redact_string(value: str) -> str:
    if _EMAIL.search(value):
        return _EMAIL.sub("[redacted-email]", value)
    if value.lower().startswith(_URL_PREFIXES):
        return "[redacted-url]"
    return value


def redact_for_log(payload: Any, key: str | None = None) -> Any:
    """Scrub user identifiers, image locations and free text before logging.

    Records exposing ``to_dict`` are reduced to their type and id so that a
    whole closet item never lands in a log line.
    """

    if key in _SENSITIVE_KEYS and payload is not None:
        return "[redacted]"
    if payload is None or isinstance(payload, (bool, int, float)):
        return payload
    if isinstance(payload, str):
        return _redact_string(payload)
    if isinstance(payload, dict):
        return {name: redact_for_log(value, name) for name, value in payload.items()}
    if isinstance(payload, (list, tuple, set)):
        return [redact_for_log(item) for item in payload]
    if hasattr(payload, "to_dict") and hasattr(payload, "id"):
        return {"type": type(payload).__name__, "id": payload.id}
    return str(payload)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger, installing the JSON handler on first use."""

    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


def ensure_correlation_id(correlation_id: str | None = None) -> str:
    """Return the active correlation id, assigning one when none is set."""

    if correlation_id:
        CORRELATION_ID.set(correlation_id)
        return correlation_id
    current = CORRELATION_ID.get()
    if current:
        return current
    new_id = uuid.uuid4().hex
    CORRELATION_ID.set(new_id)
    return new_id


@contextlib.contextmanager
def correlation_context(correlation_id: str | None = None) -> Iterator[str]:
    """Temporarily set a correlation id."""

    token = CORRELATION_ID.set(correlation_id or ensure_correlation_id())
    try:
        yield CORRELATION_ID.get()  # type: ignore[misc]
    finally:
        CORRELATION_ID.reset(token)


@contextlib.contextmanager
def operation_context(operation: str, correlation_id: str | None = None) -> Iterator[str]:
    """Tag every log line inside the block with ``operation`` and one correlation id."""

    operation_token = OPERATION.set(operation)
    try:
        with correlation_context(correlation_id or uuid.uuid4().hex) as scoped_id:
            yield scoped_id
    finally:
        OPERATION.reset(operation_token)


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Emit a structured entry; ``fields`` become top-level JSON keys."""

    correlation_id = ensure_correlation_id(fields.pop("correlation_id", None))
    exc_info = fields.pop("exc_info", None)
    # LogRecord refuses extras that shadow its own attributes
    safe_fields = {
        (f"field_{key}" if key in _RECORD_ATTRIBUTES else key): value
        for key, value in redact_for_log(fields).items()
    }
    logger.log(
        level,
        event,
        exc_info=exc_info,
        extra={"event": event, "correlation_id": correlation_id, **safe_fields},
    )


__all__ = [
    "CORRELATION_ID",
    "OPERATION",
    "JsonFormatter",
    "configure_logging",
    "correlation_context",
    "ensure_correlation_id",
    "get_logger",
    "log_event",
    "operation_context",
    "redact_for_log",
]
