"""Structured logging configuration with request correlation."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = ("X-Request-ID", "X-Correlation-ID")

# ``extra=`` attributes copied verbatim into the JSON payload
EXTRA_KEYS = ("endpoint", "elapsed_ms", "user_id", "reason", "backend")


class JSONFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=UTC).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for key in EXTRA_KEYS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        return json.dumps(payload, default=str)


class RequestIdFilter(logging.Filter):
    """Ensure a ``request_id`` attribute is always present on log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = ensure_request_id() if has_request_context() else None
        return True


def ensure_request_id() -> str:
    """Return the current request identifier, generating one when necessary."""
    if not has_request_context():
        return str(uuid4())
    if hasattr(g, "request_id"):
        return g.request_id  # type: ignore[no-any-return]
    for header in CORRELATION_HEADERS:
        value = request.headers.get(header)
        if value:
            g.request_id = value
            return value
    g.request_id = str(uuid4())
    return g.request_id  # type: ignore[no-any-return]


def configure_logging(level: str | int = "INFO") -> None:
    """
    Install the JSON stdout handler on the root logger.

    Only handlers installed by a previous call are replaced, so repeated app
    creation (tests, reloader) never stacks duplicates or drops foreign ones.
    """
    root = logging.getLogger()
    for existing in [h for h in root.handlers if getattr(h, "_sessionguard", False)]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())
    handler._sessionguard = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level = resolved if isinstance(resolved, int) else logging.INFO
    root.setLevel(level)


def init_app(app: Flask) -> None:
    """Inject request-id middleware and echo the id on every response."""
    app.logger.addFilter(RequestIdFilter())

    @app.before_request
    def _seed_request_id() -> None:
        ensure_request_id()

    @app.after_request
    def _inject_response_header(response):
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = ["JSONFormatter", "RequestIdFilter", "configure_logging", "init_app", "ensure_request_id"]
