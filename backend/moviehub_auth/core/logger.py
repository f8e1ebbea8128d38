"""Structured logging configuration with request correlation."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from flask import Flask, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
# Kept on the WSGI environ: ``g`` outlives the request when an app context is already pushed.
REQUEST_ID_ENVIRON_KEY = "moviehub_auth.request_id"
CORRELATION_HEADERS = ("X-Request-ID", "X-Correlation-ID")
# Longer inbound ids are replaced rather than copied into every log line.
MAX_REQUEST_ID_LENGTH = 128

# Attributes passed through ``extra=`` that are rendered in the JSON payload.
EXTRA_KEYS = (
    "endpoint",
    "elapsed_ms",
    "event",
    "account_id",
    "family_id",
    "reason",
    "remote_addr",
    "all_sessions",
    "revoked",
)


class JSONFormatter(logging.Formatter):
    """Render one JSON object per record; security ``extra`` fields become keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update({key: getattr(record, key) for key in EXTRA_KEYS if hasattr(record, key)})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RequestIdFilter(logging.Filter):
    """Stamp ``request_id`` on every record (``None`` outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        record.request_id = ensure_request_id() if has_request_context() else None
        return True


def _inbound_request_id() -> str | None:
    for header in CORRELATION_HEADERS:
        value = (request.headers.get(header) or "").strip()
        if value and len(value) <= MAX_REQUEST_ID_LENGTH and value.isprintable():
            return value
    return None


def ensure_request_id() -> str:
    """Return the current request id, adopting the caller's or minting a UUID4."""

    if not has_request_context():
        return str(uuid4())
    environ = request.environ
    if REQUEST_ID_ENVIRON_KEY not in environ:
        environ[REQUEST_ID_ENVIRON_KEY] = _inbound_request_id() or str(uuid4())
    return environ[REQUEST_ID_ENVIRON_KEY]  # type: ignore[no-any-return]


def configure_logging(level: str | int = "INFO") -> None:
    """Send JSON lines to stdout through a single root handler."""

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level = resolved if isinstance(resolved, int) else logging.INFO
    root.setLevel(level)


def init_app(app: Flask) -> None:
    """Seed the request id early and echo it on every response."""

    app.logger.addFilter(RequestIdFilter())

    @app.before_request
    def _seed_request_id() -> None:  # pragma: no cover - integration glue
        ensure_request_id()

    @app.after_request
    def _inject_response_header(response):  # pragma: no cover - integration glue
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = ["configure_logging", "init_app", "ensure_request_id", "JSONFormatter"]
