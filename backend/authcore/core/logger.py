"""JSON logging for auth events, correlated by request id.

Auth code logs an event name plus a few whitelisted extras::

    log.info("auth.login", extra={"event": "auth.login", "user_id": 7})

Only keys in :data:`EXTRA_KEYS` reach the output. Credential-bearing keys are
replaced with :data:`REDACTED` even if a caller passes them by mistake.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
INBOUND_ID_HEADERS = (REQUEST_ID_HEADER, "X-Correlation-ID")

# Client-supplied ids are echoed into logs and responses.
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

EXTRA_KEYS = ("event", "user_id", "reason", "endpoint", "elapsed_ms")

SENSITIVE_KEYS = frozenset(
    {"password", "password_hash", "access_token", "refresh_token", "token", "authorization"}
)
REDACTED = "[redacted]"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, stamped with the record's creation time."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update({key: getattr(record, key) for key in EXTRA_KEYS if hasattr(record, key)})
        payload.update({key: REDACTED for key in SENSITIVE_KEYS if hasattr(record, key)})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = ensure_request_id() if has_request_context() else None
        return True


def _inbound_request_id() -> str | None:
    for header in INBOUND_ID_HEADERS:
        value = request.headers.get(header, "").strip()
        if value and _SAFE_REQUEST_ID.match(value):
            return value
    return None


def ensure_request_id() -> str:
    """
    Return the id for the current request, fixing it on first use.

    A well-formed inbound ``X-Request-ID`` (or ``X-Correlation-ID``) is reused;
    anything else gets a fresh UUID4. Outside a request a new UUID is returned
    each call.
    """
    if not has_request_context():
        return str(uuid4())
    request_id = g.get("request_id")
    if request_id is None:
        request_id = _inbound_request_id() or str(uuid4())
        g.request_id = request_id
    return request_id


def configure_logging(level: str | int = "INFO") -> None:
    """Send root logging to stdout as JSON at ``level``.

    :raises ValueError: If ``level`` is not a known level name.
    """
    if isinstance(level, str):
        names = logging.getLevelNamesMapping()
        if level.upper() not in names:
            raise ValueError(f"Unknown log level {level!r}.")
        level = names[level.upper()]

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def init_app(app: Flask) -> None:
    """Fix a request id before each request and echo it on the response."""
    app.logger.addFilter(RequestIdFilter())

    @app.before_request
    def _seed_request_id() -> None:
        ensure_request_id()

    @app.after_request
    def _echo_request_id(response):
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = ["configure_logging", "init_app", "ensure_request_id", "JSONFormatter", "REDACTED"]
