"""JSON logging for the league API, correlated by request id and caller."""

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
CORRELATION_HEADERS = ("X-Request-ID", "X-Correlation-ID")

# Client-supplied ids are echoed into logs and headers, so keep them tame
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

# Workflow fields passed through ``extra=`` and promoted to top-level JSON keys
EXTRA_KEYS = ("endpoint", "elapsed_ms", "state", "attempt", "external_id", "store_error")

# Context fields stamped on every record by :class:`RequestContextFilter`
CONTEXT_KEYS = ("request_id", "method", "path", "actor_uid")

# Third-party loggers that flood DEBUG output (Firebase SDK transport stack)
NOISY_LOGGERS = ("urllib3", "google.auth", "cachecontrol")


class JSONFormatter(logging.Formatter):
    """Render a record as one JSON object per line."""

    def __init__(self, service: str = "matchpoint") -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "service": self.service,
            "name": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_KEYS + EXTRA_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RequestContextFilter(logging.Filter):
    """Stamp request id, route and authenticated caller onto each record.

    Outside a request only ``request_id`` is set, to ``None``.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            record.request_id = None
            return True
        record.request_id = ensure_request_id()
        record.method = request.method
        record.path = request.path
        user = getattr(g, "current_user", None)
        record.actor_uid = getattr(user, "uid", None)
        return True


def _inbound_request_id() -> str | None:
    for header in CORRELATION_HEADERS:
        value = (request.headers.get(header) or "").strip()
        if value and _REQUEST_ID_RE.match(value):
            return value
    return None


def ensure_request_id() -> str:
    """Return the request's correlation id, adopting or minting one once."""
    if not has_request_context():
        return uuid4().hex
    request_id = getattr(g, "request_id", None)
    if request_id is None:
        request_id = _inbound_request_id() or uuid4().hex
        g.request_id = request_id
    return request_id


def configure_logging(level: str | int = "INFO", *, service: str = "matchpoint") -> None:
    """Send every log record to stdout as JSON at ``level``."""
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        level = resolved if isinstance(resolved, int) else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter(service=service))
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))


def init_app(app: Flask) -> None:
    """Seed a request id per request and echo it in the response header."""

    app.logger.addFilter(RequestContextFilter())

    @app.before_request
    def _seed_request_id() -> None:
        ensure_request_id()

    @app.after_request
    def _echo_request_id(response):
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = ["configure_logging", "ensure_request_id", "init_app"]
