"""
Request-scoped logging helpers.

Every API request gets a short correlation id.  The id lives in a
``ContextVar`` so that it follows the request into every asyncio task it
spawns, and ``capture_request_logs`` collects that request's records so the
API can return them when the caller asks for ``debug``.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator

_LOGGER_NAME = "storescout"
_FORMAT = "[%(asctime)s][%(levelname)s][%(request_id)s] %(name)s: %(message)s"

_request_id: ContextVar[str] = ContextVar("storescout_request_id", default="-")


def new_request_id() -> str:
    """Return a short random correlation id."""
    return uuid.uuid4().hex[:12]


def current_request_id() -> str:
    return _request_id.get()


class RequestIdFilter(logging.Filter):
    """Stamp ``record.request_id`` so formatters can reference it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()
        return True


class RequestLogCollector(logging.Handler):
    """Collects the records emitted while handling one request."""

    def __init__(self, request_id: str, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.request_id = request_id
        self.entries: list[dict[str, Any]] = []

    def emit(self, record: logging.LogRecord) -> None:
        if _request_id.get() != self.request_id:
            return
        try:
            message = record.getMessage()
        except Exception:  # noqa: BLE001
            self.handleError(record)
            return
        if record.exc_info:
            message = f"{message}\n{logging.Formatter().formatException(record.exc_info)}"
        self.entries.append(
            {
                "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                "requestId": self.request_id,
                "level": record.levelname.lower(),
                "logger": record.name,
                "message": message,
            }
        )


def configure_logging(level: str | int = "INFO") -> None:
    """Install a stderr handler on the package logger (idempotent)."""
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    for handler in logger.handlers:
        if getattr(handler, "_storescout_console", False):
            return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler.addFilter(RequestIdFilter())
    handler._storescout_console = True  # type: ignore[attr-defined]
    logger.addHandler(handler)


@contextmanager
def capture_request_logs(request_id: str) -> Iterator[RequestLogCollector]:
    """Bind *request_id* to the current context and collect its log records."""
    logger = logging.getLogger(_LOGGER_NAME)
    collector = RequestLogCollector(request_id)
    token = _request_id.set(request_id)
    logger.addHandler(collector)
    try:
        yield collector
    finally:
        logger.removeHandler(collector)
        _request_id.reset(token)
