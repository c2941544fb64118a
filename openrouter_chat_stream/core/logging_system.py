"""Logging system with per-request log capture.

This module handles logging-related functionality:
- SessionLogger: request-scoped log context and in-memory buffering
- Structured event extraction from log records
- Cleanup of stale request buffers

The SessionLogger uses a contextvar to track the request_id so every record
emitted while a stream is being decoded can be traced back to that request.
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time
import traceback
from collections import deque
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

LOGGER = logging.getLogger(__name__)

_PACKAGE_LOGGER_NAME = "openrouter_chat_stream"


class SessionLogger:
    """Per-request log capture keyed by a request id contextvar.

    Attributes:
        request_id: ContextVar storing the per-request buffer key.
        log_level:  ContextVar storing the minimum level captured for this request.
        logs:       Map of request_id -> fixed-size deque of structured log events (dicts).
        max_sessions: Most request buffers kept after cleanup; the oldest go first.
    """

    request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
    log_level: ContextVar[int] = ContextVar("log_level", default=logging.INFO)
    max_lines: int = 2000
    max_sessions: int = 500
    logs: Dict[str, deque[dict[str, Any]]] = {}
    _session_last_seen: Dict[str, float] = {}
    _state_lock = threading.Lock()
    _installed = False

    @staticmethod
    def _classify_event_type(message: str) -> str:
        msg = (message or "").lstrip()
        if msg.startswith("OpenRouter request"):
            return "openrouter.request"
        if msg.startswith("Discarding") or msg.startswith("Ignoring"):
            return "stream.discard"
        if msg.startswith("Image"):
            return "stream.image"
        return "stream"

    @classmethod
    def _build_event(cls, record: logging.LogRecord) -> dict[str, Any]:
        """Return a structured session log event extracted from a LogRecord."""
        message = record.getMessage()
        event: dict[str, Any] = {
            "created": float(getattr(record, "created", time.time())),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", None),
            "event_type": cls._classify_event_type(message),
            "func": record.funcName,
            "lineno": record.lineno,
            "message": message,
        }
        if record.exc_info:
            event["exception"] = {"text": "".join(traceback.format_exception(*record.exc_info))}
        return event

    @classmethod
    def install(cls, name: str = _PACKAGE_LOGGER_NAME) -> logging.Logger:
        """Attach the capture handler (with its request filter) to the package logger.

        Safe to call repeatedly; the handler is installed once.
        """
        logger = logging.getLogger(name)
        with cls._state_lock:
            if cls._installed:
                return logger
            if logger.level == logging.NOTSET:
                logger.setLevel(logging.DEBUG)
            # Handler-level filter so records propagated from child loggers are stamped too.
            handler = cls._CaptureHandler()
            handler.addFilter(cls._RequestFilter())
            logger.addHandler(handler)
            cls._installed = True
        return logger

    class _RequestFilter(logging.Filter):
        """Stamp the current request id on each record."""

        def filter(self, record: logging.LogRecord) -> bool:
            rid = SessionLogger.request_id.get()
            record.request_id = rid
            record.session_log_level = SessionLogger.log_level.get()
            return True

    class _CaptureHandler(logging.Handler):
        """Route records into the per-request buffers."""

        def emit(self, record: logging.LogRecord) -> None:
            SessionLogger.process_record(record)

    @classmethod
    def process_record(cls, record: logging.LogRecord) -> None:
        request_id = getattr(record, "request_id", None)
        if not request_id:
            return
        if record.levelno < int(getattr(record, "session_log_level", logging.INFO)):
            return
        event = cls._build_event(record)
        with cls._state_lock:
            buffer = cls.logs.get(request_id)
            if buffer is None or buffer.maxlen != cls.max_lines:
                buffer = deque(buffer or (), maxlen=cls.max_lines)
                cls.logs[request_id] = buffer
            buffer.append(event)
            cls._session_last_seen[request_id] = time.time()

    @classmethod
    @contextlib.contextmanager
    def bind(cls, request_id: str, *, level: int | str = logging.INFO) -> Iterator[str]:
        """Bind ``request_id`` (and the capture level) for the duration of the block."""
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
            if not isinstance(level, int):
                level = logging.INFO
        cls.install()
        rid_token = cls.request_id.set(request_id)
        level_token = cls.log_level.set(level)
        try:
            yield request_id
        finally:
            cls.request_id.reset(rid_token)
            cls.log_level.reset(level_token)

    @classmethod
    def get_events(cls, request_id: str) -> list[dict[str, Any]]:
        with cls._state_lock:
            return list(cls.logs.get(request_id) or ())

    @classmethod
    def set_max_lines(cls, value: int) -> None:
        """Set the maximum in-memory lines retained per request (best effort)."""
        try:
            value_int = int(value)
        except (TypeError, ValueError):
            return
        cls.max_lines = max(100, min(200000, value_int))

    @classmethod
    def cleanup(cls, max_age_seconds: float = 3600) -> None:
        """Remove stale request logs to avoid unbounded growth."""
        cutoff = time.time() - max_age_seconds
        with cls._state_lock:
            stale = [rid for rid, ts in cls._session_last_seen.items() if ts < cutoff]
            overflow = len(cls._session_last_seen) - len(stale) - cls.max_sessions
            if overflow > 0:
                fresh = sorted(
                    (rid for rid, ts in cls._session_last_seen.items() if ts >= cutoff),
                    key=cls._session_last_seen.__getitem__,
                )
                stale.extend(fresh[:overflow])
            for rid in stale:
                cls.logs.pop(rid, None)
                cls._session_last_seen.pop(rid, None)
