"""
Structured logging for batch processing.

Every record emitted inside a ``LogContext`` carries the batch fields
(``batch_id``, ``block_height``, ``unit``, ``component``, ``operation``,
``correlation_id``). Handlers run behind a queue so cache I/O on the event
loop never waits on stdout.

``setup_logging()`` is explicit: the cache is a library and the embedding
application or runner entry point owns the root logger.
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Dict, Optional

from batchcache.core.config.config import Config

BATCH_FIELDS = (
    "batch_id",
    "block_height",
    "unit",
    "component",
    "operation",
    "correlation_id",
)

_UNSET = "N/A"
_QUEUE_MAX_SIZE = 10_000
_CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s [%(batch_id)s:%(operation)s] %(name)s: %(message)s"

# Attribute names every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

_batch_context: ContextVar[Dict[str, Any]] = ContextVar("batch_context", default={})

_listener: Optional[QueueListener] = None


class ContextFilter(logging.Filter):
    """Copy the active batch context onto the record."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _batch_context.get()
        for field in BATCH_FIELDS:
            setattr(record, field, context.get(field, _UNSET))
        if record.component == _UNSET:
            record.component = record.name.partition(".")[0]
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line; batch fields at top level, the rest under ``extra``."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (field, getattr(record, field))
            for field in BATCH_FIELDS
            if getattr(record, field, _UNSET) != _UNSET
        )

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
            and key not in BATCH_FIELDS
            and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def _use_json() -> bool:
    if Config.LOG_JSON is None:
        return Config.is_production()
    return bool(Config.LOG_JSON)


def setup_logging() -> None:
    """Route the root logger through a bounded queue to a stdout handler. Idempotent."""
    global _listener

    if _listener is not None:
        return

    level = logging.getLevelName(str(Config.LOG_LEVEL).upper())
    if not isinstance(level, int):
        level = logging.INFO

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(JSONFormatter() if _use_json() else logging.Formatter(_CONSOLE_FORMAT))

    # The filter runs on the producing task so the ContextVar is still visible.
    log_queue: "queue.Queue[logging.LogRecord]" = queue.Queue(_QUEUE_MAX_SIZE)
    queue_handler = QueueHandler(log_queue)
    queue_handler.addFilter(ContextFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(queue_handler)
    root.setLevel(level)

    for noisy in ("sqlalchemy.engine", "aiosqlite", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _listener = QueueListener(log_queue, console, respect_handler_level=True)
    _listener.start()

    logging.getLogger(__name__).debug(
        "Logging configured",
        extra={"environment": Config.ENVIRONMENT, "json": _use_json()},
    )


def shutdown_logging() -> None:
    """Drain the queue and detach root handlers."""
    global _listener

    if _listener is None:
        return

    _listener.stop()
    _listener = None

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def is_logging_configured() -> bool:
    return _listener is not None


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_log_context() -> Dict[str, Any]:
    return dict(_batch_context.get())


def clear_log_context() -> None:
    _batch_context.set({})


class LogContext:
    """
    Scope batch fields onto every record logged inside the block.

    Nested contexts inherit the enclosing fields and override only what they
    set, so a runner can open ``LogContext(batch_id=...)`` and the cache can
    add ``operation="load"`` underneath it. A correlation id is generated
    when none is inherited.
    """

    def __init__(self, **fields: Any) -> None:
        self._fields = {key: value for key, value in fields.items() if value is not None}
        self._token: Optional[Token] = None
        self.context: Dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        merged = {**_batch_context.get(), **self._fields}
        merged.setdefault("correlation_id", uuid.uuid4().hex[:8])
        self.context = merged
        self._token = _batch_context.set(merged)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _batch_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)
