"""
Netrunner Logging Subsystem

Purpose
-------
Structured, async-safe logging for the engine services:

- ContextVar-scoped fields (character_id, action_id, operation,
  correlation_id) stamped onto every record emitted inside a `LogContext`.
- JSON lines in production, plain or colored text in development.
- Handler I/O runs on a QueueListener thread so a slow sink never stalls
  the event loop; a full queue drops records instead of blocking.
- Optional daily-rotated JSON file.

Usage
-----
>>> setup_logging()
>>> log = get_logger(__name__)
>>> with LogContext(character_id=7, operation="resolve_action"):
...     log.info("Action resolved", extra={"action_id": 12, "status": "success"})

Notes
-----
- Nothing is configured at import time. A host application that embeds the
  engine keeps its own root logger until it calls `setup_logging()`.
- Settings are read from `Config` once per `setup_logging()` call.
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

CONTEXT_FIELDS = ("character_id", "action_id", "operation", "correlation_id")

_log_context: ContextVar[Dict[str, Any]] = ContextVar("netrunner_log_context", default={})


# ============================================================================
# Settings
# ============================================================================


@dataclass(frozen=True)
class LoggerConfig:
    """Snapshot of the logging-related `Config` values."""

    environment: str = "development"
    level: int = logging.INFO
    json_output: bool = False
    colors: bool = False
    to_file: bool = False
    logs_dir: Path = Path("logs")

    console_format: str = "%(asctime)s | %(levelname)-8s | %(component)-28s | %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file_name: str = "netrunner.json.log"
    file_backups: int = 7
    queue_size: int = 10_000

    @classmethod
    def from_config(cls) -> "LoggerConfig":
        # Imported here: the config package logs through this module.
        from netrunner.core.config.config import Config

        production = Config.is_production()
        json_output = production if Config.LOG_JSON is None else bool(Config.LOG_JSON)
        return cls(
            environment=Config.ENVIRONMENT,
            level=logging.getLevelName(Config.LOG_LEVEL),
            json_output=json_output,
            colors=Config.LOG_COLORS and not json_output and sys.stdout.isatty(),
            to_file=Config.LOG_TO_FILE,
            logs_dir=Path(Config.LOGS_DIR),
        )


@dataclass
class LoggingHealth:
    initialized: bool = False
    queue_size: int = 0
    queue_max_size: int = 0
    records_enqueued: int = 0
    records_dropped: int = 0
    listener_errors: int = 0


@dataclass
class _LoggingState:
    settings: Optional[LoggerConfig] = None
    queue: Optional["queue.Queue[logging.LogRecord]"] = None
    listener: Optional[QueueListener] = None
    handler: Optional[logging.Handler] = None
    counters: Dict[str, int] = field(
        default_factory=lambda: {"enqueued": 0, "dropped": 0, "listener_errors": 0}
    )


_state = _LoggingState()


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    """
    Stamp the scoped context onto each record.

    A field set by the active `LogContext` overrides the same key passed in
    `extra`; a field set by neither becomes "N/A" so console formats never
    fail. `component` is the logger name without the package prefix.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        scoped = _log_context.get()
        for key in CONTEXT_FIELDS:
            if scoped.get(key) is not None:
                setattr(record, key, scoped[key])
            elif not hasattr(record, key):
                setattr(record, key, "N/A")
        record.component = scoped.get("component") or record.name.partition(".")[2] or record.name
        return True


class ColoredFormatter(logging.Formatter):
    LEVEL_COLORS = {
        logging.DEBUG: "\033[90m",
        logging.INFO: "\033[94m",
        logging.WARNING: "\033[93m",
        logging.ERROR: "\033[91m",
        logging.CRITICAL: "\033[1;91m",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        text = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno)
        return f"{color}{text}\033[0m" if color else text


# Attributes every LogRecord carries; anything else came from `extra`.
_RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {
    "message",
    "asctime",
    "component",
    *CONTEXT_FIELDS,
}


class JSONFormatter(logging.Formatter):
    """One JSON object per record: core fields, context, then `extra`."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        for key in (*CONTEXT_FIELDS, "component"):
            value = getattr(record, key, None)
            if value not in (None, "N/A"):
                payload[key] = value

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


# ============================================================================
# Queue plumbing
# ============================================================================


class EngineQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        try:
            self.queue.put_nowait(record)
            _state.counters["enqueued"] += 1
        except queue.Full:
            _state.counters["dropped"] += 1
            sys.stderr.write("netrunner: log queue full, record dropped\n")


class EngineQueueListener(QueueListener):
    def handleError(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _state.counters["listener_errors"] += 1
        sys.stderr.write(f"netrunner: log handler failed on record from {record.name}\n")


def _sinks(settings: LoggerConfig) -> List[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    if settings.json_output:
        console.setFormatter(JSONFormatter())
    else:
        formatter_cls = ColoredFormatter if settings.colors else logging.Formatter
        console.setFormatter(formatter_cls(settings.console_format, settings.date_format))
    sinks: List[logging.Handler] = [console]

    if settings.to_file:
        settings.logs_dir.mkdir(parents=True, exist_ok=True)
        daily = TimedRotatingFileHandler(
            settings.logs_dir / settings.file_name,
            when="midnight",
            backupCount=settings.file_backups,
            encoding="utf-8",
            utc=True,
        )
        daily.setFormatter(JSONFormatter())
        sinks.append(daily)

    for sink in sinks:
        sink.setLevel(settings.level)
    return sinks


# ============================================================================
# Lifecycle
# ============================================================================


def setup_logging(settings: Optional[LoggerConfig] = None) -> None:
    """Route the root logger through the context filter and queue. Idempotent."""
    if _state.listener is not None:
        return

    settings = settings or LoggerConfig.from_config()
    log_queue: "queue.Queue[logging.LogRecord]" = queue.Queue(settings.queue_size)

    handler = EngineQueueHandler(log_queue)
    handler.setLevel(settings.level)
    # Stamp context before the record leaves this thread.
    handler.addFilter(ContextFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(settings.level)
    root.addHandler(handler)

    listener = EngineQueueListener(log_queue, *_sinks(settings), respect_handler_level=True)
    listener.start()

    for noisy in ("asyncio", "sqlalchemy.engine", "testcontainers"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _state.settings = settings
    _state.queue = log_queue
    _state.listener = listener
    _state.handler = handler
    _state.counters.update(enqueued=0, dropped=0, listener_errors=0)

    get_logger(__name__).info(
        "Logging initialized",
        extra={
            "environment": settings.environment,
            "level": logging.getLevelName(settings.level),
            "json": settings.json_output,
            "to_file": settings.to_file,
        },
    )


def shutdown_logging() -> None:
    """Flush the queue, stop the listener and detach from the root logger."""
    if _state.listener is None:
        return

    get_logger(__name__).info("Logging shutting down")
    _state.listener.stop()
    for sink in _state.listener.handlers:
        sink.close()
    if _state.handler is not None:
        logging.getLogger().removeHandler(_state.handler)

    _state.listener = None
    _state.handler = None
    _state.queue = None


def get_logging_health() -> LoggingHealth:
    log_queue = _state.queue
    return LoggingHealth(
        initialized=_state.listener is not None,
        queue_size=log_queue.qsize() if log_queue is not None else 0,
        queue_max_size=log_queue.maxsize if log_queue is not None else 0,
        records_enqueued=_state.counters["enqueued"],
        records_dropped=_state.counters["dropped"],
        listener_errors=_state.counters["listener_errors"],
    )


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


def _merged(base: Dict[str, Any], **fields: Any) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in fields.items():
        if value is None:
            continue
        merged[key] = str(value) if key in ("character_id", "action_id") else value
    return merged


class LogContext:
    """
    Scope context fields to a block of engine work (sync or async).

    Nested scopes inherit the outer fields and correlation id; leaving a
    scope restores the outer context.

    >>> with LogContext(character_id=7, operation="start_action"):
    ...     await slots.start_action(7, ActionKind.ZONE_SCOUT)
    """

    def __init__(
        self,
        character_id: Optional[int] = None,
        action_id: Optional[int] = None,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        outer = _log_context.get()
        self.context = _merged(
            outer,
            character_id=character_id,
            action_id=action_id,
            component=component,
            operation=operation,
            correlation_id=correlation_id or outer.get("correlation_id") or uuid.uuid4().hex[:8],
            **extra,
        )
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set(self.context)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, *exc_info: Any) -> None:
        self.__exit__(*exc_info)


def set_log_context(**fields: Any) -> None:
    """Add fields to the current context without opening a scope."""
    _log_context.set(_merged(_log_context.get(), **fields))


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get())


def clear_log_context() -> None:
    _log_context.set({})
