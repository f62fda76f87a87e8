"""
Structured logging for Questline.

Records go through a bounded in-memory queue to the console and, outside of
tests, to a daily rotating JSON file, so quest operations never block on log
I/O. Each record is stamped with the ambient `LogContext` (owner_id,
operation, correlation_id, component) in the task that logged it.

Usage
-----
    setup_logging()
    log = get_logger(__name__)

    async with LogContext(owner_id="user-1", operation="claim_reward"):
        log.info("Claim started", extra={"quest_id": 12})

Console output is JSON in production (or with LOG_JSON=true) and plain text
otherwise. When the queue is full new records are dropped and counted;
`shutdown_logging()` returns the count.
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

from questline.core.config.config import Config

CONTEXT_FIELDS = ("owner_id", "operation", "correlation_id", "component")

_log_context: ContextVar[Optional[Dict[str, Any]]] = ContextVar(
    "questline_log_context", default=None
)

# Attributes every LogRecord has; anything else on a record came from `extra`.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


@dataclass(frozen=True)
class LoggingSettings:
    level: int = logging.INFO
    json_console: bool = False
    colors: bool = False
    file_output: bool = False
    logs_dir: Path = Path("logs")
    file_name: str = "questline.json.log"
    queue_size: int = 10_000

    @classmethod
    def from_config(cls) -> "LoggingSettings":
        json_console = Config.LOG_JSON if Config.LOG_JSON is not None else Config.is_production()
        return cls(
            level=getattr(logging, Config.LOG_LEVEL, logging.INFO),
            json_console=json_console,
            colors=not json_console and sys.stdout.isatty(),
            file_output=not Config.is_testing(),
            logs_dir=Path(Config.LOGS_DIR),
        )


class ContextFilter(logging.Filter):
    """Copies the current LogContext onto the record; explicit `extra` wins."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in (_log_context.get() or {}).items():
            if getattr(record, key, None) is None:
                setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
            and key not in CONTEXT_FIELDS
            and not key.startswith("_")
        }
        if extra:
            entry["extra"] = extra
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[90m",
        "INFO": "\033[94m",
        "WARNING": "\033[93m",
        "ERROR": "\033[91m",
        "CRITICAL": "\033[91m\033[1m",
    }
    RESET = "\033[0m"

    def __init__(self, colors: bool = False) -> None:
        super().__init__(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            "%Y-%m-%d %H:%M:%S",
        )
        self._colors = colors

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        owner = getattr(record, "owner_id", None)
        operation = getattr(record, "operation", None)
        if owner or operation:
            line = f"{line} [{operation or '-'} owner={owner or '-'}]"
        color = self.COLORS.get(record.levelname) if self._colors else None
        return f"{color}{line}{self.RESET}" if color else line


class _BoundedQueueHandler(QueueHandler):
    def __init__(self, log_queue: "queue.Queue[logging.LogRecord]") -> None:
        super().__init__(log_queue)
        self.dropped = 0

    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            self.dropped += 1


_listener: Optional[QueueListener] = None
_queue_handler: Optional[_BoundedQueueHandler] = None


def _build_handlers(settings: LoggingSettings) -> List[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(
        JSONFormatter() if settings.json_console else ConsoleFormatter(settings.colors)
    )
    handlers: List[logging.Handler] = [console]

    if settings.file_output:
        settings.logs_dir.mkdir(parents=True, exist_ok=True)
        daily = TimedRotatingFileHandler(
            filename=str(settings.logs_dir / settings.file_name),
            when="midnight",
            backupCount=1,
            encoding="utf-8",
            utc=True,
        )
        daily.setFormatter(JSONFormatter())
        handlers.append(daily)

    for handler in handlers:
        handler.setLevel(settings.level)
    return handlers


def setup_logging(settings: Optional[LoggingSettings] = None) -> None:
    """Attach the queued handlers to the root logger. Idempotent."""
    global _listener, _queue_handler

    if _listener is not None:
        return
    settings = settings or LoggingSettings.from_config()

    log_queue: "queue.Queue[logging.LogRecord]" = queue.Queue(settings.queue_size)
    _queue_handler = _BoundedQueueHandler(log_queue)
    _queue_handler.setLevel(settings.level)
    # Context must be read in the logging task, before the record is queued.
    _queue_handler.addFilter(ContextFilter())

    _listener = QueueListener(log_queue, *_build_handlers(settings), respect_handler_level=True)
    _listener.start()

    root = logging.getLogger()
    root.setLevel(settings.level)
    root.addHandler(_queue_handler)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={
            "log_level": logging.getLevelName(settings.level),
            "json_console": settings.json_console,
            "file_output": settings.file_output,
        },
    )


def shutdown_logging() -> int:
    """
    Flush and detach the handlers installed by `setup_logging`.

    Returns:
        Number of records dropped because the queue was full.
    """
    global _listener, _queue_handler

    if _listener is None or _queue_handler is None:
        return 0

    logging.getLogger().removeHandler(_queue_handler)
    _listener.stop()
    for handler in _listener.handlers:
        handler.close()

    dropped = _queue_handler.dropped
    _listener = None
    _queue_handler = None
    return dropped


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Scope log context to a block; nested blocks inherit and override.

    A correlation id is generated unless one is given or inherited.
    """

    def __init__(
        self,
        owner_id: Optional[Any] = None,
        operation: Optional[str] = None,
        component: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        self._fields: Dict[str, Any] = dict(extra)
        if owner_id is not None:
            self._fields["owner_id"] = str(owner_id)
        if operation:
            self._fields["operation"] = operation
        if component:
            self._fields["component"] = component
        if correlation_id:
            self._fields["correlation_id"] = correlation_id
        self._token: Optional[Token] = None

    def __enter__(self) -> "LogContext":
        context = {**(_log_context.get() or {}), **self._fields}
        context.setdefault("correlation_id", uuid.uuid4().hex[:8])
        self._token = _log_context.set(context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get() or {})
