"""
Structured logging for supersync.

Records are rendered as JSON lines or as one-line text. While a document is
being evaluated, ``LogContext`` tags every record with the triggering
document and, once resolved, the target it points at.

Usage:
    from supersync.logging_config import configure_logging, get_logger, LogContext

    configure_logging(level="INFO", json_output=False)
    logger = get_logger(__name__)

    with LogContext(document_id="notes/A.md", target_id="notes/B.md"):
        logger.info("Reverse relation written", source="A")
"""

import inspect
import json
import logging
import logging.handlers
import os
import sys
import threading
import time
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, List, Optional

# Ids of the evaluation the current task is running, if any
_log_context: ContextVar[Dict[str, str]] = ContextVar("supersync_log_context", default={})

CONTEXT_FIELDS = ("document_id", "target_id")

LOG_LEVEL = os.environ.get("SUPERSYNC_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("SUPERSYNC_LOG_FORMAT", "text")  # "json" or "text"
LOG_FILE = os.environ.get("SUPERSYNC_LOG_FILE", "")
LOG_MAX_BYTES = int(os.environ.get("SUPERSYNC_LOG_MAX_BYTES", 1024 * 1024))
LOG_BACKUP_COUNT = int(os.environ.get("SUPERSYNC_LOG_BACKUP_COUNT", 2))


@dataclass
class LogRecord:
    """One rendered log line: envelope, evaluation ids, then free fields."""
    timestamp: str
    level: str
    logger: str
    message: str
    context: Dict[str, str] = field(default_factory=dict)
    fields: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "ts": self.timestamp,
            "level": self.level,
            "logger": self.logger,
            "msg": self.message,
            **self.context,
            **self.fields,
        }
        if self.exception:
            data["exception"] = self.exception
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def to_text(self) -> str:
        """``ts [LEVEL] [logger] [A.md -> B.md] message k=v ...``"""
        parts: List[str] = [self.timestamp, f"[{self.level}]", f"[{self.logger}]"]
        ids = [self.context[name] for name in CONTEXT_FIELDS if name in self.context]
        if ids:
            parts.append("[" + " -> ".join(ids) + "]")
        parts.append(self.message)
        parts.extend(f"{key}={value}" for key, value in self.fields.items())
        text = " ".join(parts)
        if self.exception:
            text += "\n" + self.exception.get("traceback", "")
        return text


class _StructuredFormatter(logging.Formatter):
    """Builds a LogRecord from a stdlib record plus the active LogContext."""

    def _timestamp(self) -> str:
        raise NotImplementedError

    def _render(self, log_record: LogRecord) -> str:
        raise NotImplementedError

    def _logger_name(self, record: logging.LogRecord) -> str:
        return record.name

    def format(self, record: logging.LogRecord) -> str:
        active = _log_context.get()
        context = {name: active[name] for name in CONTEXT_FIELDS if active.get(name)}
        log_record = LogRecord(
            timestamp=self._timestamp(),
            level=record.levelname,
            logger=self._logger_name(record),
            message=record.getMessage(),
            context=context,
            fields=getattr(record, "structured_fields", {}),
        )
        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            log_record.exception = {
                "type": exc_type.__name__ if exc_type else "Unknown",
                "message": str(exc_value) if exc_value else "",
                "traceback": self.formatException(record.exc_info),
            }
        return self._render(log_record)


class JSONFormatter(_StructuredFormatter):
    """One JSON object per line, UTC timestamps."""

    def _timestamp(self) -> str:
        return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    def _render(self, log_record: LogRecord) -> str:
        return log_record.to_json()


class TextFormatter(_StructuredFormatter):
    """Terminal-friendly lines with the last component of the logger name."""

    def _timestamp(self) -> str:
        return datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    def _logger_name(self, record: logging.LogRecord) -> str:
        return record.name.rsplit(".", 1)[-1]

    def _render(self, log_record: LogRecord) -> str:
        return log_record.to_text()


class StructuredLogger:
    """Thin wrapper whose keyword arguments become structured fields."""

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)
        self._name = name

    def _log(self, level: int, message: str, exc_info: bool = False, **fields: Any) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, message, exc_info=exc_info, extra={"structured_fields": fields})

    def debug(self, message: str, **fields: Any) -> None:
        self._log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self._log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(logging.WARNING, message, **fields)

    def error(self, message: str, exc_info: bool = False, **fields: Any) -> None:
        self._log(logging.ERROR, message, exc_info=exc_info, **fields)


class LogContext:
    """
    Tag records with evaluation ids for the duration of a ``with`` block.

    Nested contexts add to the outer one. Each asyncio task works on its own
    copy, so interleaved evaluations never see each other's ids.
    """

    def __init__(self, **ids: str):
        self._ids = ids
        self._token: Optional[Token[Dict[str, str]]] = None

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set({**_log_context.get(), **self._ids})
        return self

    def __exit__(self, *args) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


_loggers: Dict[str, StructuredLogger] = {}
_loggers_lock = threading.Lock()


def get_logger(name: str) -> StructuredLogger:
    """Return the shared StructuredLogger for a module name."""
    with _loggers_lock:
        return _loggers.setdefault(name, StructuredLogger(name))


def configure_logging(
    level: str | None = None,
    json_output: bool | None = None,
    log_file: str | None = None,
    propagate: bool = True,
) -> None:
    """
    Install supersync's handlers on the root logger.

    Arguments left as None fall back to the SUPERSYNC_LOG_* environment
    variables. Console output goes to stderr so stdout stays free for
    command results. A log file, when given, rotates.
    """
    log_level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    use_json = (LOG_FORMAT == "json") if json_output is None else json_output
    formatter = JSONFormatter() if use_json else TextFormatter()

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    file_path = log_file or LOG_FILE
    if file_path:
        handlers.append(
            logging.handlers.RotatingFileHandler(
                file_path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT
            )
        )

    root = logging.getLogger()
    for old in root.handlers[:]:
        root.removeHandler(old)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
        root.addHandler(handler)
    root.setLevel(log_level)

    package_logger = logging.getLogger("supersync")
    package_logger.setLevel(log_level)
    package_logger.propagate = propagate


def log_function(level: str = "DEBUG", log_args: bool = False, log_duration: bool = True):
    """
    Log each call's completion, or its failure at ERROR before re-raising.

    Works on plain and coroutine functions.

    Args:
        level: Level for completion records
        log_args: Add the positional count and keyword names
        log_duration: Add ``duration_ms``
    """
    log_level = getattr(logging, level.upper(), logging.DEBUG)

    def decorator(func: Callable) -> Callable:
        logger = get_logger(func.__module__)
        name = func.__name__

        def start_fields(args: tuple, kwargs: dict) -> Dict[str, Any]:
            fields: Dict[str, Any] = {"function": name}
            if log_args:
                fields["args_count"] = len(args)
                fields["kwargs_keys"] = list(kwargs)
            return fields

        def failed(fields: Dict[str, Any], started: float, error: Exception) -> None:
            fields["duration_ms"] = (time.monotonic() - started) * 1000
            fields["error"] = str(error)
            logger.error(f"Function failed: {name}", exc_info=True, **fields)

        def completed(fields: Dict[str, Any], started: float) -> None:
            if log_duration:
                fields["duration_ms"] = (time.monotonic() - started) * 1000
            logger._log(log_level, f"Function completed: {name}", **fields)

        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                fields, started = start_fields(args, kwargs), time.monotonic()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    failed(fields, started, e)
                    raise
                completed(fields, started)
                return result
            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            fields, started = start_fields(args, kwargs), time.monotonic()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                failed(fields, started, e)
                raise
            completed(fields, started)
            return result
        return wrapper
    return decorator
