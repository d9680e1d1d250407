"""
Structured logging for the library.

Features:
- JSON or human readable records, opt-in through setup_logging()
- Operation tracking (subset, extract, partition, customize, nearest, table)
- Performance timing of external calls

The library only ever configures the "roads" logger; handlers on the
root logger belong to the application.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator, Optional, TextIO

from roads.core.config import settings

# Name of the external call currently running in this context
operation_var: ContextVar[str] = ContextVar("operation", default="")

LIBRARY_LOGGER = "roads"


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    operation = operation_var.get()
    if operation:
        fields["operation"] = operation
    fields.update(getattr(record, "extra_fields", None) or {})
    return fields


class JSONFormatter(logging.Formatter):
    """One JSON object per record, extra fields merged at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload = {
            "timestamp": created.strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.funcName}:{record.lineno}",
            **_record_fields(record),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class HumanFormatter(logging.Formatter):
    """'time level [operation] logger - message key=value ...' lines."""

    def format(self, record: logging.LogRecord) -> str:
        fields = _record_fields(record)
        operation = fields.pop("operation", "")
        created = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        line = f"{created} {record.levelname:<8}"
        if operation:
            line += f" [{operation}]"
        line += f" {record.name} - {record.getMessage()}"
        if fields:
            line += " " + " ".join(f"{key}={value}" for key, value in fields.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """
    Attach a handler to the "roads" logger.

    Calling it again replaces the handler installed by the previous call.
    Other loggers, including the root logger, are left alone.

    Args:
        level: Logging level name, defaults to LOG_LEVEL
        json_format: JSON records instead of human readable lines;
            defaults to JSON unless DEBUG is set
        stream: Output stream, defaults to stderr

    Returns:
        The installed handler
    """
    level = (level or settings.LOG_LEVEL).upper()
    if json_format is None:
        json_format = not settings.DEBUG

    logger = logging.getLogger(LIBRARY_LOGGER)
    for handler in logger.handlers[:]:
        if getattr(handler, "_roads_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter() if json_format else HumanFormatter())
    handler._roads_handler = True

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level))
    return handler


class StructuredLogger:
    """Logger wrapper whose calls take a dict of structured extra fields."""

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(
        self,
        level: int,
        msg: str,
        *args,
        extra: Optional[dict[str, Any]] = None,
        exc_info: bool = False,
    ):
        # stacklevel 3 attributes the record to the caller of info()/error()
        self._logger.log(
            level,
            msg,
            *args,
            extra={"extra_fields": extra} if extra else None,
            exc_info=exc_info,
            stacklevel=3,
        )

    def debug(self, msg: str, *args, extra: Optional[dict[str, Any]] = None):
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args, extra: Optional[dict[str, Any]] = None):
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args, extra: Optional[dict[str, Any]] = None):
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args, extra: Optional[dict[str, Any]] = None):
        self._log(logging.ERROR, msg, *args, extra=extra)

    def exception(self, msg: str, *args, extra: Optional[dict[str, Any]] = None):
        self._log(logging.ERROR, msg, *args, extra=extra, exc_info=True)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger."""
    return StructuredLogger(name)


@contextmanager
def log_operation(operation: str, **fields: Any) -> Iterator[None]:
    """
    Track one blocking call into an external engine or process.

    Sets the current operation for the formatters, logs start and
    completion with the elapsed time, and logs failures before
    re-raising them unchanged.

    Args:
        operation: Operation name (e.g. "extract", "table")
        **fields: Extra structured fields attached to every record
    """
    logger = get_logger("roads.operations")
    token = operation_var.set(operation)

    logger.info(f"Operation started: {operation}", extra=fields)
    start_time = time.perf_counter()
    try:
        yield
    except Exception as e:
        logger.exception(
            f"Operation failed: {operation}",
            extra={**fields, "error": str(e)},
        )
        raise
    else:
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Operation completed: {operation}",
            extra={**fields, "duration_ms": round(duration_ms, 2)},
        )
    finally:
        operation_var.reset(token)
