"""Logging helpers.

The library only ever logs through ``get_logger``; handlers are installed by
applications (the ``pipereq`` command calls :func:`configure_logging`).
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, TextIO

LIBRARY_LOGGER = "pipereq"

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "asctime",
    "taskName",
}

_PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logging.getLogger(LIBRARY_LOGGER).addHandler(logging.NullHandler())


class JsonFormatter(logging.Formatter):
    """Render log records as compact JSON, one object per line."""

    default_time_format = "%Y-%m-%dT%H:%M:%S"
    default_msec_format = "%s.%03dZ"

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.default_time_format),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = {
            key: value for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS
        }
        if extras:
            data.update(extras)

        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        return json.dumps(data, ensure_ascii=False, default=str)


def configure_logging(
    *,
    level: int = logging.INFO,
    structured: bool | None = None,
    stream: TextIO | None = None,
) -> None:
    """Configure root logging; JSON when ``structured`` is true.

    With handlers already installed and ``structured`` left as ``None`` only
    the level changes.
    """

    root = logging.getLogger()
    root.setLevel(level)

    if root.handlers:
        if structured is None:
            return
        formatter: logging.Formatter = (
            JsonFormatter() if structured else logging.Formatter(_PLAIN_FORMAT)
        )
        for handler in root.handlers:
            handler.setFormatter(formatter)
        return

    handler = logging.StreamHandler(stream or sys.stderr)
    if structured:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_PLAIN_FORMAT))
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "JsonFormatter", "LIBRARY_LOGGER"]
