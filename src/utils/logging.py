"""Logging helpers."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, TextIO

PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}


class JsonFormatter(logging.Formatter):
    """Render log records as compact JSON, structured ``extra`` fields included."""

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


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def configure_logging(
    *,
    level: int | str = logging.INFO,
    structured: bool | None = None,
    stream: TextIO | None = None,
) -> None:
    """Configure root logging with optional JSON output.

    With handlers already installed only the formatter is swapped, and
    only when ``structured`` is given explicitly.
    """

    root = logging.getLogger()
    root.setLevel(_resolve_level(level))

    if root.handlers:
        if structured is None:
            return
        formatter = JsonFormatter() if structured else logging.Formatter(PLAIN_FORMAT)
        for handler in root.handlers:
            handler.setFormatter(formatter)
        return

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter() if structured else logging.Formatter(PLAIN_FORMAT))
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "JsonFormatter", "PLAIN_FORMAT"]
