"""Attach the colorized line renderer to the standard logging pipeline."""

from __future__ import annotations

import logging
import os
import traceback
from collections.abc import Mapping
from datetime import datetime
from logging.config import dictConfig
from typing import Any

from blackbox.models import FormatterSettings
from blackbox.renderer import LineRenderer
from blackbox.serializer import INSPECTION_FAILED

__all__ = ["BlackBoxFormatter", "configure_logging", "record_message"]


_STANDARD_RECORD_FIELDS = {
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
    "taskName",
    "message",
    "asctime",
}


def _message_text(record: logging.LogRecord) -> str:
    """Return the interpolated message, or the raw format string when the arguments do not fit."""
    try:
        return record.getMessage()
    except Exception:  # noqa: BLE001 - a bad format argument must not break the line
        pass
    try:
        return str(record.msg)
    except Exception:  # noqa: BLE001
        return INSPECTION_FAILED


def record_message(record: logging.LogRecord) -> str | dict[str, Any]:
    """Return the event message for ``record``, merging extras into a mapping.

    A mapping passed as the log message is used as the structured event.
    ``extra`` attributes and exception details are added as payload fields.
    """
    if isinstance(record.msg, Mapping) and not record.args:
        event: dict[str, Any] = dict(record.msg)
    else:
        event = {"message": _message_text(record)}

    extras = {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_RECORD_FIELDS and not key.startswith("_")
    }
    for key, value in extras.items():
        event.setdefault(key, value)

    if record.exc_info and record.exc_info[1] is not None:
        exc = record.exc_info[1]
        event.setdefault("exception", f"{type(exc).__name__}: {exc}")
        event.setdefault("backtrace", traceback.extract_tb(record.exc_info[2]))
    if record.stack_info:
        event.setdefault("stack", record.stack_info)

    if len(event) == 1 and "message" in event:
        return str(event["message"])
    return event


class BlackBoxFormatter(logging.Formatter):
    """Render log records as colorized, structured single lines.

    Color follows :class:`FormatterSettings`: an explicit ``color`` wins,
    file output disables it and otherwise ``TERM`` decides.
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        *,
        color: bool | None = None,
        to_file: bool = False,
        cache_size: int | None = None,
        hostname: str | None = None,
    ) -> None:
        """Initialise the formatter and its renderer."""
        super().__init__(fmt, datefmt)
        overrides: dict[str, Any] = {"color": color, "to_file": to_file}
        if cache_size is not None:
            overrides["cache_size"] = cache_size
        self.settings = FormatterSettings.from_env(**overrides)
        self.renderer = LineRenderer.from_settings(self.settings, hostname=hostname)

    @property
    def color(self) -> bool:
        """Return whether this formatter emits escape sequences."""
        return self.renderer.color

    def format(self, record: logging.LogRecord) -> str:
        """Convert a record to one rendered line without the trailing newline."""
        try:
            message = record_message(record)
        except Exception:  # noqa: BLE001 - a formatter must never crash its caller
            message = INSPECTION_FAILED
        line = self.renderer.render(
            record.levelname,
            datetime.fromtimestamp(record.created),
            record.name,
            message,
        )
        return line.removesuffix("\n")


def configure_logging(
    level: int | str,
    *,
    color: bool | None = None,
    filename: str | os.PathLike[str] | None = None,
) -> None:
    """Initialise the root logger with colorized line output."""
    if isinstance(level, str):
        mapping = logging.getLevelNamesMapping()
        numeric_level = mapping.get(level.upper(), logging.INFO)
    else:
        numeric_level = int(level)

    if filename is None:
        handler: dict[str, Any] = {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        }
    else:
        handler = {
            "class": "logging.FileHandler",
            "filename": os.fspath(filename),
            "encoding": "utf-8",
        }

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "blackbox": {
                    "()": BlackBoxFormatter,
                    "color": color,
                    "to_file": filename is not None,
                },
            },
            "handlers": {
                "console": {
                    **handler,
                    "level": numeric_level,
                    "formatter": "blackbox",
                },
            },
            "root": {
                "level": numeric_level,
                "handlers": ["console"],
            },
        },
    )
