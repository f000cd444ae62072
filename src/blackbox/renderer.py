"""Assemble a complete, colorized log line from one event."""

from __future__ import annotations

import logging
import os
import socket
from collections.abc import Mapping
from datetime import datetime
from enum import Enum

from blackbox.colors import RESET, ColorAssigner, ColorCategory
from blackbox.models import FormatterSettings, LogEvent
from blackbox.serializer import INSPECTION_FAILED, EventMetadata, extract_metadata, format_tags, serialize

__all__ = ["DATETIME_FORMAT", "LineRenderer", "format_datetime", "severity_label"]


_LOGGER = logging.getLogger(__name__)

DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"

_SEVERITY_NAMES: dict[str, str] = {
    "WARNING": "WARN",
    "CRITICAL": "FATAL",
}

# Identifier fields rendered after the pid, in display order.
_IDENTIFIERS: tuple[tuple[str, str], ...] = (("tid", "T"), ("wid", "W"), ("jid", "J"))


def severity_label(severity: object) -> str:
    """Return the upper-case severity name, ``ANY`` when it is absent."""
    if severity is None:
        return "ANY"
    if isinstance(severity, Enum):
        severity = severity.name
    elif isinstance(severity, int) and not isinstance(severity, bool):
        severity = logging.getLevelName(severity)
    name = str(severity).upper() or "ANY"
    return _SEVERITY_NAMES.get(name, name)


def format_datetime(timestamp: datetime | float | None) -> str:
    """Format ``timestamp`` with microsecond precision."""
    if timestamp is None:
        timestamp = datetime.now()
    elif isinstance(timestamp, (int, float)):
        timestamp = datetime.fromtimestamp(timestamp)
    return timestamp.strftime(DATETIME_FORMAT)


class LineRenderer:
    """Render ``(severity, timestamp, process_name, message)`` into one line."""

    def __init__(self, colors: ColorAssigner | None = None, *, hostname: str | None = None) -> None:
        self.colors = colors if colors is not None else ColorAssigner()
        self.hostname = hostname if hostname is not None else socket.gethostname()

    @classmethod
    def from_settings(cls, settings: FormatterSettings, *, hostname: str | None = None) -> LineRenderer:
        """Create a renderer whose colors follow ``settings``."""
        return cls(settings.build_colors(), hostname=hostname)

    @property
    def color(self) -> bool:
        """Return whether escape sequences are emitted."""
        return self.colors.enabled

    def __call__(self, severity: object, timestamp: datetime | float | None, process_name: str | None, message: object) -> str:
        return self.render(severity, timestamp, process_name, message)

    def render_event(self, event: LogEvent) -> str:
        """Render a ``LogEvent``."""
        return self.render(event.severity, event.timestamp, event.process_name, event.message)

    def render(self, severity: object, timestamp: datetime | float | None, process_name: str | None, message: object) -> str:
        """Return the finished line, terminated by a color reset and a newline."""
        try:
            label = severity_label(severity)
        except Exception:  # noqa: BLE001
            label = "ANY"
        try:
            return self._render(label, timestamp, process_name, message)
        except Exception:  # noqa: BLE001 - a formatter must never crash its caller
            _LOGGER.debug("Rendering a log line failed; emitting a plain fallback line.")
            return self._fallback(label, timestamp, process_name)

    def _render(self, label: str, timestamp: datetime | float | None, process_name: str | None, message: object) -> str:
        color = self.colors.color_for
        metadata = extract_metadata(message)[0] if isinstance(message, Mapping) else EventMetadata()

        pid = metadata.pid if metadata.pid is not None else os.getpid()
        app = metadata.process_name if isinstance(metadata.process_name, str) else process_name
        host = metadata.host if isinstance(metadata.host, str) else self.hostname
        env = metadata.env

        sc = color(ColorCategory.SEVERITY, label)
        dc = color(ColorCategory.DATE)
        pc = color(ColorCategory.PROCESS, pid)
        mc = color(ColorCategory.MESSAGE, label)
        ac = color(ColorCategory.PROGNAME, app)
        hc = color(ColorCategory.HOST, host)
        rc = color(ColorCategory.SEPARATOR)

        ids = self._identifiers(metadata, pid, pc, rc)
        env_part = "" if env is None else f" {color(ColorCategory.ENV, env)}({env})"
        tags = format_tags(metadata.tags)

        body = serialize(message, False, self.color)
        if mc:
            body = body.replace(RESET, RESET + mc)
        reset = RESET if self.color else ""

        return (
            f"{sc}{label[:1]}{rc}, [{dc}{format_datetime(timestamp)} {ids}{rc}] {sc}{label[:5]}"
            f"{rc} -- {ac}{app or ''}{env_part}{rc}: {hc}{host}{rc} {tags}"
            f"{mc}{body}{reset}\n"
        )

    def _identifiers(self, metadata: EventMetadata, pid: object, pc: str, rc: str) -> str:
        """Build the ``#pid/T-tid/W-wid/J-jid`` cluster."""
        parts = [f"{pc}#{pid}"]
        for field_name, prefix in _IDENTIFIERS:
            value = getattr(metadata, field_name)
            if value is not None:
                parts.append(f"{rc}/{self.colors.color_for(ColorCategory.GENERIC, value)}{prefix}-{value}")
        return "".join(parts)

    def _fallback(self, label: str, timestamp: datetime | float | None, process_name: str | None) -> str:
        try:
            date = format_datetime(timestamp)
        except Exception:  # noqa: BLE001
            date = ""
        return f"{label[:1]}, [{date} #{os.getpid()}] {label[:5]} -- {process_name or ''}: {self.hostname} {INSPECTION_FAILED}\n"
