"""Event and configuration models for the log line formatter."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from blackbox.colors import DEFAULT_CACHE_SIZE, ColorAssigner

__all__ = ["COLOR_TERMINALS", "EventRecord", "FormatterSettings", "LogEvent", "detect_color"]


COLOR_TERMINALS = re.compile(r"(linux|mac|xterm|ansi|putty|screen)")


@dataclass(frozen=True, slots=True)
class LogEvent:
    """One log event handed to the renderer."""

    severity: Any
    timestamp: datetime | None
    process_name: str | None
    message: Any


def detect_color(term: object, *, to_file: bool = False) -> bool:
    """Return whether ``term`` names a color-capable terminal.

    Output written to a file is never colorized, and a ``term`` value that
    cannot be read as text counts as a terminal without color support.
    """
    if to_file or term is None:
        return False
    try:
        text = str(term).lower()
    except Exception:  # noqa: BLE001 - unreadable TERM means no color
        return False
    return COLOR_TERMINALS.search(text) is not None


class FormatterSettings(BaseModel):
    """Configure color output and cache sizing for a formatter."""

    model_config = ConfigDict(extra="forbid")

    color: bool | None = Field(
        None, description="Force color on or off; detect from TERM when omitted",
    )
    cache_size: int = Field(DEFAULT_CACHE_SIZE, ge=1)
    to_file: bool = False
    term: str | None = None

    @classmethod
    def from_env(cls, **overrides: Any) -> FormatterSettings:
        """Build settings using the ``TERM`` environment variable."""
        values: dict[str, Any] = {"term": os.environ.get("TERM")}
        values.update(overrides)
        return cls(**values)

    def resolve_color(self) -> bool:
        """Return the effective color flag, explicit values taking precedence."""
        if self.color is not None:
            return self.color
        return detect_color(self.term, to_file=self.to_file)

    def build_colors(self) -> ColorAssigner:
        """Create a ``ColorAssigner`` honouring these settings."""
        return ColorAssigner(enabled=self.resolve_color(), cache_size=self.cache_size)


class EventRecord(BaseModel):
    """JSON representation of a log event, one object per input line."""

    model_config = ConfigDict(extra="forbid")

    severity: str | None = None
    timestamp: datetime = Field(default_factory=datetime.now)
    process_name: str | None = None
    message: str | dict[str, Any] = ""

    @field_validator("severity")
    @classmethod
    def normalise_severity(cls, value: str | None) -> str | None:
        """Upper-case the severity and treat blank values as absent."""
        if value is None:
            return None
        stripped = value.strip().upper()
        return stripped or None

    def to_event(self) -> LogEvent:
        """Return the immutable event consumed by the renderer."""
        return LogEvent(
            severity=self.severity,
            timestamp=self.timestamp,
            process_name=self.process_name,
            message=self.message,
        )
