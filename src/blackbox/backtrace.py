"""Recognise and highlight backtrace-shaped sequences inside log payloads.

A sequence counts as a backtrace only when *every* element is a frame: a
string shaped like ``path/file.py:10:in 'method'``, the elision marker
``...``, or a structured stack location such as
:class:`traceback.FrameSummary`. Anything else leaves the sequence to the
generic pretty-printer.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from dataclasses import dataclass

__all__ = [
    "ELISION_MARKER",
    "TRACE_PATTERN",
    "BacktraceHighlighter",
    "FrameLines",
    "classify_frames",
    "escape_line",
    "format_frame",
    "highlight_line",
    "is_frame_object",
]


TRACE_PATTERN = re.compile(r"(/?)([^:/]+):(\d+):in '([^']*)'")
ELISION_MARKER = "..."

_BASE = "\x1b[0;36m"
_FILE = "\x1b[1;33m"
_LINE = "\x1b[34m"
_METHOD = "\x1b[1;35m"
_RESET = "\x1b[0m"


@dataclass(frozen=True, slots=True)
class FrameLines:
    """A sequence that classified as a backtrace, normalised to strings."""

    lines: tuple[str, ...]
    quote: str


def is_frame_object(value: object) -> bool:
    """Return whether ``value`` exposes a file, line number and method name."""
    if isinstance(value, str):
        return False
    has_method = hasattr(value, "name") or hasattr(value, "function")
    return hasattr(value, "filename") and hasattr(value, "lineno") and has_method


def format_frame(frame: object) -> str:
    """Return the ``file:line:in 'method'`` form of a structured stack location."""
    method = getattr(frame, "name", None)
    if method is None:
        method = getattr(frame, "function", "")
    return f"{frame.filename}:{frame.lineno}:in '{method}'"  # type: ignore[attr-defined]


def _is_frame_line(value: object) -> bool:
    return isinstance(value, str) and (value == ELISION_MARKER or TRACE_PATTERN.search(value) is not None)


def classify_frames(sequence: Sequence[object]) -> FrameLines | None:
    """Return the frames of ``sequence`` or ``None`` when any element is not a frame."""
    if isinstance(sequence, (str, bytes)) or not sequence:
        return None
    if all(is_frame_object(item) for item in sequence):
        return FrameLines(tuple(format_frame(item) for item in sequence), "")
    if all(_is_frame_line(item) for item in sequence):
        return FrameLines(tuple(str(item) for item in sequence), '"')
    return None


def escape_line(line: str) -> str:
    """Escape control characters, quotes and backslashes for display."""
    return json.dumps(line, ensure_ascii=False)[1:-1]


def highlight_line(line: str, *, colorize: bool = True) -> str:
    """Escape ``line`` and wrap its filename, line number and method in colors."""
    escaped = escape_line(line)
    if not colorize:
        return escaped.rstrip()
    highlighted = TRACE_PATTERN.sub(
        rf"\1{_FILE}\2{_RESET}:{_LINE}\3{_RESET}:in '{_METHOD}\4{_RESET}'",
        escaped,
        count=1,
    )
    return f"{_BASE}{highlighted}".rstrip()


class BacktraceHighlighter:
    """Render backtrace sequences as bracketed, one-frame-per-line lists."""

    def __init__(self, *, colorize: bool = True, quote_color: str = "") -> None:
        self.colorize = colorize
        self.quote_color = quote_color if colorize else ""

    def _quote(self, mark: str) -> str:
        if not mark:
            return ""
        reset = _RESET if self.quote_color else ""
        return f"{self.quote_color}{mark}{reset}"

    def render(self, sequence: Sequence[object], indent: str = "  ", outdent: str = "") -> str | None:
        """Return the highlighted backtrace, or ``None`` when not applicable."""
        frames = classify_frames(sequence)
        if frames is None:
            return None

        quote = self._quote(frames.quote)
        parts = ["[\n"]
        for line in frames.lines:
            if line != ELISION_MARKER:
                line = highlight_line(line, colorize=self.colorize)
            parts.append(f"{indent}{quote}{line}{quote},\n")
        parts.append(f"{outdent}]")
        return "".join(parts)
