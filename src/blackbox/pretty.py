"""Indented, optionally colorized rendering of nested payload values."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from enum import StrEnum

from blackbox.backtrace import BacktraceHighlighter, classify_frames

__all__ = ["LEAF_COLORS", "PayloadKind", "PrettyPrinter", "classify"]


_RESET = "\x1b[0m"

LEAF_COLORS: dict[str, str] = {
    "string": "\x1b[0;33m",
    "number": "\x1b[1;34m",
    "true": "\x1b[1;32m",
    "false": "\x1b[1;31m",
    "none": "\x1b[1;31m",
    "object": "\x1b[0;37m",
}


class PayloadKind(StrEnum):
    """Shapes a payload value can take when it is rendered."""

    BACKTRACE = "backtrace"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    SCALAR = "scalar"


def _is_sequence(value: object) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def classify(value: object) -> PayloadKind:
    """Return the rendering shape of ``value``."""
    if isinstance(value, Mapping):
        return PayloadKind.MAPPING
    if _is_sequence(value):
        if classify_frames(value) is not None:  # type: ignore[arg-type]
            return PayloadKind.BACKTRACE
        return PayloadKind.SEQUENCE
    return PayloadKind.SCALAR


class PrettyPrinter:
    """Render mappings and sequences as an indented tree.

    Sequences are offered to the :class:`BacktraceHighlighter` first and
    only rendered generically when they are not backtraces.
    """

    def __init__(self, *, colorize: bool = False, indent_width: int = 2) -> None:
        self.colorize = colorize
        self.indent_width = indent_width
        self.backtraces = BacktraceHighlighter(colorize=colorize, quote_color=LEAF_COLORS["string"])

    def render(self, value: object) -> str:
        """Return the rendered text for ``value``."""
        return self._render(value, 0)

    def _indent(self, level: int) -> str:
        return " " * (self.indent_width * level)

    def _paint(self, kind: str, text: str) -> str:
        if not self.colorize:
            return text
        return f"{LEAF_COLORS[kind]}{text}{_RESET}"

    def _render(self, value: object, level: int) -> str:
        kind = classify(value)
        if kind is PayloadKind.MAPPING:
            return self._render_mapping(value, level)  # type: ignore[arg-type]
        if kind is PayloadKind.BACKTRACE:
            rendered = self.backtraces.render(value, self._indent(level + 1), self._indent(level))  # type: ignore[arg-type]
            if rendered is not None:
                return rendered
        if kind in (PayloadKind.BACKTRACE, PayloadKind.SEQUENCE):
            return self._render_sequence(value, level)  # type: ignore[arg-type]
        return self._render_leaf(value)

    def _render_mapping(self, value: Mapping[object, object], level: int) -> str:
        if not value:
            return "{}"
        inner = self._indent(level + 1)
        lines = [
            f"{inner}{self._render_leaf(key)}: {self._render(item, level + 1)},\n"
            for key, item in value.items()
        ]
        return "{\n" + "".join(lines) + self._indent(level) + "}"

    def _render_sequence(self, value: Sequence[object], level: int) -> str:
        if not value:
            return "[]"
        inner = self._indent(level + 1)
        lines = [f"{inner}{self._render(item, level + 1)},\n" for item in value]
        return "[\n" + "".join(lines) + self._indent(level) + "]"

    def _render_leaf(self, value: object) -> str:
        if isinstance(value, str):
            return self._paint("string", json.dumps(value, ensure_ascii=False))
        if value is True:
            return self._paint("true", "true")
        if value is False:
            return self._paint("false", "false")
        if value is None:
            return self._paint("none", "null")
        if isinstance(value, (int, float)):
            return self._paint("number", repr(value))
        return self._paint("object", repr(value))
