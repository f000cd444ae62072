"""Deterministic, content-derived terminal colors for log line segments."""

from __future__ import annotations

import hashlib
import logging
import struct
import threading
from collections import OrderedDict
from collections.abc import Callable, Hashable
from enum import StrEnum
from typing import Any

__all__ = [
    "DEFAULT_CACHE_SIZE",
    "RESET",
    "ColorAssigner",
    "ColorCache",
    "ColorCategory",
    "canonical_key",
    "digest",
]


_LOGGER = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 50
RESET = "\x1b[0m"


class ColorCategory(StrEnum):
    """Named classes of color rule used to pick a palette."""

    SEVERITY = "severity"
    MESSAGE = "message"
    DATE = "date"
    PROCESS = "process"
    PROGNAME = "progname"
    ENV = "env"
    HOST = "host"
    SEPARATOR = "separator"
    GENERIC = "generic"


def _sgr(code: str) -> str:
    return f"\x1b[{code}m"


_SEVERITY_COLORS: dict[str, str] = {
    "DEBUG": _sgr("1;30"),
    "INFO": _sgr("1;34"),
    "WARN": _sgr("1;33"),
    "ERROR": _sgr("1;31"),
    "FATAL": _sgr("1;35"),
    "ANY": _sgr("1;36"),
}

_MESSAGE_COLORS: dict[str, str] = {
    "DEBUG": _sgr("1;30"),
    "INFO": _sgr("0"),
    "WARN": _sgr("0;33"),
    "ERROR": _sgr("0;31"),
    "FATAL": _sgr("0;35"),
    "ANY": _sgr("0;36"),
}

# Python level names that share a palette entry with the short names above.
_SEVERITY_ALIASES: dict[str, str] = {
    "WARNING": "WARN",
    "CRITICAL": "FATAL",
}


def canonical_key(value: object) -> str:
    """Return the string form a key is hashed and cached under."""
    if value is None:
        return ""
    return str(value)


def digest(value: object) -> int:
    """Fold the MD5 digest of ``value`` into a single unsigned 32-bit word."""
    raw = hashlib.md5(canonical_key(value).encode("utf-8")).digest()  # noqa: S324
    first, second, third, fourth = struct.unpack("<4I", raw)
    return first ^ second ^ third ^ fourth


def _table(palette: dict[str, str]) -> Callable[[str], str]:
    def lookup(key: str) -> str:
        name = _SEVERITY_ALIASES.get(key, key)
        return palette.get(name, palette["ANY"])

    return lookup


def _fixed(code: str) -> Callable[[str], str]:
    color = _sgr(code)
    return lambda _key: color


def _six_color(weight: str) -> Callable[[str], str]:
    def compute(key: str) -> str:
        return _sgr(f"{weight};{31 + digest(key) % 6}")

    return compute


def _fifteen_color(key: str) -> str:
    """Spread arbitrary identifiers over a non-bold band of 7 and a bold band of 8."""
    color = digest(key) % 15 + 1
    if color > 7:
        return _sgr(f"0;1;{30 + color - 8}")
    return _sgr(f"0;{30 + color}")


_RULES: dict[ColorCategory, Callable[[str], str]] = {
    ColorCategory.SEVERITY: _table(_SEVERITY_COLORS),
    ColorCategory.MESSAGE: _table(_MESSAGE_COLORS),
    ColorCategory.DATE: _fixed("0;36"),
    ColorCategory.PROCESS: _six_color("0"),
    ColorCategory.PROGNAME: _six_color("1"),
    ColorCategory.ENV: _six_color("0"),
    ColorCategory.HOST: _six_color("1"),
    ColorCategory.SEPARATOR: _fixed("0;1;30"),
    ColorCategory.GENERIC: _fifteen_color,
}


def _resolve_category(category: ColorCategory | str | None) -> ColorCategory:
    """Return the rule category, treating unknown names as generic identifiers."""
    try:
        return ColorCategory(category)
    except ValueError:
        return ColorCategory.GENERIC


class ColorCache:
    """Thread-safe, capacity-bounded mapping with least-recently-used eviction."""

    def __init__(self, capacity: int = DEFAULT_CACHE_SIZE) -> None:
        if capacity < 1:
            message = "ColorCache capacity must be a positive integer."
            raise ValueError(message)
        self._capacity = capacity
        self._entries: OrderedDict[Hashable, str] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        """Return the maximum number of retained entries."""
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def keys(self) -> list[Hashable]:
        """Return cached keys from least to most recently used."""
        with self._lock:
            return list(self._entries)

    def getset(self, key: Hashable, compute: Callable[[], str]) -> str:
        """Return the cached value for ``key``, computing and storing it on a miss."""
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
                return self._entries[key]
            value = compute()
            self._entries[key] = value
            if len(self._entries) > self._capacity:
                self._entries.popitem(last=False)
            return value

    def clear(self) -> None:
        """Drop every cached entry."""
        with self._lock:
            self._entries.clear()


class ColorAssigner:
    """Map ``(category, key)`` pairs to ANSI escape sequences.

    Colors are pure functions of their inputs, so evicting a cache entry
    only costs a recomputation. When ``enabled`` is false every lookup
    returns an empty string without consulting the cache.
    """

    def __init__(self, *, enabled: bool = True, cache_size: int = DEFAULT_CACHE_SIZE) -> None:
        self.enabled = enabled
        self.cache = ColorCache(cache_size)

    def color_for(self, category: ColorCategory | str | None, key: Any = None) -> str:
        """Return the escape sequence for ``key`` within ``category``."""
        if not self.enabled:
            return ""
        rule_category = _resolve_category(category)
        try:
            text = canonical_key(key)
            return self.cache.getset((rule_category, text), lambda: _RULES[rule_category](text))
        except Exception:  # noqa: BLE001 - a color failure must never break a log line
            _LOGGER.debug("Falling back to uncolored output for %r.", category)
            return ""
