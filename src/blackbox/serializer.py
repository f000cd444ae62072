"""Split structured log events into metadata and a rendered message body."""

from __future__ import annotations

import logging
import traceback
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from blackbox.pretty import PrettyPrinter

__all__ = [
    "INSPECTION_FAILED",
    "METADATA_KEYS",
    "EventMetadata",
    "extract_metadata",
    "format_exception",
    "format_tags",
    "render_payload",
    "serialize",
]


_LOGGER = logging.getLogger(__name__)

INSPECTION_FAILED = "INSPECTION FAILED"

METADATA_KEYS: frozenset[str] = frozenset(
    {"message", "host", "process_name", "env", "pid", "tid", "wid", "jid", "tags"},
)


@dataclass(slots=True)
class EventMetadata:
    """Well-known fields lifted out of a structured event."""

    message: Any = None
    host: Any = None
    process_name: Any = None
    env: Any = None
    pid: Any = None
    tid: Any = None
    wid: Any = None
    jid: Any = None
    tags: list[str] = field(default_factory=list)


def extract_metadata(event: Mapping[str, Any]) -> tuple[EventMetadata, dict[str, Any]]:
    """Return the metadata of ``event`` and a copy of its remaining fields.

    ``tags`` is only treated as metadata when it is a list or tuple, and a
    ``request_id`` equal to the job id is dropped as redundant.
    """
    remaining = dict(event)
    metadata = EventMetadata(
        message=remaining.pop("message", None),
        host=remaining.pop("host", None),
        process_name=remaining.pop("process_name", None),
        env=remaining.pop("env", None),
        pid=remaining.pop("pid", None),
        tid=remaining.pop("tid", None),
        wid=remaining.pop("wid", None),
        jid=remaining.pop("jid", None),
    )
    if isinstance(remaining.get("tags"), (list, tuple)):
        metadata.tags = [str(tag) for tag in remaining.pop("tags")]

    if "request_id" in remaining and remaining["request_id"] == metadata.jid:
        del remaining["request_id"]

    return metadata, remaining


def format_tags(tags: list[str] | tuple[str, ...] | None) -> str:
    """Format ``tags`` as ``"[tag1] [tag2] "``, or an empty string when there are none."""
    if not tags:
        return ""
    return " ".join(f"[{tag}]" for tag in tags) + " "


def format_exception(exc: BaseException) -> str:
    """Render an exception as ``message (ClassName)`` followed by its traceback."""
    text = f"{_text(exc)} ({type(exc).__name__})"
    if exc.__traceback__ is None:
        return text
    frames = traceback.format_tb(exc.__traceback__)
    return text + "\n" + "".join(frames).rstrip("\n")


def _text(value: object) -> str:
    try:
        return str(value)
    except Exception:  # noqa: BLE001
        return INSPECTION_FAILED


def render_payload(fields: Mapping[str, Any], *, colorize: bool) -> str:
    """Pretty-print ``fields``, degrading to ``repr`` and then a placeholder."""
    try:
        return PrettyPrinter(colorize=colorize).render(fields)
    except Exception:  # noqa: BLE001 - serialization must never raise
        _LOGGER.debug("Pretty-printing a log payload failed; using repr().")
    try:
        return repr(fields)
    except Exception:  # noqa: BLE001
        return INSPECTION_FAILED


def serialize(message: object, include_inline_metadata: bool, colorize_payload: bool) -> str:
    """Return the text body of a log event.

    Scalar messages are returned as text. For mappings the recognised
    metadata keys are removed, tags are optionally prepended and any
    remaining fields are appended as ``": <rendered fields>"``.
    """
    if isinstance(message, BaseException):
        return format_exception(message)
    if not isinstance(message, Mapping):
        return _text(message)

    try:
        metadata, remaining = extract_metadata(message)
    except Exception:  # noqa: BLE001 - serialization must never raise
        _LOGGER.debug("Extracting log event metadata failed.")
        return INSPECTION_FAILED

    body = "" if metadata.message is None else _text(metadata.message)
    if include_inline_metadata:
        body = f"{format_tags(metadata.tags)}{body}"

    if remaining:
        body = f"{body}: {render_payload(remaining, colorize=colorize_payload)}"

    return body
