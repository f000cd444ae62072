"""Unit tests for structured event serialization."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from blackbox import serializer
from blackbox.serializer import (
    INSPECTION_FAILED,
    METADATA_KEYS,
    extract_metadata,
    format_exception,
    format_tags,
    serialize,
)

if TYPE_CHECKING:
    from collections.abc import Mapping


class _Unprintable:
    def __repr__(self) -> str:
        raise RuntimeError("cannot inspect")


def test_scalar_messages_are_returned_as_text() -> None:
    """Plain messages pass through unchanged."""
    assert serialize("hello world", False, False) == "hello world"
    assert serialize(42, True, True) == "42"


@pytest.mark.parametrize(
    ("tags", "expected"),
    [
        (["retry"], "[retry] "),
        (["a", "b", "c"], "[a] [b] [c] "),
        ([], ""),
        (None, ""),
    ],
)
def test_format_tags(tags: list[str] | None, expected: str) -> None:
    """Tags render in order with a trailing space, or as nothing at all."""
    assert format_tags(tags) == expected


def test_inline_metadata_prepends_tags() -> None:
    """Tags are merged into the message only when requested."""
    event = {"message": "boom", "jid": 42, "tags": ["retry"]}

    assert serialize(event, True, False) == "[retry] boom"
    assert serialize(event, False, False) == "boom"


def test_remaining_fields_are_rendered_after_the_message() -> None:
    """Only unrecognised fields appear in the payload, in their original order."""
    event = {"message": "saved", "pid": 3, "user": "bob", "host": "db-1", "size": 10}

    assert serialize(event, False, False) == 'saved: {\n  "user": "bob",\n  "size": 10,\n}'


def test_extract_metadata_removes_every_recognised_key() -> None:
    """The payload key set is the input keys minus metadata keys."""
    event: Mapping[str, object] = {
        "message": "m",
        "host": "h",
        "process_name": "p",
        "env": "prod",
        "pid": 1,
        "tid": 2,
        "wid": 3,
        "jid": 4,
        "tags": ["t"],
        "request_id": 4,
        "extra": {"nested": [1, 2]},
        "other": "x",
    }

    metadata, remaining = extract_metadata(event)

    assert list(remaining) == ["extra", "other"]
    assert set(remaining) == set(event) - METADATA_KEYS - {"request_id"}
    assert metadata.jid == 4
    assert metadata.tags == ["t"]
    assert "message" in event


def test_request_id_is_kept_when_it_differs_from_the_job_id() -> None:
    """Only a redundant request id is dropped."""
    _, remaining = extract_metadata({"jid": "abc", "request_id": "xyz"})

    assert remaining == {"request_id": "xyz"}


def test_non_sequence_tags_stay_in_the_payload() -> None:
    """A ``tags`` value that is not a list is treated as ordinary data."""
    metadata, remaining = extract_metadata({"message": "m", "tags": "oops"})

    assert metadata.tags == []
    assert remaining == {"tags": "oops"}


def test_payload_backtraces_are_highlighted_when_colorized() -> None:
    """Backtrace arrays in the payload go through the highlighter."""
    event = {"message": "failed", "backtrace": ["app.rb:10:in 'foo'", "..."]}

    rendered = serialize(event, False, True)

    assert rendered.startswith("failed: ")
    assert "\x1b[1;33mapp.rb\x1b[0m" in rendered
    assert "\x1b[1;35mfoo\x1b[0m" in rendered


def test_render_failure_falls_back_to_repr(monkeypatch: pytest.MonkeyPatch) -> None:
    """A pretty-printer failure degrades to a plain textual dump."""

    class BrokenPrinter:
        def __init__(self, **_kwargs: object) -> None:
            pass

        def render(self, _value: object) -> str:
            raise RuntimeError("renderer exploded")

    monkeypatch.setattr(serializer, "PrettyPrinter", BrokenPrinter)

    assert serialize({"message": "m", "count": 2}, False, False) == "m: {'count': 2}"


def test_uninspectable_payload_uses_placeholder() -> None:
    """When even ``repr`` fails the placeholder is emitted instead of raising."""
    assert serialize({"message": "m", "obj": _Unprintable()}, False, False) == f"m: {INSPECTION_FAILED}"


def test_exceptions_render_with_class_name() -> None:
    """Exceptions show their message followed by the exception class."""
    assert serialize(ValueError("bad input"), False, False) == "bad input (ValueError)"


def test_exception_traceback_is_appended() -> None:
    """Raised exceptions include their formatted traceback lines."""
    try:
        raise KeyError("missing")
    except KeyError as exc:
        text = format_exception(exc)

    first, _, rest = text.partition("\n")
    assert first == "'missing' (KeyError)"
    assert "test_exception_traceback_is_appended" in rest


def test_failing_metadata_comparison_uses_placeholder() -> None:
    """A request id that cannot be compared degrades instead of raising."""

    class Incomparable:
        def __eq__(self, other: object) -> bool:
            raise RuntimeError("cannot compare")

        __hash__ = object.__hash__

    assert serialize({"jid": 1, "request_id": Incomparable()}, False, False) == INSPECTION_FAILED
