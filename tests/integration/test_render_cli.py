"""Integration tests for the Typer CLI."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from blackbox.cli import app

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    """The CLI reconfigures logging; put the root logger back afterwards."""
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in original_handlers:
        root.addHandler(handler)
    root.setLevel(original_level)


def _write_events(path: Path, *lines: str) -> None:
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _event(**fields: object) -> str:
    return json.dumps(fields)


def test_cli_renders_json_lines_file() -> None:
    """Each JSON event becomes one formatted line on stdout."""
    runner = CliRunner()
    with runner.isolated_filesystem():
        events = Path("events.jsonl")
        _write_events(
            events,
            _event(
                severity="ERROR",
                timestamp="2024-05-01T12:30:45.123456",
                process_name="worker",
                message={"message": "boom", "jid": 42, "tags": ["retry"]},
            ),
            "",
            _event(severity="info", timestamp="2024-05-01T12:30:46", message="started"),
        )

        result = runner.invoke(app, ["render", str(events), "--no-color", "--hostname", "h1"])

        assert result.exit_code == 0, result.output
        assert (
            f"E, [2024-05-01T12:30:45.123456 #{os.getpid()}/J-42] ERROR -- worker: h1 [retry] boom\n"
            in result.output
        )
        assert f"I, [2024-05-01T12:30:46.000000 #{os.getpid()}] INFO -- : h1 started\n" in result.output
        assert "\x1b" not in result.output


def test_cli_reads_stdin_and_colors_on_request() -> None:
    """Without a path the CLI reads stdin, and --color forces escapes."""
    runner = CliRunner()
    payload = _event(
        severity="ERROR",
        message={"message": "failed", "backtrace": ["app.rb:10:in 'foo'", "..."]},
    )

    result = runner.invoke(app, ["render", "--color", "--hostname", "h1"], input=payload + "\n")

    assert result.exit_code == 0, result.output
    assert "\x1b[1;33mapp.rb\x1b[0m" in result.output
    assert "\x1b[0m\n" in result.output


def test_cli_color_flag_survives_non_terminal_output() -> None:
    """--color keeps escape sequences even when stdout is not a terminal."""
    runner = CliRunner()
    payload = _event(severity="ERROR", message={"message": "x", "jid": 4})

    colored = runner.invoke(app, ["render", "--color", "--hostname", "h"], input=payload + "\n", color=False)
    plain = runner.invoke(app, ["render", "--no-color", "--hostname", "h"], input=payload + "\n", color=False)

    assert colored.exit_code == 0, colored.output
    assert "\x1b[1;31mE" in colored.output
    assert colored.output.endswith("\x1b[0m\n")
    assert "\x1b" not in plain.output


def test_cli_skips_invalid_lines_by_default() -> None:
    """Invalid events are reported and the remaining events still render."""
    runner = CliRunner()
    with runner.isolated_filesystem():
        events = Path("events.jsonl")
        _write_events(events, "not json", _event(severity="INFO", message="ok"))

        result = runner.invoke(app, ["render", str(events), "--no-color"])

        assert result.exit_code == 0, result.output
        assert "line 1: invalid event" in result.output
        assert "INFO -- " in result.output
        assert "1 line(s) could not be rendered." in result.output


def test_cli_strict_mode_aborts_on_invalid_line() -> None:
    """--strict stops at the first invalid event with a non-zero exit code."""
    runner = CliRunner()
    with runner.isolated_filesystem():
        events = Path("events.jsonl")
        _write_events(events, _event(severity="INFO", level="x"), _event(message="never"))

        result = runner.invoke(app, ["render", str(events), "--strict", "--no-color"])

        assert result.exit_code == 1
        assert "line 1: invalid event" in result.output
        assert "never" not in result.output


def test_cli_rejects_missing_file() -> None:
    """Paths that do not exist are rejected by argument validation."""
    runner = CliRunner()
    with runner.isolated_filesystem():
        result = runner.invoke(app, ["render", "missing.jsonl"])

        assert result.exit_code != 0
