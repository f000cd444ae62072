"""Typer-based command line interface for rendering JSON-lines log events."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, Iterator
from enum import StrEnum
from pathlib import Path
from typing import Annotated, TextIO

import typer
from pydantic import ValidationError

from blackbox.logging import configure_logging as configure_blackbox_logging
from blackbox.models import EventRecord, FormatterSettings
from blackbox.renderer import LineRenderer

__all__ = ["app"]


LOGGER = logging.getLogger(__name__)


class LogLevel(StrEnum):
    """Logging levels offered as CLI options."""

    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Render structured JSON-lines log events as colorized text lines.",
)


@app.callback()
def main() -> None:
    """Colorized structured log line formatter."""


def _configure_logging(level: LogLevel) -> None:
    """Initialise the tool's own diagnostics at the requested level."""
    configure_blackbox_logging(level.value)


def _iter_lines(source: TextIO) -> Iterator[tuple[int, str]]:
    """Yield numbered, non-blank lines from ``source``."""
    for number, raw in enumerate(source, start=1):
        line = raw.strip()
        if line:
            yield number, line


def _render_lines(
    lines: Iterable[tuple[int, str]],
    renderer: LineRenderer,
    *,
    strict: bool,
) -> int:
    """Echo every valid event and return how many lines were rejected."""
    rejected = 0
    for number, line in lines:
        try:
            record = EventRecord.model_validate_json(line)
        except ValidationError as exc:
            rejected += 1
            typer.echo(f"line {number}: invalid event: {exc.error_count()} error(s)", err=True)
            LOGGER.debug("Rejected input line.", extra={"line": number, "errors": exc.errors()})
            if strict:
                raise typer.Exit(code=1) from exc
            continue
        typer.echo(renderer.render_event(record.to_event()), nl=False, color=renderer.color)
    return rejected


@app.command()
def render(
    path: Annotated[
        Path | None,
        typer.Argument(
            exists=True,
            dir_okay=False,
            readable=True,
            help="JSON-lines file to render. Reads stdin when omitted.",
        ),
    ] = None,
    *,
    color: Annotated[
        bool | None,
        typer.Option(
            "--color/--no-color",
            help="Force color on or off. Detected from TERM when omitted.",
            show_default=False,
        ),
    ] = None,
    hostname: Annotated[
        str | None,
        typer.Option(help="Hostname shown for events that do not carry one."),
    ] = None,
    strict: Annotated[
        bool,
        typer.Option("--strict/--lenient", help="Abort on the first invalid line."),
    ] = False,
    log_level: Annotated[
        LogLevel,
        typer.Option(help="Logging verbosity for the tool itself.", case_sensitive=False),
    ] = LogLevel.WARNING,
) -> None:
    """Render each JSON event of the input as one formatted log line."""
    _configure_logging(log_level)

    settings = FormatterSettings.from_env(color=color)
    renderer = LineRenderer.from_settings(settings, hostname=hostname)

    if path is None:
        rejected = _render_lines(_iter_lines(sys.stdin), renderer, strict=strict)
    else:
        with path.open(encoding="utf-8") as source:
            rejected = _render_lines(_iter_lines(source), renderer, strict=strict)

    if rejected:
        typer.echo(f"{rejected} line(s) could not be rendered.", err=True)


if __name__ == "__main__":  # pragma: no cover - script entry point
    app()
