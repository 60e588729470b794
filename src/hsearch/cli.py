"""CLI entry point using Typer."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Annotated

import typer

from hsearch import __version__
from hsearch.app import run_app
from hsearch.errors import HsearchError
from hsearch.history import HistoryFormat, compile_pattern, load_history
from hsearch.logger import setup_logger
from hsearch.matcher import rank
from hsearch.settings import (
    AVAILABLE_THEMES,
    DEFAULT_HEIGHT,
    DEFAULT_THEME,
    MAX_HEIGHT,
    MIN_HEIGHT,
    SearchSettings,
    default_histfile,
)
from hsearch.writer import write_result

app = typer.Typer(
    name="hsearch",
    help="Interactive fuzzy search of shell history, a replacement for Ctrl-R",
    no_args_is_help=False,
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"hsearch {__version__}")
        raise typer.Exit()


def _compile_excludes(patterns: list[str], case_sensitive: bool) -> list[re.Pattern[str]]:
    compiled: list[re.Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(compile_pattern(pattern, case_sensitive))
        except re.error as e:
            raise typer.BadParameter(f"invalid pattern {pattern!r}: {e}", param_hint="--exclude") from e
    return compiled


def _echo_command(text: str) -> None:
    # Undecodable history bytes go back out exactly as they were read
    typer.echo(text.encode("utf-8", errors="surrogateescape"))


@app.command()
def main(
    destination: Annotated[
        Path | None,
        typer.Argument(
            help="File that receives the accepted command (truncated; left empty on cancel). "
            "Without it the command is printed to stdout.",
            dir_okay=False,
        ),
    ] = None,
    query: Annotated[
        str,
        typer.Option("--query", "-q", help="Initial search query"),
    ] = "",
    histfile: Annotated[
        Path | None,
        typer.Option(help="History file to search [default: $HISTFILE or ~/.bash_history]"),
    ] = None,
    history_format: Annotated[
        HistoryFormat,
        typer.Option("--format", help="History file format", case_sensitive=False),
    ] = HistoryFormat.AUTO,
    exclude: Annotated[
        list[str] | None,
        typer.Option(
            "--exclude",
            "-x",
            help="Hide entries matching this text, or this regex when written as /regex/",
        ),
    ] = None,
    case_sensitive: Annotated[
        bool,
        typer.Option("--case-sensitive", help="Match the query case-sensitively"),
    ] = False,
    height: Annotated[
        int,
        typer.Option(min=MIN_HEIGHT, max=MAX_HEIGHT, help="Number of result rows"),
    ] = DEFAULT_HEIGHT,
    timestamps: Annotated[
        bool,
        typer.Option("--timestamps/--no-timestamps", help="Show when each command was run"),
    ] = True,
    theme: Annotated[
        str,
        typer.Option(help=f"Color theme: {', '.join(AVAILABLE_THEMES)}"),
    ] = DEFAULT_THEME,
    filter_query: Annotated[
        str | None,
        typer.Option(
            "--filter",
            "-f",
            help="Print ranked matches for this query to stdout and exit, without the UI "
            "(cannot be combined with DESTINATION)",
        ),
    ] = None,
    limit: Annotated[
        int | None,
        typer.Option(min=1, help="With --filter, print at most this many matches"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Debug logging to the log file"),
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """Search shell history interactively and hand the chosen command back."""
    logger = setup_logger(logging.DEBUG if verbose else logging.INFO)

    if theme not in AVAILABLE_THEMES:
        raise typer.BadParameter(f"choose from {', '.join(AVAILABLE_THEMES)}", param_hint="--theme")
    if filter_query is not None and destination is not None:
        raise typer.BadParameter("--filter prints to stdout and takes no DESTINATION", param_hint="--filter")

    settings = SearchSettings(
        histfile=histfile.expanduser() if histfile else default_histfile(),
        destination=destination,
        initial_query=query,
        history_format=history_format,
        exclude=_compile_excludes(exclude or [], case_sensitive),
        case_sensitive=case_sensitive,
        height=height,
        show_timestamps=timestamps,
        theme=theme,
    )

    try:
        entries = load_history(settings.histfile, settings.history_format, settings.exclude)

        if filter_query is not None:
            matches = rank(entries, filter_query, case_sensitive=settings.case_sensitive)
            for result in matches[:limit]:
                _echo_command(result.entry.text)
            logger.info("Filter run", matches=len(matches))
            return

        selected = run_app(entries, settings)

        if settings.destination is not None:
            write_result(selected, settings.destination)
        elif selected is not None:
            _echo_command(selected.text)
    except HsearchError as e:
        logger.error("Run failed", error_type=type(e).__name__, reason=str(e))
        typer.echo(f"hsearch: {e}", err=True)
        raise typer.Exit(code=1) from e


if __name__ == "__main__":
    app()
