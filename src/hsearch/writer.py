"""Handing the accepted command back to the calling shell."""

from __future__ import annotations

from typing import TYPE_CHECKING

from hsearch.errors import WriteError
from hsearch.logger import get_logger

if TYPE_CHECKING:
    from pathlib import Path

    from hsearch.history import HistoryEntry


def write_result(entry: HistoryEntry | None, destination: Path) -> None:
    """Replace the destination's content with the accepted command.

    ``None`` (cancelled session) truncates the file to empty so the shell
    never picks up a result from an earlier run. The command is written
    verbatim: no trailing newline, no newline translation, and bytes that
    were not valid UTF-8 in the history file are restored.
    """
    text = entry.text if entry is not None else ""
    try:
        with open(destination, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
            f.write(text)
    except OSError as e:
        reason = e.strerror or str(e)
        raise WriteError(f"cannot write result to {destination}: {reason}") from e

    get_logger().info(
        "Result written",
        destination=str(destination),
        accepted=entry is not None,
        chars=len(text),
    )
