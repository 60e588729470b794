"""History file loading: parsing, deduplication and exclusion."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from hsearch.errors import LoadError
from hsearch.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

# "Timestamps" before 2010-01-01 00:00:00 UTC are treated as commands
MIN_REASONABLE_UNIXTIME = 1262304000

BASH_TIMESTAMP_RE = re.compile(r"#([0-9]+)")
ZSH_EXTENDED_RE = re.compile(r": ([0-9]+):([0-9]+);(.*)")
ZSH_EXTENDED_BYTES_RE = re.compile(rb": [0-9]+:[0-9]+;")

# zsh writes bytes >= 0x80 as META followed by the byte XOR 0x20
ZSH_META = 0x83


class HistoryFormat(str, Enum):
    """On-disk history formats understood by the loader."""

    AUTO = "auto"
    BASH = "bash"
    ZSH = "zsh"


@dataclass(frozen=True)
class HistoryEntry:
    """One command from the history file.

    ``index`` is the position of the command in the file; higher values are
    more recent. After deduplication it is the index of the latest occurrence.
    """

    text: str
    index: int
    timestamp: datetime | None = None

    @property
    def display_time(self) -> str:
        """Local time of the command, or an empty string when unknown."""
        if self.timestamp is None:
            return ""
        return self.timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _from_unixtime(unixtime: int) -> datetime | None:
    try:
        return datetime.fromtimestamp(unixtime, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def parse_bash_timestamp(line: str) -> datetime | None:
    """Return the timestamp of a bash ``#<epoch>`` line, else None.

    The whole line must be the marker: surrounding whitespace or trailing
    text make it a command.
    """
    match = BASH_TIMESTAMP_RE.fullmatch(line)
    if match is None:
        return None
    unixtime = int(match.group(1))
    if unixtime < MIN_REASONABLE_UNIXTIME:
        return None
    return _from_unixtime(unixtime)


def parse_bash_history(lines: Iterable[str]) -> list[HistoryEntry]:
    """Parse bash history lines into entries, oldest first.

    Until the first timestamp line every line is a separate command. After
    that, each entry is a timestamp line followed by one or more command
    lines, which lets HISTTIMEFORMAT + lithist histories keep multi-line
    commands together. Blank lines are skipped.
    """
    logger = get_logger()
    entries: list[HistoryEntry] = []
    seen_timestamp = False
    current_ts: datetime | None = None
    current_lines: list[str] = []

    for line_no, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        timestamp = parse_bash_timestamp(line)
        if timestamp is not None:
            if current_lines:
                entries.append(HistoryEntry("\n".join(current_lines), len(entries), current_ts))
                current_lines = []
            elif seen_timestamp:
                # Most likely a command such as `#1700000000` saved verbatim
                logger.debug("Ignoring consecutive timestamp line", line_no=line_no)
                continue
            current_ts = timestamp
            seen_timestamp = True
        elif seen_timestamp:
            current_lines.append(line)
        else:
            entries.append(HistoryEntry(line, len(entries)))

    if current_lines:
        entries.append(HistoryEntry("\n".join(current_lines), len(entries), current_ts))
    return entries


def parse_zsh_history(lines: Iterable[str]) -> list[HistoryEntry]:
    """Parse (already unmetafied) zsh history lines into entries, oldest first.

    Handles both plain lines and ``: <epoch>:<elapsed>;<command>`` extended
    lines. A trailing backslash continues the command on the next line.
    """
    entries: list[HistoryEntry] = []
    parts: list[str] = []
    timestamp: datetime | None = None

    for line in lines:
        if not parts:
            match = ZSH_EXTENDED_RE.fullmatch(line)
            if match is not None:
                timestamp = _from_unixtime(int(match.group(1)))
                line = match.group(3)
            else:
                timestamp = None
        if line.endswith("\\"):
            parts.append(line[:-1])
            continue
        parts.append(line)
        text = "\n".join(parts)
        parts = []
        if text.strip():
            entries.append(HistoryEntry(text, len(entries), timestamp))

    if parts:
        text = "\n".join(parts)
        if text.strip():
            entries.append(HistoryEntry(text, len(entries), timestamp))
    return entries


def unmetafy(data: bytes) -> bytes:
    """Undo zsh's metafication of high bytes."""
    if bytes([ZSH_META]) not in data:
        return data
    out = bytearray()
    escaped = False
    for byte in data:
        if escaped:
            out.append(byte ^ 0x20)
            escaped = False
        elif byte == ZSH_META:
            escaped = True
        else:
            out.append(byte)
    return bytes(out)


def detect_format(data: bytes) -> HistoryFormat:
    """Guess the history format from the first non-empty line."""
    for raw_line in data.split(b"\n"):
        if raw_line.strip():
            if ZSH_EXTENDED_BYTES_RE.match(raw_line):
                return HistoryFormat.ZSH
            return HistoryFormat.BASH
    return HistoryFormat.BASH


def dedupe_entries(entries: Iterable[HistoryEntry]) -> list[HistoryEntry]:
    """Keep one entry per distinct text, the most recent one.

    The result is ordered most recent first.
    """
    latest: dict[str, HistoryEntry] = {}
    for entry in entries:
        previous = latest.get(entry.text)
        if previous is None or entry.index > previous.index:
            latest[entry.text] = entry
    return sorted(latest.values(), key=lambda e: e.index, reverse=True)


def compile_pattern(pattern: str, case_sensitive: bool = False) -> re.Pattern[str]:
    """Compile an exclude pattern.

    ``/expr/`` is a regular expression, anything else is matched literally.
    Raises ``re.error`` for an invalid expression.
    """
    flags = 0 if case_sensitive else re.IGNORECASE
    if len(pattern) >= 2 and pattern.startswith("/") and pattern.endswith("/"):
        return re.compile(pattern[1:-1], flags)
    return re.compile(re.escape(pattern), flags)


def read_history_bytes(path: Path) -> bytes:
    """Read the raw history file, mapping I/O failures to LoadError."""
    try:
        data = path.read_bytes()
    except OSError as e:
        reason = e.strerror or str(e)
        raise LoadError(f"cannot read history file {path}: {reason}") from e
    if b"\x00" in data:
        raise LoadError(f"history file {path} contains NUL bytes, not a text history")
    return data


def load_history(
    path: Path,
    history_format: HistoryFormat = HistoryFormat.AUTO,
    exclude: Sequence[re.Pattern[str]] = (),
) -> list[HistoryEntry]:
    """Load, deduplicate and filter a history file.

    Returns entries most recent first. Raises LoadError when the file cannot
    be read. Undecodable bytes are kept via surrogateescape so a command can
    be written back unchanged.
    """
    logger = get_logger()
    logger.debug("Reading history file", path=str(path))
    data = read_history_bytes(path)

    if history_format is HistoryFormat.AUTO:
        history_format = detect_format(data)
    if history_format is HistoryFormat.ZSH:
        data = unmetafy(data)

    text = data.decode("utf-8", errors="surrogateescape")
    if text.endswith("\n"):
        text = text[:-1]
    lines = text.split("\n")

    if history_format is HistoryFormat.ZSH:
        parsed = parse_zsh_history(lines)
    else:
        parsed = parse_bash_history(lines)

    entries = dedupe_entries(parsed)
    unique = len(entries)
    if exclude:
        entries = [e for e in entries if not any(p.search(e.text) for p in exclude)]

    logger.info(
        "History loaded",
        path=str(path),
        format=history_format.value,
        parsed=len(parsed),
        unique=unique,
        excluded=unique - len(entries),
    )
    return entries
