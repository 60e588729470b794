"""Tests for writing the accepted command to the destination file."""

from __future__ import annotations

from pathlib import Path

import pytest

from hsearch.errors import WriteError
from hsearch.history import HistoryEntry
from hsearch.writer import write_result


@pytest.fixture
def destination(tmp_path: Path) -> Path:
    path = tmp_path / "result"
    path.write_text("stale command from an earlier run\n")
    return path


class TestWriteResult:
    """Writing the result file."""

    def test_writes_command_without_newline(self, destination: Path) -> None:
        """The command is written with no trailing newline."""
        write_result(HistoryEntry("git status", 0), destination)
        assert destination.read_bytes() == b"git status"

    def test_cancel_truncates(self, destination: Path) -> None:
        """A cancelled session leaves the file empty."""
        write_result(None, destination)
        assert destination.read_bytes() == b""

    def test_creates_missing_file(self, tmp_path: Path) -> None:
        """A missing destination file is created."""
        path = tmp_path / "new"
        write_result(HistoryEntry("ls", 0), path)
        assert path.read_text() == "ls"

    def test_multiline_verbatim(self, destination: Path) -> None:
        """Line endings are written unchanged."""
        write_result(HistoryEntry("for i in 1\r\ndo echo\ndone", 0), destination)
        assert destination.read_bytes() == b"for i in 1\r\ndo echo\ndone"

    def test_non_ascii(self, destination: Path) -> None:
        """Non-ASCII text is written as UTF-8."""
        write_result(HistoryEntry("echo héllo ✓", 0), destination)
        assert destination.read_text(encoding="utf-8") == "echo héllo ✓"

    def test_undecodable_bytes_restored(self, destination: Path) -> None:
        """Surrogate escapes turn back into the original bytes."""
        text = b"echo \xff\xfe".decode("utf-8", errors="surrogateescape")
        write_result(HistoryEntry(text, 0), destination)
        assert destination.read_bytes() == b"echo \xff\xfe"

    def test_destination_is_directory(self, tmp_path: Path) -> None:
        """A directory destination is a WriteError."""
        with pytest.raises(WriteError, match="cannot write result"):
            write_result(HistoryEntry("ls", 0), tmp_path)

    def test_missing_parent_directory(self, tmp_path: Path) -> None:
        """A destination in a missing directory is a WriteError."""
        with pytest.raises(WriteError):
            write_result(None, tmp_path / "missing" / "result")
