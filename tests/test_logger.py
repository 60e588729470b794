"""Tests for the file logger."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from hsearch import logger as logger_module
from hsearch.logger import CompactFormatter, LineCountHandler, get_logger, reset_logger, setup_logger


def _record(msg: str, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("hsearch", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def foreign_handler() -> Iterator[logging.Handler]:
    """A handler some other party attached to the hsearch logger first."""
    handler = logging.NullHandler()
    base = logging.getLogger("hsearch")
    base.addHandler(handler)
    yield handler
    base.removeHandler(handler)


class TestCompactFormatter:
    """Line layout of the compact formatter."""

    def test_layout(self) -> None:
        """Timestamp, level letter, pid, padded module, then the message."""
        line = CompactFormatter().format(_record("History loaded"))
        ts, level, pid, module, *message = line.split(" ")
        assert len(ts) == len("yymmdd-hhmmss.mmm")
        assert level == "I"
        assert len(pid) == 5
        assert module == "test_log"
        assert " ".join(message) == "History loaded"

    def test_extras(self) -> None:
        """Extras follow as key=value, quoting strings with spaces or empty."""
        line = CompactFormatter().format(_record("Run", path="/tmp/a b", count=3, empty=""))
        assert line.endswith("path='/tmp/a b' count=3 empty=''")


class TestLineCountHandler:
    """Rotation and archival by line count."""

    def test_rotates_after_max_lines(self, tmp_path: Path) -> None:
        """Full files shift into numbered backups."""
        handler = LineCountHandler(tmp_path / "test.log", max_lines=3, backup_count=2)
        handler.setFormatter(CompactFormatter())
        for i in range(7):
            handler.emit(_record(f"line {i}"))
        handler.close()

        assert len((tmp_path / "test.1.log").read_text().splitlines()) == 3
        assert len((tmp_path / "test.2.log").read_text().splitlines()) == 3
        assert len((tmp_path / "test.log").read_text().splitlines()) == 1

    def test_archives_full_backups(self, tmp_path: Path) -> None:
        """When every backup slot is used they are zipped into archive/."""
        handler = LineCountHandler(tmp_path / "test.log", max_lines=2, backup_count=2)
        handler.setFormatter(CompactFormatter())
        for i in range(6):
            handler.emit(_record(f"line {i}"))
        handler.close()

        archives = list((tmp_path / "archive").glob("test-*.zip"))
        assert len(archives) == 1
        assert (tmp_path / "test.1.log").exists()

    def test_counts_existing_lines(self, tmp_path: Path) -> None:
        """Lines already in the file count toward the next rotation."""
        path = tmp_path / "test.log"
        path.write_text("a\nb\n")
        handler = LineCountHandler(path, max_lines=10)
        assert handler.line_count == 2
        handler.close()


class TestSetupLogger:
    """Configuration of the shared hsearch logger."""

    def test_writes_to_log_dir(self, isolated_logs: Path) -> None:
        """Records land in hsearch.log under the log directory."""
        setup_logger().info("Hello", answer=42)
        reset_logger()
        content = (isolated_logs / "hsearch.log").read_text()
        assert "Hello answer=42" in content

    def test_idempotent(self) -> None:
        """A second call reuses the handler and only changes the level."""
        first = setup_logger(logging.INFO)
        handler = logger_module._handler
        second = setup_logger(logging.DEBUG)
        assert first is second
        assert second.level == logging.DEBUG
        assert logger_module._handler is handler
        assert logging.getLogger("hsearch").handlers.count(handler) == 1

    def test_installs_file_handler_next_to_foreign_handler(
        self, isolated_logs: Path, foreign_handler: logging.Handler
    ) -> None:
        """A handler attached by someone else does not stop file logging."""
        setup_logger().info("Still logged")
        handlers = logging.getLogger("hsearch").handlers
        assert foreign_handler in handlers
        assert isinstance(logger_module._handler, LineCountHandler)
        assert logger_module._handler in handlers
        reset_logger()
        assert foreign_handler in logging.getLogger("hsearch").handlers
        assert "Still logged" in (isolated_logs / "hsearch.log").read_text()

    def test_get_logger_sets_up(self) -> None:
        """get_logger configures on first use and then returns the same wrapper."""
        assert get_logger() is get_logger()

    def test_unwritable_dir_falls_back(self, tmp_path: Path) -> None:
        """An uncreatable log directory degrades to a NullHandler."""
        blocker = tmp_path / "file"
        blocker.write_text("")
        logger = setup_logger(log_dir=blocker / "logs")
        logger.info("dropped")
        assert isinstance(logger_module._handler, logging.NullHandler)
        assert logger_module._handler in logging.getLogger("hsearch").handlers

    def test_reset_removes_only_own_handler(self, foreign_handler: logging.Handler) -> None:
        """reset_logger leaves other handlers attached."""
        setup_logger()
        own = logger_module._handler
        reset_logger()
        handlers = logging.getLogger("hsearch").handlers
        assert own not in handlers
        assert foreign_handler in handlers
        assert logger_module._handler is None
