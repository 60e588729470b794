"""File logger with line-count rotation and ZIP archival.

The terminal belongs to the search UI, so hsearch never logs to stdout or
stderr. Records go to ``~/.cache/hsearch/logs/hsearch.log`` (or
``$HSEARCH_LOG_DIR``) in a compact one-line format.
"""

from __future__ import annotations

import logging
import os
import sys
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Any, ClassVar

LOG_DIR = Path(os.environ.get("HSEARCH_LOG_DIR", Path.home() / ".cache" / "hsearch" / "logs"))
LOG_NAME = "hsearch"

MAX_LINES = 2000
BACKUP_COUNT = 5
MAX_VALUE_LEN = 120

# Attributes set by LogRecord itself; everything else arrived as an extra
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message"}


def format_extra(key: str, value: Any) -> str:
    """Render one ``key=value`` pair, quoting strings that need it."""
    if isinstance(value, str):
        if len(value) > MAX_VALUE_LEN:
            value = value[: MAX_VALUE_LEN - 1] + "…"
        if not value or " " in value or "=" in value:
            return f"{key}={value!r}"
    return f"{key}={value}"


class CompactFormatter(logging.Formatter):
    """``yymmdd-HHMMSS.mmm L PPPPP module__ message key=value ...``"""

    LEVEL_MAP: ClassVar[dict[int, str]] = {
        logging.CRITICAL: "C",
        logging.ERROR: "E",
        logging.WARNING: "W",
        logging.INFO: "I",
        logging.DEBUG: "D",
    }

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%y%m%d-%H%M%S")
        parts = [
            f"{stamp}.{int(record.msecs):03d}",
            self.LEVEL_MAP.get(record.levelno, "?"),
            f"{record.process or 0:05d}"[-5:],
            record.module[:8].ljust(8),
            record.getMessage(),
        ]
        parts.extend(
            format_extra(key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )
        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class LineCountHandler(logging.FileHandler):
    """File handler that rotates after ``max_lines`` records.

    Backups are ``<stem>.1.log`` .. ``<stem>.N.log``. When all N backup slots
    are taken they are zipped into ``archive/`` before the next rotation.
    """

    def __init__(
        self,
        filename: Path,
        max_lines: int = MAX_LINES,
        backup_count: int = BACKUP_COUNT,
    ) -> None:
        self.path = filename
        self.archive_dir = filename.parent / "archive"
        self.max_lines = max_lines
        self.backup_count = backup_count

        filename.parent.mkdir(parents=True, exist_ok=True)
        self.line_count = _count_lines(filename)
        super().__init__(filename, mode="a", encoding="utf-8")

    def backup_path(self, number: int) -> Path:
        return self.path.with_name(f"{self.path.stem}.{number}.log")

    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        self.flush()
        self.line_count += 1
        if self.line_count >= self.max_lines:
            self.rotate()

    def rotate(self) -> None:
        """Close the live file, shift it into the backups and reopen."""
        self.close()
        if self.backup_path(self.backup_count).exists():
            self._archive_backups()
        self._shift_backups()
        self.line_count = 0
        self.stream = self._open()

    def _shift_backups(self) -> None:
        chain = [self.path] + [self.backup_path(i) for i in range(1, self.backup_count + 1)]
        # Oldest first so no rename overwrites a file still to be moved
        for src, dst in reversed(list(zip(chain, chain[1:]))):
            if src.exists():
                src.replace(dst)

    def _archive_backups(self) -> None:
        backups = [p for p in map(self.backup_path, range(1, self.backup_count + 1)) if p.exists()]
        stamp = datetime.now().strftime("%y%m%d-%H%M%S")
        zip_path = self.archive_dir / f"{self.path.stem}-{stamp}.zip"
        try:
            self.archive_dir.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(zip_path, "w", zipfile.ZIP_DEFLATED) as zf:
                for backup in backups:
                    zf.write(backup, backup.name)
        except OSError as e:
            # The oldest backup is dropped by the shift instead
            print(f"hsearch: log archive failed: {e}", file=sys.stderr)
            return
        for backup in backups:
            backup.unlink(missing_ok=True)


def _count_lines(path: Path) -> int:
    if not path.exists():
        return 0
    with open(path, "rb") as f:
        return sum(1 for _ in f)


class AppLogger:
    """Thin wrapper that turns keyword arguments into record extras."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @property
    def level(self) -> int:
        return self._logger.level

    def set_level(self, level: int) -> None:
        self._logger.setLevel(level)

    def _log(self, level: int, msg: str, fields: dict[str, Any], exc_info: bool = False) -> None:
        # stacklevel 3 attributes the record to the caller, not this wrapper
        self._logger.log(level, msg, extra=fields, exc_info=exc_info, stacklevel=3)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, kwargs, exc_info=True)


_logger: AppLogger | None = None
_handler: logging.Handler | None = None


def setup_logger(level: int = logging.INFO, log_dir: Path | None = None) -> AppLogger:
    """Configure the ``hsearch`` logger once.

    Later calls return the same wrapper and only change the level. If the
    log directory cannot be created, records are discarded through a
    NullHandler rather than failing the run.
    """
    global _logger, _handler

    if _logger is not None:
        _logger.set_level(level)
        return _logger

    base = logging.getLogger(LOG_NAME)
    base.setLevel(level)
    base.propagate = False

    # Other handlers on the logger (test capture, host apps) are left alone
    if _handler is None:
        try:
            _handler = LineCountHandler((log_dir or LOG_DIR) / f"{LOG_NAME}.log")
        except OSError:
            _handler = logging.NullHandler()
        _handler.setFormatter(CompactFormatter())
        base.addHandler(_handler)

    _logger = AppLogger(base)
    return _logger


def get_logger() -> AppLogger:
    return _logger if _logger is not None else setup_logger()


def reset_logger() -> None:
    """Close the hsearch handler and forget the configured logger."""
    global _logger, _handler

    if _handler is not None:
        _handler.close()
        logging.getLogger(LOG_NAME).removeHandler(_handler)
    _handler = None
    _logger = None
