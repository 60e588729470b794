"""Shared fixtures for hsearch tests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from hsearch.logger import reset_logger


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Send log output to a temporary directory for every test."""
    log_dir = tmp_path / "logs"
    reset_logger()
    monkeypatch.setattr("hsearch.logger.LOG_DIR", log_dir)
    yield log_dir
    reset_logger()
