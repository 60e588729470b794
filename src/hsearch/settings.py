"""Invocation settings for an hsearch run."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from hsearch.history import HistoryFormat

DEFAULT_HISTFILE = Path.home() / ".bash_history"

DEFAULT_THEME = "hsearch"

AVAILABLE_THEMES = [
    "hsearch",
    "textual-dark",
    "textual-light",
    "nord",
    "gruvbox",
    "tokyo-night",
    "dracula",
    "monokai",
    "solarized-light",
]

DEFAULT_HEIGHT = 10
MIN_HEIGHT = 3
MAX_HEIGHT = 100


def default_histfile() -> Path:
    """$HISTFILE when set and non-empty, else ~/.bash_history."""
    env_value = os.environ.get("HISTFILE")
    if env_value:
        return Path(env_value).expanduser()
    return DEFAULT_HISTFILE


@dataclass
class SearchSettings:
    """Everything a run needs, assembled from the command line."""

    histfile: Path = field(default_factory=default_histfile)
    destination: Path | None = None
    initial_query: str = ""
    history_format: HistoryFormat = HistoryFormat.AUTO
    exclude: list[re.Pattern[str]] = field(default_factory=list)
    case_sensitive: bool = False
    height: int = DEFAULT_HEIGHT
    show_timestamps: bool = True
    theme: str = DEFAULT_THEME

    def __post_init__(self) -> None:
        if not MIN_HEIGHT <= self.height <= MAX_HEIGHT:
            raise ValueError(f"height must be between {MIN_HEIGHT} and {MAX_HEIGHT}, got {self.height}")
        if self.theme not in AVAILABLE_THEMES:
            raise ValueError(f"unknown theme {self.theme!r}, choose from: {', '.join(AVAILABLE_THEMES)}")
