"""Textual TUI for interactive history search.

The app runs in inline mode: it draws a block of rows under the shell
prompt instead of switching to the alternate screen, and clears that block
when it exits.
"""

from __future__ import annotations

import atexit
import contextlib
import signal
import sys
import termios
from typing import TYPE_CHECKING, Any

import pyperclip
from rich.text import Text
from textual.app import App, ComposeResult
from textual.widgets import Static

from hsearch.errors import TerminalError
from hsearch.keys import Action, EditCommand, decode, decode_paste
from hsearch.logger import AppLogger, get_logger
from hsearch.matcher import Matcher
from hsearch.session import Outcome, SessionState
from hsearch.settings import SearchSettings
from hsearch.themes import CUSTOM_THEMES

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from textual import events

    from hsearch.history import HistoryEntry
    from hsearch.matcher import MatchResult
    from hsearch.session import Query

PROMPT = "> "
SELECTED_MARKER = "➤ "
UNSELECTED_MARKER = "  "
NO_MATCHES = "no matches"
TIMESTAMP_WIDTH = len("2000-01-01 00:00:00")

MATCH_STYLE = "bold underline"
SELECTED_STYLE = "reverse"
TIMESTAMP_STYLE = "dim"

# One display character per source character, so match spans stay aligned
_DISPLAY_TABLE: dict[int, str] = {code: "·" for code in range(0x20)}
_DISPLAY_TABLE[0x7F] = "·"
# C1 controls; U+009B alone starts a CSI sequence on many terminals
_DISPLAY_TABLE.update({code: "·" for code in range(0x80, 0xA0)})
_DISPLAY_TABLE[ord("\n")] = "↵"
_DISPLAY_TABLE[ord("\t")] = " "
# Undecodable history bytes, kept as lone surrogates by surrogateescape
_DISPLAY_TABLE.update({code: "�" for code in range(0xDC80, 0xDD00)})

RESET_SEQUENCES = (
    "\x1b[?1000l",  # Disable mouse tracking (X10)
    "\x1b[?1002l",  # Disable mouse button tracking
    "\x1b[?1003l",  # Disable all mouse tracking
    "\x1b[?1006l",  # Disable SGR mouse mode
    "\x1b[?1015l",  # Disable urxvt mouse mode
    "\x1b[?2004l",  # Disable bracketed paste
    "\x1b[?25h",    # Show cursor
    "\x1b[?7h",     # Enable line wrapping
    "\x1b[0m",      # Reset all attributes
)


def display_text(text: str) -> str:
    """Make command text safe to paint on a single terminal row."""
    return text.translate(_DISPLAY_TABLE)


def build_query_text(query: Query) -> Text:
    """The prompt line with a block cursor at the edit position."""
    before = query.text[: query.cursor]
    after = query.text[query.cursor :]
    text = Text(no_wrap=True, overflow="crop")
    text.append(PROMPT, style="bold")
    text.append(display_text(before))
    text.append(display_text(after[:1]) or " ", style="reverse")
    text.append(display_text(after[1:]))
    return text


def build_match_text(result: MatchResult, selected: bool, show_timestamps: bool) -> Text:
    """One result row: marker, optional timestamp, command with match spans styled."""
    text = Text(no_wrap=True, overflow="ellipsis")
    text.append(SELECTED_MARKER if selected else UNSELECTED_MARKER, style="bold")
    if show_timestamps:
        stamp = result.entry.display_time.ljust(TIMESTAMP_WIDTH)
        text.append(stamp + "  ", style=TIMESTAMP_STYLE)

    offset = len(text)
    text.append(display_text(result.entry.text))
    for start, length in result.spans:
        text.stylize(MATCH_STYLE, offset + start, offset + start + length)
    if selected:
        text.stylize(SELECTED_STYLE)
    return text


def build_matches_text(state: SessionState, show_timestamps: bool) -> Text:
    """All rows in the viewport, or the no-matches indicator."""
    rows = [
        build_match_text(result, index == state.selected_index, show_timestamps)
        for index, result in state.visible_matches()
    ]
    if not rows:
        return Text(UNSELECTED_MARKER + NO_MATCHES, style="dim italic")
    return Text("\n", no_wrap=True, overflow="ellipsis").join(rows)


def build_status_text(state: SessionState, case_sensitive: bool = False) -> Text:
    """Match counter and key hints."""
    text = Text(no_wrap=True, overflow="crop")
    text.append(f"{len(state.matches)}/{state.total}", style="bold")
    if case_sensitive:
        text.append("  [case]", style="dim")
    text.append("  enter accept  esc cancel  ctrl+u clear  ctrl+y copy", style="dim")
    return text


class QueryLine(Static):
    """The prompt line. It holds focus and turns every key into a command."""

    can_focus = True

    def on_key(self, event: events.Key) -> None:
        # Stop here so no app or screen binding acts on the key
        event.stop()
        event.prevent_default()
        self.app.handle_command(decode(event.key, event.character))

    def on_paste(self, event: events.Paste) -> None:
        event.stop()
        self.app.handle_command(decode_paste(event.text))


class MatchList(Static):
    """The result rows."""

    def on_resize(self, event: events.Resize) -> None:
        if event.size.height > 0:
            self.app.handle_viewport_resize(event.size.height)


class SearchApp(App["HistoryEntry | None"]):
    """Inline history search. Exits with the accepted entry, or None."""

    TITLE = "History Search"
    ENABLE_COMMAND_PALETTE = False

    CSS = """
    Screen {
        layout: vertical;
    }

    Screen:inline {
        height: auto;
        border: none;
    }

    #query {
        height: 1;
        padding: 0 1;
    }

    #matches {
        height: 10;
        padding: 0 1;
    }

    #status {
        height: 1;
        padding: 0 1;
        color: $text-muted;
    }
    """

    def __init__(
        self,
        entries: Sequence[HistoryEntry],
        settings: SearchSettings | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.settings = settings or SearchSettings()
        self.matcher = Matcher(entries, case_sensitive=self.settings.case_sensitive)
        self.state = SessionState(
            self.matcher,
            initial_query=self.settings.initial_query,
            viewport_height=self.settings.height,
        )
        self.show_timestamps = self.settings.show_timestamps and any(
            entry.timestamp is not None for entry in entries
        )
        self._app_logger: AppLogger | None = None

        for custom_theme in CUSTOM_THEMES:
            self.register_theme(custom_theme)
        self.theme = self.settings.theme

    def compose(self) -> ComposeResult:
        yield QueryLine(id="query")
        yield MatchList(id="matches")
        yield Static(id="status")

    def on_mount(self) -> None:
        self._app_logger = get_logger()
        self._app_logger.info(
            "Session started",
            entries=self.state.total,
            height=self.state.viewport_height,
            theme=self.theme,
        )
        self.query_one("#matches", MatchList).styles.height = self.state.viewport_height
        self.query_one("#query", QueryLine).focus()
        self.refresh_view()

    def refresh_view(self) -> None:
        """Repaint all three regions from the session state."""
        self.query_one("#query", QueryLine).update(build_query_text(self.state.query))
        self.query_one("#matches", MatchList).update(
            build_matches_text(self.state, self.show_timestamps)
        )
        self.query_one("#status", Static).update(
            build_status_text(self.state, self.settings.case_sensitive)
        )

    def handle_command(self, command: EditCommand) -> None:
        """Apply a decoded key to the session and repaint or exit."""
        if command.action is Action.COPY_SELECTION:
            self.action_copy_selection()
            return
        if not self.state.apply(command):
            return

        if self.state.outcome is Outcome.ACCEPTED:
            self._log("Session accepted", matches=len(self.state.matches))
            self.exit(self.state.accepted)
        elif self.state.outcome is Outcome.CANCELLED:
            self._log("Session cancelled")
            self.exit(None)
        else:
            self.refresh_view()

    def handle_viewport_resize(self, height: int) -> None:
        if height == self.state.viewport_height:
            return
        self.state.resize(height)
        self.refresh_view()

    def action_quit(self) -> None:
        """App-level quit bindings end the session as a cancel."""
        self.handle_command(EditCommand(Action.CANCEL))

    def action_help_quit(self) -> None:
        self.handle_command(EditCommand(Action.CANCEL))

    def action_copy_selection(self) -> None:
        """Copy the selected command to the clipboard without leaving."""
        selected = self.state.selected
        if selected is None:
            self.notify("Nothing to copy", timeout=1)
            return
        try:
            pyperclip.copy(selected.entry.text)
            self.notify("Copied to clipboard", timeout=1)
        except pyperclip.PyperclipException:
            self.notify("Clipboard unavailable", severity="warning", timeout=2)

    def _log(self, msg: str, **kwargs: Any) -> None:
        if self._app_logger:
            self._app_logger.info(msg, query_len=len(self.state.query.text), **kwargs)


def reset_terminal() -> None:
    """Undo terminal modes the UI may have left enabled.

    Textual paints on stderr, so the sequences go there too.
    """
    stream = sys.__stderr__
    if stream is None or stream.closed or not stream.isatty():
        return
    stream.write("".join(RESET_SEQUENCES))
    stream.flush()


@contextlib.contextmanager
def terminal_guard(fd: int) -> Iterator[None]:
    """Hold the terminal for the duration of the block.

    Saves the tty attributes of ``fd`` and restores them, plus the reset
    sequences, on every way out: normal exit, exceptions, SIGINT, SIGTERM,
    SIGHUP and interpreter shutdown.
    """
    try:
        saved = termios.tcgetattr(fd)
    except termios.error as e:
        raise TerminalError(f"cannot read terminal attributes: {e}") from e

    def restore() -> None:
        with contextlib.suppress(termios.error):
            termios.tcsetattr(fd, termios.TCSADRAIN, saved)
        reset_terminal()

    def signal_handler(signum: int, frame: object) -> None:
        restore()
        sys.exit(128 + signum)

    previous = {
        signum: signal.signal(signum, signal_handler)
        for signum in (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)
    }
    atexit.register(restore)
    try:
        yield
    finally:
        restore()
        atexit.unregister(restore)
        for signum, handler in previous.items():
            if handler is not None:
                signal.signal(signum, handler)


def run_app(entries: Sequence[HistoryEntry], settings: SearchSettings) -> HistoryEntry | None:
    """Run the interactive search and return the accepted entry, or None."""
    if not (sys.stdin.isatty() and sys.stderr.isatty()):
        raise TerminalError("hsearch needs an interactive terminal")

    app = SearchApp(entries, settings)
    with terminal_guard(sys.stdin.fileno()):
        result = app.run(inline=True, mouse=False)

    if app.return_code:
        raise TerminalError(f"interactive session ended abnormally (code {app.return_code})")
    return result
