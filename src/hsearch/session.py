"""Search session state: query editing, selection and the accept/cancel outcome."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from hsearch.keys import QUERY_EDITS, Action, EditCommand

if TYPE_CHECKING:
    from hsearch.history import HistoryEntry
    from hsearch.matcher import Matcher, MatchResult

DEFAULT_VIEWPORT_HEIGHT = 10

# Characters that end a word for ctrl+w, as in readline's unix-word-rubout
WORD_SEPARATORS = " \t"


class Outcome(Enum):
    RUNNING = "running"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"


class Query:
    """The search string being edited and the edit cursor within it."""

    def __init__(self, text: str = "", cursor: int | None = None) -> None:
        self.text = text
        self.cursor = len(text) if cursor is None else max(0, min(cursor, len(text)))

    def __repr__(self) -> str:
        return f"Query({self.text!r}, cursor={self.cursor})"

    def insert(self, text: str) -> None:
        self.text = self.text[: self.cursor] + text + self.text[self.cursor :]
        self.cursor += len(text)

    def delete_backward(self) -> None:
        if self.cursor == 0:
            return
        self.text = self.text[: self.cursor - 1] + self.text[self.cursor :]
        self.cursor -= 1

    def delete_forward(self) -> None:
        self.text = self.text[: self.cursor] + self.text[self.cursor + 1 :]

    def delete_word_backward(self) -> None:
        start = self.cursor
        while start > 0 and self.text[start - 1] in WORD_SEPARATORS:
            start -= 1
        while start > 0 and self.text[start - 1] not in WORD_SEPARATORS:
            start -= 1
        self.text = self.text[:start] + self.text[self.cursor :]
        self.cursor = start

    def clear(self) -> None:
        self.text = ""
        self.cursor = 0

    def move(self, offset: int) -> None:
        self.cursor = max(0, min(self.cursor + offset, len(self.text)))

    def move_to(self, position: int) -> None:
        self.cursor = max(0, min(position, len(self.text)))


class SessionState:
    """State of one interactive search.

    Commands are applied with ``apply``; each query edit re-ranks the
    matches and moves the selection back to the top. Once the outcome is
    ACCEPTED or CANCELLED every further command is ignored.
    """

    def __init__(
        self,
        matcher: Matcher,
        initial_query: str = "",
        viewport_height: int = DEFAULT_VIEWPORT_HEIGHT,
    ) -> None:
        self.matcher = matcher
        self.query = Query(initial_query)
        self.viewport_height = max(1, viewport_height)
        self.matches: list[MatchResult] = matcher.rank(self.query.text)
        self.selected_index = 0
        self.viewport_offset = 0
        self.outcome = Outcome.RUNNING
        self.accepted: HistoryEntry | None = None

    @property
    def total(self) -> int:
        """Number of entries being searched."""
        return len(self.matcher)

    @property
    def is_running(self) -> bool:
        return self.outcome is Outcome.RUNNING

    @property
    def selected(self) -> MatchResult | None:
        if not self.matches:
            return None
        return self.matches[self.selected_index]

    def visible_matches(self) -> list[tuple[int, MatchResult]]:
        """(index, match) pairs for the rows currently in the viewport."""
        end = self.viewport_offset + self.viewport_height
        window = self.matches[self.viewport_offset : end]
        return list(enumerate(window, start=self.viewport_offset))

    def resize(self, viewport_height: int) -> None:
        self.viewport_height = max(1, viewport_height)
        self._scroll_to_selection()

    def apply(self, command: EditCommand) -> bool:
        """Apply one command. Returns True when the view needs repainting."""
        if not self.is_running:
            return False

        action = command.action
        if action in QUERY_EDITS:
            self._edit_query(command)
            self._rerank()
        elif action is Action.MOVE_CURSOR_LEFT:
            self.query.move(-1)
        elif action is Action.MOVE_CURSOR_RIGHT:
            self.query.move(1)
        elif action is Action.MOVE_CURSOR_START:
            self.query.move_to(0)
        elif action is Action.MOVE_CURSOR_END:
            self.query.move_to(len(self.query.text))
        elif action is Action.MOVE_SELECTION_UP:
            self._move_selection(-1)
        elif action is Action.MOVE_SELECTION_DOWN:
            self._move_selection(1)
        elif action is Action.PAGE_UP:
            self._move_selection(-self.viewport_height)
        elif action is Action.PAGE_DOWN:
            self._move_selection(self.viewport_height)
        elif action is Action.ACCEPT:
            if not self.matches:
                return False
            self.accepted = self.matches[self.selected_index].entry
            self.outcome = Outcome.ACCEPTED
        elif action is Action.CANCEL:
            self.outcome = Outcome.CANCELLED
        else:
            return False
        return True

    def _edit_query(self, command: EditCommand) -> None:
        action = command.action
        if action in (Action.INSERT_CHAR, Action.INSERT_TEXT):
            self.query.insert(command.text)
        elif action is Action.DELETE_CHAR_BACKWARD:
            self.query.delete_backward()
        elif action is Action.DELETE_CHAR_FORWARD:
            self.query.delete_forward()
        elif action is Action.DELETE_WORD_BACKWARD:
            self.query.delete_word_backward()
        elif action is Action.CLEAR_QUERY:
            self.query.clear()

    def _rerank(self) -> None:
        self.matches = self.matcher.rank(self.query.text)
        self.selected_index = 0
        self.viewport_offset = 0

    def _move_selection(self, delta: int) -> None:
        if not self.matches:
            return
        last = len(self.matches) - 1
        self.selected_index = max(0, min(self.selected_index + delta, last))
        self._scroll_to_selection()

    def _scroll_to_selection(self) -> None:
        if self.selected_index < self.viewport_offset:
            self.viewport_offset = self.selected_index
        elif self.selected_index >= self.viewport_offset + self.viewport_height:
            self.viewport_offset = self.selected_index - self.viewport_height + 1
