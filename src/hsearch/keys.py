"""Decoding of terminal key events into edit commands.

Keys arrive as Textual key names (``"up"``, ``"ctrl+r"``, ``"a"``) plus the
printable character, if any. Decoding is a pure mapping: no state is read or
changed here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Action(Enum):
    """Kinds of edit command."""

    INSERT_CHAR = "insert_char"
    INSERT_TEXT = "insert_text"
    DELETE_CHAR_BACKWARD = "delete_char_backward"
    DELETE_CHAR_FORWARD = "delete_char_forward"
    DELETE_WORD_BACKWARD = "delete_word_backward"
    CLEAR_QUERY = "clear_query"
    MOVE_CURSOR_LEFT = "move_cursor_left"
    MOVE_CURSOR_RIGHT = "move_cursor_right"
    MOVE_CURSOR_START = "move_cursor_start"
    MOVE_CURSOR_END = "move_cursor_end"
    MOVE_SELECTION_UP = "move_selection_up"
    MOVE_SELECTION_DOWN = "move_selection_down"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    ACCEPT = "accept"
    CANCEL = "cancel"
    COPY_SELECTION = "copy_selection"
    NOOP = "noop"


# Commands that change the query text
QUERY_EDITS = frozenset({
    Action.INSERT_CHAR,
    Action.INSERT_TEXT,
    Action.DELETE_CHAR_BACKWARD,
    Action.DELETE_CHAR_FORWARD,
    Action.DELETE_WORD_BACKWARD,
    Action.CLEAR_QUERY,
})


@dataclass(frozen=True)
class EditCommand:
    """A decoded key: the action and, for insertions, the text to insert."""

    action: Action
    text: str = ""

    @classmethod
    def insert(cls, char: str) -> EditCommand:
        return cls(Action.INSERT_CHAR, char)


NOOP = EditCommand(Action.NOOP)

KEY_BINDINGS: dict[str, Action] = {
    "enter": Action.ACCEPT,
    "escape": Action.CANCEL,
    "ctrl+c": Action.CANCEL,
    "ctrl+g": Action.CANCEL,
    "ctrl+d": Action.CANCEL,
    "backspace": Action.DELETE_CHAR_BACKWARD,
    "ctrl+h": Action.DELETE_CHAR_BACKWARD,
    "delete": Action.DELETE_CHAR_FORWARD,
    "ctrl+w": Action.DELETE_WORD_BACKWARD,
    "ctrl+u": Action.CLEAR_QUERY,
    "left": Action.MOVE_CURSOR_LEFT,
    "ctrl+b": Action.MOVE_CURSOR_LEFT,
    "right": Action.MOVE_CURSOR_RIGHT,
    "ctrl+f": Action.MOVE_CURSOR_RIGHT,
    "home": Action.MOVE_CURSOR_START,
    "ctrl+a": Action.MOVE_CURSOR_START,
    "end": Action.MOVE_CURSOR_END,
    "ctrl+e": Action.MOVE_CURSOR_END,
    "up": Action.MOVE_SELECTION_UP,
    "ctrl+p": Action.MOVE_SELECTION_UP,
    "ctrl+k": Action.MOVE_SELECTION_UP,
    "down": Action.MOVE_SELECTION_DOWN,
    "ctrl+n": Action.MOVE_SELECTION_DOWN,
    "ctrl+j": Action.MOVE_SELECTION_DOWN,
    # Repeated Ctrl-R walks to older matches, as in readline
    "ctrl+r": Action.MOVE_SELECTION_DOWN,
    "tab": Action.MOVE_SELECTION_DOWN,
    "pageup": Action.PAGE_UP,
    "pagedown": Action.PAGE_DOWN,
    "ctrl+y": Action.COPY_SELECTION,
}


def is_insertable(char: str) -> bool:
    """True for a single printable character (space included)."""
    return len(char) == 1 and char.isprintable()


def decode(key: str, character: str | None = None) -> EditCommand:
    """Map a key event to an EditCommand. Unknown keys decode to NOOP."""
    action = KEY_BINDINGS.get(key)
    if action is not None:
        return EditCommand(action)
    if character is not None and is_insertable(character):
        return EditCommand.insert(character)
    return NOOP


def decode_paste(text: str) -> EditCommand:
    """Map pasted text to one insertion; unprintable characters are dropped."""
    cleaned = "".join(ch for ch in text if is_insertable(ch))
    if not cleaned:
        return NOOP
    return EditCommand(Action.INSERT_TEXT, cleaned)
