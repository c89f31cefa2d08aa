"""
Key bindings.

`map_key` turns a key press into an action for the current mode. It is a pure
lookup: no session state beyond the mode is consulted.
"""

from dataclasses import dataclass
from enum import Enum

# Named keys produced by tui.terminal.KeyReader; printable keys are the character itself
ENTER = "enter"
ESC = "esc"
BACKSPACE = "backspace"
UP = "up"
DOWN = "down"
CTRL_C = "ctrl-c"


class Mode(Enum):
    NORMAL = "normal"
    TAG_INPUT = "tag_input"
    FEED_INPUT = "feed_input"
    OPML_IMPORT_INPUT = "opml_import_input"
    OPML_EXPORT_INPUT = "opml_export_input"
    HELP = "help"

    @property
    def is_input(self) -> bool:
        return self in INPUT_MODES


INPUT_MODES = frozenset({
    Mode.TAG_INPUT, Mode.FEED_INPUT, Mode.OPML_IMPORT_INPUT, Mode.OPML_EXPORT_INPUT,
})


class ActionKind(Enum):
    QUIT = "quit"
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    MOVE_TO_TOP = "move_to_top"
    MOVE_TO_BOTTOM = "move_to_bottom"
    SELECT = "select"
    REFRESH = "refresh"
    TOGGLE_READ = "toggle_read"
    TOGGLE_STAR = "toggle_star"
    OPEN_IN_BROWSER = "open_in_browser"
    EMAIL = "email"
    BOOKMARK = "bookmark"
    CYCLE_FILTER = "cycle_filter"
    REGENERATE = "regenerate"
    DELETE_ARTICLE = "delete_article"
    DELETE_FEED = "delete_feed"
    UNDELETE = "undelete"
    ADD_FEED = "add_feed"
    IMPORT_OPML = "import_opml"
    EXPORT_OPML = "export_opml"
    SHOW_HELP = "show_help"
    HIDE_HELP = "hide_help"
    # Input modes share these; the mode says which buffer they edit
    INPUT_CHAR = "input_char"
    INPUT_BACKSPACE = "input_backspace"
    INPUT_CONFIRM = "input_confirm"
    INPUT_CANCEL = "input_cancel"


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    char: str | None = None


NORMAL_KEYS: dict[str, ActionKind] = {
    "q": ActionKind.QUIT,
    CTRL_C: ActionKind.QUIT,
    "j": ActionKind.MOVE_DOWN,
    DOWN: ActionKind.MOVE_DOWN,
    "k": ActionKind.MOVE_UP,
    UP: ActionKind.MOVE_UP,
    "<": ActionKind.MOVE_TO_TOP,
    ">": ActionKind.MOVE_TO_BOTTOM,
    ENTER: ActionKind.SELECT,
    "r": ActionKind.REFRESH,
    "m": ActionKind.TOGGLE_READ,
    "s": ActionKind.TOGGLE_STAR,
    "o": ActionKind.OPEN_IN_BROWSER,
    "e": ActionKind.EMAIL,
    "b": ActionKind.BOOKMARK,
    "f": ActionKind.CYCLE_FILTER,
    "g": ActionKind.REGENERATE,
    "d": ActionKind.DELETE_ARTICLE,
    "D": ActionKind.DELETE_FEED,
    "u": ActionKind.UNDELETE,
    "a": ActionKind.ADD_FEED,
    "i": ActionKind.IMPORT_OPML,
    "w": ActionKind.EXPORT_OPML,
    "?": ActionKind.SHOW_HELP,
}

INPUT_KEYS: dict[str, ActionKind] = {
    ENTER: ActionKind.INPUT_CONFIRM,
    ESC: ActionKind.INPUT_CANCEL,
    BACKSPACE: ActionKind.INPUT_BACKSPACE,
}


def map_key(mode: Mode, key: str) -> Action | None:
    """Map a key press in the given mode to an action, or None if unbound."""
    if mode is Mode.HELP:
        # Any key closes help
        return Action(ActionKind.HIDE_HELP)

    if mode.is_input:
        if key in INPUT_KEYS:
            return Action(INPUT_KEYS[key])
        if len(key) == 1 and key.isprintable():
            return Action(ActionKind.INPUT_CHAR, key)
        return None

    kind = NORMAL_KEYS.get(key)
    return Action(kind) if kind else None


HELP_TEXT = [
    ("j / Down", "Next article"),
    ("k / Up", "Previous article"),
    ("< / >", "First / last article"),
    ("Enter", "Summarize article"),
    ("g", "Regenerate summary"),
    ("r", "Refresh feeds"),
    ("m", "Toggle read"),
    ("s", "Toggle star"),
    ("f", "Cycle filter (unread / starred / all)"),
    ("o", "Open in browser"),
    ("e", "Email article"),
    ("b", "Save to Raindrop"),
    ("d", "Delete article"),
    ("u", "Undelete article"),
    ("D", "Delete feed"),
    ("a", "Add feed"),
    ("i / w", "Import / export OPML"),
    ("?", "Help"),
    ("q", "Quit"),
]
