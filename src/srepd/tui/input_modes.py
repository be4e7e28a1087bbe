"""Key tables for the four focus modes.

All keyboard input routes through on_key into the reducer as KeyPress
messages; Textual BINDINGS are not used. Keys a mode does not map fall
through to the focused widget (the detail viewport, the input line).
"""

from srepd.tui.model import ViewMode


_QUIT = {"ctrl+q": "quit", "ctrl+c": "quit"}

# [LAW:one-source-of-truth] Key→action mapping per mode.
MODE_KEYMAP: dict[ViewMode, dict[str, str]] = {
    ViewMode.TABLE: {
        **_QUIT,
        "h": "help",
        "up": "up",
        "k": "up",
        "down": "down",
        "j": "down",
        "g": "top",
        "G": "bottom",
        "t": "team",
        "r": "refresh",
        "i": "input",
        ":": "input",
        "colon": "input",
        "ctrl+r": "auto_refresh",
        "ctrl+l": "action_log",
        "enter": "view",
        "ctrl+s": "silence",
        "a": "ack",
        "ctrl+e": "re_escalate",
        "n": "note",
        "l": "login",
        "o": "open",
    },
    ViewMode.INCIDENT: {
        **_QUIT,
        "h": "help",
        "escape": "back",
        "r": "refresh",
        "a": "ack",
        "ctrl+s": "silence",
        "ctrl+e": "re_escalate",
        "n": "note",
        "l": "login",
        "o": "open",
    },
    ViewMode.INPUT: {
        **_QUIT,
        "escape": "back",
        "enter": "enter",
    },
    ViewMode.ERROR: {
        **_QUIT,
        "escape": "back",
    },
}


# [LAW:one-source-of-truth] Help display per mode.
# Format: (keys, action, description); keys must resolve to action in MODE_KEYMAP.
HELP_KEYS: dict[ViewMode, list[tuple[tuple[str, ...], str, str]]] = {
    ViewMode.TABLE: [
        (("up", "k"), "up", "move up"),
        (("down", "j"), "down", "move down"),
        (("g",), "top", "go to top"),
        (("G",), "bottom", "go to bottom"),
        (("enter",), "view", "view incident"),
        (("a",), "ack", "acknowledge"),
        (("ctrl+s",), "silence", "silence"),
        (("ctrl+e",), "re_escalate", "re-escalate"),
        (("n",), "note", "add note"),
        (("l",), "login", "login to cluster"),
        (("o",), "open", "open in browser"),
        (("t",), "team", "toggle team/individual"),
        (("r",), "refresh", "refresh"),
        (("ctrl+r",), "auto_refresh", "toggle auto-refresh"),
        (("ctrl+l",), "action_log", "toggle action log"),
        (("i", ":", "colon"), "input", "input"),
        (("h",), "help", "toggle help"),
        (("ctrl+q", "ctrl+c"), "quit", "quit"),
    ],
    ViewMode.INCIDENT: [
        (("escape",), "back", "back to list"),
        (("a",), "ack", "acknowledge"),
        (("ctrl+s",), "silence", "silence"),
        (("ctrl+e",), "re_escalate", "re-escalate"),
        (("n",), "note", "add note"),
        (("l",), "login", "login to cluster"),
        (("o",), "open", "open in browser"),
        (("r",), "refresh", "refresh"),
        (("h",), "help", "toggle help"),
        (("ctrl+q", "ctrl+c"), "quit", "quit"),
    ],
    ViewMode.INPUT: [
        (("escape",), "back", "back"),
        (("enter",), "enter", "submit"),
        (("ctrl+q", "ctrl+c"), "quit", "quit"),
    ],
    ViewMode.ERROR: [
        (("escape",), "back", "dismiss"),
        (("ctrl+q", "ctrl+c"), "quit", "quit"),
    ],
}


_KEY_LABELS = {
    "escape": "esc",
    "colon": None,
    "ctrl+s": "^s",
    "ctrl+e": "^e",
    "ctrl+r": "^r",
    "ctrl+l": "^l",
    "ctrl+q": "^q",
    "ctrl+c": "^c",
    "up": "↑",
    "down": "↓",
}


def key_label(keys: tuple[str, ...]) -> str:
    """Short display form of a key group, e.g. ('up', 'k') -> '↑/k'."""
    labels = [_KEY_LABELS.get(k, k) for k in keys]
    return "/".join(label for label in labels if label)


def action_for(mode: ViewMode, key: str) -> str | None:
    return MODE_KEYMAP[mode].get(key)
