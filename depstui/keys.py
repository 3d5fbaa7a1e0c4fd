"""Key presses and the key bindings of the interface."""

from __future__ import annotations

from dataclasses import dataclass

KEY_UP = "up"
KEY_DOWN = "down"
KEY_LEFT = "left"
KEY_RIGHT = "right"
KEY_ENTER = "enter"
KEY_TAB = "tab"
KEY_ESCAPE = "esc"
KEY_BACKSPACE = "backspace"
KEY_DELETE = "delete"
KEY_HOME = "home"
KEY_END = "end"
KEY_SPACE = "space"


@dataclass(frozen=True)
class Key:
    """A single key press.

    ``name`` is the keystroke as bindings refer to it ("a", "up", "ctrl+r");
    ``text`` is the printable text the key produces, empty for special keys.
    """

    name: str
    text: str = ""

    @classmethod
    def char(cls, ch: str) -> Key:
        """Key press for one printable character."""
        if len(ch) != 1:
            raise ValueError(f"expected a single character, got {ch!r}")
        return cls(name=KEY_SPACE if ch == " " else ch, text=ch)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Binding:
    """Keystrokes that trigger one action, with the text shown in help."""

    keys: tuple[str, ...]
    help_key: str = ""
    help_desc: str = ""

    def matches(self, key: Key) -> bool:
        return str(key) in self.keys


@dataclass(frozen=True)
class KeyMap:
    up: Binding
    down: Binding
    enter: Binding
    right: Binding
    left: Binding
    search: Binding
    tab: Binding
    reload: Binding
    sort: Binding
    select: Binding
    select_all: Binding
    select_all_up: Binding
    info: Binding
    escape: Binding
    quit: Binding


KEYS = KeyMap(
    up=Binding((KEY_UP,), "↑", "up"),
    down=Binding((KEY_DOWN,), "↓", "down"),
    enter=Binding((KEY_ENTER,), "enter", "update"),
    right=Binding((KEY_RIGHT,), "→", "versions"),
    left=Binding((KEY_LEFT,), "←", "back"),
    search=Binding(("/",), "/", "search"),
    tab=Binding((KEY_TAB,), "tab", "switch search mode"),
    reload=Binding(("ctrl+r",), "ctrl+r", "reload index"),
    sort=Binding(("s",), "s", "sort"),
    select=Binding((KEY_SPACE,), "space", "select"),
    select_all=Binding(("a",), "a", "select outdated"),
    select_all_up=Binding(("A",), "A", "select all"),
    info=Binding(("i",), "i", "package info"),
    escape=Binding((KEY_ESCAPE,), "esc", "back"),
    quit=Binding(("q", "ctrl+c"), "q", "quit"),
)