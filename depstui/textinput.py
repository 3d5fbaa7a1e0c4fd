"""A single-line editable text field."""

from __future__ import annotations

from depstui.keys import Key
from depstui.styles import Style

_REVERSE = "\x1b[7m"
_RESET = "\x1b[0m"


def _sanitize(value: str) -> str:
    return "".join(ch for ch in value if ch.isprintable())


class TextInput:
    """Editable line with a prompt; keys are only handled while focused."""

    def __init__(
        self,
        prompt: str = "> ",
        char_limit: int = 0,
        prompt_style: Style | None = None,
        text_style: Style | None = None,
    ) -> None:
        self.prompt = prompt
        self.char_limit = char_limit
        self.prompt_style = prompt_style or Style()
        self.text_style = text_style or Style()
        self.focused = False
        self._value = ""
        self._pos = 0

    @property
    def value(self) -> str:
        return self._value

    @property
    def position(self) -> int:
        """Cursor position as an index into the value."""
        return self._pos

    def focus(self) -> None:
        self.focused = True

    def blur(self) -> None:
        self.focused = False

    def set_value(self, value: str) -> None:
        """Replace the text; the cursor moves to the end if it was at an empty start."""
        was_empty = not self._value
        text = _sanitize(value)
        if self.char_limit > 0:
            text = text[: self.char_limit]
        self._value = text
        if (self._pos == 0 and was_empty) or self._pos > len(text):
            self._pos = len(text)

    def update(self, key: Key) -> None:
        """Apply an editing key or insert the key's text at the cursor."""
        if not self.focused:
            return
        action = {
            "backspace": self._delete_before,
            "ctrl+h": self._delete_before,
            "delete": self._delete_after,
            "ctrl+d": self._delete_after,
            "left": self._move_left,
            "ctrl+b": self._move_left,
            "right": self._move_right,
            "ctrl+f": self._move_right,
            "home": self._move_home,
            "ctrl+a": self._move_home,
            "end": self._move_end,
            "ctrl+e": self._move_end,
            "ctrl+u": self._delete_to_start,
            "ctrl+k": self._delete_to_end,
            "ctrl+w": self._delete_word_before,
            "alt+backspace": self._delete_word_before,
        }.get(key.name)
        if action is not None:
            action()
        elif key.text:
            self._insert(key.text)

    def _insert(self, text: str) -> None:
        text = _sanitize(text)
        if self.char_limit > 0:
            text = text[: max(0, self.char_limit - len(self._value))]
        if not text:
            return
        self._value = self._value[: self._pos] + text + self._value[self._pos :]
        self._pos += len(text)

    def _delete_before(self) -> None:
        if self._pos > 0:
            self._value = self._value[: self._pos - 1] + self._value[self._pos :]
            self._pos -= 1

    def _delete_after(self) -> None:
        self._value = self._value[: self._pos] + self._value[self._pos + 1 :]

    def _move_left(self) -> None:
        self._pos = max(0, self._pos - 1)

    def _move_right(self) -> None:
        self._pos = min(len(self._value), self._pos + 1)

    def _move_home(self) -> None:
        self._pos = 0

    def _move_end(self) -> None:
        self._pos = len(self._value)

    def _delete_to_start(self) -> None:
        self._value = self._value[self._pos :]
        self._pos = 0

    def _delete_to_end(self) -> None:
        self._value = self._value[: self._pos]

    def _delete_word_before(self) -> None:
        head = self._value[: self._pos]
        trimmed = head.rstrip(" ")
        cut = len(trimmed)
        while cut > 0 and trimmed[cut - 1] != " ":
            cut -= 1
        self._value = head[:cut] + self._value[self._pos :]
        self._pos = cut

    def view(self) -> str:
        """Render the prompt and text, with a block cursor while focused."""
        prompt = self.prompt_style.render(self.prompt)
        if not self.focused:
            return prompt + self.text_style.render(self._value)
        before = self._value[: self._pos]
        under = self._value[self._pos : self._pos + 1] or " "
        after = self._value[self._pos + 1 :]
        return (
            prompt
            + self.text_style.render(before)
            + f"{_REVERSE}{under}{_RESET}"
            + self.text_style.render(after)
        )