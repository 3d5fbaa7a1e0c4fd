"""Terminal styling: colours, padding, borders and ANSI-aware width handling."""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

from wcwidth import wcwidth

_ANSI_RE = re.compile(
    r"\x1b\[[0-?]*[ -/]*[@-~]"
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"
    r"|\x1b[@-Z\\-_]"
)
_RESET = "\x1b[0m"

_BORDER_TOP_LEFT = "╭"
_BORDER_TOP_RIGHT = "╮"
_BORDER_BOTTOM_LEFT = "╰"
_BORDER_BOTTOM_RIGHT = "╯"
_BORDER_HORIZONTAL = "─"
_BORDER_VERTICAL = "│"


def strip_ansi(s: str) -> str:
    """Remove ANSI escape sequences."""
    return _ANSI_RE.sub("", s)


def _char_width(ch: str) -> int:
    return max(wcwidth(ch), 0)


def visible_width(s: str) -> int:
    """Number of terminal cells the widest line of ``s`` occupies."""
    return max(
        (sum(_char_width(ch) for ch in strip_ansi(line)) for line in s.split("\n")),
        default=0,
    )


def _tokens(s: str) -> Iterator[tuple[bool, str]]:
    pos = 0
    for match in _ANSI_RE.finditer(s):
        if match.start() > pos:
            yield False, s[pos : match.start()]
        yield True, match.group()
        pos = match.end()
    if pos < len(s):
        yield False, s[pos:]


def truncate_ansi(s: str, width: int, tail: str = "") -> str:
    """Cut ``s`` to ``width`` cells, ending with ``tail``; escape sequences are kept."""
    if visible_width(s) <= width:
        return s
    budget = width - visible_width(tail)
    if budget < 0:
        return ""

    out: list[str] = []
    used = 0
    cut = False
    for is_escape, chunk in _tokens(s):
        if is_escape:
            out.append(chunk)
            continue
        for ch in chunk:
            if cut:
                continue
            w = _char_width(ch)
            if used + w > budget:
                cut = True
                out.append(tail)
                continue
            out.append(ch)
            used += w
    if not cut:
        out.append(tail)
    return "".join(out)


def _fg_code(color: str) -> str:
    hex_digits = color.lstrip("#")
    r, g, b = (int(hex_digits[i : i + 2], 16) for i in (0, 2, 4))
    return f"38;2;{r};{g};{b}"


@dataclass(frozen=True)
class Style:
    """Foreground colour, bold, padding, fixed width and an optional rounded border.

    ``padding`` is (vertical, horizontal); ``width`` includes the padding and
    excludes the border.
    """

    foreground: str | None = None
    bold: bool = False
    padding: tuple[int, int] = (0, 0)
    width: int = 0
    border: bool = False
    border_foreground: str | None = None

    def _codes(self) -> str:
        codes = []
        if self.bold:
            codes.append("1")
        if self.foreground:
            codes.append(_fg_code(self.foreground))
        return ";".join(codes)

    def render(self, text: str) -> str:
        lines = str(text).split("\n")
        vpad, hpad = self.padding
        inner = max(visible_width(line) for line in lines)
        if self.width:
            inner = max(inner, self.width - 2 * hpad)

        codes = self._codes()
        rendered = []
        for line in lines:
            fill = " " * (inner - visible_width(line))
            body = f"\x1b[{codes}m{line}{_RESET}" if codes and line else line
            rendered.append(" " * hpad + body + fill + " " * hpad)

        full = inner + 2 * hpad
        blank = " " * full
        rendered = [blank] * vpad + rendered + [blank] * vpad

        if self.border:
            rendered = self._frame(rendered, full)
        return "\n".join(rendered)

    def _frame(self, lines: list[str], width: int) -> list[str]:
        def paint(part: str) -> str:
            if self.border_foreground:
                return f"\x1b[{_fg_code(self.border_foreground)}m{part}{_RESET}"
            return part

        top = paint(_BORDER_TOP_LEFT + _BORDER_HORIZONTAL * width + _BORDER_TOP_RIGHT)
        bottom = paint(_BORDER_BOTTOM_LEFT + _BORDER_HORIZONTAL * width + _BORDER_BOTTOM_RIGHT)
        side = paint(_BORDER_VERTICAL)
        return [top, *(side + line + side for line in lines), bottom]


COLOR_WHITE = "#E0E0E0"
COLOR_DIM = "#6B6B6B"
COLOR_BLUE = "#6B9BF2"
COLOR_GREEN = "#5CB85C"
COLOR_AMBER = "#D4A03C"
COLOR_RED = "#D96459"
COLOR_CYAN = "#5BB8C9"
COLOR_BORDER = "#444444"

STYLE_HEADER = Style(foreground=COLOR_WHITE, bold=True, padding=(0, 1))
STYLE_SEARCH = Style(foreground=COLOR_WHITE)
STYLE_SEARCH_PROMPT = Style(foreground=COLOR_BLUE, bold=True)
STYLE_TABLE_HEADER = Style(foreground=COLOR_DIM, bold=True)
STYLE_SELECTED = Style(foreground=COLOR_BLUE, bold=True)
STYLE_CURSOR = Style(foreground=COLOR_WHITE, bold=True)
STYLE_UP_TO_DATE = Style(foreground=COLOR_GREEN)
STYLE_OUTDATED = Style(foreground=COLOR_AMBER)
STYLE_ERROR = Style(foreground=COLOR_RED)
STYLE_UPDATING = Style(foreground=COLOR_CYAN)
STYLE_FOOTER = Style(foreground=COLOR_DIM)
STYLE_POPUP_BORDER = Style(padding=(0, 1), border=True, border_foreground=COLOR_BORDER)
STYLE_POPUP_TITLE = Style(foreground=COLOR_WHITE, bold=True)
STYLE_DIM = Style(foreground=COLOR_DIM)