"""Terminal event loop that drives the interface model."""

from __future__ import annotations

import queue
import sys
from concurrent.futures import Future, ThreadPoolExecutor

from blessed import Terminal

from depstui.buildinfo import BuildInfo
from depstui.detector import Environment
from depstui.keys import (
    KEY_BACKSPACE,
    KEY_DELETE,
    KEY_DOWN,
    KEY_END,
    KEY_ENTER,
    KEY_ESCAPE,
    KEY_HOME,
    KEY_LEFT,
    KEY_RIGHT,
    KEY_TAB,
    KEY_UP,
    Key,
)
from depstui.messages import Command, QuitRequested, WindowResized
from depstui.model import Model
from depstui.view import render

_POLL_SECONDS = 0.05
_WORKERS = 16

_NAMED_KEYS = {
    "KEY_UP": KEY_UP,
    "KEY_DOWN": KEY_DOWN,
    "KEY_LEFT": KEY_LEFT,
    "KEY_RIGHT": KEY_RIGHT,
    "KEY_ENTER": KEY_ENTER,
    "KEY_TAB": KEY_TAB,
    "KEY_ESCAPE": KEY_ESCAPE,
    "KEY_BACKSPACE": KEY_BACKSPACE,
    "KEY_DELETE": KEY_DELETE,
    "KEY_HOME": KEY_HOME,
    "KEY_END": KEY_END,
}

_RAW_KEYS = {
    "\r": KEY_ENTER,
    "\n": KEY_ENTER,
    "\t": KEY_TAB,
    "\x1b": KEY_ESCAPE,
    "\x7f": KEY_BACKSPACE,
    "\x08": KEY_BACKSPACE,
    "\x1b\x7f": "alt+backspace",
}


def translate_keystroke(keystroke: object) -> Key | None:
    """Turn a terminal keystroke into a Key; None when there is nothing to handle."""
    if keystroke is None:
        return None
    name = getattr(keystroke, "name", None)
    if name in _NAMED_KEYS:
        return Key(_NAMED_KEYS[name])

    text = str(keystroke)
    if not text:
        return None
    if text in _RAW_KEYS:
        return Key(_RAW_KEYS[text])
    if len(text) == 1:
        code = ord(text)
        if 1 <= code <= 26:
            return Key(f"ctrl+{chr(code + ord('a') - 1)}")
        if text.isprintable():
            return Key.char(text)
    return None


class _Runner:
    """Runs commands on worker threads and collects the messages they return."""

    def __init__(self) -> None:
        self.messages: queue.Queue[object] = queue.Queue()
        self._executor = ThreadPoolExecutor(max_workers=_WORKERS)

    def dispatch(self, commands: list[Command]) -> bool:
        """Start the commands; return False if one of them asks to quit."""
        for command in commands:
            if command is QuitRequested:
                return False
            self._executor.submit(command).add_done_callback(self._deliver)
        return True

    def _deliver(self, future: Future) -> None:
        if future.cancelled() or future.exception() is not None:
            return
        self.messages.put(future.result())

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


def _draw(term: Terminal, model: Model) -> None:
    lines = render(model).split("\n")[: max(term.height, 1)]
    screen = "".join(
        term.move_yx(row, 0) + line + term.clear_eol for row, line in enumerate(lines)
    )
    sys.stdout.write(term.home + screen + term.clear_eos)
    sys.stdout.flush()


def run(env: Environment, build: BuildInfo) -> None:
    """Show the interactive package table until the user quits."""
    term = Terminal()
    model = Model(env, build)
    runner = _Runner()
    try:
        running = runner.dispatch(model.init())
        size: tuple[int, int] | None = None
        dirty = True
        with term.fullscreen(), term.raw(), term.hidden_cursor():
            while running:
                current = (term.width, term.height)
                if current != size:
                    size = current
                    running = runner.dispatch(model.update(WindowResized(*current)))
                    dirty = True
                if dirty:
                    _draw(term, model)
                    dirty = False

                key = translate_keystroke(term.inkey(timeout=_POLL_SECONDS))
                if running and key is not None:
                    running = runner.dispatch(model.update(key))
                    dirty = True

                while running:
                    try:
                        msg = runner.messages.get_nowait()
                    except queue.Empty:
                        break
                    running = runner.dispatch(model.update(msg))
                    dirty = True
    finally:
        runner.close()