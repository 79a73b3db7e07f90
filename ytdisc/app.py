"""Run the interface in a terminal, feeding keys and results to the model."""

from __future__ import annotations

import queue
import threading
from typing import Optional

import blessed

from .model import Command, ErrorMessage, KeyPress, Message, Model, Quit, WindowSize
from .views import render

_POLL_INTERVAL = 0.1

_NAMED_KEYS = {
    "KEY_UP": "up",
    "KEY_DOWN": "down",
    "KEY_LEFT": "left",
    "KEY_RIGHT": "right",
    "KEY_ENTER": "enter",
    "KEY_ESCAPE": "esc",
    "KEY_BACKSPACE": "backspace",
    "KEY_DELETE": "backspace",
    "KEY_TAB": "tab",
}
_CONTROL_KEYS = {
    "\r": "enter",
    "\n": "enter",
    "\x1b": "esc",
    "\x7f": "backspace",
    "\x08": "backspace",
    "\t": "tab",
    "\x03": "ctrl+c",
}


def translate_key(keystroke) -> Optional[KeyPress]:
    """Turn a terminal keystroke into a key press; None when nothing was typed."""
    text = str(keystroke)
    name = getattr(keystroke, "name", None)
    if getattr(keystroke, "is_sequence", False) and name:
        return KeyPress(_NAMED_KEYS.get(name, name.removeprefix("KEY_").lower()))
    if not text:
        return None
    if text in _CONTROL_KEYS:
        return KeyPress(_CONTROL_KEYS[text])
    if len(text) == 1 and ord(text) < 0x20:
        return KeyPress("ctrl+" + chr(ord(text) + 0x60))
    return KeyPress(text, text)


def _execute(command: Command, inbox: queue.Queue) -> None:
    try:
        message = command()
    except Exception as err:  # a failing task is shown, not fatal
        message = ErrorMessage(err)
    if message is not None:
        inbox.put(message)


def _launch(commands: list[Command], inbox: queue.Queue) -> bool:
    """Start each command in the background; True when one asks to quit."""
    for command in commands:
        if command is Quit:
            return True
        threading.Thread(target=_execute, args=(command, inbox), daemon=True).start()
    return False


def run(model: Model) -> Model:
    """Drive ``model`` in the full terminal screen until it quits."""
    term = blessed.Terminal()
    inbox: queue.Queue[Message] = queue.Queue()
    last_frame = None

    def draw() -> None:
        nonlocal last_frame
        frame = render(model)
        if frame == last_frame:
            return
        last_frame = frame
        body = "\r\n".join(frame.split("\n"))
        print(term.home + term.clear + body, end="", flush=True)

    with term.fullscreen(), term.hidden_cursor(), term.raw():
        size = (term.width, term.height)
        model.update(WindowSize(*size))
        done = _launch(model.init(), inbox)

        while not done:
            draw()
            pressed = translate_key(term.inkey(timeout=_POLL_INTERVAL))
            if pressed is not None:
                done = _launch(model.update(pressed), inbox)

            while not done:
                try:
                    message = inbox.get_nowait()
                except queue.Empty:
                    break
                if isinstance(message, Quit):
                    done = True
                    break
                done = _launch(model.update(message), inbox)

            current = (term.width, term.height)
            if not done and current != size:
                size = current
                done = _launch(model.update(WindowSize(*size)), inbox)

    return model