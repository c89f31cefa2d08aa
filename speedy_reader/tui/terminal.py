"""
Raw keyboard input for the interactive loop.

The terminal is put in cbreak mode; bytes are read whenever stdin becomes
readable and decoded into key names understood by `keymap.map_key`.
"""

import asyncio
import os
import sys
import termios
import tty

from .. import keymap

_ESCAPE_SEQUENCES = {
    "[A": keymap.UP,
    "[B": keymap.DOWN,
    "OA": keymap.UP,
    "OB": keymap.DOWN,
}


def parse_keys(data: str) -> list[str]:
    """Decode a chunk of terminal input into key names."""
    keys = []
    i = 0
    while i < len(data):
        ch = data[i]
        if ch == "\x1b":
            sequence = data[i + 1:i + 3]
            if sequence in _ESCAPE_SEQUENCES:
                keys.append(_ESCAPE_SEQUENCES[sequence])
                i += 3
                continue
            if sequence.startswith("["):
                # Unhandled CSI sequence: skip to its final byte
                j = i + 2
                while j < len(data) and not (data[j].isalpha() or data[j] == "~"):
                    j += 1
                i = j + 1
                continue
            keys.append(keymap.ESC)
        elif ch in ("\r", "\n"):
            keys.append(keymap.ENTER)
        elif ch in ("\x7f", "\b"):
            keys.append(keymap.BACKSPACE)
        elif ch == "\x03":
            keys.append(keymap.CTRL_C)
        elif ch.isprintable():
            keys.append(ch)
        i += 1
    return keys


class KeyReader:
    """Async key source over a cbreak-mode tty. Use as a context manager."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdin
        self.fd = self.stream.fileno()
        self._old_settings = None
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None

    def __enter__(self) -> "KeyReader":
        self._old_settings = termios.tcgetattr(self.fd)
        tty.setcbreak(self.fd)
        # Ctrl-C arrives as a key instead of SIGINT
        attrs = termios.tcgetattr(self.fd)
        attrs[3] &= ~termios.ISIG
        termios.tcsetattr(self.fd, termios.TCSADRAIN, attrs)

        self._loop = asyncio.get_running_loop()
        self._loop.add_reader(self.fd, self._on_readable)
        return self

    def __exit__(self, *exc_info):
        if self._loop is not None:
            self._loop.remove_reader(self.fd)
        if self._old_settings is not None:
            termios.tcsetattr(self.fd, termios.TCSADRAIN, self._old_settings)

    def _on_readable(self):
        data = os.read(self.fd, 64)
        for key in parse_keys(data.decode("utf-8", errors="ignore")):
            self._queue.put_nowait(key)

    async def next_key(self, timeout: float) -> str | None:
        """Wait up to timeout seconds for a key press."""
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
