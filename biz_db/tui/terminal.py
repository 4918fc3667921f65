"""Raw-mode terminal input with resize wake-ups."""
from __future__ import annotations

import os
import select
import signal
import sys
import termios
from dataclasses import dataclass

READ_SIZE = 1024


@dataclass(frozen=True)
class TerminalEvent:
    kind: str  # "input" | "resize" | "timeout" | "eof"
    data: bytes = b""


TIMEOUT = TerminalEvent("timeout")
RESIZE = TerminalEvent("resize")
EOF = TerminalEvent("eof")


class RawTerminal:
    """Puts stdin in raw mode for the duration of a `with` block.

    Echo, line buffering, signal keys (Ctrl+C) and flow control (Ctrl+S) are
    all disabled so every key reaches the controller as bytes. Output
    post-processing stays on so newlines still return the carriage.
    SIGWINCH is turned into a "resize" event through a self-pipe.
    """

    def __init__(self, fd: int | None = None):
        self.fd = sys.stdin.fileno() if fd is None else fd
        self._saved: list | None = None
        self._wake_r: int | None = None
        self._wake_w: int | None = None
        self._prev_winch = None

    def __enter__(self) -> RawTerminal:
        self._saved = termios.tcgetattr(self.fd)
        attrs = termios.tcgetattr(self.fd)
        attrs[0] &= ~(termios.BRKINT | termios.ICRNL | termios.INPCK | termios.ISTRIP | termios.IXON)
        attrs[3] &= ~(termios.ECHO | termios.ICANON | termios.IEXTEN | termios.ISIG)
        attrs[6][termios.VMIN] = 1
        attrs[6][termios.VTIME] = 0
        termios.tcsetattr(self.fd, termios.TCSAFLUSH, attrs)

        self._wake_r, self._wake_w = os.pipe()
        os.set_blocking(self._wake_w, False)
        self._prev_winch = signal.signal(signal.SIGWINCH, self._on_winch)
        return self

    def __exit__(self, *args) -> None:
        if self._prev_winch is not None:
            signal.signal(signal.SIGWINCH, self._prev_winch)
            self._prev_winch = None
        for fd in (self._wake_r, self._wake_w):
            if fd is not None:
                os.close(fd)
        self._wake_r = self._wake_w = None
        if self._saved is not None:
            termios.tcsetattr(self.fd, termios.TCSADRAIN, self._saved)
            self._saved = None

    def _on_winch(self, signum, frame) -> None:
        if self._wake_w is None:
            return
        try:
            os.write(self._wake_w, b"\0")
        except BlockingIOError:
            # A wake-up is already queued.
            pass

    def read(self, timeout: float | None = None) -> TerminalEvent:
        """Wait for input, a resize or the timeout, whichever comes first."""
        watched = [self.fd]
        if self._wake_r is not None:
            watched.append(self._wake_r)
        readable, _, _ = select.select(watched, [], [], timeout)
        if not readable:
            return TIMEOUT
        if self._wake_r is not None and self._wake_r in readable:
            os.read(self._wake_r, READ_SIZE)
            return RESIZE
        data = os.read(self.fd, READ_SIZE)
        if not data:
            return EOF
        return TerminalEvent("input", data)
