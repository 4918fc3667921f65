"""Decode raw terminal input into logical keys.

The terminal is read in raw mode, so control keys arrive as single bytes
and arrow keys as ANSI escape sequences (CSI ``ESC [ A`` or, in application
cursor mode, SS3 ``ESC O A``).
"""
from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum


class Key(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    ENTER = "enter"
    TAB = "tab"
    ESCAPE = "escape"
    BACKSPACE = "backspace"
    CTRL_C = "ctrl+c"
    CTRL_S = "ctrl+s"
    CTRL_D = "ctrl+d"
    CTRL_N = "ctrl+n"
    PRINTABLE = "printable"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class LogicalKey:
    key: Key
    char: str = ""

    @property
    def is_printable(self) -> bool:
        return self.key is Key.PRINTABLE


UNRECOGNIZED = LogicalKey(Key.UNRECOGNIZED)

_CONTROL = {
    "\x03": Key.CTRL_C,
    "\x13": Key.CTRL_S,
    "\x04": Key.CTRL_D,
    "\x0e": Key.CTRL_N,
    "\r": Key.ENTER,
    "\n": Key.ENTER,
    "\t": Key.TAB,
    "\x7f": Key.BACKSPACE,
    "\x08": Key.BACKSPACE,
}

_ARROWS = {"A": Key.UP, "B": Key.DOWN, "C": Key.RIGHT, "D": Key.LEFT}


def printable(ch: str) -> LogicalKey:
    return LogicalKey(Key.PRINTABLE, ch)


def _escape_sequence(text: str, i: int) -> tuple[LogicalKey, int]:
    """Decode the sequence starting at text[i] == ESC; return (key, next index)."""
    if i + 1 >= len(text):
        return LogicalKey(Key.ESCAPE), i + 1

    intro = text[i + 1]
    if intro == "O":
        if i + 2 < len(text):
            key = _ARROWS.get(text[i + 2])
            return (LogicalKey(key) if key else UNRECOGNIZED), i + 3
        return UNRECOGNIZED, i + 2

    if intro != "[":
        # Lone ESC followed by an ordinary key press.
        return LogicalKey(Key.ESCAPE), i + 1

    # CSI: parameter bytes 0x30-0x3F, intermediates 0x20-0x2F, one final 0x40-0x7E.
    j = i + 2
    while j < len(text) and "\x30" <= text[j] <= "\x3f":
        j += 1
    params = text[i + 2 : j]
    while j < len(text) and "\x20" <= text[j] <= "\x2f":
        j += 1
    if j >= len(text) or not ("\x40" <= text[j] <= "\x7e"):
        return UNRECOGNIZED, j
    final = text[j]
    key = _ARROWS.get(final) if not params else None
    return (LogicalKey(key) if key else UNRECOGNIZED), j + 1


def iter_keys(data: bytes | str) -> Iterator[LogicalKey]:
    """Split one terminal read into consecutive logical keys.

    Fast typing or a paste can deliver several keys in a single read.
    """
    text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\x1b":
            key, i = _escape_sequence(text, i)
            yield key
            continue
        i += 1
        control = _CONTROL.get(ch)
        if control is not None:
            yield LogicalKey(control)
        elif ch >= " " and ch != "\ufffd":
            yield printable(ch)
        else:
            yield UNRECOGNIZED


def decode(raw: bytes | str) -> LogicalKey:
    """Decode a single input event; anything but exactly one key is unrecognized."""
    keys = list(iter_keys(raw))
    if len(keys) != 1:
        return UNRECOGNIZED
    return keys[0]
