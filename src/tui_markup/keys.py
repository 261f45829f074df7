"""Keyboard input: splitting raw terminal reads into keys and naming them.

Only legacy (xterm-style) sequences are understood.  Key identifiers use
the ``"ctrl+a"`` / ``"shift+tab"`` / ``"enter"`` format.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

ESC = "\x1b"

KeyId = str


class Key:
    """Identifiers of the keys the event loop and handlers care about."""

    escape = "escape"
    enter = "enter"
    tab = "tab"
    shift_tab = "shift+tab"
    space = "space"
    backspace = "backspace"
    delete = "delete"
    insert = "insert"
    home = "home"
    end = "end"
    page_up = "pageUp"
    page_down = "pageDown"
    up = "up"
    down = "down"
    left = "left"
    right = "right"


# CSI / SS3 final bytes shared by both cursor-key modes.
_CURSOR_FINALS = {
    "A": Key.up,
    "B": Key.down,
    "C": Key.right,
    "D": Key.left,
    "H": Key.home,
    "F": Key.end,
}
# ``CSI <n> ~`` editing keys.
_TILDE_CODES = {
    "1": Key.home,
    "2": Key.insert,
    "3": Key.delete,
    "4": Key.end,
    "5": Key.page_up,
    "6": Key.page_down,
}

LEGACY_KEY_SEQUENCES: dict[str, KeyId] = {
    **{f"{ESC}[{final}": key for final, key in _CURSOR_FINALS.items()},
    **{f"{ESC}O{final}": key for final, key in _CURSOR_FINALS.items()},
    **{f"{ESC}[{code}~": key for code, key in _TILDE_CODES.items()},
    **{f"{ESC}O{final}": f"f{n}" for n, final in enumerate("PQRS", start=1)},
    f"{ESC}[Z": Key.shift_tab,
}


@dataclass(frozen=True)
class KeyEvent:
    """A single key press: the raw sequence and its identifier, if known."""

    data: str
    key: Optional[KeyId]

    @classmethod
    def from_data(cls, data: str) -> KeyEvent:
        return cls(data, parse_key(data))

    def matches(self, key_id: KeyId) -> bool:
        return self.key == key_id


# ---------------------------------------------------------------------------
# Splitting
# ---------------------------------------------------------------------------


def _sequence_length(data: str) -> int:
    """Length of the escape sequence at the start of *data*."""
    if len(data) == 1:
        return 1
    introducer = data[1]
    if introducer == "[":
        for i in range(2, len(data)):
            if 0x40 <= ord(data[i]) <= 0x7E:
                return i + 1
        return len(data)
    if introducer == "O":
        return min(3, len(data))
    # Alt + key; a doubled ESC is alt+escape.
    return 2


def split_sequences(data: str) -> list[str]:
    """Split one terminal read into individual key sequences.

    Escape sequences stay whole; every other character is its own key.
    """
    sequences: list[str] = []
    pos = 0
    while pos < len(data):
        if data[pos] == ESC:
            length = _sequence_length(data[pos:])
        else:
            length = 1
        sequences.append(data[pos : pos + length])
        pos += length
    return sequences


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_key(data: str) -> Optional[KeyId]:
    """Return the key identifier for one key sequence, or ``None``."""
    if not data:
        return None

    if data in LEGACY_KEY_SEQUENCES:
        return LEGACY_KEY_SEQUENCES[data]

    if data == ESC:
        return "escape"
    if data in ("\r", "\n"):
        return "enter"
    if data == "\t":
        return "tab"
    if data == " ":
        return "space"
    if data in ("\x7f", "\x08"):
        return "backspace"
    if data == "\x00":
        return "ctrl+space"

    # Ctrl + letter (0x01 - 0x1a)
    if len(data) == 1 and 1 <= ord(data) <= 26:
        return "ctrl+" + chr(ord(data) + ord("a") - 1)

    # Alt + key (ESC prefix)
    if len(data) == 2 and data[0] == ESC:
        inner = parse_key(data[1])
        if data[1] == ESC:
            return "alt+escape"
        if inner is not None:
            return "alt+" + inner

    if len(data) == 1 and data.isprintable():
        return data

    return None


def matches_key(data: str, key_id: KeyId) -> bool:
    return parse_key(data) == key_id
