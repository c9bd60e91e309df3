"""Decode raw terminal input into key, focus, mouse, paste, and resize events."""

from __future__ import annotations

from dataclasses import dataclass

ESC = "\x1b"
PASTE_START = "\x1b[200~"
PASTE_END = "\x1b[201~"

_CSI_FINAL_KEYS = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
}
_CSI_TILDE_KEYS = {
    "1": "home",
    "2": "insert",
    "3": "delete",
    "4": "end",
    "5": "pageup",
    "6": "pagedown",
    "7": "home",
    "8": "end",
}
_PLAIN_KEYS = {
    "\r": "enter",
    "\n": "enter",
    "\t": "tab",
    "\x7f": "backspace",
    "\x08": "backspace",
}


@dataclass(frozen=True, slots=True)
class Key:
    """One key with its modifiers; ``code`` is a character or a key name."""

    code: str
    ctrl: bool = False
    alt: bool = False


@dataclass(frozen=True, slots=True)
class KeyPress:
    key: Key


@dataclass(frozen=True, slots=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True, slots=True)
class FocusChange:
    gained: bool


@dataclass(frozen=True, slots=True)
class MouseInput:
    raw: str


@dataclass(frozen=True, slots=True)
class Paste:
    text: str


TerminalEvent = KeyPress | Resize | FocusChange | MouseInput | Paste


def _ctrl_from_modifier(params: str) -> bool:
    # xterm encodes modifiers as 1 + bitmask in the last parameter; bit 4 is ctrl.
    parts = params.split(";")
    if len(parts) < 2 or not parts[-1].isdigit():
        return False
    return bool((int(parts[-1]) - 1) & 4)


class KeyDecoder:
    """Incremental decoder for the bytes a cbreak-mode terminal sends.

    An escape sequence is expected to arrive within one read; a lone ESC at
    the end of a chunk is the Escape key. Bracketed paste may span reads.
    """

    def __init__(self) -> None:
        self._paste: list[str] | None = None

    def feed(self, data: str) -> list[TerminalEvent]:
        events: list[TerminalEvent] = []
        i = 0
        while i < len(data):
            if self._paste is not None:
                end = data.find(PASTE_END, i)
                if end == -1:
                    self._paste.append(data[i:])
                    break
                self._paste.append(data[i:end])
                events.append(Paste("".join(self._paste)))
                self._paste = None
                i = end + len(PASTE_END)
                continue

            ch = data[i]
            if ch == ESC:
                event, i = self._decode_escape(data, i)
                if event is not None:
                    events.append(event)
                continue

            events.append(KeyPress(self._plain_key(ch)))
            i += 1
        return events

    @staticmethod
    def _plain_key(ch: str) -> Key:
        if ch in _PLAIN_KEYS:
            return Key(_PLAIN_KEYS[ch])
        code = ord(ch)
        if 1 <= code <= 26:
            return Key(chr(ord("a") + code - 1), ctrl=True)
        return Key(ch)

    def _decode_escape(self, data: str, start: int) -> tuple[TerminalEvent | None, int]:
        i = start + 1
        if i >= len(data) or data[i] == ESC:
            return KeyPress(Key("esc")), i

        if data.startswith(PASTE_START, start):
            self._paste = []
            return None, start + len(PASTE_START)

        lead = data[i]
        if lead == "O" and i + 1 < len(data):
            name = _CSI_FINAL_KEYS.get(data[i + 1])
            if name is not None:
                return KeyPress(Key(name)), i + 2
            return KeyPress(Key(data[i + 1], alt=True)), i + 2

        if lead != "[":
            return KeyPress(Key(self._plain_key(lead).code, alt=True)), i + 1

        i += 1
        if i >= len(data):
            return KeyPress(Key("[", alt=True)), i
        if data[i] in "IO":
            return FocusChange(gained=data[i] == "I"), i + 1
        if data[i] == "M":
            return MouseInput(data[start : i + 4]), min(i + 4, len(data))
        if data[i] == "<":
            j = i + 1
            while j < len(data) and data[j] not in "Mm":
                j += 1
            return MouseInput(data[start : j + 1]), min(j + 1, len(data))

        j = i
        while j < len(data) and not ("\x40" <= data[j] <= "\x7e"):
            j += 1
        if j >= len(data):
            return None, j
        params, final = data[i:j], data[j]
        if final == "~":
            name = _CSI_TILDE_KEYS.get(params.split(";")[0])
            if name is None:
                return None, j + 1
            return KeyPress(Key(name, ctrl=_ctrl_from_modifier(params))), j + 1
        name = _CSI_FINAL_KEYS.get(final)
        if name is None:
            return None, j + 1
        return KeyPress(Key(name, ctrl=_ctrl_from_modifier(params))), j + 1
