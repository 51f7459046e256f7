from __future__ import annotations

# Escape sequences a terminal sends for common keypresses.
# https://www.tldp.org/LDP/abs/html/escapingsection.html
UP = "\x1b[A"
DOWN = "\x1b[B"
RIGHT = "\x1b[C"
LEFT = "\x1b[D"
ENTER = "\r"
SPACE = " "
TAB = "\t"
BACKSPACE = "\x7f"
ESCAPE = "\x1b"
CTRL_C = "\x03"
CTRL_D = "\x04"

KEYS: dict[str, str] = {
    "UP": UP,
    "DOWN": DOWN,
    "RIGHT": RIGHT,
    "LEFT": LEFT,
    "ENTER": ENTER,
    "SPACE": SPACE,
    "TAB": TAB,
    "BACKSPACE": BACKSPACE,
    "ESCAPE": ESCAPE,
    "CTRL_C": CTRL_C,
    "CTRL_D": CTRL_D,
}


def key(name: str) -> str:
    normalized = name.strip().upper().replace("-", "_")
    try:
        return KEYS[normalized]
    except KeyError:
        raise ValueError(f"unknown key {name!r}; expected one of {', '.join(sorted(KEYS))}") from None
