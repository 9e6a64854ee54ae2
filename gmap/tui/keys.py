"""Translate raw key sequences (as read by ``click.getchar``) into events."""

from __future__ import annotations

import click

from gmap.tui.state import Event, Key

_SEQUENCES = {
    "\x1b[A": Key.UP,
    "\x1bOA": Key.UP,
    "\x1b[B": Key.DOWN,
    "\x1bOB": Key.DOWN,
    "\x1b[5~": Key.PAGE_UP,
    "\x1b[6~": Key.PAGE_DOWN,
    "\x1b[H": Key.HOME,
    "\x1bOH": Key.HOME,
    "\x1b[1~": Key.HOME,
    "\x1b[F": Key.END,
    "\x1bOF": Key.END,
    "\x1b[4~": Key.END,
    "\x1b[Z": Key.PREV_TAB,
    "\x1bOP": Key.F1,
    "\x1b[11~": Key.F1,
    "\t": Key.NEXT_TAB,
    "\r": Key.ENTER,
    "\n": Key.ENTER,
    "\x1b": Key.ESCAPE,
    "\x7f": Key.BACKSPACE,
    "\x08": Key.BACKSPACE,
    # Windows console scan codes
    "\xe0H": Key.UP,
    "\xe0P": Key.DOWN,
    "\xe0I": Key.PAGE_UP,
    "\xe0Q": Key.PAGE_DOWN,
    "\xe0G": Key.HOME,
    "\xe0O": Key.END,
    "\x00;": Key.F1,
}


def to_event(raw: str) -> Event | None:
    """Map one keypress to an :class:`Event`; unknown sequences map to None."""
    if raw in _SEQUENCES:
        return Event(_SEQUENCES[raw])
    if len(raw) == 1 and raw.isprintable():
        return Event(Key.CHAR, raw)
    return None


def read_event() -> Event | None:
    """Block until a key is pressed. Ctrl-C raises KeyboardInterrupt."""
    return to_event(click.getchar())
