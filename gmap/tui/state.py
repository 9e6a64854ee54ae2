"""Dashboard state and the pure ``(state, event) -> transition`` reducer.

The reducer never touches data. When a transition needs fresh aggregates it
says so through :class:`Effect`, and the controller performs the work.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from gmap.models import FilterSpec

PAGE_SIZE = 10


class Tab(Enum):
    HEATMAP = "Heatmap"
    STATS = "Stats"
    TIMELINE = "Timeline"
    COMMITS = "Commits"


TABS = tuple(Tab)


class Mode(Enum):
    VIEWING = "viewing"
    SEARCHING = "searching"
    HELP = "help"


class Key(Enum):
    CHAR = "char"
    UP = "up"
    DOWN = "down"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    HOME = "home"
    END = "end"
    NEXT_TAB = "next_tab"
    PREV_TAB = "prev_tab"
    ENTER = "enter"
    ESCAPE = "escape"
    BACKSPACE = "backspace"
    F1 = "f1"


@dataclass(frozen=True)
class Event:
    key: Key
    char: str = ""


class Effect(Enum):
    NONE = "none"
    REAGGREGATE = "reaggregate"
    APPLY_QUERY = "apply_query"
    DRILL = "drill"
    COPY = "copy"
    SHOW = "show"
    QUIT = "quit"


@dataclass(frozen=True)
class UiState:
    mode: Mode = Mode.VIEWING
    tab: Tab = Tab.HEATMAP
    selected: int = 0
    commit_selected: int = 0
    bucket_count: int = 0
    commit_count: int = 0
    query: str = ""
    active_query: str = ""
    filter: FilterSpec = FilterSpec()
    saved_filter: FilterSpec | None = None
    monthly: bool = False
    show_all: bool = False
    working: bool = False


@dataclass(frozen=True)
class Transition:
    state: UiState
    effect: Effect = Effect.NONE


# Printable keys bound while viewing; anything else is ignored.
_VIEW_BINDINGS = {
    "q": "quit",
    "h": "help",
    "/": "search",
    "j": "down",
    "k": "up",
    "g": "first",
    "G": "last",
    "A": "toggle_all",
    "m": "toggle_monthly",
    "M": "toggle_merges",
    "c": "copy",
    "o": "show",
}

_FILTER_CHANGING = {"search", "toggle_all", "toggle_monthly", "toggle_merges"}


def _clamp(index: int, count: int) -> int:
    if count <= 0:
        return 0
    return max(0, min(index, count - 1))


def _move(state: UiState, delta: int | None, to_end: bool = False) -> UiState:
    """Move the cursor of the active list; *delta* None jumps to an end."""
    if state.tab is Tab.COMMITS:
        count, current = state.commit_count, state.commit_selected
    else:
        count, current = state.bucket_count, state.selected
    if delta is None:
        target = count - 1 if to_end else 0
    else:
        target = current + delta
    target = _clamp(target, count)
    if state.tab is Tab.COMMITS:
        return replace(state, commit_selected=target)
    return replace(state, selected=target)


def _cycle_tab(state: UiState, step: int) -> UiState:
    index = (TABS.index(state.tab) + step) % len(TABS)
    return replace(state, tab=TABS[index])


def _action(event: Event) -> str | None:
    if event.key is Key.CHAR:
        return _VIEW_BINDINGS.get(event.char)
    return {
        Key.UP: "up",
        Key.DOWN: "down",
        Key.PAGE_UP: "page_up",
        Key.PAGE_DOWN: "page_down",
        Key.HOME: "first",
        Key.END: "last",
        Key.NEXT_TAB: "next_tab",
        Key.PREV_TAB: "prev_tab",
        Key.ENTER: "open",
        Key.F1: "help",
    }.get(event.key)


def _reduce_help(state: UiState, event: Event) -> Transition:
    dismiss = event.key in (Key.ESCAPE, Key.F1) or (
        event.key is Key.CHAR and event.char == "h"
    )
    if dismiss:
        return Transition(replace(state, mode=Mode.VIEWING))
    return Transition(state)


def _reduce_search(state: UiState, event: Event) -> Transition:
    if event.key is Key.CHAR and event.char:
        return Transition(replace(state, query=state.query + event.char))
    if event.key is Key.BACKSPACE:
        return Transition(replace(state, query=state.query[:-1]))
    if event.key is Key.ENTER:
        done = replace(
            state, mode=Mode.VIEWING, active_query=state.query.strip(), query=""
        )
        return Transition(done, Effect.APPLY_QUERY)
    if event.key is Key.ESCAPE:
        prior = state.saved_filter if state.saved_filter is not None else state.filter
        restored = replace(
            state, mode=Mode.VIEWING, query="", filter=prior, saved_filter=None
        )
        effect = Effect.REAGGREGATE if prior != state.filter else Effect.NONE
        return Transition(restored, effect)
    return Transition(state)


def _reduce_view(state: UiState, event: Event) -> Transition:
    action = _action(event)
    if action is None:
        return Transition(state)
    if state.working and action in _FILTER_CHANGING:
        return Transition(state)

    if action == "quit":
        return Transition(state, Effect.QUIT)
    if action == "help":
        return Transition(replace(state, mode=Mode.HELP))
    if action == "search":
        return Transition(
            replace(state, mode=Mode.SEARCHING, query="", saved_filter=state.filter)
        )
    if action == "up":
        return Transition(_move(state, -1))
    if action == "down":
        return Transition(_move(state, 1))
    if action == "page_up":
        return Transition(_move(state, -PAGE_SIZE))
    if action == "page_down":
        return Transition(_move(state, PAGE_SIZE))
    if action == "first":
        return Transition(_move(state, None))
    if action == "last":
        return Transition(_move(state, None, to_end=True))
    if action == "next_tab":
        return Transition(_cycle_tab(state, 1))
    if action == "prev_tab":
        return Transition(_cycle_tab(state, -1))
    if action == "toggle_all":
        return Transition(replace(state, show_all=not state.show_all), Effect.REAGGREGATE)
    if action == "toggle_monthly":
        flipped = replace(state, monthly=not state.monthly, selected=0)
        return Transition(flipped, Effect.REAGGREGATE)
    if action == "toggle_merges":
        spec = state.filter.replace(include_merges=not state.filter.include_merges)
        return Transition(replace(state, filter=spec), Effect.REAGGREGATE)
    if action == "copy":
        return Transition(state, Effect.COPY)
    if action == "show":
        if state.tab is not Tab.COMMITS or state.commit_count == 0:
            return Transition(state)
        return Transition(state, Effect.SHOW)
    if action == "open":
        if state.tab is Tab.COMMITS or state.bucket_count == 0:
            return Transition(state)
        return Transition(replace(state, tab=Tab.COMMITS, commit_selected=0), Effect.DRILL)
    return Transition(state)


def reduce(state: UiState, event: Event) -> Transition:
    """Compute the next state for *event*; no I/O, no aggregation."""
    if state.mode is Mode.HELP:
        return _reduce_help(state, event)
    if state.mode is Mode.SEARCHING:
        return _reduce_search(state, event)
    return _reduce_view(state, event)


def with_bounds(state: UiState, bucket_count: int, commit_count: int) -> UiState:
    """Record fresh list sizes and pull both cursors back inside them."""
    return replace(
        state,
        bucket_count=bucket_count,
        commit_count=commit_count,
        selected=_clamp(state.selected, bucket_count),
        commit_selected=_clamp(state.commit_selected, commit_count),
    )
