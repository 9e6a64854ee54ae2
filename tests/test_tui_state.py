from gmap.models import FilterSpec
from gmap.tui.keys import to_event
from gmap.tui.state import (
    PAGE_SIZE,
    Effect,
    Event,
    Key,
    Mode,
    Tab,
    UiState,
    reduce,
    with_bounds,
)


def char(c):
    return Event(Key.CHAR, c)


def state(**kw):
    kw.setdefault("bucket_count", 30)
    kw.setdefault("commit_count", 5)
    return UiState(**kw)


class TestNavigation:
    def test_cursor_clamps_at_both_ends(self):
        s = state(selected=0)
        assert reduce(s, Event(Key.UP)).state.selected == 0
        s = state(selected=29)
        assert reduce(s, Event(Key.DOWN)).state.selected == 29

    def test_vi_keys(self):
        s = state(selected=5)
        assert reduce(s, char("j")).state.selected == 6
        assert reduce(s, char("k")).state.selected == 4
        assert reduce(s, char("g")).state.selected == 0
        assert reduce(s, char("G")).state.selected == 29

    def test_paging(self):
        s = state(selected=5)
        assert reduce(s, Event(Key.PAGE_DOWN)).state.selected == 5 + PAGE_SIZE
        assert reduce(s, Event(Key.PAGE_UP)).state.selected == 0

    def test_commits_tab_moves_commit_cursor(self):
        s = state(tab=Tab.COMMITS, selected=3, commit_selected=0)
        t = reduce(s, Event(Key.DOWN))
        assert t.state.commit_selected == 1
        assert t.state.selected == 3

    def test_empty_list(self):
        s = state(bucket_count=0)
        assert reduce(s, Event(Key.DOWN)).state.selected == 0

    def test_tab_cycling_wraps(self):
        s = state(tab=Tab.COMMITS)
        assert reduce(s, Event(Key.NEXT_TAB)).state.tab is Tab.HEATMAP
        assert reduce(state(), Event(Key.PREV_TAB)).state.tab is Tab.COMMITS

    def test_unbound_key_is_ignored(self):
        s = state()
        assert reduce(s, char("z")).state == s


class TestSearch:
    def test_typing_and_commit(self):
        s = reduce(state(), char("/")).state
        assert s.mode is Mode.SEARCHING
        for c in "bob":
            s = reduce(s, char(c)).state
        s = reduce(s, Event(Key.BACKSPACE)).state
        assert s.query == "bo"
        t = reduce(s, Event(Key.ENTER))
        assert t.effect is Effect.APPLY_QUERY
        assert t.state.mode is Mode.VIEWING
        assert t.state.active_query == "bo"

    def test_keys_are_text_while_searching(self):
        s = reduce(state(), char("/")).state
        t = reduce(s, char("q"))
        assert t.effect is Effect.NONE
        assert t.state.query == "q"

    def test_cancel_restores_prior_filter(self):
        prior = FilterSpec(author="alice")
        s = reduce(state(filter=prior), char("/")).state
        s = reduce(s, char("x")).state
        t = reduce(s, Event(Key.ESCAPE))
        assert t.state.mode is Mode.VIEWING
        assert t.state.filter == prior
        assert t.state.query == ""
        assert t.effect is Effect.NONE


class TestHelp:
    def test_help_is_modal(self):
        s = reduce(state(), char("h")).state
        assert s.mode is Mode.HELP
        for event in (char("q"), Event(Key.DOWN), char("/"), Event(Key.ENTER)):
            t = reduce(s, event)
            assert t.state == s
            assert t.effect is Effect.NONE

    def test_dismiss(self):
        s = reduce(state(), Event(Key.F1)).state
        assert reduce(s, Event(Key.ESCAPE)).state.mode is Mode.VIEWING
        assert reduce(s, char("h")).state.mode is Mode.VIEWING


class TestEffects:
    def test_quit(self):
        assert reduce(state(), char("q")).effect is Effect.QUIT

    def test_toggle_all(self):
        t = reduce(state(), char("A"))
        assert t.state.show_all
        assert t.effect is Effect.REAGGREGATE

    def test_toggle_monthly(self):
        t = reduce(state(selected=7), char("m"))
        assert t.state.monthly
        assert t.effect is Effect.REAGGREGATE

    def test_open_drills_into_commits(self):
        t = reduce(state(tab=Tab.TIMELINE), Event(Key.ENTER))
        assert t.state.tab is Tab.COMMITS
        assert t.effect is Effect.DRILL

    def test_open_with_nothing_selected(self):
        assert reduce(state(bucket_count=0), Event(Key.ENTER)).effect is Effect.NONE

    def test_copy(self):
        assert reduce(state(), char("c")).effect is Effect.COPY

    def test_toggle_merges(self):
        t = reduce(state(), char("M"))
        assert t.state.filter.include_merges
        assert t.effect is Effect.REAGGREGATE
        assert reduce(t.state, char("M")).state.filter == FilterSpec()

    def test_show_needs_a_selected_commit(self):
        assert reduce(state(tab=Tab.COMMITS), char("o")).effect is Effect.SHOW
        assert reduce(state(), char("o")).effect is Effect.NONE
        assert reduce(state(tab=Tab.COMMITS, commit_count=0), char("o")).effect is Effect.NONE

    def test_filter_changes_blocked_while_working(self):
        s = state(working=True, selected=3)
        assert reduce(s, char("A")).effect is Effect.NONE
        assert reduce(s, char("M")).state.filter == FilterSpec()
        assert reduce(s, char("/")).state.mode is Mode.VIEWING
        assert reduce(s, Event(Key.DOWN)).state.selected == 4


class TestWithBounds:
    def test_clamps_cursors(self):
        s = with_bounds(state(selected=20, commit_selected=4), bucket_count=10, commit_count=2)
        assert (s.selected, s.commit_selected) == (9, 1)


class TestKeys:
    def test_sequences(self):
        assert to_event("\x1b[A") == Event(Key.UP)
        assert to_event("\t") == Event(Key.NEXT_TAB)
        assert to_event("\x1b[Z") == Event(Key.PREV_TAB)
        assert to_event("\r") == Event(Key.ENTER)
        assert to_event("\x1bOP") == Event(Key.F1)

    def test_printable(self):
        assert to_event("/") == Event(Key.CHAR, "/")

    def test_unknown(self):
        assert to_event("\x1b[99~") is None
