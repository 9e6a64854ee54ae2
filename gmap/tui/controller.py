"""Dashboard controller: owns the record stream and performs transition effects."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable

from gmap.analyzers.churn import get_churn
from gmap.analyzers.export import Summary, summarize
from gmap.analyzers.heat import commits_in_bucket, get_heatmap, window
from gmap.clipboard import copy_to_clipboard
from gmap.dates import RefResolver, boundary_window
from gmap.errors import AggregationCancelled, DateParseError, GmapError, RevisionError
from gmap.models import Bucket, ChurnEntry, CommitRecord, FilterSpec
from gmap.tui.state import Effect, Event, Mode, Tab, UiState, reduce, with_bounds

logger = logging.getLogger(__name__)

STATUS_SECONDS = 3.0
TOP_CHURN = 10


def parse_query(
    query: str,
    base: FilterSpec,
    now: datetime,
    resolve_ref: RefResolver,
) -> FilterSpec:
    """Build the FilterSpec for a search query typed at the ``/`` prompt.

    Terms are ``author:``, ``email:``, ``path:``, ``since:`` and ``until:``;
    bare words form the author substring. An empty query returns *base*.

    Raises
    ------
    DateParseError, RevisionError
        A ``since:``/``until:`` term does not resolve.
    """
    terms: dict[str, str] = {}
    words: list[str] = []
    for token in query.split():
        key, sep, value = token.partition(":")
        if sep and key.lower() in ("author", "email", "path", "since", "until") and value:
            terms[key.lower()] = value
        else:
            words.append(token)
    if words and "author" not in terms:
        terms["author"] = " ".join(words)
    if not terms:
        return base

    spec = base
    if "author" in terms:
        spec = spec.replace(author=terms["author"])
    if "email" in terms:
        spec = spec.replace(author_email=terms["email"])
    if "path" in terms:
        spec = spec.replace(path_prefix=terms["path"])
    if "since" in terms or "until" in terms:
        start, end = boundary_window(
            terms.get("since"), terms.get("until"), now, resolve_ref
        )
        if start is not None:
            spec = spec.replace(since=start)
        if end is not None:
            spec = spec.replace(until=end)
    return spec


@dataclass
class Snapshot:
    """Everything the renderer needs for one frame."""

    state: UiState
    buckets: list[Bucket] = field(default_factory=list)
    commits: list[CommitRecord] = field(default_factory=list)
    churn: list[ChurnEntry] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)
    status: str | None = None
    drilled: Bucket | None = None

    @property
    def selected_bucket(self) -> Bucket | None:
        if 0 <= self.state.selected < len(self.buckets):
            return self.buckets[self.state.selected]
        return None

    @property
    def selected_commit(self) -> CommitRecord | None:
        if 0 <= self.state.commit_selected < len(self.commits):
            return self.commits[self.state.commit_selected]
        return None


class Controller:
    """Apply events to the dashboard state and keep derived data current.

    The full (unwindowed) heatmap is memoized per ``(FilterSpec, monthly)``,
    so toggling the show-all window or returning to an earlier filter does not
    fold the record stream again.

    Parameters
    ----------
    collect
        Re-ingests the history with merges diffed when *include_merges* is
        true; called the first time merges are switched on with ``M``.
    show
        Opens a commit id in the user's pager; returns False on failure.
    """

    def __init__(
        self,
        records: list[CommitRecord],
        base_filter: FilterSpec,
        resolve_ref: RefResolver,
        monthly: bool = False,
        now: Callable[[], datetime] | None = None,
        clock: Callable[[], float] = time.monotonic,
        copy: Callable[[str], bool] = copy_to_clipboard,
        on_working: Callable[[], None] | None = None,
        collect: Callable[[bool], list[CommitRecord]] | None = None,
        show: Callable[[str], bool] | None = None,
    ) -> None:
        self.records = records
        self.base_filter = base_filter
        self.resolve_ref = resolve_ref
        self.now = now or (lambda: datetime.now(timezone.utc))
        self.clock = clock
        self.copy = copy
        self.on_working = on_working
        self.collect = collect
        self.show = show
        self._merges_diffed = base_filter.include_merges
        self.cancel = threading.Event()
        self.state = UiState(filter=base_filter, monthly=monthly)
        self.buckets: list[Bucket] = []
        self.commits: list[CommitRecord] = []
        self.drilled: Bucket | None = None
        self.churn: list[ChurnEntry] = []
        self.summary = Summary()
        self._heat_cache: dict[tuple[FilterSpec, bool], list[Bucket]] = {}
        self._status: tuple[str, float] | None = None
        self._refresh(self.state)

    # -- events -----------------------------------------------------------

    def handle(self, event: Event) -> bool:
        """Process one event to completion; False means the dashboard should exit."""
        previous = self.state
        transition = reduce(previous, event)
        self.state = transition.state
        effect = transition.effect

        if effect is Effect.QUIT:
            return False
        if effect is Effect.REAGGREGATE:
            if not self._refresh(previous):
                self.state = previous
        elif effect is Effect.APPLY_QUERY:
            self._apply_query(previous)
        elif effect is Effect.DRILL:
            self._drill()
        elif effect is Effect.COPY:
            self._copy()
        elif effect is Effect.SHOW:
            self._show()
        return True

    def set_status(self, message: str) -> None:
        self._status = (message, self.clock())

    @property
    def status(self) -> str | None:
        if self._status is None:
            return None
        message, since = self._status
        if self.clock() - since >= STATUS_SECONDS:
            self._status = None
            return None
        return message

    def snapshot(self) -> Snapshot:
        return Snapshot(
            state=self.state,
            buckets=self.buckets,
            commits=self.commits,
            churn=self.churn,
            summary=self.summary,
            status=self.status,
            drilled=self.drilled,
        )

    # -- effects ----------------------------------------------------------

    def _heatmap(self, spec: FilterSpec, monthly: bool) -> list[Bucket]:
        key = (spec, monthly)
        if key not in self._heat_cache:
            self._heat_cache[key] = get_heatmap(
                self.records, spec, monthly=monthly, cancel=self.cancel
            )
        return self._heat_cache[key]

    def _refresh(self, previous: UiState) -> bool:
        """Re-derive buckets, churn and totals for the current state.

        Returns False, leaving the previous data in place, when the
        aggregation was cancelled or reloading with merges failed.
        """
        state = self.state
        anchor = None
        if 0 <= previous.selected < len(self.buckets) and previous.monthly == state.monthly:
            anchor = self.buckets[previous.selected].start

        self.state = replace(state, working=True)
        if self.on_working is not None:
            self.on_working()
        self.cancel.clear()
        if state.filter.include_merges and not self._merges_diffed and self.collect is not None:
            try:
                self.records = self.collect(True)
            except GmapError as exc:
                logger.info("Reloading with merges failed: %s", exc)
                self.state = replace(state, working=False)
                self.set_status(f"Reload failed: {exc}")
                return False
            self._merges_diffed = True
            self._heat_cache.clear()
        try:
            buckets = window(self._heatmap(state.filter, state.monthly), state.monthly, state.show_all)
            churn = get_churn(self.records, state.filter, cancel=self.cancel)[:TOP_CHURN]
        except AggregationCancelled as exc:
            logger.info("Aggregation cancelled: %s", exc)
            self.state = replace(state, working=False)
            self.set_status("Cancelled")
            return False
        finally:
            self.cancel.clear()

        self.buckets = buckets
        self.churn = churn
        self.summary = summarize(self.records, state.filter)
        if self.drilled is not None:
            self.commits = commits_in_bucket(self.records, state.filter, self.drilled)

        selected = state.selected
        if anchor is not None:
            starts = [b.start for b in buckets]
            selected = starts.index(anchor) if anchor in starts else len(buckets) - 1
        elif previous.monthly != state.monthly:
            selected = len(buckets) - 1
        self.state = with_bounds(
            replace(state, selected=selected, working=False),
            len(self.buckets),
            len(self.commits),
        )
        return True

    def _apply_query(self, previous: UiState) -> None:
        state = self.state
        prior = state.saved_filter if state.saved_filter is not None else state.filter
        try:
            base = self.base_filter.replace(include_merges=prior.include_merges)
            spec = parse_query(state.active_query, base, self.now(), self.resolve_ref)
        except (DateParseError, RevisionError) as exc:
            self.state = replace(
                state, filter=prior, saved_filter=None, active_query=previous.active_query
            )
            self.set_status(f"Invalid filter: {exc}")
            return
        self.state = replace(state, filter=spec, saved_filter=None)
        if spec == prior:
            return
        if not self._refresh(previous):
            self.state = replace(previous, mode=Mode.VIEWING, query="", saved_filter=None)

    def _drill(self) -> None:
        bucket = None
        if 0 <= self.state.selected < len(self.buckets):
            bucket = self.buckets[self.state.selected]
        if bucket is None:
            return
        self.drilled = bucket
        self.commits = commits_in_bucket(self.records, self.state.filter, bucket)
        self.state = with_bounds(
            replace(self.state, tab=Tab.COMMITS, commit_selected=0),
            len(self.buckets),
            len(self.commits),
        )

    def _copy(self) -> None:
        if self.state.tab is Tab.COMMITS:
            if not self.commits:
                return
            text = self.commits[self.state.commit_selected].commit.id
            label = text[:8]
        else:
            if not self.buckets:
                return
            text = self.buckets[self.state.selected].start.date().isoformat()
            label = text
        if self.copy(text):
            self.set_status(f"Copied: {label}")
        else:
            self.set_status("Clipboard unavailable")

    def _show(self) -> None:
        if not self.commits:
            return
        commit_id = self.commits[self.state.commit_selected].commit.id
        if self.show is None or not self.show(commit_id):
            self.set_status(f"Could not show {commit_id[:8]}")
