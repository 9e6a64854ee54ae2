"""Churn per file, or per directory prefix truncated to a depth."""

from __future__ import annotations

from typing import Iterable

from gmap.errors import AggregationCancelled
from gmap.filters import CancelToken, filter_records
from gmap.models import ChurnEntry, CommitRecord, FilterSpec


def aggregate_path(path: str, depth: int | None) -> str:
    """Return the first *depth* components of *path*; shorter paths are kept whole."""
    if not depth:
        return path
    parts = path.split("/")
    if len(parts) <= depth:
        return path
    return "/".join(parts[:depth])


def get_churn(
    records: Iterable[CommitRecord],
    spec: FilterSpec,
    depth: int | None = None,
    cancel: CancelToken | None = None,
) -> list[ChurnEntry]:
    """Return churn entries ordered by churn descending, then path ascending.

    Only counted file changes contribute; a commit whose files were all
    filtered out adds nothing here even though it still counts in the heatmap.
    """
    entries: dict[str, ChurnEntry] = {}
    for commit, files in filter_records(records, spec):
        if cancel is not None and cancel.is_set():
            raise AggregationCancelled(f"stopped after {len(entries)} path(s)")
        for change in files:
            key = aggregate_path(change.path, depth)
            entry = entries.get(key)
            if entry is None:
                entry = entries[key] = ChurnEntry(path=key)
            if not change.is_binary:
                entry.lines_added += change.lines_added
                entry.lines_removed += change.lines_removed
            entry.commit_ids.add(commit.id)
            entry.author_names.add(commit.author_name)
    return sorted(entries.values(), key=lambda e: (-e.churn, e.path))
