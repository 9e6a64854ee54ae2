"""Flattened (commit, file change) export and a summary over it."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from gmap.filters import filter_records
from gmap.models import CommitRecord, ExportRecord, FilterSpec, utc_datetime


def get_export(records: Iterable[CommitRecord], spec: FilterSpec) -> list[ExportRecord]:
    """One record per counted file change, oldest commit first."""
    rows = [
        ExportRecord(
            commit_id=commit.id,
            author=commit.author_name,
            author_email=commit.author_email,
            timestamp=commit.timestamp,
            path=change.path,
            lines_added=change.lines_added,
            lines_removed=change.lines_removed,
            is_binary=change.is_binary,
        )
        for commit, files in filter_records(records, spec)
        for change in files
    ]
    rows.sort(key=lambda r: (r.timestamp, r.commit_id, r.path))
    return rows


@dataclass
class Summary:
    commits: int = 0
    files_changed: int = 0
    lines_added: int = 0
    lines_removed: int = 0
    top_authors: list[tuple[str, int]] = field(default_factory=list)
    authors: int = 0
    first: datetime | None = None
    last: datetime | None = None


def summarize(records: Iterable[CommitRecord], spec: FilterSpec, top: int = 5) -> Summary:
    """Totals over the commits passing *spec*."""
    summary = Summary()
    per_author: Counter[str] = Counter()
    first = last = None
    for commit, files in filter_records(records, spec):
        summary.commits += 1
        summary.files_changed += len(files)
        summary.lines_added += sum(f.lines_added for f in files)
        summary.lines_removed += sum(f.lines_removed for f in files)
        per_author[commit.author_name] += 1
        first = commit.timestamp if first is None else min(first, commit.timestamp)
        last = commit.timestamp if last is None else max(last, commit.timestamp)
    summary.authors = len(per_author)
    summary.top_authors = sorted(per_author.items(), key=lambda kv: (-kv[1], kv[0]))[:top]
    if first is not None:
        summary.first = utc_datetime(first)
        summary.last = utc_datetime(last)
    return summary
