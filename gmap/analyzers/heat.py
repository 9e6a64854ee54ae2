"""Activity heatmap: commits and line churn per week or month."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

import pandas as pd

from gmap.errors import AggregationCancelled
from gmap.filters import CancelToken, filter_records
from gmap.models import Bucket, CommitRecord, FilterSpec

logger = logging.getLogger(__name__)

# Weeks start on Monday 00:00 UTC (a W-SUN period ends on Sunday).
WEEKLY_FREQ = "W-SUN"
MONTHLY_FREQ = "M"
DEFAULT_WINDOW = {False: 52, True: 12}

_COLUMNS = ["commit_id", "timestamp", "author", "lines_added", "lines_removed", "binary_files"]


def _rows(records: Iterable[CommitRecord], spec: FilterSpec) -> list[dict]:
    rows = []
    for commit, files in filter_records(records, spec):
        # With a path prefix, a commit outside the prefix is outside the view.
        if spec.path_prefix and not files:
            continue
        rows.append(
            {
                "commit_id": commit.id,
                "timestamp": commit.timestamp,
                "author": (commit.author_email or commit.author_name).lower(),
                "lines_added": sum(f.lines_added for f in files if not f.is_binary),
                "lines_removed": sum(f.lines_removed for f in files if not f.is_binary),
                "binary_files": sum(1 for f in files if f.is_binary),
            }
        )
    return rows


def get_heatmap(
    records: Iterable[CommitRecord],
    spec: FilterSpec,
    monthly: bool = False,
    cancel: CancelToken | None = None,
) -> list[Bucket]:
    """Fold *records* into period buckets, ordered by period start.

    Every passing commit lands in exactly one bucket, the half-open interval
    ``[start, start + period)`` that contains its author timestamp. Commits
    with no counted files still add to ``commits``.

    Parameters
    ----------
    records:
        The record stream from ingestion (or the cache).
    spec:
        Active filter.
    monthly:
        Bucket by calendar month instead of ISO week.
    cancel:
        Checked between buckets; when set, :class:`AggregationCancelled` is raised.
    """
    rows = _rows(records, spec)
    if not rows:
        return []

    frame = pd.DataFrame.from_records(rows, columns=_COLUMNS)
    freq = MONTHLY_FREQ if monthly else WEEKLY_FREQ
    frame["period"] = pd.to_datetime(frame["timestamp"], unit="s").dt.to_period(freq)
    grouped = frame.groupby("period", sort=True).agg(
        commits=("commit_id", "count"),
        lines_added=("lines_added", "sum"),
        lines_removed=("lines_removed", "sum"),
        binary_files=("binary_files", "sum"),
        authors=("author", "nunique"),
    )

    buckets: list[Bucket] = []
    for period, row in grouped.iterrows():
        if cancel is not None and cancel.is_set():
            raise AggregationCancelled(f"stopped after {len(buckets)} bucket(s)")
        buckets.append(
            Bucket(
                start=_utc(period.start_time),
                end=_utc((period + 1).start_time),
                commits=int(row["commits"]),
                lines_added=int(row["lines_added"]),
                lines_removed=int(row["lines_removed"]),
                authors=int(row["authors"]),
                binary_files=int(row["binary_files"]),
                prefix=spec.path_prefix,
            )
        )
    logger.debug("Heatmap: %d commit(s) in %d bucket(s)", len(frame), len(buckets))
    return buckets


def _utc(stamp: pd.Timestamp) -> datetime:
    return stamp.tz_localize("UTC").to_pydatetime()


def window(buckets: list[Bucket], monthly: bool, show_all: bool) -> list[Bucket]:
    """The most recent 52 weeks / 12 months, or everything when *show_all*."""
    if show_all:
        return buckets
    return buckets[-DEFAULT_WINDOW[monthly]:]


def commits_in_bucket(
    records: Iterable[CommitRecord],
    spec: FilterSpec,
    bucket: Bucket,
) -> list[CommitRecord]:
    """Re-filter *records* to the commits inside *bucket*, newest first.

    The returned records carry only the counted file changes.
    """
    found = []
    for commit, files in filter_records(records, spec):
        if not bucket.contains(commit.timestamp):
            continue
        if spec.path_prefix and not files:
            continue
        found.append(CommitRecord(commit=commit, changes=tuple(files)))
    found.sort(key=lambda r: (-r.commit.timestamp, r.commit.id))
    return found


def intensity_char(value: float, peak: float, symbols: str) -> str:
    if peak <= 0:
        return symbols[0]
    level = round((value / peak) * (len(symbols) - 1))
    return symbols[min(level, len(symbols) - 1)]
