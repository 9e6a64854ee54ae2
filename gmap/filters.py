"""The filter predicate shared by every view.

Evaluation order is fixed: merge inclusion, date range, author name, author
email, then per-file checks (binary, path prefix, ignore patterns).
"""

from __future__ import annotations

from typing import Iterable, Iterator, Protocol

from gmap.classifier import ignore_matcher
from gmap.models import Commit, CommitRecord, FileChange, FilterSpec


class CancelToken(Protocol):
    """Anything with ``is_set()``, e.g. :class:`threading.Event`."""

    def is_set(self) -> bool: ...


def commit_passes(commit: Commit, spec: FilterSpec) -> bool:
    if commit.is_merge and not spec.include_merges:
        return False
    if spec.since is not None and commit.timestamp < spec.since:
        return False
    if spec.until is not None and commit.timestamp > spec.until:
        return False
    if spec.author and spec.author.lower() not in commit.author_name.lower():
        return False
    if spec.author_email and spec.author_email.lower() not in commit.author_email.lower():
        return False
    return True


def counted_changes(changes: Iterable[FileChange], spec: FilterSpec) -> list[FileChange]:
    matcher = ignore_matcher(spec.exclude)
    counted = []
    for change in changes:
        if change.is_binary and not spec.include_binary:
            continue
        if spec.path_prefix and not change.path.startswith(spec.path_prefix):
            continue
        if matcher.matches(change.path):
            continue
        counted.append(change)
    return counted


def filter_records(
    records: Iterable[CommitRecord],
    spec: FilterSpec,
) -> Iterator[tuple[Commit, list[FileChange]]]:
    """Yield ``(commit, counted changes)`` for each commit that passes *spec*.

    A passing commit is yielded even when none of its files count.
    """
    for record in records:
        if commit_passes(record.commit, spec):
            yield record.commit, counted_changes(record.changes, spec)
