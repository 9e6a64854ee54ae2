"""Exception taxonomy shared by every layer."""

from __future__ import annotations


class GmapError(Exception):
    """Base class for all errors raised by gmap."""


class RepositoryError(GmapError):
    """The path is not a git repository, or the repository has no history."""


class RevisionError(GmapError):
    """A range boundary could not be resolved to a concrete commit."""


class DateParseError(GmapError):
    """A date or relative expression is malformed or ambiguous."""


class DiffError(GmapError):
    """Blob data for one file change could not be read."""

    def __init__(self, commit_id: str, path: str, reason: str) -> None:
        super().__init__(f"cannot read {path} in {commit_id[:8]}: {reason}")
        self.commit_id = commit_id
        self.path = path


class CacheError(GmapError):
    """The cache file is corrupt or cannot be written."""


class AggregationCancelled(GmapError):
    """A long aggregation was stopped between two buckets."""
