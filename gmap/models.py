"""Shared dataclasses for the record stream, filters and aggregated views."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Iterable

# Bumped whenever the cached FileChange payload changes shape.
SCHEMA_VERSION = 2


def _default_serializer(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def _plain(item: Any) -> Any:
    if hasattr(item, "to_record"):
        return item.to_record()
    if hasattr(item, "__dataclass_fields__"):
        return asdict(item)
    return item


def to_json(data: Any, indent: int | None = 2) -> str:
    if isinstance(data, (list, tuple)):
        serializable = [_plain(item) for item in data]
    else:
        serializable = _plain(data)
    return json.dumps(serializable, indent=indent, default=_default_serializer)


def to_ndjson(items: Iterable[Any]) -> str:
    """One compact JSON object per line, no trailing newline."""
    return "\n".join(
        json.dumps(_plain(item), default=_default_serializer) for item in items
    )


def utc_datetime(timestamp: int) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


@dataclass(frozen=True)
class Commit:
    id: str
    author_name: str
    author_email: str
    timestamp: int  # author time, seconds since epoch
    parent_count: int
    message: str = ""

    @property
    def short_id(self) -> str:
        return self.id[:8]

    @property
    def is_merge(self) -> bool:
        return self.parent_count >= 2

    @property
    def authored_at(self) -> datetime:
        return utc_datetime(self.timestamp)

    @property
    def subject(self) -> str:
        return self.message.splitlines()[0] if self.message else ""


@dataclass(frozen=True)
class FileChange:
    path: str  # post-rename path
    lines_added: int = 0
    lines_removed: int = 0
    is_binary: bool = False

    @property
    def churn(self) -> int:
        return self.lines_added + self.lines_removed

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "lines_added": self.lines_added,
            "lines_removed": self.lines_removed,
            "is_binary": self.is_binary,
        }

    @classmethod
    def from_dict(cls, data: dict) -> FileChange:
        return cls(
            path=data["path"],
            lines_added=int(data["lines_added"]),
            lines_removed=int(data["lines_removed"]),
            is_binary=bool(data["is_binary"]),
        )


@dataclass(frozen=True)
class CommitRecord:
    """A commit together with its classified file changes."""

    commit: Commit
    changes: tuple[FileChange, ...] = ()


@dataclass(frozen=True)
class FilterSpec:
    """The active query. Boundaries are already-resolved epoch seconds."""

    since: int | None = None  # inclusive
    until: int | None = None  # inclusive
    author: str | None = None
    author_email: str | None = None
    include_merges: bool = False
    include_binary: bool = False
    exclude: tuple[str, ...] = ()
    path_prefix: str | None = None

    def replace(self, **changes: Any) -> FilterSpec:
        return replace(self, **changes)


@dataclass
class Bucket:
    start: datetime
    end: datetime  # exclusive
    commits: int = 0
    lines_added: int = 0
    lines_removed: int = 0
    authors: int = 0
    binary_files: int = 0
    prefix: str | None = None

    @property
    def churn(self) -> int:
        return self.lines_added + self.lines_removed

    def contains(self, timestamp: int) -> bool:
        return self.start.timestamp() <= timestamp < self.end.timestamp()

    def to_record(self) -> dict:
        return {
            "period_start": self.start.date().isoformat(),
            "commits": self.commits,
            "lines_added": self.lines_added,
            "lines_removed": self.lines_removed,
            "churn": self.churn,
            "authors": self.authors,
            "binary_files": self.binary_files,
        }


@dataclass
class ChurnEntry:
    path: str
    lines_added: int = 0
    lines_removed: int = 0
    commit_ids: set[str] = field(default_factory=set)
    author_names: set[str] = field(default_factory=set)

    @property
    def churn(self) -> int:
        return self.lines_added + self.lines_removed

    @property
    def commits_touching(self) -> int:
        return len(self.commit_ids)

    def to_record(self) -> dict:
        return {
            "path_or_prefix": self.path,
            "churn": self.churn,
            "commits_touching": self.commits_touching,
            "lines_added": self.lines_added,
            "lines_removed": self.lines_removed,
            "authors": len(self.author_names),
        }


@dataclass(frozen=True)
class ExportRecord:
    commit_id: str
    author: str
    author_email: str
    timestamp: int
    path: str
    lines_added: int
    lines_removed: int
    is_binary: bool

    def to_record(self) -> dict:
        return asdict(self)
