"""Classify the file changes of one commit: binary sniffing and line diffs."""

from __future__ import annotations

import difflib
import logging
from functools import lru_cache
from typing import Iterator, Protocol

import git
import pathspec
from git.exc import BadName, BadObject, GitCommandError

from gmap.errors import CacheError, DiffError
from gmap.models import FileChange

logger = logging.getLogger(__name__)

# git's own heuristic: a NUL byte within the first 8000 bytes means binary
SNIFF_BYTES = 8000
_GITLINK_MODE = 0o160000


class ChangeCache(Protocol):
    def store(self, commit_id: str, changes: tuple[FileChange, ...]) -> None: ...


class IgnoreMatcher:
    """``matches(path)`` with gitignore semantics, paths relative to the repo root."""

    def __init__(self, patterns: tuple[str, ...]) -> None:
        self.patterns = patterns
        self._spec = pathspec.GitIgnoreSpec.from_lines(patterns)

    def matches(self, path: str) -> bool:
        if not self.patterns:
            return False
        return self._spec.match_file(path)


@lru_cache(maxsize=32)
def ignore_matcher(patterns: tuple[str, ...]) -> IgnoreMatcher:
    return IgnoreMatcher(patterns)


def is_binary(data: bytes) -> bool:
    """Binary when the head contains NUL or the content is not valid UTF-8."""
    if b"\0" in data[:SNIFF_BYTES]:
        return True
    try:
        data.decode("utf-8")
    except UnicodeDecodeError:
        return True
    return False


def _lines(data: bytes) -> list[str]:
    return data.decode("utf-8").splitlines()


def line_stats(old: list[str], new: list[str]) -> tuple[int, int]:
    """Return ``(added, removed)`` for a line-oriented diff of *old* -> *new*."""
    if old == new:
        return 0, 0
    added = removed = 0
    matcher = difflib.SequenceMatcher(None, old, new, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag in ("replace", "delete"):
            removed += i2 - i1
        if tag in ("replace", "insert"):
            added += j2 - j1
    return added, removed


def _read(blob: git.Blob, commit_id: str, path: str) -> bytes:
    try:
        return blob.data_stream.read()
    except (BadName, BadObject, GitCommandError, ValueError, OSError) as exc:
        raise DiffError(commit_id, path, str(exc)) from exc


def _added(blob: git.Blob, commit_id: str, path: str) -> FileChange:
    data = _read(blob, commit_id, path)
    if is_binary(data):
        return FileChange(path=path, is_binary=True)
    return FileChange(path=path, lines_added=len(_lines(data)))


def _removed(blob: git.Blob, commit_id: str, path: str) -> FileChange:
    data = _read(blob, commit_id, path)
    if is_binary(data):
        return FileChange(path=path, is_binary=True)
    return FileChange(path=path, lines_removed=len(_lines(data)))


def _modified(old: git.Blob, new: git.Blob, commit_id: str, path: str) -> FileChange:
    old_data = _read(old, commit_id, path)
    new_data = _read(new, commit_id, path)
    if is_binary(old_data) or is_binary(new_data):
        return FileChange(path=path, is_binary=True)
    added, removed = line_stats(_lines(old_data), _lines(new_data))
    return FileChange(path=path, lines_added=added, lines_removed=removed)


def _is_gitlink(blob: git.Blob | None) -> bool:
    return blob is not None and blob.mode == _GITLINK_MODE


def _root_changes(commit: git.Commit) -> Iterator[tuple[str, FileChange | Exception]]:
    for item in commit.tree.traverse():
        if item.type != "blob" or _is_gitlink(item):
            continue
        try:
            yield item.path, _added(item, commit.hexsha, item.path)
        except DiffError as exc:
            yield item.path, exc


def _diff_changes(commit: git.Commit) -> Iterator[tuple[str, FileChange | Exception]]:
    # GitPython passes -M, so a rename arrives as one diff carrying both paths.
    for diff in commit.parents[0].diff(commit):
        if _is_gitlink(diff.a_blob) or _is_gitlink(diff.b_blob):
            continue
        path = diff.b_path or diff.a_path or ""
        try:
            if diff.a_blob is None:
                change = _added(diff.b_blob, commit.hexsha, path)
            elif diff.b_blob is None:
                change = _removed(diff.a_blob, commit.hexsha, diff.a_path or path)
            else:
                change = _modified(diff.a_blob, diff.b_blob, commit.hexsha, path)
        except DiffError as exc:
            yield path, exc
            continue
        yield path, change


def classify_commit(
    commit: git.Commit,
    cache: ChangeCache | None = None,
) -> tuple[FileChange, ...]:
    """Return the classified file changes of *commit* against its first parent.

    Files whose blobs cannot be read are logged and left out. When every file
    was classified the result is written to *cache* before returning; a commit
    with unreadable files is not cached so a later run retries it.
    """
    source = _root_changes(commit) if not commit.parents else _diff_changes(commit)
    changes: list[FileChange] = []
    failures = 0
    for path, outcome in source:
        if isinstance(outcome, Exception):
            failures += 1
            logger.warning("Skipping unclassifiable file: %s", outcome)
            continue
        changes.append(outcome)

    result = tuple(sorted(changes, key=lambda c: c.path))
    if cache is not None and not failures:
        try:
            cache.store(commit.hexsha, result)
        except CacheError as exc:
            logger.warning("Could not cache %s: %s", commit.hexsha[:8], exc)
    logger.debug("Classified %s: %d file(s)", commit.hexsha[:8], len(result))
    return result
