"""Persistent commit-id -> classified FileChange cache, backed by SQLite."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path

from gmap.errors import CacheError
from gmap.models import SCHEMA_VERSION, FileChange

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS meta (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS entries (
    commit_id TEXT PRIMARY KEY,
    payload   TEXT NOT NULL
);
"""


class NullCache:
    """Always misses. Used when no cache path is configured."""

    def lookup(self, commit_id: str) -> tuple[FileChange, ...] | None:
        return None

    def store(self, commit_id: str, changes: tuple[FileChange, ...]) -> None:
        return None

    def close(self) -> None:
        return None


class CacheStore:
    """Schema-versioned key/value store in a single SQLite file.

    Entries are content-addressed by commit id and never updated in place: a
    second ``store`` for a known id is ignored. A schema version mismatch on
    open discards every entry. Each write runs in its own ``BEGIN IMMEDIATE``
    transaction, so concurrent processes see either the old or the new entry.
    """

    def __init__(self, path: str | Path, schema_version: int = SCHEMA_VERSION) -> None:
        self.path = Path(path)
        self.schema_version = schema_version
        self._lock = threading.Lock()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                str(self.path),
                timeout=30.0,
                isolation_level=None,
                check_same_thread=False,
            )
        except (OSError, sqlite3.Error) as exc:
            raise CacheError(f"Cannot open cache {self.path}: {exc}") from exc
        try:
            self._initialize()
        except sqlite3.Error as exc:
            self._conn.close()
            raise CacheError(f"Cannot use cache {self.path}: {exc}") from exc

    def _initialize(self) -> None:
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        row = self._conn.execute(
            "SELECT value FROM meta WHERE key = 'schema_version'"
        ).fetchone()
        if row is not None and row[0] == str(self.schema_version):
            return
        if row is not None:
            logger.info(
                "Discarding cache %s: schema version %s != %s",
                self.path, row[0], self.schema_version,
            )
        self._conn.execute("BEGIN IMMEDIATE")
        try:
            self._conn.execute("DELETE FROM entries")
            self._conn.execute(
                "INSERT OR REPLACE INTO meta (key, value) VALUES ('schema_version', ?)",
                (str(self.schema_version),),
            )
        except sqlite3.Error:
            self._conn.execute("ROLLBACK")
            raise
        self._conn.execute("COMMIT")

    def lookup(self, commit_id: str) -> tuple[FileChange, ...] | None:
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT payload FROM entries WHERE commit_id = ?", (commit_id,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise CacheError(f"Cache read failed: {exc}") from exc
        if row is None:
            return None
        try:
            return tuple(FileChange.from_dict(item) for item in json.loads(row[0]))
        except (ValueError, KeyError, TypeError) as exc:
            raise CacheError(f"Corrupt cache entry for {commit_id[:8]}: {exc}") from exc

    def store(self, commit_id: str, changes: tuple[FileChange, ...]) -> None:
        payload = json.dumps([c.to_dict() for c in changes], sort_keys=True)
        try:
            with self._lock:
                self._conn.execute("BEGIN IMMEDIATE")
                try:
                    self._conn.execute(
                        "INSERT OR IGNORE INTO entries (commit_id, payload) VALUES (?, ?)",
                        (commit_id, payload),
                    )
                except sqlite3.Error:
                    self._conn.execute("ROLLBACK")
                    raise
                self._conn.execute("COMMIT")
        except sqlite3.Error as exc:
            raise CacheError(f"Cache write failed: {exc}") from exc

    def __len__(self) -> int:
        with self._lock:
            return self._conn.execute("SELECT COUNT(*) FROM entries").fetchone()[0]

    def close(self) -> None:
        with self._lock:
            self._conn.close()


class DegradingCache:
    """Wrap a store so the first :class:`CacheError` switches to always-miss."""

    def __init__(self, inner: CacheStore) -> None:
        self._inner: CacheStore | NullCache = inner

    @property
    def degraded(self) -> bool:
        return isinstance(self._inner, NullCache)

    def _degrade(self, exc: CacheError) -> None:
        logger.warning("%s; falling back to uncached operation", exc)
        inner, self._inner = self._inner, NullCache()
        try:
            inner.close()
        except sqlite3.Error:
            logger.debug("Ignoring error while closing a failed cache", exc_info=True)

    def lookup(self, commit_id: str) -> tuple[FileChange, ...] | None:
        try:
            return self._inner.lookup(commit_id)
        except CacheError as exc:
            self._degrade(exc)
            return None

    def store(self, commit_id: str, changes: tuple[FileChange, ...]) -> None:
        try:
            self._inner.store(commit_id, changes)
        except CacheError as exc:
            self._degrade(exc)

    def close(self) -> None:
        self._inner.close()


def open_cache(path: str | Path | None) -> DegradingCache | NullCache:
    """Open the cache at *path*; no path, or an unusable file, means no cache."""
    if path is None:
        return NullCache()
    try:
        return DegradingCache(CacheStore(path))
    except CacheError as exc:
        logger.warning("%s; falling back to uncached operation", exc)
        return NullCache()
