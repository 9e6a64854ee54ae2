"""Turn a history walk into a stream of classified commit records.

The cache is consulted for every walked commit (read-through); misses are
classified, and the classifier writes them back before returning
(write-through). Misses are independent of each other, so with ``jobs > 1``
they are classified on a thread pool, one GitPython ``Repo`` per worker.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import git
from git import Repo

from gmap.cache import DegradingCache, NullCache
from gmap.classifier import classify_commit
from gmap.dates import ResolvedRange
from gmap.models import CommitRecord, FileChange
from gmap.repo import to_commit
from gmap.walker import walk

logger = logging.getLogger(__name__)


@dataclass
class IngestStats:
    walked: int = 0
    cache_hits: int = 0
    classified: int = 0
    skipped_merges: int = 0


class _WorkerRepos:
    """Lazily opened, per-thread ``Repo`` handles; GitPython repos are not thread-safe."""

    def __init__(self, git_dir: str) -> None:
        self._git_dir = git_dir
        self._local = threading.local()
        self._opened: list[Repo] = []
        self._lock = threading.Lock()

    def get(self) -> Repo:
        repo = getattr(self._local, "repo", None)
        if repo is None:
            repo = Repo(self._git_dir)
            self._local.repo = repo
            with self._lock:
                self._opened.append(repo)
        return repo

    def close(self) -> None:
        for repo in self._opened:
            repo.close()
        self._opened.clear()


def collect_records(
    repo: Repo,
    rng: ResolvedRange,
    cache: DegradingCache | NullCache | None = None,
    include_merges: bool = False,
    jobs: int = 1,
    stats: IngestStats | None = None,
) -> list[CommitRecord]:
    """Walk *rng* and return one :class:`CommitRecord` per commit, in walk order.

    Merge commits are always part of the result. When *include_merges* is off
    they are not diffed (the filter drops them before looking at files) and
    carry no changes.
    """
    cache = cache if cache is not None else NullCache()
    stats = stats if stats is not None else IngestStats()
    walked = list(walk(repo, rng))
    stats.walked = len(walked)

    changes: dict[str, tuple[FileChange, ...]] = {}
    misses: list[git.Commit] = []
    for gc in walked:
        if len(gc.parents) > 1 and not include_merges:
            stats.skipped_merges += 1
            continue
        cached = cache.lookup(gc.hexsha)
        if cached is not None:
            stats.cache_hits += 1
            changes[gc.hexsha] = cached
        else:
            misses.append(gc)

    if misses:
        logger.info(
            "Classifying %d commit(s) (%d cached)", len(misses), stats.cache_hits
        )
        changes.update(_classify_all(repo, misses, cache, jobs))
        stats.classified = len(misses)

    return [
        CommitRecord(commit=to_commit(gc), changes=changes.get(gc.hexsha, ()))
        for gc in walked
    ]


def _classify_all(
    repo: Repo,
    commits: list[git.Commit],
    cache: DegradingCache | NullCache,
    jobs: int,
) -> dict[str, tuple[FileChange, ...]]:
    if jobs <= 1 or len(commits) == 1:
        return {gc.hexsha: classify_commit(gc, cache) for gc in commits}

    repos = _WorkerRepos(repo.git_dir)

    def work(sha: str) -> tuple[str, tuple[FileChange, ...]]:
        return sha, classify_commit(repos.get().commit(sha), cache)

    try:
        with ThreadPoolExecutor(max_workers=jobs) as pool:
            return dict(pool.map(work, [gc.hexsha for gc in commits]))
    finally:
        repos.close()
