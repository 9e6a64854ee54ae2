"""Walk repository history for a resolved range."""

from __future__ import annotations

import heapq
import logging
from typing import Iterator

import git
from git import Repo
from git.exc import GitCommandError

from gmap.dates import ResolvedRange
from gmap.errors import RevisionError

logger = logging.getLogger(__name__)


def rev_spec(rng: ResolvedRange) -> str:
    """The ``git rev-list`` argument for *rng*: start exclusive, end inclusive."""
    include = rng.include_commit or "HEAD"
    if rng.exclude_commit:
        return f"{rng.exclude_commit}..{include}"
    return include


def walk(repo: Repo, rng: ResolvedRange) -> Iterator[git.Commit]:
    """Yield every commit in *rng*, children before parents.

    Merge commits are always yielded; whether they count is decided later by
    the filter. Among commits whose children have all been yielded, the most
    recent author timestamp goes first, then the smaller hash, so two walks
    over the same history produce the same order.
    """
    spec = rev_spec(rng)
    try:
        commits = {c.hexsha: c for c in repo.iter_commits(spec)}
    except GitCommandError as exc:
        raise RevisionError(f"Cannot walk {spec!r}: {str(exc.stderr).strip()}") from exc
    logger.info("Walked %d commit(s) for %s", len(commits), spec)

    pending_children: dict[str, int] = dict.fromkeys(commits, 0)
    for commit in commits.values():
        for parent in commit.parents:
            if parent.hexsha in pending_children:
                pending_children[parent.hexsha] += 1

    ready = [
        (-c.authored_date, sha)
        for sha, c in commits.items()
        if pending_children[sha] == 0
    ]
    heapq.heapify(ready)
    while ready:
        _, sha = heapq.heappop(ready)
        commit = commits[sha]
        yield commit
        for parent in commit.parents:
            if parent.hexsha not in pending_children:
                continue
            pending_children[parent.hexsha] -= 1
            if pending_children[parent.hexsha] == 0:
                parent_commit = commits[parent.hexsha]
                heapq.heappush(ready, (-parent_commit.authored_date, parent.hexsha))
