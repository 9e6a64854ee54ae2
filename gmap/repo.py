"""Thin helpers for opening a repo and looking up commits."""

from __future__ import annotations

from pathlib import Path

import git
from git import InvalidGitRepositoryError, NoSuchPathError, Repo
from git.exc import BadName, BadObject

from gmap.errors import RepositoryError
from gmap.models import Commit


def open_repo(path: str | Path = ".") -> Repo:
    """Open a git repository at *path* (or any of its parents)."""
    try:
        repo = Repo(str(path), search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError) as exc:
        raise RepositoryError(f"No git repository found at or above: {path}") from exc
    if not repo.head.is_valid():
        raise RepositoryError(f"Repository has no commits: {repo_root(repo)}")
    return repo


def repo_root(repo: Repo) -> Path:
    """Working tree root, or the git dir for bare repositories."""
    return Path(repo.working_tree_dir or repo.git_dir)


def lookup_commit(repo: Repo, ref: str) -> git.Commit | None:
    """Resolve *ref* (branch, tag, ``HEAD~n``, short hash) to a commit, or None."""
    try:
        obj = repo.rev_parse(ref)
    except (BadName, BadObject, ValueError, IndexError, NotImplementedError):
        return None
    if obj.type == "tag":
        obj = obj.object
    if obj.type != "commit":
        return None
    return obj


def to_commit(gc: git.Commit) -> Commit:
    """Convert a GitPython commit into the immutable :class:`Commit` record."""
    message = gc.message
    if isinstance(message, bytes):
        message = message.decode("utf-8", errors="replace")
    return Commit(
        id=gc.hexsha,
        author_name=gc.author.name or "",
        author_email=gc.author.email or "",
        timestamp=int(gc.authored_date),
        parent_count=len(gc.parents),
        message=message.strip(),
    )
