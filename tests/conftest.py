from datetime import datetime, timezone
from pathlib import Path

import pytest
from git import Actor, Repo

from gmap.models import Commit, CommitRecord, FileChange

# Monday 2024-01-01 00:00:00 UTC
MONDAY = int(datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp())
DAY = 86400
WEEK = 7 * DAY

ALICE = ("Alice Doe", "alice@example.com")
BOB = ("Bob", "bob@example.org")


class RepoBuilder:
    """Build a real git repository with exact author timestamps."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.repo = Repo.init(path)
        with self.repo.config_writer() as cw:
            cw.set_value("user", "name", "Test")
            cw.set_value("user", "email", "test@example.com")

    def commit(self, files, ts, author=ALICE, message="change", parents=None):
        """Write *files* ({path: str | bytes | None}) and commit at *ts*.

        A None value deletes the file.
        """
        for rel, content in files.items():
            full = self.path / rel
            if content is None:
                self.repo.index.remove([rel], working_tree=True)
                continue
            full.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                full.write_bytes(content)
            else:
                full.write_text(content)
            self.repo.index.add([rel])
        actor = Actor(*author)
        date = f"{ts} +0000"
        parent_commits = None
        if parents is not None:
            parent_commits = [self.repo.commit(p) for p in parents]
        commit = self.repo.index.commit(
            message,
            parent_commits=parent_commits,
            author=actor,
            committer=actor,
            author_date=date,
            commit_date=date,
        )
        return commit.hexsha

    def rename(self, old, new, ts, author=ALICE):
        self.repo.index.move([old, new])
        return self.commit({}, ts, author=author, message=f"rename {old}")


@pytest.fixture
def builder(tmp_path):
    b = RepoBuilder(tmp_path / "repo")
    yield b
    b.repo.close()


@pytest.fixture
def three_commit_repo(builder):
    """Three commits on one Monday: +10/-0, +5/-2, +0/-3 (churn 20 in total)."""
    ten = "".join(f"line {i}\n" for i in range(10))
    builder.commit({"a.txt": ten}, MONDAY + 3600, message="add a")
    # drop lines 0-1, append five
    five = "".join(f"line {i}\n" for i in range(2, 10)) + "".join(f"new {i}\n" for i in range(5))
    builder.commit({"a.txt": five}, MONDAY + 7200, author=BOB, message="rework a")
    # drop three lines
    builder.commit({"a.txt": "".join(five.splitlines(True)[3:])}, MONDAY + 10800, message="trim a")
    return builder


def make_record(cid, ts, changes=(), author=ALICE, parents=1, message="msg"):
    commit = Commit(
        id=cid,
        author_name=author[0],
        author_email=author[1],
        timestamp=ts,
        parent_count=parents,
        message=message,
    )
    return CommitRecord(commit=commit, changes=tuple(changes))


def fc(path, added=0, removed=0, binary=False):
    return FileChange(path=path, lines_added=added, lines_removed=removed, is_binary=binary)


@pytest.fixture
def sample_records():
    """Hand-built record stream over three weeks, newest first."""
    return [
        make_record("c" * 40, MONDAY + 2 * WEEK + DAY, [fc("src/app/main.py", 4, 1), fc("README.md", 2, 0)], author=BOB),
        make_record("m" * 40, MONDAY + WEEK + 2 * DAY, [fc("src/app/main.py", 50, 50)], parents=2),
        make_record("b" * 40, MONDAY + WEEK, [fc("logo.png", binary=True)]),
        make_record("a" * 40, MONDAY, [fc("src/app/main.py", 10, 0), fc("src/lib/util.py", 5, 2)]),
    ]
