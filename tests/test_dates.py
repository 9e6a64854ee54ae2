from datetime import datetime, timedelta, timezone

import pytest

from gmap.dates import (
    boundary_window,
    looks_like_date,
    parse_date,
    resolve_boundary,
    resolve_range,
)
from gmap.errors import DateParseError, RevisionError

NOW = datetime(2024, 3, 15, 12, 30, tzinfo=timezone.utc)

REFS = {
    "HEAD": ("f" * 40, 1_710_000_000),
    "HEAD~2": ("e" * 40, 1_700_000_000),
    "v1.0": ("d" * 40, 1_690_000_000),
    "last-release": ("c" * 40, 1_705_000_000),
}


def resolver(ref):
    return REFS.get(ref)


class TestParseDate:
    def test_keywords(self):
        assert parse_date("now", NOW) == NOW
        assert parse_date("today", NOW) == datetime(2024, 3, 15, tzinfo=timezone.utc)
        assert parse_date("Yesterday", NOW) == datetime(2024, 3, 14, tzinfo=timezone.utc)
        assert parse_date("this month", NOW) == datetime(2024, 3, 1, tzinfo=timezone.utc)

    def test_relative_units(self):
        assert parse_date("3 days ago", NOW) == NOW - timedelta(days=3)
        assert parse_date("2 weeks ago", NOW) == NOW - timedelta(weeks=2)
        assert parse_date("1 month ago", NOW) == NOW - timedelta(days=30)
        assert parse_date("a year ago", NOW) == NOW - timedelta(days=365)

    def test_relative_is_against_now_not_commits(self):
        later = NOW + timedelta(days=10)
        assert parse_date("1 day ago", later) - parse_date("1 day ago", NOW) == timedelta(days=10)

    def test_unix_timestamp(self):
        assert parse_date("@1700000000", NOW) == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)

    def test_iso_date_is_utc_midnight(self):
        assert parse_date("2024-01-31", NOW) == datetime(2024, 1, 31, tzinfo=timezone.utc)

    def test_iso_datetime(self):
        assert parse_date("2024-01-31T10:00:00Z", NOW) == datetime(2024, 1, 31, 10, tzinfo=timezone.utc)
        assert parse_date("2024-01-31 10:00", NOW) == datetime(2024, 1, 31, 10, tzinfo=timezone.utc)

    def test_not_a_date(self):
        assert parse_date("main", NOW) is None
        assert parse_date("HEAD~2", NOW) is None


class TestLooksLikeDate:
    @pytest.mark.parametrize("expr", ["5 fortnights ago", "2024-13-45", "@abc", "last decade"])
    def test_date_like(self, expr):
        assert looks_like_date(expr)

    @pytest.mark.parametrize("expr", ["main", "HEAD~3", "v1.0", "feature/x", "HEAD@{2}"])
    def test_refs(self, expr):
        assert not looks_like_date(expr)


class TestResolveBoundary:
    def test_date_wins_over_ref(self):
        b = resolve_boundary("2024-01-01", NOW, resolver)
        assert not b.is_commit
        assert b.timestamp == int(datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp())

    def test_ref(self):
        b = resolve_boundary("HEAD~2", NOW, resolver)
        assert b.is_commit
        assert b.commit_id == "e" * 40

    def test_malformed_date_is_parse_error(self):
        with pytest.raises(DateParseError):
            resolve_boundary("5 fortnights ago", NOW, resolver)

    def test_date_like_branch_name_is_a_ref(self):
        b = resolve_boundary("last-release", NOW, resolver)
        assert b.is_commit
        assert b.commit_id == "c" * 40
        assert b.commit_timestamp == 1_705_000_000

    def test_unknown_ref_is_revision_error(self):
        with pytest.raises(RevisionError):
            resolve_boundary("no-such-branch", NOW, resolver)

    def test_empty_expression(self):
        with pytest.raises(DateParseError):
            resolve_boundary("  ", NOW, resolver)


class TestResolveRange:
    def test_ref_range(self):
        rng = resolve_range("HEAD~2", "HEAD", NOW, resolver)
        assert rng.exclude_commit == "e" * 40
        assert rng.include_commit == "f" * 40
        assert rng.since_timestamp is None

    def test_date_range(self):
        rng = resolve_range("2 weeks ago", "now", NOW, resolver)
        assert rng.exclude_commit is None
        assert rng.since_timestamp == int((NOW - timedelta(weeks=2)).timestamp())
        assert rng.until_timestamp == int(NOW.timestamp())

    def test_since_after_until(self):
        with pytest.raises(RevisionError):
            resolve_range("2024-03-01", "2024-02-01", NOW, resolver)
        with pytest.raises(RevisionError):
            resolve_range("HEAD", "2024-01-01", NOW, resolver)

    def test_revisions_are_not_ordered_by_author_date(self):
        rng = resolve_range("HEAD", "v1.0", NOW, resolver)
        assert rng.exclude_commit == "f" * 40
        assert rng.include_commit == "d" * 40

    def test_ref_is_looked_up_once(self):
        seen = []

        def counting(ref):
            seen.append(ref)
            return REFS.get(ref)

        assert boundary_window("HEAD~2", "HEAD", NOW, counting) == (1_700_000_001, 1_710_000_000)
        assert sorted(seen) == ["HEAD", "HEAD~2"]

    def test_open_range(self):
        rng = resolve_range(None, None, NOW, resolver)
        assert rng.since is None and rng.until is None


class TestBoundaryWindow:
    def test_ref_since_is_exclusive(self):
        start, end = boundary_window("HEAD~2", "HEAD", NOW, resolver)
        assert start == 1_700_000_001
        assert end == 1_710_000_000

    def test_dates(self):
        start, end = boundary_window("2024-01-01", None, NOW, resolver)
        assert start == int(datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp())
        assert end is None
