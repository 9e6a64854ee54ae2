from datetime import datetime, timezone

import pytest

from gmap.dates import ResolvedRange, resolve_range
from gmap.errors import RepositoryError
from gmap.repo import lookup_commit, open_repo, to_commit
from gmap.walker import rev_spec, walk
from main import ref_resolver

from conftest import BOB, DAY, MONDAY

NOW = datetime(2030, 1, 1, tzinfo=timezone.utc)


def _ids(repo, rng):
    return [c.hexsha for c in walk(repo, rng)]


@pytest.fixture
def linear(builder):
    shas = [builder.commit({"f.txt": f"{i}\n"}, MONDAY + i * DAY, message=f"c{i}") for i in range(5)]
    return builder, shas


@pytest.fixture
def merged(builder):
    """base -> side (ts+1d) and main (ts+2d), merged at ts+3d."""
    base = builder.commit({"a.txt": "1\n"}, MONDAY)
    side = builder.commit({"b.txt": "x\n"}, MONDAY + DAY, author=BOB, parents=[base])
    main = builder.commit({"a.txt": "1\n2\n"}, MONDAY + 2 * DAY, parents=[base])
    merge = builder.commit({}, MONDAY + 3 * DAY, message="Merge side", parents=[main, side])
    return builder, {"base": base, "side": side, "main": main, "merge": merge}


class TestOpenRepo:
    def test_not_a_repository(self, tmp_path):
        with pytest.raises(RepositoryError):
            open_repo(tmp_path / "nowhere")

    def test_empty_repository(self, builder):
        with pytest.raises(RepositoryError):
            open_repo(builder.path)

    def test_subdirectory_finds_root(self, linear):
        builder, _ = linear
        sub = builder.path / "deep" / "dir"
        sub.mkdir(parents=True)
        assert open_repo(sub).git_dir == builder.repo.git_dir


class TestWalk:
    def test_children_before_parents_newest_first(self, linear):
        builder, shas = linear
        assert _ids(builder.repo, ResolvedRange()) == list(reversed(shas))

    def test_deterministic(self, merged):
        builder, _ = merged
        assert _ids(builder.repo, ResolvedRange()) == _ids(builder.repo, ResolvedRange())

    def test_merges_are_visited(self, merged):
        builder, c = merged
        order = _ids(builder.repo, ResolvedRange())
        assert order == [c["merge"], c["main"], c["side"], c["base"]]

    def test_ref_range_start_exclusive_end_inclusive(self, linear):
        builder, shas = linear
        resolve = ref_resolver(builder.repo)
        rng = resolve_range("HEAD~2", "HEAD", NOW, resolve)
        assert _ids(builder.repo, rng) == [shas[4], shas[3]]

    def test_until_ref(self, linear):
        builder, shas = linear
        rng = resolve_range(None, "HEAD~3", NOW, ref_resolver(builder.repo))
        assert _ids(builder.repo, rng) == [shas[1], shas[0]]

    def test_filtered_walk_is_subset(self, linear):
        builder, shas = linear
        rng = resolve_range("HEAD~3", None, NOW, ref_resolver(builder.repo))
        assert set(_ids(builder.repo, rng)) <= set(_ids(builder.repo, ResolvedRange()))

    def test_rev_spec(self):
        rng = ResolvedRange()
        assert rev_spec(rng) == "HEAD"


class TestLookup:
    def test_lookup_and_convert(self, linear):
        builder, shas = linear
        gc = lookup_commit(builder.repo, "HEAD~1")
        assert gc.hexsha == shas[3]
        commit = to_commit(gc)
        assert commit.timestamp == MONDAY + 3 * DAY
        assert commit.author_name == "Alice Doe"
        assert commit.parent_count == 1
        assert commit.subject == "c3"

    def test_unknown_ref(self, linear):
        builder, _ = linear
        assert lookup_commit(builder.repo, "does-not-exist") is None

    def test_short_hash(self, linear):
        builder, shas = linear
        assert lookup_commit(builder.repo, shas[0][:10]).hexsha == shas[0]
