"""CLI entrypoint for gmap.

Usage:
    python main.py [options] [heat|churn|export|help] [path]

Commands:
    heat         Commits and line churn per week (or month with --monthly)  [default]
    churn        Churn per file, or per directory prefix with --depth N
    export       One record per (commit, file change)
    help         Show this text

Options:
    --repo PATH              Repository to analyse (default: $GMAP_REPO or .)
    --cache FILE             Persistent classification cache (default: $GMAP_CACHE, none)
    --since EXPR             Start of the range, exclusive for refs
                             ("2 weeks ago", "2024-01-31", "@1700000000", "v1.2", "HEAD~10")
    --until EXPR             End of the range, inclusive
    --include-merges         Count merge commits
    --binary                 Count binary files (presence only, never lines)
    --author TEXT            Case-insensitive author name substring
    --author-email TEXT      Case-insensitive author email substring
    --exclude PATTERN        gitignore-style pattern to leave out (repeatable)
    --monthly                Bucket by month instead of week
    --depth N                churn: group paths by their first N components
    --tui                    Open the interactive dashboard
    --json / --ndjson        Machine-readable output (array / one record per line)
    --output FILE            Write output to FILE instead of stdout
    --jobs N                 Classification workers (default: $GMAP_JOBS or 1)
    -v, --verbose            More logging on stderr (repeat for debug)

Exit status is 0 on success and 1 when the repository or a range boundary
cannot be resolved.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from git import Repo

from gmap.analyzers import get_churn, get_export, get_heatmap, summarize
from gmap.analyzers.heat import intensity_char
from gmap.cache import open_cache
from gmap.config import Defaults, configure_logging, load_defaults
from gmap.dates import RefResolver, ResolvedRange, resolve_range
from gmap.errors import GmapError
from gmap.ingest import IngestStats, collect_records
from gmap.models import CommitRecord, FilterSpec, to_json, to_ndjson
from gmap.repo import lookup_commit, open_repo

logger = logging.getLogger("gmap")

CHURN_ROWS = 50
GLYPHS = " ▁▃▅▇█"


@dataclass
class Loaded:
    repo: Repo
    records: list[CommitRecord]
    spec: FilterSpec
    resolve_ref: RefResolver
    rng: ResolvedRange


def ref_resolver(repo: Repo) -> RefResolver:
    def resolve(ref: str) -> tuple[str, int] | None:
        commit = lookup_commit(repo, ref)
        if commit is None:
            return None
        return commit.hexsha, int(commit.authored_date)

    return resolve


def _load(args: argparse.Namespace) -> Loaded:
    repo = open_repo(args.repo)
    resolve = ref_resolver(repo)
    rng = resolve_range(args.since, args.until, datetime.now(timezone.utc), resolve)

    stats = IngestStats()
    records = _collect(args, repo, rng, args.include_merges, stats)
    logger.info(
        "%d commit(s): %d cached, %d classified, %d merge(s) skipped",
        stats.walked, stats.cache_hits, stats.classified, stats.skipped_merges,
    )

    spec = FilterSpec(
        since=rng.since_timestamp,
        until=rng.until_timestamp,
        author=args.author,
        author_email=args.author_email,
        include_merges=args.include_merges,
        include_binary=args.binary,
        exclude=tuple(args.exclude),
        path_prefix=getattr(args, "path", None) or None,
    )
    return Loaded(repo=repo, records=records, spec=spec, resolve_ref=resolve, rng=rng)


def _collect(
    args: argparse.Namespace,
    repo: Repo,
    rng: ResolvedRange,
    include_merges: bool,
    stats: IngestStats | None = None,
) -> list[CommitRecord]:
    cache = open_cache(args.cache)
    try:
        return collect_records(
            repo,
            rng,
            cache=cache,
            include_merges=include_merges,
            jobs=args.jobs,
            stats=stats,
        )
    finally:
        cache.close()


def _structured(args: argparse.Namespace) -> bool:
    return args.json or args.ndjson


def _render_structured(items: list, args: argparse.Namespace) -> str:
    return to_ndjson(items) if args.ndjson else to_json(items)


def cmd_heat(args: argparse.Namespace, loaded: Loaded) -> None:
    buckets = get_heatmap(loaded.records, loaded.spec, monthly=args.monthly)
    if _structured(args):
        _emit(_render_structured(buckets, args), args.output)
        return
    period = "Monthly" if args.monthly else "Weekly"
    lines = [f"{period} activity: {sum(b.commits for b in buckets)} commits in {len(buckets)} period(s)\n"]
    peak = max((b.commits for b in buckets), default=0)
    for b in buckets:
        glyph = intensity_char(b.commits, peak, GLYPHS)
        binary = f"  binary={b.binary_files}" if loaded.spec.include_binary else ""
        lines.append(
            f"  {b.start.date()}  {glyph}  commits={b.commits:<5}"
            f"  +{b.lines_added}/-{b.lines_removed}  churn={b.churn:<7}"
            f"  authors={b.authors}{binary}"
        )
    _emit("\n".join(lines), args.output)


def cmd_churn(args: argparse.Namespace, loaded: Loaded) -> None:
    entries = get_churn(loaded.records, loaded.spec, depth=args.depth)
    if _structured(args):
        _emit(_render_structured(entries, args), args.output)
        return
    lines = [f"Churn: {len(entries)} path(s)\n", "  churn     +added    -removed  commits  path"]
    for e in entries[:CHURN_ROWS]:
        lines.append(
            f"  {e.churn:<9} +{e.lines_added:<8} -{e.lines_removed:<8} {e.commits_touching:<8} {e.path}"
        )
    if len(entries) > CHURN_ROWS:
        lines.append(f"  ... and {len(entries) - CHURN_ROWS} more")
    _emit("\n".join(lines), args.output)


def cmd_export(args: argparse.Namespace, loaded: Loaded) -> None:
    if _structured(args):
        _emit(_render_structured(get_export(loaded.records, loaded.spec), args), args.output)
        return
    s = summarize(loaded.records, loaded.spec)
    lines = [
        f"Commits        : {s.commits}",
        f"Files changed  : {s.files_changed}",
        f"Lines added    : {s.lines_added}",
        f"Lines removed  : {s.lines_removed}",
        f"Unique authors : {s.authors}",
    ]
    if s.first is not None:
        lines.append(f"Date span      : {s.first.date()} .. {s.last.date()}")
    _emit("\n".join(lines), args.output)


def cmd_tui(args: argparse.Namespace, loaded: Loaded) -> None:
    # rich and click are only needed for the dashboard.
    from gmap.tui.run import run_dashboard

    def collect(include_merges: bool) -> list[CommitRecord]:
        return _collect(args, loaded.repo, loaded.rng, include_merges)

    run_dashboard(
        loaded.records,
        loaded.spec,
        loaded.resolve_ref,
        monthly=args.monthly,
        collect=collect,
        repo_dir=loaded.repo.working_tree_dir,
    )


def _emit(text: str, output_path: str | None) -> None:
    """Write *text* with a trailing newline; empty NDJSON stays empty."""
    if output_path:
        Path(output_path).write_text(text + "\n" if text else "")
        print(f"Output written to: {output_path}", file=sys.stderr)
    elif text:
        print(text)


def _common_parser(defaults: Defaults | None) -> argparse.ArgumentParser:
    """Flags accepted before and after the subcommand.

    The subcommand copy is built with *defaults* None so that its
    suppressed defaults never overwrite values given before the subcommand.
    """
    def default(value):
        return argparse.SUPPRESS if defaults is None else value

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--repo", default=default(defaults and defaults.repo), metavar="PATH", help="Repository to analyse")
    common.add_argument("--cache", default=default(defaults and defaults.cache), metavar="FILE", help="Classification cache file")
    common.add_argument("--since", default=default(None), metavar="EXPR", help="Range start (exclusive for refs)")
    common.add_argument("--until", default=default(None), metavar="EXPR", help="Range end (inclusive)")
    common.add_argument("--include-merges", action="store_true", default=default(False), help="Count merge commits")
    common.add_argument("--binary", action="store_true", default=default(False), help="Count binary files (presence only)")
    common.add_argument("--author", default=default(None), metavar="TEXT", help="Author name substring")
    common.add_argument("--author-email", default=default(None), metavar="TEXT", help="Author email substring")
    common.add_argument(
        "--exclude",
        metavar="PATTERN",
        action="append",
        default=default([]),
        help="gitignore-style pattern to leave out (repeatable, e.g. --exclude 'vendor/')",
    )
    common.add_argument("--monthly", action="store_true", default=default(False), help="Bucket by month")
    common.add_argument("--tui", action="store_true", default=default(False), help="Open the interactive dashboard")
    output = common.add_mutually_exclusive_group()
    output.add_argument("--json", action="store_true", default=default(False), help="JSON array output")
    output.add_argument("--ndjson", action="store_true", default=default(False), help="One JSON record per line")
    common.add_argument("--output", default=default(None), metavar="FILE", help="Write output to FILE")
    common.add_argument("--jobs", type=int, default=default(defaults and defaults.jobs), metavar="N", help="Classification workers")
    common.add_argument("-v", "--verbose", action="count", default=default(0), help="More logging (repeatable)")
    return common


def build_parser(defaults: Defaults | None = None) -> argparse.ArgumentParser:
    defaults = defaults or Defaults()
    top = _common_parser(defaults)
    sub_common = _common_parser(None)

    parser = argparse.ArgumentParser(
        prog="gmap",
        description="Activity heatmap, churn and export for a git repository.",
        parents=[top],
    )
    parser.set_defaults(path=None, depth=None)

    sub = parser.add_subparsers(dest="command")
    heat = sub.add_parser("heat", parents=[sub_common], help="Commits and churn per period")
    heat.add_argument("path", nargs="?", default=None, help="Only count files under this path prefix")
    churn = sub.add_parser("churn", parents=[sub_common], help="Churn per file or directory")
    churn.add_argument("path", nargs="?", default=None, help="Only count files under this path prefix")
    churn.add_argument("--depth", type=int, default=None, metavar="N", help="Group paths by their first N components")
    sub.add_parser("export", parents=[sub_common], help="One record per (commit, file change)")
    sub.add_parser("help", help="Show detailed help")

    return parser


_COMMANDS = {
    "heat": cmd_heat,
    "churn": cmd_churn,
    "export": cmd_export,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser(load_defaults())
    args = parser.parse_args(argv)
    args.command = args.command or "heat"
    if args.command == "help":
        print(__doc__)
        return 0

    configure_logging(args.verbose)
    if args.depth is not None and args.depth < 1:
        parser.error("--depth must be a positive integer")
    try:
        loaded = _load(args)
        if args.tui:
            cmd_tui(args, loaded)
        else:
            _COMMANDS[args.command](args, loaded)
    except GmapError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
