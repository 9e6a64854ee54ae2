"""Resolve ``--since`` / ``--until`` expressions into concrete boundaries.

Resolution is a pure function of the expression, a reference time and a ref
resolver. Each strategy either returns a value or ``None``; strategies are tried
in a fixed order and the first hit wins. Date forms are always tried before
the expression is looked up as a revision.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional

from gmap.errors import DateParseError, RevisionError

# ref -> (commit id, author timestamp), or None when the ref is unknown
RefResolver = Callable[[str], Optional[tuple[str, int]]]
DateStrategy = Callable[[str, datetime], Optional[datetime]]

_UNIT_SECONDS = {
    "second": 1,
    "minute": 60,
    "hour": 3600,
    "day": 86400,
    "week": 7 * 86400,
    "month": 30 * 86400,
    "year": 365 * 86400,
}

_RELATIVE_RE = re.compile(
    r"^(?P<count>\d+|an?)\s+(?P<unit>second|minute|hour|day|week|month|year)s?\s+ago$"
)
_UNIX_RE = re.compile(r"^@(?P<seconds>\d+)$")
# Text that is not a revision but smells like a date is a DateParseError
# rather than a revision lookup failure.
_DATE_LIKE_RE = re.compile(
    r"(\bago\b|^\d{4}-|^\d{1,2}/\d{1,2}|^@|\b(today|now|yesterday|last|this)\b)"
)


@dataclass(frozen=True)
class Boundary:
    """A resolved range boundary: either an instant or a concrete commit."""

    expression: str
    timestamp: int | None = None
    commit_id: str | None = None
    # author timestamp of *commit_id*
    commit_timestamp: int | None = None

    @property
    def is_commit(self) -> bool:
        return self.commit_id is not None


@dataclass(frozen=True)
class ResolvedRange:
    since: Boundary | None = None
    until: Boundary | None = None

    @property
    def exclude_commit(self) -> str | None:
        """Commit whose ancestry is excluded from the walk (start is exclusive)."""
        if self.since is not None and self.since.is_commit:
            return self.since.commit_id
        return None

    @property
    def include_commit(self) -> str | None:
        """Commit the walk starts from (end is inclusive)."""
        if self.until is not None and self.until.is_commit:
            return self.until.commit_id
        return None

    @property
    def since_timestamp(self) -> int | None:
        if self.since is not None and not self.since.is_commit:
            return self.since.timestamp
        return None

    @property
    def until_timestamp(self) -> int | None:
        if self.until is not None and not self.until.is_commit:
            return self.until.timestamp
        return None


def _midnight(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _parse_keyword(expr: str, now: datetime) -> datetime | None:
    today = _midnight(now.date())
    keywords = {
        "now": now,
        "today": today,
        "yesterday": today - timedelta(days=1),
        "last week": now - timedelta(weeks=1),
        "last month": now - timedelta(days=30),
        "last year": now - timedelta(days=365),
        "this week": today - timedelta(days=today.weekday()),
        "this month": today.replace(day=1),
        "this year": today.replace(month=1, day=1),
    }
    return keywords.get(expr)


def _parse_relative(expr: str, now: datetime) -> datetime | None:
    match = _RELATIVE_RE.match(expr)
    if not match:
        return None
    raw = match.group("count")
    count = 1 if raw in ("a", "an") else int(raw)
    return now - timedelta(seconds=count * _UNIT_SECONDS[match.group("unit")])


def _parse_unix(expr: str, now: datetime) -> datetime | None:
    match = _UNIX_RE.match(expr)
    if not match:
        return None
    return datetime.fromtimestamp(int(match.group("seconds")), tz=timezone.utc)


def _parse_iso_date(expr: str, now: datetime) -> datetime | None:
    if len(expr) != 10:
        return None
    try:
        return _midnight(date.fromisoformat(expr))
    except ValueError:
        return None


def _parse_iso_datetime(expr: str, now: datetime) -> datetime | None:
    text = expr.upper()
    if "T" not in text and " " not in text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


DATE_STRATEGIES: tuple[DateStrategy, ...] = (
    _parse_keyword,
    _parse_relative,
    _parse_unix,
    _parse_iso_date,
    _parse_iso_datetime,
)


def parse_date(expr: str, now: datetime) -> datetime | None:
    """Try every date strategy in order; ``None`` when none applies."""
    normalized = " ".join(expr.strip().lower().split())
    for strategy in DATE_STRATEGIES:
        parsed = strategy(normalized, now)
        if parsed is not None:
            return parsed
    return None


def looks_like_date(expr: str) -> bool:
    text = expr.strip().lower()
    if "@{" in text:  # reflog selectors are revisions
        return False
    return bool(_DATE_LIKE_RE.search(text))


def _date_boundary(expr: str, now: datetime, resolve_ref: RefResolver) -> Boundary | None:
    parsed = parse_date(expr, now)
    if parsed is None:
        return None
    return Boundary(expression=expr, timestamp=int(parsed.timestamp()))


def _ref_boundary(expr: str, now: datetime, resolve_ref: RefResolver) -> Boundary | None:
    found = resolve_ref(expr.strip())
    if found is None:
        return None
    commit_id, commit_timestamp = found
    return Boundary(expression=expr, commit_id=commit_id, commit_timestamp=commit_timestamp)


BOUNDARY_STRATEGIES = (_date_boundary, _ref_boundary)


def resolve_boundary(expr: str, now: datetime, resolve_ref: RefResolver) -> Boundary:
    """Resolve one boundary expression.

    Date forms are tried first, then the expression is looked up as a
    revision, so a branch such as ``last-release`` still resolves.

    Raises
    ------
    DateParseError
        *expr* is not a known revision and looks like a date or relative
        expression that does not parse.
    RevisionError
        *expr* is neither a date nor a known revision.
    """
    if not expr or not expr.strip():
        raise DateParseError("empty date expression")
    for strategy in BOUNDARY_STRATEGIES:
        boundary = strategy(expr, now, resolve_ref)
        if boundary is not None:
            return boundary
    if looks_like_date(expr):
        raise DateParseError(f"Unrecognized date expression: {expr!r}")
    raise RevisionError(f"Unknown revision or date: {expr!r}")


def resolve_range(
    since: str | None,
    until: str | None,
    now: datetime,
    resolve_ref: RefResolver,
) -> ResolvedRange:
    """Resolve both boundaries and check that *since* does not follow *until*.

    Two revisions are never compared by date: author dates do not follow
    ancestry after a rebase or cherry-pick, and ``since..until`` is already
    well defined for any pair of commits.
    """
    since_b = resolve_boundary(since, now, resolve_ref) if since is not None else None
    until_b = resolve_boundary(until, now, resolve_ref) if until is not None else None
    if since_b is not None and until_b is not None:
        if not (since_b.is_commit and until_b.is_commit):
            if _instant(since_b) > _instant(until_b):
                raise RevisionError(
                    f"Invalid range: since ({since}) is after until ({until})"
                )
    return ResolvedRange(since=since_b, until=until_b)


def boundary_window(
    since: str | None,
    until: str | None,
    now: datetime,
    resolve_ref: RefResolver,
) -> tuple[int | None, int | None]:
    """Resolve boundaries to a timestamp window over already-walked records.

    A revision used as *since* becomes "strictly after that commit"; as
    *until* it becomes "up to and including that commit".
    """
    resolved = resolve_range(since, until, now, resolve_ref)
    start = end = None
    if resolved.since is not None:
        start = _instant(resolved.since)
        if resolved.since.is_commit:
            start += 1
    if resolved.until is not None:
        end = _instant(resolved.until)
    return start, end


def _instant(boundary: Boundary) -> int:
    if boundary.is_commit:
        return boundary.commit_timestamp
    return boundary.timestamp
