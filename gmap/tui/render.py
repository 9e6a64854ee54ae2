"""Render a controller snapshot with rich."""

from __future__ import annotations

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from gmap.analyzers.heat import intensity_char
from gmap.tui.controller import Snapshot
from gmap.tui.state import TABS, Mode, Tab

VISIBLE_ROWS = 20
COMMIT_GLYPHS = " ▁▃▅▇█"
LINE_GLYPHS = " ░▒▓█"
BAR_WIDTH = 40

HELP_ROWS = [
    ("↑/k ↓/j", "Move selection"),
    ("PgUp PgDn", "Move by a page"),
    ("g/Home G/End", "First / last item"),
    ("Tab Shift+Tab", "Next / previous tab"),
    ("Enter", "Show the commits of the selected period"),
    ("/", "Search: author:, email:, path:, since:, until: or plain author text"),
    ("Esc", "Cancel search / close help"),
    ("c", "Copy commit id (or period start)"),
    ("m", "Toggle weekly / monthly"),
    ("M", "Toggle counting merge commits"),
    ("o", "Open the selected commit with git show"),
    ("A", "Toggle last 52 weeks (12 months) / all history"),
    ("h F1", "Toggle this help"),
    ("q", "Quit"),
]


def _visible(count: int, selected: int) -> range:
    start = max(0, min(selected - VISIBLE_ROWS // 2, count - VISIBLE_ROWS))
    return range(start, min(count, start + VISIBLE_ROWS))


def _tab_bar(snap: Snapshot) -> Text:
    bar = Text()
    for tab in TABS:
        style = "bold reverse" if tab is snap.state.tab else "dim"
        bar.append(f" {tab.value} ", style=style)
        bar.append(" ")
    period = "monthly" if snap.state.monthly else "weekly"
    scope = "all history" if snap.state.show_all else "recent"
    bar.append(f"  [{period}, {scope}]", style="cyan")
    if snap.state.active_query:
        bar.append(f"  filter: {snap.state.active_query}", style="yellow")
    return bar


def _heatmap(snap: Snapshot) -> RenderableType:
    if not snap.buckets:
        return Text("No data to display", style="dim")
    peak_commits = max(b.commits for b in snap.buckets)
    peak_churn = max(b.churn for b in snap.buckets)
    table = Table(expand=True, show_edge=False)
    table.add_column("Period")
    table.add_column("", width=2)
    table.add_column("Commits", justify="right")
    table.add_column("+Lines", justify="right", style="green")
    table.add_column("-Lines", justify="right", style="red")
    table.add_column("Churn", justify="right")
    table.add_column("Authors", justify="right")
    for i in _visible(len(snap.buckets), snap.state.selected):
        b = snap.buckets[i]
        glyphs = Text(intensity_char(b.commits, peak_commits, COMMIT_GLYPHS), style="green")
        glyphs.append(intensity_char(b.churn, peak_churn, LINE_GLYPHS), style="blue")
        table.add_row(
            b.start.date().isoformat(),
            glyphs,
            str(b.commits),
            str(b.lines_added),
            str(b.lines_removed),
            str(b.churn),
            str(b.authors),
            style="reverse" if i == snap.state.selected else None,
        )
    return table


def _stats(snap: Snapshot) -> RenderableType:
    s = snap.summary
    totals = Table.grid(padding=(0, 2))
    totals.add_row("Commits", str(s.commits))
    totals.add_row("Files changed", str(s.files_changed))
    totals.add_row("Lines added", Text(str(s.lines_added), style="green"))
    totals.add_row("Lines removed", Text(str(s.lines_removed), style="red"))
    totals.add_row("Authors", str(s.authors))
    if s.first is not None:
        totals.add_row("Span", f"{s.first.date()} .. {s.last.date()}")

    authors = Table(title="Top authors", expand=True, show_edge=False)
    authors.add_column("Author")
    authors.add_column("Commits", justify="right")
    for name, count in s.top_authors:
        authors.add_row(name, str(count))

    churn = Table(title="Top churn", expand=True, show_edge=False)
    churn.add_column("Path")
    churn.add_column("Churn", justify="right")
    churn.add_column("Commits", justify="right")
    for entry in snap.churn:
        churn.add_row(entry.path, str(entry.churn), str(entry.commits_touching))
    return Group(Panel(totals, title="Totals"), authors, churn)


def _timeline(snap: Snapshot) -> RenderableType:
    if not snap.buckets:
        return Text("No data to display", style="dim")
    peak = max(b.commits for b in snap.buckets) or 1
    lines = Text()
    for i in _visible(len(snap.buckets), snap.state.selected):
        b = snap.buckets[i]
        width = round(BAR_WIDTH * b.commits / peak)
        style = "reverse" if i == snap.state.selected else None
        lines.append(f"{b.start.date().isoformat()} ", style=style)
        lines.append("█" * width, style="green")
        lines.append(f" {b.commits}\n")
    return lines


def _commits(snap: Snapshot) -> RenderableType:
    if snap.drilled is None:
        return Text("Select a period and press Enter to list its commits.", style="dim")
    title = f"Commits in period starting {snap.drilled.start.date().isoformat()}"
    table = Table(title=title, expand=True, show_edge=False)
    table.add_column("Commit")
    table.add_column("Date")
    table.add_column("Author")
    table.add_column("+", justify="right", style="green")
    table.add_column("-", justify="right", style="red")
    table.add_column("Files", justify="right")
    table.add_column("Subject", overflow="ellipsis", no_wrap=True)
    for i in _visible(len(snap.commits), snap.state.commit_selected):
        record = snap.commits[i]
        commit = record.commit
        table.add_row(
            commit.short_id,
            commit.authored_at.strftime("%Y-%m-%d %H:%M"),
            commit.author_name,
            str(sum(c.lines_added for c in record.changes)),
            str(sum(c.lines_removed for c in record.changes)),
            str(len(record.changes)),
            commit.subject,
            style="reverse" if i == snap.state.commit_selected else None,
        )
    return table


def _help() -> RenderableType:
    table = Table.grid(padding=(0, 3))
    for keys, action in HELP_ROWS:
        table.add_row(Text(keys, style="bold"), action)
    return Panel(table, title="Keys", subtitle="h / F1 / Esc to close")


def _footer(snap: Snapshot) -> Text:
    footer = Text()
    if snap.state.mode is Mode.SEARCHING:
        footer.append(f"/{snap.state.query}", style="bold yellow")
        footer.append("▏", style="blink")
        return footer
    if snap.state.working:
        footer.append("working… ", style="bold magenta")
    if snap.status:
        footer.append(snap.status, style="yellow")
    else:
        footer.append("q quit · h help · / search · Enter open · A all · m monthly", style="dim")
    return footer


_BODIES = {
    Tab.HEATMAP: _heatmap,
    Tab.STATS: _stats,
    Tab.TIMELINE: _timeline,
    Tab.COMMITS: _commits,
}


def render(snap: Snapshot) -> RenderableType:
    body = _help() if snap.state.mode is Mode.HELP else _BODIES[snap.state.tab](snap)
    return Group(_tab_bar(snap), Text(), body, Text(), _footer(snap))
