"""Interactive dashboard loop."""

from __future__ import annotations

import logging
import signal
import subprocess
from datetime import datetime
from typing import Callable

from rich.console import Console
from rich.live import Live

from gmap.dates import RefResolver
from gmap.models import CommitRecord, FilterSpec
from gmap.tui.controller import Controller
from gmap.tui.keys import read_event
from gmap.tui.render import render
from gmap.tui.state import Event

logger = logging.getLogger(__name__)


class StatusHandler(logging.Handler):
    """Send warnings to the dashboard status line instead of the terminal."""

    def __init__(self, controller: Controller) -> None:
        super().__init__(level=logging.WARNING)
        self.controller = controller

    def emit(self, record: logging.LogRecord) -> None:
        self.controller.set_status(self.format(record))


def run_dashboard(
    records: list[CommitRecord],
    base_filter: FilterSpec,
    resolve_ref: RefResolver,
    monthly: bool = False,
    console: Console | None = None,
    read: Callable[[], Event | None] = read_event,
    now: Callable[[], datetime] | None = None,
    collect: Callable[[bool], list[CommitRecord]] | None = None,
    repo_dir: str | None = None,
) -> None:
    """Run the dashboard until the user quits.

    Parameters
    ----------
    records
        The ingested record stream, newest first.
    base_filter
        Filters from the command line; search queries narrow from here.
    resolve_ref
        Resolves ``since:``/``until:`` refs typed at the search prompt.
    read
        Returns the next key event, or None for an unmapped key.
    collect
        Re-ingests with merges diffed, for the ``M`` toggle.
    repo_dir
        Working directory for ``git show`` on ``o``; None disables it.
    """
    console = console or Console()
    live: Live | None = None

    def redraw() -> None:
        if live is not None:
            live.update(render(controller.snapshot()), refresh=True)

    def show(commit_id: str) -> bool:
        # git's pager needs the real terminal, so leave the alternate screen
        if live is not None:
            live.stop()
        try:
            subprocess.run(["git", "-C", repo_dir, "show", commit_id], check=True)
        except (subprocess.CalledProcessError, OSError) as exc:
            logger.debug("git show %s failed: %s", commit_id, exc)
            return False
        finally:
            if live is not None:
                live.start(refresh=True)
        return True

    controller = Controller(
        records,
        base_filter,
        resolve_ref,
        monthly=monthly,
        now=now,
        on_working=redraw,
        collect=collect,
        show=show if repo_dir is not None else None,
    )

    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    status_handler = StatusHandler(controller)
    status_handler.setFormatter(logging.Formatter("%(message)s"))
    for handler in saved_handlers:
        root.removeHandler(handler)
    root.addHandler(status_handler)

    def on_sigint(signum, frame) -> None:
        controller.cancel.set()

    saved_sigint = signal.signal(signal.SIGINT, on_sigint)
    try:
        with Live(
            render(controller.snapshot()),
            console=console,
            screen=True,
            auto_refresh=False,
        ) as live:
            while True:
                event = read()
                if event is not None and not controller.handle(event):
                    break
                live.update(render(controller.snapshot()), refresh=True)
    except KeyboardInterrupt:
        logger.debug("Dashboard interrupted")
    finally:
        signal.signal(signal.SIGINT, saved_sigint)
        root.removeHandler(status_handler)
        for handler in saved_handlers:
            root.addHandler(handler)
