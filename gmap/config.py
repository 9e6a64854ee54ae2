"""Environment-provided defaults for the command line."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Defaults:
    repo: str = "."
    cache: str | None = None
    jobs: int = 1


def load_defaults(environ: dict[str, str] | None = None) -> Defaults:
    """Read ``GMAP_REPO``, ``GMAP_CACHE`` and ``GMAP_JOBS`` from *environ*."""
    env = os.environ if environ is None else environ
    jobs = 1
    raw_jobs = env.get("GMAP_JOBS")
    if raw_jobs:
        try:
            jobs = max(1, int(raw_jobs))
        except ValueError:
            logger.warning("Ignoring GMAP_JOBS=%r: not an integer", raw_jobs)
    return Defaults(
        repo=env.get("GMAP_REPO") or ".",
        cache=env.get("GMAP_CACHE") or None,
        jobs=jobs,
    )


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
    )
