"""Aggregated views over the record stream: heatmap, churn and export."""

# Resolved lazily so importing the churn or export view does not pull in pandas.
from importlib import import_module as _im


def __getattr__(name: str):  # noqa: N807
    _map = {
        "get_heatmap": ("heat", "get_heatmap"),
        "commits_in_bucket": ("heat", "commits_in_bucket"),
        "window": ("heat", "window"),
        "get_churn": ("churn", "get_churn"),
        "get_export": ("export", "get_export"),
        "summarize": ("export", "summarize"),
    }
    if name in _map:
        mod_name, attr = _map[name]
        mod = _im(f"gmap.analyzers.{mod_name}")
        return getattr(mod, attr)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = [
    "get_heatmap",
    "commits_in_bucket",
    "window",
    "get_churn",
    "get_export",
    "summarize",
]
