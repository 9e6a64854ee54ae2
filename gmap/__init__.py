"""gmap: activity heatmaps, churn and export over git history."""

__version__ = "0.1.0"
