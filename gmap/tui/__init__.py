"""Terminal dashboard over the aggregated views."""
