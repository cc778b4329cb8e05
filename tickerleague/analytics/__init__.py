"""Performance analytics: return statistics and per-member summaries."""

from .engine import AnalyticsEngine, AnalyticsView, LookbackWindow, RecordSummary, pick_weeks
from .stats import (
    annualized_return,
    beta_alpha,
    compounded_return,
    cumulative_series,
    mean,
    rolling_metrics,
    sample_std,
    std_dev,
)

__all__ = [
    "AnalyticsEngine",
    "AnalyticsView",
    "LookbackWindow",
    "RecordSummary",
    "annualized_return",
    "beta_alpha",
    "compounded_return",
    "cumulative_series",
    "mean",
    "pick_weeks",
    "rolling_metrics",
    "sample_std",
    "std_dev",
]
