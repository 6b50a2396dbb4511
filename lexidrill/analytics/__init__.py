from .config import AnalyticsConfig
from .metrics import compute_metrics, difficult_questions, mode_history, weekly_activity
from .prepare import load_and_prepare, prepare_attempts
from .smoothing import ewma_by_attempt
from .plots import plot_trend, plot_weekly

__all__ = [
    "AnalyticsConfig",
    "compute_metrics",
    "difficult_questions",
    "mode_history",
    "weekly_activity",
    "load_and_prepare",
    "prepare_attempts",
    "ewma_by_attempt",
    "plot_trend",
    "plot_weekly",
]
