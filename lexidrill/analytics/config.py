from __future__ import annotations

"""Analytics configuration (hyperparameters) using Pydantic."""

from pydantic import BaseModel, Field


class AnalyticsConfig(BaseModel):
    """Hyperparameters for history metrics and smoothing.

    - smoothing_span: EWMA span in attempts (>1)
    - weekly_days: window of the activity chart in days (>0)
    - difficult_min_answers: answers a question needs before it can rank as difficult
    - difficult_max_accuracy: accuracy (%) at or below which a question is difficult
    - difficult_limit: rows returned by the difficult-question report
    """

    smoothing_span: int = Field(5, gt=1)
    weekly_days: int = Field(7, gt=0)
    difficult_min_answers: int = Field(3, ge=1)
    difficult_max_accuracy: int = Field(60, ge=0, le=100)
    difficult_limit: int = Field(10, gt=0)
