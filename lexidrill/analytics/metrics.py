from __future__ import annotations

"""Metric computations over the attempt log and per-question stats."""

from datetime import date, timedelta
from typing import Iterable

import numpy as np
import pandas as pd

from ..storage.schema import QuestionStats
from .config import AnalyticsConfig


def compute_metrics(df: pd.DataFrame, cfg: AnalyticsConfig) -> pd.DataFrame:
    """Compute per-attempt ratios.

    Returns a copy with added columns:
    - acc: correct / total (0..1)
    - net: score / total, after negative marking
    - skip_rate: skipped / total
    - penalty_loss: points lost to negative marking
    """
    out = df.copy()
    # Avoid divide by zero; total should be >=1 by construction
    q = out["total_questions"].astype("float32").where(out["total_questions"] > 0, other=1.0)
    out["acc"] = (out["correct_count"].astype("float32") / q).astype("float32")
    out["net"] = (out["score"].astype("float32") / q).astype("float32")
    out["skip_rate"] = (out["skipped_count"].astype("float32") / q).astype("float32")
    loss = out["correct_count"].astype("float32") - out["score"].astype("float32")
    out["penalty_loss"] = np.round(loss.clip(lower=0).to_numpy(dtype="float32"), 2)
    return out


def mode_history(df: pd.DataFrame) -> pd.DataFrame:
    """Practice history per mode: attempts, mean/best accuracy and pass rate.

    Pass rate is only meaningful for exams and is NaN elsewhere.
    """
    cols = ["mode", "attempts", "mean_acc", "best_acc", "pass_rate"]
    if df.empty:
        return pd.DataFrame(columns=cols)
    g = df.groupby(df["mode"].astype("string"), observed=True)
    out = pd.DataFrame(
        {
            "attempts": g.size(),
            "mean_acc": g["acc"].mean().astype("float32"),
            "best_acc": g["acc"].max().astype("float32"),
            "pass_rate": g["passed"].apply(lambda s: float(np.mean(s.astype(bool)))).astype("float32"),
        }
    )
    out.index.name = "mode"
    out = out.reset_index()
    out.loc[out["mode"] != "exam", "pass_rate"] = np.nan
    return out[cols].sort_values("mode").reset_index(drop=True)


def weekly_activity(df: pd.DataFrame, *, today: date, days: int = 7) -> pd.DataFrame:
    """Completed attempts per day over the last ``days`` days (oldest first, zero-filled)."""
    start = today - timedelta(days=days - 1)
    index = pd.Index([start + timedelta(days=i) for i in range(days)], name="day")
    if df.empty:
        counts = pd.Series(0, index=index)
    else:
        day = pd.to_datetime(df["date"].astype("string")).dt.date
        counts = day.value_counts().reindex(index, fill_value=0)
    return pd.DataFrame({"day": index, "count": counts.to_numpy(dtype="int64")})


def difficult_questions(stats: Iterable[QuestionStats], cfg: AnalyticsConfig) -> pd.DataFrame:
    """Questions answered often enough and still mostly wrong.

    Sorted by accuracy ascending, then by wrong count descending.
    """
    rows = [
        {
            "question_id": s.question_id,
            "set_id": s.set_id,
            "times_answered": s.times_answered,
            "wrong_count": s.times_answered - s.times_correct,
            "accuracy": s.accuracy,
        }
        for s in stats
    ]
    cols = ["question_id", "set_id", "times_answered", "wrong_count", "accuracy"]
    df = pd.DataFrame(rows, columns=cols)
    if df.empty:
        return df
    keep = (df["times_answered"] >= cfg.difficult_min_answers) & (df["accuracy"] <= cfg.difficult_max_accuracy)
    df = df[keep].sort_values(["accuracy", "wrong_count", "question_id"], ascending=[True, False, True], kind="stable")
    return df.head(cfg.difficult_limit).reset_index(drop=True)
