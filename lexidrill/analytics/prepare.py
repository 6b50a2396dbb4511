from __future__ import annotations

"""Load the attempt log and compute derived metrics."""

from pathlib import Path

import pandas as pd

from ..storage.store import load_all
from .config import AnalyticsConfig
from .metrics import compute_metrics


def prepare_attempts(df: pd.DataFrame, cfg: AnalyticsConfig | None = None) -> pd.DataFrame:
    """Sort attempts chronologically and compute metrics.

    - Ensures 'mode' is categorical.
    - Sorts by (created_at, id) so equal timestamps keep a stable order.
    - Adds a stable attempt index 'attempt_idx' and the local 'day'.
    """
    out = df.copy()
    out["mode"] = out["mode"].astype("category")
    out = out.sort_values(["created_at", "id"], kind="stable").reset_index(drop=True)
    out = compute_metrics(out, cfg or AnalyticsConfig())
    out["attempt_idx"] = range(len(out))
    out["day"] = out["created_at"].dt.date
    return out


def load_and_prepare(data_dir: Path, cfg: AnalyticsConfig | None = None) -> pd.DataFrame:
    """Read the Parquet attempt log under ``data_dir`` and prepare it."""
    return prepare_attempts(load_all(Path(data_dir)), cfg)
