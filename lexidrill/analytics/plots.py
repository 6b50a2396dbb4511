from __future__ import annotations

"""Matplotlib plots for accuracy trends and weekly activity."""

from typing import Optional

import matplotlib.pyplot as plt
import pandas as pd


def plot_trend(
    df: pd.DataFrame,
    *,
    mode: Optional[str] = None,
    value_col: str = "acc",
    save_path: Optional[str | bytes | "os.PathLike[str]"] = None,
) -> None:
    g = df.copy()
    if mode is not None:
        g = g[g["mode"].astype("string") == mode]
    if g.empty:
        return
    g = g.sort_values("attempt_idx")
    plt.figure()
    plt.plot(g["attempt_idx"], g[value_col], marker="o", linestyle="", label=value_col)
    smooth_col = f"{value_col}_smooth"
    if smooth_col in g.columns:
        plt.plot(g["attempt_idx"], g[smooth_col], linewidth=2, label=f"{value_col} (EWMA)")
    plt.xlabel("Attempt")
    plt.ylabel(value_col)
    plt.ylim(0, 1.05)
    plt.title(f"Trend: {mode}" if mode else "Trend")
    plt.legend()
    if save_path:
        plt.savefig(save_path, bbox_inches="tight", dpi=150)
    plt.close()


def plot_weekly(
    activity: pd.DataFrame,
    *,
    target: Optional[int] = None,
    save_path: Optional[str | bytes | "os.PathLike[str]"] = None,
) -> None:
    if activity.empty:
        return
    labels = [d.strftime("%a") for d in activity["day"]]
    plt.figure()
    plt.bar(range(len(labels)), activity["count"])
    if target:
        plt.axhline(target, linestyle="--", linewidth=1, label="daily target")
        plt.legend()
    plt.xticks(range(len(labels)), labels)
    plt.ylabel("Sessions")
    plt.title("Weekly activity")
    if save_path:
        plt.savefig(save_path, bbox_inches="tight", dpi=150)
    plt.close()
