from __future__ import annotations

"""Attempt stats: JSON-friendly aggregation and text formatting."""

import json
from pathlib import Path
from typing import Dict, Iterable, Optional

from ..results.schema import ConfidenceSplit, percent
from ..storage.schema import Attempt, DailyAggregate


def attempt_stats(attempt: Attempt, split: Optional[ConfidenceSplit] = None) -> Dict:
    """Flatten one attempt (and optional confidence split) into a plain dict."""
    stats = {
        "mode": attempt.mode,
        "total": attempt.total_questions,
        "correct": attempt.correct_count,
        "wrong": attempt.wrong_count,
        "skipped": attempt.skipped_count,
        "accuracy": attempt.accuracy,
        "score": attempt.score,
        "passed": attempt.passed,
        "passing_score": attempt.passing_score,
        "duration_s": attempt.duration_s,
    }
    if split is not None:
        stats["confidence"] = {
            "sure": {"correct": split.sure_correct, "wrong": split.sure_wrong, "accuracy": split.sure_accuracy},
            "guess": {"correct": split.guess_correct, "wrong": split.guess_wrong, "accuracy": split.guess_accuracy},
        }
    return stats


def history_stats(attempts: Iterable[Attempt]) -> Dict:
    """Per-mode totals across many attempts."""
    per: Dict[str, Dict[str, int]] = {}
    for a in attempts:
        bucket = per.setdefault(a.mode, {"attempts": 0, "asked": 0, "correct": 0})
        bucket["attempts"] += 1
        bucket["asked"] += a.total_questions
        bucket["correct"] += a.correct_count
    for bucket in per.values():
        bucket["accuracy"] = percent(bucket["correct"], bucket["asked"])
    return {"per_mode": per}


def write_stats(stats: Dict, path: str) -> None:
    """Write stats as JSON to path."""
    p = Path(path)
    with p.open("w", encoding="utf-8") as f:
        json.dump(stats, f, indent=2)


def _mmss(seconds: int) -> str:
    return f"{seconds // 60}:{seconds % 60:02d}"


def format_summary(stats: Dict) -> str:
    """Return a human-readable summary of one attempt's stats."""
    total = int(stats.get("total", 0))
    correct = int(stats.get("correct", 0))
    lines = [f"Total: {correct}/{total} correct ({stats.get('accuracy', 0)}%)"]
    if stats.get("mode") == "exam":
        verdict = "PASSED" if stats.get("passed") else "FAILED"
        lines.append(f"Score: {stats.get('score', 0):g}  {verdict} (pass mark {stats.get('passing_score', 0)}%)")
        lines.append(f"Wrong: {stats.get('wrong', 0)}  Skipped: {stats.get('skipped', 0)}")
    if stats.get("duration_s"):
        lines.append(f"Time: {_mmss(int(stats['duration_s']))}")
    conf = stats.get("confidence")
    if conf:
        for tag in ("sure", "guess"):
            c = conf[tag]
            lines.append(f"{tag.capitalize()}: {c['correct']} right, {c['wrong']} wrong ({c['accuracy']}%)")
    return "\n".join(lines)


def format_history(stats: Dict, today: Optional[DailyAggregate] = None) -> str:
    per = stats.get("per_mode", {})
    if not per and today is None:
        return "No attempts yet."
    lines = []
    for mode in sorted(per):
        b = per[mode]
        lines.append(f"{mode}: {b['attempts']} attempts, {b['correct']}/{b['asked']} ({b['accuracy']}%)")
    if today is not None:
        lines.append(
            f"Today: {today.completed_count}/{today.target} sessions, best {today.best_accuracy}%, streak {today.streak}"
        )
    return "\n".join(lines)
