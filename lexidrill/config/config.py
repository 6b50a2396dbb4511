from __future__ import annotations

"""Configuration loading and validation for lexidrill.

This module loads YAML configuration, applies defaults, and validates
that enumerations and numeric ranges are sane for the engine and CLI.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import sys

import yaml


ALLOWED_POOLS = {"all", "mastered", "learning", "favorites"}
ALLOWED_PENALTIES = (0.25, 0.33, 0.5, 1.0)
PASSING_SCORE_RANGE = (33, 90)
DEFAULT_AUTO_ADVANCE_S = {"quiz": 1.0, "context": 1.5, "spelling": 1.5}


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        print(f"ERROR: Config file not found: {path}", file=sys.stderr)
        sys.exit(1)


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML or defaults.

    Args:
        path: Optional path to a YAML config. If None, use package defaults.

    Returns:
        A dictionary with configuration values.
    """
    if path:
        cfg = _load_yaml(Path(path))
    else:
        default_path = Path(__file__).with_name("defaults.yml")
        cfg = _load_yaml(default_path)
    return cfg


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply defaults and validate configuration values.

    Out-of-range values fall back to defaults with a warning rather than
    aborting, so a partially wrong user file still yields a working engine.

    Args:
        cfg: The raw configuration dictionary.

    Returns:
        The validated and merged configuration dictionary.
    """
    cfg.setdefault("session", {})
    cfg.setdefault("pool", {})
    cfg.setdefault("exam", {})
    cfg.setdefault("persistence", {})
    cfg.setdefault("daily", {})
    cfg.setdefault("analytics", {})

    session = cfg["session"]
    pool = cfg["pool"]
    exam = cfg["exam"]
    persistence = cfg["persistence"]

    session.setdefault("questions", 10)
    session.setdefault("min_pool", 4)
    session.setdefault("options_per_question", 4)
    session.setdefault("auto_advance_s", dict(DEFAULT_AUTO_ADVANCE_S))

    pool.setdefault("mastered_threshold", 4)

    exam.setdefault("total_questions", 20)
    exam.setdefault("min_questions", 5)
    exam.setdefault("time_limit", 15)
    exam.setdefault("time_limits", [15, 20, 30, 45, 60, 90])
    exam.setdefault("negative_marking", False)
    exam.setdefault("negative_penalty", 0.25)
    exam.setdefault("passing_score", 60)
    exam.setdefault("shuffle_questions", True)
    exam.setdefault("shuffle_options", True)

    persistence.setdefault("data_dir", "./lexidrill_data")
    persistence.setdefault("library_path", "./library.yml")
    persistence.setdefault("attempt_retries", 1)

    cfg["daily"].setdefault("target", 20)

    analytics = cfg["analytics"]
    analytics.setdefault("smoothing_span", 5)
    analytics.setdefault("weekly_days", 7)
    analytics.setdefault("difficult_min_answers", 3)

    # Range validations
    if int(session.get("min_pool", 4)) < 1:
        print(f"WARNING: Unsupported min_pool '{session['min_pool']}', using 4.")
        session["min_pool"] = 4

    if int(session.get("options_per_question", 4)) < 2:
        print(f"WARNING: Unsupported options_per_question '{session['options_per_question']}', using 4.")
        session["options_per_question"] = 4

    delays = session.get("auto_advance_s") or {}
    for mode, default in DEFAULT_AUTO_ADVANCE_S.items():
        try:
            delays[mode] = max(0.0, float(delays.get(mode, default)))
        except (TypeError, ValueError):
            print(f"WARNING: Unsupported auto_advance_s for '{mode}', using {default}.")
            delays[mode] = default
    session["auto_advance_s"] = delays

    threshold = int(pool.get("mastered_threshold", 4))
    if not (1 <= threshold <= 5):
        print(f"WARNING: Unsupported mastered_threshold '{threshold}', using 4.")
        pool["mastered_threshold"] = 4

    penalty = float(exam.get("negative_penalty", 0.25))
    if penalty not in ALLOWED_PENALTIES:
        print(f"WARNING: Unsupported negative_penalty '{penalty}', using 0.25.")
        exam["negative_penalty"] = 0.25

    passing = int(exam.get("passing_score", 60))
    lo, hi = PASSING_SCORE_RANGE
    if not (lo <= passing <= hi):
        print(f"WARNING: Unsupported passing_score '{passing}', using 60.")
        exam["passing_score"] = 60

    if int(exam.get("time_limit", 15)) < 1:
        print(f"WARNING: Unsupported time_limit '{exam['time_limit']}', using 15.")
        exam["time_limit"] = 15

    if int(persistence.get("attempt_retries", 1)) < 0:
        persistence["attempt_retries"] = 0

    return cfg


def default_config() -> Dict[str, Any]:
    """Packaged defaults, validated."""
    return validate_config(load_config(None))
