from __future__ import annotations

"""Parquet-backed attempt log using pandas + pyarrow.

Unit of data: one row per completed Attempt. Map-valued fields (answers,
confidence, question order) are stored as compact JSON strings.
"""

import json
from pathlib import Path
from typing import List

import pandas as pd

from .schema import ATTEMPT_DTYPES, MODES, Attempt


DATA_FILE = "attempts.parquet"


def _empty_df() -> pd.DataFrame:
    dtypes = ATTEMPT_DTYPES.copy()
    df = pd.DataFrame({k: pd.Series(dtype=v) for k, v in dtypes.items()})
    return df


def _dumps(value) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=True)


def init_store(data_dir: Path) -> None:
    """Ensure data directory and an empty Parquet file with correct schema exist."""
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    path = data_dir / DATA_FILE
    if not path.exists():
        _empty_df().to_parquet(path, engine="pyarrow", compression="zstd", index=False)


def validate_records(records: list[Attempt]) -> pd.DataFrame:
    """Validate a list of Attempt and return a DataFrame with proper dtypes."""
    if not isinstance(records, list):
        raise TypeError("records must be a list[Attempt]")
    rows = [r if isinstance(r, Attempt) else Attempt.model_validate(r) for r in records]
    if not rows:
        return _empty_df()
    data = []
    for r in rows:
        row = r.model_dump(mode="python")
        row["question_ids"] = _dumps(list(r.question_ids))
        row["answers"] = _dumps(r.answers)
        row["confidence"] = _dumps(r.confidence) if r.confidence is not None else None
        data.append(row)
    df = pd.DataFrame(data)
    return _fix_dtypes(df)


def _fix_dtypes(df: pd.DataFrame) -> pd.DataFrame:
    for col, dt in ATTEMPT_DTYPES.items():
        if col not in df.columns:
            df[col] = pd.NA
        df[col] = df[col].astype(dt)
    return df[list(ATTEMPT_DTYPES.keys())]


def append_attempts(df_new: pd.DataFrame, data_path: Path) -> None:
    """Append rows to the attempt log.

    - Reads existing, concatenates, fixes dtypes, drops rows with a repeated id.
    - Uses pyarrow with zstd compression.
    """
    data_path = Path(data_path)
    f = data_path / DATA_FILE
    if f.exists():
        df_old = pd.read_parquet(f, engine="pyarrow")
    else:
        df_old = _empty_df()
    combined = pd.concat([_fix_dtypes(df_old), _fix_dtypes(df_new.copy())], ignore_index=True)
    combined = combined.drop_duplicates(subset=["id"], keep="first")
    combined.to_parquet(f, engine="pyarrow", compression="zstd", index=False)


def load_all(data_path: Path) -> pd.DataFrame:
    """Load the full attempt log, ensuring dtypes, and compute convenience columns.

    Adds:
    - acc: float32 = correct_count / total_questions
    - net: float32 = score / total_questions
    """
    f = Path(data_path) / DATA_FILE
    if not f.exists():
        return _empty_df().assign(acc=pd.Series(dtype="float32"), net=pd.Series(dtype="float32"))
    df = _fix_dtypes(pd.read_parquet(f, engine="pyarrow"))
    total = df["total_questions"].astype("float32").where(df["total_questions"] > 0, other=1.0)
    df["acc"] = (df["correct_count"].astype("float32") / total).astype("float32")
    df["net"] = (df["score"].astype("float32") / total).astype("float32")
    return df


def frame_to_attempts(df: pd.DataFrame) -> List[Attempt]:
    """Rebuild Attempt models from log rows."""
    out: List[Attempt] = []
    for row in df.to_dict(orient="records"):
        conf = row.get("confidence")
        out.append(
            Attempt(
                id=str(row["id"]),
                mode=str(row["mode"]),
                date=str(row["date"]),
                total_questions=int(row["total_questions"]),
                correct_count=int(row["correct_count"]),
                wrong_count=int(row["wrong_count"]),
                skipped_count=int(row["skipped_count"]),
                accuracy=int(row["accuracy"]),
                score=round(float(row["score"]), 2),
                passed=bool(row["passed"]),
                passing_score=int(row["passing_score"]),
                negative_penalty=round(float(row["negative_penalty"]), 2),
                duration_s=int(row["duration_s"]),
                question_ids=tuple(json.loads(row["question_ids"] or "[]")),
                answers=json.loads(row["answers"] or "{}"),
                confidence=json.loads(conf) if isinstance(conf, str) else None,
                pool=str(row["pool"]),
                template_id=row["template_id"] if isinstance(row["template_id"], str) else None,
                set_id=row["set_id"] if isinstance(row["set_id"], str) else None,
                created_at=row["created_at"].to_pydatetime(),
            )
        )
    return out


def query_mode(df: pd.DataFrame, *, mode: str) -> pd.DataFrame:
    """Filter rows for a given mode and sort by created_at."""
    if mode not in MODES:
        raise ValueError(f"Unknown mode: {mode}")
    dff = df[df["mode"].astype("string") == mode]
    return dff.sort_values("created_at").reset_index(drop=True)


def export_ndjson(df: pd.DataFrame, out_path: Path) -> None:
    """Export a DataFrame to line-delimited JSON (NDJSON) for quick inspection."""
    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    df.to_json(out_path, orient="records", lines=True, date_format="iso")
