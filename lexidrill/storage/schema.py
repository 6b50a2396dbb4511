from __future__ import annotations

"""Pydantic models for stored records and dtypes for the Parquet attempt log."""

from datetime import date, datetime, timezone
from typing import Dict, Literal, Optional, Tuple

import pandas as pd
from pandas.api.types import CategoricalDtype
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..config.config import ALLOWED_PENALTIES, PASSING_SCORE_RANGE
from ..errors import InvalidConfiguration

# --- Constants ---

MODES = {"quiz", "context", "spelling", "practice", "exam"}
POOLS = {"all", "mastered", "learning", "favorites", "custom"}
CONFIDENCE_TAGS = ("sure", "guess")
MIN_EXAM_QUESTIONS = 5

ConfidenceTag = Literal["sure", "guess"]


def _cat_dtype(categories: set[str]) -> CategoricalDtype:
    return CategoricalDtype(categories=sorted(categories), ordered=False)


ATTEMPT_DTYPES = {
    "id": "string",
    "mode": _cat_dtype(MODES),
    "date": "string",
    # timezone-aware UTC timestamps
    "created_at": pd.DatetimeTZDtype(tz="UTC"),
    "total_questions": "UInt16",
    "correct_count": "UInt16",
    "wrong_count": "UInt16",
    "skipped_count": "UInt16",
    "accuracy": "UInt8",
    "score": "float32",
    "passed": "boolean",
    "passing_score": "UInt8",
    "negative_penalty": "float32",
    "duration_s": "UInt32",
    "pool": "string",
    "template_id": "string",
    "set_id": "string",
    "question_ids": "string",
    "answers": "string",
    "confidence": "string",
}


def _utc(v: datetime) -> datetime:
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Content ---

class QuestionRecord(BaseModel):
    """One question owned by the content library.

    Vocabulary entries carry the word in ``prompt`` and its meaning in
    ``answer``; MCQ entries carry the stem in ``prompt`` and the full authored
    option list in ``options``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    prompt: str
    answer: str
    options: Tuple[str, ...] = ()
    explanation: Optional[str] = None
    source: Optional[str] = None
    examples: Tuple[str, ...] = ()
    container_id: Optional[str] = None
    confidence_level: int = Field(default=0, ge=0, le=5)
    is_favorite: bool = False

    @field_validator("options")
    @classmethod
    def _unique_options(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if len(set(v)) != len(v):
            raise ValueError("options must not contain duplicates")
        return v

    @model_validator(mode="after")
    def _answer_in_options(self) -> "QuestionRecord":
        if self.options and self.answer not in self.options:
            raise ValueError("answer must be one of the options")
        return self

    @property
    def alternatives(self) -> Tuple[str, ...]:
        return tuple(o for o in self.options if o != self.answer)


class SourceInfo(BaseModel):
    """An MCQ set as listed for exam source selection."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    topic: str = "General"
    count: int = Field(default=0, ge=0)


# --- Exam configuration ---

class ExamSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_questions: int = Field(default=20, ge=1)
    time_limit: int = Field(default=15, ge=1)
    negative_marking: bool = False
    negative_penalty: float = 0.25
    passing_score: int = 60
    shuffle_questions: bool = True
    shuffle_options: bool = True

    @field_validator("negative_penalty")
    @classmethod
    def _allowed_penalty(cls, v: float) -> float:
        if float(v) not in ALLOWED_PENALTIES:
            raise ValueError(f"negative_penalty must be one of {ALLOWED_PENALTIES}")
        return float(v)

    @field_validator("passing_score")
    @classmethod
    def _passing_range(cls, v: int) -> int:
        lo, hi = PASSING_SCORE_RANGE
        if not (lo <= int(v) <= hi):
            raise ValueError(f"passing_score must be in {lo}..{hi}")
        return int(v)

    def check_pool(self, pool_size: int) -> None:
        """Raise when the question count does not fit the selected pool."""
        if self.total_questions < MIN_EXAM_QUESTIONS:
            raise InvalidConfiguration(
                f"total_questions must be >= {MIN_EXAM_QUESTIONS} (got {self.total_questions})"
            )
        if self.total_questions > pool_size:
            raise InvalidConfiguration(
                f"total_questions {self.total_questions} exceeds pool size {pool_size}"
            )


class ExamConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_ids: Tuple[str, ...]
    settings: ExamSettings
    template_id: Optional[str] = None


class ExamTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = Field(min_length=1)
    source_ids: Tuple[str, ...]
    settings: ExamSettings
    created_at: datetime = Field(default_factory=utcnow)
    used_count: int = Field(default=0, ge=0)

    @field_validator("created_at")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        return _utc(v)

    def to_configuration(self) -> ExamConfiguration:
        return ExamConfiguration(source_ids=self.source_ids, settings=self.settings, template_id=self.id)


# --- Outcomes ---

class Attempt(BaseModel):
    """Immutable record of one completed session."""

    model_config = ConfigDict(frozen=True)

    id: str
    mode: Literal[tuple(MODES)]  # type: ignore[valid-type]
    date: str
    total_questions: int = Field(ge=0)
    correct_count: int = Field(ge=0)
    wrong_count: int = Field(ge=0)
    skipped_count: int = Field(default=0, ge=0)
    accuracy: int = Field(ge=0, le=100)
    score: float = Field(ge=0)
    passed: bool = False
    passing_score: int = Field(default=60, ge=0, le=100)
    negative_penalty: float = Field(default=0.0, ge=0)
    duration_s: int = Field(default=0, ge=0)
    question_ids: Tuple[str, ...] = ()
    answers: Dict[str, str] = Field(default_factory=dict)
    confidence: Optional[Dict[str, ConfidenceTag]] = None
    pool: str = "all"
    template_id: Optional[str] = None
    set_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("created_at")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        return _utc(v)

    @field_validator("date")
    @classmethod
    def _iso_date(cls, v: str) -> str:
        date.fromisoformat(v)
        return v

    @model_validator(mode="after")
    def _counts_add_up(self) -> "Attempt":
        if self.correct_count + self.wrong_count + self.skipped_count != self.total_questions:
            raise ValueError("correct + wrong + skipped must equal total_questions")
        return self


class DailyAggregate(BaseModel):
    model_config = ConfigDict(frozen=True)

    date_key: str
    completed_count: int = Field(default=0, ge=0)
    target: int = Field(default=20, ge=0)
    streak: int = Field(default=1, ge=0)
    best_accuracy: int = Field(default=0, ge=0, le=100)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("date_key")
    @classmethod
    def _iso_date(cls, v: str) -> str:
        date.fromisoformat(v)
        return v


class QuestionStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    question_id: str
    set_id: str
    times_answered: int = Field(default=0, ge=0)
    times_correct: int = Field(default=0, ge=0)
    accuracy: int = Field(default=0, ge=0, le=100)

    @model_validator(mode="after")
    def _correct_le_answered(self) -> "QuestionStats":
        if self.times_correct > self.times_answered:
            raise ValueError("times_correct must be <= times_answered")
        return self
