from __future__ import annotations

"""Session-level value objects: questions as played, score cards, review rows."""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from ..storage.schema import QuestionRecord


@dataclass(frozen=True)
class SessionQuestion:
    record: QuestionRecord
    prompt: str
    expected: str
    kind: str = "choice"  # "choice" | "typed"
    options: Tuple[str, ...] = ()

    @property
    def id(self) -> str:
        return self.record.id


@dataclass(frozen=True)
class ScoreCard:
    total: int
    correct: int
    wrong: int
    skipped: int
    raw_score: float
    score: float
    accuracy: int
    passed: bool

    @property
    def answered(self) -> int:
        return self.correct + self.wrong


@dataclass(frozen=True)
class ConfidenceSplit:
    sure_correct: int = 0
    sure_wrong: int = 0
    guess_correct: int = 0
    guess_wrong: int = 0

    @property
    def sure_total(self) -> int:
        return self.sure_correct + self.sure_wrong

    @property
    def guess_total(self) -> int:
        return self.guess_correct + self.guess_wrong

    @property
    def sure_accuracy(self) -> int:
        return percent(self.sure_correct, self.sure_total)

    @property
    def guess_accuracy(self) -> int:
        return percent(self.guess_correct, self.guess_total)


@dataclass(frozen=True)
class ReviewItem:
    record: QuestionRecord
    expected: str
    chosen: Optional[str]
    correct: bool
    confidence: Optional[str] = None

    @property
    def answered(self) -> bool:
        return self.chosen is not None


@dataclass
class SessionProgress:
    """Mutable runtime state of one session; owned by the state machine."""

    index: int = 0
    score: int = 0
    answers: Dict[str, str] = field(default_factory=dict)
    results: Dict[str, bool] = field(default_factory=dict)
    confidence: Dict[str, str] = field(default_factory=dict)
    marked: frozenset = frozenset()
    started_at: Optional[float] = None
    ended_at: Optional[float] = None
    completed: bool = False


def percent(part: int, whole: int) -> int:
    """Half-up rounded percentage; 0 for an empty denominator."""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)
