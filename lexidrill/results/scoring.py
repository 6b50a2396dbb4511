from __future__ import annotations

"""Scoring: correctness counts, negative marking, percentage and pass/fail.

Pure functions; identical inputs always produce identical score cards.
"""

from datetime import datetime, timezone
from typing import Callable, Mapping, Optional, Sequence
from uuid import uuid4

from .schema import ScoreCard, percent
from ..storage.schema import Attempt, QuestionRecord

SCORE_FLOOR = 0.0

Grader = Callable[[QuestionRecord, Optional[str]], bool]


def _exact(record: QuestionRecord, answer: Optional[str]) -> bool:
    return answer is not None and answer == record.answer


def score_answers(
    records: Sequence[QuestionRecord],
    answers: Mapping[str, str],
    *,
    is_correct: Grader = _exact,
    negative_marking: bool = False,
    penalty: float = 0.0,
    passing_score: int = 60,
    floor: float = SCORE_FLOOR,
) -> ScoreCard:
    """Score one session.

    Unanswered questions count toward the total but neither toward correct
    nor wrong. The reported score never drops below ``floor``.
    """
    total = len(records)
    correct = 0
    answered = 0
    for r in records:
        if r.id not in answers:
            continue
        answered += 1
        if is_correct(r, answers[r.id]):
            correct += 1
    wrong = answered - correct
    deduction = wrong * float(penalty) if negative_marking else 0.0
    raw = round(correct - deduction, 2)
    accuracy = percent(correct, total)
    return ScoreCard(
        total=total,
        correct=correct,
        wrong=wrong,
        skipped=total - answered,
        raw_score=raw,
        score=max(raw, floor),
        accuracy=accuracy,
        passed=accuracy >= passing_score,
    )


def rescore(attempt: Attempt, records: Sequence[QuestionRecord], is_correct: Grader) -> ScoreCard:
    """Recompute the score card of a stored attempt from its source records."""
    by_id = {r.id: r for r in records}
    ordered = [by_id[qid] for qid in attempt.question_ids if qid in by_id]
    return score_answers(
        ordered,
        attempt.answers,
        is_correct=is_correct,
        negative_marking=attempt.negative_penalty > 0,
        penalty=attempt.negative_penalty,
        passing_score=attempt.passing_score,
    )


def build_attempt(
    card: ScoreCard,
    *,
    mode: str,
    question_ids: Sequence[str],
    answers: Mapping[str, str],
    confidence: Optional[Mapping[str, str]] = None,
    duration_s: int = 0,
    pool: str = "all",
    passing_score: int = 60,
    negative_penalty: float = 0.0,
    template_id: Optional[str] = None,
    set_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Attempt:
    created = now or datetime.now(timezone.utc)
    return Attempt(
        id=str(uuid4()),
        mode=mode,
        date=created.date().isoformat(),
        total_questions=card.total,
        correct_count=card.correct,
        wrong_count=card.wrong,
        skipped_count=card.skipped,
        accuracy=card.accuracy,
        score=card.score,
        passed=card.passed,
        passing_score=passing_score,
        negative_penalty=negative_penalty,
        duration_s=max(0, int(duration_s)),
        question_ids=tuple(question_ids),
        answers=dict(answers),
        confidence=dict(confidence) if confidence else None,
        pool=pool,
        template_id=template_id,
        set_id=set_id,
        created_at=created,
    )
