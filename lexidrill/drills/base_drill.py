from __future__ import annotations

"""Base drill abstractions: how a mode turns records into session questions."""

import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..results.schema import SessionQuestion
from ..samplers.distractors import build_options
from ..storage.schema import QuestionRecord
from ..util.randomness import shuffled


@dataclass
class DrillContext:
    """Per-session parameters for question generation."""

    question_count: int = 10
    options_per_question: int = 4
    shuffle_questions: bool = True
    shuffle_options: bool = True


class BaseDrill:
    """Abstract base for drills.

    Subclasses define which field is asked and which is expected; the base
    handles ordering, truncation and option generation for the whole session.
    """

    mode = ""
    kind = "choice"

    def __init__(self, ctx: Optional[DrillContext] = None, rng: Optional[random.Random] = None) -> None:
        self.ctx = ctx or DrillContext()
        self.rng = rng or random.Random()

    def content_filter(self, record: QuestionRecord) -> bool:
        return True

    def prompt_for(self, record: QuestionRecord) -> str:
        return record.prompt

    def expected(self, record: QuestionRecord) -> str:
        return record.answer

    def candidates(self, record: QuestionRecord, library: Sequence[QuestionRecord]) -> List[str]:
        """Distractor-eligible values for ``record``, drawn from other records."""
        return [self.expected(r) for r in library if r.id != record.id]

    def build_question(self, record: QuestionRecord, library: Sequence[QuestionRecord]) -> SessionQuestion:
        expected = self.expected(record)
        options = ()
        if self.kind == "choice":
            k = max(0, self.ctx.options_per_question - 1)
            options = build_options(expected, self.candidates(record, library), k, self.rng)
        return SessionQuestion(record=record, prompt=self.prompt_for(record), expected=expected, kind=self.kind, options=options)

    def order(self, pool: Sequence[QuestionRecord]) -> List[QuestionRecord]:
        items = shuffled(pool, self.rng) if self.ctx.shuffle_questions else list(pool)
        return items[: max(0, self.ctx.question_count)]

    def build_session(self, pool: Sequence[QuestionRecord], library: Sequence[QuestionRecord]) -> List[SessionQuestion]:
        """Generate every question of the session upfront."""
        return [self.build_question(r, library) for r in self.order(pool)]

    def grade(self, answer: str, expected: str) -> bool:
        return answer == expected

    def is_correct(self, record: QuestionRecord, answer: Optional[str]) -> bool:
        if answer is None:
            return False
        return self.grade(answer, self.expected(record))
