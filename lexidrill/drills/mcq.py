from __future__ import annotations

"""MCQ drills over authored question sets: self-paced practice and timed exam."""

from typing import List, Sequence

from .base_drill import BaseDrill
from ..results.schema import SessionQuestion
from ..samplers.distractors import build_options
from ..storage.schema import QuestionRecord


class McqDrill(BaseDrill):
    """Options come from the record itself, not from other records."""

    mode = "practice"

    def content_filter(self, record: QuestionRecord) -> bool:
        return bool(record.options)

    def candidates(self, record: QuestionRecord, library: Sequence[QuestionRecord]) -> List[str]:
        return list(record.alternatives)

    def build_question(self, record: QuestionRecord, library: Sequence[QuestionRecord]) -> SessionQuestion:
        if self.ctx.shuffle_options:
            alts = self.candidates(record, library)
            options = build_options(record.answer, alts, len(alts), self.rng)
        else:
            options = tuple(record.options)
        return SessionQuestion(record=record, prompt=record.prompt, expected=record.answer, kind="choice", options=options)


class ExamDrill(McqDrill):
    mode = "exam"
