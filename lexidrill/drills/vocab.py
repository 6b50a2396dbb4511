from __future__ import annotations

"""Vocabulary drills: meaning quiz, context fill and spelling."""

import re
from typing import List, Sequence

from .base_drill import BaseDrill
from ..storage.schema import QuestionRecord

BLANK = "_____"


class VocabDrill(BaseDrill):
    """Drills over plain word/meaning records (records without authored options)."""

    def content_filter(self, record: QuestionRecord) -> bool:
        return not record.options


class MeaningQuizDrill(VocabDrill):
    """Show the word, pick its meaning."""

    mode = "quiz"


class ContextMatchDrill(VocabDrill):
    """Show an example sentence with the word blanked out, pick the word."""

    mode = "context"

    def expected(self, record: QuestionRecord) -> str:
        return record.prompt

    def prompt_for(self, record: QuestionRecord) -> str:
        return blank_sentence(record)


class SpellingDrill(VocabDrill):
    """Show (or speak) the meaning, type the word."""

    mode = "spelling"
    kind = "typed"

    def expected(self, record: QuestionRecord) -> str:
        return record.prompt

    def prompt_for(self, record: QuestionRecord) -> str:
        return record.answer

    def candidates(self, record: QuestionRecord, library: Sequence[QuestionRecord]) -> List[str]:
        return []

    def grade(self, answer: str, expected: str) -> bool:
        return answer.strip().lower() == expected.strip().lower()


def blank_sentence(record: QuestionRecord) -> str:
    """First example with the word replaced by a blank.

    Examples may be stored as "<translation> = <english>"; the English side is
    used when present. Falls back to a definition template when no example
    contains the word.
    """
    fallback = f'The word for "{record.answer}" is {BLANK}'
    if not record.examples:
        return fallback
    first = record.examples[0]
    parts = first.split("=", 1)
    sentence = parts[1].strip() if len(parts) == 2 and parts[1].strip() else first
    pattern = re.compile(re.escape(record.prompt), re.IGNORECASE)
    if not pattern.search(sentence):
        return fallback
    return pattern.sub(BLANK, sentence)
