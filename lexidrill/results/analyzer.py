from __future__ import annotations

"""Result analysis for completed attempts: confidence split and review filters."""

from typing import Dict, List, Sequence

from .schema import ConfidenceSplit, ReviewItem, ScoreCard
from .scoring import Grader, rescore
from ..app.drill_registry import make_drill
from ..storage.schema import Attempt, QuestionRecord

REVIEW_FILTERS = ("all", "wrong", "guess")


class ResultAnalyzer:
    """Read-only view over one Attempt and the records it was played from.

    Records missing from the library (deleted since the attempt) are skipped.
    """

    def __init__(self, attempt: Attempt, records: Sequence[QuestionRecord]) -> None:
        drill = make_drill(attempt.mode)
        self.attempt = attempt
        self.is_correct: Grader = drill.is_correct
        self.expected_for = drill.expected
        by_id: Dict[str, QuestionRecord] = {r.id: r for r in records}
        order = attempt.question_ids or tuple(attempt.answers.keys())
        self.records: List[QuestionRecord] = [by_id[qid] for qid in order if qid in by_id]

    def score_card(self) -> ScoreCard:
        return rescore(self.attempt, self.records, self.is_correct)

    def confidence_split(self) -> ConfidenceSplit:
        sure_c = sure_w = guess_c = guess_w = 0
        tags = self.attempt.confidence or {}
        for r in self.records:
            level = tags.get(r.id)
            answer = self.attempt.answers.get(r.id)
            if level is None or answer is None:
                continue
            ok = self.is_correct(r, answer)
            if level == "sure":
                if ok:
                    sure_c += 1
                else:
                    sure_w += 1
            else:
                if ok:
                    guess_c += 1
                else:
                    guess_w += 1
        return ConfidenceSplit(sure_correct=sure_c, sure_wrong=sure_w, guess_correct=guess_c, guess_wrong=guess_w)

    def items(self) -> List[ReviewItem]:
        tags = self.attempt.confidence or {}
        out = []
        for r in self.records:
            chosen = self.attempt.answers.get(r.id)
            out.append(
                ReviewItem(
                    record=r,
                    expected=self.expected_for(r),
                    chosen=chosen,
                    correct=self.is_correct(r, chosen),
                    confidence=tags.get(r.id),
                )
            )
        return out

    def review(self, filter: str = "all") -> List[ReviewItem]:
        """Questions for the review tab.

        ``wrong`` keeps answered-and-incorrect only (skips are excluded);
        ``guess`` keeps every question tagged guess regardless of outcome.
        """
        if filter not in REVIEW_FILTERS:
            raise ValueError(f"Unknown review filter: {filter}")
        items = self.items()
        if filter == "wrong":
            return [i for i in items if i.answered and not i.correct]
        if filter == "guess":
            return [i for i in items if i.confidence == "guess"]
        return items
