from __future__ import annotations

"""Drill registry and metadata.

Expose per-mode metadata (timing, confidence support, pool source) and
construct drill instances via a simple factory.
"""

import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Type

from ..drills.base_drill import BaseDrill, DrillContext
from ..drills.mcq import ExamDrill, McqDrill
from ..drills.vocab import ContextMatchDrill, MeaningQuizDrill, SpellingDrill
from ..storage.schema import QuestionRecord


@dataclass(frozen=True)
class DrillMeta:
    id: str
    name: str
    description: str
    drill_cls: Type[BaseDrill]
    source: str  # "library" (pool filter) | "sets" (MCQ containers)
    auto_advance: bool = True
    supports_confidence: bool = False
    timed: bool = False


_DRILLS: Dict[str, DrillMeta] = {
    m.id: m
    for m in (
        DrillMeta(
            id="quiz",
            name="Meaning Quiz",
            description="Pick the meaning of the shown word.",
            drill_cls=MeaningQuizDrill,
            source="library",
        ),
        DrillMeta(
            id="context",
            name="Context Match",
            description="Fill the blank in an example sentence.",
            drill_cls=ContextMatchDrill,
            source="library",
        ),
        DrillMeta(
            id="spelling",
            name="Spelling Test",
            description="Type the word for the shown meaning.",
            drill_cls=SpellingDrill,
            source="library",
        ),
        DrillMeta(
            id="practice",
            name="Practice",
            description="Self-paced MCQ practice over one or more sets.",
            drill_cls=McqDrill,
            source="sets",
            auto_advance=False,
        ),
        DrillMeta(
            id="exam",
            name="Exam",
            description="Timed MCQ exam with negative marking and confidence tags.",
            drill_cls=ExamDrill,
            source="sets",
            auto_advance=False,
            supports_confidence=True,
            timed=True,
        ),
    )
}


def list_drills() -> List[DrillMeta]:
    return list(_DRILLS.values())


def get_drill(drill_id: str) -> DrillMeta:
    try:
        return _DRILLS[drill_id]
    except KeyError:
        raise KeyError(f"Unknown drill id: {drill_id}") from None


def make_drill(drill_id: str, ctx: Optional[DrillContext] = None, rng: Optional[random.Random] = None) -> BaseDrill:
    return get_drill(drill_id).drill_cls(ctx, rng)


def grader_for(drill_id: str) -> Callable[[QuestionRecord, Optional[str]], bool]:
    """Correctness rule of a mode, independent of any session."""
    return make_drill(drill_id).is_correct
