from __future__ import annotations

"""Pool selection: filter the content library by mastery or favorite flag."""

from dataclasses import dataclass
from typing import Callable, Dict, Sequence, Tuple

from ..storage.schema import QuestionRecord

MIN_POOL_SIZE = 4
MASTERED_THRESHOLD = 4

POOL_TAGS = ("all", "mastered", "learning", "favorites")


@dataclass(frozen=True)
class PoolSelection:
    """Outcome of a pool filter; ``too_small`` is a normal result, not an error."""

    tag: str
    records: Tuple[QuestionRecord, ...]
    minimum: int = MIN_POOL_SIZE

    @property
    def size(self) -> int:
        return len(self.records)

    @property
    def too_small(self) -> bool:
        return self.size < self.minimum

    def message(self, mode: str = "quiz") -> str:
        return f"Not enough words for {mode} (Min {self.minimum})"


def _predicates(threshold: int) -> Dict[str, Callable[[QuestionRecord], bool]]:
    return {
        "all": lambda r: True,
        "mastered": lambda r: r.confidence_level >= threshold,
        "learning": lambda r: 0 < r.confidence_level < threshold,
        "favorites": lambda r: r.is_favorite,
    }


def select_pool(
    records: Sequence[QuestionRecord],
    tag: str = "all",
    *,
    minimum: int = MIN_POOL_SIZE,
    mastered_threshold: int = MASTERED_THRESHOLD,
) -> PoolSelection:
    """Return the records matching ``tag`` in library order.

    Raises ValueError only for an unknown tag; an undersized pool is reported
    through ``PoolSelection.too_small``.
    """
    preds = _predicates(mastered_threshold)
    if tag not in preds:
        raise ValueError(f"Unknown pool: {tag}")
    keep = preds[tag]
    return PoolSelection(tag=tag, records=tuple(r for r in records if keep(r)), minimum=minimum)
