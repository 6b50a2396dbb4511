from __future__ import annotations

"""Option-set generation for choice questions.

Distractors are drawn uniformly without replacement from the candidate
values, de-duplicated and stripped of the correct value first. When fewer
than ``k`` distinct alternatives exist the option set shrinks instead of
failing, so small libraries still produce playable questions.
"""

import random
from typing import Iterable, List, Optional, Tuple

from ..util.randomness import sample, shuffled


def distinct_alternatives(correct: str, candidates: Iterable[str]) -> List[str]:
    """Unique candidate values other than ``correct``, first occurrence order."""
    seen = {correct}
    out: List[str] = []
    for c in candidates:
        if c in seen:
            continue
        seen.add(c)
        out.append(c)
    return out


def build_options(
    correct: str,
    candidates: Iterable[str],
    k: int = 3,
    rng: Optional[random.Random] = None,
) -> Tuple[str, ...]:
    """Return ``min(k, available) + 1`` shuffled options containing ``correct`` once."""
    if k < 0:
        raise ValueError("k must be >= 0")
    pool = distinct_alternatives(correct, candidates)
    picked = sample(pool, k, rng)
    return tuple(shuffled([*picked, correct], rng))
