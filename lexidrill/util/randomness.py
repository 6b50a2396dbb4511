from __future__ import annotations

"""Randomness helpers: seeding and unbiased shuffling/sampling."""

import os
import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


def seed_if_needed() -> Optional[int]:
    """Seed the global RNG if SEED env var is set. Returns the seed used."""
    seed = os.environ.get("SEED")
    if seed is None:
        return None
    try:
        s = int(seed)
    except ValueError:
        return None
    random.seed(s)
    return s


def make_rng(seed: Optional[int] = None) -> random.Random:
    """Independent RNG; seeded when a seed is given so sessions can be replayed."""
    return random.Random(seed)


def shuffled(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """Return a uniformly shuffled copy (Fisher–Yates, via Random.shuffle)."""
    r = rng or random
    out = list(items)
    r.shuffle(out)
    return out


def sample(items: Sequence[T], k: int, rng: Optional[random.Random] = None) -> List[T]:
    """Uniform sample without replacement; k is capped at len(items)."""
    r = rng or random
    k = max(0, min(int(k), len(items)))
    return r.sample(list(items), k)
