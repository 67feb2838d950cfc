"""Random selection over the filtered pool."""
from __future__ import annotations

import math
import random
from typing import List, Optional, Sequence

from .models import GameEntry

_SHARED_RANDOM = random.Random()


def weight_for(entry: GameEntry) -> float:
    """sqrt(hours + 1); only Steam reports hours, everything else weighs 1."""
    hours = (entry.playtime_hours or 0.0) if entry.platform == "steam" else 0.0
    return math.sqrt(max(hours, 0.0) + 1.0)


def weights(pool: Sequence[GameEntry]) -> List[float]:
    return [weight_for(entry) for entry in pool]


def pick(
    pool: Sequence[GameEntry],
    use_playtime_weighting: bool,
    rng: Optional[random.Random] = None,
) -> Optional[GameEntry]:
    if not pool:
        return None
    rng = rng or _SHARED_RANDOM
    if not use_playtime_weighting:
        return pool[rng.randrange(len(pool))]

    item_weights = weights(pool)
    total = sum(item_weights)
    draw = rng.random() * total
    acc = 0.0
    for entry, weight in zip(pool, item_weights):
        acc += weight
        if draw <= acc:
            return entry
    # float rounding can leave draw just above the final sum
    return pool[-1]


__all__ = ["pick", "weight_for", "weights"]
