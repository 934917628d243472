from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

PROVISIONAL_THRESHOLD = 5


@dataclass(frozen=True)
class HandicapRating:
    handicap: float | None
    is_provisional: bool
    completed_tournaments: int


def round_tenth(value: float) -> float:
    """Round to one decimal place, halves toward positive infinity."""
    return math.floor(value * 10 + 0.5) / 10


def compute_handicap(
    relative_to_par_values: Sequence[int],
    provisional_threshold: int = PROVISIONAL_THRESHOLD,
) -> HandicapRating:
    """Derive a rating from every relative-to-par result on record."""
    if provisional_threshold <= 0:
        raise ValueError("Provisional threshold must be a positive integer.")
    completed = len(relative_to_par_values)
    if completed == 0:
        return HandicapRating(handicap=None, is_provisional=True, completed_tournaments=0)
    mean = sum(relative_to_par_values) / completed
    return HandicapRating(
        handicap=round_tenth(mean),
        is_provisional=completed < provisional_threshold,
        completed_tournaments=completed,
    )
