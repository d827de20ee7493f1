# services/battle/dice.py
from __future__ import annotations

import random
from typing import Optional, Sequence, TypeVar

T = TypeVar("T")

CRIT_CHANCE = 0.0625
CRIT_MULT = 1.5
FLEE_CHANCE = 0.75
VARIANCE_MIN = 0.85
VARIANCE_MAX = 1.0
OPPONENT_LEVEL_SPREAD = 2
FIRST_GEN_SPECIES = 151


class BattleDice:
    """
    Every random roll a battle makes goes through here.
    Pass a seeded random.Random (or subclass) to make a battle reproducible.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def accuracy_roll(self) -> float:
        """Uniform in [0, 100); the move misses when the roll exceeds its accuracy."""
        return self.rng.random() * 100

    def is_critical(self) -> bool:
        return self.rng.random() < CRIT_CHANCE

    def variance(self) -> float:
        return VARIANCE_MIN + self.rng.random() * (VARIANCE_MAX - VARIANCE_MIN)

    def flee_succeeds(self) -> bool:
        return self.rng.random() < FLEE_CHANCE

    def opponent_level_offset(self) -> int:
        return self.rng.randint(-OPPONENT_LEVEL_SPREAD, OPPONENT_LEVEL_SPREAD)

    def opponent_species_id(self) -> int:
        return self.rng.randint(1, FIRST_GEN_SPECIES)

    def sample_indices(self, pool_size: int, count: int) -> list[int]:
        return self.rng.sample(range(pool_size), count)

    def choice(self, items: Sequence[T]) -> T:
        return self.rng.choice(items)
