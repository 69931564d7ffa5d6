from __future__ import annotations

import random
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


class SeededRolls:
    """Keyed random source for random effects and random-target cancels.

    Every draw seeds a fresh `random.Random` from the match seed plus a key
    (side, slot, effect index, ...), so a card rolls the same value no matter
    how often or in which order the board is resolved. Both PvP clients share
    the seed and therefore agree on every roll.
    """

    def __init__(self, seed: int | str) -> None:
        self.seed = seed

    def _rng(self, key: Sequence[object]) -> random.Random:
        return random.Random(":".join(str(k) for k in (self.seed, *key)))

    def randint(self, low: int, high: int, *key: object) -> int:
        return self._rng(key).randint(low, high)

    def choice(self, items: Sequence[T], *key: object) -> T:
        if not items:
            raise ValueError("choice from an empty sequence")
        return items[self._rng(key).randrange(len(items))]
