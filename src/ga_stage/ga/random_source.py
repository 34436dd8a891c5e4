"""Seeded random number source injected into stages and chromosomes."""

from __future__ import annotations

import time
from typing import MutableSequence

import numpy as np


class RandomSource:
    """Uniform draws backed by a ``numpy.random.Generator``.

    One instance belongs to a GeneticAlgorithm and is handed to every stage
    at ``init``. It is not shared across evaluation threads.
    """

    def __init__(self, seed: int | None = None) -> None:
        if seed is None:
            seed = time.time_ns() & 0x7FFFFFFF
        self._seed = int(seed)
        self._rng = np.random.default_rng(self._seed)

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def generator(self) -> np.random.Generator:
        return self._rng

    def reseed(self, seed: int) -> None:
        self._seed = int(seed)
        self._rng = np.random.default_rng(self._seed)

    def next_double(self, low: float | None = None, high: float | None = None) -> float:
        """Uniform double in ``[0, 1)``, ``[0, low)`` or ``[low, high)``."""
        r = float(self._rng.random())
        if low is None:
            return r
        if high is None:
            return r * low
        return low + r * (high - low)

    def next_int(self, low: int, high: int | None = None) -> int:
        """Uniform int in ``[0, low)`` or ``[low, high)``."""
        if high is None:
            low, high = 0, low
        if high <= low:
            raise ValueError(f"empty range [{low}, {high})")
        return int(self._rng.integers(low, high))

    def next_bool(self, probability: float = 0.5) -> bool:
        return float(self._rng.random()) < probability

    def shuffle(self, values: MutableSequence) -> None:
        for i in range(len(values) - 1, 0, -1):
            j = int(self._rng.integers(0, i + 1))
            values[i], values[j] = values[j], values[i]
