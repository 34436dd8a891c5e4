"""Selection operators."""

from __future__ import annotations

import time
from abc import abstractmethod

import numpy as np

from ga_stage.exceptions import ConfigurationError
from ga_stage.ga.fitness import dominance
from ga_stage.ga.individual import Individual
from ga_stage.ga.population import Population, PopulationFilter
from ga_stage.operators.base import Operator

DEFAULT_MAX_ILLEGAL_RATE = 0.3


class Selector(Operator):
    """Fills the output with individuals picked from a mating pool.

    ``selection_rate`` picks are made (the input size when not positive).
    Once ``max_illegal_rate`` of them turned out illegal, and the input has
    legal individuals, the pool is narrowed to legal ones.
    """

    def __init__(self, selection_rate: int = -1, max_illegal_rate: float = DEFAULT_MAX_ILLEGAL_RATE) -> None:
        super().__init__()
        if not 0.0 <= max_illegal_rate <= 1.0:
            raise ConfigurationError("max_illegal_rate must be within [0, 1]", {"rate": max_illegal_rate})
        self.selection_rate = selection_rate
        self.max_illegal_rate = max_illegal_rate
        self._mating_pool: list[Individual] = []

    @property
    def mating_pool(self) -> list[Individual]:
        return self._mating_pool

    def preselect(self, population: Population, which: PopulationFilter = PopulationFilter.ALL) -> None:
        """Build the mating pool; subclasses extend this to precompute weights."""
        self._mating_pool = population.filter(which)

    @abstractmethod
    def select(self, pool: list[Individual]) -> Individual:
        """Return one member of ``pool`` (not a copy)."""

    def process(self, in_pop: Population, out_pop: Population) -> None:
        self._require_random()
        started = time.perf_counter()
        self.preselect(in_pop, PopulationFilter.ALL)

        size = self.selection_rate if self.selection_rate > 0 else len(in_pop)
        if size > 0 and not self._mating_pool:
            raise ConfigurationError("cannot select from an empty population")
        if out_pop.sample is None:
            out_pop.sample = in_pop.sample
        out_pop.resize(size)

        max_illegals = int(size * self.max_illegal_rate)
        illegals = 0
        legals_only = False
        for i in range(size):
            chosen = self.select(self._mating_pool)
            out_pop[i].set_as(chosen)
            if not chosen.legal and not legals_only:
                illegals += 1
                if illegals >= max_illegals and in_pop.has_legals():
                    self.preselect(in_pop, PopulationFilter.LEGALS)
                    legals_only = True

        self.statistics.applications += size
        self.statistics.add_execution((time.perf_counter() - started) * 1000.0)


class TournamentSelector(Selector):
    """Best of ``attempts`` uniform draws with replacement.

    A later draw wins only if it dominates the current winner, so ties go to
    the first one drawn.
    """

    def __init__(
        self,
        attempts: int = 2,
        selection_rate: int = -1,
        max_illegal_rate: float = DEFAULT_MAX_ILLEGAL_RATE,
    ) -> None:
        if attempts < 1:
            raise ConfigurationError("tournament attempts must be positive", {"attempts": attempts})
        super().__init__(selection_rate, max_illegal_rate)
        self.attempts = attempts

    def select(self, pool: list[Individual]) -> Individual:
        rng = self._require_random()
        flags = self.bigger_is_better
        n = len(pool)
        winner = pool[rng.next_int(n)]
        for _ in range(self.attempts - 1):
            challenger = pool[rng.next_int(n)]
            if dominance(challenger, winner, flags) == 1:
                winner = challenger
        return winner


class RouletteWheelSelector(Selector):
    """Fitness-proportionate selection over the mating pool.

    For every objective the pool's scores (inverted as ``max + min - score``
    when minimizing) are accumulated and normalised to ``[0, 1]``; the
    per-objective arrays are summed into ``cumulative`` of length
    ``len(pool) + 1``.
    """

    def __init__(self, selection_rate: int = -1, max_illegal_rate: float = DEFAULT_MAX_ILLEGAL_RATE) -> None:
        super().__init__(selection_rate, max_illegal_rate)
        self.cumulative = np.zeros(1, dtype=np.float64)

    def preselect(self, population: Population, which: PopulationFilter = PopulationFilter.ALL) -> None:
        super().preselect(population, which)
        self.cumulative = self.cumulative_weights(self._mating_pool)

    def cumulative_weights(self, pool: list[Individual]) -> np.ndarray:
        n = len(pool)
        flags = self.bigger_is_better
        cumulative = np.zeros(n + 1, dtype=np.float64)
        if n == 0:
            return cumulative
        scores = np.array([ind.scores for ind in pool], dtype=np.float64)
        for obj, maximize in enumerate(flags):
            column = scores[:, obj]
            weights = column if maximize else column.max() + column.min() - column
            partial = np.concatenate(([0.0], np.cumsum(weights)))
            total = partial[-1]
            if total != 0 and np.isfinite(total):
                cumulative += partial / total
        return cumulative

    def bucket_of(self, r: float) -> int:
        """Index ``p`` with ``cumulative[p] <= r < cumulative[p + 1]``."""
        c = self.cumulative
        low, high = 0, len(c) - 1
        while low < high:
            p = low + (high - low) // 2
            if r < c[p]:
                high = p
            elif r >= c[p + 1]:
                low = p + 1
            else:
                return p
        return min(low, len(c) - 2)

    def select(self, pool: list[Individual]) -> Individual:
        rng = self._require_random()
        total = self.cumulative[-1]
        if not total > 0:
            return pool[rng.next_int(len(pool))]
        return pool[self.bucket_of(rng.next_double(total))]
