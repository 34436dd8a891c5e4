"""Crossover operators."""

from __future__ import annotations

import math
import time
from abc import abstractmethod

from ga_stage.exceptions import ConfigurationError
from ga_stage.ga.chromosome import DoubleChromosome
from ga_stage.ga.fitness import dominance
from ga_stage.ga.individual import Individual
from ga_stage.ga.population import Population
from ga_stage.operators.base import Operator


class Crossover(Operator):
    """Recombines consecutive groups of ``spread()`` individuals.

    The output starts as a copy of the input; each group is crossed in place
    with the given probability and then marked not evaluated. Groups left
    uncrossed keep their genes and scores.
    """

    def __init__(self, probability: float = 0.8) -> None:
        super().__init__()
        if not 0.0 <= probability <= 1.0:
            raise ConfigurationError("crossover probability must be within [0, 1]", {"p": probability})
        self.probability = probability

    def spread(self) -> int:
        return 2

    @abstractmethod
    def cross(self, offsprings: list[Individual]) -> None:
        """Recombine the chromosomes of ``offsprings`` in place."""

    def process(self, in_pop: Population, out_pop: Population) -> None:
        rng = self._require_random()
        started = time.perf_counter()
        out_pop.set_as(in_pop)
        k = self.spread()
        individuals = out_pop.individuals
        for start in range(0, len(individuals) - (k - 1), k):
            if rng.next_bool(self.probability):
                group = individuals[start:start + k]
                self.cross(group)
                for ind in group:
                    ind.set_not_evaluated()
                self.statistics.applications += 1
        self.statistics.add_execution((time.perf_counter() - started) * 1000.0)


def _pair(offsprings: list[Individual]):
    c1, c2 = offsprings[0].chromosome, offsprings[1].chromosome
    if len(c1) != len(c2):
        raise ConfigurationError("chromosome lengths differ", {"left": len(c1), "right": len(c2)})
    return c1, c2


class OnePointCrossover(Crossover):
    """Swaps the tails after one random cut point."""

    def cross(self, offsprings: list[Individual]) -> None:
        c1, c2 = _pair(offsprings)
        if len(c1) == 0:
            return
        c1.cross(c2, self._require_random().next_int(len(c1)))


class TwoPointsCrossover(Crossover):
    """Swaps the inclusive segment between two random cut points."""

    def cross(self, offsprings: list[Individual]) -> None:
        c1, c2 = _pair(offsprings)
        if len(c1) == 0:
            return
        rng = self._require_random()
        a, b = rng.next_int(len(c1)), rng.next_int(len(c1))
        c1.cross(c2, min(a, b), max(a, b))


class _RatioCrossover(Crossover):
    """A ratio in ``[0, 1]``, or ``None`` to draw a new one per application."""

    def __init__(self, probability: float = 0.8, ratio: float | None = None) -> None:
        super().__init__(probability)
        self.ratio = ratio

    @property
    def ratio(self) -> float | None:
        return self._ratio

    @ratio.setter
    def ratio(self, value: float | None) -> None:
        if value is None or math.isnan(value):
            self._ratio = None
        else:
            self._ratio = min(1.0, max(0.0, float(value)))

    @property
    def is_random(self) -> bool:
        return self._ratio is None

    def _draw_ratio(self) -> float:
        if self._ratio is None:
            return self._require_random().next_double()
        return self._ratio

    @staticmethod
    def _doubles(offsprings: list[Individual]) -> tuple[DoubleChromosome, DoubleChromosome]:
        c1, c2 = _pair(offsprings)
        if not isinstance(c1, DoubleChromosome) or not isinstance(c2, DoubleChromosome):
            raise ConfigurationError("real-valued crossover needs DoubleChromosome individuals")
        return c1, c2


class IntermediateCrossover(_RatioCrossover):
    """Replaces both parents with complementary convex combinations."""

    def cross(self, offsprings: list[Individual]) -> None:
        c1, c2 = self._doubles(offsprings)
        c1.average(c2, self._draw_ratio())


class HeuristicCrossover(_RatioCrossover):
    """Intermediate crossover weighted towards the better parent.

    When both parents carry scores and the second dominates the first, the
    roles are exchanged so the ratio always weights the better one.
    """

    def cross(self, offsprings: list[Individual]) -> None:
        self._doubles(offsprings)
        r = self._draw_ratio()
        best, worst = offsprings[0], offsprings[1]
        if best.evaluated and worst.evaluated and dominance(worst, best, self.bigger_is_better) == 1:
            best, worst = worst, best
        best.chromosome.average(worst.chromosome, r)


class CityCenteredCrossover(Crossover):
    """Permutation-preserving crossover for tours.

    A random city is picked. Each child keeps its own prefix up to that
    city; the cities that follow it are reordered as they appear in the
    other parent. Both children remain valid permutations.
    """

    def cross(self, offsprings: list[Individual]) -> None:
        c1, c2 = _pair(offsprings)
        n = len(c1)
        if n < 2:
            return
        parent1 = c1.to_list()
        parent2 = c2.to_list()
        pos1 = {city: i for i, city in enumerate(parent1)}
        pos2 = {city: i for i, city in enumerate(parent2)}
        if len(pos1) != n or set(pos1) != set(pos2):
            raise ConfigurationError("city-centered crossover needs two permutations of the same cities")

        city = parent1[self._require_random().next_int(n)]
        i1, i2 = pos1[city], pos2[city]

        child1 = parent1[:i1 + 1] + [c for c in parent2 if pos1[c] > i1]
        child2 = parent2[:i2 + 1] + [c for c in parent1 if pos2[c] > i2]
        for i in range(i1 + 1, n):
            c1[i] = child1[i]
        for i in range(i2 + 1, n):
            c2[i] = child2[i]
