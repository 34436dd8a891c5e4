"""Fitness scaling operators.

A scaling stage copies its input, evaluates every copy with the real
fitness and then rewrites the scores so that later selection works on the
scaled values. Each objective keeps its direction: what was better before
scaling is still better (or equal) afterwards.
"""

from __future__ import annotations

import logging
import time
from abc import abstractmethod
from typing import TYPE_CHECKING

import numpy as np

from ga_stage.exceptions import ConfigurationError
from ga_stage.ga.fitness import sort_individuals
from ga_stage.ga.population import Population
from ga_stage.models.ga_config import SortingMode
from ga_stage.operators.base import Operator

if TYPE_CHECKING:
    from ga_stage.ga.algorithm import GeneticAlgorithm

_LOG = logging.getLogger(__name__)

DEFAULT_TOP_FRACTION = 0.4


class Scaling(Operator):
    """Base of the scaling operators; subclasses implement ``scale``.

    Scaled scores are not fitness values, so attaching a scaling stage turns
    on full evaluation for the whole algorithm. Offspring that survive a
    generation unchanged are then scored with the real fitness again.
    """

    def init(self, ga: GeneticAlgorithm) -> None:
        super().init(ga)
        if not ga.full_evaluation_forced:
            _LOG.info(f"{self.name}: forcing full evaluation on the algorithm")
            ga.full_evaluation_forced = True

    def _direction(self, objective: int) -> bool:
        flags = self.bigger_is_better
        return flags[objective] if objective < len(flags) else flags[0]

    @abstractmethod
    def scale(self, population: Population) -> None:
        """Rewrite the scores of an evaluated population in place."""

    def process(self, in_pop: Population, out_pop: Population) -> None:
        started = time.perf_counter()
        if out_pop.sample is None:
            out_pop.sample = in_pop.sample
        out_pop.set_as(in_pop)
        self._require_ga().evaluate_population(out_pop, forced=True)
        if len(out_pop):
            self.scale(out_pop)
        self.statistics.applications += len(out_pop)
        self.statistics.add_execution((time.perf_counter() - started) * 1000.0)


class RankScaling(Scaling):
    """Replaces each score with its dense rank among the population.

    Ranks start at 1 on the lowest value and grow by one per distinct value,
    so tied scores share a rank. Lower values get lower ranks whatever the
    direction, which keeps maximized and minimized objectives oriented.
    """

    def scale(self, population: Population) -> None:
        scores = population.scores()
        for h in range(scores.shape[1]):
            _, ranks = np.unique(scores[:, h], return_inverse=True)
            for ind, rank in zip(population, ranks.ravel()):
                ind.set_objective_score(h, float(rank + 1))


class ProportionalScaling(Scaling):
    """Maps each objective linearly onto [0, 1] between its min and max.

    An objective on which every individual scores the same maps to 1.
    """

    def scale(self, population: Population) -> None:
        scores = population.scores()
        low = np.nanmin(scores, axis=0)
        span = np.nanmax(scores, axis=0) - low
        for h in range(scores.shape[1]):
            if span[h] > 0:
                column = (scores[:, h] - low[h]) / span[h]
            else:
                column = np.ones(len(population))
            for ind, value in zip(population, column):
                ind.set_objective_score(h, float(value))


class TopScaling(Scaling):
    """Gives the best individuals an equal share and everybody else nothing.

    The top group is either a ``fraction`` of the population or a
    ``quantity`` of individuals; a negative quantity counts from the
    population size (``-2`` keeps all but two). Setting one resets the
    other. The group always holds at least one individual.

    Top individuals score ``1 / k`` on maximized objectives and ``-1 / k``
    on minimized ones, the rest score 0.
    """

    def __init__(self, fraction: float = DEFAULT_TOP_FRACTION, quantity: int | None = None) -> None:
        super().__init__()
        self._fraction = -1.0
        self._quantity = -1
        if quantity is not None:
            self.quantity = quantity
        else:
            self.fraction = fraction

    @property
    def fraction(self) -> float:
        return self._fraction

    @fraction.setter
    def fraction(self, value: float) -> None:
        self._fraction = min(max(float(value), 0.0), 1.0)
        self._quantity = -1

    @property
    def quantity(self) -> int:
        return self._quantity

    @quantity.setter
    def quantity(self, value: int) -> None:
        if value == 0:
            raise ConfigurationError("top quantity cannot be zero")
        self._quantity = int(value)
        self._fraction = -1.0

    def top_count(self, size: int) -> int:
        if self._fraction >= 0.0:
            count = int(self._fraction * size)
        elif self._quantity > 0:
            count = self._quantity
        else:
            count = size + self._quantity
        return min(max(count, 1), size)

    def scale(self, population: Population) -> None:
        ranked = list(population.individuals)
        if self.fitness is not None:
            self.fitness.sort(ranked)
        else:
            sort_individuals(ranked, self.bigger_is_better, SortingMode.PARTIAL)
        count = self.top_count(len(ranked))
        share = 1.0 / count
        for position, ind in enumerate(ranked):
            for h in range(ind.num_objectives):
                if position >= count:
                    value = 0.0
                else:
                    value = share if self._direction(h) else -share
                ind.set_objective_score(h, value)
