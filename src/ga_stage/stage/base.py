"""Base class of every pipeline stage."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from ga_stage.exceptions import AlgorithmStateError
from ga_stage.ga.fitness import Fitness
from ga_stage.ga.population import Population
from ga_stage.ga.random_source import RandomSource

if TYPE_CHECKING:
    from ga_stage.ga.algorithm import GeneticAlgorithm


class AbstractStage(ABC):
    """A node of the pipeline: reads ``in_pop`` and writes a complete ``out_pop``.

    ``in_pop`` and ``out_pop`` may be the same object. Stages get the
    algorithm, its RandomSource and its Fitness at ``init``.
    """

    def __init__(self) -> None:
        self.ga: GeneticAlgorithm | None = None
        self.random: RandomSource | None = None
        self._fitness: Fitness | None = None
        self._default_bigger_is_better = True
        self.fitness_changed = False

    @property
    def name(self) -> str:
        return type(self).__name__

    def init(self, ga: GeneticAlgorithm) -> None:
        self.ga = ga
        self.random = ga.random
        if self._fitness is None and ga.fitness is not None:
            self.set_fitness(ga.fitness, recursively=False)

    def dispose(self) -> None:
        pass

    @abstractmethod
    def process(self, in_pop: Population, out_pop: Population) -> None: ...

    @property
    def fitness(self) -> Fitness | None:
        return self._fitness

    def set_fitness(self, fitness: Fitness | None, recursively: bool = True) -> None:
        if fitness is not self._fitness:
            self.fitness_changed = True
        self._fitness = fitness

    @property
    def bigger_is_better(self) -> tuple[bool, ...]:
        if self._fitness is not None:
            return self._fitness.bigger_is_better
        return (self._default_bigger_is_better,)

    def set_bigger_is_better(self, flag: bool) -> None:
        """Direction used while no Fitness is attached."""
        self._default_bigger_is_better = flag

    def _require_random(self) -> RandomSource:
        if self.random is None:
            raise AlgorithmStateError(f"{self.name} used before init()")
        return self.random

    def _require_ga(self) -> GeneticAlgorithm:
        if self.ga is None:
            raise AlgorithmStateError(f"{self.name} used before init()")
        return self.ga

    def __repr__(self) -> str:
        return f"{self.name}()"
