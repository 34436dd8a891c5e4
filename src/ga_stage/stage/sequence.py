"""Sequential chaining of stages."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterator

from ga_stage.exceptions import StageException
from ga_stage.ga.fitness import Fitness
from ga_stage.ga.population import Population
from ga_stage.models.ga_config import ResizeStrategy
from ga_stage.stage.base import AbstractStage

if TYPE_CHECKING:
    from ga_stage.ga.algorithm import GeneticAlgorithm

_LOG = logging.getLogger(__name__)


class Sequence(AbstractStage):
    """Runs child stages in order, double-buffering between them.

    The first stage writes into an internal buffer prepared according to
    ``resize_strategy``; every later stage reads the previous output and the
    two buffers are swapped, so ``process(pop, pop)`` is safe.
    """

    def __init__(self, *stages: AbstractStage, resize_strategy: ResizeStrategy = ResizeStrategy.AUTO) -> None:
        super().__init__()
        self.stages: list[AbstractStage] = list(stages)
        self.resize_strategy = ResizeStrategy(resize_strategy)
        self._internal = Population()

    def add(self, stage: AbstractStage) -> Sequence:
        self.stages.append(stage)
        if self.ga is not None:
            stage.init(self.ga)
        return self

    def __len__(self) -> int:
        return len(self.stages)

    def __iter__(self) -> Iterator[AbstractStage]:
        return iter(self.stages)

    def __getitem__(self, index: int) -> AbstractStage:
        return self.stages[index]

    def init(self, ga: GeneticAlgorithm) -> None:
        super().init(ga)
        for stage in self.stages:
            stage.init(ga)

    def dispose(self) -> None:
        for stage in self.stages:
            stage.dispose()

    def set_fitness(self, fitness: Fitness | None, recursively: bool = True) -> None:
        super().set_fitness(fitness, recursively)
        if recursively:
            for stage in self.stages:
                stage.set_fitness(fitness, recursively)

    def _prepare(self, buffer: Population, in_pop: Population) -> None:
        if self.resize_strategy == ResizeStrategy.AUTO:
            buffer.resize_as(in_pop)
        elif self.resize_strategy == ResizeStrategy.EMPTY:
            buffer.clear()

    def process(self, in_pop: Population, out_pop: Population) -> None:
        if not self.stages:
            out_pop.set_as(in_pop)
            return

        self._prepare(self._internal, in_pop)

        current = self.stages[0]
        try:
            _LOG.debug(f"{self.name}: running {current.name}")
            current.process(in_pop, self._internal)
            p1, p2 = self._internal, out_pop
            for current in self.stages[1:]:
                _LOG.debug(f"{self.name}: running {current.name}")
                self._prepare(p2, in_pop)
                current.process(p1, p2)
                p1.swap(p2)
            p1.swap(out_pop)
        except StageException:
            raise
        except Exception as exc:
            raise StageException(f"{current.name} failed: {exc}", current.name) from exc

    def __repr__(self) -> str:
        inner = ", ".join(repr(s) for s in self.stages)
        return f"Sequence({inner})"
