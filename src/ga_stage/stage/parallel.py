"""Fork/merge of a population across branch stages."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable

from ga_stage.exceptions import AlgorithmStateError, ConfigurationError, StageException
from ga_stage.ga.fitness import Fitness
from ga_stage.ga.individual import Individual
from ga_stage.ga.population import Population
from ga_stage.stage.base import AbstractStage

if TYPE_CHECKING:
    from ga_stage.ga.algorithm import GeneticAlgorithm

_LOG = logging.getLogger(__name__)

Classifier = Callable[[Individual], int]


class Dispenser(ABC):
    """Splits a population into ``span`` branches and merges them back."""

    def __init__(self, span: int) -> None:
        if span < 1:
            raise ConfigurationError("a dispenser needs at least one branch", {"span": span})
        self.span = span

    @abstractmethod
    def distribute(self, population: Population, branches: list[Population]) -> None: ...

    @abstractmethod
    def merge(self, branches: list[Population], out_pop: Population) -> None: ...


class ExclusiveDispenser(Dispenser):
    """Sends every individual to exactly one branch.

    The branch comes from ``classify`` or from an overriding
    ``distribute_individual``. Merging writes the branch outputs back in
    branch order, reusing existing output slots, cloning when the output is
    too short and truncating what is left over.
    """

    def __init__(self, span: int, classify: Classifier | None = None) -> None:
        super().__init__(span)
        self.classify = classify

    def distribute_individual(self, individual: Individual) -> int:
        if self.classify is None:
            raise AlgorithmStateError("ExclusiveDispenser has no classification function")
        return self.classify(individual)

    def pre_distribute(self, population: Population) -> None:
        pass

    def post_distribute(self, branches: list[Population]) -> None:
        pass

    def pre_merge(self, branches: list[Population]) -> None:
        pass

    def post_merge(self, out_pop: Population) -> None:
        pass

    def distribute(self, population: Population, branches: list[Population]) -> None:
        self.pre_distribute(population)
        for branch in branches:
            branch.clear()
            if branch.sample is None:
                branch.sample = population.sample
        for individual in population:
            index = self.distribute_individual(individual)
            if not 0 <= index < self.span:
                raise ConfigurationError(
                    "classification returned an invalid branch",
                    {"branch": index, "span": self.span},
                )
            branches[index].add(individual)
        self.post_distribute(branches)

    def merge(self, branches: list[Population], out_pop: Population) -> None:
        self.pre_merge(branches)
        count = 0
        for branch in branches:
            for individual in branch:
                slot = out_pop.get(count)
                if slot is None:
                    out_pop.add(individual)
                else:
                    slot.set_as(individual)
                count += 1
        out_pop.resize(count)
        self.post_merge(out_pop)


class Parallel(AbstractStage):
    """Runs branch ``i`` on the individuals the dispenser routes to ``i``.

    A branch with no stage passes its individuals through unchanged.
    """

    def __init__(self, dispenser: Dispenser, *stages: AbstractStage) -> None:
        super().__init__()
        self.dispenser = dispenser
        self.stages: list[AbstractStage] = []
        self._branches_in = [Population() for _ in range(dispenser.span)]
        self._branches_out = [Population() for _ in range(dispenser.span)]
        for stage in stages:
            self.add(stage)

    def add(self, stage: AbstractStage) -> Parallel:
        if len(self.stages) >= self.dispenser.span:
            raise ConfigurationError("more branches than the dispenser span", {"span": self.dispenser.span})
        self.stages.append(stage)
        if self.ga is not None:
            stage.init(self.ga)
        return self

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

    def process(self, in_pop: Population, out_pop: Population) -> None:
        current = self.name
        try:
            self.dispenser.distribute(in_pop, self._branches_in)
            for i, (b_in, b_out) in enumerate(zip(self._branches_in, self._branches_out)):
                if i >= len(self.stages):
                    b_out.set_as(b_in)
                    continue
                stage = self.stages[i]
                current = stage.name
                _LOG.debug(f"{self.name}: branch {i} ({len(b_in)} individuals) -> {stage.name}")
                b_out.resize_as(b_in)
                stage.process(b_in, b_out)
            current = self.name
            self.dispenser.merge(self._branches_out, out_pop)
        except StageException:
            raise
        except Exception as exc:
            raise StageException(f"{current} failed: {exc}", current) from exc
