"""Crowding operators: preselect, evolve a nested body, then replace.

A crowder runs three phases on every call to ``process``:

1. ``preselect(in_pop, preselected)``, an identity copy unless overridden;
2. the crowder's own ``body`` sequence turns ``preselected`` into ``evolved``;
3. ``replace(in_pop, preselected, evolved, out_pop)`` decides the survivors.

In elitist mode the evolved individuals are re-evaluated between 2 and 3 so
that replacement compares scored offspring with their parents.
"""

from __future__ import annotations

import time
from abc import abstractmethod
from typing import TYPE_CHECKING

import numpy as np

from ga_stage.exceptions import ConfigurationError
from ga_stage.ga.fitness import Fitness, dominance, dominates, sort_individuals
from ga_stage.ga.individual import Individual
from ga_stage.ga.population import Population
from ga_stage.models.ga_config import ReplacementStrategy, SortingMode
from ga_stage.operators.base import Operator
from ga_stage.operators.crossover import Crossover, OnePointCrossover
from ga_stage.operators.mutation import Mutator, SimpleMutator
from ga_stage.operators.selection import Selector, TournamentSelector
from ga_stage.stage.base import AbstractStage
from ga_stage.stage.sequence import Sequence

if TYPE_CHECKING:
    from ga_stage.ga.algorithm import GeneticAlgorithm


class Crowder(Operator):
    def __init__(self, *stages: AbstractStage, elitist: bool = False) -> None:
        super().__init__()
        self.body = Sequence(*stages)
        self.elitist = elitist
        self._preselected = Population()
        self._evolved = Population()

    def add_stage(self, stage: AbstractStage) -> Crowder:
        self.body.add(stage)
        return self

    def init(self, ga: GeneticAlgorithm) -> None:
        super().init(ga)
        self.body.init(ga)

    def dispose(self) -> None:
        self.body.dispose()

    def set_fitness(self, fitness: Fitness | None, recursively: bool = True) -> None:
        super().set_fitness(fitness, recursively)
        if recursively:
            self.body.set_fitness(fitness, recursively)

    def preselect(self, in_pop: Population, out_pop: Population) -> None:
        out_pop.set_as(in_pop)

    @staticmethod
    def similarity(a: Individual, b: Individual) -> float:
        """Negative Euclidean distance between the two chromosomes."""
        return -float(np.linalg.norm(a.chromosome.difference(b.chromosome)))

    def _best_first(self, individuals: list[Individual]) -> list[Individual]:
        ranked = list(individuals)
        if self.fitness is not None:
            self.fitness.sort(ranked)
        else:
            sort_individuals(ranked, self.bigger_is_better, SortingMode.PARTIAL)
        return ranked

    @abstractmethod
    def replace(
        self,
        initial: Population,
        preselected: Population,
        evolved: Population,
        out_pop: Population,
    ) -> None: ...

    def process(self, in_pop: Population, out_pop: Population) -> None:
        self._require_random()
        started = time.perf_counter()
        self.preselect(in_pop, self._preselected)
        self.body.process(self._preselected, self._evolved)
        if self.elitist:
            self._require_ga().evaluate_population(self._evolved, forced=True)
        if out_pop.sample is None:
            out_pop.sample = in_pop.sample
        self.replace(in_pop, self._preselected, self._evolved, out_pop)
        self.statistics.applications += 1
        self.statistics.add_execution((time.perf_counter() - started) * 1000.0)


class DominanceCrowder(Crowder):
    """NSGA-II replacement.

    Parents and offspring are ranked together by Pareto front, ties broken
    by descending crowding distance, and the best ``len(evolved)`` survive.
    """

    def __init__(self, *stages: AbstractStage, elitist: bool = True) -> None:
        super().__init__(*stages, elitist=elitist)

    def replace(
        self,
        initial: Population,
        preselected: Population,
        evolved: Population,
        out_pop: Population,
    ) -> None:
        parents = initial.individuals
        if out_pop is initial:
            parents = [ind.clone() for ind in parents]
        candidates = list(parents) + list(evolved.individuals)
        if self.fitness is not None:
            self.fitness.sort(candidates, SortingMode.CROWDING)
        else:
            sort_individuals(candidates, self.bigger_is_better, SortingMode.CROWDING)

        survivors = candidates[:len(evolved)]
        del out_pop.individuals[len(survivors):]
        for i, survivor in enumerate(survivors):
            if i < len(out_pop):
                out_pop[i].set_as(survivor)
            else:
                out_pop.add(survivor)


class SelectiveCrowder(Crowder):
    """Crowder whose preselection is a selector run on the input."""

    def __init__(self, selector: Selector, *stages: AbstractStage, elitist: bool = False) -> None:
        super().__init__(*stages, elitist=elitist)
        self.selector = selector

    def init(self, ga: GeneticAlgorithm) -> None:
        super().init(ga)
        self.selector.init(ga)

    def set_fitness(self, fitness: Fitness | None, recursively: bool = True) -> None:
        super().set_fitness(fitness, recursively)
        if recursively:
            self.selector.set_fitness(fitness, recursively)

    def set_bigger_is_better(self, flag: bool) -> None:
        super().set_bigger_is_better(flag)
        self.selector.set_bigger_is_better(flag)

    def preselect(self, in_pop: Population, out_pop: Population) -> None:
        if out_pop.sample is None:
            out_pop.sample = in_pop.sample
        self.selector.process(in_pop, out_pop)


class DeterministicCrowder(SelectiveCrowder):
    """Each parent competes with the most similar offspring of its mating group.

    Parents come from ``selector`` (or the whole input), are recombined by
    ``crossover`` and optionally mutated. In elitist mode an offspring only
    replaces its parent if it dominates it.
    """

    def __init__(
        self,
        selector: Selector | None = None,
        crossover: Crossover | None = None,
        mutator: Mutator | None = None,
        elitist: bool = True,
    ) -> None:
        self.crossover = crossover or OnePointCrossover(0.8)
        stages: list[AbstractStage] = [self.crossover]
        if mutator is not None:
            stages.append(mutator)
        super().__init__(selector if selector is not None else TournamentSelector(2), *stages, elitist=elitist)

    def replace(
        self,
        initial: Population,
        preselected: Population,
        evolved: Population,
        out_pop: Population,
    ) -> None:
        out_pop.set_as(preselected)
        flags = self.bigger_is_better
        size = len(evolved)
        group = self.crossover.spread()
        for start in range(0, size, group):
            members = evolved.individuals[start:min(start + group, size)]
            for offset in range(len(members)):
                parent = out_pop[start + offset]
                closest = max(members, key=lambda child: self.similarity(parent, child))
                if not self.elitist or dominance(closest, parent, flags) == 1:
                    parent.set_as(closest)


class SteadyState(SelectiveCrowder):
    """Steady-state replacement: a few offspring per generation join the parents.

    ``selection_rate`` parents are selected and evolved by the body. The
    best ``replacement_rate`` offspring then overwrite individuals of a copy
    of the input: the worst ones under ``ReplacementStrategy.WORST``, random
    ones under ``RANDOM``. In elitist mode an offspring only replaces an
    individual it dominates; under WORST the first failure ends the step,
    under RANDOM each offspring gets ``RANDOM_ATTEMPTS`` tries.
    """

    DEFAULT_SELECTION_RATE = 2
    DEFAULT_REPLACEMENT_RATE = 1
    RANDOM_ATTEMPTS = 3

    def __init__(
        self,
        selector: Selector,
        *stages: AbstractStage,
        replacement_rate: int = DEFAULT_REPLACEMENT_RATE,
        selection_rate: int = DEFAULT_SELECTION_RATE,
        replacement: ReplacementStrategy = ReplacementStrategy.WORST,
        elitist: bool = False,
    ) -> None:
        super().__init__(selector, *stages, elitist=elitist)
        self.selector.selection_rate = selection_rate
        self.replacement_rate = replacement_rate
        self.replacement = ReplacementStrategy(replacement)

    @property
    def selection_rate(self) -> int:
        return self.selector.selection_rate

    @selection_rate.setter
    def selection_rate(self, rate: int) -> None:
        self.selector.selection_rate = rate

    def replace(
        self,
        initial: Population,
        preselected: Population,
        evolved: Population,
        out_pop: Population,
    ) -> None:
        out_pop.set_as(initial)
        size = len(out_pop)
        count = min(len(evolved), size, self.replacement_rate)
        if count <= 0:
            return
        self._require_ga().evaluate_population(evolved)
        offspring = self._best_first(evolved.individuals)[:count]
        flags = self.bigger_is_better

        if self.replacement == ReplacementStrategy.WORST:
            victims = self._best_first(out_pop.individuals)[::-1]
            for child, victim in zip(offspring, victims):
                if self.elitist and not dominates(child, victim, flags):
                    break
                victim.set_as(child)
            return

        rng = self._require_random()
        for child in offspring:
            attempts = self.RANDOM_ATTEMPTS if self.elitist else 1
            for _ in range(attempts):
                victim = out_pop[rng.next_int(size)]
                if not self.elitist or dominates(child, victim, flags):
                    victim.set_as(child)
                    break


class DeJongCrowder(SelectiveCrowder):
    """De Jong crowding: each offspring replaces the closest of a random sample.

    For every offspring ``crowding_factor`` individuals are drawn at random
    from a copy of the input and the most similar one is overwritten (only
    if dominated, in elitist mode). Without explicit stages the body is a
    one-point crossover followed by a simple mutator.
    """

    DEFAULT_SELECTION_RATE = 2
    DEFAULT_CROWDING_FACTOR = 2
    DEFAULT_CROSSOVER_PROBABILITY = 0.8
    DEFAULT_MUTATION_PROBABILITY = 0.02

    def __init__(
        self,
        *stages: AbstractStage,
        selector: Selector | None = None,
        selection_rate: int = DEFAULT_SELECTION_RATE,
        crowding_factor: int = DEFAULT_CROWDING_FACTOR,
        elitist: bool = False,
    ) -> None:
        if crowding_factor < 1:
            raise ConfigurationError("crowding factor must be positive", {"factor": crowding_factor})
        if not stages:
            stages = (
                OnePointCrossover(self.DEFAULT_CROSSOVER_PROBABILITY),
                SimpleMutator(self.DEFAULT_MUTATION_PROBABILITY),
            )
        super().__init__(selector if selector is not None else TournamentSelector(2), *stages, elitist=elitist)
        self.selector.selection_rate = selection_rate
        self.crowding_factor = crowding_factor

    def replace(
        self,
        initial: Population,
        preselected: Population,
        evolved: Population,
        out_pop: Population,
    ) -> None:
        out_pop.set_as(initial)
        size = len(out_pop)
        if size == 0:
            return
        rng = self._require_random()
        flags = self.bigger_is_better
        for child in evolved:
            closest = None
            closest_similarity = 0.0
            for _ in range(self.crowding_factor):
                candidate = out_pop[rng.next_int(size)]
                similarity = self.similarity(child, candidate)
                if closest is None or similarity > closest_similarity:
                    closest, closest_similarity = candidate, similarity
            if not self.elitist or dominates(child, closest, flags):
                closest.set_as(child)
