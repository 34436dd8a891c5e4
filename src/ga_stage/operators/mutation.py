"""Mutation operators."""

from __future__ import annotations

import time
from abc import abstractmethod

from ga_stage.exceptions import ConfigurationError
from ga_stage.ga.individual import Individual
from ga_stage.ga.population import Population
from ga_stage.operators.base import Operator


class Mutator(Operator):
    """Mutates each individual with the given probability.

    The input is handed over to the output by swapping storage; only mutated
    individuals lose their evaluated flag.
    """

    def __init__(self, probability: float = 0.1) -> None:
        super().__init__()
        if not 0.0 <= probability <= 1.0:
            raise ConfigurationError("mutation probability must be within [0, 1]", {"p": probability})
        self.probability = probability

    @abstractmethod
    def mutate(self, individual: Individual) -> None: ...

    def process(self, in_pop: Population, out_pop: Population) -> None:
        rng = self._require_random()
        started = time.perf_counter()
        out_pop.swap(in_pop)
        for individual in out_pop:
            if rng.next_bool(self.probability):
                self.mutate(individual)
                individual.set_not_evaluated()
                self.statistics.applications += 1
        self.statistics.add_execution((time.perf_counter() - started) * 1000.0)


class SimpleMutator(Mutator):
    """Resamples one random gene."""

    def mutate(self, individual: Individual) -> None:
        rng = self._require_random()
        chromosome = individual.chromosome
        if len(chromosome) == 0:
            return
        chromosome.randomize_at(rng.next_int(len(chromosome)), rng)


class ScrambleMutator(Mutator):
    """Shuffles the genes between two distinct random positions (inclusive).

    Values are only moved around, so permutations stay permutations.
    """

    def mutate(self, individual: Individual) -> None:
        rng = self._require_random()
        chromosome = individual.chromosome
        n = len(chromosome)
        if n < 2:
            return
        a = rng.next_int(n)
        b = rng.next_int(n - 1)
        if b >= a:
            b += 1
        lo, hi = min(a, b), max(a, b)
        remaining = [chromosome[i] for i in range(lo, hi + 1)]
        for i in range(lo, hi + 1):
            chromosome[i] = remaining.pop(rng.next_int(len(remaining)))
