"""Common test fixtures."""

from __future__ import annotations

from typing import Callable

import pytest

from ga_stage.ga.algorithm import GeneticAlgorithm
from ga_stage.ga.chromosome import BooleanChromosome, DoubleChromosome
from ga_stage.ga.fitness import Fitness, FunctionFitness
from ga_stage.ga.individual import Individual
from ga_stage.ga.population import Population
from ga_stage.ga.random_source import RandomSource
from ga_stage.problems.benchmarks import OneMaxFitness, SchafferFitness, TourLengthFitness
from ga_stage.stage.base import AbstractStage


@pytest.fixture
def rng() -> RandomSource:
    return RandomSource(42)


@pytest.fixture
def onemax_fitness() -> OneMaxFitness:
    return OneMaxFitness()


@pytest.fixture
def schaffer_fitness() -> SchafferFitness:
    return SchafferFitness()


@pytest.fixture
def tsp_fitness() -> TourLengthFitness:
    """20 random cities with a fixed layout."""
    return TourLengthFitness.random_cities(20, seed=3)


@pytest.fixture
def gene_sum_fitness() -> FunctionFitness:
    """Sum of the genes of a DoubleChromosome (maximize)."""
    return FunctionFitness(lambda ind: float(ind.chromosome.genes.sum()))


@pytest.fixture
def init_stage() -> Callable[..., GeneticAlgorithm]:
    """Attach stages to a throwaway algorithm so they get a RandomSource."""

    def _init(*stages: AbstractStage, fitness: Fitness | None = None, seed: int = 7) -> GeneticAlgorithm:
        ga = GeneticAlgorithm(fitness, random=RandomSource(seed))
        for stage in stages:
            stage.init(ga)
        return ga

    return _init


def _scored(chromosome, *scores: float, legal: bool = True) -> Individual:
    ind = Individual(chromosome, scores=scores)
    ind.legal = legal
    return ind


def _scored_population(scores: list[float], legal: list[bool] | None = None) -> Population:
    """One-gene DoubleChromosome individuals whose gene equals their score."""
    legal = legal or [True] * len(scores)
    return Population.from_individuals(
        [_scored(DoubleChromosome(1, -1e9, 1e9, [s]), s, legal=l) for s, l in zip(scores, legal)],
        copy=False,
    )


def _random_booleans(size: int, length: int, rng: RandomSource) -> Population:
    pop = Population(Individual(BooleanChromosome(length)), size)
    pop.randomize(rng)
    return pop


@pytest.fixture
def scored() -> Callable[..., Individual]:
    return _scored


@pytest.fixture
def scored_population() -> Callable[..., Population]:
    return _scored_population


@pytest.fixture
def random_booleans() -> Callable[..., Population]:
    return _random_booleans
