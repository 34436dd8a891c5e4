"""Built-in benchmark problems."""

from __future__ import annotations

import copy
from typing import Any

import numpy as np
from numpy.typing import NDArray

from ga_stage.ga.chromosome import BooleanChromosome, DoubleChromosome, PermutationChromosome
from ga_stage.ga.fitness import Fitness
from ga_stage.ga.individual import Individual
from ga_stage.models.problem import ParameterDef, ParameterType
from ga_stage.problems.base import ProblemTemplate


class OneMaxFitness(Fitness):
    """Number of true bits (maximize)."""

    def __init__(self) -> None:
        super().__init__(True)

    def evaluate(self, individual: Individual) -> None:
        individual.set_score(float(np.count_nonzero(individual.chromosome.genes)))


class SphereFitness(Fitness):
    """De Jong F1: sum of squares (minimize)."""

    def __init__(self) -> None:
        super().__init__(False)

    def evaluate(self, individual: Individual) -> None:
        genes = individual.chromosome.genes
        individual.set_score(float(np.dot(genes, genes)))


class TourLengthFitness(Fitness):
    """Length of a closed tour over a distance matrix (minimize).

    The tour is read into a scratch buffer before summing, so each
    evaluation thread needs its own copy.
    """

    def __init__(self, distances: NDArray[np.float64]) -> None:
        super().__init__(False)
        self.distances = np.asarray(distances, dtype=np.float64)
        self._tour = np.zeros(len(self.distances), dtype=np.int64)

    @classmethod
    def random_cities(cls, cities: int, seed: int | None = None, side: float = 100.0) -> TourLengthFitness:
        rng = np.random.default_rng(seed)
        coords = rng.uniform(0.0, side, size=(cities, 2))
        delta = coords[:, None, :] - coords[None, :, :]
        return cls(np.sqrt((delta ** 2).sum(axis=2)))

    def tour_length(self, tour: NDArray[np.int64]) -> float:
        return float(self.distances[tour, np.roll(tour, -1)].sum())

    def evaluate(self, individual: Individual) -> None:
        self._tour[:] = individual.chromosome.to_list()
        individual.set_score(self.tour_length(self._tour))

    def duplicate(self) -> TourLengthFitness:
        twin = copy.copy(self)
        twin._tour = np.zeros_like(self._tour)
        return twin


class SchafferFitness(Fitness):
    """Schaffer N.1: minimize ``x^2`` and ``(x - 2)^2`` together."""

    def __init__(self) -> None:
        super().__init__(False, num_objectives=2)

    def evaluate(self, individual: Individual) -> None:
        x = float(individual.chromosome.genes[0])
        individual.set_score(x * x, (x - 2.0) ** 2)


class OneMax(ProblemTemplate):
    @property
    def template_id(self) -> str:
        return "one_max"

    @property
    def name(self) -> str:
        return "OneMax"

    @property
    def category(self) -> str:
        return "single"

    @property
    def description(self) -> str:
        return "Maximize the number of true bits of a boolean chromosome"

    @property
    def parameters(self) -> list[ParameterDef]:
        return [
            ParameterDef(
                name="length",
                display_name="Chromosome length",
                param_type=ParameterType.INT,
                default=100,
                min_value=1,
                max_value=100000,
            ),
        ]

    def build(self, params: dict[str, Any]) -> tuple[Fitness, Individual]:
        return OneMaxFitness(), Individual(BooleanChromosome(int(params["length"])))


class Sphere(ProblemTemplate):
    @property
    def template_id(self) -> str:
        return "sphere"

    @property
    def name(self) -> str:
        return "De Jong sphere"

    @property
    def category(self) -> str:
        return "single"

    @property
    def description(self) -> str:
        return "Minimize the sum of squares of a real vector"

    @property
    def parameters(self) -> list[ParameterDef]:
        return [
            ParameterDef(
                name="dimensions",
                display_name="Dimensions",
                param_type=ParameterType.INT,
                default=3,
                min_value=1,
                max_value=1000,
            ),
            ParameterDef(
                name="bound",
                display_name="Search bound",
                param_type=ParameterType.FLOAT,
                default=5.12,
                min_value=0.01,
                description="Genes range over [-bound, bound]",
            ),
        ]

    def build(self, params: dict[str, Any]) -> tuple[Fitness, Individual]:
        bound = float(params["bound"])
        chromosome = DoubleChromosome(int(params["dimensions"]), -bound, bound)
        return SphereFitness(), Individual(chromosome)


class TravellingSalesman(ProblemTemplate):
    @property
    def template_id(self) -> str:
        return "tsp"

    @property
    def name(self) -> str:
        return "Travelling salesman"

    @property
    def category(self) -> str:
        return "single"

    @property
    def description(self) -> str:
        return "Shortest closed tour through randomly placed cities"

    @property
    def parameters(self) -> list[ParameterDef]:
        return [
            ParameterDef(
                name="cities",
                display_name="Cities",
                param_type=ParameterType.INT,
                default=20,
                min_value=3,
                max_value=5000,
            ),
            ParameterDef(
                name="map_seed",
                display_name="Map seed",
                param_type=ParameterType.INT,
                default=0,
                min_value=0,
                description="Seed of the random city layout",
            ),
        ]

    def build(self, params: dict[str, Any]) -> tuple[Fitness, Individual]:
        cities = int(params["cities"])
        fitness = TourLengthFitness.random_cities(cities, int(params["map_seed"]))
        return fitness, Individual(PermutationChromosome(cities))


class Schaffer(ProblemTemplate):
    @property
    def template_id(self) -> str:
        return "schaffer"

    @property
    def name(self) -> str:
        return "Schaffer N.1"

    @property
    def category(self) -> str:
        return "multi"

    @property
    def description(self) -> str:
        return "Two conflicting objectives x^2 and (x-2)^2"

    @property
    def parameters(self) -> list[ParameterDef]:
        return [
            ParameterDef(
                name="bound",
                display_name="Search bound",
                param_type=ParameterType.FLOAT,
                default=10.0,
                min_value=2.0,
                description="x ranges over [-bound, bound]",
            ),
        ]

    def build(self, params: dict[str, Any]) -> tuple[Fitness, Individual]:
        bound = float(params["bound"])
        return SchafferFitness(), Individual(DoubleChromosome(1, -bound, bound), num_objectives=2)
