"""Tests for the problem registry and the built-in benchmarks."""

from __future__ import annotations

import math

import numpy as np
import pytest

from ga_stage.exceptions import ConfigurationError
from ga_stage.ga.chromosome import DoubleChromosome, PermutationChromosome
from ga_stage.ga.individual import Individual
from ga_stage.models.problem import ProblemConfig
from ga_stage.problems.benchmarks import SchafferFitness, SphereFitness, TourLengthFitness
from ga_stage.problems.registry import ProblemRegistry, get_registry


@pytest.fixture
def registry() -> ProblemRegistry:
    return get_registry()


@pytest.fixture
def unit_square() -> TourLengthFitness:
    coords = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
    delta = coords[:, None, :] - coords[None, :, :]
    return TourLengthFitness(np.sqrt((delta ** 2).sum(axis=2)))


class TestProblemRegistry:
    def test_builtins_registered(self, registry):
        ids = {t.template_id for t in registry.list_all()}
        assert ids == {"one_max", "sphere", "tsp", "schaffer"}

    def test_unknown_template(self, registry):
        with pytest.raises(KeyError, match="Unknown problem template"):
            registry.get("knapsack")

    def test_category_filter(self, registry):
        assert [t.template_id for t in registry.list_by_category("multi")] == ["schaffer"]

    def test_defaults_applied(self, registry):
        problem = registry.compile_config(ProblemConfig(template_id="one_max"))
        assert problem.parameters == {"length": 100}
        assert len(problem.sample) == 100
        assert problem.name == "OneMax"

    def test_string_values_coerced(self, registry):
        problem = registry.compile_config(ProblemConfig(template_id="tsp", parameters={"cities": "30"}))
        assert problem.parameters["cities"] == 30
        assert problem.fitness.distances.shape == (30, 30)

    def test_unknown_parameter(self, registry):
        with pytest.raises(ConfigurationError, match="Unknown parameters"):
            registry.compile_config(ProblemConfig(template_id="sphere", parameters={"radius": 2}))

    def test_out_of_range_parameter(self, registry):
        with pytest.raises(ConfigurationError):
            registry.compile_config(ProblemConfig(template_id="tsp", parameters={"cities": 2}))

    def test_compiled_population(self, registry):
        problem = registry.compile_config(ProblemConfig(template_id="sphere", parameters={"dimensions": 4}))
        pop = problem.population(6)
        assert len(pop) == 6
        assert all(isinstance(ind.chromosome, DoubleChromosome) for ind in pop)
        assert pop[0] is not pop[1]

    def test_same_map_seed_same_cities(self, registry):
        config = ProblemConfig(template_id="tsp", parameters={"cities": 8, "map_seed": 4})
        a = registry.compile_config(config).fitness
        b = registry.compile_config(config).fitness
        np.testing.assert_array_equal(a.distances, b.distances)


class TestBenchmarks:
    def test_tour_length_on_square(self, unit_square):
        ind = Individual(PermutationChromosome(4, [0, 1, 2, 3]))
        unit_square.evaluate(ind)
        assert ind.score == pytest.approx(4.0)

        crossing = Individual(PermutationChromosome(4, [0, 2, 1, 3]))
        unit_square.evaluate(crossing)
        assert crossing.score == pytest.approx(2.0 + 2.0 * math.sqrt(2.0))

    def test_tour_duplicate_has_own_buffer(self, unit_square):
        twin = unit_square.duplicate()
        assert twin._tour is not unit_square._tour
        assert twin.distances is unit_square.distances

    def test_schaffer_objectives(self):
        ind = Individual(DoubleChromosome(1, -10, 10, [1.0]), num_objectives=2)
        SchafferFitness().evaluate(ind)
        assert ind.scores == [1.0, 1.0]

    def test_sphere_minimizes(self):
        fitness = SphereFitness()
        ind = Individual(DoubleChromosome(3, -5, 5, [1.0, 2.0, -2.0]))
        fitness.evaluate(ind)
        assert ind.score == 9.0
        assert fitness.bigger_is_better == (False,)

    def test_onemax_counts_true_bits(self, onemax_fitness, random_booleans, rng):
        pop = random_booleans(5, 20, rng)
        for ind in pop:
            onemax_fitness.evaluate(ind)
            assert ind.score == ind.chromosome.count_true()
