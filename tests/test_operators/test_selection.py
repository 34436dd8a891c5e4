"""Tests for selection operators."""

from __future__ import annotations

import numpy as np
import pytest

from ga_stage.exceptions import ConfigurationError
from ga_stage.ga.chromosome import DoubleChromosome
from ga_stage.ga.fitness import FunctionFitness
from ga_stage.ga.individual import Individual
from ga_stage.ga.population import Population
from ga_stage.operators.selection import RouletteWheelSelector, TournamentSelector


class TestTournamentSelector:
    def test_attempts_must_be_positive(self):
        with pytest.raises(ConfigurationError):
            TournamentSelector(0)

    def test_output_matches_input_size(self, init_stage, scored_population):
        selector = TournamentSelector(2)
        init_stage(selector)
        out = Population()
        selector.process(scored_population([float(i) for i in range(12)]), out)
        assert len(out) == 12
        assert selector.statistics.applications == 12

    def test_selection_rate_overrides_size(self, init_stage, scored_population):
        selector = TournamentSelector(2, selection_rate=4)
        init_stage(selector)
        out = Population()
        selector.process(scored_population([1.0, 2.0, 3.0]), out)
        assert len(out) == 4

    def test_large_tournament_picks_best(self, init_stage, scored_population):
        selector = TournamentSelector(200)
        init_stage(selector)
        out = Population()
        selector.process(scored_population([float(i) for i in range(10)]), out)
        assert all(ind.score == 9.0 for ind in out)

    def test_follows_minimization(self, init_stage, scored_population):
        selector = TournamentSelector(200)
        selector.set_bigger_is_better(False)
        init_stage(selector)
        out = Population()
        selector.process(scored_population([float(i) for i in range(10)]), out)
        assert all(ind.score == 0.0 for ind in out)

    def test_selected_are_copies(self, init_stage, scored_population):
        selector = TournamentSelector(2)
        init_stage(selector)
        src = scored_population([1.0, 2.0])
        out = Population()
        selector.process(src, out)
        assert all(ind is not orig for ind in out for orig in src)

    def test_switches_to_legals_after_illegal_picks(self, init_stage, scored_population):
        selector = TournamentSelector(1, max_illegal_rate=0.0)
        init_stage(selector)
        src = scored_population([1.0] * 10, legal=[True, False] * 5)
        out = Population()
        selector.process(src, out)
        assert sum(1 for ind in out if not ind.legal) <= 1

    def test_all_illegal_input_is_still_selected(self, init_stage, scored_population):
        selector = TournamentSelector(1, max_illegal_rate=0.0)
        init_stage(selector)
        out = Population()
        selector.process(scored_population([1.0, 2.0], legal=[False, False]), out)
        assert len(out) == 2

    def test_empty_pool_rejected(self, init_stage):
        selector = TournamentSelector(2, selection_rate=3)
        init_stage(selector)
        with pytest.raises(ConfigurationError):
            selector.process(Population(), Population())


class TestRouletteWheelSelector:
    def test_cumulative_weights_maximize(self, scored_population):
        selector = RouletteWheelSelector()
        pop = scored_population([1.0, 3.0])
        np.testing.assert_allclose(selector.cumulative_weights(pop.individuals), [0.0, 0.25, 1.0])

    def test_cumulative_weights_minimize(self, scored_population):
        selector = RouletteWheelSelector()
        selector.set_bigger_is_better(False)
        pop = scored_population([1.0, 3.0])
        np.testing.assert_allclose(selector.cumulative_weights(pop.individuals), [0.0, 0.75, 1.0])

    def test_objectives_are_summed(self):
        selector = RouletteWheelSelector()
        selector.set_fitness(FunctionFitness(lambda ind: (0.0, 0.0), num_objectives=2))
        pool = [
            Individual(DoubleChromosome(1), scores=[1.0, 1.0]),
            Individual(DoubleChromosome(1), scores=[1.0, 3.0]),
        ]
        np.testing.assert_allclose(selector.cumulative_weights(pool), [0.0, 0.75, 2.0])

    def test_bucket_boundaries(self, scored_population):
        selector = RouletteWheelSelector()
        selector.preselect(scored_population([1.0, 3.0]))
        assert selector.bucket_of(0.0) == 0
        assert selector.bucket_of(0.2499) == 0
        assert selector.bucket_of(0.25) == 1
        assert selector.bucket_of(0.9999) == 1

    def test_bucket_property(self, rng, scored_population):
        selector = RouletteWheelSelector()
        selector.preselect(scored_population([float(rng.next_int(1, 20)) for _ in range(25)]))
        c = selector.cumulative
        points = list(c[:-1]) + [(a + b) / 2 for a, b in zip(c[:-1], c[1:])]
        for r in points:
            p = selector.bucket_of(r)
            assert c[p] <= r < c[p + 1]

    def test_zero_weights_fall_back_to_uniform(self, init_stage, scored_population):
        selector = RouletteWheelSelector()
        init_stage(selector)
        out = Population()
        selector.process(scored_population([0.0, 0.0, 0.0]), out)
        assert len(out) == 3
        assert all(ind.score == 0.0 for ind in out)

    def test_proportional_choice(self, init_stage, scored_population):
        selector = RouletteWheelSelector(selection_rate=2000)
        init_stage(selector)
        out = Population()
        selector.process(scored_population([1.0, 3.0]), out)
        share = sum(1 for ind in out if ind.score == 3.0) / len(out)
        assert 0.7 < share < 0.8
