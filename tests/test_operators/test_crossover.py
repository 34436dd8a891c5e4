"""Tests for crossover operators."""

from __future__ import annotations

import math

import pytest

from ga_stage.exceptions import ConfigurationError
from ga_stage.ga.chromosome import BooleanChromosome, DoubleChromosome, PermutationChromosome
from ga_stage.ga.individual import Individual
from ga_stage.ga.population import Population
from ga_stage.ga.random_source import RandomSource
from ga_stage.operators.crossover import (
    CityCenteredCrossover,
    HeuristicCrossover,
    IntermediateCrossover,
    OnePointCrossover,
    TwoPointsCrossover,
)


def _evaluated(pop: Population) -> Population:
    for ind in pop:
        ind.set_score(float(ind.chromosome.count_true()))
    return pop


def _complementary_pair(length: int) -> list[Individual]:
    return [
        Individual(BooleanChromosome(length)),
        Individual(BooleanChromosome(length, [True] * length)),
    ]


class TestCrossoverProcess:
    def test_probability_bounds(self):
        with pytest.raises(ConfigurationError):
            OnePointCrossover(1.5)

    @pytest.mark.parametrize("probability", [0.0, 0.5, 1.0])
    def test_spread_invariant(self, init_stage, random_booleans, rng, probability):
        crossover = OnePointCrossover(probability)
        init_stage(crossover)
        src = _evaluated(random_booleans(20, 12, rng))
        out = Population()
        crossover.process(src, out)

        assert len(out) == len(src)
        for start in range(0, len(src), 2):
            before = [src[start], src[start + 1]]
            after = [out[start], out[start + 1]]
            unchanged = all(a.chromosome == b.chromosome for a, b in zip(before, after))
            if all(not ind.evaluated for ind in after):
                continue
            assert unchanged
            assert all(ind.evaluated for ind in after)

    def test_certain_crossover_invalidates_everyone(self, init_stage, random_booleans, rng):
        crossover = OnePointCrossover(1.0)
        init_stage(crossover)
        out = Population()
        crossover.process(_evaluated(random_booleans(10, 8, rng)), out)
        assert not any(ind.evaluated for ind in out)
        assert crossover.statistics.applications == 5

    def test_odd_individual_left_alone(self, init_stage, random_booleans, rng):
        crossover = OnePointCrossover(1.0)
        init_stage(crossover)
        src = _evaluated(random_booleans(5, 8, rng))
        out = Population()
        crossover.process(src, out)
        assert out[4].evaluated
        assert out[4].chromosome == src[4].chromosome

    def test_input_untouched(self, init_stage, random_booleans, rng):
        crossover = OnePointCrossover(1.0)
        init_stage(crossover)
        src = _evaluated(random_booleans(6, 8, rng))
        genes = [ind.chromosome.to_list() for ind in src]
        crossover.process(src, Population())
        assert [ind.chromosome.to_list() for ind in src] == genes


class TestPointCrossovers:
    def test_one_point_swaps_a_tail(self, init_stage):
        crossover = OnePointCrossover()
        init_stage(crossover)
        for _ in range(20):
            pair = _complementary_pair(10)
            crossover.cross(pair)
            genes = pair[0].chromosome.to_list()
            cut = genes.index(True) if True in genes else 10
            assert genes == [False] * cut + [True] * (10 - cut)
            assert pair[1].chromosome.to_list() == [not g for g in genes]

    def test_two_points_swaps_a_segment(self, init_stage):
        crossover = TwoPointsCrossover()
        init_stage(crossover)
        for _ in range(20):
            pair = _complementary_pair(10)
            crossover.cross(pair)
            genes = pair[0].chromosome.to_list()
            swapped = [i for i, g in enumerate(genes) if g]
            assert swapped == list(range(swapped[0], swapped[-1] + 1))
            assert pair[1].chromosome.to_list() == [not g for g in genes]

    def test_length_mismatch(self, init_stage):
        crossover = OnePointCrossover()
        init_stage(crossover)
        with pytest.raises(ConfigurationError):
            crossover.cross([Individual(BooleanChromosome(3)), Individual(BooleanChromosome(4))])


class TestRealCrossovers:
    def _pair(self, a, b, scores=None):
        pair = [Individual(DoubleChromosome(1, -10, 10, [a])), Individual(DoubleChromosome(1, -10, 10, [b]))]
        if scores:
            for ind, s in zip(pair, scores):
                ind.set_score(s)
        return pair

    def test_intermediate_fixed_ratio(self):
        pair = self._pair(0.0, 4.0)
        IntermediateCrossover(ratio=0.25).cross(pair)
        assert pair[0].chromosome[0] == pytest.approx(3.0)
        assert pair[1].chromosome[0] == pytest.approx(1.0)

    def test_ratio_is_clamped(self):
        assert IntermediateCrossover(ratio=1.5).ratio == 1.0
        assert IntermediateCrossover(ratio=-1.0).ratio == 0.0

    def test_nan_ratio_means_random(self, init_stage):
        crossover = IntermediateCrossover(ratio=math.nan)
        assert crossover.is_random
        init_stage(crossover)
        pair = self._pair(0.0, 4.0)
        crossover.cross(pair)
        total = pair[0].chromosome[0] + pair[1].chromosome[0]
        assert total == pytest.approx(4.0)
        assert 0.0 <= pair[0].chromosome[0] <= 4.0

    def test_heuristic_weights_better_parent(self):
        pair = self._pair(0.0, 4.0, scores=[1.0, 5.0])
        HeuristicCrossover(ratio=0.75).cross(pair)
        assert pair[1].chromosome[0] == pytest.approx(3.0)
        assert pair[0].chromosome[0] == pytest.approx(1.0)

    def test_heuristic_keeps_order_when_first_is_better(self):
        pair = self._pair(0.0, 4.0, scores=[5.0, 1.0])
        HeuristicCrossover(ratio=0.75).cross(pair)
        assert pair[0].chromosome[0] == pytest.approx(1.0)
        assert pair[1].chromosome[0] == pytest.approx(3.0)

    def test_needs_real_chromosomes(self):
        with pytest.raises(ConfigurationError):
            IntermediateCrossover(ratio=0.5).cross(_complementary_pair(3))


class TestCityCenteredCrossover:
    def test_children_are_permutations(self, init_stage):
        crossover = CityCenteredCrossover()
        init_stage(crossover)
        rng = RandomSource(8)
        for _ in range(30):
            pair = [Individual(PermutationChromosome(12)), Individual(PermutationChromosome(12))]
            for ind in pair:
                ind.chromosome.randomize(rng)
            firsts = [ind.chromosome[0] for ind in pair]
            crossover.cross(pair)
            for ind, first in zip(pair, firsts):
                assert sorted(ind.chromosome.to_list()) == list(range(12))
                assert ind.chromosome[0] == first

    def test_tail_follows_other_parent_order(self, init_stage):
        crossover = CityCenteredCrossover()
        init_stage(crossover)
        p1 = [0, 1, 2, 3, 4, 5]
        p2 = [5, 4, 3, 2, 1, 0]
        pair = [Individual(PermutationChromosome(6, p1)), Individual(PermutationChromosome(6, p2))]
        crossover.cross(pair)
        child = pair[0].chromosome.to_list()
        # prefix of the first parent, remaining cities in the second parent's (descending) order
        assert sorted(child) == p1
        assert any(
            child[:cut + 1] == p1[:cut + 1] and child[cut + 1:] == sorted(child[cut + 1:], reverse=True)
            for cut in range(6)
        )
