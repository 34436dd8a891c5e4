"""Tests for Sequence and Parallel stages."""

from __future__ import annotations

import pytest

from ga_stage.exceptions import AlgorithmStateError, ConfigurationError, StageException
from ga_stage.ga.chromosome import IntegerChromosome
from ga_stage.ga.individual import Individual
from ga_stage.ga.population import Population
from ga_stage.models.ga_config import ResizeStrategy
from ga_stage.stage.base import AbstractStage
from ga_stage.stage.evaluation import EvaluationStage
from ga_stage.stage.parallel import ExclusiveDispenser, Parallel
from ga_stage.stage.sequence import Sequence


class AddToFirstGene(AbstractStage):
    def __init__(self, amount, log=None):
        super().__init__()
        self.amount = amount
        self.log = log

    def process(self, in_pop, out_pop):
        out_pop.set_as(in_pop)
        for ind in out_pop:
            ind.chromosome[0] = ind.chromosome[0] + self.amount
        if self.log is not None:
            self.log.append(self.amount)


class DropLast(AbstractStage):
    def process(self, in_pop, out_pop):
        out_pop.set_as(in_pop)
        out_pop.resize(len(in_pop) - 1)


class RecordOutputSize(AbstractStage):
    def __init__(self, sizes):
        super().__init__()
        self.sizes = sizes

    def process(self, in_pop, out_pop):
        self.sizes.append(len(out_pop))
        out_pop.set_as(in_pop)


class Broken(AbstractStage):
    def process(self, in_pop, out_pop):
        raise KeyError("missing")


def _population(values, legal=None):
    legal = legal or [True] * len(values)
    inds = []
    for v, l in zip(values, legal):
        ind = Individual(IntegerChromosome(1, 0, 1000, [v]))
        ind.legal = l
        inds.append(ind)
    return Population.from_individuals(inds, copy=False)


def _genes(pop):
    return [ind.chromosome[0] for ind in pop]


class TestSequence:
    def test_empty_sequence_copies(self):
        src = _population([1, 2])
        out = Population()
        Sequence().process(src, out)
        assert _genes(out) == [1, 2]

    def test_stages_run_in_order(self, init_stage):
        log = []
        seq = Sequence(AddToFirstGene(1, log), AddToFirstGene(10, log), AddToFirstGene(100, log))
        init_stage(seq)
        out = Population()
        seq.process(_population([0, 5]), out)
        assert log == [1, 10, 100]
        assert _genes(out) == [111, 116]

    def test_in_place_processing(self, init_stage):
        seq = Sequence(AddToFirstGene(1), AddToFirstGene(2))
        init_stage(seq)
        pop = _population([0, 0, 0])
        seq.process(pop, pop)
        assert _genes(pop) == [3, 3, 3]

    def test_repeated_runs_reuse_buffers(self, init_stage):
        seq = Sequence(AddToFirstGene(1), AddToFirstGene(1))
        init_stage(seq)
        pop = _population([0, 0])
        for _ in range(5):
            seq.process(pop, pop)
        assert _genes(pop) == [10, 10]

    def test_stage_may_shrink_population(self, init_stage):
        seq = Sequence(AddToFirstGene(1), DropLast())
        init_stage(seq)
        out = Population()
        seq.process(_population([1, 2, 3]), out)
        assert _genes(out) == [2, 3]

    def test_empty_resize_strategy(self, init_stage):
        seq = Sequence(AddToFirstGene(1), resize_strategy=ResizeStrategy.EMPTY)
        init_stage(seq)
        out = Population()
        seq.process(_population([4]), out)
        assert _genes(out) == [5]

    @pytest.mark.parametrize(
        "strategy, expected",
        [(ResizeStrategy.AUTO, [2, 2]), (ResizeStrategy.EMPTY, [0, 0]), (ResizeStrategy.NONE, [0, 4])],
    )
    def test_every_stage_output_follows_resize_strategy(self, init_stage, strategy, expected):
        sizes = []
        seq = Sequence(RecordOutputSize(sizes), RecordOutputSize(sizes), resize_strategy=strategy)
        init_stage(seq)
        out = _population([9, 9, 9, 9])
        seq.process(_population([1, 2]), out)
        assert sizes == expected
        assert _genes(out) == [1, 2]

    def test_added_stage_is_initialised(self, init_stage):
        seq = Sequence()
        ga = init_stage(seq)
        stage = AddToFirstGene(1)
        seq.add(stage)
        assert stage.ga is ga
        assert stage.random is ga.random

    def test_fault_is_wrapped_once(self, init_stage):
        inner = Sequence(AddToFirstGene(1), Broken())
        outer = Sequence(AddToFirstGene(1), inner)
        init_stage(outer)
        with pytest.raises(StageException) as info:
            outer.process(_population([0]), Population())
        assert info.value.stage == "Broken"
        assert isinstance(info.value.__cause__, KeyError)

    def test_fitness_set_recursively(self, gene_sum_fitness):
        child = AddToFirstGene(1)
        seq = Sequence(Sequence(child))
        seq.set_fitness(gene_sum_fitness)
        assert child.fitness is gene_sum_fitness


class TestEvaluationStage:
    @pytest.mark.parametrize("force, expected", [(False, [99.0, 4.0]), (True, [3.0, 4.0])])
    def test_scores_unevaluated_unless_forced(self, init_stage, gene_sum_fitness, force, expected):
        stage = EvaluationStage(force)
        ga = init_stage(stage, fitness=gene_sum_fitness)
        ga.fitness_changed = False
        pop = _population([3, 4])
        pop[0].set_score(99.0)
        out = Population()
        stage.process(pop, out)
        assert [ind.score for ind in out] == expected
        assert all(ind.evaluated for ind in out)

    def test_inside_a_sequence(self, init_stage, gene_sum_fitness):
        seq = Sequence(AddToFirstGene(1), EvaluationStage(), AddToFirstGene(1))
        init_stage(seq, fitness=gene_sum_fitness)
        out = Population()
        seq.process(_population([5]), out)
        assert _genes(out) == [7]
        assert out[0].score == 6.0

    def test_needs_an_algorithm(self):
        with pytest.raises(AlgorithmStateError):
            EvaluationStage().process(_population([1]), Population())


class TestParallel:
    @pytest.fixture
    def by_legality(self):
        return ExclusiveDispenser(2, lambda ind: 0 if ind.legal else 1)

    def test_branches_get_their_own_stage(self, init_stage, by_legality):
        par = Parallel(by_legality, AddToFirstGene(1), AddToFirstGene(100))
        init_stage(par)
        out = Population()
        par.process(_population([0, 0, 0], legal=[True, False, True]), out)
        assert sorted(_genes(out)) == [1, 1, 100]
        assert len(out) == 3

    def test_branch_without_stage_passes_through(self, init_stage, by_legality):
        par = Parallel(by_legality, AddToFirstGene(1))
        init_stage(par)
        out = Population()
        par.process(_population([0, 7], legal=[True, False]), out)
        assert _genes(out) == [1, 7]

    def test_merge_truncates_collapsed_output(self, init_stage, by_legality):
        par = Parallel(by_legality, DropLast())
        init_stage(par)
        out = _population([9, 9, 9, 9])
        par.process(_population([1, 2, 3], legal=[True, True, False]), out)
        assert _genes(out) == [1, 3]

    def test_too_many_branches(self, by_legality):
        with pytest.raises(ConfigurationError):
            Parallel(by_legality, AddToFirstGene(1), AddToFirstGene(1), AddToFirstGene(1))

    def test_invalid_branch_index(self, init_stage):
        par = Parallel(ExclusiveDispenser(2, lambda ind: 5), AddToFirstGene(1))
        init_stage(par)
        with pytest.raises(StageException) as info:
            par.process(_population([0]), Population())
        assert isinstance(info.value.__cause__, ConfigurationError)

    def test_branch_fault_wrapped(self, init_stage, by_legality):
        par = Parallel(by_legality, Broken())
        init_stage(par)
        with pytest.raises(StageException) as info:
            par.process(_population([0]), Population())
        assert info.value.stage == "Broken"

    def test_dispenser_needs_a_branch(self):
        with pytest.raises(ConfigurationError):
            ExclusiveDispenser(0)
