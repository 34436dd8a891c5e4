"""Ready-made algorithms built on GeneticAlgorithm."""

from __future__ import annotations

from ga_stage.ga.algorithm import DEFAULT_GENERATION_LIMIT, GeneticAlgorithm
from ga_stage.ga.evaluator import Evaluator, MultiThreadEvaluator
from ga_stage.ga.fitness import Fitness
from ga_stage.ga.population import Population
from ga_stage.ga.random_source import RandomSource
from ga_stage.models.ga_config import CrossoverMethod, GAConfig, ReplacementStrategy, SelectionMethod
from ga_stage.operators.crossover import Crossover, OnePointCrossover, TwoPointsCrossover
from ga_stage.operators.crowding import Crowder, DominanceCrowder, SteadyState
from ga_stage.operators.mutation import Mutator, SimpleMutator
from ga_stage.operators.selection import RouletteWheelSelector, Selector, TournamentSelector
from ga_stage.stage.base import AbstractStage


def _evaluator_for(config: GAConfig) -> Evaluator | None:
    return MultiThreadEvaluator(config.threads) if config.threads > 0 else None


class SimpleGA(GeneticAlgorithm):
    """Selection, crossover and mutation in a single sequence.

    Every operator and rate comes from a GAConfig; ``selector``,
    ``crossover`` and ``mutator`` stay reachable for fine tuning.
    """

    def __init__(
        self,
        fitness: Fitness | None = None,
        population: Population | None = None,
        config: GAConfig | None = None,
    ) -> None:
        self.config = config or GAConfig()
        cfg = self.config
        super().__init__(
            fitness,
            population,
            cfg.generation_limit,
            random=RandomSource(cfg.random_seed),
            evaluator=_evaluator_for(cfg),
        )
        self.selector = self._make_selector(cfg)
        self.crossover = self._make_crossover(cfg)
        self.mutator: Mutator = SimpleMutator(cfg.mutation_probability)
        self.add_stage(self.selector)
        self.add_stage(self.crossover)
        self.add_stage(self.mutator)

        self.elitism = cfg.elitism
        self.elitism_policy = cfg.elitism_strategy
        self.full_evaluation_forced = cfg.full_evaluation_forced

    @staticmethod
    def _make_selector(cfg: GAConfig) -> Selector:
        if cfg.selection_method == SelectionMethod.ROULETTE:
            return RouletteWheelSelector(max_illegal_rate=cfg.max_illegal_rate)
        return TournamentSelector(cfg.tournament_attempts, max_illegal_rate=cfg.max_illegal_rate)

    @staticmethod
    def _make_crossover(cfg: GAConfig) -> Crossover:
        if cfg.crossover_method == CrossoverMethod.TWO_POINTS:
            return TwoPointsCrossover(cfg.crossover_probability)
        return OnePointCrossover(cfg.crossover_probability)


class CrowdingGA(GeneticAlgorithm):
    """Algorithm whose whole body is a crowder.

    ``add_stage`` appends to the crowder's own body, so user stages run
    between preselection and replacement.
    """

    def __init__(
        self,
        fitness: Fitness | None = None,
        crowder: Crowder | None = None,
        population: Population | None = None,
        generation_limit: int = DEFAULT_GENERATION_LIMIT,
        *,
        random: RandomSource | None = None,
        evaluator: Evaluator | None = None,
    ) -> None:
        super().__init__(fitness, population, generation_limit, random=random, evaluator=evaluator)
        self.crowder = crowder if crowder is not None else DominanceCrowder()
        self.body.add(self.crowder)
        if fitness is not None:
            self.crowder.set_fitness(fitness)

    def add_stage(self, stage: AbstractStage) -> CrowdingGA:
        self.crowder.add_stage(stage)
        return self


class NSGA2(CrowdingGA):
    """Dominance crowding with an embedded tournament selector.

    Crossover and mutation are added by the caller with ``add_stage``.
    """

    DEFAULT_TOURNAMENT_ATTEMPTS = 3

    def __init__(
        self,
        fitness: Fitness | None = None,
        population: Population | None = None,
        generation_limit: int = DEFAULT_GENERATION_LIMIT,
        attempts: int = DEFAULT_TOURNAMENT_ATTEMPTS,
        *,
        random: RandomSource | None = None,
        evaluator: Evaluator | None = None,
    ) -> None:
        self.selector = TournamentSelector(attempts)
        super().__init__(
            fitness,
            DominanceCrowder(self.selector),
            population,
            generation_limit,
            random=random,
            evaluator=evaluator,
        )

    @classmethod
    def from_config(cls, fitness: Fitness, population: Population, config: GAConfig) -> NSGA2:
        """NSGA-II with crossover and mutation taken from a GAConfig."""
        ga = cls(
            fitness,
            population,
            config.generation_limit,
            config.tournament_attempts,
            random=RandomSource(config.random_seed),
            evaluator=_evaluator_for(config),
        )
        ga.add_stage(SimpleGA._make_crossover(config))
        ga.add_stage(SimpleMutator(config.mutation_probability))
        ga.full_evaluation_forced = config.full_evaluation_forced
        return ga


class SteadyStateGA(CrowdingGA):
    """Replaces only a few individuals per generation through a SteadyState crowder.

    Elitism is off: the crowder already keeps every parent it does not
    replace.
    """

    DEFAULT_GENERATION_LIMIT = 5000

    def __init__(
        self,
        fitness: Fitness | None = None,
        population: Population | None = None,
        generation_limit: int = DEFAULT_GENERATION_LIMIT,
        steady_state: SteadyState | None = None,
        *,
        random: RandomSource | None = None,
        evaluator: Evaluator | None = None,
    ) -> None:
        if steady_state is None:
            steady_state = SteadyState(TournamentSelector(2))
        super().__init__(fitness, steady_state, population, generation_limit, random=random, evaluator=evaluator)
        self.elitism = 0

    @classmethod
    def from_config(
        cls,
        fitness: Fitness,
        population: Population,
        config: GAConfig,
        replacement_rate: int = SteadyState.DEFAULT_REPLACEMENT_RATE,
        replacement: ReplacementStrategy = ReplacementStrategy.WORST,
    ) -> SteadyStateGA:
        """Steady-state GA with selection, crossover and mutation from a GAConfig."""
        steady_state = SteadyState(
            SimpleGA._make_selector(config),
            SimpleGA._make_crossover(config),
            SimpleMutator(config.mutation_probability),
            replacement_rate=replacement_rate,
            replacement=replacement,
        )
        ga = cls(
            fitness,
            population,
            config.generation_limit,
            steady_state,
            random=RandomSource(config.random_seed),
            evaluator=_evaluator_for(config),
        )
        ga.full_evaluation_forced = config.full_evaluation_forced
        return ga
