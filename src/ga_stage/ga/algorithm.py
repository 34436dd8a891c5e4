"""GeneticAlgorithm: generation loop, evaluation, elitism and events."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Protocol

from ga_stage.exceptions import AlgorithmStateError, ConfigurationError
from ga_stage.ga.evaluator import Evaluator, SequentialEvaluator
from ga_stage.ga.fitness import Fitness, sort_individuals
from ga_stage.ga.individual import Individual
from ga_stage.ga.population import Population, PopulationStatistics
from ga_stage.ga.random_source import RandomSource
from ga_stage.models.events import AlgorithmEvent, AlgorithmPhase, GenerationEvent
from ga_stage.models.ga_config import ElitismStrategy, SortingMode
from ga_stage.models.run_statistics import RunStatistics
from ga_stage.stage.base import AbstractStage
from ga_stage.stage.sequence import Sequence

_LOG = logging.getLogger(__name__)

DEFAULT_GENERATION_LIMIT = 100
DEFAULT_HISTORY_SIZE = 2
MAX_HISTORY_SIZE = 100


class AlgorithmState(str, Enum):
    UNINITIALIZED = "uninitialized"
    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"


class GenerationEventListener(Protocol):
    def on_generation(self, ga: GeneticAlgorithm, event: GenerationEvent) -> None: ...


class AlgorithmEventListener(Protocol):
    def on_algorithm_start(self, ga: GeneticAlgorithm, event: AlgorithmEvent) -> None: ...

    def on_algorithm_init(self, ga: GeneticAlgorithm, event: AlgorithmEvent) -> None: ...

    def on_algorithm_stop(self, ga: GeneticAlgorithm, event: AlgorithmEvent) -> None: ...


class ElitismPolicy(ABC):
    """Decides which slots of the next generation receive the elite copies."""

    @abstractmethod
    def target_slots(self, ga: GeneticAlgorithm, next_pop: Population, count: int) -> list[int]: ...


class ReplaceWorstPolicy(ElitismPolicy):
    """Overwrite the worst offspring.

    Slots are taken from the tail of the legal-then-illegal best-first
    ranking, so illegal offspring go first and then the worst legal ones.
    """

    def target_slots(self, ga: GeneticAlgorithm, next_pop: Population, count: int) -> list[int]:
        order = ga.best_first_indices(next_pop)
        return list(reversed(order[len(order) - count:]))


class RandomSlotsPolicy(ElitismPolicy):
    """Overwrite ``count`` distinct random offspring."""

    def target_slots(self, ga: GeneticAlgorithm, next_pop: Population, count: int) -> list[int]:
        free = list(range(len(next_pop)))
        return [free.pop(ga.random.next_int(len(free))) for _ in range(count)]


_POLICIES: dict[ElitismStrategy, type[ElitismPolicy]] = {
    ElitismStrategy.WORST: ReplaceWorstPolicy,
    ElitismStrategy.RANDOM: RandomSlotsPolicy,
}


class GeneticAlgorithm:
    """Evolves a population through a pipeline of stages.

    Each generation copies the current population into a working buffer,
    runs ``body`` on it, evaluates what changed, rotates the history buffers,
    preserves the ``elitism`` best individuals of the previous generation and
    notifies listeners. The loop stops at ``generation_limit`` or as soon as
    ``end()`` returns true.

    Subclasses customise a run through the ``on_start``, ``on_init``,
    ``on_generation`` and ``on_stop`` hooks, ``end`` and
    ``randomize_individual``.
    """

    def __init__(
        self,
        fitness: Fitness | None = None,
        population: Population | None = None,
        generation_limit: int = DEFAULT_GENERATION_LIMIT,
        *stages: AbstractStage,
        random: RandomSource | None = None,
        evaluator: Evaluator | None = None,
    ) -> None:
        if generation_limit < 0:
            raise ConfigurationError("generation limit cannot be negative", {"limit": generation_limit})
        self.body = Sequence(*stages)
        self.random = random or RandomSource()
        self._evaluator: Evaluator = SequentialEvaluator()
        self.evaluator = evaluator or self._evaluator
        self.generation_limit = generation_limit
        self.generation = 0
        self.state = AlgorithmState.UNINITIALIZED

        self.elitism = 0
        self._elitism_policy: ElitismPolicy = ReplaceWorstPolicy()
        self.full_evaluation_forced = False
        self._randomization = 1.0

        self._fitness: Fitness | None = None
        self.fitness_changed = False
        if fitness is not None:
            self.fitness = fitness

        self._initial_population: Population | None = population
        self._history: list[Population] = [Population() for _ in range(DEFAULT_HISTORY_SIZE)]
        self._started = False
        self.statistics = RunStatistics(generation_limit=generation_limit)

        self._generation_listeners: list[GenerationEventListener] = []
        self._algorithm_listeners: list[AlgorithmEventListener] = []

    # -- configuration -------------------------------------------------

    @property
    def fitness(self) -> Fitness | None:
        return self._fitness

    @fitness.setter
    def fitness(self, fitness: Fitness | None) -> None:
        if fitness is not self._fitness:
            self.fitness_changed = True
        self._fitness = fitness
        self.body.set_fitness(fitness)

    @property
    def evaluator(self) -> Evaluator:
        return self._evaluator

    @evaluator.setter
    def evaluator(self, evaluator: Evaluator) -> None:
        evaluator.bind(self)
        self._evaluator = evaluator

    @property
    def initial_population(self) -> Population | None:
        return self._initial_population

    @initial_population.setter
    def initial_population(self, population: Population) -> None:
        self._initial_population = population

    @property
    def current_population(self) -> Population:
        return self._history[0]

    @property
    def next_population(self) -> Population:
        return self._history[-1]

    @property
    def history_size(self) -> int:
        return len(self._history)

    @history_size.setter
    def history_size(self, size: int) -> None:
        if not DEFAULT_HISTORY_SIZE <= size <= MAX_HISTORY_SIZE:
            raise ConfigurationError(
                f"history size must be within [{DEFAULT_HISTORY_SIZE}, {MAX_HISTORY_SIZE}]", {"size": size}
            )
        while len(self._history) < size:
            grown = Population()
            grown.set_as(self._history[-1])
            self._history.append(grown)
        del self._history[size:]

    def history_at(self, position: int) -> Population | None:
        """Population of ``position`` generations ago (0 is the current one)."""
        if 0 <= position < len(self._history):
            return self._history[position]
        return None

    @property
    def randomization(self) -> float:
        return self._randomization

    @randomization.setter
    def randomization(self, rate: float | bool) -> None:
        rate = float(rate)
        if not 0.0 <= rate <= 1.0:
            raise ConfigurationError("randomization rate must be within [0, 1]", {"rate": rate})
        self._randomization = rate

    @property
    def elitism_policy(self) -> ElitismPolicy:
        return self._elitism_policy

    @elitism_policy.setter
    def elitism_policy(self, policy: ElitismPolicy | ElitismStrategy | str) -> None:
        if isinstance(policy, ElitismPolicy):
            self._elitism_policy = policy
        else:
            self._elitism_policy = _POLICIES[ElitismStrategy(policy)]()

    def add_stage(self, stage: AbstractStage) -> GeneticAlgorithm:
        self.body.add(stage)
        return self

    # -- listeners -----------------------------------------------------

    def add_generation_listener(self, listener: GenerationEventListener) -> None:
        self._generation_listeners.append(listener)

    def remove_generation_listener(self, listener: GenerationEventListener) -> None:
        self._generation_listeners.remove(listener)

    def add_algorithm_listener(self, listener: AlgorithmEventListener) -> None:
        self._algorithm_listeners.append(listener)

    def remove_algorithm_listener(self, listener: AlgorithmEventListener) -> None:
        self._algorithm_listeners.remove(listener)

    # -- hooks ---------------------------------------------------------

    def on_start(self, elapsed_ms: float) -> None:
        pass

    def on_init(self, elapsed_ms: float) -> None:
        pass

    def on_generation(self, elapsed_ms: float) -> None:
        pass

    def on_stop(self, elapsed_ms: float) -> None:
        pass

    def end(self) -> bool:
        """Extra termination test, checked before every generation."""
        return False

    def randomize_individual(self, individual: Individual) -> None:
        individual.randomize(self.random)

    def randomize_population(self, population: Population) -> None:
        count = int(len(population) * self._randomization + 0.5)
        for i in range(count):
            self.randomize_individual(population[i])

    # -- run -----------------------------------------------------------

    def evolve(self, restart: bool = True) -> None:
        """Run the generation loop.

        With ``restart`` false and a previous run available, evolution
        resumes from the last population instead of the initial one.
        """
        self.body.init(self)
        try:
            self._start(restart)
            self.state = AlgorithmState.RUNNING
            for generation in range(self.generation_limit):
                if self.end():
                    break
                self.generation = generation
                self._step()
        except Exception as exc:
            self.statistics.exception_terminated = True
            _LOG.error(f"Evolution aborted at generation {self.generation}: {exc}")
            raise
        finally:
            self._stop()

    def _start(self, restart: bool) -> None:
        if self._initial_population is None:
            raise AlgorithmStateError("no initial population")
        if self._fitness is None:
            raise AlgorithmStateError("no fitness")
        self.state = AlgorithmState.STARTING
        self.evaluator.start(self)

        now = time.time()
        self.statistics = RunStatistics(
            generation_limit=self.generation_limit,
            start_time=now,
            random_seed=self.random.seed,
        )
        self.generation = 0
        _LOG.info(
            f"Evolution started: {len(self._initial_population)} individuals, "
            f"limit {self.generation_limit} generations, seed {self.random.seed}"
        )
        self.on_start(0.0)
        self._fire(AlgorithmPhase.START, now)

        if restart or not self._started:
            for population in self._history:
                population.set_as(self._initial_population)
            self.current_population.age = 0
            self.randomize_population(self.current_population)
        self._started = True

        self.evaluate_population(self.current_population)

        now = time.time()
        self.statistics.init_time = now
        self.on_init(self.statistics.elapsed_ms(now))
        self._fire(AlgorithmPhase.INIT, now)

    def _step(self) -> None:
        current = self.current_population
        working = self.next_population
        working.set_as(current)
        self.body.process(working, working)
        working.age = current.age + 1
        self.evaluate_population(working)

        self._history = [working] + self._history[:-1]
        if self.elitism > 0:
            self.apply_elitism(current, working)

        now = time.time()
        self.statistics.generations = self.generation + 1
        self.statistics.generation_end_times.append(now)
        elapsed = self.statistics.elapsed_ms(now)
        if _LOG.isEnabledFor(logging.DEBUG):
            _LOG.debug(f"Generation {self.generation} done in {elapsed:.1f} ms")

        self.on_generation(elapsed)
        event = GenerationEvent(generation=self.generation, elapsed_ms=elapsed, timestamp=now)
        for listener in list(self._generation_listeners):
            listener.on_generation(self, event)

    def _stop(self) -> None:
        try:
            self.body.dispose()
            now = time.time()
            self.statistics.stop_time = now
            self.statistics.execution_time_ms = self.statistics.elapsed_ms(now)
            self.state = AlgorithmState.STOPPED
            _LOG.info(
                f"Evolution stopped after {self.statistics.generations} generations, "
                f"{self.statistics.fitness_evaluations} evaluations, "
                f"{self.statistics.execution_time_ms:.1f} ms"
            )
            self.on_stop(self.statistics.execution_time_ms)
            self._fire(AlgorithmPhase.STOP, now)
        finally:
            self.evaluator.stop()

    def _fire(self, phase: AlgorithmPhase, now: float) -> None:
        event = AlgorithmEvent(phase=phase, elapsed_ms=self.statistics.elapsed_ms(now), timestamp=now)
        for listener in list(self._algorithm_listeners):
            if phase == AlgorithmPhase.START:
                listener.on_algorithm_start(self, event)
            elif phase == AlgorithmPhase.INIT:
                listener.on_algorithm_init(self, event)
            else:
                listener.on_algorithm_stop(self, event)

    # -- evaluation ----------------------------------------------------

    def evaluate_individual(self, individual: Individual) -> None:
        fitness = self._fitness
        if fitness is None:
            raise AlgorithmStateError("no fitness")
        fitness.evaluate(individual)

    def evaluate_population(self, population: Population, forced: bool | None = None) -> None:
        """Evaluate individuals without valid scores (all of them when forced)."""
        fitness = self._fitness
        if fitness is None:
            raise AlgorithmStateError("no fitness")
        forced = self.full_evaluation_forced if forced is None else forced
        forced = forced or self.fitness_changed
        started = time.perf_counter()
        count = 0
        self.evaluator.on_evaluation_begin(population, forced)
        try:
            for index, individual in enumerate(population):
                if forced or not individual.evaluated:
                    fitness.init(individual)
                    self.evaluator.evaluate(individual, index)
                    count += 1
        finally:
            self.evaluator.on_evaluation_end()
        self.fitness_changed = False
        self.statistics.fitness_evaluations += count
        self.statistics.fitness_eval_time_ms += (time.perf_counter() - started) * 1000.0

    # -- elitism and ranking -------------------------------------------

    def best_first_indices(self, population: Population) -> list[int]:
        """Indices of ``population`` from best to worst, legal before illegal."""
        ranked = list(population.individuals)
        if self._fitness is not None:
            self._fitness.sort(ranked)
        else:
            sort_individuals(ranked, self.body.bigger_is_better, SortingMode.PARTIAL)
        ranked.sort(key=lambda ind: not ind.legal)
        position = {id(ind): i for i, ind in enumerate(population.individuals)}
        return [position[id(ind)] for ind in ranked]

    def apply_elitism(self, previous: Population, next_pop: Population) -> None:
        count = min(len(previous), len(next_pop), self.elitism)
        if count <= 0:
            return
        best = self.best_first_indices(previous)[:count]
        slots = self._elitism_policy.target_slots(self, next_pop, count)
        for slot, elite in zip(slots, best):
            next_pop[slot].set_as(previous[elite])

    # -- results -------------------------------------------------------

    def current_statistics(self) -> PopulationStatistics:
        flags = self._fitness.bigger_is_better if self._fitness is not None else (True,)
        return self.current_population.statistics(list(flags))

    def best(self) -> Individual | None:
        """Best individual of the current population, preferring legal ones."""
        population = self.current_population
        if not population.individuals:
            return None
        return population[self.best_first_indices(population)[0]]
