"""Fitness evaluation strategies: sequential and thread-pool backed."""

from __future__ import annotations

import logging
import os
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from ga_stage.exceptions import AlgorithmStateError, ConfigurationError, EvaluationError, GAException
from ga_stage.ga.fitness import Fitness
from ga_stage.ga.individual import Individual
from ga_stage.ga.population import Population

if TYPE_CHECKING:
    from ga_stage.ga.algorithm import GeneticAlgorithm

_LOG = logging.getLogger(__name__)


class Evaluator(ABC):
    """Evaluates the individuals a GeneticAlgorithm hands over.

    The algorithm calls ``start`` when a run begins, then for every batch
    ``on_evaluation_begin``, ``evaluate`` per individual and
    ``on_evaluation_end``, and ``stop`` when the run is over.
    """

    def __init__(self) -> None:
        self.ga: GeneticAlgorithm | None = None

    def bind(self, ga: GeneticAlgorithm) -> None:
        self.ga = ga

    def start(self, ga: GeneticAlgorithm) -> None:
        self.ga = ga

    def stop(self) -> None:
        pass

    def on_evaluation_begin(self, population: Population, forced: bool) -> None:
        pass

    @abstractmethod
    def evaluate(self, individual: Individual, index: int) -> None: ...

    def on_evaluation_end(self) -> None:
        pass

    def _require_ga(self) -> GeneticAlgorithm:
        if self.ga is None:
            raise AlgorithmStateError(f"{type(self).__name__} used before start()")
        return self.ga


class SequentialEvaluator(Evaluator):
    """Evaluates in index order on the calling thread with the algorithm's fitness."""

    def evaluate(self, individual: Individual, index: int) -> None:
        ga = self._require_ga()
        try:
            ga.evaluate_individual(individual)
        except GAException:
            raise
        except Exception as exc:
            raise EvaluationError(f"fitness evaluation failed: {exc}", index) from exc


class _EvaluationTask:
    """Reusable unit of work; returned to the task pool after each run."""

    __slots__ = ("owner", "individual", "index")

    def __init__(self, owner: MultiThreadEvaluator) -> None:
        self.owner = owner
        self.individual: Individual | None = None
        self.index = -1

    def run(self) -> None:
        self.owner._run_task(self)


class MultiThreadEvaluator(Evaluator):
    """Evaluates a batch on a fixed-size thread pool.

    Every worker borrows a private clone of the fitness, so fitness objects
    may keep per-evaluation scratch state. The control thread waits at
    ``on_evaluation_end`` until all submitted tasks have finished; the first
    failure of the batch is then raised there as an EvaluationError.
    """

    def __init__(self, threads: int | None = None) -> None:
        super().__init__()
        threads = threads if threads is not None else (os.cpu_count() or 1)
        if threads < 1:
            raise ConfigurationError("at least one evaluation thread is required", {"threads": threads})
        self.threads = threads
        self._executor: ThreadPoolExecutor | None = None

        self._fitness_lock = threading.Lock()
        self._fitness_pool: list[Fitness] = []
        self._fitness_source: Fitness | None = None

        self._task_lock = threading.Lock()
        self._task_pool: list[_EvaluationTask] = []

        self._done = threading.Condition()
        self._outstanding = 0
        self._first_error: tuple[int, BaseException] | None = None

    @property
    def outstanding(self) -> int:
        with self._done:
            return self._outstanding

    def start(self, ga: GeneticAlgorithm) -> None:
        super().start(ga)
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.threads, thread_name_prefix="ga-eval")
            _LOG.debug(f"Started {self.threads} evaluation threads")

    def stop(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
            _LOG.debug("Evaluation threads stopped")
        super().stop()

    def on_evaluation_begin(self, population: Population, forced: bool) -> None:
        ga = self._require_ga()
        fitness = ga.fitness
        if fitness is None:
            raise AlgorithmStateError("MultiThreadEvaluator needs a fitness")
        if self._executor is None:
            raise AlgorithmStateError("MultiThreadEvaluator used before start()")

        with self._fitness_lock:
            if ga.fitness_changed or not self._fitness_pool or self._fitness_source is not fitness:
                self._fitness_pool = [fitness.clone() for _ in range(self.threads)]
                self._fitness_source = fitness
                _LOG.debug(f"Fitness pool refreshed with {self.threads} clones of {fitness!r}")

        with self._task_lock:
            missing = len(population) - len(self._task_pool)
            if missing > 0:
                self._task_pool.extend(_EvaluationTask(self) for _ in range(missing))

        with self._done:
            self._outstanding = 0
            self._first_error = None

    def evaluate(self, individual: Individual, index: int) -> None:
        if self._executor is None:
            raise AlgorithmStateError("MultiThreadEvaluator used before start()")
        with self._task_lock:
            task = self._task_pool.pop() if self._task_pool else _EvaluationTask(self)
        task.individual = individual
        task.index = index
        with self._done:
            self._outstanding += 1
        try:
            self._executor.submit(task.run)
        except Exception:
            self._finish(task)
            raise

    def on_evaluation_end(self) -> None:
        with self._done:
            self._done.wait_for(lambda: self._outstanding == 0)
            error = self._first_error
            self._first_error = None
        if error is not None:
            index, exc = error
            raise EvaluationError(f"fitness evaluation failed: {exc}", index) from exc

    def _run_task(self, task: _EvaluationTask) -> None:
        fitness = self._check_out()
        try:
            fitness.evaluate(task.individual)
        except Exception as exc:
            _LOG.error(f"Evaluation of individual {task.index} failed: {exc}")
            with self._done:
                if self._first_error is None:
                    self._first_error = (task.index, exc)
        finally:
            self._check_in(fitness)
            self._finish(task)

    def _check_out(self) -> Fitness:
        with self._fitness_lock:
            return self._fitness_pool.pop()

    def _check_in(self, fitness: Fitness) -> None:
        with self._fitness_lock:
            self._fitness_pool.append(fitness)

    def _finish(self, task: _EvaluationTask) -> None:
        with self._done:
            self._outstanding -= 1
            if self._outstanding == 0:
                self._done.notify_all()
        task.individual = None
        task.index = -1
        with self._task_lock:
            self._task_pool.append(task)
