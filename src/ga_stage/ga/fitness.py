"""Fitness strategies, Pareto dominance and population ranking."""

from __future__ import annotations

import copy
import math
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Sequence

import numpy as np
from numpy.typing import NDArray

from ga_stage.exceptions import ConfigurationError
from ga_stage.ga.individual import Individual
from ga_stage.models.ga_config import SortingMode


def _oriented_scores(individuals: Sequence[Individual], bigger_is_better: Sequence[bool]) -> NDArray[np.float64]:
    """Score matrix flipped so that bigger is better on every objective.

    Missing scores become -inf so unevaluated individuals rank last.
    """
    m = len(bigger_is_better)
    scores = np.empty((len(individuals), m), dtype=np.float64)
    for row, ind in enumerate(individuals):
        if ind.num_objectives != m:
            raise ConfigurationError(
                "individual objective count does not match fitness",
                {"expected": m, "got": ind.num_objectives},
            )
        scores[row] = ind.scores
    signs = np.where(np.asarray(bigger_is_better, dtype=bool), 1.0, -1.0)
    scores *= signs
    scores[np.isnan(scores)] = -np.inf
    return scores


def dominance(a: Individual, b: Individual, bigger_is_better: Sequence[bool]) -> int:
    """1 if ``a`` dominates ``b``, -1 if ``b`` dominates ``a``, 0 otherwise.

    ``a`` dominates ``b`` when it is no worse on every objective and strictly
    better on at least one.
    """
    if a.num_objectives != len(bigger_is_better) or b.num_objectives != len(bigger_is_better):
        raise ConfigurationError("objective count does not match fitness")
    a_better = b_better = False
    for sa, sb, maximize in zip(a.scores, b.scores, bigger_is_better):
        if math.isnan(sa) or math.isnan(sb):
            return 0
        if sa == sb:
            continue
        if (sa > sb) == maximize:
            a_better = True
        else:
            b_better = True
        if a_better and b_better:
            return 0
    if a_better:
        return 1
    if b_better:
        return -1
    return 0


def dominates(a: Individual, b: Individual, bigger_is_better: Sequence[bool]) -> bool:
    return dominance(a, b, bigger_is_better) == 1


def _dominance_matrix(scores: NDArray[np.float64]) -> NDArray[np.bool_]:
    ge = (scores[:, None, :] >= scores[None, :, :]).all(axis=2)
    gt = (scores[:, None, :] > scores[None, :, :]).any(axis=2)
    return ge & gt


def front_indices(individuals: Sequence[Individual], bigger_is_better: Sequence[bool]) -> list[int]:
    """Front number of each individual, computed by iterative peeling."""
    n = len(individuals)
    if n == 0:
        return []
    dom = _dominance_matrix(_oriented_scores(individuals, bigger_is_better))
    fronts = np.full(n, -1, dtype=np.int64)
    remaining = np.ones(n, dtype=bool)
    level = 0
    while remaining.any():
        idx = np.flatnonzero(remaining)
        dominated = dom[np.ix_(idx, idx)].any(axis=0)
        members = idx[~dominated]
        fronts[members] = level
        remaining[members] = False
        level += 1
    return fronts.tolist()


def pareto_fronts(individuals: Sequence[Individual], bigger_is_better: Sequence[bool]) -> list[list[Individual]]:
    levels = front_indices(individuals, bigger_is_better)
    fronts: list[list[Individual]] = [[] for _ in range(max(levels, default=-1) + 1)]
    for ind, level in zip(individuals, levels):
        fronts[level].append(ind)
    return fronts


def crowding_distances(front: Sequence[Individual], bigger_is_better: Sequence[bool]) -> list[float]:
    """NSGA-II crowding distance of each member of one front.

    Boundary members get infinity; objectives with zero spread add nothing.
    """
    n = len(front)
    if n == 0:
        return []
    scores = _oriented_scores(front, bigger_is_better)
    distance = np.zeros(n, dtype=np.float64)
    for obj in range(scores.shape[1]):
        column = scores[:, obj]
        order = np.argsort(column, kind="stable")
        distance[order[0]] = np.inf
        distance[order[-1]] = np.inf
        span = column[order[-1]] - column[order[0]]
        if n < 3 or not np.isfinite(span) or span == 0:
            continue
        gaps = (column[order[2:]] - column[order[:-2]]) / span
        distance[order[1:-1]] += gaps
    return distance.tolist()


def sort_individuals(
    individuals: list[Individual],
    bigger_is_better: Sequence[bool],
    mode: SortingMode = SortingMode.PARTIAL,
) -> None:
    """Sort best-first in place and assign ``rank`` on every individual.

    PARTIAL orders by the first objective, HIERARCHICAL lexicographically
    over all objectives, DOMINANCE by Pareto front and CROWDING by front then
    descending crowding distance. Sorting is stable.
    """
    if not individuals:
        return
    mode = SortingMode(mode)
    if mode in (SortingMode.PARTIAL, SortingMode.HIERARCHICAL):
        scores = _oriented_scores(individuals, bigger_is_better)
        width = 1 if mode == SortingMode.PARTIAL else scores.shape[1]
        keys = [tuple(-scores[i, :width]) for i in range(len(individuals))]
        order = sorted(range(len(individuals)), key=keys.__getitem__)
        rank = -1
        previous = None
        for pos in order:
            if keys[pos] != previous:
                rank += 1
                previous = keys[pos]
            individuals[pos].rank = rank
        individuals[:] = [individuals[i] for i in order]
        return

    levels = front_indices(individuals, bigger_is_better)
    for ind, level in zip(individuals, levels):
        ind.rank = level
    if mode == SortingMode.DOMINANCE:
        order = sorted(range(len(individuals)), key=levels.__getitem__)
    else:
        distance = [0.0] * len(individuals)
        groups: dict[int, list[int]] = {}
        for i, level in enumerate(levels):
            groups.setdefault(level, []).append(i)
        for members in groups.values():
            values = crowding_distances([individuals[i] for i in members], bigger_is_better)
            for i, d in zip(members, values):
                distance[i] = d
        order = sorted(range(len(individuals)), key=lambda i: (levels[i], -distance[i]))
    individuals[:] = [individuals[i] for i in order]


class Fitness(ABC):
    """Evaluation strategy: computes scores and legality of an individual.

    Implementations may keep mutable scratch state; concurrent evaluation
    gives each worker its own copy obtained through ``clone()``.
    """

    def __init__(
        self,
        bigger_is_better: bool | Sequence[bool] = True,
        num_objectives: int = 1,
        sorting_mode: SortingMode | None = None,
    ) -> None:
        if isinstance(bigger_is_better, bool):
            if num_objectives < 1:
                raise ConfigurationError("a fitness needs at least one objective")
            flags = (bigger_is_better,) * num_objectives
        else:
            flags = tuple(bool(f) for f in bigger_is_better)
            if not flags:
                raise ConfigurationError("a fitness needs at least one objective")
        self._bigger_is_better = flags
        if sorting_mode is None:
            sorting_mode = SortingMode.PARTIAL if len(flags) == 1 else SortingMode.CROWDING
        self.sorting_mode = SortingMode(sorting_mode)

    @property
    def bigger_is_better(self) -> tuple[bool, ...]:
        return self._bigger_is_better

    @property
    def num_objectives(self) -> int:
        return len(self._bigger_is_better)

    @abstractmethod
    def evaluate(self, individual: Individual) -> None:
        """Set the individual's scores (``set_score``) and legality."""

    def duplicate(self) -> Fitness:
        return copy.deepcopy(self)

    def clone(self) -> Fitness:
        return self.duplicate()

    def init(self, individual: Individual) -> None:
        if individual.num_objectives != self.num_objectives:
            individual.reset_scores(self.num_objectives)

    def dominates(self, a: Individual, b: Individual) -> bool:
        return dominance(a, b, self._bigger_is_better) == 1

    def dominance(self, a: Individual, b: Individual) -> int:
        return dominance(a, b, self._bigger_is_better)

    def sort(self, individuals: Iterable[Individual], mode: SortingMode | None = None) -> None:
        """Sort a Population or a list of individuals best-first, in place."""
        target = individuals.individuals if hasattr(individuals, "individuals") else individuals
        sort_individuals(target, self._bigger_is_better, mode or self.sorting_mode)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(bigger_is_better={list(self._bigger_is_better)})"


class FunctionFitness(Fitness):
    """Fitness backed by a plain function returning one score or a score sequence."""

    def __init__(
        self,
        func: Callable[[Individual], float | Sequence[float]],
        bigger_is_better: bool | Sequence[bool] = True,
        num_objectives: int = 1,
        legality: Callable[[Individual], bool] | None = None,
        sorting_mode: SortingMode | None = None,
    ) -> None:
        super().__init__(bigger_is_better, num_objectives, sorting_mode)
        self.func = func
        self.legality = legality

    def evaluate(self, individual: Individual) -> None:
        value = self.func(individual)
        if np.isscalar(value):
            individual.set_score(float(value))
        else:
            individual.set_score(*value)
        if self.legality is not None:
            individual.legal = bool(self.legality(individual))

    def duplicate(self) -> FunctionFitness:
        return copy.copy(self)
