"""Individual: one chromosome plus its scores and legality."""

from __future__ import annotations

import math
from typing import Sequence

from ga_stage.exceptions import ConfigurationError
from ga_stage.ga.chromosome import Chromosome
from ga_stage.ga.random_source import RandomSource

UNRANKED = -1


class Individual:
    """A candidate solution.

    Scores are only meaningful while ``evaluated`` is true. Any change to the
    chromosome through an operator must be followed by
    ``set_not_evaluated()``.
    """

    __slots__ = ("chromosome", "_scores", "legal", "evaluated", "rank")

    def __init__(
        self,
        chromosome: Chromosome,
        scores: Sequence[float] | None = None,
        num_objectives: int = 1,
    ) -> None:
        self.chromosome = chromosome
        self.legal = True
        self.rank = UNRANKED
        if scores is not None:
            self._scores = [float(s) for s in scores]
            self.evaluated = not any(math.isnan(s) for s in self._scores)
        else:
            self._scores = [math.nan] * num_objectives
            self.evaluated = False

    @property
    def num_objectives(self) -> int:
        return len(self._scores)

    @property
    def scores(self) -> list[float]:
        return list(self._scores)

    @property
    def score(self) -> float:
        return self._scores[0]

    def get_score(self, objective: int) -> float:
        return self._scores[objective]

    def set_score(self, *scores: float) -> None:
        """Store one score per objective and mark the individual evaluated."""
        if len(scores) == 1 and isinstance(scores[0], (list, tuple)):
            scores = tuple(scores[0])
        if len(scores) != len(self._scores):
            raise ConfigurationError(
                "wrong number of scores",
                {"expected": len(self._scores), "got": len(scores)},
            )
        self._scores[:] = [float(s) for s in scores]
        self.evaluated = True

    def set_objective_score(self, objective: int, value: float) -> None:
        self._scores[objective] = float(value)
        self.evaluated = True

    def reset_scores(self, num_objectives: int) -> None:
        self._scores = [math.nan] * num_objectives
        self.evaluated = False

    def set_not_evaluated(self) -> None:
        self.evaluated = False

    def randomize(self, rng: RandomSource) -> None:
        self.chromosome.randomize(rng)
        self.evaluated = False
        self.legal = True

    def set_as(self, other: Individual) -> None:
        """Deep-copy genes, scores and flags of ``other`` into this individual."""
        if other is self:
            return
        self.chromosome.set_as(other.chromosome)
        if len(self._scores) == len(other._scores):
            self._scores[:] = other._scores
        else:
            self._scores = list(other._scores)
        self.legal = other.legal
        self.evaluated = other.evaluated
        self.rank = other.rank

    def clone(self) -> Individual:
        twin = Individual.__new__(Individual)
        twin.chromosome = self.chromosome.clone()
        twin._scores = list(self._scores)
        twin.legal = self.legal
        twin.evaluated = self.evaluated
        twin.rank = self.rank
        return twin

    def __len__(self) -> int:
        return len(self.chromosome)

    def __repr__(self) -> str:
        state = "legal" if self.legal else "illegal"
        scores = self._scores if self.evaluated else "not evaluated"
        return f"Individual({self.chromosome!r}, scores={scores}, {state})"
