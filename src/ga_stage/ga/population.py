"""Population container and on-demand statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Iterator, Sequence

import numpy as np
from numpy.typing import NDArray

from ga_stage.exceptions import ConfigurationError
from ga_stage.ga.fitness import Fitness, pareto_fronts, sort_individuals
from ga_stage.ga.individual import Individual
from ga_stage.ga.random_source import RandomSource
from ga_stage.models.ga_config import SortingMode


class PopulationFilter(str, Enum):
    """Derived views over a population."""

    ALL = "all"
    LEGALS = "legals"
    ILLEGALS = "illegals"
    BEST = "best"


class Population:
    """Ordered, resizable sequence of individuals sharing one chromosome shape.

    Copies have value semantics: ``set_as`` and ``resize_as`` deep-copy genes
    and scores, while ``swap`` exchanges storage in O(1).
    """

    def __init__(self, sample: Individual | None = None, size: int = 0) -> None:
        if size < 0:
            raise ConfigurationError("population size cannot be negative", {"size": size})
        self.sample = sample
        self.individuals: list[Individual] = []
        self.age = 0
        if size and sample is None:
            raise ConfigurationError("a sample individual is needed to fill a population")
        for _ in range(size):
            self.individuals.append(sample.clone())

    @classmethod
    def from_individuals(cls, individuals: Iterable[Individual], copy: bool = True) -> Population:
        pop = cls()
        for ind in individuals:
            pop.add(ind, copy=copy)
        if pop.individuals:
            pop.sample = pop.individuals[0].clone()
        return pop

    def __len__(self) -> int:
        return len(self.individuals)

    @property
    def size(self) -> int:
        return len(self.individuals)

    def __iter__(self) -> Iterator[Individual]:
        return iter(self.individuals)

    def __getitem__(self, index: int) -> Individual:
        return self.individuals[index]

    def get(self, index: int) -> Individual | None:
        if 0 <= index < len(self.individuals):
            return self.individuals[index]
        return None

    def replace(self, index: int, individual: Individual) -> Individual:
        """Put ``individual`` at ``index`` and return the one it displaced."""
        old = self.individuals[index]
        self.individuals[index] = individual
        return old

    def add(self, individual: Individual, copy: bool = True) -> Individual:
        """Append ``individual`` (a deep copy unless ``copy`` is false)."""
        added = individual.clone() if copy else individual
        self.individuals.append(added)
        if self.sample is None:
            self.sample = added.clone()
        return added

    def remove(self, index: int) -> Individual:
        return self.individuals.pop(index)

    def clear(self) -> None:
        self.individuals.clear()

    def _grow_template(self) -> Individual:
        if self.individuals:
            return self.individuals[-1]
        if self.sample is not None:
            return self.sample
        raise ConfigurationError("cannot grow an empty population without a sample")

    def resize(self, size: int) -> None:
        """Truncate, or grow by cloning the last individual (or the sample)."""
        if size < 0:
            raise ConfigurationError("population size cannot be negative", {"size": size})
        current = len(self.individuals)
        if size < current:
            del self.individuals[size:]
        elif size > current:
            template = self._grow_template()
            self.individuals.extend(template.clone() for _ in range(size - current))

    def resize_as(self, other: Population) -> None:
        """Match ``other``'s size, cloning its individuals into new slots."""
        current = len(self.individuals)
        target = len(other.individuals)
        if target < current:
            del self.individuals[target:]
        elif target > current:
            self.individuals.extend(other.individuals[i].clone() for i in range(current, target))
        if self.sample is None:
            self.sample = other.sample

    def set_as(self, other: Population) -> None:
        """Deep-copy every individual of ``other``, reusing existing slots."""
        if other is self:
            return
        self.resize_as(other)
        for mine, theirs in zip(self.individuals, other.individuals):
            mine.set_as(theirs)
        self.age = other.age + 1

    def swap(self, other: Population) -> None:
        if other is self:
            return
        self.individuals, other.individuals = other.individuals, self.individuals
        self.age, other.age = other.age, self.age
        if self.sample is None:
            self.sample = other.sample
        elif other.sample is None:
            other.sample = self.sample

    def invalidate(self) -> None:
        for ind in self.individuals:
            ind.set_not_evaluated()

    def randomize(self, rng: RandomSource) -> None:
        for ind in self.individuals:
            ind.randomize(rng)

    def sort(
        self,
        ranking: Fitness | Sequence[bool] | bool = True,
        mode: SortingMode | None = None,
    ) -> None:
        """Sort best-first by a Fitness or by bigger-is-better flags."""
        if isinstance(ranking, Fitness):
            ranking.sort(self.individuals, mode)
            return
        flags = [ranking] if isinstance(ranking, bool) else list(ranking)
        sort_individuals(self.individuals, flags, mode or SortingMode.PARTIAL)

    def filter(self, which: PopulationFilter) -> list[Individual]:
        which = PopulationFilter(which)
        if which == PopulationFilter.LEGALS:
            return [i for i in self.individuals if i.legal]
        if which == PopulationFilter.ILLEGALS:
            return [i for i in self.individuals if not i.legal]
        if which == PopulationFilter.BEST:
            return [i for i in self.individuals if i.rank == 0]
        return list(self.individuals)

    @property
    def legals(self) -> list[Individual]:
        return self.filter(PopulationFilter.LEGALS)

    @property
    def illegals(self) -> list[Individual]:
        return self.filter(PopulationFilter.ILLEGALS)

    def has_legals(self) -> bool:
        return any(i.legal for i in self.individuals)

    def scores(self) -> NDArray[np.float64]:
        """``(size, num_objectives)`` matrix of scores."""
        if not self.individuals:
            return np.empty((0, 0), dtype=np.float64)
        return np.array([i.scores for i in self.individuals], dtype=np.float64)

    def statistics(self, bigger_is_better: Sequence[bool] | bool = True) -> PopulationStatistics:
        flags = [bigger_is_better] if isinstance(bigger_is_better, bool) else list(bigger_is_better)
        return PopulationStatistics.of(self, flags)

    def pareto(self, bigger_is_better: Sequence[bool]) -> Pareto:
        return Pareto(pareto_fronts(self.individuals, list(bigger_is_better)))

    def __repr__(self) -> str:
        return f"Population(size={len(self.individuals)}, age={self.age})"


@dataclass
class GroupStatistics:
    """Per-objective summary of one partition of a population.

    Arrays have one entry per objective. Empty groups report NaN summaries
    and no best/worst individual.
    """

    name: str
    size: int
    mean: NDArray[np.float64]
    stdev: NDArray[np.float64]
    min: NDArray[np.float64]
    max: NDArray[np.float64]
    best: Individual | None = None
    worst: Individual | None = None
    individuals: list[Individual] = field(default_factory=list)

    @classmethod
    def of(cls, name: str, members: list[Individual], bigger_is_better: Sequence[bool]) -> GroupStatistics:
        m = len(bigger_is_better)
        if not members:
            nan = np.full(m, np.nan)
            return cls(name, 0, nan, nan.copy(), nan.copy(), nan.copy())
        scores = np.array([i.scores for i in members], dtype=np.float64)
        primary = scores[:, 0]
        if bigger_is_better[0]:
            best_idx, worst_idx = int(np.nanargmax(primary)), int(np.nanargmin(primary))
        else:
            best_idx, worst_idx = int(np.nanargmin(primary)), int(np.nanargmax(primary))
        return cls(
            name=name,
            size=len(members),
            mean=scores.mean(axis=0),
            stdev=scores.std(axis=0),
            min=scores.min(axis=0),
            max=scores.max(axis=0),
            best=members[best_idx].clone(),
            worst=members[worst_idx].clone(),
            individuals=[i.clone() for i in members],
        )


@dataclass
class PopulationStatistics:
    """Snapshot of a population split into legal and illegal groups."""

    bigger_is_better: list[bool]
    all: GroupStatistics
    legals: GroupStatistics
    illegals: GroupStatistics
    generation: int = 0

    @classmethod
    def of(cls, population: Population, bigger_is_better: Sequence[bool]) -> PopulationStatistics:
        flags = list(bigger_is_better)
        members = [i for i in population.individuals if i.evaluated]
        return cls(
            bigger_is_better=flags,
            all=GroupStatistics.of("all", members, flags),
            legals=GroupStatistics.of("legals", [i for i in members if i.legal], flags),
            illegals=GroupStatistics.of("illegals", [i for i in members if not i.legal], flags),
            generation=population.age,
        )

    def group(self, which: PopulationFilter) -> GroupStatistics:
        which = PopulationFilter(which)
        if which == PopulationFilter.LEGALS:
            return self.legals
        if which == PopulationFilter.ILLEGALS:
            return self.illegals
        if which == PopulationFilter.BEST:
            ranked = [i for i in self.all.individuals if i.rank == 0]
            return GroupStatistics.of("best", ranked, self.bigger_is_better)
        return self.all

    @property
    def num_individuals(self) -> int:
        return self.all.size

    @property
    def num_legals(self) -> int:
        return self.legals.size

    @property
    def num_illegals(self) -> int:
        return self.illegals.size

    @property
    def legal_highest_score(self) -> float:
        return float(self.legals.max[0])

    @property
    def legal_lowest_score(self) -> float:
        return float(self.legals.min[0])

    @property
    def legal_best_score(self) -> float:
        return self.legal_highest_score if self.bigger_is_better[0] else self.legal_lowest_score

    def as_record(self) -> dict[str, Any]:
        """Flatten into labelled fields, one column per objective where needed."""
        record: dict[str, Any] = {
            "Generation": self.generation,
            "Individuals": self.num_individuals,
            "Legals": self.num_legals,
            "Illegals": self.num_illegals,
        }
        for group in (self.legals, self.illegals):
            prefix = "Legal" if group is self.legals else "Illegal"
            for obj in range(len(self.bigger_is_better)):
                suffix = "" if obj == 0 else f"[{obj}]"
                record[f"{prefix}HighestScore{suffix}"] = float(group.max[obj])
                record[f"{prefix}LowestScore{suffix}"] = float(group.min[obj])
                record[f"{prefix}ScoreAvg{suffix}"] = float(group.mean[obj])
                record[f"{prefix}ScoreDev{suffix}"] = float(group.stdev[obj])
        return record


class Pareto:
    """Pareto fronts of a set of individuals, front 0 first."""

    def __init__(self, fronts: list[list[Individual]]) -> None:
        self.fronts = fronts

    def __len__(self) -> int:
        return len(self.fronts)

    def __getitem__(self, index: int) -> list[Individual]:
        return self.fronts[index]

    @property
    def first(self) -> list[Individual]:
        return self.fronts[0] if self.fronts else []
