"""Chromosome encodings.

Every chromosome owns its gene storage, keeps a constant length and supports
indexed access, deep cloning and per-position randomization with an injected
RandomSource. Array-backed variants store genes in a numpy array.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, Sequence

import numpy as np
from numpy.typing import NDArray

from ga_stage.exceptions import ConfigurationError
from ga_stage.ga.codings import BitCoding
from ga_stage.ga.random_source import RandomSource


class Chromosome(ABC):
    """Capability shared by all encodings."""

    @abstractmethod
    def __len__(self) -> int: ...

    @abstractmethod
    def __getitem__(self, index: int) -> Any: ...

    @abstractmethod
    def __setitem__(self, index: int, value: Any) -> None: ...

    @abstractmethod
    def clone(self) -> Chromosome:
        """Deep, independent copy with the same domain."""

    @abstractmethod
    def set_as(self, other: Chromosome) -> None:
        """Overwrite genes with a copy of ``other``'s genes."""

    @abstractmethod
    def randomize_at(self, index: int, rng: RandomSource) -> None:
        """Resample gene ``index`` uniformly within its legal domain."""

    def randomize(self, rng: RandomSource) -> None:
        for i in range(len(self)):
            self.randomize_at(i, rng)

    def swap(self, i: int, j: int) -> None:
        self._check_index(i)
        self._check_index(j)
        a, b = self[i], self[j]
        self[i] = b
        self[j] = a

    def cross(self, other: Chromosome, start: int, end: int | None = None) -> None:
        """Exchange genes with ``other``.

        With ``end`` omitted the suffix from ``start`` is exchanged, otherwise
        the inclusive segment ``[start, end]``.
        """
        lo, hi = self._segment(other, start, end)
        for i in range(lo, hi):
            a, b = self[i], other[i]
            self[i] = b
            other[i] = a

    def left_shift(self, start: int, end: int) -> None:
        """Rotate the inclusive segment one position to the left."""
        self._check_index(start)
        self._check_index(end)
        first = self[start]
        for i in range(start, end):
            self[i] = self[i + 1]
        self[end] = first

    def right_shift(self, start: int, end: int) -> None:
        self._check_index(start)
        self._check_index(end)
        last = self[end]
        for i in range(end, start, -1):
            self[i] = self[i - 1]
        self[start] = last

    def difference(self, other: Chromosome) -> NDArray[np.float64]:
        """Per-gene distance: 0 where genes match, 1 otherwise."""
        self._check_same_length(other)
        return np.array(
            [0.0 if self[i] == other[i] else 1.0 for i in range(len(self))],
            dtype=np.float64,
        )

    def to_list(self) -> list[Any]:
        return [self[i] for i in range(len(self))]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Chromosome) or type(other) is not type(self):
            return NotImplemented
        return self.to_list() == other.to_list()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_list()})"

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self):
            raise IndexError(f"gene index {index} out of range [0, {len(self)})")

    def _check_same_length(self, other: Chromosome) -> None:
        if len(other) != len(self):
            raise ConfigurationError(
                "chromosome lengths differ", {"left": len(self), "right": len(other)}
            )

    def _segment(self, other: Chromosome, start: int, end: int | None) -> tuple[int, int]:
        self._check_same_length(other)
        if not 0 <= start <= len(self):
            raise IndexError(f"cross point {start} out of range [0, {len(self)}]")
        if end is None:
            return start, len(self)
        return start, min(end + 1, len(self))


class _ArrayChromosome(Chromosome):
    """Chromosome whose genes live in a one-dimensional numpy array."""

    genes: NDArray

    def __len__(self) -> int:
        return len(self.genes)

    def __getitem__(self, index: int) -> Any:
        self._check_index(index)
        return self.genes[index].item()

    def __setitem__(self, index: int, value: Any) -> None:
        self._check_index(index)
        self._validate(value)
        self.genes[index] = value

    def _validate(self, value: Any) -> None:
        pass

    def clone(self) -> _ArrayChromosome:
        twin = object.__new__(type(self))
        twin.__dict__.update(self.__dict__)
        twin.genes = self.genes.copy()
        return twin

    def set_as(self, other: Chromosome) -> None:
        if not isinstance(other, _ArrayChromosome) or other.genes.shape != self.genes.shape:
            raise ConfigurationError(
                "cannot copy genes between different chromosome shapes",
                {"target": type(self).__name__, "source": type(other).__name__},
            )
        np.copyto(self.genes, other.genes)

    def swap(self, i: int, j: int) -> None:
        self._check_index(i)
        self._check_index(j)
        self.genes[[i, j]] = self.genes[[j, i]]

    def cross(self, other: Chromosome, start: int, end: int | None = None) -> None:
        lo, hi = self._segment(other, start, end)
        if not isinstance(other, _ArrayChromosome):
            super().cross(other, start, end)
            return
        tmp = self.genes[lo:hi].copy()
        self.genes[lo:hi] = other.genes[lo:hi]
        other.genes[lo:hi] = tmp

    def difference(self, other: Chromosome) -> NDArray[np.float64]:
        self._check_same_length(other)
        if isinstance(other, _ArrayChromosome):
            return self.genes.astype(np.float64) - other.genes.astype(np.float64)
        return super().difference(other)

    def to_list(self) -> list[Any]:
        return self.genes.tolist()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _ArrayChromosome) or type(other) is not type(self):
            return NotImplemented
        return bool(np.array_equal(self.genes, other.genes))


class BooleanChromosome(_ArrayChromosome):
    """Vector of booleans."""

    def __init__(self, length: int, values: Iterable[bool] | None = None) -> None:
        self.genes = np.zeros(length, dtype=bool)
        if values is not None:
            values = np.asarray(list(values), dtype=bool)
            if len(values) != length:
                raise ConfigurationError("initial values do not match length", {"length": length})
            self.genes[:] = values

    def randomize_at(self, index: int, rng: RandomSource) -> None:
        self._check_index(index)
        self.genes[index] = rng.next_bool()

    def randomize(self, rng: RandomSource) -> None:
        self.genes[:] = rng.generator.random(len(self.genes)) < 0.5

    def flip(self, index: int) -> None:
        self._check_index(index)
        self.genes[index] = not self.genes[index]

    def count_true(self) -> int:
        return int(np.count_nonzero(self.genes))

    def difference(self, other: Chromosome) -> NDArray[np.float64]:
        self._check_same_length(other)
        return (self.genes != np.asarray(other.to_list(), dtype=bool)).astype(np.float64)


class IntegerChromosome(_ArrayChromosome):
    """Vector of integers in the inclusive range ``[lower, upper]``."""

    def __init__(
        self,
        length: int,
        lower: int = 0,
        upper: int = 1,
        values: Iterable[int] | None = None,
    ) -> None:
        if lower > upper:
            raise ConfigurationError("lower bound exceeds upper bound", {"lower": lower, "upper": upper})
        self.lower = lower
        self.upper = upper
        self.genes = np.full(length, lower, dtype=np.int64)
        if values is not None:
            values = list(values)
            if len(values) != length:
                raise ConfigurationError("initial values do not match length", {"length": length})
            for i, v in enumerate(values):
                self[i] = v

    def _validate(self, value: Any) -> None:
        if not self.lower <= value <= self.upper:
            raise ConfigurationError(
                f"value {value} outside [{self.lower}, {self.upper}]"
            )

    def randomize_at(self, index: int, rng: RandomSource) -> None:
        self._check_index(index)
        self.genes[index] = rng.next_int(self.lower, self.upper + 1)

    def randomize(self, rng: RandomSource) -> None:
        self.genes[:] = rng.generator.integers(self.lower, self.upper + 1, size=len(self.genes))


class DoubleChromosome(_ArrayChromosome):
    """Vector of reals in ``[lower, upper]``."""

    def __init__(
        self,
        length: int,
        lower: float = 0.0,
        upper: float = 1.0,
        values: Iterable[float] | None = None,
    ) -> None:
        if lower > upper:
            raise ConfigurationError("lower bound exceeds upper bound", {"lower": lower, "upper": upper})
        self.lower = float(lower)
        self.upper = float(upper)
        self.genes = np.full(length, self.lower, dtype=np.float64)
        if values is not None:
            values = list(values)
            if len(values) != length:
                raise ConfigurationError("initial values do not match length", {"length": length})
            for i, v in enumerate(values):
                self[i] = v

    def _validate(self, value: Any) -> None:
        if not self.lower <= value <= self.upper:
            raise ConfigurationError(
                f"value {value} outside [{self.lower}, {self.upper}]"
            )

    def randomize_at(self, index: int, rng: RandomSource) -> None:
        self._check_index(index)
        self.genes[index] = rng.next_double(self.lower, self.upper)

    def randomize(self, rng: RandomSource) -> None:
        self.genes[:] = rng.generator.uniform(self.lower, self.upper, size=len(self.genes))

    def average(self, other: DoubleChromosome, ratio: float) -> None:
        """Replace both chromosomes by complementary convex combinations.

        ``self`` becomes ``ratio * self + (1 - ratio) * other`` and ``other``
        the mirrored combination.
        """
        self._check_same_length(other)
        mine = self.genes.copy()
        self.genes[:] = other.genes + ratio * (mine - other.genes)
        other.genes[:] = mine + ratio * (other.genes - mine)

    def owa(self, other: DoubleChromosome, ratio: float) -> None:
        """Ordered weighted average: like ``average`` but over sorted gene pairs.

        ``self`` receives ``ratio`` of the smaller gene, ``other`` ``ratio`` of
        the larger one. The ratio is clamped to ``[0, 1]``.
        """
        self._check_same_length(other)
        ratio = min(1.0, max(0.0, ratio))
        low = np.minimum(self.genes, other.genes)
        high = np.maximum(self.genes, other.genes)
        self.genes[:] = high + ratio * (low - high)
        other.genes[:] = low + ratio * (high - low)

    def clip(self) -> None:
        np.clip(self.genes, self.lower, self.upper, out=self.genes)


class BitwiseChromosome(_ArrayChromosome):
    """Sequence of ``size`` values packed as bits through a BitCoding.

    Indexing and operators work at bit level; ``decode``/``encode`` read and
    write whole values.
    """

    def __init__(self, size: int, coding: BitCoding, values: Sequence[Any] | None = None) -> None:
        self.size = size
        self.coding = coding
        self.genes = np.zeros(size * coding.bits, dtype=np.uint8)
        if values is not None:
            if len(values) != size:
                raise ConfigurationError("initial values do not match size", {"size": size})
            for i, v in enumerate(values):
                self.encode(i, v)

    def _validate(self, value: Any) -> None:
        if value not in (0, 1, True, False):
            raise ConfigurationError(f"bit value must be 0 or 1, got {value}")

    def _value_slice(self, index: int) -> slice:
        if not 0 <= index < self.size:
            raise IndexError(f"value index {index} out of range [0, {self.size})")
        bits = self.coding.bits
        return slice(index * bits, (index + 1) * bits)

    def decode(self, index: int) -> Any:
        pattern = 0
        for bit in self.genes[self._value_slice(index)]:
            pattern = (pattern << 1) | int(bit)
        return self.coding.decode(pattern)

    def encode(self, index: int, value: Any) -> None:
        pattern = self.coding.encode(value)
        span = self._value_slice(index)
        bits = self.coding.bits
        self.genes[span] = [(pattern >> (bits - 1 - k)) & 1 for k in range(bits)]

    def values(self) -> list[Any]:
        return [self.decode(i) for i in range(self.size)]

    def randomize_at(self, index: int, rng: RandomSource) -> None:
        self._check_index(index)
        self.genes[index] = 1 if rng.next_bool() else 0

    def randomize(self, rng: RandomSource) -> None:
        self.genes[:] = rng.generator.integers(0, 2, size=len(self.genes), dtype=np.uint8)

    def __repr__(self) -> str:
        return f"BitwiseChromosome({self.values()}, coding={self.coding!r})"


class PermutationChromosome(Chromosome):
    """A permutation of ``0..length-1`` with an inverse position index.

    Every write is carried out as a swap, so the permutation invariant holds
    after any sequence of ``__setitem__``, ``swap``, ``cross`` or
    ``randomize`` calls.
    """

    def __init__(self, length: int, values: Iterable[int] | None = None) -> None:
        if values is None:
            self.genes = np.arange(length, dtype=np.int64)
        else:
            self.genes = np.asarray(list(values), dtype=np.int64)
            if len(self.genes) != length or sorted(self.genes.tolist()) != list(range(length)):
                raise ConfigurationError("values are not a permutation", {"length": length})
        self.positions = np.empty(length, dtype=np.int64)
        self.positions[self.genes] = np.arange(length)

    def __len__(self) -> int:
        return len(self.genes)

    def __getitem__(self, index: int) -> int:
        self._check_index(index)
        return int(self.genes[index])

    def __setitem__(self, index: int, value: int) -> None:
        self._check_index(index)
        if not 0 <= value < len(self):
            raise ConfigurationError(f"value {value} is not part of the permutation")
        self.swap(index, int(self.positions[value]))

    def position_of(self, value: int) -> int:
        return int(self.positions[value])

    def swap(self, i: int, j: int) -> None:
        self._check_index(i)
        self._check_index(j)
        a, b = self.genes[i], self.genes[j]
        self.genes[i], self.genes[j] = b, a
        self.positions[b], self.positions[a] = i, j

    def clone(self) -> PermutationChromosome:
        twin = object.__new__(PermutationChromosome)
        twin.genes = self.genes.copy()
        twin.positions = self.positions.copy()
        return twin

    def set_as(self, other: Chromosome) -> None:
        if not isinstance(other, PermutationChromosome) or len(other) != len(self):
            raise ConfigurationError("cannot copy a permutation of a different shape")
        np.copyto(self.genes, other.genes)
        np.copyto(self.positions, other.positions)

    def randomize_at(self, index: int, rng: RandomSource) -> None:
        self.swap(index, rng.next_int(len(self)))

    def randomize(self, rng: RandomSource) -> None:
        self.genes[:] = rng.generator.permutation(len(self))
        self.positions[self.genes] = np.arange(len(self))

    def difference(self, other: Chromosome) -> NDArray[np.float64]:
        self._check_same_length(other)
        return (self.genes != np.asarray(other.to_list())).astype(np.float64)

    def to_list(self) -> list[int]:
        return self.genes.tolist()


class AlleleSet(ABC):
    """Finite domain of legal values for one ObjectChromosome position."""

    @abstractmethod
    def __len__(self) -> int: ...

    @abstractmethod
    def __getitem__(self, index: int) -> Any: ...

    def __contains__(self, value: object) -> bool:
        return any(self[i] == value for i in range(len(self)))

    def random_value(self, rng: RandomSource) -> Any:
        return self[rng.next_int(len(self))]


class GenericAlleleSet(AlleleSet):
    """Allele set over an explicit collection of distinct values."""

    def __init__(self, values: Iterable[Any]) -> None:
        unique: list[Any] = []
        for v in values:
            if v not in unique:
                unique.append(v)
        if not unique:
            raise ConfigurationError("an allele set needs at least one value")
        self._values = tuple(unique)

    @classmethod
    def from_range(cls, lower: int, upper: int) -> GenericAlleleSet:
        return cls(range(lower, upper + 1))

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, index: int) -> Any:
        return self._values[index]

    def __contains__(self, value: object) -> bool:
        return value in self._values

    def __repr__(self) -> str:
        return f"GenericAlleleSet({list(self._values)})"


class ObjectChromosome(Chromosome):
    """Heterogeneous vector whose position ``i`` draws from ``allele_sets[i]``."""

    def __init__(self, allele_sets: Sequence[AlleleSet], values: Sequence[Any] | None = None) -> None:
        self.allele_sets = list(allele_sets)
        self.genes: list[Any] = [s[0] for s in self.allele_sets]
        if values is not None:
            if len(values) != len(self.allele_sets):
                raise ConfigurationError("initial values do not match length", {"length": len(self)})
            for i, v in enumerate(values):
                self[i] = v

    def __len__(self) -> int:
        return len(self.genes)

    def __getitem__(self, index: int) -> Any:
        self._check_index(index)
        return self.genes[index]

    def __setitem__(self, index: int, value: Any) -> None:
        self._check_index(index)
        if value not in self.allele_sets[index]:
            raise ConfigurationError(f"value {value!r} not in allele set of position {index}")
        self.genes[index] = value

    def clone(self) -> ObjectChromosome:
        twin = object.__new__(ObjectChromosome)
        twin.allele_sets = self.allele_sets
        twin.genes = list(self.genes)
        return twin

    def set_as(self, other: Chromosome) -> None:
        if not isinstance(other, ObjectChromosome) or len(other) != len(self):
            raise ConfigurationError("cannot copy an object chromosome of a different shape")
        self.genes[:] = other.genes

    def randomize_at(self, index: int, rng: RandomSource) -> None:
        self._check_index(index)
        self.genes[index] = self.allele_sets[index].random_value(rng)

    def difference(self, other: Chromosome) -> NDArray[np.float64]:
        self._check_same_length(other)
        out = np.empty(len(self), dtype=np.float64)
        for i, (a, b) in enumerate(zip(self.genes, other.to_list())):
            if isinstance(a, (int, float)) and isinstance(b, (int, float)):
                out[i] = float(a) - float(b)
            else:
                out[i] = 0.0 if a == b else 1.0
        return out

    def to_list(self) -> list[Any]:
        return list(self.genes)
