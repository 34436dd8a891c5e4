"""Tests for chromosome encodings."""

from __future__ import annotations

import numpy as np
import pytest

from ga_stage.exceptions import ConfigurationError
from ga_stage.ga.chromosome import (
    BitwiseChromosome,
    BooleanChromosome,
    DoubleChromosome,
    GenericAlleleSet,
    IntegerChromosome,
    ObjectChromosome,
    PermutationChromosome,
)
from ga_stage.ga.codings import ByteCoding, GrayCoding


def _is_permutation(chromosome: PermutationChromosome) -> bool:
    genes = chromosome.to_list()
    if sorted(genes) != list(range(len(genes))):
        return False
    return all(chromosome.position_of(v) == i for i, v in enumerate(genes))


class TestBooleanChromosome:
    def test_starts_all_false(self):
        c = BooleanChromosome(5)
        assert len(c) == 5
        assert c.to_list() == [False] * 5

    def test_flip_and_count(self):
        c = BooleanChromosome(4)
        c.flip(1)
        c[3] = True
        assert c.count_true() == 2
        assert c[1] is True

    def test_index_out_of_range(self):
        c = BooleanChromosome(3)
        with pytest.raises(IndexError):
            c[3]
        with pytest.raises(IndexError):
            c[-1] = True

    def test_initial_values_must_match_length(self):
        with pytest.raises(ConfigurationError):
            BooleanChromosome(3, [True, False])

    def test_randomize_draws_both_values(self, rng):
        c = BooleanChromosome(200)
        c.randomize(rng)
        assert 0 < c.count_true() < 200

    def test_cross_swaps_suffix(self):
        a, b = BooleanChromosome(6), BooleanChromosome(6, [True] * 6)
        a.cross(b, 4)
        assert a.to_list() == [False, False, False, False, True, True]
        assert b.to_list() == [True, True, True, True, False, False]

    def test_cross_swaps_inclusive_segment(self):
        a, b = BooleanChromosome(6), BooleanChromosome(6, [True] * 6)
        a.cross(b, 1, 3)
        assert a.to_list() == [False, True, True, True, False, False]
        assert b.to_list() == [True, False, False, False, True, True]

    def test_cross_rejects_length_mismatch(self):
        with pytest.raises(ConfigurationError):
            BooleanChromosome(4).cross(BooleanChromosome(5), 1)

    def test_clone_is_independent(self):
        a = BooleanChromosome(3, [True, False, True])
        b = a.clone()
        b.flip(0)
        assert a[0] is True
        assert a != b

    def test_difference_marks_mismatches(self):
        a = BooleanChromosome(3, [True, False, True])
        b = BooleanChromosome(3, [True, True, False])
        np.testing.assert_array_equal(a.difference(b), [0.0, 1.0, 1.0])


class TestIntegerChromosome:
    def test_rejects_inverted_bounds(self):
        with pytest.raises(ConfigurationError):
            IntegerChromosome(3, lower=5, upper=1)

    def test_rejects_out_of_range_values(self):
        c = IntegerChromosome(3, 0, 3)
        with pytest.raises(ConfigurationError):
            c[0] = 4

    def test_randomize_covers_inclusive_range(self, rng):
        c = IntegerChromosome(200, 0, 3)
        c.randomize(rng)
        assert set(c.to_list()) == {0, 1, 2, 3}

    def test_randomize_at_stays_in_range(self, rng):
        c = IntegerChromosome(1, -2, 2)
        for _ in range(50):
            c.randomize_at(0, rng)
            assert -2 <= c[0] <= 2

    def test_swap(self):
        c = IntegerChromosome(4, 0, 3, [0, 1, 2, 3])
        c.swap(0, 3)
        assert c.to_list() == [3, 1, 2, 0]

    def test_left_and_right_shift(self):
        c = IntegerChromosome(4, 0, 3, [0, 1, 2, 3])
        c.left_shift(0, 2)
        assert c.to_list() == [1, 2, 0, 3]
        c.right_shift(0, 2)
        assert c.to_list() == [0, 1, 2, 3]
        c.right_shift(0, 2)
        assert c.to_list() == [2, 0, 1, 3]


class TestDoubleChromosome:
    def test_average_is_complementary(self):
        a = DoubleChromosome(2, 0.0, 10.0, [0.0, 0.0])
        b = DoubleChromosome(2, 0.0, 10.0, [4.0, 8.0])
        a.average(b, 0.25)
        np.testing.assert_allclose(a.genes, [3.0, 6.0])
        np.testing.assert_allclose(b.genes, [1.0, 2.0])

    def test_average_ratio_one_keeps_parents(self):
        a = DoubleChromosome(1, 0.0, 10.0, [2.0])
        b = DoubleChromosome(1, 0.0, 10.0, [7.0])
        a.average(b, 1.0)
        assert a[0] == 2.0
        assert b[0] == 7.0

    def test_owa_orders_genes_before_mixing(self):
        a = DoubleChromosome(2, 0.0, 10.0, [5.0, 0.0])
        b = DoubleChromosome(2, 0.0, 10.0, [1.0, 4.0])
        a.owa(b, 0.25)
        np.testing.assert_allclose(a.genes, [4.0, 3.0])
        np.testing.assert_allclose(b.genes, [2.0, 1.0])

    def test_clip(self):
        c = DoubleChromosome(2, 0.0, 1.0)
        c.genes[:] = [-0.5, 1.5]
        c.clip()
        np.testing.assert_array_equal(c.genes, [0.0, 1.0])

    def test_randomize_within_bounds(self, rng):
        c = DoubleChromosome(100, -1.0, 1.0)
        c.randomize(rng)
        assert c.genes.min() >= -1.0
        assert c.genes.max() <= 1.0


class TestBitwiseChromosome:
    def test_encode_and_decode_bytes(self):
        c = BitwiseChromosome(3, ByteCoding(), [0, 255, 17])
        assert len(c) == 24
        assert c.values() == [0, 255, 17]
        assert c.to_list()[8:16] == [1] * 8

    def test_out_of_range_value_rejected(self):
        c = BitwiseChromosome(1, ByteCoding())
        with pytest.raises(ConfigurationError):
            c.encode(0, 256)

    def test_bit_values_only(self):
        c = BitwiseChromosome(1, ByteCoding())
        with pytest.raises(ConfigurationError):
            c[0] = 2

    def test_gray_coded_values(self):
        c = BitwiseChromosome(2, GrayCoding(4), [5, 9])
        assert c.values() == [5, 9]
        # gray(5) = 0b0111
        assert c.to_list()[:4] == [0, 1, 1, 1]

    def test_value_index_out_of_range(self):
        c = BitwiseChromosome(2, ByteCoding())
        with pytest.raises(IndexError):
            c.decode(2)


class TestPermutationChromosome:
    def test_defaults_to_identity(self):
        c = PermutationChromosome(5)
        assert c.to_list() == [0, 1, 2, 3, 4]

    def test_rejects_non_permutation(self):
        with pytest.raises(ConfigurationError):
            PermutationChromosome(3, [0, 0, 1])

    def test_setitem_swaps_to_keep_permutation(self):
        c = PermutationChromosome(4)
        c[0] = 3
        assert c.to_list() == [3, 1, 2, 0]
        assert c.position_of(3) == 0
        assert _is_permutation(c)

    def test_randomize_keeps_permutation(self, rng):
        c = PermutationChromosome(30)
        c.randomize(rng)
        assert _is_permutation(c)
        c.randomize_at(4, rng)
        assert _is_permutation(c)

    def test_cross_keeps_both_permutations(self, rng):
        a, b = PermutationChromosome(10), PermutationChromosome(10)
        a.randomize(rng)
        b.randomize(rng)
        a.cross(b, 3, 7)
        assert _is_permutation(a)
        assert _is_permutation(b)


class TestObjectChromosome:
    @pytest.fixture
    def alleles(self):
        return [GenericAlleleSet(["a", "b"]), GenericAlleleSet.from_range(1, 3)]

    def test_values_restricted_to_allele_set(self, alleles):
        c = ObjectChromosome(alleles, ["b", 2])
        assert c.to_list() == ["b", 2]
        with pytest.raises(ConfigurationError):
            c[1] = 7

    def test_randomize_draws_from_each_set(self, alleles, rng):
        c = ObjectChromosome(alleles)
        for _ in range(20):
            c.randomize(rng)
            assert c[0] in ("a", "b")
            assert c[1] in (1, 2, 3)

    def test_difference_mixes_numeric_and_symbolic(self, alleles):
        a = ObjectChromosome(alleles, ["a", 1])
        b = ObjectChromosome(alleles, ["b", 3])
        np.testing.assert_array_equal(a.difference(b), [1.0, -2.0])

    def test_empty_allele_set_rejected(self):
        with pytest.raises(ConfigurationError):
            GenericAlleleSet([])
