"""Tests for bit codings."""

from __future__ import annotations

import pytest

from ga_stage.exceptions import ConfigurationError
from ga_stage.ga.codings import (
    BooleanCoding,
    ByteCoding,
    GrayCoding,
    IntCoding,
    ShortCoding,
    SignMode,
    WordCoding,
)


class TestUnsignedCodings:
    def test_boolean(self):
        coding = BooleanCoding()
        assert coding.bits == 1
        assert coding.encode(True) == 1
        assert coding.decode(0) is False

    def test_byte_range(self):
        coding = ByteCoding()
        assert coding.encode(255) == 255
        with pytest.raises(ConfigurationError):
            coding.encode(-1)
        with pytest.raises(ConfigurationError):
            coding.encode(256)

    def test_word_range(self):
        coding = WordCoding()
        assert coding.decode(coding.encode(65535)) == 65535
        with pytest.raises(ConfigurationError):
            coding.encode(65536)


class TestSignedCodings:
    def test_twos_complement(self):
        coding = ShortCoding()
        assert coding.encode(-1) == 0xFFFF
        assert coding.encode(-32768) == 0x8000
        assert coding.decode(0xFFFF) == -1
        assert coding.decode(0x7FFF) == 32767

    def test_twos_complement_range(self):
        with pytest.raises(ConfigurationError):
            ShortCoding().encode(32768)

    def test_module_and_sign(self):
        coding = ShortCoding(SignMode.MODULE_AND_SIGN)
        assert coding.encode(-5) == 0x8005
        assert coding.decode(0x8005) == -5
        assert coding.decode(0x0005) == 5
        with pytest.raises(ConfigurationError):
            coding.encode(-32768)

    @pytest.mark.parametrize("value", [-(2**31), -123456, 0, 987654, 2**31 - 1])
    def test_int_values_survive_encoding(self, value):
        coding = IntCoding()
        assert coding.decode(coding.encode(value)) == value


class TestGrayCoding:
    def test_known_codes(self):
        coding = GrayCoding(4)
        assert [coding.encode(v) for v in range(5)] == [0, 1, 3, 2, 6]

    def test_neighbours_differ_by_one_bit(self):
        coding = GrayCoding(8)
        for v in range(255):
            changed = coding.encode(v) ^ coding.encode(v + 1)
            assert bin(changed).count("1") == 1

    def test_decode_inverts_encode(self):
        coding = GrayCoding(8)
        assert [coding.decode(coding.encode(v)) for v in (0, 7, 128, 255)] == [0, 7, 128, 255]

    def test_width_limit(self):
        with pytest.raises(ConfigurationError):
            GrayCoding(4).encode(16)
