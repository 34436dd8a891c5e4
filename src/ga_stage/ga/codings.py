"""Fixed-width bit codings used by BitwiseChromosome."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from ga_stage.exceptions import ConfigurationError


class BitCoding(ABC):
    """Maps a value to an unsigned bit pattern of ``bits`` width and back."""

    def __init__(self, bits: int) -> None:
        self.bits = bits
        self.mask = (1 << bits) - 1

    @abstractmethod
    def encode(self, value: Any) -> int:
        """Return the bit pattern for ``value``; raise on out-of-range values."""

    @abstractmethod
    def decode(self, bits: int) -> Any:
        """Return the value represented by the low ``self.bits`` of ``bits``."""

    def _check_range(self, value: int, low: int, high: int) -> None:
        if value < low or value > high:
            raise ConfigurationError(
                f"{type(self).__name__} cannot encode {value}",
                {"min": low, "max": high},
            )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(bits={self.bits})"


class BooleanCoding(BitCoding):
    def __init__(self) -> None:
        super().__init__(1)

    def encode(self, value: Any) -> int:
        return 1 if value else 0

    def decode(self, bits: int) -> bool:
        return bool(bits & 1)


class ByteCoding(BitCoding):
    """Unsigned 8-bit values in ``[0, 255]``."""

    def __init__(self) -> None:
        super().__init__(8)

    def encode(self, value: int) -> int:
        self._check_range(value, 0, 0xFF)
        return int(value)

    def decode(self, bits: int) -> int:
        return bits & self.mask


class WordCoding(BitCoding):
    """Unsigned 16-bit values in ``[0, 65535]``."""

    def __init__(self) -> None:
        super().__init__(16)

    def encode(self, value: int) -> int:
        self._check_range(value, 0, 0xFFFF)
        return int(value)

    def decode(self, bits: int) -> int:
        return bits & self.mask


class SignMode(str, Enum):
    TWOS_COMPLEMENT = "twos_complement"
    MODULE_AND_SIGN = "module_and_sign"


class _SignedCoding(BitCoding):
    def __init__(self, bits: int, mode: SignMode = SignMode.TWOS_COMPLEMENT) -> None:
        super().__init__(bits)
        self.mode = mode
        self._sign_bit = 1 << (bits - 1)

    def encode(self, value: int) -> int:
        high = self._sign_bit - 1
        low = -self._sign_bit if self.mode == SignMode.TWOS_COMPLEMENT else -high
        self._check_range(value, low, high)
        value = int(value)
        if value >= 0:
            return value
        if self.mode == SignMode.TWOS_COMPLEMENT:
            return value & self.mask
        return self._sign_bit | -value

    def decode(self, bits: int) -> int:
        bits &= self.mask
        magnitude = bits & ~self._sign_bit
        if not bits & self._sign_bit:
            return magnitude
        if self.mode == SignMode.TWOS_COMPLEMENT:
            return magnitude - self._sign_bit
        return -magnitude


class ShortCoding(_SignedCoding):
    """Signed 16-bit values, two's complement or module-and-sign."""

    def __init__(self, mode: SignMode = SignMode.TWOS_COMPLEMENT) -> None:
        super().__init__(16, mode)


class IntCoding(_SignedCoding):
    """Signed 32-bit values."""

    def __init__(self, mode: SignMode = SignMode.TWOS_COMPLEMENT) -> None:
        super().__init__(32, mode)


class GrayCoding(BitCoding):
    """Reflected binary code: neighbouring integers differ by a single bit."""

    def __init__(self, bits: int = 32) -> None:
        super().__init__(bits)

    def encode(self, value: int) -> int:
        self._check_range(value, 0, self.mask)
        value = int(value)
        return value ^ (value >> 1)

    def decode(self, bits: int) -> int:
        value = bits & self.mask
        shift = value >> 1
        while shift:
            value ^= shift
            shift >>= 1
        return value
