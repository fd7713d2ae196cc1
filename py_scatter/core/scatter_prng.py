"""
Seeded PRNG for the scatter engine.

Mulberry32 over a 32-bit state. Every scatter call owns its own instance,
so two calls never share a random stream.
"""

import math
from typing import Sequence, TypeVar

T = TypeVar("T")

_MASK = 0xFFFFFFFF


def _uint32(n):
    """Convert to unsigned 32-bit integer."""
    return int(n) & _MASK


def _imul(a, b):
    """32-bit integer multiply, low word only."""
    return (_uint32(a) * _uint32(b)) & _MASK


class ScatterPRNG:
    """
    Mulberry32 generator.

    Produces floats in [0, 1) from a 32-bit seed. Seeds outside the 32-bit
    range are wrapped, so negative seeds and large sums of seed + hash are
    both valid.
    """

    def __init__(self, seed: int):
        """Initialize with an integer seed."""
        self.seed = int(seed)
        self.call_count = 0
        self._state = _uint32(seed)

    def random(self) -> float:
        """Generate next random number in [0, 1)."""
        self.call_count += 1
        self._state = (self._state + 0x6D2B79F5) & _MASK
        v = self._state
        v = _imul(v ^ (v >> 15), v | 1)
        v ^= (v + _imul(v ^ (v >> 7), v | 61)) & _MASK
        return ((v ^ (v >> 14)) & _MASK) / 4294967296

    def __call__(self) -> float:
        return self.random()

    def uniform(self, low: float, high: float) -> float:
        """Uniform float in [low, high)."""
        return low + self.random() * (high - low)

    def gaussian(self) -> float:
        """Standard normal sample via the Box-Muller transform."""
        u = 0.0
        v = 0.0
        while u == 0.0:
            u = self.random()
        while v == 0.0:
            v = self.random()
        return math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)

    def choice(self, seq: Sequence[T]) -> T:
        """Choose a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[int(self.random() * len(seq))]

    def shuffle(self, items: list) -> None:
        """Fisher-Yates shuffle in place, walking from the end."""
        for i in range(len(items) - 1, 0, -1):
            j = int(self.random() * (i + 1))
            items[i], items[j] = items[j], items[i]

    def hex_id(self) -> str:
        """8 hex digit id drawn from this stream."""
        return format(int(self.random() * 0xFFFFFFFF), "08x")
