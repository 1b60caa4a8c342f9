"""
Deterministic pseudorandom number generation for TallySift.

Sketches draw their hash-function coefficients from this generator once, at
construction time. Two sketches built with the same seed therefore assign
keys to identical buckets, which makes results reproducible across processes
and machines. The generator is not suitable for cryptographic use.
"""

from typing import Iterator

_MASK_32 = 0xFFFFFFFF

# xorshift32 never leaves the all-zero state, so a zero seed is remapped.
_ZERO_SEED_REPLACEMENT = 0x9E3779B9


class PRNG:
    """
    Marsaglia xorshift32 generator.

    Produces a deterministic sequence of 32-bit integers (and floats in
    [0, 1) derived from them) from an integer seed.

    References:
        - Marsaglia, G. (2003). Xorshift RNGs. Journal of Statistical
          Software, 8(14), 1-6.
    """

    __slots__ = ["_seed", "_state"]

    def __init__(self, seed: int = 1):
        """
        Initialize a new generator.

        Args:
            seed: Integer seed. Only the low 32 bits are used.
        """
        self._seed = seed
        state = seed & _MASK_32
        self._state = state if state != 0 else _ZERO_SEED_REPLACEMENT

    @property
    def seed(self) -> int:
        """The seed this generator was created with."""
        return self._seed

    def next_uint32(self) -> int:
        """Advance the generator and return the new 32-bit state."""
        x = self._state
        x ^= (x << 13) & _MASK_32
        x ^= x >> 17
        x ^= (x << 5) & _MASK_32
        self._state = x
        return x

    def random(self) -> float:
        """Return the next float in the range [0, 1)."""
        return self.next_uint32() / 4294967296.0

    def __iter__(self) -> Iterator[float]:
        while True:
            yield self.random()

    def __repr__(self) -> str:
        return f"PRNG(seed={self._seed})"
