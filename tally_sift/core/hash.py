"""
Hashing functions for TallySift.

This module provides the 32-bit FNV-1a hash used to map keys onto registers
and buckets, and the multiply-shift family used to derive independent bucket
indexes from a single hash value. Both are pure integer arithmetic modulo
2^32, optimized for distribution quality rather than cryptographic security.
"""

from typing import Any

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619

_MASK_32 = 0xFFFFFFFF


def _key_bytes(key: Any) -> bytes:
    if isinstance(key, bytes):
        return key
    if not isinstance(key, str):
        key = str(key)
    return key.encode("utf-8")


def fnv1a_32(key: Any) -> int:
    """
    Pure Python implementation of FNV-1a hash (32-bit variant).

    Each byte is XORed into the accumulator, which is then multiplied by the
    FNV prime. The multiplication is expressed as the shift-and-add identity
    ``x*p = x + x<<1 + x<<4 + x<<7 + x<<8 + x<<24``, reduced modulo 2^32.

    Args:
        key: The key to hash. Strings are hashed over their UTF-8 encoding,
             bytes are hashed as is, anything else is converted with str().

    Returns:
        Unsigned 32-bit hash value.
    """
    h = FNV_OFFSET_BASIS

    for byte in _key_bytes(key):
        h ^= byte
        h = (h + (h << 1) + (h << 4) + (h << 7) + (h << 8) + (h << 24)) & _MASK_32

    return h


def multiply_shift(m: int, a: int, x: int) -> int:
    """
    Map a 32-bit value to one of 2^m buckets with multiply-shift hashing.

    Args:
        m: Number of output bits (log2 of the bucket count), 0 to 32.
        a: Odd multiplier selecting the hash function from the family.
        x: The 32-bit value to hash.

    Returns:
        The bucket index, in [0, 2^m).
    """
    return ((a * x) & _MASK_32) >> (32 - m)
