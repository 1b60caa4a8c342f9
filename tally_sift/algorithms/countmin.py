"""
Count-Min Sketch implementation for TallySift.

This module provides a Count-Min Sketch with conservative update and bounded
top-K tracking. It estimates how often each key occurs in a stream and keeps
the ``max_entries`` keys with the highest estimates.

The Count-Min Sketch provides the following guarantees:
1. Space Complexity: O(width * depth)
2. Update Time: O(depth + log max_entries)
3. Error Bound: estimates never undercount, and with probability at least
   1-delta they overcount by at most epsilon * N, where N is the sum of all
   increments.

The binary layout is little-endian throughout:

    uint32 lg_width | uint32 depth | uint32 width
    uint32 counts[depth * width]            (row-major)
    uint32 coeff_count | uint32 coeffs[coeff_count]
    uint32 entry_count | entry_count * (uint32 count | uint8 key_len | key_len bytes UTF-8 key)

References:
    - Cormode, G., & Muthukrishnan, S. (2005). An improved data stream summary:
      The count-min sketch and its applications. Journal of Algorithms, 55(1), 58-75.
    - Estan, C., & Varghese, G. (2002). New directions in traffic measurement
      and accounting (conservative update).
"""

import array
import logging
import math
import struct
import sys
from typing import Any, Dict, List, Optional, Tuple

from tally_sift.algorithms.minheap import MinHeap
from tally_sift.core.base import FrequencyEstimator
from tally_sift.core.binary import (
    UINT32_MAX,
    Buffer,
    BinaryReader,
    check_range,
    pack_uint32_array,
)
from tally_sift.core.errors import DomainError, FormatError
from tally_sift.core.hash import fnv1a_32, multiply_shift
from tally_sift.core.prng import PRNG

logger = logging.getLogger(__name__)

_HEADER = struct.Struct("<III")
_ENTRY_HEADER = struct.Struct("<IB")
_MAX_KEY_BYTES = 0xFF


class TopKEntry:
    """
    A tracked (count, key) pair in the top-K heap.

    Entries are mutable so a tracked key's count can be raised in place and
    its heap slot re-sifted.
    """

    __slots__ = ["count", "key"]

    def __init__(self, count: int, key: str):
        self.count = count
        self.key = key

    def as_tuple(self) -> Tuple[int, str]:
        return (self.count, self.key)

    def __repr__(self) -> str:
        return f"TopKEntry(count={self.count}, key={self.key!r})"


def _compare_entries(a: TopKEntry, b: TopKEntry) -> int:
    return a.count - b.count


def _tracked_key(key: Any) -> str:
    """Text form of a key as stored in the top-K; hashes like the key itself."""
    if isinstance(key, str):
        return key
    if isinstance(key, bytes):
        try:
            return key.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DomainError(f"Bytes key {key!r} is not valid UTF-8") from exc
    return str(key)


def _random_odd_uint32(prng: PRNG) -> int:
    """Draw an odd integer in [1, 2^32) to parameterize one multiply-shift row."""
    return (int(prng.random() * 0x80000000) << 1) | 1


class CountMinSketch(FrequencyEstimator[str]):
    """
    Count-Min Sketch for frequency estimation with top-K tracking.

    Each key is hashed once with FNV-1a; each of the ``depth`` rows maps that
    hash to one of ``width`` buckets with its own multiply-shift coefficient.
    Increments use conservative update: only the buckets holding the current
    minimum estimate are raised, since larger buckets already include
    collisions from other keys.

    Alongside the counters the sketch keeps up to ``max_entries`` keys with
    the highest estimates in a min-heap. A dictionary maps each tracked key to
    its slot in the heap's backing list; the heap reports slot changes so the
    index stays current. Updating a tracked key re-sifts only its slot.

    References:
        - Cormode, G., & Muthukrishnan, S. (2005). An improved data stream summary:
          The count-min sketch and its applications. Journal of Algorithms, 55(1), 58-75.
    """

    # Seed for the coefficient generator. A fixed seed makes two sketches
    # with the same parameters hash keys to identical buckets.
    DEFAULT_SEED = 1

    def __init__(
        self,
        max_entries: int,
        epsilon: float,
        delta: float,
        seed: int = DEFAULT_SEED,
    ):
        """
        Initialize a new Count-Min Sketch.

        Args:
            max_entries: Maximum number of keys to track for get_top_k().
                         Zero disables tracking.
            epsilon: Relative error factor, strictly between 0 and 1.
                     Width is ceil(e/epsilon) rounded up to a power of two.
            delta: Probability of exceeding the error bound, strictly between
                   0 and 1. Depth is ceil(ln(1/delta)), at least 1.
            seed: Seed for drawing the hash coefficients.

        Raises:
            DomainError: If any parameter is outside its valid range.
        """
        super().__init__()

        if not isinstance(max_entries, int) or max_entries < 0:
            raise DomainError("max_entries must be a non-negative integer")
        if not 0 < epsilon < 1:
            raise DomainError("Epsilon must be between 0 and 1 (exclusive)")
        if not 0 < delta < 1:
            raise DomainError("Delta must be between 0 and 1 (exclusive)")

        depth = max(math.ceil(math.log(1.0 / delta)), 1)

        # Multiply-shift hashing needs a power-of-two number of buckets
        min_width = math.ceil(math.e / epsilon)
        lg_width = (min_width - 1).bit_length()
        width = 1 << lg_width

        prng = PRNG(seed)
        hash_coeffs = [_random_odd_uint32(prng) for _ in range(depth)]
        counts = [array.array("Q", [0] * width) for _ in range(depth)]

        self._init_state(lg_width, counts, hash_coeffs, [], max_entries)

        logger.debug(
            "Created CountMinSketch %dx%d tracking up to %d keys",
            depth,
            width,
            max_entries,
        )

    def _init_state(
        self,
        lg_width: int,
        counts: List[array.array],
        hash_coeffs: List[int],
        entries: List[TopKEntry],
        max_entries: int,
    ) -> None:
        self._lg_width = lg_width
        self._width = 1 << lg_width
        self._depth = len(counts)
        self._counts = counts
        self._hash_coeffs = hash_coeffs
        self._max_entries = max_entries

        # Key -> slot in the heap's backing list, kept current by _on_move
        self._positions: Dict[str, int] = {}
        self._heap: MinHeap[TopKEntry] = MinHeap(
            entries, comparator=_compare_entries, on_move=self._on_move
        )

    @classmethod
    def _from_state(
        cls,
        lg_width: int,
        counts: List[array.array],
        hash_coeffs: List[int],
        entries: List[TopKEntry],
        max_entries: int,
    ) -> "CountMinSketch":
        sketch = cls.__new__(cls)
        super(CountMinSketch, sketch).__init__()
        sketch._init_state(lg_width, counts, hash_coeffs, entries, max_entries)
        return sketch

    def _on_move(self, entry: TopKEntry, index: int) -> None:
        self._positions[entry.key] = index

    @property
    def width(self) -> int:
        """Number of buckets per row."""
        return self._width

    @property
    def depth(self) -> int:
        """Number of rows (hash functions)."""
        return self._depth

    @property
    def max_entries(self) -> int:
        """Maximum number of keys tracked by get_top_k()."""
        return self._max_entries

    @property
    def hash_coefficients(self) -> List[int]:
        """Copy of the per-row multiply-shift coefficients."""
        return list(self._hash_coeffs)

    def _buckets(self, key: Any) -> List[int]:
        x = fnv1a_32(key)
        return [multiply_shift(self._lg_width, a, x) for a in self._hash_coeffs]

    def increment(self, key: str, amount: int = 1) -> None:
        """
        Record ``amount`` observations of a key.

        Args:
            key: Key to increment. Bytes are tracked under their UTF-8
                 decoding, other non-string keys under str(key).
            amount: Number of observations to add (default 1).

        Raises:
            DomainError: If amount is negative or a bytes key is not
                         valid UTF-8.
        """
        if amount < 0:
            raise DomainError("Cannot increment by a negative amount")
        if amount == 0:
            return

        tracked_key = _tracked_key(key)
        self._items_processed += 1

        buckets = self._buckets(key)
        estimate = min(row[j] for row, j in zip(self._counts, buckets))
        new_count = estimate + amount

        # Conservative update: buckets above the minimum are already inflated
        # by collisions and are left alone
        for row, j in zip(self._counts, buckets):
            if row[j] == estimate:
                row[j] = new_count

        self._update_top_k(tracked_key, new_count)

    def update(self, item: str, count: int = 1) -> None:
        """
        Update the sketch with a new item from the stream.

        Equivalent to increment().
        """
        self.increment(item, count)

    def _update_top_k(self, key: str, count: int) -> None:
        index = self._positions.get(key)
        if index is not None:
            entry = self._heap[index]
            entry.count = count
            self._heap.restore(index)
            return

        if len(self._heap) < self._max_entries:
            self._heap.push(TopKEntry(count, key))
            return

        if self._max_entries == 0 or count <= self._heap.peek_min().count:
            return

        evicted = self._heap.pop()
        del self._positions[evicted.key]
        self._heap.push(TopKEntry(count, key))

        logger.debug(
            "Evicted %r (count %d) from top-K for %r (count %d)",
            evicted.key,
            evicted.count,
            key,
            count,
        )

    def estimate_frequency(self, item: Any) -> int:
        """
        Estimate the frequency of a key.

        Args:
            item: The key to look up.

        Returns:
            The minimum counter across the key's buckets. Never less than the
            key's true frequency.
        """
        buckets = self._buckets(item)
        return min(row[j] for row, j in zip(self._counts, buckets))

    def query(self, item: Any) -> int:
        """
        Query the sketch for a key's estimated frequency.

        This is a convenience method that calls estimate_frequency.
        """
        return self.estimate_frequency(item)

    def get_top_k(self) -> List[Tuple[int, str]]:
        """
        Get the tracked keys with the highest estimated counts.

        Returns:
            A snapshot list of (count, key) tuples sorted by count, highest
            first. Order among equal counts is unspecified.
        """
        entries = sorted(self._heap.items(), key=lambda entry: entry.count, reverse=True)
        return [entry.as_tuple() for entry in entries]

    def serialize(self) -> bytes:
        """
        Serialize the sketch to its binary layout.

        Returns:
            The serialized sketch.

        Raises:
            FormatError: If a counter exceeds 2^32-1 or a tracked key is longer
                         than 255 bytes in UTF-8.
        """
        parts = [_HEADER.pack(self._lg_width, self._depth, self._width)]

        for row in self._counts:
            parts.append(pack_uint32_array(row))

        parts.append(pack_uint32_array([len(self._hash_coeffs)] + self._hash_coeffs))

        entries = self._heap.items()
        parts.append(pack_uint32_array([len(entries)]))
        for entry in entries:
            key_bytes = entry.key.encode("utf-8")
            if len(key_bytes) > _MAX_KEY_BYTES:
                raise FormatError(
                    f"Key {entry.key!r} is {len(key_bytes)} bytes long; "
                    f"at most {_MAX_KEY_BYTES} can be serialized"
                )
            if entry.count > UINT32_MAX:
                raise FormatError(f"Count for key {entry.key!r} does not fit in 32 bits")
            parts.append(_ENTRY_HEADER.pack(entry.count, len(key_bytes)))
            parts.append(key_bytes)

        return b"".join(parts)

    def serialized_size(self) -> int:
        size = _HEADER.size + 4 * self._depth * self._width
        size += 4 + 4 * len(self._hash_coeffs)
        size += 4
        for entry in self._heap.items():
            size += _ENTRY_HEADER.size + len(entry.key.encode("utf-8"))
        return size

    @classmethod
    def deserialize(
        cls,
        data: Buffer,
        start: int = 0,
        length: Optional[int] = None,
        max_entries: Optional[int] = None,
    ) -> "CountMinSketch":
        """
        Reconstruct a Count-Min Sketch from its binary layout.

        The counters, coefficients and heap are restored verbatim and the
        key index is rebuilt from the restored heap.

        Args:
            data: Buffer holding the serialized sketch.
            start: Offset of the sketch within the buffer.
            length: Length of the serialized sketch. None means the rest of
                    the buffer.
            max_entries: Top-K capacity of the restored sketch. Defaults to
                         the number of restored entries.

        Returns:
            A new Count-Min Sketch.

        Raises:
            FormatError: If the range or the content is invalid.
            DomainError: If max_entries is smaller than the restored entry count.
        """
        reader = BinaryReader(check_range(data, start, length))

        lg_width = reader.read_uint32()
        depth = reader.read_uint32()
        width = reader.read_uint32()

        if lg_width > 32 or width != 1 << lg_width:
            raise FormatError(f"Width {width} does not equal 2^{lg_width}")
        if depth < 1:
            raise FormatError("Depth must be at least 1")
        if depth * width * 4 > reader.remaining:
            raise FormatError(
                f"Counter grid of {depth}x{width} does not fit in "
                f"{reader.remaining} remaining bytes"
            )

        counts = [array.array("Q", reader.read_uint32_array(width)) for _ in range(depth)]

        coeff_count = reader.read_uint32()
        if coeff_count != depth:
            raise FormatError(
                f"Expected {depth} hash coefficients, found {coeff_count}"
            )
        hash_coeffs = reader.read_uint32_array(coeff_count)

        entry_count = reader.read_uint32()
        entries = []
        seen = set()
        for _ in range(entry_count):
            count, key_length = _ENTRY_HEADER.unpack(reader.read_bytes(_ENTRY_HEADER.size))
            try:
                key = reader.read_bytes(key_length).decode("utf-8")
            except UnicodeDecodeError as exc:
                raise FormatError(f"Tracked key is not valid UTF-8: {exc}") from exc
            if key in seen:
                raise FormatError(f"Duplicate tracked key {key!r}")
            seen.add(key)
            entries.append(TopKEntry(count, key))

        if max_entries is None:
            max_entries = entry_count
        elif max_entries < entry_count:
            raise DomainError(
                f"max_entries {max_entries} is smaller than the {entry_count} "
                f"restored entries"
            )

        logger.debug(
            "Deserialized CountMinSketch %dx%d with %d tracked keys",
            depth,
            width,
            entry_count,
        )
        return cls._from_state(lg_width, counts, hash_coeffs, entries, max_entries)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the sketch to a dictionary for serialization.

        Returns:
            A dictionary representation of the sketch.
        """
        data = self._base_dict()
        data.update(
            {
                "lg_width": self._lg_width,
                "depth": self._depth,
                "width": self._width,
                "max_entries": self._max_entries,
                "hash_coeffs": list(self._hash_coeffs),
                "counts": [list(row) for row in self._counts],
                "top_k": [list(entry.as_tuple()) for entry in self._heap.items()],
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CountMinSketch":
        """
        Create a sketch from a dictionary representation.

        Args:
            data: The dictionary containing the sketch state.

        Returns:
            A new Count-Min Sketch initialized with the given state.
        """
        sketch = cls._from_state(
            data["lg_width"],
            [array.array("Q", row) for row in data["counts"]],
            list(data["hash_coeffs"]),
            [TopKEntry(count, key) for count, key in data["top_k"]],
            data["max_entries"],
        )
        sketch._items_processed = data.get("items_processed", 0)
        return sketch

    def error_bounds(self) -> Dict[str, float]:
        """
        Get the error bounds realized by the sketch dimensions.

        Returns:
            A dictionary with:
            - epsilon: e / width, the relative overestimation bound
            - delta: e^-depth, the probability of exceeding it
        """
        bounds = super().error_bounds()
        bounds.update(
            {
                "epsilon": math.e / self._width,
                "delta": math.exp(-self._depth),
            }
        )
        return bounds

    def get_stats(self) -> Dict[str, Any]:
        """
        Get detailed statistics about the current state of the sketch.

        Returns:
            A dictionary containing dimension and fill statistics in addition
            to the base statistics.
        """
        stats = super().get_stats()

        non_zero = sum(1 for row in self._counts for value in row if value)
        total_counters = self._depth * self._width
        stats.update(
            {
                "width": self._width,
                "depth": self._depth,
                "max_entries": self._max_entries,
                "non_zero_counters": non_zero,
                "fill_ratio": non_zero / total_counters,
                "max_counter": max(max(row) for row in self._counts),
            }
        )

        return stats

    def estimate_size(self) -> int:
        """
        Estimate the current memory usage of this sketch in bytes.

        Returns:
            Estimated memory usage in bytes.
        """
        size = super().estimate_size()
        size += sys.getsizeof(self._counts)
        size += sum(sys.getsizeof(row) for row in self._counts)
        size += sys.getsizeof(self._hash_coeffs)
        size += sys.getsizeof(self._positions)
        size += len(self._heap) * sys.getsizeof(TopKEntry(0, ""))
        return size

    def __repr__(self) -> str:
        return (
            f"CountMinSketch(depth={self._depth}, width={self._width}, "
            f"tracked={len(self._heap)}/{self._max_entries})"
        )
