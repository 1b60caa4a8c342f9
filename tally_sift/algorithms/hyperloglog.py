"""
HyperLogLog implementation for TallySift.

HyperLogLog estimates the number of distinct keys in a stream with a fixed
array of small registers. This implementation sizes itself from a target
standard error, hashes keys with 32-bit FNV-1a, applies the small- and
large-range corrections from the original paper, and serializes to a fixed
little-endian layout:

    uint32 k_comp | float64 alpha_m | uint32 register[0] ... register[m-1]

References:
    - Flajolet, P., Fusy, E., Gandouet, O., & Meunier, F. (2007).
      HyperLogLog: the analysis of a near-optimal cardinality estimation algorithm.
"""

import array
import logging
import math
import struct
import sys
from typing import Any, Dict, List, Optional, TypeVar, Union

from tally_sift.core.base import CardinalityEstimator
from tally_sift.core.binary import Buffer, BinaryReader, check_range, pack_uint32_array
from tally_sift.core.errors import DomainError, FormatError, SizeMismatchError
from tally_sift.core.hash import fnv1a_32

logger = logging.getLogger(__name__)

T = TypeVar("T")  # Type for the items being processed

_POW_2_32 = 4294967296.0
_HEADER = struct.Struct("<Id")


def _alpha(m: int) -> float:
    """Bias-correction constant for m registers."""
    if m == 16:
        return 0.673
    if m == 32:
        return 0.697
    if m == 64:
        return 0.709
    return 0.7213 / (1.0 + 1.079 / m)


def _rank(hash_value: int, max_bits: int) -> int:
    """
    1-based position of the lowest set bit among the low ``max_bits`` bits.

    Returns ``max_bits + 1`` when all of those bits are zero.
    """
    low_bits = hash_value & ((1 << max_bits) - 1)
    if low_bits == 0:
        return max_bits + 1
    return (low_bits & -low_bits).bit_length()


class HyperLogLog(CardinalityEstimator[T]):
    """
    HyperLogLog for cardinality estimation in data streams.

    The top ``k`` bits of each key's hash select one of ``m = 2^k`` registers,
    and the register keeps the largest rank (position of the lowest set bit
    in the remaining ``32 - k`` bits) seen so far. The harmonic mean of
    ``2^-register`` across all registers yields the estimate.

    The standard error is roughly 1.04/sqrt(m):
    - std_error=0.05: 512 registers
    - std_error=0.01: 16384 registers (default)
    - std_error=0.005: 65536 registers

    Adding a key is idempotent and order-independent, and merging two sketches
    is the element-wise maximum of their registers, so partial sketches built
    on separate shards combine without double counting.
    """

    # Largest supported number of register index bits (2^24 registers)
    MAX_INDEX_BITS = 24

    def __init__(self, std_error: float = 0.01):
        """
        Initialize a new HyperLogLog estimator.

        Args:
            std_error: Target standard error, strictly between 0 and 1.
                       Smaller values use more registers.

        Raises:
            DomainError: If std_error is outside (0, 1) or needs more than
                         2^MAX_INDEX_BITS registers.
        """
        super().__init__()

        if not 0 < std_error < 1:
            raise DomainError("Standard error must be between 0 and 1 (exclusive)")

        # From the original paper, std_error = 1.04/sqrt(m)
        accuracy = 1.04 / std_error
        index_bits = math.ceil(math.log2(accuracy * accuracy))
        if index_bits > self.MAX_INDEX_BITS:
            raise DomainError(
                f"Standard error {std_error} needs 2^{index_bits} registers; "
                f"the maximum is 2^{self.MAX_INDEX_BITS}"
            )

        m = 1 << index_bits
        self._init_state(32 - index_bits, _alpha(m), array.array("B", [0] * m))

        logger.debug(
            "Created HyperLogLog with %d registers for std_error=%s", m, std_error
        )

    def _init_state(self, k_comp: int, alpha: float, registers: array.array) -> None:
        self._k_comp = k_comp
        self._alpha = alpha
        self._registers = registers
        self._m = len(registers)

    @classmethod
    def _from_state(
        cls, k_comp: int, alpha: float, registers: array.array
    ) -> "HyperLogLog[T]":
        estimator = cls.__new__(cls)
        super(HyperLogLog, estimator).__init__()
        estimator._init_state(k_comp, alpha, registers)
        return estimator

    @property
    def num_registers(self) -> int:
        """Number of registers (m)."""
        return self._m

    @property
    def k_comp(self) -> int:
        """Number of low hash bits used to compute ranks."""
        return self._k_comp

    @property
    def alpha(self) -> float:
        """Bias-correction constant alpha_m."""
        return self._alpha

    def add(self, key: Any) -> None:
        """
        Add a key to the set.

        Args:
            key: The key to add. Non-string keys are converted with str().
        """
        self._items_processed += 1

        hash_value = fnv1a_32(key)

        # The k left-most bits select the register
        index = hash_value >> self._k_comp
        rank = _rank(hash_value, self._k_comp)

        if rank > self._registers[index]:
            self._registers[index] = rank

    def update(self, item: T) -> None:
        """
        Update the estimator with a new item from the stream.

        Equivalent to add().
        """
        self.add(item)

    def count(self) -> float:
        """
        Estimate the number of distinct keys added.

        Returns:
            The bias-corrected cardinality estimate as a float.
        """
        m = self._m

        sum_of_inverses = 0.0
        zero_registers = 0
        for register_value in self._registers:
            sum_of_inverses += 2.0 ** -register_value
            if register_value == 0:
                zero_registers += 1

        # Raw estimate: alpha * m^2 / sum(2^(-M[j]))
        estimate = self._alpha * m * m / sum_of_inverses

        if estimate <= 2.5 * m:
            # Small range correction, linear counting over empty registers
            if zero_registers > 0:
                estimate = m * math.log(m / zero_registers)
        elif estimate > _POW_2_32 / 30.0:
            # Large range correction for hash collisions near 2^32
            estimate = -_POW_2_32 * math.log(1.0 - estimate / _POW_2_32)

        return estimate

    def query(self, *args: Any, **kwargs: Any) -> int:
        """
        Query the current state of the HyperLogLog estimator.

        This is a convenience method that calls estimate_cardinality.
        """
        return self.estimate_cardinality()

    def estimate_cardinality(self) -> int:
        """Return count() rounded to the nearest integer."""
        return int(round(self.count()))

    def merge(self, other: "HyperLogLog[T]") -> "HyperLogLog[T]":
        """
        Merge another HyperLogLog of the same size into this one.

        Each register becomes the maximum of the two. The operation is
        commutative, associative and idempotent on the registers.
        ``items_processed`` counts raw stream items, so merging a separate
        estimator adds its count; merging an estimator into itself is a no-op.

        Args:
            other: Another HyperLogLog estimator.

        Returns:
            This estimator, for chaining.

        Raises:
            TypeError: If other is not a HyperLogLog.
            SizeMismatchError: If the estimators have different register counts.
        """
        self._check_same_type(other)

        if other._m != self._m:
            raise SizeMismatchError(
                f"Cannot merge HyperLogLog estimators of different size: "
                f"{self._m} and {other._m} registers"
            )

        if other is self:
            return self

        registers = self._registers
        for i, value in enumerate(other._registers):
            if value > registers[i]:
                registers[i] = value

        self._items_processed += other._items_processed

        logger.debug("Merged HyperLogLog with %d registers", self._m)
        return self

    def serialize(self) -> bytes:
        """
        Serialize the estimator to its binary layout.

        Returns:
            ``12 + 4*m`` bytes: k_comp, alpha_m, then every register.
        """
        return _HEADER.pack(self._k_comp, self._alpha) + pack_uint32_array(
            self._registers
        )

    def serialized_size(self) -> int:
        return _HEADER.size + 4 * self._m

    @classmethod
    def deserialize(
        cls, data: Buffer, start: int = 0, length: Optional[int] = None
    ) -> "HyperLogLog[T]":
        """
        Reconstruct a HyperLogLog estimator from its binary layout.

        Args:
            data: Buffer holding the serialized estimator.
            start: Offset of the estimator within the buffer.
            length: Length of the serialized estimator. None means the rest
                    of the buffer.

        Returns:
            A new HyperLogLog estimator.

        Raises:
            FormatError: If the range does not fit the buffer, the length is
                         not 12 + 4*m, or the header and registers disagree.
        """
        view = check_range(data, start, length)

        body_length = len(view) - _HEADER.size
        if body_length < 0 or body_length % 4 != 0:
            raise FormatError(
                f"HyperLogLog data must be 12 + 4*m bytes long, got {len(view)}"
            )

        m = body_length // 4
        if m == 0 or m & (m - 1) != 0:
            raise FormatError(f"Register count {m} is not a power of two")

        reader = BinaryReader(view)
        k_comp = reader.read_uint32()
        alpha = reader.read_float64()

        if k_comp != 32 - (m.bit_length() - 1):
            raise FormatError(
                f"k_comp {k_comp} does not match a register count of {m}"
            )

        values = reader.read_uint32_array(m)
        max_rank = k_comp + 1
        if any(value > max_rank for value in values):
            raise FormatError(f"Register value exceeds the maximum rank {max_rank}")

        logger.debug("Deserialized HyperLogLog with %d registers", m)
        return cls._from_state(k_comp, alpha, array.array("B", values))

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the HyperLogLog estimator to a dictionary for serialization.

        Returns:
            A dictionary representation of the estimator.
        """
        data = self._base_dict()
        data.update(
            {
                "k_comp": self._k_comp,
                "alpha": self._alpha,
                "registers": list(self._registers),
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HyperLogLog[T]":
        """
        Create a HyperLogLog estimator from a dictionary representation.

        Args:
            data: The dictionary containing the estimator state.

        Returns:
            A new HyperLogLog estimator.
        """
        estimator = cls._from_state(
            data["k_comp"], data["alpha"], array.array("B", data["registers"])
        )
        estimator._items_processed = data.get("items_processed", 0)
        return estimator

    def get_register_values(self) -> List[int]:
        """
        Get the current values of all registers.

        Returns:
            A list copy of the registers, in index order.
        """
        return list(self._registers)

    def error_bounds(self) -> Dict[str, Union[str, float]]:
        """
        Calculate the theoretical error bounds for this estimator.

        Returns:
            A dictionary with the error bounds:
            - relative_error: The standard error (approximately 1.04/sqrt(m))
            - confidence_68pct: Error range for 68% confidence (1 sigma)
            - confidence_95pct: Error range for 95% confidence (2 sigma)
            - confidence_99pct: Error range for 99% confidence (3 sigma)
        """
        bounds = super().error_bounds()

        std_error = 1.04 / math.sqrt(self._m)
        bounds.update(
            {
                "relative_error": std_error,
                "confidence_68pct": std_error,
                "confidence_95pct": std_error * 1.96,
                "confidence_99pct": std_error * 2.58,
            }
        )

        return bounds

    def get_stats(self) -> Dict[str, Any]:
        """
        Get detailed statistics about the current state of the estimator.

        Returns:
            A dictionary containing register statistics in addition to the
            base statistics.
        """
        stats = super().get_stats()

        register_values = list(self._registers)
        empty_registers = register_values.count(0)
        stats.update(
            {
                "num_registers": self._m,
                "k_comp": self._k_comp,
                "alpha_value": self._alpha,
                "empty_registers": empty_registers,
                "empty_registers_pct": (empty_registers / self._m) * 100,
                "max_register_value": max(register_values),
            }
        )

        return stats

    def estimate_size(self) -> int:
        """
        Estimate the current memory usage of the HyperLogLog in bytes.

        Returns:
            Estimated size in bytes.
        """
        size = super().estimate_size()
        size += sys.getsizeof(self._registers)
        return size

    def __repr__(self) -> str:
        return f"HyperLogLog(num_registers={self._m}, count~{self.count():.0f})"
