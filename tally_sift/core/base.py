"""
Base classes and interfaces for TallySift streaming algorithms.

This module defines the abstract base classes that the sketches implement to
provide a consistent interface across the library: updating with new items,
querying, a JSON-friendly dictionary form, and a compact binary form.
"""

import abc
import json
import sys
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar, Union

from tally_sift.core.binary import Buffer

T = TypeVar("T")  # Type for the items being processed
R = TypeVar("R")  # Type for the result of queries


class StreamSummary(Generic[T, R], abc.ABC):
    """
    Abstract base class for all streaming data structures.

    This class defines the common interface that all streaming algorithms must
    implement, including methods for updating with new items, querying results,
    and serialization to both a dictionary and a binary representation.
    """

    def __init__(self) -> None:
        """Initialize a new stream summary."""
        self._items_processed = 0

    @abc.abstractmethod
    def update(self, item: T) -> None:
        """
        Update the summary with a new item from the stream.

        Args:
            item: The new item to process.
        """
        self._items_processed += 1

    @abc.abstractmethod
    def query(self, *args: Any, **kwargs: Any) -> R:
        """
        Query the current state of the summary.

        The parameters and return value depend on the specific algorithm.
        """
        pass

    def _check_same_type(self, other: "StreamSummary[T, R]") -> None:
        """
        Helper method to check if another summary is of the same type.

        Args:
            other: Another stream summary to check.

        Raises:
            TypeError: If other is not of the same type.
        """
        if not isinstance(other, self.__class__):
            raise TypeError(f"Cannot merge with {other.__class__.__name__}")

    @abc.abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the summary to a dictionary for serialization.

        Returns:
            A dictionary representation of the summary.
        """
        pass

    def _base_dict(self) -> Dict[str, Any]:
        """
        Create a dictionary with base attributes common to all summaries.

        Returns:
            A dictionary with base attributes.
        """
        return {
            "type": self.__class__.__name__,
            "items_processed": self._items_processed,
        }

    @classmethod
    @abc.abstractmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StreamSummary[T, R]":
        """
        Create a summary from a dictionary representation.

        Args:
            data: The dictionary containing the summary state.

        Returns:
            A new stream summary initialized with the given state.
        """
        pass

    def to_json(self) -> str:
        """Serialize the dictionary form of the summary to a JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> "StreamSummary[T, R]":
        """Create a summary from a string produced by to_json()."""
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return cls.from_dict(json.loads(data))

    @abc.abstractmethod
    def serialize(self) -> bytes:
        """
        Serialize the summary to its fixed little-endian binary layout.

        Returns:
            The binary representation of the summary.
        """
        pass

    @abc.abstractmethod
    def serialized_size(self) -> int:
        """Return the length in bytes of what serialize() would produce."""
        pass

    @classmethod
    @abc.abstractmethod
    def deserialize(
        cls, data: Buffer, start: int = 0, length: Optional[int] = None
    ) -> "StreamSummary[T, R]":
        """
        Reconstruct a summary from its binary layout.

        Args:
            data: Buffer holding the serialized structure.
            start: Offset of the structure within the buffer.
            length: Length of the structure. None means the rest of the buffer.

        Returns:
            A new stream summary.

        Raises:
            FormatError: If the range or the content is invalid.
        """
        pass

    def estimate_size(self) -> int:
        """
        Estimate the current memory usage of this summary in bytes.

        This is a rough estimation of the in-memory footprint. Derived classes
        add the size of their own data structures.

        Returns:
            Estimated memory usage in bytes.
        """
        size = sys.getsizeof(self)

        if hasattr(self, "__dict__"):
            size += sys.getsizeof(self.__dict__)

        return size

    def error_bounds(self) -> Dict[str, float]:
        """
        Get the theoretical error bounds for this summary.

        Derived classes override this to describe their accuracy guarantees.
        The base implementation returns an empty dictionary.
        """
        return {}

    def get_stats(self) -> Dict[str, Any]:
        """
        Get detailed statistics about the current state of the summary.

        Derived classes should override this method to include their specific
        statistics while calling super().get_stats() to include base metrics.

        Returns:
            A dictionary containing various statistics about the summary state.
        """
        stats = {
            "type": self.__class__.__name__,
            "items_processed": self._items_processed,
            "memory_bytes": self.estimate_size(),
            "serialized_bytes": self.serialized_size(),
        }

        error_bounds = self.error_bounds()
        if error_bounds:
            stats.update(error_bounds)

        return stats

    @property
    def items_processed(self) -> int:
        """Get the total number of items processed by this summary."""
        return self._items_processed


class FrequencyEstimator(StreamSummary[T, float], abc.ABC):
    """
    Abstract base class for frequency estimation algorithms.

    Examples include Count-Min Sketch and variants.
    """

    @abc.abstractmethod
    def estimate_frequency(self, item: T) -> float:
        """
        Estimate the frequency of an item in the stream.

        Args:
            item: The item to estimate the frequency for.

        Returns:
            The estimated frequency of the item.
        """
        pass

    @abc.abstractmethod
    def get_top_k(self) -> List[Tuple[int, T]]:
        """
        Get the tracked most frequent items.

        Returns:
            A list of (count, item) tuples sorted by count, highest first.
        """
        pass

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the current state of the frequency estimator.

        Returns:
            A dictionary with frequency estimation specific statistics.
        """
        stats = super().get_stats()

        top_k = self.get_top_k()
        stats["tracked_items"] = len(top_k)
        if top_k:
            stats["top_count"] = top_k[0][0]
            stats["min_tracked_count"] = top_k[-1][0]

        return stats


class CardinalityEstimator(StreamSummary[T, int], abc.ABC):
    """
    Abstract base class for cardinality estimation algorithms.

    Examples include HyperLogLog and variants.
    """

    @abc.abstractmethod
    def estimate_cardinality(self) -> int:
        """
        Estimate the number of unique items in the stream.

        Returns:
            The estimated cardinality.
        """
        pass

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the current state of the cardinality estimator.

        Returns:
            A dictionary with cardinality estimation specific statistics.
        """
        stats = super().get_stats()

        stats["estimated_cardinality"] = self.estimate_cardinality()

        return stats
