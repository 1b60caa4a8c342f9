"""
Factory and sizing helpers for TallySift.

The factories build sketches with sensible defaults for the two common web
analytics questions: how many unique visitors, and which items are viewed the
most. The sizing helpers compute the serialized size of a sketch from its
error parameters without constructing one.
"""

import math

from tally_sift.algorithms.countmin import CountMinSketch
from tally_sift.algorithms.hyperloglog import HyperLogLog
from tally_sift.core.errors import DomainError

DEFAULT_STD_ERROR = 0.01
DEFAULT_ERR_FACTOR = 0.002
DEFAULT_FAIL_RATE = 0.0001


def _check_unit_interval(name: str, value: float) -> None:
    if not 0 < value < 1:
        raise DomainError(f"{name} must be between 0 and 1 (exclusive)")


def create_uniques_counter(std_error: float = DEFAULT_STD_ERROR) -> HyperLogLog:
    """
    Create a HyperLogLog for counting unique IDs, such as unique visitors.

    Args:
        std_error: Acceptable standard error in (0, 1). Controls the
                   accuracy / memory tradeoff.
    """
    return HyperLogLog(std_error)


def create_views_counter(
    top_entry_count: int,
    err_factor: float = DEFAULT_ERR_FACTOR,
    fail_rate: float = DEFAULT_FAIL_RATE,
) -> CountMinSketch:
    """
    Create a Count-Min Sketch for tracking the most viewed IDs.

    Args:
        top_entry_count: Maximum number of entries returned by get_top_k().
        err_factor: Relative error of the returned counts, in (0, 1).
        fail_rate: Probability that a count exceeds the error bound, in (0, 1).
    """
    return CountMinSketch(top_entry_count, err_factor, fail_rate)


def get_uniques_obj_size(std_error: float) -> int:
    """
    Return the serialized size in bytes of a uniques counter.

    Args:
        std_error: Standard error the counter would be created with.
    """
    _check_unit_interval("Standard error", std_error)

    accuracy = 1.04 / std_error
    index_bits = math.ceil(math.log2(accuracy * accuracy))
    return 12 + (1 << index_bits) * 4


def get_views_obj_size(err_factor: float, fail_rate: float) -> int:
    """
    Return the serialized size in bytes of an empty views counter.

    Each tracked entry adds ``5 + len(key.encode("utf-8"))`` bytes on top of
    this figure.

    Args:
        err_factor: Relative error the counter would be created with.
        fail_rate: Failure probability the counter would be created with.
    """
    _check_unit_interval("Error factor", err_factor)
    _check_unit_interval("Failure rate", fail_rate)

    depth = max(math.ceil(math.log(1.0 / fail_rate)), 1)
    width = 1 << (math.ceil(math.e / err_factor) - 1).bit_length()

    # header, counters, coefficient count and values, entry count
    return 12 + depth * width * 4 + 4 + depth * 4 + 4
