"""
Core functionality for TallySift.
"""

from tally_sift.core.base import (
    CardinalityEstimator,
    FrequencyEstimator,
    StreamSummary,
)
from tally_sift.core.errors import (
    DomainError,
    EmptyHeapError,
    FormatError,
    SizeMismatchError,
    TallySiftError,
)
from tally_sift.core.hash import fnv1a_32, multiply_shift
from tally_sift.core.prng import PRNG

__all__ = [
    # Base classes
    "StreamSummary",
    "FrequencyEstimator",
    "CardinalityEstimator",
    # Errors
    "TallySiftError",
    "DomainError",
    "SizeMismatchError",
    "FormatError",
    "EmptyHeapError",
    # Utility functions
    "fnv1a_32",
    "multiply_shift",
    "PRNG",
]
