"""
tally-sift - Probabilistic counters for unbounded streams

tally-sift is a Python library for estimating distinct counts and top item
frequencies in data streams with a fixed memory footprint, using HyperLogLog
and a Count-Min Sketch with top-K tracking. Both serialize to compact binary
buffers so partial results can be stored or shipped between processes.
"""

import logging

__version__ = "0.1.0"

# Import main classes to make them available at the top level
from tally_sift.algorithms.countmin import CountMinSketch
from tally_sift.algorithms.hyperloglog import HyperLogLog
from tally_sift.algorithms.minheap import MinHeap
from tally_sift.core.errors import (
    DomainError,
    EmptyHeapError,
    FormatError,
    SizeMismatchError,
    TallySiftError,
)
from tally_sift.core.hash import fnv1a_32, multiply_shift
from tally_sift.core.prng import PRNG
from tally_sift.sizing import (
    create_uniques_counter,
    create_views_counter,
    get_uniques_obj_size,
    get_views_obj_size,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Algorithm implementations
    "HyperLogLog",
    "CountMinSketch",
    "MinHeap",
    # Primitives
    "fnv1a_32",
    "multiply_shift",
    "PRNG",
    # Factories and sizing
    "create_uniques_counter",
    "create_views_counter",
    "get_uniques_obj_size",
    "get_views_obj_size",
    # Errors
    "TallySiftError",
    "DomainError",
    "SizeMismatchError",
    "FormatError",
    "EmptyHeapError",
]
