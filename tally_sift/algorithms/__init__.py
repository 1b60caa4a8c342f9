"""
Algorithm implementations for TallySift.
"""

from tally_sift.algorithms.countmin import CountMinSketch, TopKEntry
from tally_sift.algorithms.hyperloglog import HyperLogLog
from tally_sift.algorithms.minheap import MinHeap

__all__ = [
    "HyperLogLog",
    "CountMinSketch",
    "TopKEntry",
    "MinHeap",
]
