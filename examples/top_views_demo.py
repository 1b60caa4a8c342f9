"""
Top viewed items example for TallySift.

This example demonstrates how to track the most viewed videos in a skewed
stream with a Count-Min Sketch, and how a checkpointed sketch picks up where
it left off.
"""

import logging
import random
from collections import Counter

from tally_sift import CountMinSketch, create_views_counter, get_views_obj_size


def demonstrate_top_views():
    """Track the ten most viewed videos in a Zipf-like stream."""
    print("\n=== Top Views Demo ===")

    cms = create_views_counter(10)
    print(f"Sketch dimensions: {cms.depth} x {cms.width}")
    print(f"Empty serialized size: {get_views_obj_size(0.002, 0.0001)} bytes")

    rng = random.Random(42)
    videos = [f"video-{i}" for i in range(5000)]
    weights = [1.0 / (rank + 1) for rank in range(len(videos))]
    stream = rng.choices(videos, weights=weights, k=100000)
    truth = Counter()

    print("\nProcessing 100,000 views...")
    for video in stream:
        cms.increment(video)
        truth[video] += 1

    print("\nTop 10 videos (estimated / true):")
    for count, video in cms.get_top_k():
        print(f"  {video}: {count} / {truth[video]}")

    stats = cms.get_stats()
    print(f"\nNon-zero counters: {stats['non_zero_counters']} ({stats['fill_ratio']:.2%})")
    print(f"Overestimation bound: {stats['epsilon'] * len(stream):.1f} views")


def demonstrate_checkpointing():
    """Resume counting from a serialized sketch."""
    print("\n=== Checkpointing Demo ===")

    cms = CountMinSketch(5, 0.01, 0.001)
    for page in ["home"] * 30 + ["pricing"] * 20 + ["docs"] * 10:
        cms.increment(page)

    data = cms.serialize()
    print(f"Checkpoint: {len(data)} bytes, top-K {cms.get_top_k()}")

    # Restore with the original capacity so new keys can still be admitted
    restored = CountMinSketch.deserialize(data, max_entries=cms.max_entries)
    restored.increment("blog", 25)
    restored.increment("docs", 15)

    print(f"After resuming: {restored.get_top_k()}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    demonstrate_top_views()
    demonstrate_checkpointing()
