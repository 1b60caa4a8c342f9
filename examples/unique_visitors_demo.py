"""
Unique visitors example for TallySift.

This example demonstrates how to count unique visitors with HyperLogLog,
checkpoint the counter as a binary buffer, and combine counters built on
separate web servers.
"""

import logging
import random
import time

from tally_sift import HyperLogLog, create_uniques_counter, get_uniques_obj_size


def demonstrate_unique_visitors():
    """Count unique visitor IDs in a simulated page view stream."""
    print("\n=== Unique Visitors Demo ===")

    hll = create_uniques_counter(0.01)
    print(f"Using {hll.num_registers} registers")
    print(f"Serialized size: {get_uniques_obj_size(0.01)} bytes")

    rng = random.Random(42)
    visitors = [f"visitor-{i}" for i in range(50000)]
    seen = set()

    print("\nProcessing 200,000 page views...")
    start_time = time.time()
    for i in range(200000):
        visitor = rng.choice(visitors)
        hll.add(visitor)
        seen.add(visitor)

        if i % 50000 == 0:
            print(f"  Processed {i} views, current estimate: {hll.estimate_cardinality()}")

    elapsed = time.time() - start_time
    estimate = hll.count()
    print(f"\nProcessed {hll.items_processed} views in {elapsed:.3f} seconds")
    print(f"Estimated unique visitors: {estimate:.0f} (true: {len(seen)})")
    print(f"Relative error: {abs(estimate - len(seen)) / len(seen):.2%}")


def demonstrate_sharded_counting():
    """Merge counters checkpointed by several servers."""
    print("\n=== Sharded Counting Demo ===")

    # Each server keeps its own counter and ships the serialized bytes
    checkpoints = []
    for server in range(3):
        hll = HyperLogLog(0.02)
        for i in range(20000):
            # Servers see overlapping visitor populations
            hll.add(f"visitor-{server * 10000 + i}")
        data = hll.serialize()
        checkpoints.append(data)
        print(f"  Server {server}: ~{hll.estimate_cardinality()} visitors, {len(data)} bytes")

    # A collector restores and merges the checkpoints
    total = HyperLogLog.deserialize(checkpoints[0])
    for data in checkpoints[1:]:
        total.merge(HyperLogLog.deserialize(data))

    print(f"\nMerged estimate: {total.estimate_cardinality()} (true: 40000)")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    demonstrate_unique_visitors()
    demonstrate_sharded_counting()
