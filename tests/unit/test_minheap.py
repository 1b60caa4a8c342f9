"""
Unit tests for the MinHeap priority queue.
"""

import random
import unittest

from tally_sift.algorithms.minheap import MinHeap, natural_order
from tally_sift.core.errors import EmptyHeapError


class TestMinHeap(unittest.TestCase):
    """Test cases for MinHeap."""

    def assertHeapOrdered(self, heap, compare=natural_order):
        items = heap.items()
        for i in range(1, len(items)):
            parent = (i - 1) // 2
            self.assertLessEqual(compare(items[parent], items[i]), 0)

    def test_push_pop_sorted(self):
        """Test that popping returns items in ascending order."""
        rng = random.Random(42)
        values = [rng.randint(0, 1000) for _ in range(200)]

        heap = MinHeap()
        for value in values:
            heap.push(value)
            self.assertHeapOrdered(heap)

        popped = [heap.pop() for _ in range(len(values))]
        self.assertEqual(popped, sorted(values))
        self.assertEqual(heap.size(), 0)

    def test_heapify_initial_items(self):
        """Test building a heap from an unordered sequence."""
        values = [9, 4, 7, 1, 8, 2, 6, 3, 5, 0]
        heap = MinHeap(values)

        self.assertHeapOrdered(heap)
        self.assertEqual(heap.size(), 10)
        self.assertEqual(heap.peek_min(), 0)

        # The caller's list is not reordered
        self.assertEqual(values, [9, 4, 7, 1, 8, 2, 6, 3, 5, 0])

    def test_custom_comparator(self):
        """Test that the comparator controls the ordering."""
        heap = MinHeap([3, 1, 4, 1, 5, 9, 2, 6], comparator=lambda a, b: b - a)

        self.assertEqual(heap.pop(), 9)
        self.assertEqual(heap.pop(), 6)
        self.assertEqual(heap.peek_min(), 5)

    def test_tuple_items(self):
        """Test ordering (count, key) tuples by count only."""
        heap = MinHeap(comparator=lambda a, b: a[0] - b[0])
        heap.push((5, "e"))
        heap.push((1, "a"))
        heap.push((3, "c"))

        self.assertEqual(heap.pop(), (1, "a"))
        self.assertEqual(heap.pop(), (3, "c"))
        self.assertEqual(heap.pop(), (5, "e"))

    def test_empty_heap(self):
        """Test popping and peeking an empty heap."""
        heap = MinHeap()

        with self.assertRaises(EmptyHeapError):
            heap.pop()
        with self.assertRaises(EmptyHeapError):
            heap.peek_min()
        # Also catchable as IndexError
        with self.assertRaises(IndexError):
            heap.pop()

        self.assertEqual(len(heap), 0)
        self.assertFalse(heap)

    def test_single_item(self):
        """Test a heap holding one item."""
        heap = MinHeap([42])

        self.assertEqual(heap.peek_min(), 42)
        self.assertEqual(heap.pop(), 42)
        self.assertEqual(heap.size(), 0)

    def test_on_move_tracks_positions(self):
        """Test that the move callback keeps an external index current."""
        positions = {}

        def on_move(item, index):
            positions[item] = index

        rng = random.Random(7)
        heap = MinHeap(rng.sample(range(1000), 50), on_move=on_move)

        for value in rng.sample(range(1000, 2000), 50):
            heap.push(value)
        for _ in range(30):
            removed = heap.pop()
            del positions[removed]

        self.assertEqual(len(positions), heap.size())
        for item, index in positions.items():
            self.assertEqual(heap[index], item)

    def test_restore_after_in_place_change(self):
        """Test re-sifting an item whose priority changed in place."""

        class Box:
            def __init__(self, value):
                self.value = value

        compare = lambda a, b: a.value - b.value
        boxes = [Box(v) for v in range(10)]
        heap = MinHeap(boxes, comparator=compare)

        # Raise the root; it must sink
        root = heap.peek_min()
        root.value = 100
        heap.restore(0)
        self.assertEqual(heap.peek_min().value, 1)

        # Lower a leaf; it must rise to the top
        leaf_index = heap.size() - 1
        heap[leaf_index].value = -5
        self.assertEqual(heap.restore(leaf_index), 0)
        self.assertEqual(heap.peek_min().value, -5)

        with self.assertRaises(IndexError):
            heap.restore(heap.size())

    def test_iteration_snapshot(self):
        """Test that iteration and items() return copies."""
        heap = MinHeap([3, 2, 1])

        items = heap.items()
        items.append(0)

        self.assertEqual(heap.size(), 3)
        self.assertEqual(sorted(heap), [1, 2, 3])


if __name__ == "__main__":
    unittest.main()
