"""
Unit tests for the deterministic PRNG.
"""

import itertools
import unittest

from tally_sift.core.prng import PRNG


class TestPRNG(unittest.TestCase):
    """Test cases for the xorshift32 generator."""

    def test_first_output(self):
        """Test the first xorshift32 step for seed 1."""
        prng = PRNG(1)
        # 1 ^ 1<<13 = 8193; 8193 >> 17 = 0; 8193 ^ 8193<<5 = 270369
        self.assertEqual(prng.next_uint32(), 270369)

    def test_same_seed_same_sequence(self):
        """Test that two generators with the same seed agree."""
        a = PRNG(42)
        b = PRNG(42)

        self.assertEqual([a.random() for _ in range(100)], [b.random() for _ in range(100)])

    def test_different_seeds(self):
        """Test that different seeds give different sequences."""
        a = [PRNG(1).random() for _ in range(10)]
        b = [PRNG(2).random() for _ in range(10)]

        self.assertNotEqual(a, b)

    def test_range(self):
        """Test that random() stays within [0, 1)."""
        prng = PRNG(7)
        values = [prng.random() for _ in range(10000)]

        self.assertTrue(all(0.0 <= v < 1.0 for v in values))
        # Roughly uniform
        mean = sum(values) / len(values)
        self.assertAlmostEqual(mean, 0.5, delta=0.02)

    def test_zero_seed(self):
        """Test that a zero seed does not get stuck at zero."""
        prng = PRNG(0)
        values = [prng.next_uint32() for _ in range(10)]

        self.assertTrue(all(v != 0 for v in values))
        self.assertEqual(prng.seed, 0)

    def test_iteration(self):
        """Test that iterating yields the same floats as random()."""
        expected = [PRNG(3).random() for _ in range(1)]
        prng = PRNG(3)
        first = list(itertools.islice(iter(prng), 5))

        self.assertEqual(first[0], expected[0])
        self.assertEqual(len(first), 5)
        self.assertTrue(all(isinstance(v, float) for v in first))


if __name__ == "__main__":
    unittest.main()
