import unittest

import numpy as np

from photo_gate.config import GateConfig
from photo_gate.features.perceptual import fingerprint_from_bits
from photo_gate.validate.policy import (
    BlendedThresholdPolicy,
    DualThresholdPolicy,
    policy_from_config,
)
from photo_gate.validate.similarity import (
    blended_score,
    fingerprint_similarity,
    histogram_intersection,
)


def _random_bits(seed: int, length: int = 56) -> str:
    rng = np.random.RandomState(seed)
    return "".join(str(bit) for bit in rng.randint(0, 2, size=length))


def _random_histogram(seed: int, buckets: int = 4) -> list[float]:
    rng = np.random.RandomState(seed)
    values: list[float] = []
    for _ in range(3):
        counts = rng.randint(0, 50, size=buckets).astype(float) + 1.0
        values.extend((counts / counts.sum()).tolist())
    return values


class FingerprintSimilarityTests(unittest.TestCase):
    def test_self_similarity_is_one(self):
        fp = fingerprint_from_bits(_random_bits(1), width=7)
        self.assertEqual(fingerprint_similarity(fp, fp), 1.0)

    def test_symmetric(self):
        for seed in range(10):
            a = fingerprint_from_bits(_random_bits(seed), width=7)
            b = fingerprint_from_bits(_random_bits(seed + 100), width=7)
            self.assertEqual(fingerprint_similarity(a, b), fingerprint_similarity(b, a))

    def test_counts_differing_bits(self):
        a = fingerprint_from_bits("0000", width=2)
        b = fingerprint_from_bits("0011", width=2)
        self.assertEqual(fingerprint_similarity(a, b), 0.5)

    def test_missing_or_mismatched_scores_zero(self):
        fp = fingerprint_from_bits(_random_bits(2), width=7)
        other = fingerprint_from_bits(_random_bits(2, length=64), width=8)
        self.assertEqual(fingerprint_similarity(fp, None), 0.0)
        self.assertEqual(fingerprint_similarity(None, fp), 0.0)
        self.assertEqual(fingerprint_similarity(None, None), 0.0)
        self.assertEqual(fingerprint_similarity(fp, other), 0.0)


class HistogramSimilarityTests(unittest.TestCase):
    def test_identical_histograms(self):
        hist = _random_histogram(4)
        self.assertAlmostEqual(histogram_intersection(hist, hist), 1.0)

    def test_bounded_and_symmetric(self):
        for seed in range(20):
            a = _random_histogram(seed)
            b = _random_histogram(seed + 50)
            score = histogram_intersection(a, b)
            self.assertGreaterEqual(score, 0.0)
            self.assertLessEqual(score, 1.0)
            self.assertEqual(score, histogram_intersection(b, a))

    def test_red_against_blue(self):
        red = [0.0, 0.0, 0.0, 1.0, 1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0]
        blue = [1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 1.0]
        self.assertAlmostEqual(histogram_intersection(red, blue), 1.0 / 3.0)

    def test_missing_or_mismatched_scores_zero(self):
        hist = _random_histogram(6)
        self.assertEqual(histogram_intersection(hist, None), 0.0)
        self.assertEqual(histogram_intersection(None, hist), 0.0)
        self.assertEqual(histogram_intersection([], []), 0.0)
        self.assertEqual(histogram_intersection(hist, hist[:-1]), 0.0)

    def test_clamped_for_unnormalised_input(self):
        self.assertEqual(histogram_intersection([5.0] * 12, [5.0] * 12), 1.0)


class PolicyTests(unittest.TestCase):
    def test_dual_requires_both_floors(self):
        policy = DualThresholdPolicy(t_d=0.5, t_h=0.5)
        self.assertTrue(policy.approves(0.5, 0.5))
        self.assertFalse(policy.approves(0.9, 0.49))
        self.assertFalse(policy.approves(0.49, 0.9))

    def test_blended_single_score(self):
        policy = BlendedThresholdPolicy(floor=0.62, dhash_weight=0.5)
        self.assertTrue(policy.approves(0.9, 0.4))
        self.assertFalse(policy.approves(0.6, 0.6))

    def test_blended_fingerprint_only(self):
        policy = BlendedThresholdPolicy(floor=0.5, dhash_weight=1.0)
        self.assertTrue(policy.approves(0.5, 0.0))
        self.assertAlmostEqual(blended_score(0.5, 0.0, 1.0), 0.5)

    def test_thresholds_must_be_unit_interval(self):
        with self.assertRaises(ValueError):
            DualThresholdPolicy(t_d=1.5)
        with self.assertRaises(ValueError):
            BlendedThresholdPolicy(floor=-0.1)

    def test_policy_from_config(self):
        self.assertEqual(policy_from_config(GateConfig(policy="dual", t_d=0.62)).t_d, 0.62)
        self.assertEqual(policy_from_config(GateConfig(policy="blended")).name, "blended")
        with self.assertRaises(ValueError):
            policy_from_config(GateConfig(policy="vote"))


if __name__ == "__main__":
    unittest.main()
