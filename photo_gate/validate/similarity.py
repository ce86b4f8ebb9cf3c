"""Similarity scoring between a submitted photo and its reference image."""

from __future__ import annotations

from typing import Sequence

from ..features.perceptual import PerceptualFingerprint, hamming_distance

_CHANNELS = 3


def fingerprint_similarity(
    a: PerceptualFingerprint | None, b: PerceptualFingerprint | None
) -> float:
    """Return ``1 - hamming / length`` for two fingerprints of equal shape.

    Missing or mismatched fingerprints score 0.0 so they can never pass a
    threshold.
    """
    if a is None or b is None:
        return 0.0
    if a.hash.shape != b.hash.shape or a.hash.size == 0:
        return 0.0
    distance = hamming_distance(a, b)
    score = 1.0 - (distance / float(a.hash.size))
    return float(max(0.0, min(1.0, score)))


def histogram_intersection(
    a: Sequence[float] | None,
    b: Sequence[float] | None,
    channels: int = _CHANNELS,
) -> float:
    """Return the per-channel-averaged histogram intersection of *a* and *b*.

    Each channel slice sums to at most 1, so dividing the summed minima by the
    channel count keeps the result in the unit interval. Missing or
    length-mismatched histograms score 0.0.
    """
    if not a or not b or len(a) != len(b) or channels <= 0:
        return 0.0

    total = 0.0
    for aval, bval in zip(a, b):
        total += min(float(aval), float(bval))

    return float(max(0.0, min(1.0, total / channels)))


def blended_score(dhash_score: float, hist_score: float, dhash_weight: float = 0.5) -> float:
    """Return a single weighted score from the two component scores."""
    weight = max(0.0, min(1.0, float(dhash_weight)))
    score = (weight * float(dhash_score)) + ((1.0 - weight) * float(hist_score))
    return float(max(0.0, min(1.0, score)))
