"""Color histogram utilities."""

from __future__ import annotations

import cv2

from ..io.models import PixelBuffer

_DEFAULT_BUCKETS = 4
_CHANNELS = 3

ColorHistogram = list[float]


def rgb_histogram(buffer: PixelBuffer, buckets: int = _DEFAULT_BUCKETS) -> ColorHistogram:
    """Return per-channel R, G, B bucket frequencies concatenated in that order.

    Each channel's 8-bit range is split into *buckets* equal-width bins (four
    bins means ``value >> 6``) and normalised by the pixel count, so each
    channel's slice sums to 1.
    """
    if buckets <= 0 or 256 % buckets:
        raise ValueError("buckets must be a positive divisor of 256")

    rgb = buffer.rgb
    total = rgb.shape[0] * rgb.shape[1]
    if total == 0:
        return [0.0] * (buckets * _CHANNELS)

    result: list[float] = []
    for channel in range(_CHANNELS):
        hist = cv2.calcHist([rgb], [channel], None, [buckets], [0, 256]).flatten()
        result.extend((hist / float(total)).astype(float).tolist())
    return result

