"""Perceptual (gradient) fingerprint computations."""

from __future__ import annotations

import imagehash
import numpy as np

from ..io.models import PixelBuffer

LUMA_WEIGHTS: tuple[float, float, float] = (0.3, 0.59, 0.11)
LEGACY_LUMA_WEIGHTS: tuple[float, float, float] = (0.299, 0.587, 0.114)

_NAMED_WEIGHTS = {
    "standard": LUMA_WEIGHTS,
    "legacy": LEGACY_LUMA_WEIGHTS,
}

PerceptualFingerprint = imagehash.ImageHash


def luma_weights(name: str) -> tuple[float, float, float]:
    """Return the luma weighting registered under *name*."""
    try:
        return _NAMED_WEIGHTS[name]
    except KeyError as exc:
        raise ValueError(
            f"Unknown luma weighting {name!r}; expected one of {sorted(_NAMED_WEIGHTS)}"
        ) from exc


def luma(buffer: PixelBuffer, weights: tuple[float, float, float] = LUMA_WEIGHTS) -> np.ndarray:
    """Return a ``(height, width)`` float array of weighted luma values."""
    rgb = buffer.rgb.astype(np.float64)
    return rgb @ np.asarray(weights, dtype=np.float64)


def gradient_fingerprint(
    buffer: PixelBuffer,
    weights: tuple[float, float, float] = LUMA_WEIGHTS,
) -> PerceptualFingerprint:
    """Return the horizontal-gradient fingerprint of *buffer*.

    Bit ``(y, x)`` is set when the pixel at column ``x`` is brighter than its
    right-hand neighbour, giving ``(width - 1) * height`` bits.
    """
    if buffer.width < 2:
        raise ValueError("Fingerprinting needs an image at least two pixels wide")
    grey = luma(buffer, weights)
    bits = grey[:, :-1] > grey[:, 1:]
    return imagehash.ImageHash(bits)


def fingerprint_length(fingerprint: PerceptualFingerprint) -> int:
    return int(fingerprint.hash.size)


def fingerprint_bits(fingerprint: PerceptualFingerprint) -> str:
    """Return the fingerprint as a row-major string of ``0``/``1`` characters."""
    return "".join("1" if bit else "0" for bit in fingerprint.hash.flatten())


def fingerprint_from_bits(bits: str, width: int) -> PerceptualFingerprint:
    """Rebuild a fingerprint from :func:`fingerprint_bits` output.

    *width* is the number of bits per row, i.e. the downsample width minus one.
    """
    if width <= 0 or not bits or len(bits) % width:
        raise ValueError("Bit string length must be a positive multiple of width")
    if set(bits) - {"0", "1"}:
        raise ValueError("Bit string may only contain '0' and '1'")
    flat = np.fromiter((ch == "1" for ch in bits), dtype=bool, count=len(bits))
    return imagehash.ImageHash(flat.reshape(-1, width))


def hamming_distance(a: PerceptualFingerprint, b: PerceptualFingerprint) -> int:
    """Return the number of differing bits between two same-shape fingerprints."""
    if a.hash.shape != b.hash.shape:
        raise ValueError("Fingerprints must share the same shape")
    return int(a - b)
