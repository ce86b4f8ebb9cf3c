"""Decode raster images into fixed-size RGBA pixel buffers."""

from __future__ import annotations

import logging
import struct
from io import BytesIO

import numpy as np
import requests
from PIL import Image, ImageOps, UnidentifiedImageError
from PIL.Image import DecompressionBombError
from requests import Session

from ..config import DEFAULT_CONFIG, GateConfig
from ..crawl.fetch import fetch_bytes
from ..errors import DecodeError, RetryableHTTPStatusError
from ..io.models import PixelBuffer

logger = logging.getLogger(__name__)

# Bilinear keeps results identical across runs for the same input bytes.
RESAMPLE_FILTER = Image.Resampling.BILINEAR

# Pillow loaders raise any of these for corrupt or truncated payloads.
_DECODE_ERRORS = (
    UnidentifiedImageError,
    DecompressionBombError,
    OSError,
    ValueError,
    SyntaxError,
    EOFError,
    struct.error,
)


class ImageDecoder:
    """Turn image bytes or URLs into :class:`PixelBuffer` objects.

    Every failure mode (empty payload, unknown format, network error, bad
    target size) surfaces as :class:`DecodeError`. Nothing is cached.
    """

    def __init__(
        self,
        config: GateConfig = DEFAULT_CONFIG,
        session: Session | None = None,
    ) -> None:
        self.timeout = config.http_timeout
        self._session = session

    def decode(self, data: bytes, size: tuple[int, int]) -> PixelBuffer:
        """Decode *data* and resample it to exactly ``size`` (width, height)."""
        width, height = _check_size(size)
        if not data:
            raise DecodeError("Empty image payload cannot be decoded")

        try:
            with Image.open(BytesIO(data)) as img:
                img.load()
                oriented = ImageOps.exif_transpose(img) or img
                if oriented.width <= 0 or oriented.height <= 0:
                    raise DecodeError("Image has degenerate dimensions")
                try:
                    rgba = oriented.convert("RGBA")
                finally:
                    if oriented is not img:
                        oriented.close()
        except _DECODE_ERRORS as exc:
            raise DecodeError(f"Unsupported or corrupt image: {exc}") from exc

        try:
            resized = rgba.resize((width, height), RESAMPLE_FILTER)
        finally:
            rgba.close()
        pixels = np.asarray(resized, dtype=np.uint8).copy()
        resized.close()
        return PixelBuffer(width=width, height=height, pixels=pixels)

    def fetch(self, url: str) -> bytes:
        """Download the raw bytes at *url*, raising :class:`DecodeError` on failure."""
        if not url:
            raise DecodeError("No image URL given")
        try:
            return fetch_bytes(url, timeout=self.timeout, session=self._session)
        except (requests.RequestException, RetryableHTTPStatusError) as exc:
            logger.warning("Failed to fetch image %s: %s", url, exc)
            raise DecodeError(f"Could not fetch image from {url}: {exc}") from exc

    def decode_url(self, url: str, size: tuple[int, int]) -> PixelBuffer:
        """Fetch *url* and decode it at ``size``."""
        _check_size(size)
        return self.decode(self.fetch(url), size)


def _check_size(size: tuple[int, int]) -> tuple[int, int]:
    try:
        width, height = (int(size[0]), int(size[1]))
    except (TypeError, ValueError, IndexError) as exc:
        raise DecodeError(f"Invalid target size {size!r}") from exc
    if width <= 0 or height <= 0:
        raise DecodeError(f"Target size must be positive, got {width}x{height}")
    return width, height
