"""Runtime configuration with environment-variable overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@dataclass(frozen=True)
class GateConfig:
    """Sizes, thresholds and network settings for the validation pipeline."""

    fingerprint_size: tuple[int, int] = (8, 8)
    histogram_size: tuple[int, int] = (16, 16)
    histogram_buckets: int = 4

    # "standard" -> 0.3/0.59/0.11, "legacy" -> 0.299/0.587/0.114
    luma_weights: str = os.getenv("PHOTO_GATE_LUMA", "standard")

    policy: str = os.getenv("PHOTO_GATE_POLICY", "dual")
    t_d: float = _env_float("PHOTO_GATE_T_D", 0.5)
    t_h: float = _env_float("PHOTO_GATE_T_H", 0.5)
    blend_floor: float = _env_float("PHOTO_GATE_BLEND_FLOOR", 0.62)
    blend_dhash_weight: float = _env_float("PHOTO_GATE_BLEND_DHASH_WEIGHT", 0.5)

    wikipedia_api_url: str = os.getenv(
        "PHOTO_GATE_WIKIPEDIA_API", "https://en.wikipedia.org/w/api.php"
    )
    thumbnail_size: int = _env_int("PHOTO_GATE_THUMBNAIL_SIZE", 400)
    http_timeout: float = _env_float("PHOTO_GATE_HTTP_TIMEOUT", 10.0)
    user_agent: str = os.getenv(
        "PHOTO_GATE_USER_AGENT",
        "photo-gate/0.1 (landmark photo validation; python-requests)",
    )

    max_workers: int = _env_int("PHOTO_GATE_MAX_WORKERS", 4)
    points_per_upload: int = _env_int("PHOTO_GATE_POINTS_PER_UPLOAD", 150)


DEFAULT_CONFIG = GateConfig()
