"""Threshold policies that turn similarity scores into a verdict."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from ..config import GateConfig
from .similarity import blended_score


class ThresholdPolicy(Protocol):
    name: str

    def approves(self, dhash_score: float, hist_score: float) -> bool: ...


@dataclass(frozen=True)
class DualThresholdPolicy:
    """Approve only when both scores reach their own floor."""

    t_d: float = 0.5
    t_h: float = 0.5
    name: str = "dual"

    def __post_init__(self) -> None:
        _check_unit("t_d", self.t_d)
        _check_unit("t_h", self.t_h)

    def approves(self, dhash_score: float, hist_score: float) -> bool:
        return dhash_score >= self.t_d and hist_score >= self.t_h


@dataclass(frozen=True)
class BlendedThresholdPolicy:
    """Legacy single-score gate: a weighted blend compared to one floor.

    ``dhash_weight=1.0`` reproduces the fingerprint-only variant.
    """

    floor: float = 0.62
    dhash_weight: float = 0.5
    name: str = "blended"

    def __post_init__(self) -> None:
        _check_unit("floor", self.floor)
        _check_unit("dhash_weight", self.dhash_weight)

    def approves(self, dhash_score: float, hist_score: float) -> bool:
        return blended_score(dhash_score, hist_score, self.dhash_weight) >= self.floor


def policy_from_config(config: GateConfig) -> ThresholdPolicy:
    """Build the policy named by ``config.policy``."""
    if config.policy == "dual":
        return DualThresholdPolicy(t_d=config.t_d, t_h=config.t_h)
    if config.policy == "blended":
        return BlendedThresholdPolicy(
            floor=config.blend_floor, dhash_weight=config.blend_dhash_weight
        )
    raise ValueError(f"Unknown threshold policy {config.policy!r}; expected 'dual' or 'blended'")


def _check_unit(label: str, value: float) -> None:
    if not 0.0 <= float(value) <= 1.0:
        raise ValueError(f"{label} must lie in [0, 1], got {value}")
