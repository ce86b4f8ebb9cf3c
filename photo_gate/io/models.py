"""Data models shared across the photo validation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List

import numpy as np


@dataclass(slots=True)
class PixelBuffer:
    """A decoded RGBA image with explicit dimensions."""

    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self) -> None:
        expected = (self.height, self.width, 4)
        if self.pixels.shape != expected:
            raise ValueError(
                f"pixel array shape {self.pixels.shape} does not match {expected}"
            )

    @property
    def rgb(self) -> np.ndarray:
        """Return the RGB planes as a contiguous ``uint8`` array."""
        return np.ascontiguousarray(self.pixels[:, :, :3])


class LookupStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"


@dataclass(frozen=True, slots=True)
class ReferenceLookup:
    """Outcome of resolving a landmark name to a reference image."""

    landmark: str
    status: LookupStatus
    url: str | None = None
    title: str | None = None
    cached: bool = False

    @property
    def found(self) -> bool:
        return self.status is LookupStatus.FOUND and bool(self.url)


class Verdict(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class RejectionReason(str, Enum):
    NO_REFERENCE = "no reference image available"
    IMAGE_UNREADABLE = "image unreadable"
    BELOW_THRESHOLD = "photo too different from reference"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Immutable verdict for a single photo submission."""

    landmark: str
    dhash_score: float
    hist_score: float
    verdict: Verdict
    reason: RejectionReason | None = None
    reference_url: str | None = None

    @property
    def approved(self) -> bool:
        return self.verdict is Verdict.APPROVED

    def message(self) -> str:
        """Return the user-facing summary of this result."""
        match_pct = round(self.dhash_score * 100)
        color_pct = round(self.hist_score * 100)
        if self.approved:
            return f"Photo validated (Match: {match_pct}%, Color: {color_pct}%)"
        if self.reason is RejectionReason.NO_REFERENCE:
            return "Rejected: no reference image available for this attraction"
        if self.reason is RejectionReason.IMAGE_UNREADABLE:
            return "Rejected: image unreadable"
        return f"Rejected: photo too different (Match: {match_pct}%, Color: {color_pct}%)"


@dataclass(slots=True)
class Submission:
    """A validated upload as handed to the submission store."""

    identity: str
    landmark: str
    city: str
    image_bytes: bytes
    verdict: Verdict
    dhash_score: float
    hist_score: float
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    points: int = 0


@dataclass(slots=True)
class BatchReport:
    """High-level summary of a batch validation run."""

    total: int
    approved: int
    rejected: int
    no_reference: int
    unreadable: int
    approval_rate: float
    notes: dict[str, str] = field(default_factory=dict)
    landmarks: List[str] = field(default_factory=list)
