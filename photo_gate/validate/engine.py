"""Orchestrate reference lookup, feature extraction, scoring and the verdict."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from threading import Lock
from typing import Callable

from ..config import DEFAULT_CONFIG, GateConfig
from ..crawl.reference import ReferenceResolver
from ..errors import DecodeError, InvalidInput
from ..extract.decode import ImageDecoder
from ..features.color import ColorHistogram, rgb_histogram
from ..features.perceptual import PerceptualFingerprint, gradient_fingerprint, luma_weights
from ..io.models import RejectionReason, ValidationResult, Verdict
from .policy import ThresholdPolicy, policy_from_config
from .similarity import fingerprint_similarity, histogram_intersection

logger = logging.getLogger(__name__)


class ValidationState(str, Enum):
    IDLE = "idle"
    RESOLVING_REFERENCE = "resolving_reference"
    REFERENCE_FOUND = "reference_found"
    REFERENCE_MISSING = "reference_missing"
    EXTRACTING = "extracting"
    SCORING = "scoring"
    DECIDED = "decided"
    REJECTED_NO_REFERENCE = "rejected_no_reference"
    REJECTED_UNREADABLE = "rejected_unreadable"


StateListener = Callable[[str, ValidationState], None]


class ValidationEngine:
    """Validate photos of named landmarks against an encyclopedia reference.

    :meth:`validate` runs synchronously and always returns a
    :class:`ValidationResult` once its inputs pass the upfront checks; only
    :class:`InvalidInput` is raised. The four decode/extract jobs (user and
    reference image, fingerprint and histogram) run on a private thread pool
    per call, so several validations may run at once.
    """

    def __init__(
        self,
        resolver: ReferenceResolver,
        decoder: ImageDecoder | None = None,
        policy: ThresholdPolicy | None = None,
        config: GateConfig = DEFAULT_CONFIG,
        on_state: StateListener | None = None,
    ) -> None:
        self.resolver = resolver
        self.decoder = decoder or ImageDecoder(config)
        self.policy = policy or policy_from_config(config)
        self.config = config
        self.on_state = on_state
        self._weights = luma_weights(config.luma_weights)
        self._tasks: ThreadPoolExecutor | None = None
        self._tasks_lock = Lock()

    def validate(self, landmark: str, image_bytes: bytes) -> ValidationResult:
        """Return the verdict for *image_bytes* claimed to show *landmark*."""
        _check_inputs(landmark, image_bytes)
        self._enter(landmark, ValidationState.IDLE)

        self._enter(landmark, ValidationState.RESOLVING_REFERENCE)
        lookup = self.resolver.resolve(landmark)
        if not lookup.found:
            self._enter(landmark, ValidationState.REFERENCE_MISSING)
            self._enter(landmark, ValidationState.REJECTED_NO_REFERENCE)
            return ValidationResult(
                landmark=landmark,
                dhash_score=0.0,
                hist_score=0.0,
                verdict=Verdict.REJECTED,
                reason=RejectionReason.NO_REFERENCE,
            )

        self._enter(landmark, ValidationState.REFERENCE_FOUND)
        self._enter(landmark, ValidationState.EXTRACTING)
        try:
            user_fp, user_hist, ref_fp, ref_hist = self._extract_all(image_bytes, lookup.url)
        except DecodeError as exc:
            logger.warning("Image unreadable for %r: %s", landmark, exc)
            self._enter(landmark, ValidationState.REJECTED_UNREADABLE)
            return ValidationResult(
                landmark=landmark,
                dhash_score=0.0,
                hist_score=0.0,
                verdict=Verdict.REJECTED,
                reason=RejectionReason.IMAGE_UNREADABLE,
                reference_url=lookup.url,
            )

        self._enter(landmark, ValidationState.SCORING)
        dhash_score = fingerprint_similarity(user_fp, ref_fp)
        hist_score = histogram_intersection(user_hist, ref_hist)
        approved = self.policy.approves(dhash_score, hist_score)

        self._enter(landmark, ValidationState.DECIDED)
        logger.info(
            "Validated %r: dhash=%.3f hist=%.3f policy=%s -> %s",
            landmark,
            dhash_score,
            hist_score,
            self.policy.name,
            "approved" if approved else "rejected",
        )
        return ValidationResult(
            landmark=landmark,
            dhash_score=dhash_score,
            hist_score=hist_score,
            verdict=Verdict.APPROVED if approved else Verdict.REJECTED,
            reason=None if approved else RejectionReason.BELOW_THRESHOLD,
            reference_url=lookup.url,
        )

    def submit(self, landmark: str, image_bytes: bytes) -> Future[ValidationResult]:
        """Run :meth:`validate` in the background and return its future.

        Input checks still happen synchronously, so :class:`InvalidInput` is
        raised here rather than stored in the future. No timeout is applied;
        callers wait on the future with their own.
        """
        _check_inputs(landmark, image_bytes)
        return self._task_pool().submit(self.validate, landmark, image_bytes)

    def close(self) -> None:
        with self._tasks_lock:
            if self._tasks is not None:
                self._tasks.shutdown(wait=True)
                self._tasks = None

    def __enter__(self) -> "ValidationEngine":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _task_pool(self) -> ThreadPoolExecutor:
        with self._tasks_lock:
            if self._tasks is None:
                self._tasks = ThreadPoolExecutor(
                    max_workers=max(1, self.config.max_workers),
                    thread_name_prefix="photo-gate",
                )
            return self._tasks

    def _extract_all(
        self, image_bytes: bytes, reference_url: str | None
    ) -> tuple[PerceptualFingerprint, ColorHistogram, PerceptualFingerprint, ColorHistogram]:
        with ThreadPoolExecutor(max_workers=4, thread_name_prefix="photo-gate-extract") as pool:
            ref_bytes_future = pool.submit(self.decoder.fetch, reference_url or "")
            user_fp = pool.submit(self._fingerprint, image_bytes)
            user_hist = pool.submit(self._histogram, image_bytes)
            try:
                ref_bytes = ref_bytes_future.result()
            except DecodeError:
                user_fp.cancel()
                user_hist.cancel()
                raise
            ref_fp = pool.submit(self._fingerprint, ref_bytes)
            ref_hist = pool.submit(self._histogram, ref_bytes)
            return user_fp.result(), user_hist.result(), ref_fp.result(), ref_hist.result()

    def _fingerprint(self, data: bytes) -> PerceptualFingerprint:
        buffer = self.decoder.decode(data, self.config.fingerprint_size)
        return gradient_fingerprint(buffer, self._weights)

    def _histogram(self, data: bytes) -> ColorHistogram:
        buffer = self.decoder.decode(data, self.config.histogram_size)
        return rgb_histogram(buffer, self.config.histogram_buckets)

    def _enter(self, landmark: str, state: ValidationState) -> None:
        logger.debug("%r -> %s", landmark, state.value)
        if self.on_state is not None:
            self.on_state(landmark, state)


def _check_inputs(landmark: str, image_bytes: bytes) -> None:
    if not isinstance(landmark, str) or not landmark.strip():
        raise InvalidInput("Landmark name must be a non-empty string")
    if not image_bytes:
        raise InvalidInput("No image supplied")
