"""Output helpers for persisting validation results and submissions."""

from __future__ import annotations

import base64
import json
from dataclasses import asdict
from pathlib import Path
from threading import Lock
from typing import Any, Protocol, Sequence

import pandas as pd

from .models import BatchReport, RejectionReason, Submission, ValidationResult, Verdict


class SubmissionStore(Protocol):
    def record(self, submission: Submission) -> Submission: ...

    def points_for(self, identity: str) -> int: ...


def build_submission(
    identity: str,
    city: str,
    image_bytes: bytes,
    result: ValidationResult,
) -> Submission:
    """Return the store record for *result*; points are assigned by the store."""
    return Submission(
        identity=identity,
        landmark=result.landmark,
        city=city,
        image_bytes=image_bytes,
        verdict=result.verdict,
        dhash_score=result.dhash_score,
        hist_score=result.hist_score,
    )


class JsonSubmissionStore:
    """Append-only JSON-lines submission log that awards points on approval."""

    def __init__(self, path: Path, points_per_upload: int = 150) -> None:
        self.path = Path(path)
        self.points_per_upload = points_per_upload
        self._lock = Lock()

    def record(self, submission: Submission) -> Submission:
        if submission.verdict is Verdict.APPROVED:
            submission.points = self.points_per_upload
        line = json.dumps(_submission_payload(submission))
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        return submission

    def points_for(self, identity: str) -> int:
        return sum(
            int(row.get("points", 0) or 0)
            for row in self._rows()
            if row.get("identity") == identity
        )

    def _rows(self) -> list[dict[str, Any]]:
        with self._lock:
            if not self.path.exists():
                return []
            lines = self.path.read_text(encoding="utf-8").splitlines()
        return [json.loads(line) for line in lines if line.strip()]


def _submission_payload(submission: Submission) -> dict[str, Any]:
    return {
        "identity": submission.identity,
        "landmark": submission.landmark,
        "city": submission.city,
        "image": base64.b64encode(submission.image_bytes).decode("ascii"),
        "verdict": submission.verdict.value,
        "dhash_score": round(submission.dhash_score, 6),
        "hist_score": round(submission.hist_score, 6),
        "timestamp": submission.timestamp.isoformat(),
        "points": submission.points,
    }


def results_frame(results: Sequence[ValidationResult], photos: Sequence[str]) -> pd.DataFrame:
    """Return one row per validation result."""
    rows = []
    for result, photo in zip(results, photos):
        rows.append(
            {
                "landmark": result.landmark,
                "photo": photo,
                "verdict": result.verdict.value,
                "reason": result.reason.value if result.reason else None,
                "dhash_score": result.dhash_score,
                "hist_score": result.hist_score,
                "reference_url": result.reference_url,
            }
        )
    return pd.DataFrame(rows)


def summarize(results: Sequence[ValidationResult]) -> BatchReport:
    """Return counts per outcome for a batch of results."""
    total = len(results)
    approved = sum(1 for result in results if result.approved)
    no_reference = sum(
        1 for result in results if result.reason is RejectionReason.NO_REFERENCE
    )
    unreadable = sum(
        1 for result in results if result.reason is RejectionReason.IMAGE_UNREADABLE
    )
    return BatchReport(
        total=total,
        approved=approved,
        rejected=total - approved,
        no_reference=no_reference,
        unreadable=unreadable,
        approval_rate=(approved / total) if total else 0.0,
        landmarks=sorted({result.landmark for result in results}),
    )


def write_results(path: Path, frame: pd.DataFrame) -> Path:
    """Write *frame* to *path* as parquet and return the path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_parquet(path, index=False, engine="pyarrow")
    return path


def write_report(path: Path, report: BatchReport) -> Path:
    """Write a batch report to *path* as JSON and return the path."""
    path.write_text(json.dumps(asdict(report), indent=2), encoding="utf-8")
    return path
