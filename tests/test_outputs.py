import argparse
import json
import tempfile
import unittest
from pathlib import Path

from photo_gate.cli import build_config, read_batch
from photo_gate.config import GateConfig
from photo_gate.io.models import RejectionReason, ValidationResult, Verdict
from photo_gate.io.outputs import (
    JsonSubmissionStore,
    build_submission,
    results_frame,
    summarize,
    write_report,
)


def _result(verdict, reason=None, landmark="Big Ben", dhash=0.8, hist=0.7):
    return ValidationResult(
        landmark=landmark,
        dhash_score=dhash,
        hist_score=hist,
        verdict=verdict,
        reason=reason,
        reference_url="https://img/ben.jpg",
    )


class SubmissionStoreTests(unittest.TestCase):
    def test_points_awarded_only_for_approved(self):
        with tempfile.TemporaryDirectory() as tmp:
            store = JsonSubmissionStore(Path(tmp) / "subs.jsonl", points_per_upload=150)
            approved = store.record(
                build_submission("ana", "London", b"\x89PNG", _result(Verdict.APPROVED))
            )
            rejected = store.record(
                build_submission(
                    "ana",
                    "London",
                    b"\x89PNG",
                    _result(Verdict.REJECTED, RejectionReason.BELOW_THRESHOLD, dhash=0.2),
                )
            )
            store.record(build_submission("ben", "Paris", b"x", _result(Verdict.APPROVED)))

            self.assertEqual(approved.points, 150)
            self.assertEqual(rejected.points, 0)
            self.assertEqual(store.points_for("ana"), 150)
            self.assertEqual(store.points_for("ben"), 150)
            self.assertEqual(store.points_for("nobody"), 0)

            rows = [json.loads(line) for line in store.path.read_text().splitlines()]
            self.assertEqual(rows[0]["verdict"], "approved")
            self.assertEqual(rows[1]["city"], "London")
            self.assertEqual(rows[0]["image"], "iVBORw==")


class ReportTests(unittest.TestCase):
    def test_summarize_counts_each_outcome(self):
        results = [
            _result(Verdict.APPROVED),
            _result(Verdict.REJECTED, RejectionReason.NO_REFERENCE, landmark="Atlantis"),
            _result(Verdict.REJECTED, RejectionReason.IMAGE_UNREADABLE),
            _result(Verdict.REJECTED, RejectionReason.BELOW_THRESHOLD),
        ]
        report = summarize(results)
        self.assertEqual((report.total, report.approved, report.rejected), (4, 1, 3))
        self.assertEqual((report.no_reference, report.unreadable), (1, 1))
        self.assertAlmostEqual(report.approval_rate, 0.25)
        self.assertEqual(report.landmarks, ["Atlantis", "Big Ben"])

        with tempfile.TemporaryDirectory() as tmp:
            path = write_report(Path(tmp) / "summary.json", report)
            self.assertEqual(json.loads(path.read_text())["approved"], 1)

    def test_results_frame(self):
        frame = results_frame(
            [_result(Verdict.REJECTED, RejectionReason.NO_REFERENCE)], ["photo.jpg"]
        )
        self.assertEqual(list(frame["reason"]), ["no reference image available"])
        self.assertEqual(list(frame["photo"]), ["photo.jpg"])

    def test_messages(self):
        self.assertEqual(
            _result(Verdict.APPROVED, dhash=0.91, hist=0.66).message(),
            "Photo validated (Match: 91%, Color: 66%)",
        )
        self.assertIn(
            "no reference image available",
            _result(Verdict.REJECTED, RejectionReason.NO_REFERENCE).message(),
        )


class CliHelperTests(unittest.TestCase):
    def test_build_config_overrides(self):
        args = argparse.Namespace(policy="blended", t_d=None, t_h=0.4, blend_floor=0.7)
        config = build_config(args, GateConfig())
        self.assertEqual(config.policy, "blended")
        self.assertEqual(config.t_h, 0.4)
        self.assertEqual(config.blend_floor, 0.7)
        self.assertEqual(config.t_d, GateConfig().t_d)

    def test_read_batch_skips_incomplete_rows(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "batch.csv"
            path.write_text(
                "landmark,photo,city\nBig Ben,ben.jpg,London\n,orphan.jpg,\nLouvre,,Paris\n",
                encoding="utf-8",
            )
            rows = read_batch(path)
        self.assertEqual(rows, [{"landmark": "Big Ben", "photo": "ben.jpg", "city": "London"}])


if __name__ == "__main__":
    unittest.main()
