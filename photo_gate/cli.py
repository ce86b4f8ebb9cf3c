"""Command-line interface for the photo_gate project."""

from __future__ import annotations

import argparse
import csv
import logging
from dataclasses import replace
from pathlib import Path
from typing import Iterable

from tqdm import tqdm

from .config import DEFAULT_CONFIG, GateConfig
from .crawl.reference import ReferenceResolver
from .crawl.wikipedia import WikipediaClient
from .errors import InvalidInput
from .io.models import ValidationResult
from .io.outputs import (
    JsonSubmissionStore,
    build_submission,
    results_frame,
    summarize,
    write_report,
    write_results,
)
from .validate.engine import ValidationEngine


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the photo validation gate."""
    parser = argparse.ArgumentParser(
        description="Check that photos plausibly show the landmark they are tagged with."
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "--photo",
        help="Path to a single photo to validate (requires --landmark).",
    )
    mode.add_argument(
        "--input",
        help="CSV file with landmark,photo[,city] columns for batch validation.",
    )
    mode.add_argument(
        "--lookup",
        metavar="NAME",
        help="Resolve NAME to its reference image URL and exit.",
    )
    parser.add_argument("--landmark", help="Landmark the photo claims to show.")
    parser.add_argument(
        "--out",
        default=None,
        help="Directory where batch results are written (batch mode).",
    )
    parser.add_argument("--identity", default="anonymous", help="Submitter identity.")
    parser.add_argument("--city", default="", help="City the landmark belongs to.")
    parser.add_argument(
        "--store",
        default=None,
        help="JSON-lines file where submissions and awarded points are recorded.",
    )
    parser.add_argument(
        "--policy",
        choices=("dual", "blended"),
        default=None,
        help="Threshold policy (default from configuration).",
    )
    parser.add_argument("--t-d", type=float, default=None, help="Fingerprint similarity floor.")
    parser.add_argument("--t-h", type=float, default=None, help="Histogram similarity floor.")
    parser.add_argument(
        "--blend-floor", type=float, default=None, help="Floor for the blended policy."
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity.",
    )
    return parser.parse_args(list(argv) if argv is not None else None)


def build_config(args: argparse.Namespace, base: GateConfig = DEFAULT_CONFIG) -> GateConfig:
    """Return *base* with any threshold overrides from *args* applied."""
    overrides = {}
    if args.policy is not None:
        overrides["policy"] = args.policy
    if args.t_d is not None:
        overrides["t_d"] = args.t_d
    if args.t_h is not None:
        overrides["t_h"] = args.t_h
    if args.blend_floor is not None:
        overrides["blend_floor"] = args.blend_floor
    return replace(base, **overrides) if overrides else base


def read_batch(path: Path) -> list[dict[str, str]]:
    """Read landmark/photo rows from the CSV at *path*."""
    if not path.exists():
        raise FileNotFoundError(f"Input file does not exist: {path}")
    with path.open(newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        rows = []
        for row in reader:
            landmark = (row.get("landmark") or "").strip()
            photo = (row.get("photo") or "").strip()
            if not landmark or not photo:
                continue
            rows.append(
                {
                    "landmark": landmark,
                    "photo": photo,
                    "city": (row.get("city") or "").strip(),
                }
            )
    return rows


def _print_result(result: ValidationResult) -> None:
    tag = "approved" if result.approved else "rejected"
    print(f"[{tag}] {result.landmark}: {result.message()}")
    if result.reference_url:
        print(f"  reference: {result.reference_url}")
    print(f"  dhash={result.dhash_score:.3f} hist={result.hist_score:.3f}")


def _run_lookup(resolver: ReferenceResolver, name: str) -> int:
    lookup = resolver.resolve(name)
    if not lookup.found:
        print(f"[lookup] {name}: no reference image available")
        return 1
    via = f" (via {lookup.title})" if lookup.title and lookup.title != name else ""
    print(f"[lookup] {name}{via} -> {lookup.url}")
    return 0


def _run_single(
    engine: ValidationEngine,
    args: argparse.Namespace,
    config: GateConfig,
) -> int:
    if not args.landmark:
        print("[error] --landmark is required with --photo")
        return 2
    photo_path = Path(args.photo)
    if not photo_path.exists():
        print(f"[error] photo does not exist: {photo_path}")
        return 2
    image_bytes = photo_path.read_bytes()
    result = engine.validate(args.landmark, image_bytes)
    _print_result(result)

    if args.store:
        store = JsonSubmissionStore(Path(args.store), config.points_per_upload)
        submission = store.record(
            build_submission(args.identity, args.city, image_bytes, result)
        )
        total = store.points_for(args.identity)
        print(f"[store] +{submission.points} pts for {args.identity} (total {total})")
    return 0 if result.approved else 1


def _run_batch(engine: ValidationEngine, args: argparse.Namespace) -> int:
    rows = read_batch(Path(args.input))
    print(f"[batch] {len(rows)} submissions")
    results: list[ValidationResult] = []
    photos: list[str] = []
    for row in tqdm(rows, desc="Validating photos", unit="photo", leave=False):
        photo_path = Path(row["photo"])
        try:
            image_bytes = photo_path.read_bytes()
        except OSError as exc:
            print(f"[warn] {photo_path}: cannot read photo ({exc})")
            continue
        try:
            result = engine.validate(row["landmark"], image_bytes)
        except InvalidInput as exc:
            print(f"[warn] {photo_path}: {exc}")
            continue
        results.append(result)
        photos.append(str(photo_path))

    report = summarize(results)
    report.notes["policy"] = engine.policy.name
    out_dir = Path(args.out) if args.out else Path("out")
    out_dir.mkdir(parents=True, exist_ok=True)
    if results:
        results_path = write_results(out_dir / "results.parquet", results_frame(results, photos))
        print(f"[batch] wrote {len(results)} rows to {results_path}")
    write_report(out_dir / "summary.json", report)

    print(f"Total: {report.total}")
    print(f"Approved: {report.approved} ({report.approval_rate * 100.0:.1f}%)")
    print(
        f"Rejected: {report.rejected} (no reference {report.no_reference},"
        f" unreadable {report.unreadable})"
    )
    return 0


def main(argv: Iterable[str] | None = None) -> int:
    """Entry point for the CLI."""
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = build_config(args)
    resolver = ReferenceResolver(WikipediaClient(config))

    if args.lookup is not None:
        try:
            return _run_lookup(resolver, args.lookup)
        except InvalidInput as exc:
            print(f"[error] {exc}")
            return 2

    with ValidationEngine(resolver, config=config) as engine:
        if args.photo:
            try:
                return _run_single(engine, args, config)
            except InvalidInput as exc:
                print(f"[error] {exc}")
                return 2
        return _run_batch(engine, args)


if __name__ == "__main__":
    raise SystemExit(main())
