#!/usr/bin/env python3
"""Replay a CSV of samples through trendcompress.

Reads rows of ``key,timestamp,value`` (a header row is skipped when its
timestamp column is not numeric), prints every emitted point and finishes
with a per-key compression summary.

Usage
-----
::

    python scripts/compress_csv.py samples.csv --algorithm swinging-door --deviation 0.5

Options::

    --algorithm NAME     One of the six algorithms (default: deduplicate)
    --deviation D        Deadband / door half-width (default: 0.1)
    --min-duration S     Minimum seconds between emissions (default: 0)
    --max-duration S     Forced emission after S seconds (default: 86400)
    --json               Print emitted points as JSON lines
    --quiet              Only print the summary
    -v, --verbose        Enable DEBUG logging
"""

from __future__ import annotations

import argparse
import csv
import json
import logging
import sys
from collections import Counter
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from trendcompress import (  # noqa: E402
    Algorithm,
    CompressionConfig,
    CompressionError,
    InvalidValueError,
    TrendCompressor,
)
from trendcompress.ingestion import normalize_timestamp_seconds  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("csv", type=Path, help="CSV file with key,timestamp,value rows")
    parser.add_argument("--algorithm", default=Algorithm.DEDUPLICATE.value, choices=[a.value for a in Algorithm])
    parser.add_argument("--deviation", type=float, default=0.1)
    parser.add_argument("--min-duration", type=float, default=0.0)
    parser.add_argument("--max-duration", type=float, default=86400.0)
    parser.add_argument("--json", action="store_true", help="Print emitted points as JSON lines")
    parser.add_argument("--quiet", action="store_true", help="Only print the summary")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = CompressionConfig(
            algorithm=args.algorithm,
            deviation=args.deviation,
            min_duration=args.min_duration,
            max_duration=args.max_duration,
        )
    except CompressionError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    compressor = TrendCompressor(config)
    received: Counter[str] = Counter()
    emitted: Counter[str] = Counter()
    rejected = 0

    with args.csv.open(newline="") as fh:
        for row_no, row in enumerate(csv.reader(fh), start=1):
            if len(row) < 3:
                continue
            key, raw_ts, raw_value = row[0], row[1], row[2]
            if row_no == 1 and normalize_timestamp_seconds(raw_ts) is None:
                continue
            try:
                result = compressor.ingest(key, raw_ts, raw_value)
            except InvalidValueError as exc:
                rejected += 1
                print(f"row {row_no}: {exc}", file=sys.stderr)
                continue
            decision = result.decision
            received[decision.key] += 1
            if not decision.emitted:
                continue
            emitted[decision.key] += len(decision.points)
            if args.quiet:
                continue
            for point in decision.points:
                if args.json:
                    print(json.dumps({"key": decision.key, **point.model_dump()}))
                else:
                    flag = " (previous)" if point.is_previous_point else ""
                    print(f"{decision.key}\t{point.time:.6f}\t{point.value:g}\tskipped={point.skipped_count}{flag}")

    print("", file=sys.stderr)
    print(f"{'key':<30} {'received':>10} {'emitted':>10} {'ratio':>8}", file=sys.stderr)
    for key in sorted(received):
        ratio = received[key] / emitted[key] if emitted[key] else float("inf")
        print(f"{key:<30} {received[key]:>10} {emitted[key]:>10} {ratio:>8.2f}", file=sys.stderr)
    if rejected:
        print(f"rejected rows: {rejected}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
