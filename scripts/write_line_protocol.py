#!/usr/bin/env python3
"""
Write a line-protocol file to a database.

    python scripts/write_line_protocol.py metrics.lp --db telegraf --precision s

Lines are parsed and validated locally first, so a malformed file is
rejected before anything is sent. Large files are sent in chunks.
"""
import argparse
import os
import sys
from pathlib import Path

# Add the source directory to the path
sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

from tsdb_client import (
    BatchPoints,
    ClientConfig,
    EncodingError,
    RetryPolicy,
    TSDBClient,
    TSDBClientException,
    parse_lines,
    settings,
    with_retries
)
from tsdb_client.core.logging_config import setup_logging


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not an integer") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("file", type=Path, help="line-protocol file")
    parser.add_argument("--db", default=settings.TSDB_DATABASE, help="target database")
    parser.add_argument("--precision", default=settings.TSDB_PRECISION, choices=["s", "ms", "us", "ns"])
    parser.add_argument("--chunk-size", type=positive_int, default=5000, help="points per write")
    parser.add_argument("--retries", type=positive_int, default=3, help="attempts per chunk on transport errors")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()

    try:
        points = parse_lines(args.file.read_text(encoding="utf-8"), args.precision)
    except EncodingError as e:
        print(f"❌ {args.file}: {e}")
        return 1

    print(f"📄 Parsed {len(points)} points from {args.file}")
    policy = RetryPolicy(attempts=args.retries)
    written = 0

    with TSDBClient(ClientConfig.from_settings()) as client:
        for start in range(0, len(points), args.chunk_size):
            batch = BatchPoints(args.db, precision=args.precision)
            batch.add_points(points[start:start + args.chunk_size])
            try:
                with_retries(lambda: client.write(batch), policy)
            except TSDBClientException as e:
                print(f"❌ Chunk at point {start} failed: {e}")
                print(f"💾 Wrote {written}/{len(points)} points")
                return 1
            written += len(batch)
            print(f"   💾 {written}/{len(points)}")

    print(f"✅ Wrote {written} points to {args.db}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
