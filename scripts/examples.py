#!/usr/bin/env python3
"""
Client usage examples against a live server.

Reads the server URL and credentials from the environment (TSDB_URL,
TSDB_USERNAME, TSDB_PASSWORD). Run one example or all of them:

    python scripts/examples.py write
    python scripts/examples.py all
"""
import os
import random
import sys

# Add the source directory to the path
sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

from tsdb_client import (
    BatchPoints,
    ClientConfig,
    Query,
    TSDBClient,
    InvalidPoint,
    TSDBClientException,
    new_point,
    settings
)
from tsdb_client.core.logging_config import PerformanceLogger, setup_logging


def example_new_client() -> TSDBClient:
    """Client built from the environment (TSDB_URL, TSDB_USERNAME, TSDB_PASSWORD)."""
    return TSDBClient(ClientConfig.from_settings())


def example_new_custom_client() -> TSDBClient:
    """Client with a custom 5 second timeout."""
    return TSDBClient(ClientConfig(url=settings.TSDB_URL, timeout=5))


def example_write():
    """Write a single point."""
    with example_new_client() as client:
        bp = BatchPoints("BumbleBeeTuna", precision="s")

        pt = new_point(
            "cpu_usage",
            {"cpu": "cpu-total"},
            {"idle": 10.1, "system": 53.3, "user": 46.6},
        )
        bp.add_point(pt)

        client.write(bp)
        print(f"✅ Wrote {pt}")


def example_write_1000(sample_size: int = 1000, seed: int = 42):
    """Write 1000 points with random tags and values."""
    rng = random.Random(seed)
    regions = ["us-west1", "us-west2", "us-west3", "us-east1"]

    bp = BatchPoints("systemstats", precision="us")

    for _ in range(sample_size):
        tags = {
            "cpu": "cpu-total",
            "host": f"host{rng.randrange(1000)}",
            "region": rng.choice(regions),
        }

        idle = rng.random() * 100.0
        fields = {
            "idle": idle,
            "busy": 100.0 - idle,
        }

        try:
            bp.add_point(new_point("cpu_usage", tags, fields))
        except InvalidPoint as e:
            print(f"❌ Error: {e}")
            continue

    with example_new_client() as client:
        with PerformanceLogger(f"write {len(bp)} points"):
            client.write(bp)
    print(f"✅ Wrote {len(bp)} points to {bp.database}")


def example_query():
    """Run a query and print the results when it succeeded."""
    with example_new_client() as client:
        q = Query(
            command="SELECT count(value) FROM shapes",
            database="square_holes",
            precision="ns",
        )
        response = client.query(q)
        if response.error() is None:
            print(f"📊 {response.results}")
        else:
            print(f"⚠️ Query failed: {response.error()}")


def example_create_database():
    """Create a database with a CREATE DATABASE command."""
    with example_new_client() as client:
        response = client.query(Query(command="CREATE DATABASE telegraf"))
        if response.error() is None:
            print(f"✅ {response.results}")
        else:
            print(f"⚠️ Create failed: {response.error()}")


EXAMPLES = {
    "write": example_write,
    "write1000": example_write_1000,
    "query": example_query,
    "create-database": example_create_database,
}


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    setup_logging()

    names = list(EXAMPLES) if not argv or argv[0] == "all" else argv
    unknown = [name for name in names if name not in EXAMPLES]
    if unknown:
        print(f"❌ Unknown example(s): {', '.join(unknown)}. Choose from: {', '.join(EXAMPLES)}, all")
        return 2

    for name in names:
        print(f"\n🚀 {name}")
        print("=" * 60)
        try:
            EXAMPLES[name]()
        except TSDBClientException as e:
            print(f"❌ {name} failed: {e}")
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
