#!/usr/bin/env python
"""Run one retention sweep against the configured object store."""

import argparse
import asyncio
import logging
import sys
from datetime import timedelta
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from webapi.storage import (
    PartialSweepFailure,
    RetentionSweeper,
    RetentionWindow,
    StorageConfig,
    create_gateway,
)


async def main() -> int:
    parser = argparse.ArgumentParser(description="Delete expired temporary uploads")
    parser.add_argument("--ttl-hours", type=int, default=None,
                        help=f"Override retention TTL (default: {StorageConfig.file_ttl_hours})")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    StorageConfig.init()
    window = StorageConfig.retention_window()
    if args.ttl_hours is not None:
        if args.ttl_hours <= 0:
            parser.error("--ttl-hours must be positive")
        window = RetentionWindow(ttl=timedelta(hours=args.ttl_hours), scan_interval=window.scan_interval)

    gateway = create_gateway()
    try:
        report = await RetentionSweeper(gateway, window).run_sweep()
    finally:
        await gateway.close()

    print("=" * 60)
    print(f"Retention sweep (TTL {window.ttl})")
    print("=" * 60)
    for kind in report.kinds:
        line = f"  {kind.resource_kind.value:<6} examined={kind.attempted} expired={kind.expired} deleted={len(kind.deleted)} missing={len(kind.missing)}"
        if kind.listing_error:
            line += f" listing_error={kind.listing_error}"
        print(line)
    print(f"  total deleted: {report.deleted} in {report.elapsed_seconds:.2f}s")

    try:
        report.raise_for_failures()
    except PartialSweepFailure as e:
        print(f"\n[WARN] {e}")
        for failure in e.failures:
            print(f"  {failure['resource_kind']} {failure['public_id']}: {failure['error']}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
