#!/usr/bin/env python3
"""Geocode the school CSV with the GSI address search API and write schools.json.

Resumable: results are cached by study_id in a JSON file that is saved every
N records and at the end, so rerunning after an interruption only geocodes
what is still missing.

Run from the project root:
    python scripts/geocode_schools.py
    python scripts/geocode_schools.py --input scripts/jukenmap_schools_final.csv --output data/schools.json
    python scripts/geocode_schools.py --seed-from data/schools.json --delay 0.5
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add backend to path when running as script
backend_dir = Path(__file__).resolve().parent.parent / "backend"
if backend_dir.exists():
    sys.path.insert(0, str(backend_dir))

from jukenmap.config import get_settings  # noqa: E402
from jukenmap.services.bulk_geocoder import BulkGeocodingPipeline  # noqa: E402
from jukenmap.services.geocode_cache import GeocodeCache  # noqa: E402
from jukenmap.services.geocoder import Geocoder  # noqa: E402
from jukenmap.services.school_loader import (  # noqa: E402
    DatasetError,
    load_dataset,
    read_schools_csv,
    write_dataset,
)

logger = logging.getLogger("geocode_schools")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Geocode school addresses and build schools.json")
    parser.add_argument("--input", type=Path, default=settings.schools_csv_path, help="School CSV")
    parser.add_argument("--output", type=Path, default=settings.schools_json_path, help="Output dataset")
    parser.add_argument("--cache", type=Path, default=settings.geocode_cache_path, help="Geocode cache JSON")
    parser.add_argument("--delay", type=float, default=settings.geocode_delay_seconds,
                        help="Seconds to wait after each geocoded record")
    parser.add_argument("--retry-delay", type=float, default=settings.geocode_retry_delay_seconds,
                        help="Extra seconds to wait after a retry with a shortened address")
    parser.add_argument("--checkpoint-every", type=int, default=settings.geocode_checkpoint_interval,
                        help="Save the cache every N records")
    parser.add_argument("--seed-from", type=Path, default=None,
                        help="Existing schools.json whose coordinates pre-populate the cache")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> dict:
    schools = read_schools_csv(args.input)
    logger.info(f"Found {len(schools)} schools in {args.input}")

    cache = GeocodeCache(args.cache)
    cache.load_from_durable_store()
    if args.seed_from:
        try:
            seeded = cache.seed_from_schools(load_dataset(args.seed_from))
            logger.info(f"Seeded {seeded} cache entries from {args.seed_from}")
        except DatasetError as e:
            logger.warning(f"Could not seed cache: {e}")

    pipeline = BulkGeocodingPipeline(
        Geocoder(),
        cache,
        delay_seconds=args.delay,
        retry_delay_seconds=args.retry_delay,
        checkpoint_interval=args.checkpoint_every,
    )
    result = await pipeline.run(schools)
    written = write_dataset(args.output, result.schools)

    summary = result.summary
    print("\n=== Summary ===")
    print(f"Total: {summary.total}")
    print(f"Success: {summary.success} (cache: {summary.from_cache}, retry: {summary.retry_resolved})")
    print(f"Failed: {summary.failed}")
    print(f"Output: {args.output} ({written} records)")
    return {"total": summary.total, "success": summary.success, "failed": summary.failed}


def main(argv: list[str] | None = None) -> dict:
    args = parse_args(argv)
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    print(f"Started at: {datetime.now(timezone.utc).isoformat()}")
    return asyncio.run(run(args))


if __name__ == "__main__":
    main()
