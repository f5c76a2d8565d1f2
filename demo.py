"""
Satellite Catalog Demonstration

This script fetches the active satellite catalog through the full service
stack and prints a short report:
- Fallback from CelesTrak to Space-Track
- Redis caching of filtered collections
- Mission type and orbit regime classification
- Catalog statistics

Configuration is read from the environment (see satellite_catalog.config).

Usage:
    python demo.py [--mission TYPE] [--regime REGIME] [--id CATALOG_ID]
                   [--clear-cache] [--no-cache] [--verbose]
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from satellite_catalog.config import ServiceConfig
from satellite_catalog.exceptions import ConfigurationError, SatelliteFetchError
from satellite_catalog.logging_config import configure_logging, get_logger
from satellite_catalog.models import MissionType, OrbitRegime, SatelliteFilter
from satellite_catalog.service import SatelliteService

logger = get_logger(__name__)


def build_filter(args: argparse.Namespace) -> Optional[SatelliteFilter]:
    if not args.mission and not args.regime:
        return None
    return SatelliteFilter(
        mission_types=[MissionType(m) for m in args.mission] if args.mission else None,
        orbit_regimes=[OrbitRegime(r) for r in args.regime] if args.regime else None,
    )


async def run(args: argparse.Namespace) -> int:
    config = ServiceConfig.from_env()
    if args.no_cache:
        config.cache_enabled = False

    service = SatelliteService.from_config(config)
    try:
        if args.clear_cache:
            deleted = await service.clear_cache()
            print(f"Cleared {deleted} cache entries")

        if args.id:
            record = await service.get_satellite_by_id(args.id)
            if record is None:
                print(f"Satellite {args.id} not found")
                return 1
            print(record.model_dump_json(indent=2))
            return 0

        satellite_filter = build_filter(args)
        satellites = await service.get_active_satellites(satellite_filter)
        stats = service.compute_stats(satellites)

        print(f"Satellites: {stats.total}")
        print(f"Average altitude: {stats.average_altitude:.1f} km "
              f"(range {stats.altitude_range.min:.1f} to {stats.altitude_range.max:.1f} km)")
        print("By mission type:")
        for mission, count in sorted(stats.by_mission_type.items(), key=lambda kv: -kv[1]):
            print(f"  {mission:<16} {count}")
        print("By orbit regime:")
        for regime, count in sorted(stats.by_orbit_regime.items(), key=lambda kv: -kv[1]):
            print(f"  {regime:<20} {count}")

        for satellite in satellites[:args.limit]:
            print(f"  {satellite.catalog_id:>6}  {satellite.name:<28} "
                  f"{satellite.orbit_regime.value:<20} {satellite.altitude:10.1f} km")

        summary = await service.get_last_fetch()
        if summary is not None:
            print(f"Last fetch: {summary.data_source.value} at {summary.fetched_at.isoformat()} "
                  f"({summary.record_count} records, {summary.rejected_count} rejected)")
        return 0
    except SatelliteFetchError as e:
        logger.error("Catalog unavailable", **e.to_dict())
        return 2
    finally:
        await service.close()


def main() -> None:
    """Main demonstration entry point."""
    parser = argparse.ArgumentParser(description="Satellite Catalog Demonstration")
    parser.add_argument(
        "--mission", action="append", choices=[m.value for m in MissionType],
        help="Only show this mission type (repeatable)",
    )
    parser.add_argument(
        "--regime", action="append", choices=[r.value for r in OrbitRegime],
        help="Only show this orbit regime (repeatable)",
    )
    parser.add_argument("--id", help="Look up a single catalog number")
    parser.add_argument("--limit", type=int, default=10, help="Rows to list")
    parser.add_argument("--clear-cache", action="store_true", help="Clear cached catalog data first")
    parser.add_argument("--no-cache", action="store_true", help="Bypass Redis entirely")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    # Configure logging
    if args.verbose:
        configure_logging(level=logging.DEBUG)

    try:
        sys.exit(asyncio.run(run(args)))
    except ConfigurationError as e:
        logger.error("Invalid configuration", error=str(e))
        sys.exit(2)


if __name__ == "__main__":
    main()
