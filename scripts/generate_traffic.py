"""
Synthetic Traffic Loader

Feeds generated beacons through the ingestion service into the configured
SQLite database, spreading receipt times over the last few days so the
dashboard has something to show.

Usage:
    python scripts/generate_traffic.py --sessions 500 --days 7
"""

import argparse
import asyncio
import time

import numpy as np

from beacon_analytics.config import get_settings
from beacon_analytics.config.logging import configure_logging
from beacon_analytics.data.generators import BeaconGenerator
from beacon_analytics.database.connection import close_database, get_session_factory, init_database
from beacon_analytics.errors import ValidationFault
from beacon_analytics.ingestion.dimensions import DimensionResolver
from beacon_analytics.ingestion.service import IngestionService

DAY_MS = 24 * 60 * 60 * 1000


async def load(n_sessions: int, days: int, seed: int) -> None:
    settings = get_settings()
    configure_logging("WARNING", settings=settings)

    await init_database(settings.database)
    session_factory = get_session_factory()

    rng = np.random.default_rng(seed)
    now = time.time_ns() // 1_000_000

    def spread_clock() -> int:
        return now - int(rng.integers(0, days * DAY_MS))

    service = IngestionService(
        session_factory,
        DimensionResolver(session_factory),
        ip_salt=settings.ingestion.ip_hash_salt.get_secret_value(),
        clock=spread_clock,
    )

    generator = BeaconGenerator(seed=seed)
    counts = {"pageview": 0, "event": 0, "rejected": 0}

    try:
        for beacon in generator.traffic(n_sessions=n_sessions):
            try:
                if beacon.kind == "pageview":
                    await service.record_pageview(beacon.payload, beacon.source_addr, user_agent=None)
                else:
                    await service.record_custom_event(beacon.payload)
                counts[beacon.kind] += 1
            except ValidationFault:
                counts["rejected"] += 1
    finally:
        await close_database()

    print(f"📁 Database: {settings.database.path}")
    print(f"   📄 pageviews:     {counts['pageview']:,}")
    print(f"   📄 custom events: {counts['event']:,}")
    print(f"   ⚠️  rejected:      {counts['rejected']:,}")


def main():
    parser = argparse.ArgumentParser(description="Load synthetic analytics traffic")
    parser.add_argument("--sessions", type=int, default=200, help="Number of visitor sessions (default: 200)")
    parser.add_argument("--days", type=int, default=7, help="Spread receipt times over this many days (default: 7)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    print("=" * 60)
    print("📊 Synthetic Traffic Loader")
    print("=" * 60)

    asyncio.run(load(args.sessions, args.days, args.seed))

    print("\n✅ Done")


if __name__ == "__main__":
    main()
