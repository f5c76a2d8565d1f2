"""
Tests for the satellite data service

Exercises the fallback chain, caching, filtering, statistics and in-flight
request coalescing against stub providers and an in-memory Redis.

Run with:
    python -m pytest tests/test_service.py -v
"""

import asyncio
import gc
import json
import unittest

from helpers import (
    ALL_ENTRIES,
    GEO,
    GPS,
    HEO,
    ISS,
    ISS_LINE2,
    NOAA,
    STARLINK,
    BrokenRedis,
    FakeRedis,
    celestrak_stub,
    space_track_stub,
)
from satellite_catalog.cache import CacheStore
from satellite_catalog.config import ServiceConfig
from satellite_catalog.exceptions import SatelliteFetchError, SourceUnavailableError, UpstreamError
from satellite_catalog.models import (
    DataSource,
    MissionType,
    OrbitRegime,
    SatelliteFilter,
    TLEEntry,
    ValueRange,
)
from satellite_catalog.service import LAST_FETCH_KEY, SatelliteService


def unavailable(provider: str) -> SourceUnavailableError:
    cause = UpstreamError("HTTP 503 (SERVICE_UNAVAILABLE)", provider, status_code=503)
    return SourceUnavailableError(f"{provider} is down", provider, causes=[cause])


class ServiceTestCase(unittest.IsolatedAsyncioTestCase):

    def make_service(self, primary=None, fallback=None, redis_client=None, config=None):
        self.redis = redis_client if redis_client is not None else FakeRedis()
        self.primary = primary if primary is not None else celestrak_stub(ALL_ENTRIES)
        self.fallback = fallback if fallback is not None else space_track_stub(ALL_ENTRIES)
        return SatelliteService(
            CacheStore(self.redis), [self.primary, self.fallback], config or ServiceConfig()
        )


class TestFallbackChain(ServiceTestCase):

    async def test_primary_provider_serves_request(self):
        service = self.make_service()

        satellites = await service.get_active_satellites()

        self.assertEqual(len(satellites), len(ALL_ENTRIES))
        self.assertTrue(all(s.data_source == DataSource.CELESTRAK for s in satellites))
        self.assertEqual(self.primary.calls, 1)
        self.assertEqual(self.fallback.calls, 0)

    async def test_fallback_when_primary_unavailable(self):
        service = self.make_service(primary=celestrak_stub(error=unavailable("celestrak")))

        satellites = await service.get_active_satellites()

        self.assertEqual(len(satellites), len(ALL_ENTRIES))
        self.assertTrue(all(s.data_source == DataSource.SPACE_TRACK for s in satellites))
        self.assertEqual(self.primary.calls, 1)
        self.assertEqual(self.fallback.calls, 1)

    async def test_both_providers_failing(self):
        service = self.make_service(
            primary=celestrak_stub(error=unavailable("celestrak")),
            fallback=space_track_stub(error=unavailable("space-track")),
        )

        with self.assertRaises(SatelliteFetchError) as ctx:
            await service.get_active_satellites()

        error = ctx.exception
        self.assertEqual(set(error.errors), {"celestrak", "space-track"})
        self.assertTrue(error.transient)
        self.assertEqual(error.to_dict()["code"], "SATELLITE_FETCH_FAILED")
        # Nothing may be cached after a total failure
        self.assertEqual(self.redis.data, {})

    async def test_failure_is_not_remembered(self):
        primary = celestrak_stub(error=unavailable("celestrak"))
        service = self.make_service(
            primary=primary, fallback=space_track_stub(error=unavailable("space-track"))
        )
        with self.assertRaises(SatelliteFetchError):
            await service.get_active_satellites()

        primary.error = None
        primary.entries = [ISS]
        satellites = await service.get_active_satellites()

        self.assertEqual([s.catalog_id for s in satellites], ["25544"])

    async def test_empty_collection_is_a_success(self):
        service = self.make_service(primary=celestrak_stub([]))

        self.assertEqual(await service.get_active_satellites(), [])
        self.assertEqual(self.fallback.calls, 0)


class TestRecordBuilding(ServiceTestCase):

    async def test_classification(self):
        service = self.make_service()
        satellites = {s.catalog_id: s for s in await service.get_active_satellites()}

        expected = {
            "25544": (MissionType.SPACE_STATION, OrbitRegime.LOW_EARTH_ORBIT),
            "24876": (MissionType.NAVIGATION, OrbitRegime.MEDIUM_EARTH_ORBIT),
            "28884": (MissionType.UNKNOWN, OrbitRegime.GEOSTATIONARY),
            "33105": (MissionType.UNKNOWN, OrbitRegime.HIGH_EARTH_ORBIT),
            "33591": (MissionType.WEATHER, OrbitRegime.LOW_EARTH_ORBIT),
            "44713": (MissionType.COMMUNICATION, OrbitRegime.LOW_EARTH_ORBIT),
        }
        for catalog_id, (mission, regime) in expected.items():
            with self.subTest(catalog_id=catalog_id):
                self.assertEqual(satellites[catalog_id].mission_type, mission)
                self.assertEqual(satellites[catalog_id].orbit_regime, regime)

    async def test_records_are_active_and_stamped(self):
        service = self.make_service()
        satellites = await service.get_active_satellites()

        self.assertTrue(all(s.is_active for s in satellites))
        self.assertEqual(len({s.last_updated for s in satellites}), 1)
        self.assertEqual(satellites[0].metadata.country, "Unknown")

    async def test_duplicates_keep_first_occurrence(self):
        renamed = TLEEntry("ISS DUPLICATE", ISS.line1, ISS.line2)
        service = self.make_service(primary=celestrak_stub([ISS, NOAA, renamed]))

        satellites = await service.get_active_satellites()

        self.assertEqual([s.catalog_id for s in satellites], ["25544", "33591"])
        self.assertEqual(satellites[0].name, ISS.name)

    async def test_malformed_records_are_dropped(self):
        broken = TLEEntry("BROKEN", ISS.line1, ISS_LINE2[:60])
        service = self.make_service(primary=celestrak_stub([broken, NOAA]))

        satellites = await service.get_active_satellites()

        self.assertEqual([s.catalog_id for s in satellites], ["33591"])
        summary = await service.get_last_fetch()
        self.assertEqual(summary.record_count, 1)
        self.assertEqual(summary.rejected_count, 1)
        self.assertEqual(summary.data_source, DataSource.CELESTRAK)


class TestFiltering(ServiceTestCase):

    async def test_mission_type_filter(self):
        service = self.make_service()
        satellites = await service.get_active_satellites(
            SatelliteFilter(mission_types=[MissionType.WEATHER])
        )
        self.assertEqual([s.name for s in satellites], [NOAA.name])

    async def test_filters_are_conjunctive(self):
        service = self.make_service()
        satellites = await service.get_active_satellites(SatelliteFilter(
            orbit_regimes=[OrbitRegime.LOW_EARTH_ORBIT],
            mission_types=[MissionType.COMMUNICATION, MissionType.NAVIGATION],
        ))
        self.assertEqual([s.name for s in satellites], [STARLINK.name])

    async def test_mission_match_failing_altitude_is_excluded(self):
        service = self.make_service()
        satellites = await service.get_active_satellites(SatelliteFilter(
            mission_types=[MissionType.NAVIGATION, MissionType.WEATHER],
            altitude_range=ValueRange(min=0, max=2000),
        ))
        self.assertEqual([s.name for s in satellites], [NOAA.name])

    async def test_altitude_and_inclination_ranges(self):
        service = self.make_service()

        high = await service.get_active_satellites(
            SatelliteFilter(altitude_range=ValueRange(min=20000, max=40000))
        )
        self.assertEqual({s.name for s in high}, {GPS.name, GEO.name})

        equatorial = await service.get_active_satellites(
            SatelliteFilter(inclination_range=ValueRange(min=0, max=1))
        )
        self.assertEqual([s.name for s in equatorial], [GEO.name])

    async def test_empty_filter_lists_match_nothing(self):
        service = self.make_service()
        self.assertEqual(
            await service.get_active_satellites(SatelliteFilter(mission_types=[])), []
        )

    async def test_is_active_and_country_filters(self):
        service = self.make_service()

        self.assertEqual(
            await service.get_active_satellites(SatelliteFilter(is_active=False)), []
        )
        everything = await service.get_active_satellites(SatelliteFilter(countries=["Unknown"]))
        self.assertEqual(len(everything), len(ALL_ENTRIES))


class TestCaching(ServiceTestCase):

    async def test_result_is_cached_with_collection_ttl(self):
        service = self.make_service()
        await service.get_active_satellites()

        self.assertIn("satellites:active:{}", self.redis.data)
        self.assertEqual(self.redis.ttls["satellites:active:{}"], 300)
        self.assertEqual(self.redis.ttls[LAST_FETCH_KEY], 3600)

    async def test_cache_hit_skips_providers(self):
        service = self.make_service()
        first = await service.get_active_satellites()
        second = await service.get_active_satellites()

        self.assertEqual(self.primary.calls, 1)
        self.assertEqual(
            [s.model_dump() for s in first], [s.model_dump() for s in second]
        )

    async def test_prepopulated_cache_is_returned_verbatim(self):
        seeded = await self.make_service().get_active_satellites(
            SatelliteFilter(mission_types=[MissionType.WEATHER])
        )
        payload = [s.model_dump(mode="json") for s in seeded]
        payload[0]["name"] = "NOAA 19 (FROM CACHE)"

        service = self.make_service()
        weather = SatelliteFilter(mission_types=[MissionType.WEATHER])
        self.redis.data[SatelliteService.collection_key(weather)] = json.dumps(payload)

        satellites = await service.list_active(weather)

        self.assertEqual(self.primary.calls, 0)
        self.assertEqual(self.fallback.calls, 0)
        self.assertEqual([s.name for s in satellites], ["NOAA 19 (FROM CACHE)"])

    async def test_filters_have_separate_cache_entries(self):
        service = self.make_service()
        await service.get_active_satellites()
        weather = SatelliteFilter(mission_types=[MissionType.WEATHER])
        await service.get_active_satellites(weather)

        self.assertEqual(self.primary.calls, 2)
        self.assertIn(SatelliteService.collection_key(weather), self.redis.data)

    async def test_equivalent_filters_share_an_entry(self):
        service = self.make_service()
        await service.get_active_satellites(SatelliteFilter(
            mission_types=[MissionType.WEATHER, MissionType.NAVIGATION]
        ))
        await service.get_active_satellites(SatelliteFilter(
            mission_types=[MissionType.NAVIGATION, MissionType.WEATHER, MissionType.WEATHER]
        ))

        self.assertEqual(self.primary.calls, 1)

    async def test_corrupt_cache_entry_is_refetched(self):
        service = self.make_service()
        self.redis.data["satellites:active:{}"] = '[{"catalog_id": "1"}]'

        satellites = await service.get_active_satellites()

        self.assertEqual(len(satellites), len(ALL_ENTRIES))
        self.assertEqual(self.primary.calls, 1)

    async def test_unavailable_cache_degrades_to_direct_fetch(self):
        service = self.make_service(redis_client=BrokenRedis())

        first = await service.get_active_satellites()
        second = await service.get_active_satellites()

        self.assertEqual(len(first), len(ALL_ENTRIES))
        self.assertEqual(len(second), len(ALL_ENTRIES))
        self.assertEqual(self.primary.calls, 2)
        self.assertIsNone(await service.get_last_fetch())

    async def test_cache_disabled(self):
        service = self.make_service(config=ServiceConfig(cache_enabled=False))

        await service.get_active_satellites()
        await service.get_active_satellites()

        self.assertIsNone(service.cache)
        self.assertEqual(self.primary.calls, 2)
        self.assertEqual(self.redis.data, {})
        self.assertEqual(await service.clear_cache(), 0)

    async def test_clear_cache(self):
        service = self.make_service()
        await service.get_active_satellites()
        await service.get_satellite_by_id("25544")
        self.redis.data["positions:25544"] = "{}"

        deleted = await service.clear_cache()

        self.assertEqual(deleted, 3)
        self.assertEqual(list(self.redis.data), ["positions:25544"])

        await service.get_active_satellites()
        self.assertEqual(self.primary.calls, 2)

    async def test_last_fetch_summary(self):
        service = self.make_service()
        self.assertIsNone(await service.get_last_fetch())

        await service.get_active_satellites()
        summary = await service.get_last_fetch()

        self.assertEqual(summary.data_source, DataSource.CELESTRAK)
        self.assertEqual(summary.record_count, len(ALL_ENTRIES))
        self.assertEqual(summary.rejected_count, 0)


class TestLookupAndStats(ServiceTestCase):

    async def test_get_by_id(self):
        service = self.make_service()

        record = await service.get_satellite_by_id("25544")

        self.assertEqual(record.name, ISS.name)
        self.assertEqual(self.redis.ttls["satellites:id:25544"], 60)

    async def test_get_by_id_not_found(self):
        service = self.make_service()
        self.assertIsNone(await service.get_satellite_by_id("99999"))
        self.assertNotIn("satellites:id:99999", self.redis.data)

    async def test_get_by_id_served_from_record_cache(self):
        service = self.make_service()
        await service.get_by_id("44713")

        del self.redis.data["satellites:active:{}"]
        self.primary.error = unavailable("celestrak")
        self.fallback.error = unavailable("space-track")

        record = await service.get_by_id("44713")
        self.assertEqual(record.name, STARLINK.name)

    async def test_get_by_id_propagates_total_failure(self):
        service = self.make_service(
            primary=celestrak_stub(error=unavailable("celestrak")),
            fallback=space_track_stub(error=unavailable("space-track")),
        )
        with self.assertRaises(SatelliteFetchError):
            await service.get_satellite_by_id("25544")

    async def test_stats(self):
        service = self.make_service()
        satellites = await service.list_active()

        stats = await service.get_stats()

        self.assertEqual(stats.total, 6)
        self.assertEqual(stats.active, 6)
        self.assertEqual(stats.inactive, 0)
        self.assertEqual(stats.by_mission_type["unknown"], 2)
        self.assertEqual(stats.by_mission_type["weather"], 1)
        self.assertEqual(stats.by_orbit_regime["low-earth-orbit"], 3)
        self.assertEqual(stats.by_country, {"Unknown": 6})

        altitudes = [s.altitude for s in satellites]
        self.assertAlmostEqual(stats.average_altitude, sum(altitudes) / len(altitudes), places=6)
        self.assertAlmostEqual(stats.altitude_range.min, min(altitudes), places=6)
        self.assertAlmostEqual(stats.altitude_range.max, max(altitudes), places=6)

    async def test_stats_respect_filter(self):
        service = self.make_service()
        stats = await service.get_stats(SatelliteFilter(orbit_regimes=[OrbitRegime.HIGH_EARTH_ORBIT]))

        self.assertEqual(stats.total, 1)
        self.assertEqual(stats.by_orbit_regime, {"high-earth-orbit": 1})

    async def test_stats_of_empty_collection(self):
        service = self.make_service(primary=celestrak_stub([]))

        stats = await service.get_stats()

        self.assertEqual(stats.total, 0)
        self.assertEqual(stats.average_altitude, 0.0)
        self.assertEqual(stats.altitude_range.min, 0.0)
        self.assertEqual(stats.altitude_range.max, 0.0)
        self.assertEqual(stats.by_mission_type, {})

    async def test_inactive_records_counted(self):
        service = self.make_service()
        satellites = await service.get_active_satellites()
        satellites[0] = satellites[0].model_copy(update={"is_active": False})

        stats = SatelliteService.compute_stats(satellites)

        self.assertEqual(stats.active, 5)
        self.assertEqual(stats.inactive, 1)


class TestConcurrentRequests(ServiceTestCase):

    async def test_concurrent_misses_share_one_fetch(self):
        service = self.make_service(primary=celestrak_stub(ALL_ENTRIES, delay=0.01))

        results = await asyncio.gather(*[service.get_active_satellites() for _ in range(5)])

        self.assertEqual(self.primary.calls, 1)
        for result in results:
            self.assertEqual(len(result), len(ALL_ENTRIES))
        self.assertEqual(service._inflight, {})

    async def test_concurrent_failure_reaches_every_caller(self):
        service = self.make_service(
            primary=celestrak_stub(error=unavailable("celestrak"), delay=0.01),
            fallback=space_track_stub(error=unavailable("space-track")),
        )

        results = await asyncio.gather(
            service.get_active_satellites(),
            service.get_active_satellites(),
            return_exceptions=True,
        )

        self.assertEqual(self.primary.calls, 1)
        self.assertTrue(all(isinstance(r, SatelliteFetchError) for r in results))

    async def test_failed_fetch_after_all_callers_cancelled_is_not_reported(self):
        service = self.make_service(
            primary=celestrak_stub(error=unavailable("celestrak"), delay=0.01),
            fallback=space_track_stub(error=unavailable("space-track")),
        )
        reported = []
        asyncio.get_running_loop().set_exception_handler(
            lambda loop, context: reported.append(context)
        )

        caller = asyncio.ensure_future(service.get_active_satellites())
        await asyncio.sleep(0)
        fetch = service._inflight["satellites:active:{}"]

        caller.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await caller
        await asyncio.wait([fetch])
        await asyncio.sleep(0)

        self.assertTrue(fetch.done())
        self.assertFalse(fetch.cancelled())
        self.assertEqual(service._inflight, {})
        del fetch
        gc.collect()
        self.assertEqual(reported, [])

    async def test_different_filters_fetch_independently(self):
        service = self.make_service(primary=celestrak_stub(ALL_ENTRIES, delay=0.01))

        await asyncio.gather(
            service.get_active_satellites(),
            service.get_active_satellites(SatelliteFilter(mission_types=[MissionType.WEATHER])),
        )

        self.assertEqual(self.primary.calls, 2)


class TestLifecycle(ServiceTestCase):

    def test_needs_a_source(self):
        with self.assertRaises(ValueError):
            SatelliteService(None, [])

    def test_from_config_orders_providers(self):
        service = SatelliteService.from_config(ServiceConfig(cache_enabled=False))
        self.assertEqual([s.name for s in service.sources], ["celestrak", "space-track"])
        self.assertIsNone(service.cache)

    async def test_close(self):
        service = self.make_service()
        await service.close()

        self.assertTrue(self.redis.closed)
        self.primary.client.close.assert_called_once_with()


if __name__ == "__main__":
    unittest.main()
