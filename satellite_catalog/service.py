"""
Satellite Data Service

Fetches, parses, classifies, filters and caches satellite element sets.

Fallback policy for ``get_active_satellites``:
1. Cache hit for the filter's key: return it, no upstream call.
2. Miss: fetch from the primary provider (CelesTrak), filter, cache, return.
3. Primary failed: fetch from the fallback provider (Space-Track), filter,
   cache, return.
4. Both failed: raise ``SatelliteFetchError`` with both causes. Nothing is
   cached and no stale or partial collection is returned.

Providers are tried strictly in order, never concurrently.

Cache keys all share the ``satellites:`` namespace:
    satellites:active:<filter fingerprint>   filtered collections
    satellites:id:<catalog id>               single records
    satellites:meta:last-fetch               summary of the last fetch
so ``clear_cache`` removes every entry this service wrote.
"""

import asyncio
import functools
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from pydantic import ValidationError

from satellite_catalog.cache import CacheStore
from satellite_catalog.classifier import classify_mission_type, classify_orbit_regime
from satellite_catalog.config import ServiceConfig
from satellite_catalog.exceptions import SatelliteFetchError, SourceUnavailableError
from satellite_catalog.logging_config import get_logger
from satellite_catalog.models import (
    DataSource,
    FetchSummary,
    ParsedTLE,
    SatelliteFilter,
    SatelliteRecord,
    SatelliteStats,
    ValueRange,
)
from satellite_catalog.orbital_mechanics import altitude
from satellite_catalog.sources import CelesTrakSource, SpaceTrackSource, TLESource
from satellite_catalog.tle_parser import TLEParser

logger = get_logger(__name__)

CACHE_NAMESPACE = "satellites"
COLLECTION_PREFIX = f"{CACHE_NAMESPACE}:active:"
RECORD_PREFIX = f"{CACHE_NAMESPACE}:id:"
LAST_FETCH_KEY = f"{CACHE_NAMESPACE}:meta:last-fetch"


class SatelliteService:
    """
    Orchestrates providers, parser, classifier and cache.

    Public operations:
    - get_active_satellites / list_active
    - get_satellite_by_id / get_by_id
    - get_stats
    - clear_cache
    - get_last_fetch
    """

    def __init__(
        self,
        cache: Optional[CacheStore],
        sources: Sequence[TLESource],
        config: Optional[ServiceConfig] = None,
        parser: Optional[TLEParser] = None,
    ):
        """
        Initialize the service.

        Args:
            cache: Shared cache store, or None to run without caching
            sources: Providers in fallback order (primary first)
            config: Service configuration (TTLs, cache switch, checksum mode)
            parser: TLE parser; built from the configuration when omitted
        """
        self.config = config or ServiceConfig()
        self.cache = cache if self.config.cache_enabled else None
        self.sources = list(sources)
        self.parser = parser or TLEParser(strict_checksum=self.config.strict_checksum)
        # In-flight fetches keyed by cache key
        self._inflight: Dict[str, asyncio.Task] = {}

        if not self.sources:
            raise ValueError("SatelliteService needs at least one source")

        logger.info(
            "SatelliteService initialized",
            sources=[source.name for source in self.sources],
            cache_enabled=self.cache is not None,
            collection_ttl=self.config.cache.ttl.satellite_data,
        )

    @classmethod
    def from_config(cls, config: ServiceConfig,
                    cache: Optional[CacheStore] = None) -> "SatelliteService":
        """Build the service with both providers in their standard order."""
        if cache is None and config.cache_enabled:
            cache = CacheStore.from_url(config.cache.url)
        sources = [
            CelesTrakSource.from_config(config.celestrak),
            SpaceTrackSource.from_config(config.space_track),
        ]
        return cls(cache, sources, config)

    # ==================== Public operations ====================

    async def get_active_satellites(
        self, satellite_filter: Optional[SatelliteFilter] = None
    ) -> List[SatelliteRecord]:
        """
        Get the active satellite collection, filtered.

        Args:
            satellite_filter: Conjunctive filter; None means no constraint

        Returns:
            Records passing the filter

        Raises:
            SatelliteFetchError: Every provider failed on a cache miss
        """
        if satellite_filter is None:
            satellite_filter = SatelliteFilter()
        cache_key = self.collection_key(satellite_filter)

        cached = await self._read_collection(cache_key)
        if cached is not None:
            logger.debug("Cache hit", key=cache_key, count=len(cached))
            return cached
        logger.debug("Cache miss", key=cache_key)

        task = self._inflight.get(cache_key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(cache_key, satellite_filter))
            self._inflight[cache_key] = task
            task.add_done_callback(functools.partial(self._forget_inflight, cache_key))
        else:
            logger.debug("Joining in-flight fetch", key=cache_key)

        records = await asyncio.shield(task)
        return list(records)

    list_active = get_active_satellites

    async def get_satellite_by_id(self, catalog_id: str) -> Optional[SatelliteRecord]:
        """
        Look up one satellite by catalog ID.

        Returns:
            The record, or None if the catalog does not contain it
        """
        catalog_id = str(catalog_id).strip()
        cache_key = f"{RECORD_PREFIX}{catalog_id}"

        if self.cache is not None:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                try:
                    return SatelliteRecord.model_validate(cached)
                except ValidationError as e:
                    logger.warning("Discarding invalid cached record", key=cache_key, error=str(e))

        satellites = await self.get_active_satellites()
        record = next((s for s in satellites if s.catalog_id == catalog_id), None)

        if record is None:
            logger.info("Satellite not found", catalog_id=catalog_id)
            return None

        if self.cache is not None:
            await self.cache.set(
                cache_key, record.model_dump(mode="json"), self.config.cache.ttl.positions
            )
        return record

    get_by_id = get_satellite_by_id

    async def get_stats(self, satellite_filter: Optional[SatelliteFilter] = None) -> SatelliteStats:
        """Statistics over the filtered collection, recomputed on every call."""
        satellites = await self.get_active_satellites(satellite_filter)
        return self.compute_stats(satellites)

    async def clear_cache(self) -> int:
        """
        Remove every entry in the ``satellites:`` namespace.

        Returns:
            Number of keys deleted
        """
        if self.cache is None:
            return 0
        return await self.cache.delete_pattern(f"{CACHE_NAMESPACE}:*")

    async def get_last_fetch(self) -> Optional[FetchSummary]:
        """Summary of the most recent successful upstream fetch, if cached."""
        if self.cache is None:
            return None
        cached = await self.cache.get(LAST_FETCH_KEY)
        if cached is None:
            return None
        try:
            return FetchSummary.model_validate(cached)
        except ValidationError:
            return None

    # ==================== Pure helpers ====================

    @staticmethod
    def collection_key(satellite_filter: SatelliteFilter) -> str:
        return f"{COLLECTION_PREFIX}{satellite_filter.fingerprint()}"

    @staticmethod
    def apply_filters(
        satellites: Sequence[SatelliteRecord], satellite_filter: Optional[SatelliteFilter]
    ) -> List[SatelliteRecord]:
        if satellite_filter is None:
            return list(satellites)
        return [s for s in satellites if satellite_filter.matches(s)]

    @staticmethod
    def compute_stats(satellites: Sequence[SatelliteRecord]) -> SatelliteStats:
        stats = SatelliteStats(total=len(satellites))
        if not satellites:
            return stats

        for satellite in satellites:
            if satellite.is_active:
                stats.active += 1
            else:
                stats.inactive += 1
            mission = satellite.mission_type.value
            regime = satellite.orbit_regime.value
            country = satellite.metadata.country
            stats.by_mission_type[mission] = stats.by_mission_type.get(mission, 0) + 1
            stats.by_orbit_regime[regime] = stats.by_orbit_regime.get(regime, 0) + 1
            stats.by_country[country] = stats.by_country.get(country, 0) + 1

        altitudes = np.array([s.altitude for s in satellites], dtype=float)
        stats.average_altitude = float(np.mean(altitudes))
        stats.altitude_range = ValueRange(min=float(np.min(altitudes)), max=float(np.max(altitudes)))
        return stats

    @staticmethod
    def build_record(parsed: ParsedTLE, data_source: DataSource,
                     fetched_at: Optional[datetime] = None) -> SatelliteRecord:
        """Classify a parsed TLE and wrap it as a catalog record."""
        elements = parsed.elements
        return SatelliteRecord(
            catalog_id=parsed.catalog_id,
            name=parsed.name,
            mission_type=classify_mission_type(parsed.name),
            orbit_regime=classify_orbit_regime(
                altitude(elements.semi_major_axis), elements.inclination
            ),
            elements=elements,
            metadata=parsed.metadata,
            is_active=True,
            last_updated=fetched_at or datetime.now(timezone.utc),
            data_source=data_source,
            line1=parsed.line1,
            line2=parsed.line2,
        )

    # ==================== Fetch pipeline ====================

    async def _fetch_and_store(
        self, cache_key: str, satellite_filter: SatelliteFilter
    ) -> List[SatelliteRecord]:
        satellites, summary = await self._fetch_from_sources()
        filtered = self.apply_filters(satellites, satellite_filter)

        logger.info(
            "Satellite data fetched",
            source=summary.data_source.value,
            count=len(filtered),
            original_count=len(satellites),
            rejected=summary.rejected_count,
            filter=satellite_filter.fingerprint(),
        )

        if self.cache is not None:
            await self.cache.set(
                cache_key,
                [s.model_dump(mode="json") for s in filtered],
                self.config.cache.ttl.satellite_data,
            )
            await self.cache.set(
                LAST_FETCH_KEY, summary.model_dump(mode="json"), self.config.cache.ttl.metadata
            )
        return filtered

    async def _fetch_from_sources(self) -> Tuple[List[SatelliteRecord], FetchSummary]:
        errors: Dict[str, Exception] = {}

        for source in self.sources:
            logger.info("Fetching from provider", provider=source.name)
            try:
                entries = await source.fetch_raw()
            except SourceUnavailableError as e:
                logger.error("Provider unavailable", provider=source.name, error=str(e))
                errors[source.name] = e
                continue

            return self._build_collection(entries, source.data_source)

        raise SatelliteFetchError(
            "SATELLITE_FETCH_FAILED: Failed to fetch satellite data from all sources",
            errors,
        )

    def _build_collection(self, entries, data_source: DataSource):
        fetched_at = datetime.now(timezone.utc)
        parsed = self.parser.parse_entries(entries)

        satellites: List[SatelliteRecord] = []
        seen = set()
        for item in parsed:
            # The same object appears in several CelesTrak categories
            if item.catalog_id in seen:
                continue
            seen.add(item.catalog_id)
            satellites.append(self.build_record(item, data_source, fetched_at))

        summary = FetchSummary(
            data_source=data_source,
            fetched_at=fetched_at,
            record_count=len(satellites),
            rejected_count=len(entries) - len(parsed),
        )
        return satellites, summary

    def _forget_inflight(self, cache_key: str, task: asyncio.Task) -> None:
        self._inflight.pop(cache_key, None)
        # Mark the failure as retrieved even if every waiter was cancelled
        if not task.cancelled():
            task.exception()

    async def _read_collection(self, cache_key: str) -> Optional[List[SatelliteRecord]]:
        if self.cache is None:
            return None
        cached = await self.cache.get(cache_key)
        if cached is None:
            return None
        if not isinstance(cached, list):
            logger.warning("Discarding cached collection of wrong shape", key=cache_key)
            return None
        try:
            return [SatelliteRecord.model_validate(item) for item in cached]
        except ValidationError as e:
            logger.warning("Discarding invalid cached collection", key=cache_key, error=str(e))
            return None

    async def close(self) -> None:
        for source in self.sources:
            source.close()
        if self.cache is not None:
            await self.cache.close()
