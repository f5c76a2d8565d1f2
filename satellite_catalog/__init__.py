"""
Satellite Catalog Package

Ingests Two-Line Element sets from CelesTrak (primary) and Space-Track
(fallback), derives orbital quantities, classifies each object by mission and
orbit regime, and serves filtered collections through a Redis cache.

Modules:
    tle_parser: TLE validation and fixed-column parsing
    orbital_mechanics: Semi-major axis, period and altitude from mean motion
    classifier: Mission type and orbit regime heuristics
    http_client: Retrying HTTP client bound to one provider
    sources: CelesTrak and Space-Track providers
    cache: Best-effort JSON cache over redis.asyncio
    service: Fallback chain, filtering, statistics and caching
"""

from satellite_catalog.config import ServiceConfig
from satellite_catalog.exceptions import (
    CatalogError,
    ChecksumError,
    ConfigurationError,
    InvalidTLEError,
    SatelliteFetchError,
    SourceUnavailableError,
    UpstreamError,
)
from satellite_catalog.models import (
    DataSource,
    MissionType,
    OrbitalElements,
    OrbitRegime,
    SatelliteFilter,
    SatelliteRecord,
    SatelliteStats,
    ValueRange,
)
from satellite_catalog.service import SatelliteService
from satellite_catalog.tle_parser import TLEParser

__version__ = "1.0.0"

__all__ = [
    "CatalogError",
    "ChecksumError",
    "ConfigurationError",
    "DataSource",
    "InvalidTLEError",
    "MissionType",
    "OrbitRegime",
    "OrbitalElements",
    "SatelliteFetchError",
    "SatelliteFilter",
    "SatelliteRecord",
    "SatelliteService",
    "SatelliteStats",
    "ServiceConfig",
    "SourceUnavailableError",
    "TLEParser",
    "UpstreamError",
    "ValueRange",
]
