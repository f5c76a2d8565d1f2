"""
Satellite Catalog Configuration and Constants

This module contains the physical constants used by the orbital derivations
and the runtime configuration of the upstream providers and the cache.

Constants:
    Earth's standard gravitational parameter (EGM96 / WGS-84 value) and the
    mean Earth radius used to turn a semi-major axis into an altitude.

Runtime configuration:
    Every provider carries its own base URL, timeout, retry count and retry
    delay. Values are read from the environment by ``ServiceConfig.from_env``:

    CELESTRAK_API_URL, CELESTRAK_TIMEOUT, CELESTRAK_RETRY_ATTEMPTS,
    CELESTRAK_RETRY_DELAY
    SPACE_TRACK_API_URL, SPACE_TRACK_USERNAME, SPACE_TRACK_PASSWORD,
    SPACE_TRACK_TIMEOUT, SPACE_TRACK_RETRY_ATTEMPTS, SPACE_TRACK_RETRY_DELAY
    REDIS_URL, REDIS_TTL_SATELLITE_DATA, REDIS_TTL_POSITIONS, REDIS_TTL_METADATA
    CACHE_ENABLED, STRICT_CHECKSUM

    Timeouts and retry delays are given in milliseconds, TTLs in seconds.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field

from satellite_catalog.exceptions import ConfigurationError

# Physical constants
GRAVITATIONAL_PARAMETER: float = 3.986004418e5  # Earth GM (km³/s²)
MEAN_EARTH_RADIUS_KM: float = 6371.0  # Mean Earth radius (km)
SECONDS_PER_DAY: float = 86400.0
MINUTES_PER_DAY: float = 1440.0

# Orbit regime boundaries (km above mean radius)
LEO_CEILING_KM: float = 2000.0
GEO_FLOOR_KM: float = 35786.0
GEO_CEILING_KM: float = 36000.0

# Two-digit TLE epoch years below this pivot belong to the 2000s
EPOCH_YEAR_PIVOT: int = 57

DEFAULT_CELESTRAK_URL = "https://celestrak.org/NORAD/elements"
DEFAULT_SPACE_TRACK_URL = "https://www.space-track.org"
DEFAULT_REDIS_URL = "redis://localhost:6379"


class ProviderConfig(BaseModel):
    """Connection settings for one upstream provider."""

    base_url: str
    timeout_ms: int = Field(default=10000, gt=0)
    retry_attempts: int = Field(default=3, ge=0)
    retry_delay_ms: int = Field(default=1000, ge=0)
    username: Optional[str] = None
    password: Optional[str] = None

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000.0

    @property
    def has_credentials(self) -> bool:
        return bool(self.username) and bool(self.password)


class CacheTTL(BaseModel):
    """Expiry per class of cached data, in seconds."""

    satellite_data: int = Field(default=300, gt=0)
    positions: int = Field(default=60, gt=0)
    metadata: int = Field(default=3600, gt=0)


class CacheConfig(BaseModel):
    url: str = DEFAULT_REDIS_URL
    ttl: CacheTTL = Field(default_factory=CacheTTL)


class ServiceConfig(BaseModel):
    """Top-level configuration handed to ``SatelliteService``."""

    celestrak: ProviderConfig = Field(
        default_factory=lambda: ProviderConfig(base_url=DEFAULT_CELESTRAK_URL)
    )
    space_track: ProviderConfig = Field(
        default_factory=lambda: ProviderConfig(
            base_url=DEFAULT_SPACE_TRACK_URL, timeout_ms=15000, retry_delay_ms=2000
        )
    )
    cache: CacheConfig = Field(default_factory=CacheConfig)
    cache_enabled: bool = True
    strict_checksum: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServiceConfig":
        """
        Build the configuration from environment variables.

        Parameters
        ----------
        environ : mapping, optional
            Source of variables. Defaults to ``os.environ``.

        Returns
        -------
        ServiceConfig
            Configuration with defaults applied for unset variables.
        """
        env = os.environ if environ is None else environ

        def _int(name: str, default: int) -> int:
            raw = env.get(name)
            if raw is None or raw == "":
                return default
            try:
                return int(raw)
            except ValueError:
                raise ConfigurationError(f"{name} must be an integer, got {raw!r}")

        def _bool(name: str, default: bool) -> bool:
            raw = env.get(name)
            if raw is None or raw == "":
                return default
            return raw.strip().lower() in ("1", "true", "yes", "on")

        return cls(
            celestrak=ProviderConfig(
                base_url=env.get("CELESTRAK_API_URL", DEFAULT_CELESTRAK_URL),
                timeout_ms=_int("CELESTRAK_TIMEOUT", 10000),
                retry_attempts=_int("CELESTRAK_RETRY_ATTEMPTS", 3),
                retry_delay_ms=_int("CELESTRAK_RETRY_DELAY", 1000),
            ),
            space_track=ProviderConfig(
                base_url=env.get("SPACE_TRACK_API_URL", DEFAULT_SPACE_TRACK_URL),
                username=env.get("SPACE_TRACK_USERNAME") or None,
                password=env.get("SPACE_TRACK_PASSWORD") or None,
                timeout_ms=_int("SPACE_TRACK_TIMEOUT", 15000),
                retry_attempts=_int("SPACE_TRACK_RETRY_ATTEMPTS", 3),
                retry_delay_ms=_int("SPACE_TRACK_RETRY_DELAY", 2000),
            ),
            cache=CacheConfig(
                url=env.get("REDIS_URL", DEFAULT_REDIS_URL),
                ttl=CacheTTL(
                    satellite_data=_int("REDIS_TTL_SATELLITE_DATA", 300),
                    positions=_int("REDIS_TTL_POSITIONS", 60),
                    metadata=_int("REDIS_TTL_METADATA", 3600),
                ),
            ),
            cache_enabled=_bool("CACHE_ENABLED", True),
            strict_checksum=_bool("STRICT_CHECKSUM", False),
        )

    def ensure_valid(self) -> None:
        """Raise ``ConfigurationError`` if a provider cannot be used."""
        if not self.celestrak.base_url:
            raise ConfigurationError("CelesTrak API URL is required")
        if not self.space_track.base_url:
            raise ConfigurationError("Space-Track API URL is required")
        if not self.space_track.has_credentials:
            raise ConfigurationError("Space-Track API credentials are required")
