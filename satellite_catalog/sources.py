"""
Upstream TLE providers.

There are exactly two providers and they share one narrow interface,
``fetch_raw() -> List[TLEEntry]``:

- ``CelesTrakSource``: unauthenticated plain-text endpoints, one request per
  category. A failing endpoint is logged and skipped; the provider only fails
  when every endpoint failed.
- ``SpaceTrackSource``: one JSON query with HTTP Basic authentication. Any
  failure fails the whole provider.
"""

from typing import List, Optional, Sequence

import requests

from satellite_catalog.config import ProviderConfig
from satellite_catalog.exceptions import SourceUnavailableError, UpstreamError
from satellite_catalog.http_client import HttpClient
from satellite_catalog.logging_config import get_logger
from satellite_catalog.models import DataSource, TLEEntry
from satellite_catalog.tle_parser import TLEParser

logger = get_logger(__name__)


class TLESource:
    """Common capability of the upstream providers."""

    data_source: DataSource

    def __init__(self, client: HttpClient):
        self.client = client

    @property
    def name(self) -> str:
        return self.data_source.value

    async def fetch_raw(self) -> List[TLEEntry]:
        raise NotImplementedError

    def close(self) -> None:
        self.client.close()


class CelesTrakSource(TLESource):
    """CelesTrak plain-text element sets, aggregated across categories."""

    data_source = DataSource.CELESTRAK

    ENDPOINTS = (
        "/active.txt",
        "/stations.txt",
        "/weather.txt",
        "/noaa.txt",
        "/gps-ops.txt",
        "/glo-ops.txt",
        "/galileo.txt",
        "/beidou.txt",
    )

    def __init__(self, client: HttpClient, endpoints: Optional[Sequence[str]] = None):
        super().__init__(client)
        self.endpoints = tuple(endpoints) if endpoints is not None else self.ENDPOINTS

    @classmethod
    def from_config(cls, config: ProviderConfig,
                    session: Optional[requests.Session] = None) -> "CelesTrakSource":
        return cls(HttpClient(DataSource.CELESTRAK.value, config, session=session))

    async def fetch_raw(self) -> List[TLEEntry]:
        entries: List[TLEEntry] = []
        failures: List[Exception] = []

        for endpoint in self.endpoints:
            try:
                response = await self.client.get(endpoint)
            except UpstreamError as e:
                logger.warning("CelesTrak endpoint failed", endpoint=endpoint, error=str(e))
                failures.append(e)
                continue

            batch = TLEParser.split_text(response.text)
            logger.debug("CelesTrak endpoint fetched", endpoint=endpoint, entries=len(batch))
            entries.extend(batch)

        if self.endpoints and len(failures) == len(self.endpoints):
            raise SourceUnavailableError(
                f"All {len(failures)} CelesTrak endpoints failed",
                self.name,
                causes=failures,
            )

        return entries


class SpaceTrackSource(TLESource):
    """Space-Track latest element sets via one authenticated JSON query."""

    data_source = DataSource.SPACE_TRACK

    QUERY_PATH = (
        "/basicspacedata/query/class/gp/decay_date/null-val/"
        "epoch/%3Enow-30/orderby/NORAD_CAT_ID/format/json"
    )

    def __init__(self, client: HttpClient, query_path: Optional[str] = None):
        super().__init__(client)
        self.query_path = query_path or self.QUERY_PATH

    @classmethod
    def from_config(cls, config: ProviderConfig,
                    session: Optional[requests.Session] = None) -> "SpaceTrackSource":
        auth = (config.username, config.password) if config.has_credentials else None
        return cls(HttpClient(DataSource.SPACE_TRACK.value, config, auth=auth, session=session))

    async def fetch_raw(self) -> List[TLEEntry]:
        if self.client.auth is None:
            raise SourceUnavailableError(
                "Space-Track credentials are not configured", self.name, transient=False
            )

        try:
            response = await self.client.get(self.query_path)
        except UpstreamError as e:
            raise SourceUnavailableError(
                f"Space-Track query failed: {e}", self.name, causes=[e]
            ) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise SourceUnavailableError(
                "Space-Track returned a body that is not JSON", self.name, causes=[e],
                transient=False,
            ) from e

        if not isinstance(payload, list):
            raise SourceUnavailableError(
                f"Space-Track returned {type(payload).__name__}, expected a list",
                self.name,
                transient=False,
            )

        entries = TLEParser.entries_from_json(payload)
        logger.debug("Space-Track query fetched", objects=len(payload), entries=len(entries))
        return entries
