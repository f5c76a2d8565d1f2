"""
Shared fixtures for the satellite catalog tests.

All TLE lines below are 69 characters with valid checksums.
"""

import asyncio
import fnmatch
import json
from unittest.mock import MagicMock

import redis
import requests

from satellite_catalog.models import DataSource, TLEEntry
from satellite_catalog.sources import TLESource

# ISS (September 2023), LEO
ISS_NAME = "ISS (ZARYA)"
ISS_LINE1 = "1 25544U 98067A   23259.57580000  .00012022  00000-0  21844-3 0  9995"
ISS_LINE2 = "2 25544  51.6416 220.9944 0004263 122.0101 312.2755 15.49541986415598"

# Semi-synchronous navigation satellite, MEO
GPS_NAME = "GPS BIIR-2  (PRN 13)"
GPS_LINE1 = "1 24876U 97035A   23259.50000000  .00000012  00000-0  00000+0 0  9999"
GPS_LINE2 = "2 24876  55.6000 120.0000 0050000  50.0000 310.0000  2.00563000 19008"

# Geostationary satellite with no recognizable mission keyword
GEO_NAME = "ASTRA 1KR"
GEO_LINE1 = "1 28884U 05041A   23259.50000000 -.00000150  00000-0  00000+0 0  9992"
GEO_LINE2 = "2 28884   0.0500  90.0000 0002000 270.0000  45.0000  1.00270000 65029"

# Twelve-hour-period-squared orbit above the GEO band, HEO
HEO_NAME = "MOLNIYA 1-93"
HEO_LINE1 = "1 33105U 08029A   23259.50000000  .00000010  00000-0  00000+0 0  9997"
HEO_LINE2 = "2 33105  63.4000 200.0000 0100000 270.0000  90.0000  0.50000000 12343"

# Polar weather satellite, LEO
NOAA_NAME = "NOAA 19"
NOAA_LINE1 = "1 33591U 09005A   23259.50000000  .00000100  00000-0  75000-4 0  9998"
NOAA_LINE2 = "2 33591  99.1000 250.0000 0014000 100.0000 260.0000 14.12500000 75008"

# Broadband constellation member, LEO
STARLINK_NAME = "STARLINK-1007"
STARLINK_LINE1 = "1 44713U 19074A   23259.50000000  .00002000  00000-0  14000-3 0  9996"
STARLINK_LINE2 = "2 44713  53.0500 300.0000 0001500  90.0000 270.0000 15.06400000 21000"

ISS = TLEEntry(ISS_NAME, ISS_LINE1, ISS_LINE2)
GPS = TLEEntry(GPS_NAME, GPS_LINE1, GPS_LINE2)
GEO = TLEEntry(GEO_NAME, GEO_LINE1, GEO_LINE2)
HEO = TLEEntry(HEO_NAME, HEO_LINE1, HEO_LINE2)
NOAA = TLEEntry(NOAA_NAME, NOAA_LINE1, NOAA_LINE2)
STARLINK = TLEEntry(STARLINK_NAME, STARLINK_LINE1, STARLINK_LINE2)

ALL_ENTRIES = [ISS, GPS, GEO, HEO, NOAA, STARLINK]


def as_text(*entries) -> str:
    """Render entries the way CelesTrak serves them."""
    return "\r\n".join(line for entry in entries for line in entry) + "\r\n"


def as_space_track_json(*entries):
    return [
        {
            "NORAD_CAT_ID": entry.line1[2:7].strip(),
            "TLE_LINE0": f"0 {entry.name}",
            "TLE_LINE1": entry.line1,
            "TLE_LINE2": entry.line2,
        }
        for entry in entries
    ]


def make_response(status_code=200, text="", json_body=None) -> requests.Response:
    """Build a real ``requests.Response`` without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    response.encoding = "utf-8"
    body = json.dumps(json_body) if json_body is not None else text
    response._content = body.encode("utf-8")
    response.url = "https://example.invalid/"
    return response


def make_session(*outcomes) -> MagicMock:
    """
    Mock ``requests.Session`` whose ``get`` yields the outcomes in order.

    An outcome is either a response or an exception instance to raise.
    """
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    session.auth = None
    session.get.side_effect = list(outcomes)
    return session


class FakeRedis:
    """In-memory stand-in for ``redis.asyncio.Redis`` with decoded responses."""

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.closed = False

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if key in self.data:
                del self.data[key]
                self.ttls.pop(key, None)
                removed += 1
        return removed

    async def scan_iter(self, match=None, count=None):
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def ping(self):
        return True

    async def aclose(self):
        self.closed = True


class BrokenRedis(FakeRedis):
    """Every command fails as if the server were unreachable."""

    async def get(self, key):
        raise redis.exceptions.ConnectionError("Connection refused")

    async def set(self, key, value, ex=None):
        raise redis.exceptions.ConnectionError("Connection refused")

    async def scan_iter(self, match=None, count=None):
        raise redis.exceptions.ConnectionError("Connection refused")
        yield  # pragma: no cover

    async def ping(self):
        raise redis.exceptions.ConnectionError("Connection refused")


class StubSource(TLESource):
    """Provider returning canned entries or raising a canned error."""

    def __init__(self, data_source, entries=None, error=None, delay=0.0):
        super().__init__(MagicMock())
        self.data_source = data_source
        self.entries = list(entries or [])
        self.error = error
        self.delay = delay
        self.calls = 0

    async def fetch_raw(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.entries)


def celestrak_stub(entries=None, error=None, delay=0.0) -> StubSource:
    return StubSource(DataSource.CELESTRAK, entries, error, delay)


def space_track_stub(entries=None, error=None, delay=0.0) -> StubSource:
    return StubSource(DataSource.SPACE_TRACK, entries, error, delay)
