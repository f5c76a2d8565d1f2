"""
Data models for the satellite catalog.

Pydantic models give validated construction from upstream data and a stable
JSON form for the cache. Field names are snake_case; the JSON payload stored in
Redis is the output of ``model_dump(mode="json")``.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Dict, List, NamedTuple, Optional

from pydantic import BaseModel, Field, model_validator

from satellite_catalog.config import MEAN_EARTH_RADIUS_KM


class MissionType(str, Enum):
    """Mission type classification derived from the satellite name"""
    COMMUNICATION = 'communication'
    WEATHER = 'weather'
    MILITARY = 'military'
    SCIENTIFIC = 'scientific'
    NAVIGATION = 'navigation'
    SPACE_STATION = 'space-station'
    DEBRIS = 'debris'
    UNKNOWN = 'unknown'


class OrbitRegime(str, Enum):
    """Coarse orbit classification derived from altitude and inclination"""
    LOW_EARTH_ORBIT = 'low-earth-orbit'
    MEDIUM_EARTH_ORBIT = 'medium-earth-orbit'
    GEOSTATIONARY = 'geostationary'
    HIGH_EARTH_ORBIT = 'high-earth-orbit'
    POLAR = 'polar'
    SUN_SYNCHRONOUS = 'sun-synchronous'
    UNKNOWN = 'unknown'


class DataSource(str, Enum):
    """Upstream provider a record was fetched from"""
    CELESTRAK = 'celestrak'
    SPACE_TRACK = 'space-track'


class TLEEntry(NamedTuple):
    """Raw three-line element set as delivered by a provider."""
    name: str
    line1: str
    line2: str


class OrbitalElements(BaseModel):
    """Mean orbital elements at epoch plus the quantities derived from them"""
    semi_major_axis: float = Field(ge=0)  # km
    eccentricity: float = Field(ge=0, le=1)
    inclination: float  # degrees
    right_ascension: float  # RAAN, degrees
    argument_of_periapsis: float  # degrees
    mean_anomaly: float  # degrees
    epoch: datetime
    mean_motion: float  # revolutions per day
    period: float  # minutes
    mean_motion_dot: float = 0.0  # rev/day², first derivative / 2
    mean_motion_ddot: float = 0.0  # rev/day³, second derivative / 6
    bstar: float = 0.0  # 1/earth radii
    revolution_number: int = 0


class SatelliteMetadata(BaseModel):
    catalog_id: str
    international_designator: str = ''
    classification: str = 'U'
    launch_date: Optional[str] = None
    country: str = 'Unknown'
    operator: str = 'Unknown'
    mission: str = 'Unknown'


class ParsedTLE(BaseModel):
    """Parser output: identifiers and elements, not yet classified"""
    catalog_id: str
    name: str
    line1: str
    line2: str
    elements: OrbitalElements
    metadata: SatelliteMetadata


class SatelliteRecord(BaseModel):
    """Catalog entry for one tracked object"""
    catalog_id: str
    name: str
    mission_type: MissionType = MissionType.UNKNOWN
    orbit_regime: OrbitRegime = OrbitRegime.UNKNOWN
    elements: OrbitalElements
    metadata: SatelliteMetadata
    is_active: bool = True
    last_updated: datetime
    data_source: DataSource
    line1: str = ''
    line2: str = ''

    @property
    def altitude(self) -> float:
        """Mean altitude above the mean Earth radius in km (may be negative)."""
        return self.elements.semi_major_axis - MEAN_EARTH_RADIUS_KM


class ValueRange(BaseModel):
    min: float
    max: float

    @model_validator(mode='after')
    def _check_bounds(self) -> 'ValueRange':
        if self.min > self.max:
            raise ValueError(f"range minimum {self.min} exceeds maximum {self.max}")
        return self

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


class SatelliteFilter(BaseModel):
    """
    Conjunctive filter over a satellite collection.

    Every supplied criterion must hold for a record to pass; omitted (None)
    criteria impose no constraint.
    """
    mission_types: Optional[List[MissionType]] = None
    orbit_regimes: Optional[List[OrbitRegime]] = None
    countries: Optional[List[str]] = None
    operators: Optional[List[str]] = None
    is_active: Optional[bool] = None
    altitude_range: Optional[ValueRange] = None
    inclination_range: Optional[ValueRange] = None

    def fingerprint(self) -> str:
        """Canonical JSON form used to build cache keys."""
        data = self.model_dump(mode='json', exclude_none=True)
        for key, value in data.items():
            if isinstance(value, list):
                data[key] = sorted(set(value))
        return json.dumps(data, sort_keys=True, separators=(',', ':'))

    def matches(self, record: SatelliteRecord) -> bool:
        if self.mission_types is not None and record.mission_type not in self.mission_types:
            return False
        if self.orbit_regimes is not None and record.orbit_regime not in self.orbit_regimes:
            return False
        if self.countries is not None and record.metadata.country not in self.countries:
            return False
        if self.operators is not None and record.metadata.operator not in self.operators:
            return False
        if self.is_active is not None and record.is_active != self.is_active:
            return False
        if self.altitude_range is not None and not self.altitude_range.contains(record.altitude):
            return False
        if (self.inclination_range is not None
                and not self.inclination_range.contains(record.elements.inclination)):
            return False
        return True


class SatelliteStats(BaseModel):
    total: int = 0
    active: int = 0
    inactive: int = 0
    by_mission_type: Dict[str, int] = Field(default_factory=dict)
    by_orbit_regime: Dict[str, int] = Field(default_factory=dict)
    by_country: Dict[str, int] = Field(default_factory=dict)
    average_altitude: float = 0.0
    altitude_range: ValueRange = Field(default_factory=lambda: ValueRange(min=0.0, max=0.0))


class FetchSummary(BaseModel):
    """Bookkeeping for the most recent successful upstream fetch"""
    data_source: DataSource
    fetched_at: datetime
    record_count: int
    rejected_count: int = 0
