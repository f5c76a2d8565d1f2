"""
Satellite classification heuristics.

Both classifiers are ordered rule tables evaluated top to bottom; the first
matching rule wins and a default tag is returned when nothing matches. The
tables are module constants so the priority order can be read and tested
directly.

Orbit regime rules check altitude bands before inclination bands, so a polar
satellite in low Earth orbit is classified as ``low-earth-orbit``.
"""

from typing import Callable, Sequence, Tuple

from satellite_catalog.config import GEO_CEILING_KM, GEO_FLOOR_KM, LEO_CEILING_KM
from satellite_catalog.models import MissionType, OrbitRegime

RegimeRule = Tuple[Callable[[float, float], bool], OrbitRegime]
MissionRule = Tuple[Tuple[str, ...], MissionType]

# (predicate(altitude_km, inclination_deg), regime)
ORBIT_REGIME_RULES: Sequence[RegimeRule] = (
    (lambda alt, inc: alt < LEO_CEILING_KM, OrbitRegime.LOW_EARTH_ORBIT),
    (lambda alt, inc: alt < GEO_FLOOR_KM, OrbitRegime.MEDIUM_EARTH_ORBIT),
    (lambda alt, inc: GEO_FLOOR_KM <= alt < GEO_CEILING_KM, OrbitRegime.GEOSTATIONARY),
    (lambda alt, inc: alt > GEO_CEILING_KM, OrbitRegime.HIGH_EARTH_ORBIT),
    (lambda alt, inc: abs(inc - 90.0) < 10.0, OrbitRegime.POLAR),
    (lambda alt, inc: abs(inc - 98.0) < 5.0, OrbitRegime.SUN_SYNCHRONOUS),
)

# (name substrings, mission type); names are lower-cased before matching
MISSION_TYPE_RULES: Sequence[MissionRule] = (
    (('iss', 'station'), MissionType.SPACE_STATION),
    (('gps', 'glonass', 'galileo', 'beidou'), MissionType.NAVIGATION),
    (('weather', 'meteor', 'noaa'), MissionType.WEATHER),
    (('military', 'defense', 'classified'), MissionType.MILITARY),
    (('starlink', 'oneweb', 'iridium'), MissionType.COMMUNICATION),
    (('hubble', 'james webb', 'telescope'), MissionType.SCIENTIFIC),
)


def classify_orbit_regime(altitude_km: float, inclination_deg: float) -> OrbitRegime:
    """
    Map altitude and inclination to an orbit regime.

    Args:
        altitude_km: Mean altitude above the mean Earth radius (km)
        inclination_deg: Orbital inclination (degrees)

    Returns:
        First matching regime, or ``OrbitRegime.UNKNOWN``
    """
    for predicate, regime in ORBIT_REGIME_RULES:
        if predicate(altitude_km, inclination_deg):
            return regime
    return OrbitRegime.UNKNOWN


def classify_mission_type(name: str) -> MissionType:
    """Map a free-text satellite name to a mission type."""
    lowered = (name or '').lower()
    for keywords, mission_type in MISSION_TYPE_RULES:
        if any(keyword in lowered for keyword in keywords):
            return mission_type
    return MissionType.UNKNOWN
