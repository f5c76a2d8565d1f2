"""
Orbital Derivations

Closed-form quantities derived from TLE mean motion. These are pure functions
with no I/O, and they are total: any finite (or non-finite) input yields a
float rather than an exception.

Semi-major axis follows from Kepler's third law,

    n = sqrt(GM / a^3)  =>  a = (GM / n^2)^(1/3)

with n converted from revolutions per day to radians per second.

References:
    Vallado, D. A. (2013). Fundamentals of Astrodynamics and Applications (4th ed.).
"""

import math

from satellite_catalog.config import (
    GRAVITATIONAL_PARAMETER,
    MEAN_EARTH_RADIUS_KM,
    MINUTES_PER_DAY,
    SECONDS_PER_DAY,
)


def semi_major_axis(mean_motion: float) -> float:
    """
    Semi-major axis from mean motion.

    Args:
        mean_motion: Mean motion in revolutions per day

    Returns:
        Semi-major axis in km, or 0.0 when mean motion is not positive
    """
    if not math.isfinite(mean_motion) or mean_motion <= 0:
        return 0.0

    # rev/day -> rad/s
    n = mean_motion * 2.0 * math.pi / SECONDS_PER_DAY
    if n <= 0:
        return 0.0

    # (GM / n^2)^(1/3) without squaring n, which underflows for tiny rates
    return GRAVITATIONAL_PARAMETER ** (1.0 / 3.0) / n ** (2.0 / 3.0)


def orbital_period(mean_motion: float) -> float:
    """Orbital period in minutes, 0.0 when mean motion is not positive."""
    if not math.isfinite(mean_motion) or mean_motion <= 0:
        return 0.0
    return MINUTES_PER_DAY / mean_motion


def altitude(semi_major_axis_km: float) -> float:
    """
    Mean altitude above the mean Earth radius.

    The result is not clamped: a negative value marks malformed input and is
    left for the caller to interpret.
    """
    return semi_major_axis_km - MEAN_EARTH_RADIUS_KM
