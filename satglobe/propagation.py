"""
SGP4 Propagation

Wraps the sgp4 library behind the small Propagator interface used by the
position pipeline:

- parse(line1, line2) -> propagable handle (raises ElementSetError)
- position_at(handle, when) -> Geodetic, or None when SGP4 reports an error

SGP4 produces positions in the TEME (True Equator, Mean Equinox) inertial
frame. They are rotated into the Earth-fixed frame using Greenwich Mean
Sidereal Time and converted to geodetic latitude, longitude and height on
the WGS-84 ellipsoid.

References:
    Vallado, D. A., Crawford, P., Hujsak, R., & Kelso, T. S. (2006).
    Revisiting Spacetrack Report #3. AIAA 2006-6753.
"""

import math
from datetime import datetime, timezone
from typing import Any, NamedTuple, Optional, Protocol, Sequence, Tuple

import numpy as np
from sgp4.api import Satrec, jday

from satglobe.config import WGS84_A_KM, WGS84_F
from satglobe.exceptions import ElementSetError
from satglobe.logging_config import get_logger

logger = get_logger(__name__)


# SGP4 error code meanings
SGP4_ERROR_CODES = {
    0: "No error",
    1: "Mean eccentricity < 0.0 or > 1.0",
    2: "Mean motion < 0.0",
    3: "Perturbed eccentricity < 0.0 or > 1.0",
    4: "Semi-latus rectum < 0.0",
    5: "Satellite has decayed",
    6: "Satellite has decayed (low altitude)",
}


class Geodetic(NamedTuple):
    """Geodetic coordinates (radians, radians, km above the ellipsoid)"""
    latitude: float
    longitude: float
    height: float


class Propagator(Protocol):
    """Orbital mechanics capability used by the position pipeline"""

    def parse(self, line1: str, line2: str) -> Any:
        ...

    def position_at(self, handle: Any, when: datetime) -> Optional[Geodetic]:
        ...


def julian_date(when: datetime) -> Tuple[float, float]:
    """
    Convert a datetime to a split Julian date.

    Args:
        when: Aware datetime (naive values are taken as UTC)

    Returns:
        Tuple of (julian_day, fraction) as expected by Satrec.sgp4
    """
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    when = when.astimezone(timezone.utc)
    return jday(when.year, when.month, when.day, when.hour, when.minute,
                when.second + when.microsecond / 1e6)


def gmst(jd: float, fr: float) -> float:
    """Greenwich Mean Sidereal Time (IAU-82) in radians, in [0, 2*pi)."""
    T = (jd - 2451545.0 + fr) / 36525.0
    gmst_sec = (
        67310.54841 +
        (876600.0 * 3600.0 + 8640184.812866) * T +
        0.093104 * T * T -
        6.2e-6 * T * T * T
    )
    return (gmst_sec % 86400.0) * (2.0 * math.pi / 86400.0)


def teme_to_ecef(r_teme: Sequence[float], theta: float) -> np.ndarray:
    """Rotate a TEME position about the z axis by the sidereal angle ``theta``."""
    cos_t = math.cos(theta)
    sin_t = math.sin(theta)
    return np.array([
        cos_t * r_teme[0] + sin_t * r_teme[1],
        -sin_t * r_teme[0] + cos_t * r_teme[1],
        r_teme[2]
    ])


def ecef_to_geodetic(r_ecef: Sequence[float]) -> Geodetic:
    """
    ECEF to geodetic conversion using Bowring's method.

    Args:
        r_ecef: Position vector in ECEF coordinates [x, y, z] (km)

    Returns:
        Geodetic latitude and longitude in radians, height in km
    """
    a = WGS84_A_KM
    f = WGS84_F
    b = a * (1.0 - f)
    e2 = 2.0 * f - f * f
    ep2 = e2 / (1.0 - e2)

    x, y, z = (float(c) for c in r_ecef)
    lon = math.atan2(y, x)
    p = math.sqrt(x * x + y * y)

    # Pole
    if p < 1e-10:
        lat = math.pi / 2.0 if z > 0 else -math.pi / 2.0
        return Geodetic(lat, lon, abs(z) - b)

    theta = math.atan2(z * a, p * b)
    lat = theta
    for _ in range(5):
        sin_theta = math.sin(theta)
        cos_theta = math.cos(theta)

        lat = math.atan2(
            z + ep2 * b * sin_theta ** 3,
            p - e2 * a * cos_theta ** 3
        )

        sin_lat = math.sin(lat)
        N = a / math.sqrt(1.0 - e2 * sin_lat * sin_lat)
        new_theta = math.atan2(z + e2 * N * sin_lat, p)
        if abs(new_theta - theta) < 1e-12:
            break
        theta = new_theta

    cos_lat = math.cos(lat)
    sin_lat = math.sin(lat)
    N = a / math.sqrt(1.0 - e2 * sin_lat * sin_lat)

    if cos_lat > 1e-10:
        height = p / cos_lat - N
    else:
        height = z / sin_lat - N * (1.0 - e2)

    return Geodetic(lat, lon, height)


class SGP4Propagator:
    """
    Propagator backed by sgp4.api.Satrec.

    Handles are Satrec instances. A non-zero SGP4 error code at the requested
    time yields None instead of raising, so a single degenerate element set
    never interrupts the animation loop.
    """

    def parse(self, line1: str, line2: str) -> Satrec:
        if not (line1.startswith("1 ") and line2.startswith("2 ")):
            raise ElementSetError("Element set lines must start with '1 ' and '2 '")
        try:
            satellite = Satrec.twoline2rv(line1, line2)
        except Exception as e:
            raise ElementSetError(f"Failed to parse element set: {e}") from e

        if satellite.error != 0:
            message = SGP4_ERROR_CODES.get(satellite.error, f"Unknown error code {satellite.error}")
            raise ElementSetError(f"SGP4 initialisation failed: {message}")
        return satellite

    def inertial_position(self, satellite: Satrec, when: datetime) -> Optional[np.ndarray]:
        """TEME position in km, or None if SGP4 cannot propagate to ``when``."""
        jd, fr = julian_date(when)
        error, position, _velocity = satellite.sgp4(jd, fr)
        if error != 0:
            logger.debug(
                f"SGP4 error {error} for satellite {satellite.satnum}: "
                f"{SGP4_ERROR_CODES.get(error, 'Unknown error')}"
            )
            return None

        position = np.array(position, dtype=float)
        if not np.all(np.isfinite(position)):
            return None
        return position

    def position_at(self, satellite: Satrec, when: datetime) -> Optional[Geodetic]:
        r_teme = self.inertial_position(satellite, when)
        if r_teme is None:
            return None
        jd, fr = julian_date(when)
        return ecef_to_geodetic(teme_to_ecef(r_teme, gmst(jd, fr)))
