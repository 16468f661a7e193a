"""
Geodetic Primitives

Great-circle position, bearing and distance math on a spherical Earth.

Features:
    - Immutable GeoPosition value type (lat, lon, altitude MSL)
    - Haversine distance and initial bearing
    - Slant range and elevation angle between two positions
    - Destination point along a bearing (scalar and vectorised)
    - Azimuth sector helpers for sensor coverage windows

References:
    - Sinnott, R.W., "Virtues of the Haversine", Sky and Telescope, 1984
    - Williams, E., "Aviation Formulary", V1.47
"""

import math
from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

from .constants import EARTH_RADIUS


@dataclass(frozen=True)
class GeoPosition:
    """
    Geodetic position.

    Attributes:
        lat: Latitude [deg]
        lon: Longitude [deg]
        alt_msl: Altitude above mean sea level [m]
    """

    lat: float
    lon: float
    alt_msl: float = 0.0

    def distance_to(self, other: "GeoPosition") -> float:
        """Great-circle ground distance [m] (haversine)."""
        return haversine_distance(self.lat, self.lon, other.lat, other.lon)

    def bearing_to(self, other: "GeoPosition") -> float:
        """Initial great-circle bearing to other [deg, 0 = North, clockwise]."""
        return initial_bearing(self.lat, self.lon, other.lat, other.lon)

    def slant_range_to(self, other: "GeoPosition") -> float:
        """Straight-line range combining ground distance and altitude difference [m]."""
        ground = self.distance_to(other)
        dz = other.alt_msl - self.alt_msl
        return math.sqrt(ground * ground + dz * dz)

    def elevation_angle_to(self, other: "GeoPosition") -> float:
        """
        Elevation angle from this position to other [deg].

        Positive when other is above this position's local horizontal.
        """
        ground = self.distance_to(other)
        return math.degrees(math.atan2(other.alt_msl - self.alt_msl, ground))

    def destination(self, bearing_deg: float, distance_m: float) -> "GeoPosition":
        """Point reached travelling distance_m along bearing_deg, same altitude."""
        lat, lon = destination_point(self.lat, self.lon, bearing_deg, distance_m)
        return GeoPosition(lat, lon, self.alt_msl)

    def offset(self, north_m: float, east_m: float, up_m: float = 0.0) -> "GeoPosition":
        """Small local offset using the flat-Earth approximation."""
        dlat = math.degrees(north_m / EARTH_RADIUS)
        dlon = math.degrees(east_m / (EARTH_RADIUS * math.cos(math.radians(self.lat))))
        return GeoPosition(self.lat + dlat, self.lon + dlon, self.alt_msl + up_m)

    def interpolate(self, other: "GeoPosition", fraction: float) -> "GeoPosition":
        """Linear interpolation in lat/lon/alt; fraction 0 gives self, 1 gives other."""
        return GeoPosition(
            self.lat + (other.lat - self.lat) * fraction,
            self.lon + (other.lon - self.lon) * fraction,
            self.alt_msl + (other.alt_msl - self.alt_msl) * fraction,
        )

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lon": self.lon, "alt_msl": self.alt_msl}


# =============================================================================
# SCALAR GREAT-CIRCLE FUNCTIONS
# =============================================================================


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points.

    Args:
        lat1, lon1: First point [deg]
        lat2, lon2: Second point [deg]

    Returns:
        Ground distance [m]
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = phi2 - phi1
    dlmb = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2.0 * EARTH_RADIUS * math.asin(min(1.0, math.sqrt(a)))


def initial_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial bearing from point 1 to point 2 [deg, 0-360)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dlmb = math.radians(lon2 - lon1)

    y = math.sin(dlmb) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlmb)
    return wrap_azimuth(math.degrees(math.atan2(y, x)))


def destination_point(
    lat: float, lon: float, bearing_deg: float, distance_m: float
) -> Tuple[float, float]:
    """
    Destination along a great circle.

    Args:
        lat, lon: Start point [deg]
        bearing_deg: Initial bearing [deg]
        distance_m: Distance to travel [m]

    Returns:
        (lat, lon) of destination [deg]
    """
    lats, lons = destination_points(lat, lon, bearing_deg, np.array([distance_m]))
    return float(lats[0]), float(lons[0])


def destination_points(
    lat: float, lon: float, bearing_deg: float, distances_m: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Vectorised destination points along one bearing.

    Used to sample terrain along a radial in a single numpy pass.

    Returns:
        (lats, lons) arrays [deg], same shape as distances_m
    """
    phi1 = np.radians(lat)
    lmb1 = np.radians(lon)
    theta = np.radians(bearing_deg)
    delta = np.asarray(distances_m, dtype=np.float64) / EARTH_RADIUS

    sin_phi2 = np.sin(phi1) * np.cos(delta) + np.cos(phi1) * np.sin(delta) * np.cos(theta)
    phi2 = np.arcsin(np.clip(sin_phi2, -1.0, 1.0))
    lmb2 = lmb1 + np.arctan2(
        np.sin(theta) * np.sin(delta) * np.cos(phi1),
        np.cos(delta) - np.sin(phi1) * sin_phi2,
    )

    lons = (np.degrees(lmb2) + 540.0) % 360.0 - 180.0
    return np.degrees(phi2), lons


# =============================================================================
# AZIMUTH HELPERS
# =============================================================================


def wrap_azimuth(azimuth_deg: float) -> float:
    """Wrap an azimuth into [0, 360)."""
    wrapped = azimuth_deg % 360.0
    # -1e-15 % 360 == 360.0 in floating point
    return 0.0 if wrapped >= 360.0 else wrapped


def azimuth_in_sector(azimuth_deg: float, start_deg: float, width_deg: float) -> bool:
    """
    Check whether an azimuth lies inside a clockwise sector.

    Args:
        azimuth_deg: Azimuth to test [deg]
        start_deg: Sector start (counter-clockwise edge) [deg]
        width_deg: Sector width measured clockwise [deg]; >= 360 covers everything

    Returns:
        True if the azimuth is inside the sector (edges inclusive)
    """
    if width_deg >= 360.0:
        return True
    offset = wrap_azimuth(azimuth_deg - start_deg)
    return offset <= width_deg
