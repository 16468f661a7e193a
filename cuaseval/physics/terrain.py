"""
Terrain Masking and Line-of-Sight

Computes per-sensor terrain masks: for each azimuth bucket, the minimum
elevation angle above which a target is visible from the sensor antenna.

Features:
    - Radial sampling of elevation data out to the sensor's instrumented range
    - Earth curvature correction (h_eff = h - d² / 2R)
    - Obstacles as virtual terrain, independent of elevation-grid coverage
    - Missing elevation data degrades to "unmasked" for that sample
    - JIT-compiled mask-angle kernel
    - Thread-safe mask cache keyed by (sensor, environment)

References:
    - Skolnik, "Radar Handbook", 3rd Ed., Chapter 2.12 (Radar Horizon)
    - ITU-R P.526: Propagation by diffraction (terrain profile analysis)
"""

import logging
import math
import threading
from dataclasses import dataclass
from typing import Dict, Hashable, Optional, Tuple

import numba
import numpy as np

from ..exceptions import DataGapError
from ..models.environment import EnvironmentState
from ..models.sensor import SensorSite
from .constants import (
    DEFAULT_MASK_AZIMUTHS,
    DEFAULT_MASK_SAMPLES,
    EARTH_RADIUS,
    UNMASKED_ANGLE_DEG,
)
from .geo import GeoPosition, destination_points, wrap_azimuth

logger = logging.getLogger(__name__)


# =============================================================================
# MASK KERNEL
# =============================================================================


@numba.jit(nopython=True, cache=True)
def _mask_angles(
    heights: np.ndarray,
    distances: np.ndarray,
    antenna_alt: float,
    earth_radius: float,
) -> np.ndarray:
    """
    JIT-compiled mask angle per radial.

    Args:
        heights: [n_azimuths, n_samples] terrain heights [m MSL], NaN = no data
        distances: [n_azimuths, n_samples] ground distance of each sample [m]
        antenna_alt: Sensor antenna altitude [m MSL]
        earth_radius: Earth radius used for the curvature drop [m]

    Returns:
        Mask angle per radial [deg]; -90 where no sample is valid
    """
    n_az, n_samples = heights.shape
    out = np.empty(n_az)

    for i in range(n_az):
        best = UNMASKED_ANGLE_DEG
        for j in range(n_samples):
            h = heights[i, j]
            d = distances[i, j]
            if math.isnan(h) or d <= 0.0:
                continue

            # Earth curvature: height loss h = d² / (2 * Re)
            effective_height = h - (d * d) / (2.0 * earth_radius)
            angle = math.degrees(math.atan2(effective_height - antenna_alt, d))
            if angle > best:
                best = angle
        out[i] = best

    return out


# =============================================================================
# MASK RESULT
# =============================================================================


@dataclass(frozen=True)
class TerrainMaskResult:
    """
    Immutable terrain mask of one sensor in one environment.

    Radial i is sampled at azimuth i * bucket_width and bucket i covers the
    azimuths closest to it.

    Attributes:
        sensor_id: Owning sensor
        origin: Antenna position
        max_range_m: Sampled range [m]
        mask_angles_deg: Mask angle per azimuth bucket [deg]
        gap_samples: Samples with no elevation data (treated as unmasked)
    """

    sensor_id: str
    origin: GeoPosition
    max_range_m: float
    mask_angles_deg: Tuple[float, ...]
    gap_samples: int = 0

    @property
    def num_azimuths(self) -> int:
        return len(self.mask_angles_deg)

    @property
    def bucket_width_deg(self) -> float:
        return 360.0 / self.num_azimuths

    def bucket_index(self, azimuth_deg: float) -> int:
        return bucket_index(azimuth_deg, self.num_azimuths)

    def mask_angle_at(self, azimuth_deg: float) -> float:
        """Mask angle of the bucket containing azimuth_deg [deg]."""
        return self.mask_angles_deg[self.bucket_index(azimuth_deg)]

    def is_visible(self, target: GeoPosition) -> bool:
        """True if the target's elevation angle is above the mask angle at its bearing."""
        elevation = self.origin.elevation_angle_to(target)
        return elevation > self.mask_angle_at(self.origin.bearing_to(target))


def bucket_index(azimuth_deg: float, num_azimuths: int) -> int:
    """Index of the radial nearest to azimuth_deg."""
    width = 360.0 / num_azimuths
    return int(np.floor(wrap_azimuth(azimuth_deg) / width + 0.5)) % num_azimuths


# =============================================================================
# MASK COMPUTATION
# =============================================================================


def compute_mask(
    sensor: SensorSite,
    environment: EnvironmentState,
    num_azimuths: int = DEFAULT_MASK_AZIMUTHS,
    num_samples: int = DEFAULT_MASK_SAMPLES,
    max_range_m: Optional[float] = None,
    earth_radius_m: float = EARTH_RADIUS,
) -> TerrainMaskResult:
    """
    Compute the terrain mask of a sensor.

    Samples num_samples points along each of num_azimuths radials at
    d_k = k * max_range / num_samples (k = 1..num_samples). Sample height is
    the elevation provider's value, raised to the top of any obstacle whose
    footprint contains the sample. Each obstacle also adds one sample at its
    own position on its nearest radial so narrow obstacles between sample
    points still mask. Pure function of its inputs.

    Args:
        sensor: Sensor whose antenna is the viewpoint
        environment: Elevation provider and obstacles
        num_azimuths: Azimuth buckets (72 = 5° steps)
        num_samples: Samples per radial
        max_range_m: Sampled range (default: sensor instrumented range)
        earth_radius_m: Radius for the curvature correction

    Returns:
        TerrainMaskResult
    """
    if num_azimuths < 1 or num_samples < 1:
        raise ValueError("num_azimuths and num_samples must be positive")

    origin = sensor.position
    max_range = float(max_range_m if max_range_m is not None else sensor.instrumented_range_m)
    obstacles = environment.obstacles
    n_extra = len(obstacles)

    azimuths = np.arange(num_azimuths) * (360.0 / num_azimuths)
    sample_distances = np.arange(1, num_samples + 1) * (max_range / num_samples)

    width = num_samples + n_extra
    lats = np.zeros((num_azimuths, width))
    lons = np.zeros((num_azimuths, width))
    distances = np.zeros((num_azimuths, width))
    distances[:, :num_samples] = sample_distances

    for i, azimuth in enumerate(azimuths):
        lats[i, :num_samples], lons[i, :num_samples] = destination_points(
            origin.lat, origin.lon, azimuth, sample_distances
        )

    heights = np.full((num_azimuths, width), np.nan)
    gap_samples = 0
    if environment.elevation is not None:
        terrain = environment.elevation.elevations(
            lats[:, :num_samples].ravel(), lons[:, :num_samples].ravel()
        ).reshape(num_azimuths, num_samples)
        gap_samples = int(np.count_nonzero(np.isnan(terrain)))
        heights[:, :num_samples] = terrain

    for k, obstacle in enumerate(obstacles):
        top = _ground_elevation(environment, obstacle.position) + obstacle.height_m

        # Footprint intersection with regular samples
        inside = (
            _ground_distance(lats[:, :num_samples], lons[:, :num_samples], obstacle.position)
            <= obstacle.footprint_radius_m
        )
        block = heights[:, :num_samples]
        block[inside] = np.fmax(block[inside], top)

        # Dedicated sample on the obstacle's own radial
        distance = origin.distance_to(obstacle.position)
        if 0.0 < distance <= max_range:
            row = bucket_index(origin.bearing_to(obstacle.position), num_azimuths)
            column = num_samples + k
            heights[row, column] = top
            distances[row, column] = distance

    angles = _mask_angles(heights, distances, origin.alt_msl, earth_radius_m)

    if gap_samples:
        logger.warning(
            "Terrain mask for %s: %d of %d samples had no elevation data (treated as unmasked)",
            sensor.sensor_id,
            gap_samples,
            num_azimuths * num_samples,
        )
    logger.debug(
        "Terrain mask for %s: %d azimuths, max mask angle %.2f deg",
        sensor.sensor_id,
        num_azimuths,
        float(np.max(angles)),
    )

    return TerrainMaskResult(
        sensor_id=sensor.sensor_id,
        origin=origin,
        max_range_m=max_range,
        mask_angles_deg=tuple(float(a) for a in angles),
        gap_samples=gap_samples,
    )


def _ground_elevation(environment: EnvironmentState, position: GeoPosition) -> float:
    """Provider elevation at a point, 0 when unavailable."""
    if environment.elevation is None:
        return 0.0
    try:
        value = environment.elevation.elevation_at(position.lat, position.lon)
    except DataGapError:
        return 0.0
    return 0.0 if value is None else float(value)


def _ground_distance(lats: np.ndarray, lons: np.ndarray, point: GeoPosition) -> np.ndarray:
    """Vectorised haversine distance from sample arrays to a point [m]."""
    phi1 = np.radians(lats)
    phi2 = np.radians(point.lat)
    dphi = phi2 - phi1
    dlmb = np.radians(point.lon - lons)
    a = np.sin(dphi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlmb / 2) ** 2
    return 2.0 * EARTH_RADIUS * np.arcsin(np.minimum(1.0, np.sqrt(a)))


# =============================================================================
# MASK CACHE
# =============================================================================


class TerrainMaskCache:
    """
    Process-wide cache of terrain masks.

    Reads are safe from concurrent evaluations; clear() must not run while
    evaluations are in flight.
    """

    def __init__(self) -> None:
        self._masks: Dict[Hashable, TerrainMaskResult] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get_or_compute(
        self,
        sensor: SensorSite,
        environment: EnvironmentState,
        num_azimuths: int = DEFAULT_MASK_AZIMUTHS,
        num_samples: int = DEFAULT_MASK_SAMPLES,
        max_range_m: Optional[float] = None,
    ) -> TerrainMaskResult:
        """Return the cached mask for (sensor, environment), computing it once."""
        max_range = max_range_m if max_range_m is not None else sensor.instrumented_range_m
        key = (
            sensor.sensor_id,
            sensor.position,
            float(max_range),
            num_azimuths,
            num_samples,
            environment.mask_fingerprint(),
        )

        with self._lock:
            mask = self._masks.get(key)
            if mask is not None:
                self.hits += 1
                logger.debug("Terrain mask cache hit for %s", sensor.sensor_id)
                return mask

        mask = compute_mask(sensor, environment, num_azimuths, num_samples, max_range)

        with self._lock:
            self.misses += 1
            logger.debug("Terrain mask cache miss for %s", sensor.sensor_id)
            return self._masks.setdefault(key, mask)

    def __len__(self) -> int:
        return len(self._masks)

    def clear(self) -> None:
        """Drop all cached masks."""
        with self._lock:
            self._masks.clear()

    def __getstate__(self) -> dict:
        # Worker processes start with an empty cache
        return {}

    def __setstate__(self, state: dict) -> None:
        self.__init__()
