"""
Elevation Providers

Terrain elevation sources consumed by the terrain mask.

Features:
    - ElevationProvider interface: elevation_at(lat, lon) -> metres or None
    - Flat terrain at a fixed height
    - Regular lat/lon grid (DTED/SRTM-style) with bilinear interpolation
    - Procedural terrain using multi-octave noise (Perlin-like) plus Gaussian hills

A provider signals missing data by returning None (NaN in the vectorised
path) or raising DataGapError. Consumers treat both the same way.

References:
    - MIL-PRF-89020B: Digital Terrain Elevation Data (DTED)
    - Ebert et al., "Texturing and Modeling: A Procedural Approach", 3rd Ed.
"""

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Hashable, List, Optional, Tuple

import numba
import numpy as np

from ..exceptions import DataGapError
from .constants import EARTH_RADIUS
from .geo import GeoPosition

# =============================================================================
# PROVIDER INTERFACE
# =============================================================================


class ElevationProvider(ABC):
    """Source of terrain elevation above mean sea level."""

    @abstractmethod
    def elevation_at(self, lat: float, lon: float) -> Optional[float]:
        """
        Terrain elevation at a point.

        Returns:
            Elevation [m MSL], or None when no data is available

        Raises:
            DataGapError: Alternative way of signalling missing data
        """

    @property
    @abstractmethod
    def fingerprint(self) -> Hashable:
        """Value identifying the terrain content, used as a mask-cache key."""

    def elevations(self, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
        """
        Vectorised lookup; no-data points come back as NaN.

        Subclasses override this when they can do better than a Python loop.
        """
        out = np.full(np.shape(lats), np.nan)
        for i, (lat, lon) in enumerate(zip(np.ravel(lats), np.ravel(lons))):
            try:
                value = self.elevation_at(float(lat), float(lon))
            except DataGapError:
                continue
            if value is not None:
                out.flat[i] = value
        return out


class FlatElevationProvider(ElevationProvider):
    """Uniform terrain at a fixed height."""

    def __init__(self, height_m: float = 0.0) -> None:
        self.height_m = float(height_m)

    def elevation_at(self, lat: float, lon: float) -> Optional[float]:
        return self.height_m

    def elevations(self, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
        return np.full(np.shape(lats), self.height_m)

    @property
    def fingerprint(self) -> Hashable:
        return ("flat", self.height_m)


# =============================================================================
# GRIDDED ELEVATION
# =============================================================================


class GridElevationProvider(ElevationProvider):
    """
    Regular lat/lon elevation grid.

    Rows run south to north, columns west to east. Points outside the grid,
    and cells equal to the no-data value or NaN, have no data.

    Example:
        >>> heights = np.array([[0.0, 10.0], [20.0, 30.0]])
        >>> grid = GridElevationProvider(heights, lat0=38.0, lon0=27.0, dlat=0.01, dlon=0.01)
        >>> grid.elevation_at(38.0, 27.0)
        0.0
    """

    def __init__(
        self,
        heights: np.ndarray,
        lat0: float,
        lon0: float,
        dlat: float,
        dlon: float,
        no_data: Optional[float] = -32767.0,
        strict: bool = False,
    ) -> None:
        """
        Initialize grid.

        Args:
            heights: 2D array [rows=lat, cols=lon] of elevations [m]
            lat0: Latitude of row 0 [deg]
            lon0: Longitude of column 0 [deg]
            dlat: Row spacing [deg]
            dlon: Column spacing [deg]
            no_data: Sentinel value marking voids (DTED uses -32767)
            strict: Raise DataGapError from elevation_at instead of returning None
        """
        grid = np.array(heights, dtype=np.float64)
        if grid.ndim != 2 or grid.shape[0] < 2 or grid.shape[1] < 2:
            raise ValueError("elevation grid must be 2D with at least 2x2 posts")
        if dlat <= 0 or dlon <= 0:
            raise ValueError("grid spacing must be positive")
        if no_data is not None:
            grid[grid == no_data] = np.nan

        self.heights = grid
        self.lat0 = float(lat0)
        self.lon0 = float(lon0)
        self.dlat = float(dlat)
        self.dlon = float(dlon)
        self.strict = strict
        self._fingerprint = (
            "grid",
            self.lat0,
            self.lon0,
            self.dlat,
            self.dlon,
            hashlib.sha1(np.ascontiguousarray(grid).tobytes()).hexdigest(),
        )

    @property
    def fingerprint(self) -> Hashable:
        return self._fingerprint

    def elevation_at(self, lat: float, lon: float) -> Optional[float]:
        value = float(self.elevations(np.array([lat]), np.array([lon]))[0])
        if np.isnan(value):
            if self.strict:
                raise DataGapError(lat, lon)
            return None
        return value

    def elevations(self, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
        """Bilinear interpolation; NaN outside the grid or next to a void."""
        lats = np.asarray(lats, dtype=np.float64)
        lons = np.asarray(lons, dtype=np.float64)
        rows, cols = self.heights.shape

        r = (lats - self.lat0) / self.dlat
        c = (lons - self.lon0) / self.dlon
        eps = 1e-9
        inside = (r >= -eps) & (r <= rows - 1 + eps) & (c >= -eps) & (c <= cols - 1 + eps)

        r0 = np.clip(np.floor(r).astype(np.int64), 0, rows - 2)
        c0 = np.clip(np.floor(c).astype(np.int64), 0, cols - 2)
        fr = np.clip(r - r0, 0.0, 1.0)
        fc = np.clip(c - c0, 0.0, 1.0)

        h00 = self.heights[r0, c0]
        h01 = self.heights[r0, c0 + 1]
        h10 = self.heights[r0 + 1, c0]
        h11 = self.heights[r0 + 1, c0 + 1]

        south = h00 * (1 - fc) + h01 * fc
        north = h10 * (1 - fc) + h11 * fc
        out = south * (1 - fr) + north * fr

        return np.where(inside, out, np.nan)


# =============================================================================
# PROCEDURAL TERRAIN
# =============================================================================


@numba.jit(nopython=True, cache=True)
def _hash_2d(ix: int, iy: int, seed: int) -> float:
    """Hash lattice corner to a pseudo-random value in [-1, 1]."""
    h = (ix * 374761393 + iy * 668265263 + seed) ^ (seed * 1013904223)
    h = ((h >> 13) ^ h) * 1274126177
    return ((h & 0x7FFFFFFF) / 0x7FFFFFFF) * 2 - 1


@numba.jit(nopython=True, cache=True)
def _noise_2d(x: float, y: float, seed: int) -> float:
    """Smoothstep value noise in [-1, 1]."""
    xi = int(np.floor(x))
    yi = int(np.floor(y))
    xf = x - xi
    yf = y - yi

    u = xf * xf * (3 - 2 * xf)
    v = yf * yf * (3 - 2 * yf)

    n00 = _hash_2d(xi, yi, seed)
    n10 = _hash_2d(xi + 1, yi, seed)
    n01 = _hash_2d(xi, yi + 1, seed)
    n11 = _hash_2d(xi + 1, yi + 1, seed)

    nx0 = n00 * (1 - u) + n10 * u
    nx1 = n01 * (1 - u) + n11 * u
    return nx0 * (1 - v) + nx1 * v


@numba.jit(nopython=True, cache=True)
def _fractal_noise_field(
    xs: np.ndarray,
    ys: np.ndarray,
    octaves: int,
    persistence: float,
    lacunarity: float,
    seed: int,
) -> np.ndarray:
    """
    Multi-octave fractal noise over arrays of local coordinates.

    Args:
        xs, ys: Coordinates already divided by the feature scale
        octaves: Number of noise layers
        persistence: Amplitude reduction per octave
        lacunarity: Frequency increase per octave
        seed: Terrain seed

    Returns:
        Noise values in [-1, 1], same length as xs
    """
    out = np.empty(xs.shape[0])
    for i in range(xs.shape[0]):
        total = 0.0
        amplitude = 1.0
        frequency = 1.0
        max_value = 0.0
        for _ in range(octaves):
            total += _noise_2d(xs[i] * frequency, ys[i] * frequency, seed) * amplitude
            max_value += amplitude
            amplitude *= persistence
            frequency *= lacunarity
        out[i] = total / max_value
    return out


@dataclass(frozen=True)
class ProceduralTerrainConfig:
    """
    Procedural terrain configuration.

    Attributes:
        origin: Local tangent-plane origin (altitude = base elevation)
        seed: Random seed for reproducible terrain
        scale_m: Horizontal scale of terrain features [m]
        max_height_m: Relief amplitude above base elevation [m]
        octaves: Noise detail levels
        persistence: Amplitude decay per octave
        lacunarity: Frequency increase per octave
        hills: Extra Gaussian hills as (lat, lon, height_m, radius_m)
    """

    origin: GeoPosition
    seed: int = 12345
    scale_m: float = 5000.0
    max_height_m: float = 100.0
    octaves: int = 4
    persistence: float = 0.5
    lacunarity: float = 2.0
    hills: Tuple[Tuple[float, float, float, float], ...] = field(default_factory=tuple)


class ProceduralElevationProvider(ElevationProvider):
    """Deterministic synthetic terrain for scenario design and tests."""

    def __init__(self, config: ProceduralTerrainConfig) -> None:
        self.config = config

    @property
    def fingerprint(self) -> Hashable:
        c = self.config
        return (
            "procedural",
            c.origin.lat,
            c.origin.lon,
            c.origin.alt_msl,
            c.seed,
            c.scale_m,
            c.max_height_m,
            c.octaves,
            c.persistence,
            c.lacunarity,
            c.hills,
        )

    def elevation_at(self, lat: float, lon: float) -> Optional[float]:
        return float(self.elevations(np.array([lat]), np.array([lon]))[0])

    def elevations(self, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
        c = self.config
        shape = np.shape(lats)
        lats = np.ravel(np.asarray(lats, dtype=np.float64))
        lons = np.ravel(np.asarray(lons, dtype=np.float64))

        north, east = _local_offsets(c.origin, lats, lons)
        noise = _fractal_noise_field(
            east / c.scale_m,
            north / c.scale_m,
            c.octaves,
            c.persistence,
            c.lacunarity,
            c.seed,
        )
        # Map noise [-1, 1] to [base, base + max_height]
        heights = c.origin.alt_msl + (noise + 1.0) * 0.5 * c.max_height_m

        for hill_lat, hill_lon, hill_height, hill_radius in c.hills:
            hn, he = _local_offsets(GeoPosition(hill_lat, hill_lon), lats, lons)
            heights += hill_height * np.exp(-(hn**2 + he**2) / (2 * hill_radius**2))

        return heights.reshape(shape)


def _local_offsets(
    origin: GeoPosition, lats: np.ndarray, lons: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """North/east offsets [m] of points from origin (equirectangular)."""
    north = np.radians(lats - origin.lat) * EARTH_RADIUS
    east = np.radians(lons - origin.lon) * EARTH_RADIUS * np.cos(np.radians(origin.lat))
    return north, east


def create_hill_terrain(
    origin: GeoPosition, hills: List[Tuple[float, float, float, float]]
) -> ProceduralElevationProvider:
    """Flat terrain at the origin's altitude with only the given Gaussian hills."""
    config = ProceduralTerrainConfig(origin=origin, max_height_m=0.0, hills=tuple(hills))
    return ProceduralElevationProvider(config)
