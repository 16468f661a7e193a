"""
CUAS-Eval Physics Package

Sensor physics for DTI evaluation.

Modules:
    - constants: Geodetic and detection-model constants
    - geo: Great-circle position, bearing and distance primitives
    - elevation: Elevation providers (flat, gridded, procedural)
    - terrain: Per-sensor terrain masks and mask cache
    - detection: Swerling-I Pd, degradations, false alarms
    - identification: Classification, payload ID and IFF

terrain, detection and identification depend on cuaseval.models and are
imported from their modules directly.
"""

from .constants import DEFAULT_PFA, EARTH_RADIUS
from .elevation import (
    ElevationProvider,
    FlatElevationProvider,
    GridElevationProvider,
    ProceduralElevationProvider,
    ProceduralTerrainConfig,
)
from .geo import GeoPosition, azimuth_in_sector, haversine_distance, initial_bearing

__all__ = [
    # Constants
    "DEFAULT_PFA",
    "EARTH_RADIUS",
    # Geo
    "GeoPosition",
    "azimuth_in_sector",
    "haversine_distance",
    "initial_bearing",
    # Elevation
    "ElevationProvider",
    "FlatElevationProvider",
    "GridElevationProvider",
    "ProceduralElevationProvider",
    "ProceduralTerrainConfig",
]
