"""
Environment Model

Weather, electronic-warfare condition, terrain type and obstacles for a
scenario. All of it is read-only while a scenario executes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Tuple

from ..physics.geo import GeoPosition

if TYPE_CHECKING:
    from ..physics.elevation import ElevationProvider


class Weather(Enum):
    """Weather/light condition affecting detection and identification."""

    CLEAR = "clear"
    CLOUDY = "cloudy"
    RAIN = "rain"
    FOG = "fog"
    SNOW = "snow"
    NIGHT_CLEAR = "night_clear"
    NIGHT_OVERCAST = "night_overcast"

    @property
    def is_night(self) -> bool:
        return self in (Weather.NIGHT_CLEAR, Weather.NIGHT_OVERCAST)


class EwCondition(Enum):
    """
    Electronic warfare (RF jamming) condition.

    The factor is the jamming strength in [0, 1]: 0 leaves RF-capable
    sensors untouched, 1 would blind a fully sensitive sensor.
    """

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def factor(self) -> float:
        return EW_FACTORS[self]


EW_FACTORS = {
    EwCondition.NONE: 0.0,
    EwCondition.LOW: 0.2,
    EwCondition.MEDIUM: 0.5,
    EwCondition.HIGH: 0.8,
}


class TerrainType(Enum):
    FLAT = "flat"
    URBAN = "urban"
    SUBURBAN = "suburban"
    RURAL = "rural"
    FOREST = "forest"
    HILLY = "hilly"
    MOUNTAINOUS = "mountainous"
    COASTAL = "coastal"
    MARITIME = "maritime"


class ObstacleType(Enum):
    BUILDING = "building"
    TOWER = "tower"
    TREE_LINE = "tree_line"
    HILL = "hill"
    WALL = "wall"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Obstacle:
    """
    Man-made or natural obstruction adding virtual terrain to line-of-sight.

    Attributes:
        obstacle_id: Identifier
        position: Footprint centre (altitude ignored)
        height_m: Height above local ground [m]
        width_m: Footprint width [m]
        length_m: Footprint length [m]
        obstacle_type: Type tag
    """

    obstacle_id: str
    position: GeoPosition
    height_m: float
    width_m: float = 10.0
    length_m: float = 10.0
    obstacle_type: ObstacleType = ObstacleType.BUILDING

    @property
    def footprint_radius_m(self) -> float:
        """Radius of the circle enclosing the footprint's larger dimension."""
        return max(self.width_m, self.length_m) / 2.0

    def fingerprint(self) -> Tuple:
        return (
            self.position.lat,
            self.position.lon,
            self.height_m,
            self.width_m,
            self.length_m,
        )


@dataclass
class EnvironmentState:
    """
    Scenario environment.

    Attributes:
        name: Environment name
        weather: Weather/light condition
        ew_condition: EW condition
        terrain_type: Terrain category
        obstacles: Obstacles contributing to terrain masking
        elevation: Elevation provider (None = no elevation model, radials unmasked)
        ew_factor_override: Explicit EW factor in [0, 1] replacing the condition default
    """

    name: str = "default"
    weather: Weather = Weather.CLEAR
    ew_condition: EwCondition = EwCondition.NONE
    terrain_type: TerrainType = TerrainType.FLAT
    obstacles: List[Obstacle] = field(default_factory=list)
    elevation: Optional["ElevationProvider"] = None
    ew_factor_override: Optional[float] = None

    @property
    def ew_factor(self) -> float:
        """Effective EW factor, clamped to [0, 1]."""
        if self.ew_factor_override is not None:
            return min(1.0, max(0.0, float(self.ew_factor_override)))
        return self.ew_condition.factor

    def mask_fingerprint(self) -> Tuple:
        """Key for everything that influences a terrain mask."""
        elevation_key = self.elevation.fingerprint if self.elevation is not None else None
        return (elevation_key, tuple(o.fingerprint() for o in self.obstacles))
