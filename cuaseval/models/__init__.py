"""
CUAS-Eval Data Model

Modules:
    - environment: Weather, EW condition, terrain type, obstacles
    - sensor: Capability classes and positioned sensor sites
    - target: UAS targets, waypoints, flight plans, kinematic states
    - scenario: Scenario bundle and scenario type codes
    - results: Detection/track/identification records and EvaluationResult
"""

from ..physics.geo import GeoPosition
from .environment import (
    EnvironmentState,
    EwCondition,
    Obstacle,
    ObstacleType,
    TerrainType,
    Weather,
)
from .results import (
    FALSE_ALARM_ID,
    DetectionResult,
    EvaluationResult,
    IdentificationResult,
    TrackingResult,
)
from .scenario import Scenario, ScenarioType
from .sensor import Capability, DetectionCurve, SensorSite
from .target import FlightPlan, TargetState, UasClass, UasTarget, Waypoint

__all__ = [
    "GeoPosition",
    # Environment
    "EnvironmentState",
    "EwCondition",
    "Obstacle",
    "ObstacleType",
    "TerrainType",
    "Weather",
    # Sensors
    "Capability",
    "DetectionCurve",
    "SensorSite",
    # Targets
    "FlightPlan",
    "TargetState",
    "UasClass",
    "UasTarget",
    "Waypoint",
    # Scenario
    "Scenario",
    "ScenarioType",
    # Results
    "FALSE_ALARM_ID",
    "DetectionResult",
    "EvaluationResult",
    "IdentificationResult",
    "TrackingResult",
]
