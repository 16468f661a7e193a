"""
Target and Flight Plan Model

Ground-truth UAS targets and the waypoint flight plans that move them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from ..exceptions import ConfigurationError
from ..physics.geo import GeoPosition


class UasClass(Enum):
    """UAS size class, ordered C0 (smallest) to C4, plus special classes."""

    C0 = "C0"
    C1 = "C1"
    C2 = "C2"
    C3 = "C3"
    C4 = "C4"
    SPECIFIC = "SPECIFIC"
    UNKNOWN = "UNKNOWN"

    @property
    def rank(self) -> int:
        """Size rank for ordered classes, -1 for SPECIFIC/UNKNOWN."""
        order = ("C0", "C1", "C2", "C3", "C4")
        return order.index(self.value) if self.value in order else -1


@dataclass
class UasTarget:
    """
    Ground-truth target.

    Attributes:
        target_id: Identity, referenced by exactly one flight plan
        uas_class: Size class
        rcs_m2: Radar cross-section proxy [m²]
        has_payload: Whether the target truly carries a payload
        payload_description: Free text payload description
        is_friendly: Friend/foe truth for IFF
        emits_rf: Whether the target emits a control/video link
    """

    target_id: str
    uas_class: UasClass = UasClass.C2
    rcs_m2: float = 0.01
    has_payload: bool = False
    payload_description: str = ""
    is_friendly: bool = False
    emits_rf: bool = True
    name: str = ""


@dataclass(frozen=True)
class Waypoint:
    position: GeoPosition
    speed_mps: float
    time_s: float


@dataclass
class FlightPlan:
    """Ordered waypoints for one target; times must be non-decreasing."""

    target_id: str
    waypoints: List[Waypoint] = field(default_factory=list)

    @property
    def start_time_s(self) -> float:
        return self.waypoints[0].time_s if self.waypoints else 0.0

    @property
    def end_time_s(self) -> float:
        return self.waypoints[-1].time_s if self.waypoints else 0.0

    def validate(self) -> None:
        """
        Check the plan is usable.

        Raises:
            ConfigurationError: No waypoints, or a waypoint earlier than its predecessor
        """
        if not self.waypoints:
            raise ConfigurationError(f"flight plan for {self.target_id!r} has no waypoints")
        for index, (prev, curr) in enumerate(zip(self.waypoints, self.waypoints[1:]), start=1):
            if curr.time_s < prev.time_s:
                raise ConfigurationError(
                    f"flight plan for {self.target_id!r}: waypoint {index} at "
                    f"t={curr.time_s} precedes t={prev.time_s}"
                )

    def total_distance_m(self) -> float:
        return sum(
            a.position.distance_to(b.position)
            for a, b in zip(self.waypoints, self.waypoints[1:])
        )


@dataclass(frozen=True)
class TargetState:
    """
    Ground-truth kinematic state of a target at one timestep.

    Attributes:
        target_id: Target identity
        time_s: Scenario time [s]
        position: True position
        speed_mps: Ground speed [m/s]
        heading_deg: Course over ground [deg]
    """

    target_id: str
    time_s: float
    position: GeoPosition
    speed_mps: float = 0.0
    heading_deg: float = 0.0
