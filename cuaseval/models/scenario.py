"""
Scenario Model

A test scenario bundles environment, sensors, targets and flight plans
with the seed that makes its evaluation reproducible.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..exceptions import ConfigurationError
from .environment import EnvironmentState
from .sensor import SensorSite
from .target import FlightPlan, UasTarget


class ScenarioType(Enum):
    """Operational application scenarios of the CWA 18150 methodology."""

    S1_PRISON = ("S1", "Prison")
    S2_AIRPORT = ("S2", "Airport")
    S3_NUCLEAR_PLANT = ("S3", "Nuclear Plant")
    S4_GOV_BUILDING = ("S4", "Gov. Building")
    S5_STADIUM = ("S5", "Stadium")
    S6_OUTDOOR_CONCERT = ("S6", "Outdoor Concert")
    S7_POLITICAL_RALLY = ("S7", "Political Rally")
    S8_INT_SUMMIT = ("S8", "Int. Summit")
    S9_LAND_BORDER = ("S9", "Land Border")
    S10_MARITIME_BORDER = ("S10", "Maritime Border")

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def display_name(self) -> str:
        return self.value[1]

    @classmethod
    def from_code(cls, code: str) -> "ScenarioType":
        for member in cls:
            if member.code == code:
                return member
        raise ConfigurationError(f"unknown scenario code {code!r}")


@dataclass
class Scenario:
    """
    Test scenario.

    Attributes:
        scenario_id: Unique scenario identifier
        environment: Weather, EW, terrain and obstacles
        sensors: Positioned sensors, evaluated in list order
        targets: Ground-truth targets, evaluated in list order
        flight_plans: Exactly one plan per target
        duration_s: Simulated duration [s]
        seed: Seed of the scenario's random stream
        code: Scenario type code (e.g. "S1") used for requirement lookup
        requirement_ids: Explicit requirement list (None = look up by code)
    """

    scenario_id: str
    environment: EnvironmentState
    sensors: List[SensorSite]
    targets: List[UasTarget]
    flight_plans: List[FlightPlan]
    duration_s: float
    seed: int = 0
    code: str = ""
    name: str = ""
    description: str = ""
    requirement_ids: Optional[List[str]] = None

    def plans_by_target(self) -> Dict[str, FlightPlan]:
        return {plan.target_id: plan for plan in self.flight_plans}

    def validate(self) -> None:
        """
        Reject malformed scenarios before any simulation work.

        Raises:
            ConfigurationError: On the first problem found
        """
        if self.duration_s <= 0:
            raise ConfigurationError(
                f"scenario {self.scenario_id!r}: duration must be positive, got {self.duration_s}"
            )
        if not self.sensors:
            raise ConfigurationError(f"scenario {self.scenario_id!r} has no sensors")

        sensor_ids = [s.sensor_id for s in self.sensors]
        if len(set(sensor_ids)) != len(sensor_ids):
            raise ConfigurationError(f"scenario {self.scenario_id!r}: duplicate sensor ids")
        for sensor in self.sensors:
            if sensor.nominal_range_m <= 0:
                raise ConfigurationError(
                    f"sensor {sensor.sensor_id!r}: nominal range must be positive"
                )
            if sensor.instrumented_range_m < sensor.min_range_m:
                raise ConfigurationError(
                    f"sensor {sensor.sensor_id!r}: max range below min range"
                )
            if not 0.0 < sensor.curve.pfa < 1.0:
                raise ConfigurationError(f"sensor {sensor.sensor_id!r}: pfa must be in (0, 1)")

        target_ids = [t.target_id for t in self.targets]
        if len(set(target_ids)) != len(target_ids):
            raise ConfigurationError(f"scenario {self.scenario_id!r}: duplicate target ids")

        planned = set()
        for plan in self.flight_plans:
            if plan.target_id not in target_ids:
                raise ConfigurationError(
                    f"scenario {self.scenario_id!r}: flight plan references unknown "
                    f"target {plan.target_id!r}"
                )
            if plan.target_id in planned:
                raise ConfigurationError(
                    f"scenario {self.scenario_id!r}: target {plan.target_id!r} has two flight plans"
                )
            planned.add(plan.target_id)
            plan.validate()

        missing = [tid for tid in target_ids if tid not in planned]
        if missing:
            raise ConfigurationError(
                f"scenario {self.scenario_id!r}: no flight plan for targets {missing}"
            )
