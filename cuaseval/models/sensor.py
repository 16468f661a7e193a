"""
Sensor Site Model

A positioned C-UAS sensor: capability class, coverage windows and the
parameters of its detection curve.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from ..physics.constants import DEFAULT_PFA, REFERENCE_RCS_M2
from ..physics.geo import GeoPosition
from .environment import Weather


class Capability(Enum):
    """Sensor capability class."""

    RADAR = "radar"
    RF = "rf"
    EO_IR = "eo_ir"
    ACOUSTIC = "acoustic"
    IR = "ir"
    RF_PLUS = "rf_plus"
    MULTISPECTRAL = "multispectral"

    @property
    def rf_capable(self) -> bool:
        """Sensors whose receive chain can be jammed."""
        return self in (Capability.RADAR, Capability.RF, Capability.RF_PLUS)

    @property
    def optical(self) -> bool:
        return self in (Capability.EO_IR, Capability.IR, Capability.MULTISPECTRAL)

    @property
    def emission_based(self) -> bool:
        """Sensors detecting the target's own RF emissions."""
        return self in (Capability.RF, Capability.RF_PLUS)


@dataclass(frozen=True)
class DetectionCurve:
    """
    Swerling-I detection curve parameters.

    Attributes:
        pfa: Design false-alarm probability fixing the detection threshold
        range_exponent: SNR fall-off exponent (4 = two-way radar, 2 = one-way)
        reference_rcs_m2: RCS at which the nominal range is specified [m²]
        rcs_exponent: How strongly SNR scales with RCS (0 = RCS independent)
    """

    pfa: float = DEFAULT_PFA
    range_exponent: float = 4.0
    reference_rcs_m2: float = REFERENCE_RCS_M2
    rcs_exponent: float = 1.0


@dataclass
class SensorSite:
    """
    Positioned sensor.

    Attributes:
        sensor_id: Unique identifier within a scenario
        capability: Capability class
        position: Antenna position
        nominal_range_m: Range where baseline Pd = 0.5 [m]
        max_range_m: Instrumented range; beyond it Pd = 0 [m]
        min_range_m: Blind range [m]
        azimuth_start_deg: Counter-clockwise edge of azimuth window [deg]
        azimuth_width_deg: Azimuth window width, clockwise [deg]
        elevation_min_deg: Lower edge of elevation window [deg]
        elevation_max_deg: Upper edge of elevation window [deg]
        ew_sensitivity: Susceptibility to EW in [0, 1]
        curve: Detection curve parameters
        latency_mean_s: Mean detection latency [s]
        latency_std_s: Detection latency standard deviation [s]
        position_accuracy_m: 1-sigma horizontal position error at nominal range [m]
        false_alarm_rate: Synthesized false alarms per second
        classification_base: Classification probability override (None = capability default)
        payload_id_probability: Payload identification override (None = capability default)
        iff_accuracy: Probability the friend/foe declaration is right
        id_latency_mean_s: Mean identification latency [s]
        id_latency_std_s: Identification latency standard deviation [s]
        weather_factors: Per-weather Pd multipliers overriding capability defaults
    """

    sensor_id: str
    capability: Capability
    position: GeoPosition
    nominal_range_m: float
    max_range_m: Optional[float] = None
    min_range_m: float = 0.0
    azimuth_start_deg: float = 0.0
    azimuth_width_deg: float = 360.0
    elevation_min_deg: float = -10.0
    elevation_max_deg: float = 90.0
    ew_sensitivity: float = 1.0
    curve: DetectionCurve = field(default_factory=DetectionCurve)
    latency_mean_s: float = 0.5
    latency_std_s: float = 0.1
    position_accuracy_m: float = 3.0
    false_alarm_rate: float = 0.0
    classification_base: Optional[float] = None
    payload_id_probability: Optional[float] = None
    iff_accuracy: float = 0.95
    id_latency_mean_s: float = 2.0
    id_latency_std_s: float = 0.5
    weather_factors: Dict[Weather, float] = field(default_factory=dict)
    name: str = ""

    @property
    def instrumented_range_m(self) -> float:
        """Max range, defaulting to twice the nominal range."""
        if self.max_range_m is not None:
            return self.max_range_m
        return 2.0 * self.nominal_range_m
