"""
Sensor Template Library

Owned registry of reference C-UAS sensor templates. Every read returns a
deep copy, so callers can never mutate the registry through a returned
object; only add/update/remove change it.

Usage:
    library = SensorLibrary()
    radar = library.site("RD-01", "north-radar", GeoPosition(38.45, 27.21, 20.0),
                         azimuth_start_deg=315.0)
"""

import copy
import dataclasses
import logging
import threading
from typing import Any, Dict, List, Optional

from ..exceptions import ConfigurationError
from ..models.environment import Weather
from ..models.sensor import Capability, DetectionCurve, SensorSite
from ..physics.geo import GeoPosition

logger = logging.getLogger(__name__)

_PLACEHOLDER = GeoPosition(0.0, 0.0, 0.0)

# =============================================================================
# REFERENCE TEMPLATES
# =============================================================================

_ONE_WAY = DetectionCurve(range_exponent=2.0)
_EMISSION = DetectionCurve(range_exponent=2.0, rcs_exponent=0.0)

# (id, name, capability, nominal, max, min, az width, el max, ew sens,
#  curve, latency, accuracy, FAR, extra fields)
_TEMPLATE_TABLE = [
    ("RD-01", "Pulse Doppler Radar - Short Range", Capability.RADAR,
     2000.0, 4800.0, 50.0, 90.0, 20.0, 0.9, DetectionCurve(), 0.5, 3.0, 0.015,
     {"weather_factors": {Weather.RAIN: 0.85, Weather.FOG: 0.95, Weather.SNOW: 0.80}}),
    ("RD-02", "FMCW Radar - Medium Range", Capability.RADAR,
     3000.0, 8000.0, 30.0, 360.0, 30.0, 0.9, DetectionCurve(), 0.3, 5.0, 0.01,
     {"weather_factors": {Weather.RAIN: 0.88, Weather.FOG: 0.96, Weather.SNOW: 0.82}}),
    ("RD-03", "Phased Array 3D Radar - Long Range", Capability.RADAR,
     5000.0, 15000.0, 100.0, 360.0, 60.0, 0.85, DetectionCurve(), 0.2, 8.0, 0.008,
     {"weather_factors": {Weather.RAIN: 0.90, Weather.FOG: 0.97, Weather.SNOW: 0.85}}),
    ("EO-01", "Daylight EO Camera - PTZ", Capability.EO_IR,
     1500.0, 3000.0, 10.0, 360.0, 60.0, 0.0, _ONE_WAY, 0.8, 5.0, 0.005,
     {"classification_base": 0.90, "payload_id_probability": 0.80}),
    ("EO-02", "Cooled LWIR Thermal Imager", Capability.IR,
     2000.0, 4000.0, 10.0, 360.0, 60.0, 0.0, _ONE_WAY, 0.6, 6.0, 0.008, {}),
    ("RF-01", "Wideband RF Detector", Capability.RF,
     3000.0, 5000.0, 0.0, 360.0, 90.0, 0.8, _EMISSION, 1.0, 50.0, 0.003,
     {"iff_accuracy": 0.98}),
    ("RF-02", "RF+ Protocol Analyser with DF", Capability.RF_PLUS,
     4000.0, 7000.0, 0.0, 360.0, 90.0, 0.7, _EMISSION, 0.8, 20.0, 0.002,
     {"iff_accuracy": 0.99}),
    ("AC-01", "Acoustic Microphone Array", Capability.ACOUSTIC,
     300.0, 600.0, 0.0, 360.0, 90.0, 0.0, _ONE_WAY, 1.5, 15.0, 0.02, {}),
    ("MS-01", "Multispectral EO/IR/Laser Suite", Capability.MULTISPECTRAL,
     2500.0, 5000.0, 10.0, 360.0, 70.0, 0.0, _ONE_WAY, 0.5, 2.0, 0.004,
     {"payload_id_probability": 0.85}),
]


def _build_templates() -> Dict[str, SensorSite]:
    templates = {}
    for (sensor_id, name, capability, nominal, max_range, min_range, az_width, el_max,
         ew_sens, curve, latency, accuracy, far, extra) in _TEMPLATE_TABLE:
        templates[sensor_id] = SensorSite(
            sensor_id=sensor_id,
            name=name,
            capability=capability,
            position=_PLACEHOLDER,
            nominal_range_m=nominal,
            max_range_m=max_range,
            min_range_m=min_range,
            azimuth_width_deg=az_width,
            elevation_max_deg=el_max,
            ew_sensitivity=ew_sens,
            curve=curve,
            latency_mean_s=latency,
            latency_std_s=latency * 0.2,
            position_accuracy_m=accuracy,
            false_alarm_rate=far,
            **extra,
        )
    return templates


# =============================================================================
# REGISTRY
# =============================================================================


class SensorLibrary:
    """
    Copy-on-read registry of sensor templates.

    Mutations are serialized with a lock; they must not run while
    evaluations that read the library are in flight.
    """

    def __init__(self, include_defaults: bool = True) -> None:
        self._templates: Dict[str, SensorSite] = _build_templates() if include_defaults else {}
        self._lock = threading.Lock()

    def get(self, template_id: str) -> SensorSite:
        """Copy of a template; ConfigurationError if unknown."""
        with self._lock:
            template = self._templates.get(template_id)
            if template is None:
                raise ConfigurationError(f"unknown sensor template {template_id!r}")
            return copy.deepcopy(template)

    def find(self, template_id: str) -> Optional[SensorSite]:
        with self._lock:
            template = self._templates.get(template_id)
            return copy.deepcopy(template) if template is not None else None

    def all(self) -> List[SensorSite]:
        """Copies of every template, in registration order."""
        with self._lock:
            return [copy.deepcopy(t) for t in self._templates.values()]

    def by_capability(self, capability: Capability) -> List[SensorSite]:
        return [t for t in self.all() if t.capability is capability]

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._templates)

    def add(self, template: SensorSite) -> None:
        """Register a new template (stored as a copy)."""
        with self._lock:
            if template.sensor_id in self._templates:
                raise ConfigurationError(f"sensor template {template.sensor_id!r} already exists")
            self._templates[template.sensor_id] = copy.deepcopy(template)
        logger.info("Sensor template %s added", template.sensor_id)

    def update(self, template: SensorSite) -> None:
        """Replace an existing template (stored as a copy)."""
        with self._lock:
            if template.sensor_id not in self._templates:
                raise ConfigurationError(f"unknown sensor template {template.sensor_id!r}")
            self._templates[template.sensor_id] = copy.deepcopy(template)

    def remove(self, template_id: str) -> bool:
        """Remove a template; returns False if it was not registered."""
        with self._lock:
            return self._templates.pop(template_id, None) is not None

    def site(
        self, template_id: str, site_id: str, position: GeoPosition, **overrides: Any
    ) -> SensorSite:
        """
        Position a copy of a template as a scenario sensor.

        Args:
            template_id: Template to copy
            site_id: Sensor id of the new site
            position: Antenna position
            **overrides: SensorSite fields to replace

        Returns:
            New SensorSite
        """
        template = self.get(template_id)
        try:
            return dataclasses.replace(template, sensor_id=site_id, position=position, **overrides)
        except TypeError as exc:
            raise ConfigurationError(f"invalid override for {template_id!r}: {exc}") from exc

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, template_id: str) -> bool:
        return template_id in self._templates
