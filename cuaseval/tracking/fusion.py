"""
Multi-Sensor Detection Fusion

Combines the per-sensor detection decisions on one target at one timestep
into a single fused detection.

Fusion Strategies:
    OR_LOGIC:    detected if any participating sensor detected (default)
    VOTING:      detected if at least k participating sensors detected
    AND_LOGIC:   detected only if every participating sensor detected
    BEST_SENSOR: decision of the participating sensor with the highest Pd

Only sensors with non-zero effective Pd participate. The reported
position and latency come from the lowest-latency detecting sensor.

Reference:
    - Hall, D.L., Llinas, J., "Handbook of Multisensor Data Fusion", 2001
    - Varshney, P.K., "Distributed Detection and Data Fusion", 1997
"""

import math
from enum import Enum
from typing import Dict, List, Sequence

from ..models.results import DetectionResult
from ..models.sensor import SensorSite


class FusionStrategy(Enum):
    OR_LOGIC = "or"
    VOTING = "voting"
    AND_LOGIC = "and"
    BEST_SENSOR = "best_sensor"


class FusionEngine:
    """
    Decision-level fusion of per-sensor detections.

    Example:
        >>> fusion = FusionEngine(FusionStrategy.VOTING, voting_threshold=2)
        >>> fused = fusion.fuse("T1", 12.0, per_sensor_results)
    """

    def __init__(
        self, strategy: FusionStrategy = FusionStrategy.OR_LOGIC, voting_threshold: int = 2
    ) -> None:
        if voting_threshold < 1:
            raise ValueError("voting_threshold must be at least 1")
        self.strategy = strategy
        self.voting_threshold = voting_threshold

    def fuse(self, target_id: str, t: float, results: Sequence[DetectionResult]) -> DetectionResult:
        """
        Fuse one target's per-sensor results for one timestep.

        Args:
            target_id: Target identity
            t: Scenario time [s]
            results: Per-sensor results in sensor order

        Returns:
            One fused DetectionResult listing every detecting sensor
        """
        participants = [r for r in results if r.pd_effective > 0.0]
        detectors = [r for r in participants if r.detected]

        fused = DetectionResult(target_id=target_id, time_s=t)
        if not participants:
            return fused

        if self.strategy is FusionStrategy.OR_LOGIC:
            detected = bool(detectors)
            fused.pd_effective = 1.0 - math.prod(1.0 - r.pd_effective for r in participants)
        elif self.strategy is FusionStrategy.VOTING:
            # Fewer participants than k: every participant must agree
            needed = min(self.voting_threshold, len(participants))
            detected = len(detectors) >= needed
            fused.pd_effective = max(r.pd_effective for r in participants)
        elif self.strategy is FusionStrategy.AND_LOGIC:
            detected = len(detectors) == len(participants)
            fused.pd_effective = math.prod(r.pd_effective for r in participants)
        else:
            best = max(participants, key=lambda r: r.pd_effective)
            detected = best.detected
            detectors = [best] if best.detected else []
            fused.pd_effective = best.pd_effective

        if not detected:
            return fused

        # min() keeps the first of equal latencies, i.e. sensor order
        lead = min(detectors, key=lambda r: r.latency_s)
        fused.detected = True
        fused.latency_s = lead.latency_s
        fused.position_error_m = lead.position_error_m
        fused.reported_position = lead.reported_position
        fused.snr_db = lead.snr_db
        fused.sensor_ids = [sid for r in detectors for sid in r.sensor_ids]
        return fused


def coverage_metrics(sensors: Sequence[SensorSite]) -> Dict[str, float]:
    """
    Static coverage summary of a sensor laydown.

    Returns:
        Dict with sensor count, total coverage area [km²], mean nominal
        range [m] and the OR-fused Pd at nominal range of all sensors.
    """
    if not sensors:
        return {
            "sensor_count": 0,
            "total_coverage_area_km2": 0.0,
            "mean_nominal_range_m": 0.0,
            "estimated_system_pd": 0.0,
        }

    area_m2 = sum(
        math.pi * s.nominal_range_m**2 * min(360.0, s.azimuth_width_deg) / 360.0 for s in sensors
    )
    return {
        "sensor_count": len(sensors),
        "total_coverage_area_km2": area_m2 / 1e6,
        "mean_nominal_range_m": sum(s.nominal_range_m for s in sensors) / len(sensors),
        # Each sensor is at Pd = 0.5 on its own nominal-range ring
        "estimated_system_pd": 1.0 - 0.5 ** len(sensors),
    }


def sensors_by_id(sensors: Sequence[SensorSite]) -> Dict[str, SensorSite]:
    return {s.sensor_id: s for s in sensors}


def detecting_sensors(fused: DetectionResult, sensors: Dict[str, SensorSite]) -> List[SensorSite]:
    """Sensors that contributed a detection to a fused result."""
    return [sensors[sid] for sid in fused.sensor_ids if sid in sensors]
