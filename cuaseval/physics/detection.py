"""
Sensor Detection Model

Per-sensor, per-target probability of detection under environmental
degradation, and the seeded Bernoulli detection decision.

Features:
    - Swerling Case I single-look Pd from implied SNR
    - SNR scaled from the sensor's nominal range (where Pd = 0.5), target RCS
      and the sensor's range exponent
    - Multiplicative degradations: weather, night low-light (optical sensors),
      EW jamming (RF-capable sensors only)
    - Hard gating: min/max range, azimuth window, elevation window, terrain mask
    - Latency and position noise drawn from configured distributions
    - Poisson false-alarm synthesis tagged with a sentinel identity

Swerling I (exponential RCS fluctuation, single look):
    Pd = Pfa ** (1 / (1 + SNR))

References:
    - Swerling, P., "Probability of Detection for Fluctuating Targets",
      IRE Trans. IT-6, 1960
    - Skolnik, "Radar Handbook", 3rd Ed., Chapter 2
    - Richards, M.A., "Fundamentals of Radar Signal Processing", Ch. 6
"""

import math
from typing import Dict, List, Optional, Tuple

import numpy as np
from scipy import stats

from ..models.environment import EnvironmentState, Weather
from ..models.results import FALSE_ALARM_ID, DetectionResult
from ..models.sensor import Capability, SensorSite
from ..models.target import TargetState, UasTarget
from .constants import MIN_SLANT_RANGE_M, NOMINAL_RANGE_PD
from .geo import GeoPosition, azimuth_in_sector
from .terrain import TerrainMaskResult

# =============================================================================
# DEGRADATION TABLES
# =============================================================================

WEATHER_FACTORS: Dict[Capability, Dict[Weather, float]] = {
    Capability.RADAR: {
        Weather.CLEAR: 1.0,
        Weather.CLOUDY: 1.0,
        Weather.RAIN: 0.85,
        Weather.FOG: 0.95,
        Weather.SNOW: 0.85,
        Weather.NIGHT_CLEAR: 1.0,
        Weather.NIGHT_OVERCAST: 1.0,
    },
    Capability.RF: {
        Weather.CLEAR: 1.0,
        Weather.CLOUDY: 1.0,
        Weather.RAIN: 0.95,
        Weather.FOG: 1.0,
        Weather.SNOW: 0.95,
        Weather.NIGHT_CLEAR: 1.0,
        Weather.NIGHT_OVERCAST: 1.0,
    },
    Capability.RF_PLUS: {
        Weather.CLEAR: 1.0,
        Weather.CLOUDY: 1.0,
        Weather.RAIN: 0.95,
        Weather.FOG: 1.0,
        Weather.SNOW: 0.95,
        Weather.NIGHT_CLEAR: 1.0,
        Weather.NIGHT_OVERCAST: 1.0,
    },
    Capability.EO_IR: {
        Weather.CLEAR: 1.0,
        Weather.CLOUDY: 0.9,
        Weather.RAIN: 0.6,
        Weather.FOG: 0.3,
        Weather.SNOW: 0.5,
        Weather.NIGHT_CLEAR: 1.0,
        Weather.NIGHT_OVERCAST: 0.9,
    },
    Capability.IR: {
        Weather.CLEAR: 1.0,
        Weather.CLOUDY: 0.95,
        Weather.RAIN: 0.7,
        Weather.FOG: 0.4,
        Weather.SNOW: 0.6,
        Weather.NIGHT_CLEAR: 1.0,
        Weather.NIGHT_OVERCAST: 0.95,
    },
    Capability.MULTISPECTRAL: {
        Weather.CLEAR: 1.0,
        Weather.CLOUDY: 0.95,
        Weather.RAIN: 0.7,
        Weather.FOG: 0.45,
        Weather.SNOW: 0.6,
        Weather.NIGHT_CLEAR: 1.0,
        Weather.NIGHT_OVERCAST: 0.95,
    },
    Capability.ACOUSTIC: {
        Weather.CLEAR: 1.0,
        Weather.CLOUDY: 1.0,
        Weather.RAIN: 0.6,
        Weather.FOG: 1.0,
        Weather.SNOW: 0.8,
        Weather.NIGHT_CLEAR: 1.0,
        Weather.NIGHT_OVERCAST: 1.0,
    },
}
"""Pd multiplier per capability and weather; night loss is applied separately"""

LOW_LIGHT_FACTORS: Dict[Capability, float] = {
    Capability.EO_IR: 0.6,
    Capability.IR: 0.95,
    Capability.MULTISPECTRAL: 0.8,
}
"""Pd multiplier for optical sensors at night (thermal bands barely affected)"""

# =============================================================================
# SWERLING-I DETECTION CURVE
# =============================================================================


def swerling1_pd(snr_linear: float, pfa: float) -> float:
    """
    Swerling Case I single-look probability of detection.

    Args:
        snr_linear: Mean signal-to-noise ratio (linear)
        pfa: Probability of false alarm

    Returns:
        Probability of detection (0-1)
    """
    if snr_linear <= 0:
        return 0.0
    return float(math.exp(math.log(pfa) / (1.0 + snr_linear)))


def reference_snr(pfa: float, pd: float = NOMINAL_RANGE_PD) -> float:
    """
    SNR at which the Swerling I curve reaches pd.

    Inverts Pd = exp(ln Pfa / (1 + SNR)):  SNR = ln(Pfa) / ln(Pd) - 1
    """
    return math.log(pfa) / math.log(pd) - 1.0


def implied_snr(sensor: SensorSite, slant_range_m: float, rcs_m2: float) -> float:
    """
    Implied linear SNR of a target.

    SNR(R) = SNR_ref * (rcs / rcs_ref)^a * (R_nom / R)^n

    Args:
        sensor: Sensor (nominal range and detection curve)
        slant_range_m: Sensor-to-target slant range [m]
        rcs_m2: Target RCS proxy [m²]

    Returns:
        SNR (linear)
    """
    curve = sensor.curve
    rng = max(slant_range_m, MIN_SLANT_RANGE_M)
    rcs_ratio = max(rcs_m2, 1e-9) / curve.reference_rcs_m2
    return (
        reference_snr(curve.pfa)
        * rcs_ratio**curve.rcs_exponent
        * (sensor.nominal_range_m / rng) ** curve.range_exponent
    )


def baseline_pd(sensor: SensorSite, slant_range_m: float, rcs_m2: float) -> Tuple[float, float]:
    """
    Undegraded Pd and SNR of a target at a given range.

    Returns:
        (pd, snr_db)
    """
    snr = implied_snr(sensor, slant_range_m, rcs_m2)
    return swerling1_pd(snr, sensor.curve.pfa), 10.0 * math.log10(snr)


# =============================================================================
# DEGRADATIONS AND GATING
# =============================================================================


def weather_factor(sensor: SensorSite, weather: Weather) -> float:
    """Weather multiplier; sensor overrides win over capability defaults."""
    if weather in sensor.weather_factors:
        return float(sensor.weather_factors[weather])
    return WEATHER_FACTORS[sensor.capability][weather]


def low_light_factor(sensor: SensorSite, weather: Weather) -> float:
    if not weather.is_night:
        return 1.0
    return LOW_LIGHT_FACTORS.get(sensor.capability, 1.0)


def ew_multiplier(sensor: SensorSite, environment: EnvironmentState) -> float:
    """1 - ew_factor * sensitivity for RF-capable sensors, 1 otherwise."""
    if not sensor.capability.rf_capable:
        return 1.0
    sensitivity = min(1.0, max(0.0, sensor.ew_sensitivity))
    return 1.0 - environment.ew_factor * sensitivity


def environment_factor(sensor: SensorSite, environment: EnvironmentState) -> float:
    """Combined weather x low-light x EW multiplier, clamped to [0, 1]."""
    factor = (
        weather_factor(sensor, environment.weather)
        * low_light_factor(sensor, environment.weather)
        * ew_multiplier(sensor, environment)
    )
    return clamp01(factor)


def in_coverage(sensor: SensorSite, position: GeoPosition) -> bool:
    """
    Geometric coverage check: range, azimuth and elevation windows.

    Terrain is not considered here.
    """
    origin = sensor.position
    slant = origin.slant_range_to(position)
    if slant < sensor.min_range_m or slant > sensor.instrumented_range_m:
        return False
    if not azimuth_in_sector(
        origin.bearing_to(position), sensor.azimuth_start_deg, sensor.azimuth_width_deg
    ):
        return False
    elevation = origin.elevation_angle_to(position)
    return sensor.elevation_min_deg <= elevation <= sensor.elevation_max_deg


def effective_pd(
    sensor: SensorSite,
    target: UasTarget,
    position: GeoPosition,
    environment: EnvironmentState,
    mask: Optional[TerrainMaskResult],
) -> Tuple[float, Optional[float]]:
    """
    Pd after gating and all degradations.

    Args:
        sensor: Detecting sensor
        target: Target (RCS proxy)
        position: Target true position
        environment: Weather/EW environment
        mask: Sensor's terrain mask (None = unmasked)

    Returns:
        (pd_effective, snr_db); snr_db is None when the target is gated out
    """
    if not in_coverage(sensor, position):
        return 0.0, None
    if mask is not None and not mask.is_visible(position):
        return 0.0, None

    slant = sensor.position.slant_range_to(position)
    pd, snr_db = baseline_pd(sensor, slant, target.rcs_m2)
    return clamp01(pd * environment_factor(sensor, environment)), snr_db


def clamp01(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


def latency_distribution(mean_s: float, std_s: float):
    """
    Frozen scipy.stats distribution for a positive latency.

    Lognormal matched to the given mean and standard deviation; a degenerate
    distribution at the mean when std_s is zero.
    """
    if mean_s <= 0 or std_s <= 0:
        return stats.uniform(loc=max(mean_s, 0.0), scale=0.0)
    sigma2 = math.log(1.0 + (std_s / mean_s) ** 2)
    mu = math.log(mean_s) - sigma2 / 2.0
    return stats.lognorm(s=math.sqrt(sigma2), scale=math.exp(mu))


# =============================================================================
# DETECTION MODEL
# =============================================================================


class DetectionModel:
    """
    Seeded detection decisions for one scenario run.

    All randomness comes from the generator passed in, so a fixed seed and a
    fixed call order reproduce the same detections.
    """

    def __init__(self, rng: np.random.Generator) -> None:
        self.rng = rng
        self._latency: Dict[str, object] = {}

    def _latency_for(self, sensor: SensorSite):
        dist = self._latency.get(sensor.sensor_id)
        if dist is None:
            dist = latency_distribution(sensor.latency_mean_s, sensor.latency_std_s)
            self._latency[sensor.sensor_id] = dist
        return dist

    def detect(
        self,
        sensor: SensorSite,
        target: UasTarget,
        state: TargetState,
        environment: EnvironmentState,
        mask: Optional[TerrainMaskResult],
        t: float,
    ) -> DetectionResult:
        """
        One sensor's detection decision on one target.

        Args:
            sensor: Detecting sensor
            target: Target definition (RCS proxy)
            state: Target ground-truth state at time t
            environment: Environment
            mask: Sensor terrain mask
            t: Scenario time [s]

        Returns:
            DetectionResult (detected=False carries only Pd)
        """
        pd, snr_db = effective_pd(sensor, target, state.position, environment, mask)
        result = DetectionResult(
            target_id=state.target_id,
            time_s=t,
            pd_effective=pd,
            sensor_ids=[sensor.sensor_id],
            snr_db=snr_db,
        )
        # Always consume one draw per pair so the stream does not depend on Pd gating
        draw = self.rng.random()
        if pd <= 0.0 or draw >= pd:
            return result

        result.detected = True
        result.latency_s = float(self._latency_for(sensor).rvs(random_state=self.rng))
        result.reported_position, result.position_error_m = self._position_report(
            sensor, state.position
        )
        return result

    def _position_report(
        self, sensor: SensorSite, truth: GeoPosition
    ) -> Tuple[GeoPosition, float]:
        """Noisy reported position; sigma grows linearly beyond nominal range."""
        slant = sensor.position.slant_range_to(truth)
        sigma = sensor.position_accuracy_m * max(1.0, slant / sensor.nominal_range_m)
        north, east = self.rng.normal(0.0, sigma, size=2)
        up = self.rng.normal(0.0, sigma / 2.0)
        reported = truth.offset(float(north), float(east), float(up))
        return reported, reported.distance_to(truth)

    def false_alarms(self, sensor: SensorSite, t: float, dt: float) -> List[DetectionResult]:
        """
        Synthesize false alarms for one sensor over one timestep.

        Count ~ Poisson(rate * dt); each is placed at a random bearing and
        range inside the sensor's coverage and tagged FALSE_ALARM_ID.
        """
        if sensor.false_alarm_rate <= 0.0:
            return []

        count = int(self.rng.poisson(sensor.false_alarm_rate * dt))
        alarms = []
        for _ in range(count):
            bearing = sensor.azimuth_start_deg + self.rng.random() * min(
                360.0, sensor.azimuth_width_deg
            )
            distance = sensor.min_range_m + self.rng.random() * (
                sensor.instrumented_range_m - sensor.min_range_m
            )
            position = sensor.position.destination(bearing, distance)
            alarms.append(
                DetectionResult(
                    target_id=FALSE_ALARM_ID,
                    time_s=t,
                    detected=True,
                    latency_s=float(self._latency_for(sensor).rvs(random_state=self.rng)),
                    reported_position=position,
                    sensor_ids=[sensor.sensor_id],
                )
            )
        return alarms
