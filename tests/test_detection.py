"""
CUAS-Eval Detection and Identification Model Test Suite

Test ID | Description                          | Reference            | Tolerance
--------|--------------------------------------|----------------------|------------
1       | Swerling I Pd = 0.5 at nominal range | Swerling 1960        | 1e-6
2       | Pd bounded in [0, 1]                 | Probability axioms   | Exact
3       | Pd non-increasing in EW factor       | EW degradation model | Exact
4       | Coverage gating                      | Sensor windows       | Exact
5       | Weather / night degradation          | Degradation tables   | 1e-9
6       | Seeded detection reproducibility     | numpy PCG64          | Exact
7       | False-alarm synthesis                | Poisson process      | Exact
8       | Identification tiers and payload ID  | Capability tiers     | Exact

References:
    - Swerling, P. (1960). "Probability of Detection for Fluctuating Targets"
    - Skolnik, M.I. (2008). "Radar Handbook", 3rd Edition, Chapter 2
"""

import math
import os
import sys

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cuaseval.models.environment import EnvironmentState, EwCondition, Weather
from cuaseval.models.results import FALSE_ALARM_ID
from cuaseval.models.sensor import Capability, DetectionCurve, SensorSite
from cuaseval.models.target import TargetState, UasClass, UasTarget
from cuaseval.physics.detection import (
    DetectionModel,
    baseline_pd,
    effective_pd,
    latency_distribution,
    reference_snr,
    swerling1_pd,
)
from cuaseval.physics.geo import GeoPosition
from cuaseval.physics.identification import (
    IdentificationModel,
    classification_probability,
)

ORIGIN = GeoPosition(38.42, 27.14, 0.0)
NOMINAL = 2000.0


def make_sensor(capability: Capability = Capability.RADAR, **kwargs) -> SensorSite:
    params = dict(
        sensor_id=f"{capability.name}-1",
        capability=capability,
        position=ORIGIN,
        nominal_range_m=NOMINAL,
    )
    params.update(kwargs)
    return SensorSite(**params)


def position_at(distance_m: float, bearing_deg: float = 45.0, alt_m: float = 0.0) -> GeoPosition:
    point = ORIGIN.destination(bearing_deg, distance_m)
    return GeoPosition(point.lat, point.lon, alt_m)


TARGET = UasTarget("T1", UasClass.C2, rcs_m2=0.01)


# =============================================================================
# TEST 1: Swerling I curve
# =============================================================================


class TestSwerlingCurve:
    """Nominal range is where the baseline Pd equals 0.5"""

    def test_reference_snr_value(self):
        expected = math.log(1e-6) / math.log(0.5) - 1.0
        assert reference_snr(1e-6) == pytest.approx(expected)
        assert reference_snr(1e-6) == pytest.approx(18.93, abs=0.01)

    def test_pd_half_at_reference_snr(self):
        for pfa in (1e-4, 1e-6, 1e-8):
            assert swerling1_pd(reference_snr(pfa), pfa) == pytest.approx(0.5, abs=1e-12)

    def test_pd_half_at_nominal_range(self):
        for capability in (Capability.RADAR, Capability.EO_IR, Capability.RF):
            pd, _ = baseline_pd(make_sensor(capability), NOMINAL, TARGET.rcs_m2)
            assert pd == pytest.approx(0.5, abs=1e-9)

    def test_pd_decreases_with_range(self):
        sensor = make_sensor()
        pds = [baseline_pd(sensor, r, 0.01)[0] for r in (500.0, 1000.0, 2000.0, 4000.0)]
        assert all(a > b for a, b in zip(pds, pds[1:]))

    def test_zero_snr_gives_zero_pd(self):
        assert swerling1_pd(0.0, 1e-6) == 0.0


# =============================================================================
# TEST 2-3: Bounds and EW monotonicity
# =============================================================================


class TestEffectivePd:
    """Pd after gating and degradations"""

    def test_pd_bounded(self):
        for capability in Capability:
            sensor = make_sensor(capability)
            for weather in Weather:
                for ew in EwCondition:
                    env = EnvironmentState(weather=weather, ew_condition=ew)
                    for distance in (10.0, 1000.0, 2000.0, 3999.0):
                        pd, _ = effective_pd(sensor, TARGET, position_at(distance), env, None)
                        assert 0.0 <= pd <= 1.0

    def test_pd_non_increasing_in_ew_for_rf_capable(self):
        position = position_at(1500.0)
        for capability in (Capability.RADAR, Capability.RF, Capability.RF_PLUS):
            sensor = make_sensor(capability, ew_sensitivity=0.9)
            pds = [
                effective_pd(sensor, TARGET, position, EnvironmentState(ew_factor_override=f), None)[0]
                for f in np.linspace(0.0, 1.0, 11)
            ]
            assert all(a >= b for a, b in zip(pds, pds[1:]))
            assert pds[-1] < pds[0]

    def test_ew_conditions_ordered(self):
        sensor = make_sensor(Capability.RADAR)
        position = position_at(1500.0)
        pds = [
            effective_pd(sensor, TARGET, position, EnvironmentState(ew_condition=ew), None)[0]
            for ew in (EwCondition.NONE, EwCondition.LOW, EwCondition.MEDIUM, EwCondition.HIGH)
        ]
        assert pds == sorted(pds, reverse=True)
        assert pds[3] == pytest.approx(pds[0] * (1.0 - 0.8 * sensor.ew_sensitivity))

    def test_ew_does_not_affect_optical_or_acoustic(self):
        position = position_at(1500.0)
        for capability in (Capability.EO_IR, Capability.IR, Capability.ACOUSTIC):
            sensor = make_sensor(capability)
            clean, _ = effective_pd(sensor, TARGET, position, EnvironmentState(), None)
            jammed, _ = effective_pd(
                sensor, TARGET, position, EnvironmentState(ew_condition=EwCondition.HIGH), None
            )
            assert jammed == clean


# =============================================================================
# TEST 4: Coverage gating
# =============================================================================


class TestGating:
    """Outside any sensor window Pd is forced to zero"""

    def test_outside_azimuth_window(self):
        sensor = make_sensor(azimuth_start_deg=0.0, azimuth_width_deg=90.0)
        inside, snr = effective_pd(sensor, TARGET, position_at(1000.0, 45.0), EnvironmentState(), None)
        outside, snr_out = effective_pd(
            sensor, TARGET, position_at(1000.0, 180.0), EnvironmentState(), None
        )
        assert inside > 0.0 and snr is not None
        assert outside == 0.0 and snr_out is None

    def test_range_limits(self):
        sensor = make_sensor(min_range_m=100.0, max_range_m=3000.0)
        env = EnvironmentState()
        assert effective_pd(sensor, TARGET, position_at(50.0), env, None)[0] == 0.0
        assert effective_pd(sensor, TARGET, position_at(3500.0), env, None)[0] == 0.0
        assert effective_pd(sensor, TARGET, position_at(2500.0), env, None)[0] > 0.0

    def test_elevation_window(self):
        sensor = make_sensor(elevation_max_deg=20.0)
        steep = position_at(500.0, alt_m=500.0)
        assert effective_pd(sensor, TARGET, steep, EnvironmentState(), None)[0] == 0.0


# =============================================================================
# TEST 5: Weather and night
# =============================================================================


class TestDegradation:
    """Multiplicative weather, low-light and EW factors"""

    def test_fog_hurts_eo_more_than_radar(self):
        position = position_at(1000.0)
        fog = EnvironmentState(weather=Weather.FOG)
        radar = effective_pd(make_sensor(Capability.RADAR), TARGET, position, fog, None)[0]
        radar_clear = effective_pd(make_sensor(Capability.RADAR), TARGET, position, EnvironmentState(), None)[0]
        eo = effective_pd(make_sensor(Capability.EO_IR), TARGET, position, fog, None)[0]
        eo_clear = effective_pd(make_sensor(Capability.EO_IR), TARGET, position, EnvironmentState(), None)[0]
        assert eo / eo_clear < radar / radar_clear

    def test_night_low_light_for_daylight_camera(self):
        sensor = make_sensor(Capability.EO_IR)
        position = position_at(1000.0)
        day = effective_pd(sensor, TARGET, position, EnvironmentState(), None)[0]
        night = effective_pd(sensor, TARGET, position, EnvironmentState(weather=Weather.NIGHT_CLEAR), None)[0]
        assert night == pytest.approx(day * 0.6, abs=1e-9)

    def test_sensor_weather_override(self):
        sensor = make_sensor(Capability.RADAR, weather_factors={Weather.RAIN: 0.5})
        position = position_at(1000.0)
        clear = effective_pd(sensor, TARGET, position, EnvironmentState(), None)[0]
        rain = effective_pd(sensor, TARGET, position, EnvironmentState(weather=Weather.RAIN), None)[0]
        assert rain == pytest.approx(clear * 0.5, abs=1e-9)


# =============================================================================
# TEST 6-7: Seeded draws and false alarms
# =============================================================================


class TestDetectionModel:
    """Bernoulli decisions, latency and false alarms on a seeded stream"""

    def _run(self, seed: int):
        model = DetectionModel(np.random.default_rng(seed))
        sensor = make_sensor()
        results = []
        for k in range(50):
            state = TargetState("T1", float(k), position_at(NOMINAL))
            results.append(model.detect(sensor, TARGET, state, EnvironmentState(), None, float(k)))
        return results

    def test_same_seed_same_decisions(self):
        first = [r.to_dict() for r in self._run(7)]
        second = [r.to_dict() for r in self._run(7)]
        assert first == second

    def test_detection_fields(self):
        results = self._run(3)
        detected = [r for r in results if r.detected]
        assert detected, "50 draws at Pd = 0.5 should detect at least once"
        for r in detected:
            assert r.latency_s > 0.0
            assert r.reported_position is not None
            assert r.position_error_m >= 0.0
            assert r.sensor_ids == ["RADAR-1"]
        for r in results:
            if not r.detected:
                assert r.reported_position is None

    def test_gated_target_never_detected(self):
        model = DetectionModel(np.random.default_rng(0))
        sensor = make_sensor(azimuth_width_deg=10.0)
        state = TargetState("T1", 0.0, position_at(500.0, 180.0))
        for _ in range(20):
            assert not model.detect(sensor, TARGET, state, EnvironmentState(), None, 0.0).detected

    def test_false_alarms_tagged_and_in_coverage(self):
        model = DetectionModel(np.random.default_rng(11))
        sensor = make_sensor(false_alarm_rate=0.5, max_range_m=3000.0)
        alarms = model.false_alarms(sensor, 0.0, 100.0)
        assert len(alarms) > 0
        for alarm in alarms:
            assert alarm.target_id == FALSE_ALARM_ID
            assert alarm.is_false_alarm
            assert alarm.detected
            assert ORIGIN.distance_to(alarm.reported_position) <= 3000.0 + 1e-6

    def test_no_false_alarms_at_zero_rate(self):
        model = DetectionModel(np.random.default_rng(0))
        assert model.false_alarms(make_sensor(), 0.0, 1.0) == []

    def test_latency_distribution_moments(self):
        dist = latency_distribution(0.5, 0.1)
        assert dist.mean() == pytest.approx(0.5, rel=1e-9)
        assert dist.std() == pytest.approx(0.1, rel=1e-9)

    def test_degenerate_latency(self):
        dist = latency_distribution(0.4, 0.0)
        assert float(dist.rvs(random_state=np.random.default_rng(0))) == pytest.approx(0.4)


# =============================================================================
# TEST 8: Identification
# =============================================================================


class TestIdentification:
    """Capability tiers, payload ground truth and IFF"""

    def _state(self, speed: float = 10.0) -> TargetState:
        return TargetState("T1", 0.0, position_at(1000.0), speed_mps=speed)

    def test_small_slow_targets_harder_optically(self):
        sensor = make_sensor(Capability.EO_IR)
        env = EnvironmentState()
        small = classification_probability(sensor, UasTarget("S", UasClass.C0), self._state(2.0), env)
        large = classification_probability(sensor, UasTarget("L", UasClass.C3), self._state(30.0), env)
        assert small < large

    def test_rf_fingerprint_size_independent(self):
        sensor = make_sensor(Capability.RF)
        env = EnvironmentState()
        small = classification_probability(sensor, UasTarget("S", UasClass.C0), self._state(), env)
        large = classification_probability(sensor, UasTarget("L", UasClass.C4), self._state(), env)
        silent = classification_probability(
            sensor, UasTarget("Q", UasClass.C2, emits_rf=False), self._state(), env
        )
        assert small == large
        assert silent == 0.0

    def test_ew_degrades_identification(self):
        sensor = make_sensor(Capability.RF_PLUS)
        clean = classification_probability(sensor, TARGET, self._state(), EnvironmentState())
        jammed = classification_probability(
            sensor, TARGET, self._state(), EnvironmentState(ew_condition=EwCondition.HIGH)
        )
        assert jammed < clean

    def test_payload_requires_ground_truth_flag(self):
        model = IdentificationModel(np.random.default_rng(5))
        sensor = make_sensor(Capability.MULTISPECTRAL, classification_base=1.0, payload_id_probability=1.0)
        unarmed = UasTarget("U", UasClass.C2, has_payload=False)
        for _ in range(20):
            result = model.identify(sensor, unarmed, self._state(30.0), EnvironmentState(), probability=1.0)
            assert result.classification_correct
            assert not result.payload_identified
            assert not result.has_payload

    def test_payload_identified_when_carried(self):
        model = IdentificationModel(np.random.default_rng(5))
        sensor = make_sensor(Capability.MULTISPECTRAL, payload_id_probability=1.0)
        carrier = UasTarget("P", UasClass.C3, has_payload=True)
        result = model.identify(sensor, carrier, self._state(30.0), EnvironmentState(), probability=1.0)
        assert result.payload_identified
        assert result.estimated_class == UasClass.C3.value

    def test_clutter_always_rejected_by_emission_sensor(self):
        model = IdentificationModel(np.random.default_rng(0))
        sensor = make_sensor(Capability.RF)
        assert all(model.reject_clutter(sensor, EnvironmentState()) for _ in range(20))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
