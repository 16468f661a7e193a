"""
CUAS-Eval Metrics and Compliance Test Suite

Test ID | Description                          | Reference              | Tolerance
--------|--------------------------------------|------------------------|------------
1       | CEP50 / CEP90 pinned percentile rule | Hyndman-Fan type 7     | 1e-12
2       | Empty statistics yield zero          | Degenerate input rule  | Exact
3       | Metrics engine aggregation           | CWA 18150 measures     | 1e-12
4       | Unthresholded requirement passes     | Documented default     | Exact
5       | Inclusive threshold bounds           | Threshold definition   | Exact
6       | Profile add / remove / override      | Threshold profiles     | Exact
7       | Weighted overall score               | 40/30/30 weights       | 1e-9
8       | YAML profile and pipeline config     | PyYAML safe_load       | Exact

References:
    - Hyndman, R.J., Fan, Y. (1996). "Sample Quantiles in Statistical Packages"
    - CEN Workshop Agreement CWA 18150
"""

import math
import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cuaseval.config import (
    PipelineConfig,
    load_pipeline_config,
    load_profile,
    profile_from_dict,
    save_profile,
)
from cuaseval.evaluation.catalog import InMemoryRequirementCatalog
from cuaseval.evaluation.compliance import (
    DEFAULT_THRESHOLD_TABLE,
    PASS_SCORE,
    ComplianceEngine,
    MetricKind,
    ScoringWeights,
    Threshold,
    ThresholdProfile,
    default_profile,
    extract_metric,
)
from cuaseval.evaluation.metrics import (
    METRIC_NAMES,
    MetricsEngine,
    compute_all_metrics,
    compute_cep50,
    compute_cep90,
    percentile,
    std,
)
from cuaseval.exceptions import ConfigurationError
from cuaseval.models.results import (
    FALSE_ALARM_ID,
    DetectionResult,
    EvaluationResult,
    IdentificationResult,
    TrackingResult,
)
from cuaseval.tracking.fusion import FusionStrategy


def make_result(**fields) -> EvaluationResult:
    result = EvaluationResult(scenario_id="SC-1", duration_s=100.0)
    for name, value in fields.items():
        setattr(result, name, value)
    return result


# =============================================================================
# TEST 1-2: Statistics
# =============================================================================


class TestStatistics:
    """Pinned percentile and standard deviation conventions"""

    def test_cep_on_one_to_ten(self):
        errors = [float(v) for v in range(1, 11)]
        assert compute_cep50(errors) == pytest.approx(5.5, abs=1e-12)
        assert compute_cep90(errors) == pytest.approx(9.1, abs=1e-12)

    def test_cep_order_independent(self):
        errors = [7.0, 1.0, 10.0, 3.0, 5.0, 2.0, 9.0, 4.0, 8.0, 6.0]
        assert compute_cep50(errors) == pytest.approx(5.5)

    def test_empty_inputs_are_zero(self):
        assert compute_cep50([]) == 0.0
        assert compute_cep90([]) == 0.0
        assert percentile([], 95.0) == 0.0
        assert std([]) == 0.0

    def test_sample_standard_deviation(self):
        assert std([5.0]) == 0.0
        assert std([1.0, 2.0, 3.0, 4.0]) == pytest.approx(math.sqrt(5.0 / 3.0))


# =============================================================================
# TEST 3: Metrics engine
# =============================================================================


class TestMetricsEngine:
    """Aggregation of raw records into scalar metrics"""

    @pytest.fixture
    def result(self):
        detections = [
            DetectionResult("T1", float(k), detected=True, latency_s=lat, position_error_m=err, sensor_ids=["S1"])
            for k, (lat, err) in enumerate([(0.2, 1.0), (0.4, 2.0), (0.6, 3.0), (0.8, 4.0)])
        ]
        detections += [
            DetectionResult(FALSE_ALARM_ID, 1.0, detected=True, latency_s=9.0, position_error_m=500.0, clutter_rejected=True),
            DetectionResult(FALSE_ALARM_ID, 2.0, detected=True, latency_s=9.0, position_error_m=500.0),
        ]
        identifications = [
            IdentificationResult("T1", 1.0, "S1", classification_correct=True, iff_correct=True, latency_s=1.0),
            IdentificationResult("T1", 2.0, "S1", classification_correct=False, iff_correct=True, latency_s=3.0),
            IdentificationResult("T2", 2.0, "S1", classification_correct=True, payload_identified=True, has_payload=True),
            IdentificationResult("T2", 3.0, "S1", classification_correct=False, has_payload=True),
        ]
        tracking = [
            TrackingResult("T1", "TRK-T1", continuity_ratio=1.0, in_range_steps=6, held_steps=6,
                           update_rate_hz=1.0, position_errors=[1.0, 3.0], loss_events=2, recoveries=1),
            TrackingResult("T2", "TRK-T2", continuity_ratio=0.5, in_range_steps=2, held_steps=1,
                           update_rate_hz=0.5, position_errors=[5.0], drop_count=1, uid_changes=1),
        ]
        return make_result(
            detections=detections,
            identifications=identifications,
            tracking=tracking,
            coverage_steps=8,
        )

    def test_detection_metrics(self, result):
        MetricsEngine(display_delay_s=0.3).populate(result)
        assert result.probability_of_detection == pytest.approx(0.5)
        assert result.false_alarm_count == 2
        assert result.false_alarm_rate == pytest.approx(0.02)
        assert result.bird_rejection == pytest.approx(0.5)
        # False alarms never enter latency or error statistics
        assert result.mean_detection_latency_s == pytest.approx(0.5)
        assert result.display_latency_s == pytest.approx(0.8)
        assert result.mean_detection_error_m == pytest.approx(2.5)
        assert result.cep50_m == pytest.approx(2.5)

    def test_tracking_metrics(self, result):
        MetricsEngine().populate(result)
        assert result.track_continuity == pytest.approx(7.0 / 8.0)
        assert result.mean_track_error_m == pytest.approx(3.0)
        assert result.max_track_error_m == pytest.approx(5.0)
        assert result.update_rate_hz == pytest.approx(0.75)
        assert result.total_track_drops == 1
        assert result.track_after_loss == pytest.approx(0.5)
        # One recovery against one re-acquisition after a drop
        assert result.uid_preservation == pytest.approx(0.5)
        assert not ComplianceEngine().evaluate_requirement("FR17", result)

    def test_identification_metrics(self, result):
        MetricsEngine().populate(result)
        assert result.probability_of_identification == pytest.approx(0.5)
        assert result.iff_accuracy == pytest.approx(0.5)
        # Only the two attempts on the payload carrier count
        assert result.payload_id_rate == pytest.approx(0.5)

    def test_empty_result(self):
        result = MetricsEngine().populate(make_result())
        assert result.probability_of_detection == 0.0
        assert result.false_alarm_rate == 0.0
        assert result.cep90_m == 0.0
        assert result.track_continuity == 0.0
        assert result.probability_of_identification == 0.0
        assert result.payload_id_rate == 0.0
        assert result.bird_rejection == 1.0

    def test_named_metrics_stable_order(self, result):
        MetricsEngine().populate(result)
        metrics = compute_all_metrics(result)
        assert list(metrics) == list(METRIC_NAMES)
        assert metrics["Pd (Probability of Detection)"] == pytest.approx(0.5)
        assert metrics["CEP90 (m)"] == pytest.approx(result.cep90_m)
        assert all(isinstance(v, float) for v in metrics.values())


# =============================================================================
# TEST 4-5: Requirement evaluation
# =============================================================================


class TestRequirementEvaluation:
    """Threshold lookup and inclusive pass condition"""

    def test_unthresholded_requirement_passes(self):
        engine = ComplianceEngine()
        assert engine.evaluate_requirement("XX99", make_result())
        assert engine.evaluate_requirement("XX99", make_result(probability_of_detection=0.0))

    def test_inclusive_bounds(self):
        engine = ComplianceEngine()
        assert engine.evaluate_requirement("FR01", make_result(probability_of_detection=0.90))
        assert engine.evaluate_requirement("FR01", make_result(probability_of_detection=1.0))
        assert not engine.evaluate_requirement("FR01", make_result(probability_of_detection=0.8999))
        assert engine.evaluate_requirement("FR15", make_result(false_alarm_rate=0.05))
        assert not engine.evaluate_requirement("FR15", make_result(false_alarm_rate=0.0501))

    def test_unbounded_maximum(self):
        engine = ComplianceEngine()
        assert engine.evaluate_requirement("TP_D16", make_result(update_rate_hz=50.0))
        assert not engine.evaluate_requirement("TP_D16", make_result(update_rate_hz=0.5))

    def test_unknown_metric_is_zero(self):
        assert extract_metric("noSuchMetric", make_result(probability_of_detection=1.0)) == 0.0
        engine = ComplianceEngine()
        engine.add_threshold(Threshold("X1", "noSuchMetric", 0.0, 1.0))
        engine.add_threshold(Threshold("X2", "noSuchMetric", 0.1, 1.0))
        assert engine.evaluate_requirement("X1", make_result())
        assert not engine.evaluate_requirement("X2", make_result())

    def test_every_metric_kind_extracts(self):
        result = make_result(probability_of_detection=0.7, cep90_m=4.0)
        for kind in MetricKind:
            assert isinstance(extract_metric(kind.value, result), float)
        assert extract_metric("weatherPd", result) == pytest.approx(0.7)
        assert extract_metric("cep90", result) == pytest.approx(4.0)

    def test_position_accuracy_grades_track_error(self):
        """PR20 reads the reconstructed track error, not raw detection noise"""
        engine = ComplianceEngine()
        sloppy_track = make_result(mean_detection_error_m=5.0, mean_track_error_m=50.0)
        tight_track = make_result(mean_detection_error_m=50.0, mean_track_error_m=5.0)

        assert extract_metric("positionAccuracy", sloppy_track) == pytest.approx(50.0)
        assert not engine.evaluate_requirement("PR20", sloppy_track)
        assert engine.evaluate_requirement("PR20", tight_track)

    def test_default_profile_from_table(self):
        profile = default_profile()
        assert len(profile.thresholds) == len(DEFAULT_THRESHOLD_TABLE)
        assert profile.thresholds["FR20"].metric_name == "payloadIdRate"
        assert profile.pass_score == PASS_SCORE == 60.0
        assert default_profile() is not profile


# =============================================================================
# TEST 6: Profiles and thresholds
# =============================================================================


class TestProfiles:
    """Independently addable, removable and overridable thresholds"""

    def test_remove_threshold_passes_by_default(self):
        engine = ComplianceEngine()
        low = make_result(probability_of_detection=0.1)
        assert not engine.evaluate_requirement("FR01", low)
        assert engine.remove_threshold("FR01")
        assert not engine.remove_threshold("FR01")
        assert engine.evaluate_requirement("FR01", low)

    def test_override_threshold(self):
        engine = ComplianceEngine()
        updated = engine.override_threshold("FR01", min_value=0.5)
        assert updated.max_value == 1.0
        assert engine.evaluate_requirement("FR01", make_result(probability_of_detection=0.6))
        with pytest.raises(KeyError):
            engine.override_threshold("NOPE", min_value=0.1)

    def test_profiles_are_independent(self):
        strict = default_profile().copy(name="Strict")
        engine = ComplianceEngine([default_profile(), strict])
        engine.override_threshold("FR01", min_value=0.99, profile="Strict")

        result = make_result(probability_of_detection=0.95)
        assert engine.evaluate_requirement("FR01", result)
        engine.select_profile("Strict")
        assert not engine.evaluate_requirement("FR01", result)
        with pytest.raises(KeyError):
            engine.select_profile("Missing")

    def test_catalog_fallback(self):
        catalog = InMemoryRequirementCatalog(
            {"S1": ["FR01", "CAT1"]},
            [Threshold("CAT1", "trackContinuity", 0.5, 1.0, "ratio")],
        )
        engine = ComplianceEngine(catalog=catalog)
        assert engine.get_threshold("CAT1").metric_name == "trackContinuity"
        assert not engine.evaluate_requirement("CAT1", make_result(track_continuity=0.2))
        assert catalog.get_all_scenario_requirement_ids("S1") == ["FR01", "CAT1"]
        assert catalog.get_all_scenario_requirement_ids("S9") == []


# =============================================================================
# TEST 7: Overall score
# =============================================================================


class TestScore:
    """(w_d Pd + w_t continuity + w_i Pi) / sum(w) * 100"""

    def test_perfect_and_zero(self):
        engine = ComplianceEngine()
        perfect = make_result(probability_of_detection=1.0, track_continuity=1.0, probability_of_identification=1.0)
        assert engine.score(perfect) == pytest.approx(100.0)
        assert engine.score(make_result()) == 0.0

    def test_default_weights(self):
        engine = ComplianceEngine()
        result = make_result(probability_of_detection=0.5, track_continuity=1.0, probability_of_identification=0.0)
        assert engine.score(result) == pytest.approx(50.0)

    def test_custom_weights(self):
        profile = ThresholdProfile("Detection Only", weights=ScoringWeights(1.0, 0.0, 0.0))
        engine = ComplianceEngine([profile])
        result = make_result(probability_of_detection=0.8, track_continuity=0.1)
        assert engine.score(result) == pytest.approx(80.0)


# =============================================================================
# TEST 8: YAML configuration
# =============================================================================


class TestYamlConfiguration:
    """PyYAML profile and pipeline configuration"""

    def test_profile_round_trip(self, tmp_path):
        profile = default_profile().copy(name="Airport Strict")
        profile.pass_score = 70.0
        profile.weights = ScoringWeights(50.0, 25.0, 25.0)
        path = tmp_path / "profiles" / "airport.yaml"

        save_profile(profile, str(path))
        loaded = load_profile(str(path))

        assert loaded.name == "Airport Strict"
        assert loaded.pass_score == 70.0
        assert loaded.weights == profile.weights
        assert loaded.thresholds == profile.thresholds
        assert math.isinf(loaded.thresholds["TP_D16"].max_value)

    def test_profile_overrides_merge_over_defaults(self):
        profile = profile_from_dict(
            {
                "name": "Custom",
                "thresholds": {"FR01": {"metric": "probabilityOfDetection", "min": 0.95}},
                "remove": ["FR16"],
            }
        )
        assert profile.thresholds["FR01"].min_value == 0.95
        assert profile.thresholds["FR01"].max_value == math.inf
        assert "FR16" not in profile.thresholds
        assert "FR04" in profile.thresholds

    def test_profile_without_defaults(self):
        profile = profile_from_dict({"name": "Bare", "inherit_defaults": False})
        assert profile.thresholds == {}

    def test_profile_unknown_key_rejected(self):
        with pytest.raises(ConfigurationError):
            profile_from_dict({"name": "Bad", "threshold": {}})
        with pytest.raises(ConfigurationError):
            profile_from_dict({"thresholds": {"FR01": {"min": 0.5}}})

    def test_profile_non_numeric_values_rejected(self, tmp_path):
        """Non-numeric bounds raise ConfigurationError naming the requirement"""
        bad_min = {"thresholds": {"FR01": {"metric": "probabilityOfDetection", "min": "high"}}}
        with pytest.raises(ConfigurationError, match="FR01"):
            profile_from_dict(bad_min)
        with pytest.raises(ConfigurationError, match="PR20"):
            profile_from_dict({"thresholds": {"PR20": {"metric": "positionAccuracy", "max": [10]}}})
        with pytest.raises(ConfigurationError, match="tracking"):
            profile_from_dict({"weights": {"tracking": "heavy"}})
        with pytest.raises(ConfigurationError, match="pass_score"):
            profile_from_dict({"pass_score": None})

        path = tmp_path / "bad.yaml"
        path.write_text("thresholds:\n  FR04: {metric: trackContinuity, min: ninety}\n")
        with pytest.raises(ConfigurationError, match="FR04"):
            load_profile(str(path))

    def test_pipeline_config_from_yaml(self, tmp_path):
        path = tmp_path / "pipeline.yaml"
        path.write_text("time_step_s: 0.5\nfusion_strategy: voting\nvoting_threshold: 3\n")
        config = load_pipeline_config(str(path))
        assert config.time_step_s == 0.5
        assert config.fusion_strategy is FusionStrategy.VOTING
        assert config.voting_threshold == 3
        assert config.effective_update_interval_s == 0.5
        assert config.coast_tolerance_s == 3.0

    def test_pipeline_config_rejects_bad_values(self, tmp_path):
        with pytest.raises(ConfigurationError):
            PipelineConfig(time_step_s=0.0)
        with pytest.raises(ConfigurationError):
            PipelineConfig(fusion_strategy="majority")
        with pytest.raises(ConfigurationError):
            PipelineConfig.from_dict({"time_step": 1.0})
        with pytest.raises(FileNotFoundError):
            load_pipeline_config(str(tmp_path / "missing.yaml"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
