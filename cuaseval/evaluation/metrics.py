"""
DTI Metrics Engine

Aggregates the raw records of an EvaluationResult into named statistics.

Conventions:
    - Percentiles (P95, CEP50, CEP90): linear interpolation between closest
      ranks, numpy.percentile(method="linear") (Hyndman-Fan type 7).
      CEP50 of [1..10] m = 5.5 m, CEP90 = 9.1 m.
    - Standard deviation: sample (ddof=1), 0 for fewer than two values.
    - Any statistic over an empty set is 0.0.
    - Latency and position error statistics use true detections only;
      false alarms never enter them.

References:
    - CWA 18150: DTI performance measures
    - Hyndman, R.J., Fan, Y., "Sample Quantiles in Statistical Packages",
      The American Statistician, 1996
"""

from typing import Dict, Optional, Sequence

import numpy as np

from ..models.results import EvaluationResult

PERCENTILE_METHOD = "linear"

METRIC_NAMES = (
    "Pd (Probability of Detection)",
    "Pfa (False Alarms per s)",
    "Mean Detection Latency (s)",
    "Detection Latency StdDev (s)",
    "Detection Latency P95 (s)",
    "Mean Detection Error (m)",
    "Detection Error StdDev (m)",
    "Detection Error P95 (m)",
    "CEP50 (m)",
    "CEP90 (m)",
    "Track Continuity Ratio",
    "Mean Track Error (m)",
    "Track Error Max (m)",
    "Track Update Rate (Hz)",
    "Total Track Drops",
    "Track After Loss Ratio",
    "UID Preservation Ratio",
    "Pi (Probability of Identification)",
    "IFF Accuracy",
    "Payload Identification Rate",
    "Bird Rejection Ratio",
    "Mean Identification Latency (s)",
    "Overall Score (0-100)",
    "Compliance (%)",
)
"""Stable, ordered metric names of compute_all_metrics()"""


# =============================================================================
# STATISTICS
# =============================================================================


def mean(values: Sequence[float]) -> float:
    return float(np.mean(values)) if len(values) else 0.0


def std(values: Sequence[float]) -> float:
    """Sample standard deviation (ddof=1); 0 for fewer than two values."""
    return float(np.std(values, ddof=1)) if len(values) >= 2 else 0.0


def percentile(values: Sequence[float], q: float) -> float:
    """q-th percentile under the pinned interpolation rule; 0 when empty."""
    if not len(values):
        return 0.0
    return float(np.percentile(np.asarray(values, dtype=np.float64), q, method=PERCENTILE_METHOD))


def compute_cep50(errors: Sequence[float]) -> float:
    """Radius containing 50% of radial position errors [m]."""
    return percentile(errors, 50.0)


def compute_cep90(errors: Sequence[float]) -> float:
    """Radius containing 90% of radial position errors [m]."""
    return percentile(errors, 90.0)


def _ratio(numerator: float, denominator: float, empty: float = 0.0) -> float:
    return float(numerator) / float(denominator) if denominator else empty


# =============================================================================
# METRICS ENGINE
# =============================================================================


class MetricsEngine:
    """
    Fills the scalar metric fields of an EvaluationResult.

    Pure aggregation over the result's records; calling populate() twice
    gives the same values.
    """

    def __init__(self, display_delay_s: float = 0.3) -> None:
        """
        Initialize Metrics Engine.

        Args:
            display_delay_s: Added to mean detection latency for display latency [s]
        """
        self.display_delay_s = display_delay_s

    def populate(self, result: EvaluationResult, duration_s: Optional[float] = None) -> EvaluationResult:
        """
        Compute detection, tracking and identification metrics in place.

        Args:
            result: Result holding raw records
            duration_s: Observation time for Pfa (default: result.duration_s)

        Returns:
            The same result, for chaining
        """
        duration = result.duration_s if duration_s is None else duration_s
        self._detection_metrics(result, duration)
        self._tracking_metrics(result)
        self._identification_metrics(result)
        return result

    def _detection_metrics(self, result: EvaluationResult, duration: float) -> None:
        true_detections = result.true_detections
        false_alarms = result.false_alarms
        latencies = [d.latency_s for d in true_detections]
        errors = [d.position_error_m for d in true_detections]

        result.probability_of_detection = min(
            1.0, _ratio(len(true_detections), result.coverage_steps)
        )
        result.false_alarm_count = len(false_alarms)
        result.false_alarm_rate = _ratio(len(false_alarms), duration)

        result.mean_detection_latency_s = mean(latencies)
        result.detection_latency_std_s = std(latencies)
        result.detection_latency_p95_s = percentile(latencies, 95.0)
        result.display_latency_s = (
            result.mean_detection_latency_s + self.display_delay_s if latencies else 0.0
        )

        result.mean_detection_error_m = mean(errors)
        result.detection_error_std_m = std(errors)
        result.detection_error_p95_m = percentile(errors, 95.0)
        result.cep50_m = compute_cep50(errors)
        result.cep90_m = compute_cep90(errors)

        rejected = sum(1 for d in false_alarms if d.clutter_rejected)
        result.bird_rejection = _ratio(rejected, len(false_alarms), empty=1.0)

    def _tracking_metrics(self, result: EvaluationResult) -> None:
        tracks = result.tracking

        # Continuity pooled over target-steps: continuous in-range steps / in-range steps
        in_range = sum(t.in_range_steps for t in tracks)
        continuous_in_range = sum(t.continuity_ratio * t.in_range_steps for t in tracks)
        result.track_continuity = _ratio(continuous_in_range, in_range)

        errors = [e for t in tracks for e in t.position_errors]
        result.mean_track_error_m = mean(errors)
        result.max_track_error_m = float(np.max(errors)) if errors else 0.0

        held = [t for t in tracks if t.held_steps > 0]
        result.update_rate_hz = mean([t.update_rate_hz for t in held])
        result.total_track_drops = int(sum(t.drop_count for t in tracks))

        # Same empty-event conventions as the per-target ratios
        ever_tracked = 1.0 if held else 0.0
        loss_events = sum(t.loss_events for t in tracks)
        recoveries = sum(t.recoveries for t in tracks)
        uid_changes = sum(t.uid_changes for t in tracks)
        result.track_after_loss = _ratio(recoveries, loss_events, empty=ever_tracked)
        result.uid_preservation = _ratio(recoveries, recoveries + uid_changes, empty=ever_tracked)

    def _identification_metrics(self, result: EvaluationResult) -> None:
        attempts = result.identifications
        result.probability_of_identification = _ratio(
            sum(1 for i in attempts if i.classification_correct), len(attempts)
        )
        result.iff_accuracy = _ratio(sum(1 for i in attempts if i.iff_correct), len(attempts))

        # Only targets that truly carry a payload can have it identified
        payload_attempts = [i for i in attempts if i.has_payload]
        result.payload_id_rate = _ratio(
            sum(1 for i in payload_attempts if i.payload_identified), len(payload_attempts)
        )
        result.mean_identification_latency_s = mean([i.latency_s for i in attempts])

    def compute_all_metrics(self, result: EvaluationResult) -> Dict[str, float]:
        """
        Named metrics in stable order (see METRIC_NAMES).

        Reads the populated scalar fields; score and compliance are whatever
        the compliance stage has written (0 before it runs).
        """
        values = (
            result.probability_of_detection,
            result.false_alarm_rate,
            result.mean_detection_latency_s,
            result.detection_latency_std_s,
            result.detection_latency_p95_s,
            result.mean_detection_error_m,
            result.detection_error_std_m,
            result.detection_error_p95_m,
            result.cep50_m,
            result.cep90_m,
            result.track_continuity,
            result.mean_track_error_m,
            result.max_track_error_m,
            result.update_rate_hz,
            result.total_track_drops,
            result.track_after_loss,
            result.uid_preservation,
            result.probability_of_identification,
            result.iff_accuracy,
            result.payload_id_rate,
            result.bird_rejection,
            result.mean_identification_latency_s,
            result.overall_score,
            result.compliance_pct,
        )
        return {name: float(value) for name, value in zip(METRIC_NAMES, values)}


def compute_all_metrics(result: EvaluationResult) -> Dict[str, float]:
    """Named metrics of an already populated result."""
    return MetricsEngine().compute_all_metrics(result)
