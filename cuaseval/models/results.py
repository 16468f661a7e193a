"""
Result Records

Per-detection, per-track and per-identification records produced while a
scenario executes, and the EvaluationResult aggregating them.

EvaluationResult is the only artifact handed to reporting/export code, so
to_dict() emits builtins only.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..physics.geo import GeoPosition

FALSE_ALARM_ID = "FALSE_ALARM"
"""Sentinel target identity of synthesized false alarms"""


@dataclass
class DetectionResult:
    """
    One detection decision.

    Attributes:
        target_id: Target identity, or FALSE_ALARM_ID
        time_s: Scenario time [s]
        detected: Detection decision
        pd_effective: Pd after all degradations
        latency_s: Report latency [s]
        position_error_m: Horizontal distance reported-to-truth [m]
        reported_position: Reported position (None when not detected)
        sensor_ids: Sensor(s) owning the decision
        snr_db: Implied SNR at the decision [dB]
        clutter_rejected: False alarm rejected by classification
    """

    target_id: str
    time_s: float
    detected: bool = False
    pd_effective: float = 0.0
    latency_s: float = 0.0
    position_error_m: float = 0.0
    reported_position: Optional[GeoPosition] = None
    sensor_ids: List[str] = field(default_factory=list)
    snr_db: Optional[float] = None
    clutter_rejected: bool = False

    @property
    def is_false_alarm(self) -> bool:
        return self.target_id == FALSE_ALARM_ID

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_id": self.target_id,
            "time_s": float(self.time_s),
            "detected": bool(self.detected),
            "pd_effective": float(self.pd_effective),
            "latency_s": float(self.latency_s),
            "position_error_m": float(self.position_error_m),
            "reported_position": (
                self.reported_position.to_dict() if self.reported_position else None
            ),
            "sensor_ids": list(self.sensor_ids),
            "snr_db": None if self.snr_db is None else float(self.snr_db),
            "false_alarm": self.is_false_alarm,
            "clutter_rejected": bool(self.clutter_rejected),
        }


@dataclass
class TrackingResult:
    """
    Track summary for one target over the whole scenario.

    Attributes:
        target_id: Target identity
        track_uid: Track identifier (stable for the scenario)
        mean_position_error_m: Mean track-to-truth error over held steps [m]
        max_position_error_m: Max track-to-truth error over held steps [m]
        continuity_ratio: Continuous in-range steps / in-range steps (TRACKING,
            COASTING and the opening ACQUIRED step of each segment)
        update_rate_hz: Detections / held duration [Hz]
        drop_count: Re-acquisitions after a drop
        loss_events: TRACKING -> COASTING transitions
        recoveries: COASTING -> TRACKING transitions
        uid_changes: Re-acquisitions after a drop (breaks in track identity)
        track_after_loss: recoveries / loss_events
        uid_preservation: recoveries / (recoveries + uid_changes)
    """

    target_id: str
    track_uid: str = ""
    mean_position_error_m: float = 0.0
    max_position_error_m: float = 0.0
    continuity_ratio: float = 0.0
    update_rate_hz: float = 0.0
    drop_count: int = 0
    loss_events: int = 0
    recoveries: int = 0
    uid_changes: int = 0
    track_after_loss: float = 0.0
    uid_preservation: float = 0.0
    detections: int = 0
    held_steps: int = 0
    in_range_steps: int = 0
    position_errors: List[float] = field(default_factory=list)
    state_history: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_id": self.target_id,
            "track_uid": self.track_uid,
            "mean_position_error_m": float(self.mean_position_error_m),
            "max_position_error_m": float(self.max_position_error_m),
            "continuity_ratio": float(self.continuity_ratio),
            "update_rate_hz": float(self.update_rate_hz),
            "drop_count": int(self.drop_count),
            "loss_events": int(self.loss_events),
            "recoveries": int(self.recoveries),
            "uid_changes": int(self.uid_changes),
            "track_after_loss": float(self.track_after_loss),
            "uid_preservation": float(self.uid_preservation),
            "detections": int(self.detections),
            "held_steps": int(self.held_steps),
            "in_range_steps": int(self.in_range_steps),
            "state_history": list(self.state_history),
        }


@dataclass
class IdentificationResult:
    """
    One identification attempt.

    Attributes:
        target_id: Target identity
        time_s: Scenario time [s]
        sensor_id: Classifying sensor
        classification_correct: Estimated class matched truth
        payload_identified: Payload correctly identified
        has_payload: Ground-truth payload flag of the target
        iff_correct: Friend/foe declaration matched truth
        estimated_size_cm2: Estimated target size [cm²]
        estimated_class: Estimated UAS class name
        latency_s: Identification latency [s]
        probability: Classification probability used for the draw
    """

    target_id: str
    time_s: float
    sensor_id: str
    classification_correct: bool = False
    payload_identified: bool = False
    has_payload: bool = False
    iff_correct: bool = False
    estimated_size_cm2: float = 0.0
    estimated_class: str = "UNKNOWN"
    latency_s: float = 0.0
    probability: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_id": self.target_id,
            "time_s": float(self.time_s),
            "sensor_id": self.sensor_id,
            "classification_correct": bool(self.classification_correct),
            "payload_identified": bool(self.payload_identified),
            "has_payload": bool(self.has_payload),
            "iff_correct": bool(self.iff_correct),
            "estimated_size_cm2": float(self.estimated_size_cm2),
            "estimated_class": self.estimated_class,
            "latency_s": float(self.latency_s),
            "probability": float(self.probability),
        }


@dataclass
class EvaluationResult:
    """
    Complete evaluation of one scenario.

    Raw records are appended by the pipeline, scalar metrics are filled by
    the metrics engine, and the compliance stage appends pass/fail lists,
    score and verdict.
    """

    scenario_id: str
    scenario_code: str = ""
    seed: int = 0
    duration_s: float = 0.0
    time_step_s: float = 1.0
    weather: str = "clear"
    ew_condition: str = "none"

    detections: List[DetectionResult] = field(default_factory=list)
    tracking: List[TrackingResult] = field(default_factory=list)
    identifications: List[IdentificationResult] = field(default_factory=list)
    coverage_steps: int = 0

    # Detection
    probability_of_detection: float = 0.0
    false_alarm_rate: float = 0.0
    false_alarm_count: int = 0
    mean_detection_latency_s: float = 0.0
    detection_latency_std_s: float = 0.0
    detection_latency_p95_s: float = 0.0
    display_latency_s: float = 0.0
    mean_detection_error_m: float = 0.0
    detection_error_std_m: float = 0.0
    detection_error_p95_m: float = 0.0
    cep50_m: float = 0.0
    cep90_m: float = 0.0
    bird_rejection: float = 0.0

    # Tracking
    track_continuity: float = 0.0
    mean_track_error_m: float = 0.0
    max_track_error_m: float = 0.0
    update_rate_hz: float = 0.0
    total_track_drops: int = 0
    track_after_loss: float = 0.0
    uid_preservation: float = 0.0

    # Identification
    probability_of_identification: float = 0.0
    iff_accuracy: float = 0.0
    payload_id_rate: float = 0.0
    mean_identification_latency_s: float = 0.0

    # Compliance
    profile_name: str = ""
    overall_score: float = 0.0
    compliance_pct: float = 0.0
    passed_requirements: List[str] = field(default_factory=list)
    failed_requirements: List[str] = field(default_factory=list)
    passed: bool = False
    error: Optional[str] = None

    @classmethod
    def failed_marker(cls, scenario_id: str, error: str, scenario_code: str = "") -> "EvaluationResult":
        """Result standing in for a scenario that could not be evaluated."""
        return cls(scenario_id=scenario_id, scenario_code=scenario_code, error=error, passed=False)

    @property
    def true_detections(self) -> List[DetectionResult]:
        return [d for d in self.detections if d.detected and not d.is_false_alarm]

    @property
    def false_alarms(self) -> List[DetectionResult]:
        return [d for d in self.detections if d.is_false_alarm]

    def to_dict(self) -> Dict[str, Any]:
        """Plain builtin representation for reporting and export."""
        return {
            "scenario_id": self.scenario_id,
            "scenario_code": self.scenario_code,
            "seed": int(self.seed),
            "duration_s": float(self.duration_s),
            "time_step_s": float(self.time_step_s),
            "weather": self.weather,
            "ew_condition": self.ew_condition,
            "coverage_steps": int(self.coverage_steps),
            "probability_of_detection": float(self.probability_of_detection),
            "false_alarm_rate": float(self.false_alarm_rate),
            "false_alarm_count": int(self.false_alarm_count),
            "mean_detection_latency_s": float(self.mean_detection_latency_s),
            "detection_latency_std_s": float(self.detection_latency_std_s),
            "detection_latency_p95_s": float(self.detection_latency_p95_s),
            "display_latency_s": float(self.display_latency_s),
            "mean_detection_error_m": float(self.mean_detection_error_m),
            "detection_error_std_m": float(self.detection_error_std_m),
            "detection_error_p95_m": float(self.detection_error_p95_m),
            "cep50_m": float(self.cep50_m),
            "cep90_m": float(self.cep90_m),
            "bird_rejection": float(self.bird_rejection),
            "track_continuity": float(self.track_continuity),
            "mean_track_error_m": float(self.mean_track_error_m),
            "max_track_error_m": float(self.max_track_error_m),
            "update_rate_hz": float(self.update_rate_hz),
            "total_track_drops": int(self.total_track_drops),
            "track_after_loss": float(self.track_after_loss),
            "uid_preservation": float(self.uid_preservation),
            "probability_of_identification": float(self.probability_of_identification),
            "iff_accuracy": float(self.iff_accuracy),
            "payload_id_rate": float(self.payload_id_rate),
            "mean_identification_latency_s": float(self.mean_identification_latency_s),
            "profile_name": self.profile_name,
            "overall_score": float(self.overall_score),
            "compliance_pct": float(self.compliance_pct),
            "passed_requirements": list(self.passed_requirements),
            "failed_requirements": list(self.failed_requirements),
            "passed": bool(self.passed),
            "error": self.error,
            "detections": [d.to_dict() for d in self.detections],
            "tracking": [t.to_dict() for t in self.tracking],
            "identifications": [i.to_dict() for i in self.identifications],
        }
