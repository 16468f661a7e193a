"""
Compliance Engine

Scores EvaluationResults against requirement thresholds.

Features:
    - Fixed metric vocabulary (MetricKind) mapped exhaustively to extractors
    - Data-driven default threshold profile ("CWA 18150 Default")
    - Named profiles with independently addable/removable/overridable
      thresholds and their own scoring weights and pass score
    - Inclusive pass condition: min <= value <= max

Documented defaults:
    - A requirement with no registered threshold passes.
    - An unknown metric name extracts as 0.0.

References:
    - CEN Workshop Agreement CWA 18150: C-UAS test methodology
"""

import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Set

from ..models.results import EvaluationResult

logger = logging.getLogger(__name__)

PASS_SCORE = 60.0
"""Overall score bar of the final verdict (overridable per profile/evaluator)"""

DEFAULT_PROFILE_NAME = "CWA 18150 Default"

# =============================================================================
# METRIC VOCABULARY
# =============================================================================


class MetricKind(Enum):
    """Metric names usable in threshold records."""

    PROBABILITY_OF_DETECTION = "probabilityOfDetection"
    FALSE_ALARM_RATE = "falseAlarmRate"
    DETECTION_LATENCY = "detectionLatency"
    DISPLAY_LATENCY = "displayLatency"
    TRACK_CONTINUITY = "trackContinuity"
    UID_PRESERVATION = "uidPreservation"
    TRACK_AFTER_LOSS = "trackAfterLoss"
    POSITION_ACCURACY = "positionAccuracy"
    UPDATE_RATE = "updateRate"
    PROBABILITY_OF_ID = "probabilityOfId"
    IFF_ACCURACY = "iffAccuracy"
    BIRD_REJECTION = "birdRejection"
    WEATHER_PD = "weatherPd"
    NIGHT_PI = "nightPi"
    FOG_PI = "fogPi"
    PAYLOAD_ID_RATE = "payloadIdRate"
    CEP50 = "cep50"
    CEP90 = "cep90"


_EXTRACTORS: Dict[MetricKind, Callable[[EvaluationResult], float]] = {
    MetricKind.PROBABILITY_OF_DETECTION: lambda r: r.probability_of_detection,
    MetricKind.FALSE_ALARM_RATE: lambda r: r.false_alarm_rate,
    MetricKind.DETECTION_LATENCY: lambda r: r.mean_detection_latency_s,
    MetricKind.DISPLAY_LATENCY: lambda r: r.display_latency_s,
    MetricKind.TRACK_CONTINUITY: lambda r: r.track_continuity,
    MetricKind.UID_PRESERVATION: lambda r: r.uid_preservation,
    MetricKind.TRACK_AFTER_LOSS: lambda r: r.track_after_loss,
    MetricKind.POSITION_ACCURACY: lambda r: r.mean_track_error_m,
    MetricKind.UPDATE_RATE: lambda r: r.update_rate_hz,
    MetricKind.PROBABILITY_OF_ID: lambda r: r.probability_of_identification,
    MetricKind.IFF_ACCURACY: lambda r: r.iff_accuracy,
    MetricKind.BIRD_REJECTION: lambda r: r.bird_rejection,
    # Condition-specific requirements read the scenario's own figures; the
    # scenario's environment is what makes them weather/night/fog results
    MetricKind.WEATHER_PD: lambda r: r.probability_of_detection,
    MetricKind.NIGHT_PI: lambda r: r.probability_of_identification,
    MetricKind.FOG_PI: lambda r: r.probability_of_identification,
    MetricKind.PAYLOAD_ID_RATE: lambda r: r.payload_id_rate,
    MetricKind.CEP50: lambda r: r.cep50_m,
    MetricKind.CEP90: lambda r: r.cep90_m,
}

_missing = set(MetricKind) - set(_EXTRACTORS)
if _missing:
    raise RuntimeError(f"metric kinds without extractor: {sorted(m.value for m in _missing)}")

_warned_unknown: Set[str] = set()


def extract_metric(metric_name: str, result: EvaluationResult) -> float:
    """
    Value of a named metric; unknown names yield 0.0.

    Args:
        metric_name: MetricKind value (e.g. "probabilityOfDetection")
        result: Populated evaluation result

    Returns:
        Metric value
    """
    try:
        kind = MetricKind(metric_name)
    except ValueError:
        if metric_name not in _warned_unknown:
            _warned_unknown.add(metric_name)
            logger.warning("Unknown metric name %r evaluates as 0.0", metric_name)
        return 0.0
    return float(_EXTRACTORS[kind](result))


# =============================================================================
# THRESHOLDS AND PROFILES
# =============================================================================


@dataclass(frozen=True)
class Threshold:
    """Acceptance threshold of one requirement (inclusive bounds)."""

    requirement_id: str
    metric_name: str
    min_value: float = -math.inf
    max_value: float = math.inf
    unit: str = ""

    def passes(self, value: float) -> bool:
        return self.min_value <= value <= self.max_value


@dataclass(frozen=True)
class ScoringWeights:
    """Overall-score weights of the detection, tracking and identification stages."""

    detection: float = 40.0
    tracking: float = 30.0
    identification: float = 30.0

    @property
    def total(self) -> float:
        return self.detection + self.tracking + self.identification


# requirement, metric, min, max, unit
DEFAULT_THRESHOLD_TABLE = [
    ("FR01", "probabilityOfDetection", 0.90, 1.0, "ratio"),
    ("FR02", "probabilityOfDetection", 0.85, 1.0, "ratio"),
    ("FR09", "probabilityOfDetection", 0.80, 1.0, "ratio"),
    ("FR15", "falseAlarmRate", 0.0, 0.05, "per s"),
    ("PR09", "probabilityOfDetection", 0.95, 1.0, "ratio"),
    ("TP_D01", "detectionLatency", 0.0, 5.0, "s"),
    ("TP_D02", "displayLatency", 0.0, 3.0, "s"),
    ("FR04", "trackContinuity", 0.90, 1.0, "ratio"),
    ("FR17", "uidPreservation", 0.95, 1.0, "ratio"),
    ("FR18", "trackAfterLoss", 0.80, 1.0, "ratio"),
    ("PR20", "positionAccuracy", 0.0, 10.0, "m"),
    ("TP_D16", "updateRate", 1.0, math.inf, "Hz"),
    ("FR06", "probabilityOfId", 0.75, 1.0, "ratio"),
    ("FR14", "iffAccuracy", 0.90, 1.0, "ratio"),
    ("FR16", "birdRejection", 0.85, 1.0, "ratio"),
    ("FR20", "payloadIdRate", 0.50, 1.0, "ratio"),
    ("PR08", "weatherPd", 0.70, 1.0, "ratio"),
    ("PR13", "nightPi", 0.60, 1.0, "ratio"),
    ("PR14", "fogPi", 0.40, 1.0, "ratio"),
]


@dataclass
class ThresholdProfile:
    """Named set of thresholds plus scoring weights and pass score."""

    name: str
    thresholds: Dict[str, Threshold] = field(default_factory=dict)
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    pass_score: float = PASS_SCORE

    def copy(self, name: Optional[str] = None) -> "ThresholdProfile":
        return ThresholdProfile(
            name=name or self.name,
            thresholds=dict(self.thresholds),
            weights=self.weights,
            pass_score=self.pass_score,
        )


def default_profile() -> ThresholdProfile:
    """Fresh copy of the default profile built from DEFAULT_THRESHOLD_TABLE."""
    thresholds = {
        req_id: Threshold(req_id, metric, lo, hi, unit)
        for req_id, metric, lo, hi, unit in DEFAULT_THRESHOLD_TABLE
    }
    return ThresholdProfile(name=DEFAULT_PROFILE_NAME, thresholds=thresholds)


# =============================================================================
# COMPLIANCE ENGINE
# =============================================================================


class ComplianceEngine:
    """
    Requirement evaluation and overall scoring.

    Thresholds are looked up in the active profile first, then in the
    requirement catalog (if one is attached). Mutating methods must not be
    called while evaluations are in flight.

    Example:
        >>> engine = ComplianceEngine()
        >>> engine.override_threshold("FR01", min_value=0.95)
        >>> engine.evaluate_requirement("FR01", result)
    """

    def __init__(self, profiles: Optional[List[ThresholdProfile]] = None, catalog=None) -> None:
        """
        Initialize Compliance Engine.

        Args:
            profiles: Profiles to register (default: the default profile); the
                first one becomes active
            catalog: Optional RequirementCatalog used as threshold fallback
        """
        profiles = profiles or [default_profile()]
        self.profiles: Dict[str, ThresholdProfile] = {p.name: p for p in profiles}
        self.active_profile = profiles[0].name
        self.catalog = catalog

    # ----- profiles -----

    def add_profile(self, profile: ThresholdProfile, activate: bool = False) -> None:
        self.profiles[profile.name] = profile
        if activate:
            self.active_profile = profile.name

    def select_profile(self, name: str) -> None:
        if name not in self.profiles:
            raise KeyError(f"unknown threshold profile {name!r}")
        self.active_profile = name

    def profile(self, name: Optional[str] = None) -> ThresholdProfile:
        return self.profiles[name or self.active_profile]

    # ----- thresholds -----

    def add_threshold(self, threshold: Threshold, profile: Optional[str] = None) -> None:
        """Register (or replace) a requirement threshold."""
        self.profile(profile).thresholds[threshold.requirement_id] = threshold

    def remove_threshold(self, requirement_id: str, profile: Optional[str] = None) -> bool:
        """Remove a threshold; the requirement then passes by default."""
        return self.profile(profile).thresholds.pop(requirement_id, None) is not None

    def override_threshold(
        self,
        requirement_id: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        profile: Optional[str] = None,
    ) -> Threshold:
        """
        Change the bounds of an existing threshold.

        Raises:
            KeyError: No threshold registered for requirement_id
        """
        thresholds = self.profile(profile).thresholds
        current = thresholds.get(requirement_id) or self._catalog_threshold(requirement_id)
        if current is None:
            raise KeyError(f"no threshold registered for {requirement_id!r}")
        updated = replace(
            current,
            min_value=current.min_value if min_value is None else min_value,
            max_value=current.max_value if max_value is None else max_value,
        )
        thresholds[requirement_id] = updated
        return updated

    def get_threshold(self, requirement_id: str, profile: Optional[str] = None) -> Optional[Threshold]:
        threshold = self.profile(profile).thresholds.get(requirement_id)
        if threshold is None:
            threshold = self._catalog_threshold(requirement_id)
        return threshold

    def _catalog_threshold(self, requirement_id: str) -> Optional[Threshold]:
        if self.catalog is None:
            return None
        return self.catalog.get_threshold(requirement_id)

    # ----- evaluation -----

    def evaluate_requirement(
        self, requirement_id: str, result: EvaluationResult, profile: Optional[str] = None
    ) -> bool:
        """
        Check one requirement against a result.

        Returns:
            True if the metric lies within [min, max], or if no threshold is registered
        """
        threshold = self.get_threshold(requirement_id, profile)
        if threshold is None:
            logger.debug("Requirement %s has no threshold: pass by default", requirement_id)
            return True
        value = extract_metric(threshold.metric_name, result)
        passed = threshold.passes(value)
        logger.info(
            "%s %s: %s=%.4f in [%s, %s] %s",
            "PASS" if passed else "FAIL",
            requirement_id,
            threshold.metric_name,
            value,
            threshold.min_value,
            threshold.max_value,
            threshold.unit,
        )
        return passed

    def score(self, result: EvaluationResult, profile: Optional[str] = None) -> float:
        """Weighted detection/tracking/identification score in [0, 100]."""
        weights = self.profile(profile).weights
        if weights.total <= 0:
            return 0.0
        weighted = (
            weights.detection * result.probability_of_detection
            + weights.tracking * result.track_continuity
            + weights.identification * result.probability_of_identification
        )
        return 100.0 * weighted / weights.total
