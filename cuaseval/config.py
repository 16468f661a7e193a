"""
Evaluation Configuration

Pipeline configuration and YAML loading/saving of pipeline settings and
threshold profiles.

Pipeline YAML:
    time_step_s: 1.0
    coast_tolerance_s: 3.0
    fusion_strategy: voting
    voting_threshold: 2

Threshold profile YAML:
    name: Airport Strict
    inherit_defaults: true        # start from the default profile
    pass_score: 70
    weights: {detection: 50, tracking: 25, identification: 25}
    thresholds:
      FR01: {metric: probabilityOfDetection, min: 0.95, max: 1.0, unit: ratio}
      TP_D16: {metric: updateRate, min: 2.0, max: .inf, unit: Hz}
    remove: [FR16]
"""

import dataclasses
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import yaml

from .evaluation.compliance import (
    ScoringWeights,
    Threshold,
    ThresholdProfile,
    default_profile,
)
from .exceptions import ConfigurationError
from .physics.constants import DEFAULT_MASK_AZIMUTHS, DEFAULT_MASK_SAMPLES
from .tracking.fusion import FusionStrategy


@dataclass
class PipelineConfig:
    """
    DTI pipeline configuration.

    Attributes:
        time_step_s: Simulation timestep [s] (1 Hz default)
        coast_tolerance_s: Max time without a fix before a track drops [s]
        update_interval_s: Expected fix interval for ACQUIRED -> TRACKING (None = time step)
        mask_azimuths: Terrain mask azimuth buckets
        mask_samples: Terrain mask samples per radial
        mask_max_range_m: Terrain mask sampled range (None = sensor instrumented range)
        fusion_strategy: Multi-sensor fusion rule
        voting_threshold: k for k-of-n voting fusion
        display_delay_s: Added to detection latency for display latency [s]
    """

    time_step_s: float = 1.0
    coast_tolerance_s: float = 3.0
    update_interval_s: Optional[float] = None
    mask_azimuths: int = DEFAULT_MASK_AZIMUTHS
    mask_samples: int = DEFAULT_MASK_SAMPLES
    mask_max_range_m: Optional[float] = None
    fusion_strategy: FusionStrategy = FusionStrategy.OR_LOGIC
    voting_threshold: int = 2
    display_delay_s: float = 0.3

    def __post_init__(self) -> None:
        if isinstance(self.fusion_strategy, str):
            try:
                self.fusion_strategy = FusionStrategy(self.fusion_strategy)
            except ValueError as exc:
                raise ConfigurationError(f"unknown fusion strategy {self.fusion_strategy!r}") from exc
        if self.time_step_s <= 0:
            raise ConfigurationError("time_step_s must be positive")
        if self.coast_tolerance_s < 0:
            raise ConfigurationError("coast_tolerance_s must not be negative")
        if self.update_interval_s is not None and self.update_interval_s <= 0:
            raise ConfigurationError("update_interval_s must be positive")
        if self.mask_azimuths < 1 or self.mask_samples < 1:
            raise ConfigurationError("mask_azimuths and mask_samples must be positive")
        if self.voting_threshold < 1:
            raise ConfigurationError("voting_threshold must be at least 1")

    @property
    def effective_update_interval_s(self) -> float:
        return self.update_interval_s if self.update_interval_s is not None else self.time_step_s

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"unknown pipeline settings: {sorted(unknown)}")
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        data["fusion_strategy"] = self.fusion_strategy.value
        return data


# =============================================================================
# YAML LOADING
# =============================================================================


def _read_yaml(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Configuration file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be a mapping")
    return data


def load_pipeline_config(path: str) -> PipelineConfig:
    """Load a PipelineConfig from YAML; missing keys keep their defaults."""
    return PipelineConfig.from_dict(_read_yaml(path))


def _number(value: Any, context: str) -> float:
    """float(value), or ConfigurationError naming where the bad value sits."""
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{context}: expected a number, got {value!r}") from exc


def profile_from_dict(data: Dict[str, Any]) -> ThresholdProfile:
    """
    Build a threshold profile from a parsed mapping.

    Raises:
        ConfigurationError: Unknown keys or malformed thresholds
    """
    allowed = {"name", "inherit_defaults", "pass_score", "weights", "thresholds", "remove"}
    unknown = set(data) - allowed
    if unknown:
        raise ConfigurationError(f"unknown profile keys: {sorted(unknown)}")

    base = default_profile() if data.get("inherit_defaults", True) else None
    profile = ThresholdProfile(
        name=str(data.get("name", base.name if base else "custom")),
        thresholds=dict(base.thresholds) if base else {},
        weights=base.weights if base else ScoringWeights(),
    )
    if base is not None:
        profile.pass_score = base.pass_score
    if "pass_score" in data:
        profile.pass_score = _number(data["pass_score"], "pass_score")

    if "weights" in data:
        weights = data["weights"] or {}
        extra = set(weights) - {"detection", "tracking", "identification"}
        if extra:
            raise ConfigurationError(f"unknown weight names: {sorted(extra)}")
        profile.weights = dataclasses.replace(
            profile.weights, **{k: _number(v, f"weight {k!r}") for k, v in weights.items()}
        )

    for req_id, entry in (data.get("thresholds") or {}).items():
        if not isinstance(entry, dict) or "metric" not in entry:
            raise ConfigurationError(f"threshold {req_id!r} needs at least a 'metric'")
        extra = set(entry) - {"metric", "min", "max", "unit"}
        if extra:
            raise ConfigurationError(f"threshold {req_id!r}: unknown keys {sorted(extra)}")
        profile.thresholds[str(req_id)] = Threshold(
            requirement_id=str(req_id),
            metric_name=str(entry["metric"]),
            min_value=_number(entry.get("min", float("-inf")), f"threshold {req_id!r} min"),
            max_value=_number(entry.get("max", float("inf")), f"threshold {req_id!r} max"),
            unit=str(entry.get("unit", "")),
        )

    for req_id in data.get("remove") or []:
        profile.thresholds.pop(str(req_id), None)

    return profile


def load_profile(path: str) -> ThresholdProfile:
    """Load a threshold profile from YAML."""
    return profile_from_dict(_read_yaml(path))


def save_profile(profile: ThresholdProfile, path: str) -> None:
    """Write a profile as a self-contained YAML file (inherit_defaults: false)."""
    data = {
        "name": profile.name,
        "inherit_defaults": False,
        "pass_score": float(profile.pass_score),
        "weights": dataclasses.asdict(profile.weights),
        "thresholds": {
            req_id: {
                "metric": t.metric_name,
                "min": float(t.min_value),
                "max": float(t.max_value),
                "unit": t.unit,
            }
            for req_id, t in profile.thresholds.items()
        },
    }
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False)
