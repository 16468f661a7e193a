"""
CUAS-Eval Evaluation Package

Modules:
    - metrics: Aggregation of raw records into named statistics
    - compliance: Threshold profiles, requirement checks and overall score
    - catalog: Requirement catalog interface
    - evaluator: Evaluator facade (evaluate, evaluate_suite)

evaluator depends on cuaseval.simulation and is imported from its module
directly (or from the top-level cuaseval package).
"""

from .catalog import InMemoryRequirementCatalog, RequirementCatalog
from .compliance import (
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
from .metrics import (
    METRIC_NAMES,
    MetricsEngine,
    compute_all_metrics,
    compute_cep50,
    compute_cep90,
)

__all__ = [
    # Catalog
    "InMemoryRequirementCatalog",
    "RequirementCatalog",
    # Compliance
    "DEFAULT_THRESHOLD_TABLE",
    "PASS_SCORE",
    "ComplianceEngine",
    "MetricKind",
    "ScoringWeights",
    "Threshold",
    "ThresholdProfile",
    "default_profile",
    "extract_metric",
    # Metrics
    "METRIC_NAMES",
    "MetricsEngine",
    "compute_all_metrics",
    "compute_cep50",
    "compute_cep90",
]
