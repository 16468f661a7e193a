"""
CUAS-Eval Package

Counter-UAS detection/tracking/identification (DTI) evaluation engine:
- Swerling-I sensor detection under weather, night and EW degradation
- Terrain and obstacle line-of-sight masking
- Track continuity state machine and multi-sensor fusion
- Identification, payload ID and IFF simulation
- Standardized metrics and threshold-profile compliance scoring
"""

from cuaseval.config import (
    PipelineConfig,
    load_pipeline_config,
    load_profile,
    save_profile,
)
from cuaseval.evaluation import (
    PASS_SCORE,
    ComplianceEngine,
    InMemoryRequirementCatalog,
    MetricsEngine,
    RequirementCatalog,
    Threshold,
    ThresholdProfile,
    compute_all_metrics,
)
from cuaseval.evaluation.evaluator import Evaluator
from cuaseval.exceptions import ConfigurationError, CuasEvalError, DataGapError
from cuaseval.models import (
    EnvironmentState,
    EvaluationResult,
    FlightPlan,
    GeoPosition,
    Scenario,
    SensorSite,
    UasTarget,
    Waypoint,
)
from cuaseval.simulation import DtiPipeline, SensorLibrary

__version__ = "1.0.0"
__author__ = "CUAS-Eval Contributors"

__all__ = [
    # Configuration
    "PipelineConfig",
    "load_pipeline_config",
    "load_profile",
    "save_profile",
    # Evaluation
    "PASS_SCORE",
    "ComplianceEngine",
    "Evaluator",
    "InMemoryRequirementCatalog",
    "MetricsEngine",
    "RequirementCatalog",
    "Threshold",
    "ThresholdProfile",
    "compute_all_metrics",
    # Errors
    "ConfigurationError",
    "CuasEvalError",
    "DataGapError",
    # Model
    "EnvironmentState",
    "EvaluationResult",
    "FlightPlan",
    "GeoPosition",
    "Scenario",
    "SensorSite",
    "UasTarget",
    "Waypoint",
    # Simulation
    "DtiPipeline",
    "SensorLibrary",
]
