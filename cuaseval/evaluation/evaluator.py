"""
Evaluator

Top-level facade: run a scenario through the DTI pipeline, check its
requirements and produce the final verdict.

Verdict:
    passed = no failed requirement AND overall score >= pass score

Suite evaluation is embarrassingly parallel across scenarios: each scenario
owns its random stream and track states. With workers > 1 scenarios run in
a multiprocessing Pool; results always come back in input order, and a
scenario failing with ConfigurationError yields a failure marker in its slot
without aborting the rest of the suite.

Usage:
    evaluator = Evaluator(catalog=InMemoryRequirementCatalog({"S1": ["FR01", "FR04"]}))
    results = evaluator.evaluate_suite(scenarios, workers=4)
"""

import logging
from multiprocessing import Pool
from typing import Dict, List, Optional, Sequence, Tuple

from ..exceptions import ConfigurationError
from ..models.results import EvaluationResult
from ..models.scenario import Scenario
from ..simulation.pipeline import DtiPipeline
from .catalog import RequirementCatalog
from .compliance import ComplianceEngine
from .metrics import compute_all_metrics

logger = logging.getLogger(__name__)


class Evaluator:
    """
    Scenario evaluation facade.

    Example:
        >>> evaluator = Evaluator()
        >>> result = evaluator.evaluate(scenario)
        >>> result.passed, result.overall_score
    """

    def __init__(
        self,
        pipeline: Optional[DtiPipeline] = None,
        compliance: Optional[ComplianceEngine] = None,
        catalog: Optional[RequirementCatalog] = None,
        pass_score: Optional[float] = None,
    ) -> None:
        """
        Initialize Evaluator.

        Args:
            pipeline: DTI pipeline (default: DtiPipeline())
            compliance: Compliance engine (default: default profile)
            catalog: Requirement catalog for scenario requirement lookup
            pass_score: Overall score bar; None uses the active profile's
        """
        self.pipeline = pipeline or DtiPipeline()
        self.catalog = catalog
        self.compliance = compliance or ComplianceEngine(catalog=catalog)
        if self.compliance.catalog is None:
            self.compliance.catalog = catalog
        self.pass_score = pass_score

    def requirement_ids(self, scenario: Scenario) -> List[str]:
        """Explicit scenario requirements, else the catalog's list for its code."""
        if scenario.requirement_ids is not None:
            return list(scenario.requirement_ids)
        if self.catalog is None:
            return []
        return self.catalog.get_all_scenario_requirement_ids(scenario.code)

    def evaluate(self, scenario: Scenario) -> EvaluationResult:
        """
        Evaluate one scenario.

        Raises:
            ConfigurationError: Malformed scenario
        """
        result = self.pipeline.execute(scenario)

        profile = self.compliance.profile()
        pass_score = self.pass_score if self.pass_score is not None else profile.pass_score

        for requirement_id in self.requirement_ids(scenario):
            if self.compliance.evaluate_requirement(requirement_id, result):
                result.passed_requirements.append(requirement_id)
            else:
                result.failed_requirements.append(requirement_id)

        total = len(result.passed_requirements) + len(result.failed_requirements)
        result.profile_name = profile.name
        result.compliance_pct = 100.0 * len(result.passed_requirements) / total if total else 100.0
        result.overall_score = self.compliance.score(result)
        result.passed = not result.failed_requirements and result.overall_score >= pass_score

        logger.info(
            "Scenario %s: %s (score %.1f, %d/%d requirements, profile %s)",
            scenario.scenario_id,
            "PASS" if result.passed else "FAIL",
            result.overall_score,
            len(result.passed_requirements),
            total,
            profile.name,
        )
        return result

    def evaluate_suite(
        self, scenarios: Sequence[Scenario], workers: int = 1
    ) -> List[EvaluationResult]:
        """
        Evaluate scenarios in order.

        Args:
            scenarios: Scenarios to evaluate
            workers: Worker processes (1 = evaluate in this process)

        Returns:
            One result per scenario, in input order
        """
        logger.info("Evaluating suite of %d scenarios (%d workers)", len(scenarios), workers)
        slots = [(self, scenario) for scenario in scenarios]
        if workers > 1 and len(slots) > 1:
            with Pool(min(workers, len(slots))) as pool:
                return pool.map(_evaluate_slot, slots)
        return [_evaluate_slot(slot) for slot in slots]

    def metrics(self, result: EvaluationResult) -> Dict[str, float]:
        """Named metrics of an evaluated result."""
        return compute_all_metrics(result)


def _evaluate_slot(slot: Tuple[Evaluator, Scenario]) -> EvaluationResult:
    """Evaluate one suite slot; module level so worker processes can unpickle it."""
    evaluator, scenario = slot
    try:
        return evaluator.evaluate(scenario)
    except ConfigurationError as exc:
        logger.warning("Scenario %s rejected: %s", scenario.scenario_id, exc)
        return EvaluationResult.failed_marker(scenario.scenario_id, str(exc), scenario.code)
