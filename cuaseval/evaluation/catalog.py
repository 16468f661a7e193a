"""
Requirement Catalog

Lookup interface to the static requirement catalog: which requirements a
scenario type is tested against, and the threshold record of a requirement.
The catalog is read-only during evaluations.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from .compliance import Threshold


class RequirementCatalog(ABC):
    """Read-only requirement lookup consumed by the evaluator."""

    @abstractmethod
    def get_all_scenario_requirement_ids(self, scenario_code: str) -> List[str]:
        """Ordered requirement IDs linked to a scenario type code (may be empty)."""

    @abstractmethod
    def get_threshold(self, requirement_id: str) -> Optional[Threshold]:
        """Threshold of a requirement, or None when the catalog has none."""


class InMemoryRequirementCatalog(RequirementCatalog):
    """
    Catalog held in dictionaries.

    Example:
        >>> catalog = InMemoryRequirementCatalog({"S2": ["FR01", "FR04", "FR06"]})
        >>> catalog.get_all_scenario_requirement_ids("S2")
        ['FR01', 'FR04', 'FR06']
    """

    def __init__(
        self,
        scenario_requirements: Optional[Dict[str, Iterable[str]]] = None,
        thresholds: Optional[Iterable[Threshold]] = None,
    ) -> None:
        self._scenario_requirements: Dict[str, List[str]] = {
            code: list(ids) for code, ids in (scenario_requirements or {}).items()
        }
        self._thresholds: Dict[str, Threshold] = {
            t.requirement_id: t for t in (thresholds or [])
        }

    def get_all_scenario_requirement_ids(self, scenario_code: str) -> List[str]:
        return list(self._scenario_requirements.get(scenario_code, []))

    def get_threshold(self, requirement_id: str) -> Optional[Threshold]:
        return self._thresholds.get(requirement_id)
