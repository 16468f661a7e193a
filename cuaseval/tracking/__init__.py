"""
CUAS-Eval Tracking Package

Modules:
    - tracker: Track continuity state machine and track reconstruction
    - fusion: Multi-sensor decision fusion and coverage summary
"""

from .fusion import FusionEngine, FusionStrategy, coverage_metrics
from .tracker import CONTINUITY_STATES, HELD_STATES, Track, TrackEngine, TrackState

__all__ = [
    "FusionEngine",
    "FusionStrategy",
    "coverage_metrics",
    "CONTINUITY_STATES",
    "HELD_STATES",
    "Track",
    "TrackEngine",
    "TrackState",
]
