"""
CUAS-Eval Simulation Package

Modules:
    - flight: Ground-truth interpolation of flight plans
    - pipeline: Fixed-step DTI pipeline
    - sensor_library: Copy-on-read registry of sensor templates
"""

from .flight import interpolate_state
from .pipeline import SHARED_MASK_CACHE, DtiPipeline
from .sensor_library import SensorLibrary

__all__ = [
    "interpolate_state",
    "SHARED_MASK_CACHE",
    "DtiPipeline",
    "SensorLibrary",
]
