"""
Physical and Geodetic Constants for DTI Evaluation

All constants are in SI units unless the name states otherwise.

References:
    - NIMA TR8350.2: WGS 84 mean Earth radius
    - Skolnik, "Radar Handbook", 3rd Ed., Chapter 2.12 (Radar Horizon)
"""

from typing import Final

# =============================================================================
# EARTH PARAMETERS
# =============================================================================

EARTH_RADIUS: Final[float] = 6_371_000.0
"""Mean Earth radius [m] - WGS84 mean radius"""


# =============================================================================
# DETECTION MODEL
# =============================================================================

DEFAULT_PFA: Final[float] = 1e-6
"""Design single-look false-alarm probability setting the detection threshold"""

NOMINAL_RANGE_PD: Final[float] = 0.5
"""Baseline Pd at a sensor's nominal detection range"""

REFERENCE_RCS_M2: Final[float] = 0.01
"""Reference target RCS [m²] at which nominal range is specified (small quadcopter)"""

MIN_SLANT_RANGE_M: Final[float] = 1.0
"""Floor applied to slant range to keep SNR finite [m]"""

RCS_TO_CM2: Final[float] = 10_000.0
"""m² to cm² conversion factor for size estimation"""

# =============================================================================
# TERRAIN MASK
# =============================================================================

DEFAULT_MASK_AZIMUTHS: Final[int] = 72
"""Azimuth buckets per terrain mask (5° steps)"""

DEFAULT_MASK_SAMPLES: Final[int] = 100
"""Samples per radial in the terrain mask"""

UNMASKED_ANGLE_DEG: Final[float] = -90.0
"""Mask angle of a radial with no obstructing samples [deg]"""
