"""
CUAS-Eval Exceptions

Error taxonomy for scenario evaluation.

    - ConfigurationError: malformed scenario or configuration (fatal for
      that scenario, raised before any simulation work starts)
    - DataGapError: missing elevation/obstacle data (recovered locally by
      the terrain mask as "unmasked", never escapes it)

Lookup misses (unknown metric names, requirements without a threshold)
are resolved by documented defaults and are not exceptions.
"""


class CuasEvalError(Exception):
    """Base class for all cuaseval errors."""


class ConfigurationError(CuasEvalError, ValueError):
    """Scenario, sensor or profile configuration is invalid."""


class DataGapError(CuasEvalError):
    """Elevation data is unavailable at the requested location."""

    def __init__(self, lat: float, lon: float, message: str = "no elevation data") -> None:
        self.lat = lat
        self.lon = lon
        super().__init__(f"{message} at ({lat:.6f}, {lon:.6f})")
