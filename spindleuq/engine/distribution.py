"""
Distribution Model.

Converts a declared contributor (value + unit + distribution shape) into its
standard uncertainty in micrometres.

    uniform     u = |a| / √3
    triangular  u = |a| / √6
    normal      u = |σ|        (value is already a standard deviation)

A missing value is the normal "not yet configured" state, not an error:
the result is None and the combination downstream becomes invalid.
"""

import math
from typing import Optional

import structlog

from spindleuq.schemas.uncertainty import DistributionType, UncertaintyParameter

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

# Multiplier to micrometres. Extend explicitly; unlisted units pass through as μm.
UNIT_TO_MICROMETRES: dict[str, float] = {
    "nm": 1e-3,
    "μm": 1.0,   # U+03BC
    "µm": 1.0,   # U+00B5 micro sign
    "um": 1.0,
}

DISTRIBUTION_DIVISORS: dict[DistributionType, float] = {
    DistributionType.UNIFORM: math.sqrt(3),
    DistributionType.TRIANGULAR: math.sqrt(6),
    DistributionType.NORMAL: 1.0,
}

_warned_units: set[str] = set()


def to_micrometres(value: float, unit: str) -> float:
    """Scale a value in ``unit`` to micrometres."""
    factor = UNIT_TO_MICROMETRES.get(unit)
    if factor is None:
        if unit not in _warned_units:
            _warned_units.add(unit)
            logger.warning("unrecognized_unit_treated_as_micrometre", unit=unit)
        factor = 1.0
    return value * factor


def standard_uncertainty(param: UncertaintyParameter) -> Optional[float]:
    """
    Standard uncertainty of one contributor, in μm.

    Args:
        param: Declared contributor

    Returns:
        Standard deviation equivalent, or None if the value is missing
        or not a finite number
    """
    value = param.value
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None

    magnitude = abs(to_micrometres(value, param.unit))
    divisor = DISTRIBUTION_DIVISORS.get(param.distribution, 1.0)
    return magnitude / divisor
