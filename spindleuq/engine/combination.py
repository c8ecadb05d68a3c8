"""
Combination Calculator.

Combines independent standard uncertainties into radial and axial combined
uncertainty by root-sum-of-squares:

    u_c = √(Σ u_i²)

Validity is all-or-nothing: if any contributor of either group is missing,
neither value is reported, so a partial (understated) result never surfaces.
"""

import math
from typing import Iterable, Optional

from spindleuq.engine.distribution import standard_uncertainty
from spindleuq.schemas.uncertainty import INVALID_RESULT, ParameterSet, UncertaintyResult

RADIAL_CONTRIBUTORS: tuple[str, ...] = (
    "sensor_error",
    "standard_error",
    "environment_error",
    "sensor_misalignment_radial",
    "sensor_lateral_displacement_radial",
)

AXIAL_CONTRIBUTORS: tuple[str, ...] = (
    "sensor_error",
    "standard_error",
    "environment_error",
    "sensor_misalignment_axial",
    "sensor_lateral_displacement_axial",
)

AXIS_CONTRIBUTORS: dict[str, tuple[str, ...]] = {
    "radial": RADIAL_CONTRIBUTORS,
    "axial": AXIAL_CONTRIBUTORS,
}

RESULT_DECIMALS = 3


def rss(values: Iterable[float]) -> float:
    """Root-sum-of-squares (Euclidean norm)."""
    return math.hypot(*values)


def group_uncertainties(params: ParameterSet, contributors: Iterable[str]) -> dict[str, Optional[float]]:
    """Standard uncertainty (μm) per named contributor."""
    return {name: standard_uncertainty(getattr(params, name)) for name in contributors}


def combine(params: ParameterSet) -> UncertaintyResult:
    """
    Combined radial and axial standard uncertainty.

    Args:
        params: Full parameter set

    Returns:
        UncertaintyResult in μm (3 d.p.), invalid if any contributor is missing
    """
    radial = group_uncertainties(params, RADIAL_CONTRIBUTORS)
    axial = group_uncertainties(params, AXIAL_CONTRIBUTORS)

    if any(u is None for u in radial.values()) or any(u is None for u in axial.values()):
        return INVALID_RESULT

    return UncertaintyResult(
        radial=round(rss(radial.values()), RESULT_DECIMALS),
        axial=round(rss(axial.values()), RESULT_DECIMALS),
        valid=True,
    )
