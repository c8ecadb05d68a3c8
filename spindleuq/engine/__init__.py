"""
Spindle Uncertainty Engine — calculation core.

Components:
- distribution: standard uncertainty from a declared distribution
- combination: root-sum-of-squares combination into radial/axial values
- budget: per-contributor breakdown of a combined uncertainty
"""

from spindleuq.engine.combination import AXIAL_CONTRIBUTORS, RADIAL_CONTRIBUTORS, combine
from spindleuq.engine.distribution import standard_uncertainty

__all__ = [
    "AXIAL_CONTRIBUTORS",
    "RADIAL_CONTRIBUTORS",
    "combine",
    "standard_uncertainty",
]
