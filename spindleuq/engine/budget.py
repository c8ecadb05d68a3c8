"""
Uncertainty Budget.

Breaks a combined uncertainty into its contributors so a report can answer
"which term dominates?":

- Per-contributor standard uncertainty and variance
- Share of the combined variance (%)
- Primary driver
- Data gaps (contributors with no value yet)
"""

from dataclasses import dataclass, field
from typing import Optional

import structlog

from spindleuq.engine.combination import AXIS_CONTRIBUTORS, RESULT_DECIMALS, group_uncertainties, rss
from spindleuq.schemas.uncertainty import DISPLAY_NAMES, DistributionType, ParameterSet

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BudgetLine:
    """One contributor's entry in an uncertainty budget."""
    name: str                              # e.g. "sensor_error"
    display_name: str                      # e.g. "Sensor Error"
    declared_value: Optional[float]        # As entered, in declared unit
    unit: str
    distribution: DistributionType
    standard_uncertainty: Optional[float]  # μm
    variance: Optional[float]              # μm²
    contribution_pct: float                # % of combined variance


@dataclass(frozen=True)
class UncertaintyBudget:
    """Contributor breakdown for one axis."""
    axis: str                              # "radial" | "axial"
    combined: Optional[float]              # μm, 3 d.p.; None if incomplete
    lines: list[BudgetLine]
    primary_driver: Optional[str]          # Contributor with largest share
    data_gaps: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.data_gaps


def decompose(params: ParameterSet, axis: str) -> UncertaintyBudget:
    """
    Build the uncertainty budget for one axis.

    Shares are only computed when every contributor is present, matching the
    all-or-nothing rule of ``combine``.
    """
    if axis not in AXIS_CONTRIBUTORS:
        raise ValueError(f"Unknown axis: {axis}")

    contributors = AXIS_CONTRIBUTORS[axis]
    uncertainties = group_uncertainties(params, contributors)
    data_gaps = [name for name, u in uncertainties.items() if u is None]

    total_variance = 0.0
    combined: Optional[float] = None
    if not data_gaps:
        total_variance = sum(u * u for u in uncertainties.values())
        combined = round(rss(uncertainties.values()), RESULT_DECIMALS)

    lines: list[BudgetLine] = []
    for name in contributors:
        param = getattr(params, name)
        u = uncertainties[name]
        variance = u * u if u is not None else None
        pct = 0.0
        if variance is not None and total_variance > 0:
            pct = round(variance / total_variance * 100, 1)
        lines.append(BudgetLine(
            name=name,
            display_name=DISPLAY_NAMES.get(name, name),
            declared_value=param.value,
            unit=param.unit,
            distribution=param.distribution,
            standard_uncertainty=round(u, 4) if u is not None else None,
            variance=variance,
            contribution_pct=pct,
        ))

    primary = None
    if not data_gaps and total_variance > 0:
        primary = max(lines, key=lambda line: line.variance or 0.0).name

    if data_gaps:
        logger.debug("uncertainty_budget_incomplete", axis=axis, data_gaps=data_gaps)

    return UncertaintyBudget(
        axis=axis,
        combined=combined,
        lines=lines,
        primary_driver=primary,
        data_gaps=data_gaps,
    )
