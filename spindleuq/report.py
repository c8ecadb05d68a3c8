"""
Report view of an assessment.

Collects what the report page shows for one record: freshness, the committed
combined uncertainties, their expanded values U = k·u_c, the parameter
listing and per-axis budgets. Rendering is the caller's job.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from spindleuq.config import Settings, settings as default_settings
from spindleuq.engine.budget import UncertaintyBudget, decompose
from spindleuq.engine.combination import RESULT_DECIMALS
from spindleuq.schemas.uncertainty import (
    DISPLAY_NAMES,
    ENVIRONMENT_FIELDS,
    UNCERTAINTY_FIELDS,
    AssessmentRecord,
    AssessmentStatus,
    UncertaintyResult,
)

STATUS_LABELS: dict[AssessmentStatus, str] = {
    AssessmentStatus.FILLED: "Assessment complete",
    AssessmentStatus.STALE: "Parameters changed since last save",
    AssessmentStatus.EMPTY: "Not assessed",
}


class ParameterLine(BaseModel):
    """One row of the parameter listing."""
    name: str
    display_name: str
    value: Optional[float]
    unit: str
    distribution: Optional[str] = None


class AssessmentReport(BaseModel):
    """Everything a report needs to display one assessment."""
    key: str
    status: AssessmentStatus
    status_label: str
    last_updated: Optional[datetime] = None
    results: UncertaintyResult
    coverage_factor: float
    expanded_radial: Optional[float] = Field(default=None, description="k · u_c radial, μm")
    expanded_axial: Optional[float] = Field(default=None, description="k · u_c axial, μm")
    parameters: list[ParameterLine]
    budgets: dict[str, UncertaintyBudget]


def displayed_results(record: AssessmentRecord) -> UncertaintyResult:
    """
    Results a report should show.

    Committed results while a save exists (including when stale), otherwise
    the live computation for the current parameters.
    """
    if record.status in (AssessmentStatus.FILLED, AssessmentStatus.STALE) and record.saved_results is not None:
        return record.saved_results
    return record.results


def expand(value: Optional[float], coverage_factor: float) -> Optional[float]:
    """Expanded uncertainty U = k·u_c."""
    if value is None:
        return None
    return round(value * coverage_factor, RESULT_DECIMALS)


def build_report(
    key: str,
    record: AssessmentRecord,
    coverage_factor: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> AssessmentReport:
    """
    Assemble the report view of one record.

    ``coverage_factor`` wins over ``settings.coverage_factor``; with neither
    given the module settings apply.
    """
    cfg = settings or default_settings
    k = cfg.coverage_factor if coverage_factor is None else coverage_factor
    results = displayed_results(record)

    parameters = []
    for name in UNCERTAINTY_FIELDS:
        param = getattr(record.params, name)
        parameters.append(ParameterLine(
            name=name,
            display_name=DISPLAY_NAMES[name],
            value=param.value,
            unit=param.unit,
            distribution=str(param.distribution),
        ))
    for name in ENVIRONMENT_FIELDS:
        param = getattr(record.params, name)
        parameters.append(ParameterLine(
            name=name,
            display_name=DISPLAY_NAMES[name],
            value=param.value,
            unit=param.unit,
        ))

    return AssessmentReport(
        key=key,
        status=record.status,
        status_label=STATUS_LABELS[record.status],
        last_updated=record.last_updated,
        results=results,
        coverage_factor=k,
        expanded_radial=expand(results.radial, k) if results.valid else None,
        expanded_axial=expand(results.axial, k) if results.valid else None,
        parameters=parameters,
        budgets={axis: decompose(record.params, axis) for axis in ("radial", "axial")},
    )
