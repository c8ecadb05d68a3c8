"""
Typed schemas for uncertainty assessments.

- uncertainty: parameter sets, results, records, factory defaults
- migration: normalization of persisted (possibly legacy) data
"""

from spindleuq.schemas.uncertainty import (
    AssessmentRecord,
    AssessmentStatus,
    DefaultsRecord,
    DistributionType,
    ParameterSet,
    SimpleEnvironmentParameter,
    UncertaintyParameter,
    UncertaintyResult,
    factory_default_params,
)
from spindleuq.schemas.migration import normalize

__all__ = [
    "AssessmentRecord",
    "AssessmentStatus",
    "DefaultsRecord",
    "DistributionType",
    "ParameterSet",
    "SimpleEnvironmentParameter",
    "UncertaintyParameter",
    "UncertaintyResult",
    "factory_default_params",
    "normalize",
]
