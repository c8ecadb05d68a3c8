"""
Spindle Uncertainty Engine.

Combined measurement uncertainty for spindle-error analysis.

Key features:
- Standard uncertainty from uniform / triangular / normal declarations
- Radial and axial combined uncertainty by root-sum-of-squares
- Per-report assessment records with empty / filled / stale freshness
- Shared default parameter set with draft editing, export and import
- Persistence to a key-value medium (memory, files, Redis) with migration
  of older stored shapes
"""

from spindleuq.bootstrap import UncertaintyEngine, build_engine
from spindleuq.engine.combination import combine
from spindleuq.engine.distribution import standard_uncertainty
from spindleuq.observability import configure_logging
from spindleuq.schemas.migration import normalize
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
from spindleuq.stores.assessments import AssessmentStateStore
from spindleuq.stores.defaults import DefaultsStore

__version__ = "1.0.0"

__all__ = [
    "AssessmentRecord",
    "AssessmentStateStore",
    "AssessmentStatus",
    "DefaultsRecord",
    "DefaultsStore",
    "DistributionType",
    "ParameterSet",
    "SimpleEnvironmentParameter",
    "UncertaintyEngine",
    "UncertaintyParameter",
    "UncertaintyResult",
    "build_engine",
    "combine",
    "configure_logging",
    "factory_default_params",
    "normalize",
    "standard_uncertainty",
]
