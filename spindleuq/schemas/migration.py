"""
Parameter set migration — the deserialization boundary for persisted data.

Blobs in storage may come from any earlier schema version. ``normalize``
turns whatever was stored into a well-formed ``ParameterSet``: missing or
malformed fields fall back to factory defaults rather than failing, and
pre-rename field names are mapped onto their current names.

Only data read from storage (or imported) passes through here. Records built
in memory are already typed.
"""

import math
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import structlog

from spindleuq.schemas.uncertainty import (
    ENVIRONMENT_FIELDS,
    FACTORY_DEFAULT_PARAMS,
    UNCERTAINTY_FIELDS,
    AssessmentStatus,
    DistributionType,
    ParameterSet,
    SimpleEnvironmentParameter,
    UncertaintyParameter,
    UncertaintyResult,
)

logger = structlog.get_logger(__name__)

# new camelCase name -> pre-rename name
LEGACY_FIELD_NAMES: dict[str, str] = {
    "sensorMisalignmentRadial": "radialMisalignment",
    "sensorMisalignmentAxial": "axialMisalignment",
}

_MISSING = object()


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _lookup(raw: Mapping[str, Any], field_name: str) -> Any:
    """Find a field under its camelCase, snake_case or legacy name."""
    camel = _camel(field_name)
    if camel in raw:
        return raw[camel]
    if field_name in raw:
        return raw[field_name]
    legacy = LEGACY_FIELD_NAMES.get(camel)
    if legacy is not None and legacy in raw:
        return raw[legacy]
    return _MISSING


def _finite_float(value: Any) -> Optional[float]:
    """float(value) for finite real numbers, else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _coerce_value(raw: Mapping[str, Any], default: Optional[float]) -> Optional[float]:
    if "value" not in raw:
        return default
    value = raw["value"]
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    # NaN, infinities and out-of-range integers read as missing, never as the default
    return _finite_float(value)


def _coerce_unit(raw: Mapping[str, Any], default: str) -> str:
    unit = raw.get("unit")
    if isinstance(unit, str) and unit.strip():
        return unit
    return default


def _coerce_distribution(raw: Mapping[str, Any], default: DistributionType) -> DistributionType:
    distribution = raw.get("distribution")
    if isinstance(distribution, str):
        try:
            return DistributionType(distribution)
        except ValueError:
            pass
    return default


def _normalize_uncertainty(raw: Any, default: UncertaintyParameter) -> UncertaintyParameter:
    if not isinstance(raw, Mapping):
        return default.model_copy()
    return UncertaintyParameter(
        value=_coerce_value(raw, default.value),
        unit=_coerce_unit(raw, default.unit),
        distribution=_coerce_distribution(raw, default.distribution),
    )


def _normalize_environment(raw: Any, default: SimpleEnvironmentParameter) -> SimpleEnvironmentParameter:
    if not isinstance(raw, Mapping):
        return default.model_copy()
    return SimpleEnvironmentParameter(
        value=_coerce_value(raw, default.value),
        unit=_coerce_unit(raw, default.unit),
    )


def normalize(raw: Any) -> ParameterSet:
    """
    Build a well-formed ParameterSet from untrusted persisted data.

    Args:
        raw: Decoded JSON (normally a dict keyed by camelCase field names)

    Returns:
        ParameterSet with every field populated
    """
    if isinstance(raw, ParameterSet):
        return raw
    if not isinstance(raw, Mapping):
        logger.warning("parameter_set_not_a_mapping", raw_type=type(raw).__name__)
        return FACTORY_DEFAULT_PARAMS.model_copy(deep=True)

    fields: dict[str, Any] = {}
    for name in UNCERTAINTY_FIELDS:
        fields[name] = _normalize_uncertainty(_lookup(raw, name), getattr(FACTORY_DEFAULT_PARAMS, name))
    for name in ENVIRONMENT_FIELDS:
        fields[name] = _normalize_environment(_lookup(raw, name), getattr(FACTORY_DEFAULT_PARAMS, name))

    return ParameterSet(**fields)


def normalize_result(raw: Any) -> Optional[UncertaintyResult]:
    """Load a persisted UncertaintyResult; None when unusable."""
    if not isinstance(raw, Mapping):
        return None
    valid = raw.get("valid")
    if not isinstance(valid, bool):
        return None
    if not valid:
        return UncertaintyResult(radial=None, axial=None, valid=False)

    radial = _finite_float(raw.get("radial"))
    axial = _finite_float(raw.get("axial"))
    if radial is None or axial is None:
        return None
    return UncertaintyResult(radial=radial, axial=axial, valid=True)


def normalize_status(raw: Any) -> AssessmentStatus:
    """Unknown status strings load as ``empty``."""
    if isinstance(raw, str):
        try:
            return AssessmentStatus(raw)
        except ValueError:
            pass
    return AssessmentStatus.EMPTY


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if isinstance(raw, datetime):
        parsed = raw
    elif isinstance(raw, str) and raw:
        try:
            # JavaScript toISOString() uses a trailing Z
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
