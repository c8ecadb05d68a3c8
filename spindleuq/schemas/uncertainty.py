"""
Uncertainty Assessment Schemas — typed parameter sets, results and records.

Every model is frozen: stores replace records rather than mutating them, and
parameter updaters return new ``ParameterSet`` instances via
``model_copy(update=...)``.

Attributes are snake_case; serialized form uses camelCase aliases so the
persisted JSON keeps its historical shape (``sensorError``, ``lastUpdated``).
"""

import math
from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel


class DistributionType(StrEnum):
    UNIFORM = "uniform"
    NORMAL = "normal"
    TRIANGULAR = "triangular"


class AssessmentStatus(StrEnum):
    EMPTY = "empty"
    FILLED = "filled"
    STALE = "stale"


class _Model(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class _ValueModel(_Model):
    value: Optional[float] = None

    @field_serializer("value", when_used="json")
    def _finite_or_null(self, value: Optional[float]) -> Optional[float]:
        # JSON has no NaN or Infinity; a non-finite value is stored as missing
        if value is None or not math.isfinite(value):
            return None
        return value


class UncertaintyParameter(_ValueModel):
    """
    A statistical contributor.

    ``value`` is the half-width for uniform/triangular distributions or the
    standard deviation for normal, in ``unit``. ``None`` means not yet provided.
    """
    unit: str = "μm"
    distribution: DistributionType = DistributionType.UNIFORM


class SimpleEnvironmentParameter(_ValueModel):
    """Descriptive environment reading, carried for reporting only."""
    unit: str = ""


class ParameterSet(_Model):
    """All uncertainty contributors of one spindle-error assessment."""
    sensor_error: UncertaintyParameter
    standard_error: UncertaintyParameter
    environment_error: UncertaintyParameter
    sensor_misalignment_radial: UncertaintyParameter
    sensor_misalignment_axial: UncertaintyParameter
    sensor_lateral_displacement_radial: UncertaintyParameter
    sensor_lateral_displacement_axial: UncertaintyParameter
    environment_temperature: SimpleEnvironmentParameter
    environment_humidity: SimpleEnvironmentParameter

    def with_value(self, field_name: str, value: Optional[float]) -> "ParameterSet":
        """Copy with one contributor's value replaced."""
        current = getattr(self, field_name)
        return self.model_copy(update={field_name: current.model_copy(update={"value": value})})

    def with_distribution(self, field_name: str, distribution: DistributionType) -> "ParameterSet":
        """Copy with one contributor's distribution replaced."""
        current = getattr(self, field_name)
        if not isinstance(current, UncertaintyParameter):
            raise ValueError(f"{field_name} has no distribution")
        return self.model_copy(
            update={field_name: current.model_copy(update={"distribution": DistributionType(distribution)})}
        )


UNCERTAINTY_FIELDS: tuple[str, ...] = (
    "sensor_error",
    "standard_error",
    "environment_error",
    "sensor_misalignment_radial",
    "sensor_misalignment_axial",
    "sensor_lateral_displacement_radial",
    "sensor_lateral_displacement_axial",
)

ENVIRONMENT_FIELDS: tuple[str, ...] = (
    "environment_temperature",
    "environment_humidity",
)


class UncertaintyResult(_Model):
    """Combined standard uncertainty in μm, rounded to 3 decimal places."""
    radial: Optional[float] = None
    axial: Optional[float] = None
    valid: bool = False


INVALID_RESULT = UncertaintyResult(radial=None, axial=None, valid=False)


class AssessmentRecord(_Model):
    """
    One independent assessment tied to a report/run identifier.

    ``results`` always reflects the current ``params``; ``saved_results`` is
    what the last successful save committed and survives later edits until
    the next save.
    """
    status: AssessmentStatus = AssessmentStatus.EMPTY
    last_updated: Optional[datetime] = None
    params: ParameterSet
    results: UncertaintyResult = INVALID_RESULT
    saved_results: Optional[UncertaintyResult] = None


class DefaultsRecord(_Model):
    """The shared seed parameter set for new assessments."""
    params: ParameterSet
    last_modified: Optional[datetime] = None


# ── Factory defaults ─────────────────────────────────────────────────────

FACTORY_DEFAULT_PARAMS = ParameterSet(
    sensor_error=UncertaintyParameter(value=500, unit="nm", distribution=DistributionType.UNIFORM),
    standard_error=UncertaintyParameter(value=300, unit="nm", distribution=DistributionType.UNIFORM),
    environment_error=UncertaintyParameter(value=200, unit="nm", distribution=DistributionType.UNIFORM),
    sensor_misalignment_radial=UncertaintyParameter(value=400, unit="nm", distribution=DistributionType.UNIFORM),
    sensor_misalignment_axial=UncertaintyParameter(value=400, unit="nm", distribution=DistributionType.UNIFORM),
    sensor_lateral_displacement_radial=UncertaintyParameter(value=200, unit="nm", distribution=DistributionType.UNIFORM),
    sensor_lateral_displacement_axial=UncertaintyParameter(value=200, unit="nm", distribution=DistributionType.UNIFORM),
    environment_temperature=SimpleEnvironmentParameter(value=20, unit="°C"),
    environment_humidity=SimpleEnvironmentParameter(value=50, unit="%RH"),
)


def factory_default_params() -> ParameterSet:
    """Fresh copy of the hard-coded baseline parameters."""
    return FACTORY_DEFAULT_PARAMS.model_copy(deep=True)


DISPLAY_NAMES: dict[str, str] = {
    "sensor_error": "Sensor Error",
    "standard_error": "Standard Error",
    "environment_error": "Environment Error",
    "sensor_misalignment_radial": "Sensor Misalignment (Radial)",
    "sensor_misalignment_axial": "Sensor Misalignment (Axial)",
    "sensor_lateral_displacement_radial": "Sensor Lateral Displacement (Radial)",
    "sensor_lateral_displacement_axial": "Sensor Lateral Displacement (Axial)",
    "environment_temperature": "Environment Temperature",
    "environment_humidity": "Environment Humidity",
}
