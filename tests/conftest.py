"""
Pytest Configuration and Fixtures.

Provides reusable fixtures for testing the uncertainty engine:
- In-memory storage and settings
- A controllable clock
- Defaults / assessment stores and a fully built engine
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

# Keep tests off the filesystem unless a test asks for it
os.environ["UQ_STORAGE_BACKEND"] = "memory"
os.environ["ENVIRONMENT"] = "testing"

from spindleuq.bootstrap import build_engine  # noqa: E402
from spindleuq.config import Settings  # noqa: E402
from spindleuq.schemas.uncertainty import (  # noqa: E402
    DistributionType,
    ParameterSet,
    SimpleEnvironmentParameter,
    UncertaintyParameter,
)
from spindleuq.storage import InMemoryStorage  # noqa: E402
from spindleuq.stores.assessments import AssessmentStateStore  # noqa: E402
from spindleuq.stores.defaults import DefaultsStore  # noqa: E402


class FakeClock:
    """Deterministic clock; each call advances by ``step``."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


class FailingStorage(InMemoryStorage):
    """Storage whose writes always fail, like a full disk."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.write_attempts = 0

    def set(self, key: str, value: str) -> None:
        from spindleuq.exceptions import StorageError

        self.write_attempts += 1
        raise StorageError("quota exceeded", key=key)


# ============================================================================
# SETTINGS / STORAGE FIXTURES
# ============================================================================


@pytest.fixture
def test_settings() -> Settings:
    return Settings(storage_backend="memory")


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc))


# ============================================================================
# STORE FIXTURES
# ============================================================================


@pytest.fixture
def defaults_store(storage, test_settings, clock) -> DefaultsStore:
    store = DefaultsStore(storage, test_settings, clock=clock)
    store.load()
    return store


@pytest.fixture
def assessment_store(storage, defaults_store, test_settings, clock) -> AssessmentStateStore:
    store = AssessmentStateStore(storage, defaults_store, test_settings, clock=clock)
    store.load()
    return store


@pytest.fixture
def engine(storage, test_settings, clock):
    return build_engine(settings=test_settings, storage=storage, clock=clock)


# ============================================================================
# SAMPLE DATA
# ============================================================================


def make_params(
    value: float = 1.0,
    unit: str = "μm",
    distribution: DistributionType = DistributionType.NORMAL,
    **overrides,
) -> ParameterSet:
    """ParameterSet with every contributor set to the same declaration."""
    fields = {
        name: UncertaintyParameter(value=value, unit=unit, distribution=distribution)
        for name in (
            "sensor_error",
            "standard_error",
            "environment_error",
            "sensor_misalignment_radial",
            "sensor_misalignment_axial",
            "sensor_lateral_displacement_radial",
            "sensor_lateral_displacement_axial",
        )
    }
    fields["environment_temperature"] = SimpleEnvironmentParameter(value=20.0, unit="°C")
    fields["environment_humidity"] = SimpleEnvironmentParameter(value=45.0, unit="%RH")
    fields.update(overrides)
    return ParameterSet(**fields)


@pytest.fixture
def sample_params() -> ParameterSet:
    return make_params()


@pytest.fixture
def params_factory():
    """Factory for uniform test parameter sets."""
    return make_params


@pytest.fixture
def failing_storage() -> FailingStorage:
    return FailingStorage()
