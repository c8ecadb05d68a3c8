"""
Engine wiring and startup rehydration.

There is no module-level engine instance. The application builds one at
start-up and passes it to whatever needs it:

    configure_logging()
    engine = build_engine()
    record = engine.assessments.get_active("report-42")

Rehydration order is fixed: defaults first (new assessments are seeded from
them), then the assessment map, then the legacy single-record blob.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import structlog

from spindleuq.config import Settings, settings as default_settings
from spindleuq.report import AssessmentReport, build_report
from spindleuq.storage import KeyValueStorage, create_storage
from spindleuq.stores.assessments import AssessmentStateStore
from spindleuq.stores.defaults import DefaultsStore

logger = structlog.get_logger(__name__)


@dataclass
class UncertaintyEngine:
    """Both stores sharing one storage medium."""
    settings: Settings
    storage: KeyValueStorage
    defaults: DefaultsStore
    assessments: AssessmentStateStore

    def report(self, key: Optional[str] = None) -> AssessmentReport:
        """Report view of an assessment, using this engine's coverage factor."""
        key = self.assessments.fallback_key if key is None else key
        return build_report(key, self.assessments.get_active(key), settings=self.settings)


def build_engine(
    settings: Optional[Settings] = None,
    storage: Optional[KeyValueStorage] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> UncertaintyEngine:
    """
    Construct and rehydrate the engine.

    Args:
        settings: Engine settings (module settings if omitted)
        storage: Storage backend (built from settings if omitted)
        clock: Timestamp source, injectable for tests

    Returns:
        Ready-to-use UncertaintyEngine
    """
    cfg = settings or default_settings
    backend = storage if storage is not None else create_storage(cfg)

    clock_kwargs = {"clock": clock} if clock is not None else {}
    defaults = DefaultsStore(backend, cfg, **clock_kwargs)
    assessments = AssessmentStateStore(backend, defaults, cfg, **clock_kwargs)

    defaults.load()
    assessments.load()

    logger.info(
        "uncertainty_engine_ready",
        app=cfg.app_name,
        version=cfg.app_version,
        assessments=len(assessments),
    )
    return UncertaintyEngine(
        settings=cfg,
        storage=backend,
        defaults=defaults,
        assessments=assessments,
    )
