"""
Engine Bootstrap Tests.

End-to-end flows across both stores sharing one storage medium.
"""

import json

from spindleuq.bootstrap import UncertaintyEngine, build_engine
from spindleuq.config import Settings
from spindleuq.schemas.uncertainty import AssessmentStatus
from spindleuq.storage import FileStorage, InMemoryStorage


class TestBuildEngine:

    def test_builds_both_stores(self, engine):
        assert isinstance(engine, UncertaintyEngine)
        assert len(engine.assessments) == 0
        assert engine.defaults.last_modified is None

    def test_new_assessments_seeded_from_persisted_defaults(self, storage, test_settings):
        first = build_engine(settings=test_settings, storage=storage)
        first.defaults.update(lambda p: p.with_value("standard_error", 150))
        first.defaults.save()

        second = build_engine(settings=test_settings, storage=storage)
        record = second.assessments.ensure("report-42")

        assert record.params.standard_error.value == 150
        assert record.params == second.defaults.params

    def test_unsaved_default_edits_are_lost_on_restart(self, storage, test_settings):
        first = build_engine(settings=test_settings, storage=storage)
        first.defaults.update(lambda p: p.with_value("standard_error", 150))

        second = build_engine(settings=test_settings, storage=storage)

        assert second.defaults.params.standard_error.value == 300

    def test_legacy_state_migrated_at_startup(self, test_settings):
        storage = InMemoryStorage({
            "uncertainty.state.v1": json.dumps({
                "status": "stale",
                "lastUpdated": "2025-06-01T10:00:00Z",
                "params": {"sensorError": {"value": 0.6, "unit": "μm", "distribution": "normal"}},
            }),
        })

        engine = build_engine(settings=test_settings, storage=storage)

        record = engine.assessments.get_active()
        assert record.status == AssessmentStatus.STALE
        assert record.params.sensor_error.value == 0.6

    def test_report_uses_engine_settings(self, storage):
        settings = Settings(storage_backend="memory", coverage_factor=3.0)
        engine = build_engine(settings=settings, storage=storage)
        engine.assessments.save("run-9")

        report = engine.report("run-9")

        assert report.key == "run-9"
        assert report.coverage_factor == 3.0
        assert report.expanded_axial == 1.32

    def test_report_without_key_uses_fallback(self, engine):
        assert engine.report().key == engine.assessments.fallback_key

    def test_file_backend_survives_restart(self, tmp_path):
        settings = Settings(storage_backend="file", storage_dir=str(tmp_path))

        first = build_engine(settings=settings)
        first.assessments.save("run-3")

        second = build_engine(settings=settings)

        assert isinstance(second.storage, FileStorage)
        assert second.assessments.get_active("run-3").status == AssessmentStatus.FILLED


class TestWorkflow:
    """The edit → save → edit → save cycle a report goes through."""

    def test_report_lifecycle(self, engine):
        key = "report-42"
        assessments = engine.assessments

        record = assessments.ensure(key)
        assert record.status == AssessmentStatus.EMPTY

        assessments.update_params(key, lambda p: p.with_value("sensor_error", None))
        assert assessments.save(key).status == AssessmentStatus.EMPTY

        assessments.update_params(key, lambda p: p.with_value("sensor_error", 500))
        filled = assessments.save(key)
        assert filled.status == AssessmentStatus.FILLED

        # Data source switched elsewhere in the application
        assert assessments.mark_stale(key).status == AssessmentStatus.STALE

        refreshed = assessments.save(key)
        assert refreshed.status == AssessmentStatus.FILLED
        assert refreshed.last_updated > filled.last_updated

    def test_defaults_export_import_between_engines(self, test_settings):
        source = build_engine(settings=test_settings, storage=InMemoryStorage())
        source.defaults.update(lambda p: p.with_value("environment_error", 75))
        source.defaults.save()

        target = build_engine(settings=test_settings, storage=InMemoryStorage())
        assert target.defaults.import_(source.defaults.export()) is True

        assert target.defaults.params == source.defaults.params
        assert target.defaults.last_modified == source.defaults.last_modified
