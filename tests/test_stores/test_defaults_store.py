"""
Defaults Store Tests.

Tests:
- Draft editing vs. explicit save
- Reset to factory defaults
- Export / import and rejection of bad documents
- Rehydration and storage failures
"""

import json

import pytest

from spindleuq.schemas.uncertainty import FACTORY_DEFAULT_PARAMS, DistributionType
from spindleuq.stores.defaults import DefaultsStore

DEFAULTS_KEY = "uncertainty.defaults.v1"


class TestDefaultsEditing:
    """Draft edits and commits."""

    def test_starts_with_factory_defaults(self, defaults_store):
        assert defaults_store.params == FACTORY_DEFAULT_PARAMS
        assert defaults_store.last_modified is None

    def test_update_is_a_draft(self, defaults_store, storage):
        defaults_store.update(lambda p: p.with_value("sensor_error", 450))

        assert defaults_store.params.sensor_error.value == 450
        assert defaults_store.last_modified is None
        assert defaults_store.has_unsaved_changes is True
        assert storage.get(DEFAULTS_KEY) is None

    def test_save_commits_with_timestamp(self, defaults_store, storage, clock):
        defaults_store.update(lambda p: p.with_value("sensor_error", 450))
        record = defaults_store.save()

        assert record.last_modified is not None
        assert defaults_store.has_unsaved_changes is False
        stored = json.loads(storage.get(DEFAULTS_KEY))
        assert stored["params"]["sensorError"]["value"] == 450
        assert stored["lastModified"] == record.last_modified.isoformat()

    def test_reset_restores_factory_and_persists(self, defaults_store, storage):
        defaults_store.update(lambda p: p.with_distribution("standard_error", DistributionType.NORMAL))
        defaults_store.save()

        defaults_store.reset()

        assert defaults_store.params == FACTORY_DEFAULT_PARAMS
        assert defaults_store.last_modified is None
        stored = json.loads(storage.get(DEFAULTS_KEY))
        assert stored["lastModified"] is None
        assert stored["params"]["standardError"]["distribution"] == "uniform"

    def test_updater_returning_dict_is_normalized(self, defaults_store):
        defaults_store.update(lambda p: {"sensorError": {"value": 1, "unit": "μm", "distribution": "normal"}})

        assert defaults_store.params.sensor_error.value == 1
        assert defaults_store.params.standard_error == FACTORY_DEFAULT_PARAMS.standard_error


class TestDefaultsExportImport:
    """Snapshot exchange."""

    def test_export_is_readable_json(self, defaults_store):
        exported = defaults_store.export()
        data = json.loads(exported)

        assert set(data) == {"params", "lastModified"}
        assert "\n" in exported
        assert "μm" in exported or "nm" in exported

    def test_export_excludes_unsaved_draft(self, defaults_store):
        defaults_store.update(lambda p: p.with_value("sensor_error", 999))

        data = json.loads(defaults_store.export())
        assert data["params"]["sensorError"]["value"] == 500
        assert data["lastModified"] is None

        saved = defaults_store.save()
        data = json.loads(defaults_store.export())
        assert data["params"]["sensorError"]["value"] == 999
        assert data["lastModified"] == saved.last_modified.isoformat()

    def test_import_of_export_keeps_params_and_timestamp(self, defaults_store):
        defaults_store.update(lambda p: p.with_value("environment_error", 250))
        defaults_store.save()
        before = defaults_store.record

        assert defaults_store.import_(defaults_store.export()) is True

        assert defaults_store.params == before.params
        assert defaults_store.last_modified == before.last_modified

    def test_import_without_timestamp_uses_now(self, defaults_store, clock):
        doc = {"params": FACTORY_DEFAULT_PARAMS.model_dump(mode="json", by_alias=True)}
        expected = clock.now

        assert defaults_store.import_(json.dumps(doc)) is True
        assert defaults_store.last_modified == expected

    def test_import_persists(self, defaults_store, storage):
        doc = {"params": {"sensorError": {"value": 42, "unit": "nm", "distribution": "triangular"}}}
        defaults_store.import_(json.dumps(doc))

        stored = json.loads(storage.get(DEFAULTS_KEY))
        assert stored["params"]["sensorError"]["value"] == 42

    def test_import_accepts_mapping(self, defaults_store):
        doc = {"params": {"sensorError": {"value": 7, "unit": "nm", "distribution": "normal"}}}
        assert defaults_store.import_defaults(doc) is True
        assert defaults_store.params.sensor_error.value == 7

    @pytest.mark.parametrize("document", [
        '{"lastModified": "2025-01-01T00:00:00Z"}',
        '{"params": null}',
        '{"params": "oops"}',
        "[1, 2, 3]",
        "not json at all",
        "",
    ])
    def test_rejected_import_leaves_store_unchanged(self, defaults_store, storage, document):
        before = defaults_store.record

        assert defaults_store.import_(document) is False

        assert defaults_store.record == before
        assert storage.get(DEFAULTS_KEY) is None


class TestDefaultsPersistence:
    """Rehydration and failure handling."""

    def test_load_restores_saved_record(self, storage, test_settings, defaults_store):
        defaults_store.update(lambda p: p.with_value("sensor_error", 321))
        saved = defaults_store.save()

        reloaded = DefaultsStore(storage, test_settings)
        reloaded.load()

        assert reloaded.params == saved.params
        assert reloaded.last_modified == saved.last_modified

    def test_malformed_blob_falls_back_to_factory(self, storage, test_settings):
        storage.set(DEFAULTS_KEY, "{broken")
        store = DefaultsStore(storage, test_settings)
        store.load()

        assert store.params == FACTORY_DEFAULT_PARAMS
        assert store.last_modified is None

    def test_blob_without_params_falls_back(self, storage, test_settings):
        storage.set(DEFAULTS_KEY, json.dumps({"lastModified": "2025-01-01T00:00:00Z"}))
        store = DefaultsStore(storage, test_settings)
        store.load()

        assert store.params == FACTORY_DEFAULT_PARAMS

    def test_legacy_shape_is_migrated_on_load(self, storage, test_settings):
        storage.set(DEFAULTS_KEY, json.dumps({
            "params": {"radialMisalignment": {"value": 0.8, "unit": "μm", "distribution": "uniform"}},
            "lastModified": None,
        }))
        store = DefaultsStore(storage, test_settings)
        store.load()

        assert store.params.sensor_misalignment_radial.value == 0.8

    def test_write_failure_is_swallowed(self, failing_storage, test_settings):
        store = DefaultsStore(failing_storage, test_settings)
        store.load()

        store.update(lambda p: p.with_value("sensor_error", 1))
        record = store.save()

        assert failing_storage.write_attempts == 1
        assert record.params.sensor_error.value == 1
        assert store.params.sensor_error.value == 1
        assert store.import_(store.export()) is True
        assert store.reset().params == FACTORY_DEFAULT_PARAMS

    def test_seed_params_is_a_copy(self, defaults_store):
        seed = defaults_store.seed_params()
        assert seed == defaults_store.params
        assert seed is not defaults_store.params
