"""
Assessment State Store — one independent uncertainty assessment per report/run.

Each record carries its own parameters, live results, committed results,
freshness status and last-updated timestamp.

Status lifecycle:
    empty  --save(valid)-->   filled
    filled --edit/mark-->     stale
    stale  --save(valid)-->   filled
    any    --save(invalid)--> empty
    any    --reset-->         empty

Every public operation ends with a single commit that rewrites the whole
record map under ``settings.state_map_storage_key``. Storage failures are
logged and swallowed; the in-memory map stays authoritative for the session.
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterator, Mapping, Optional

import structlog

from spindleuq.config import Settings, settings as default_settings
from spindleuq.engine.combination import combine
from spindleuq.exceptions import MalformedPersistedDataError, StorageError
from spindleuq.schemas.migration import normalize, normalize_result, normalize_status, parse_timestamp
from spindleuq.schemas.uncertainty import (
    AssessmentRecord,
    AssessmentStatus,
    ParameterSet,
    factory_default_params,
)
from spindleuq.storage import KeyValueStorage
from spindleuq.stores.defaults import DefaultsStore

logger = structlog.get_logger(__name__)

ParamsUpdater = Callable[[ParameterSet], ParameterSet]

_TIMESTAMP_STEP = timedelta(microseconds=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def decode_record(key: str, raw: Any) -> AssessmentRecord:
    """
    Rebuild a record from persisted JSON, migrating older shapes.

    Results are recomputed from the migrated params rather than trusted.

    Raises:
        MalformedPersistedDataError: entry is not an object or has no params
    """
    if not isinstance(raw, Mapping):
        raise MalformedPersistedDataError(key, "record is not an object")
    if not isinstance(raw.get("params"), Mapping):
        raise MalformedPersistedDataError(key, "record has no params")

    params = normalize(raw["params"])
    status = normalize_status(raw.get("status"))
    last_updated = parse_timestamp(raw.get("lastUpdated", raw.get("last_updated")))

    if "savedResults" in raw:
        saved_results = normalize_result(raw["savedResults"])
    elif status in (AssessmentStatus.FILLED, AssessmentStatus.STALE):
        # Older records only stored the results committed by save
        saved_results = normalize_result(raw.get("results"))
    else:
        saved_results = None

    return AssessmentRecord(
        status=status,
        last_updated=last_updated,
        params=params,
        results=combine(params),
        saved_results=saved_results,
    )


class AssessmentStateStore:
    """
    Keyed collection of AssessmentRecords.

    Records are created lazily on first access, seeded by value from the
    current defaults. ``None`` as a key resolves to the fallback assessment.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        defaults: DefaultsStore,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._storage = storage
        self._defaults = defaults
        self._settings = settings or default_settings
        self._clock = clock
        self._records: dict[str, AssessmentRecord] = {}

    # ── Container protocol ─────────────────────────────────────────────

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._records))

    def keys(self) -> list[str]:
        return list(self._records)

    def snapshot(self) -> dict[str, AssessmentRecord]:
        """Shallow copy of the record map (records are immutable)."""
        return dict(self._records)

    @property
    def fallback_key(self) -> str:
        return self._settings.fallback_assessment_key

    def _resolve(self, key: Optional[str]) -> str:
        return self.fallback_key if key is None else key

    # ── Lifecycle ──────────────────────────────────────────────────────

    def load(self) -> int:
        """
        Rehydrate the record map, merging the legacy single-record blob.

        Returns:
            Number of records loaded
        """
        records: dict[str, AssessmentRecord] = {}
        map_key = self._settings.state_map_storage_key

        raw_map = self._read_json(map_key)
        if raw_map is not None and not isinstance(raw_map, Mapping):
            logger.warning("assessment_map_discarded", key=map_key, reason="not an object")
            raw_map = None

        for record_key, raw_record in (raw_map or {}).items():
            try:
                records[str(record_key)] = decode_record(str(record_key), raw_record)
            except MalformedPersistedDataError as e:
                logger.warning("assessment_record_discarded", **e.to_dict())

        legacy_key = self._settings.legacy_state_storage_key
        raw_legacy = self._read_json(legacy_key)
        if raw_legacy is not None and self.fallback_key not in records:
            try:
                records[self.fallback_key] = decode_record(legacy_key, raw_legacy)
                logger.info("legacy_assessment_merged", into=self.fallback_key)
            except MalformedPersistedDataError as e:
                logger.warning("legacy_assessment_discarded", **e.to_dict())

        self._records = records
        logger.info("assessment_state_loaded", records=len(records))
        return len(records)

    def _read_json(self, storage_key: str) -> Any:
        try:
            raw = self._storage.get(storage_key)
        except StorageError as e:
            logger.warning("assessment_state_read_failed", **e.to_dict())
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning("assessment_blob_discarded", key=storage_key, reason=str(e))
            return None

    # ── Operations ─────────────────────────────────────────────────────

    def ensure(self, key: Optional[str]) -> AssessmentRecord:
        """Return the record for ``key``, creating it from defaults if absent."""
        key = self._resolve(key)
        record, created = self._get_or_create(key)
        if created:
            self._commit()
        return record

    def get_active(self, key: Optional[str] = None) -> AssessmentRecord:
        """Record for ``key`` (fallback assessment when None)."""
        return self.ensure(key)

    def update_params(self, key: Optional[str], updater: ParamsUpdater) -> AssessmentRecord:
        """
        Apply a parameter transformation and recompute.

        A ``filled`` record becomes ``stale``; ``last_updated`` and
        ``saved_results`` keep the values of the last save.
        """
        key = self._resolve(key)
        record = self._records.get(key)
        created = record is None
        if created:
            # Inserted only once the updater has returned
            record = self._seed_record()

        next_params = updater(record.params)
        if not isinstance(next_params, ParameterSet):
            next_params = normalize(next_params)

        if created:
            logger.info("assessment_created", key=key)
        return self._replace_params(key, record, next_params)

    def load_defaults_into(self, key: Optional[str]) -> AssessmentRecord:
        """Copy the current defaults into the record (same demotion rule as edits)."""
        key = self._resolve(key)
        record, _ = self._get_or_create(key)
        return self._replace_params(key, record, self._defaults.seed_params())

    def save(self, key: Optional[str]) -> AssessmentRecord:
        """
        Commit the current results.

        Valid results give ``filled`` with a fresh timestamp; otherwise the
        record falls back to ``empty`` with no timestamp.
        """
        key = self._resolve(key)
        record, _ = self._get_or_create(key)
        results = combine(record.params)

        if results.valid:
            saved = record.model_copy(update={
                "status": AssessmentStatus.FILLED,
                "last_updated": self._next_timestamp(record.last_updated),
                "results": results,
                "saved_results": results,
            })
        else:
            saved = record.model_copy(update={
                "status": AssessmentStatus.EMPTY,
                "last_updated": None,
                "results": results,
                "saved_results": None,
            })

        self._records[key] = saved
        logger.info(
            "assessment_saved",
            key=key,
            status=str(saved.status),
            radial=results.radial,
            axial=results.axial,
        )
        self._commit()
        return saved

    def reset_to_defaults(self, key: Optional[str]) -> AssessmentRecord:
        """Restore factory defaults (not the user defaults) and clear the commit."""
        key = self._resolve(key)
        params = factory_default_params()
        record = AssessmentRecord(
            status=AssessmentStatus.EMPTY,
            last_updated=None,
            params=params,
            results=combine(params),
            saved_results=None,
        )
        self._records[key] = record
        logger.info("assessment_reset", key=key)
        self._commit()
        return record

    def mark_stale(self, key: Optional[str]) -> AssessmentRecord:
        """Demote ``filled`` to ``stale`` after an external invalidation."""
        key = self._resolve(key)
        record, created = self._get_or_create(key)
        if record.status != AssessmentStatus.FILLED:
            if created:
                self._commit()
            return record

        record = record.model_copy(update={"status": AssessmentStatus.STALE})
        self._records[key] = record
        logger.info("assessment_marked_stale", key=key)
        self._commit()
        return record

    # ── Internals ──────────────────────────────────────────────────────

    def _get_or_create(self, key: str) -> tuple[AssessmentRecord, bool]:
        record = self._records.get(key)
        if record is not None:
            return record, False

        record = self._seed_record()
        self._records[key] = record
        logger.info("assessment_created", key=key)
        return record, True

    def _seed_record(self) -> AssessmentRecord:
        params = self._defaults.seed_params()
        return AssessmentRecord(
            status=AssessmentStatus.EMPTY,
            last_updated=None,
            params=params,
            results=combine(params),
            saved_results=None,
        )

    def _replace_params(self, key: str, record: AssessmentRecord, params: ParameterSet) -> AssessmentRecord:
        status = record.status
        if status == AssessmentStatus.FILLED:
            status = AssessmentStatus.STALE
            logger.debug("assessment_invalidated", key=key)

        updated = record.model_copy(update={
            "params": params,
            "results": combine(params),
            "status": status,
        })
        self._records[key] = updated
        self._commit()
        return updated

    def _next_timestamp(self, previous: Optional[datetime]) -> datetime:
        """Current time, forced strictly after ``previous``."""
        now = self._clock()
        if previous is not None and now <= previous:
            now = previous + _TIMESTAMP_STEP
        return now

    @staticmethod
    def _serialize(record: AssessmentRecord) -> dict:
        return record.model_dump(mode="json", by_alias=True)

    def _commit(self) -> None:
        """Write the full record map. Failures are logged and ignored."""
        payload = {key: self._serialize(record) for key, record in self._records.items()}
        try:
            self._storage.set(
                self._settings.state_map_storage_key,
                json.dumps(payload, ensure_ascii=False),
            )
        except StorageError as e:
            logger.warning("assessment_state_persist_failed", **e.to_dict())
