"""
Defaults Store — the organization-wide seed parameter set.

Editing is draft-based: ``update`` changes params in memory only, ``save``
is the commit point. ``reset`` and ``import_`` are themselves committed
actions and persist immediately.

Persisted under ``settings.defaults_storage_key`` as
``{"params": {...}, "lastModified": "<iso>" | null}``.
"""

import json
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Union

import structlog

from spindleuq.config import Settings, settings as default_settings
from spindleuq.exceptions import ImportRejectedError, MalformedPersistedDataError, StorageError
from spindleuq.schemas.migration import normalize, parse_timestamp
from spindleuq.schemas.uncertainty import DefaultsRecord, ParameterSet, factory_default_params
from spindleuq.storage import KeyValueStorage

logger = structlog.get_logger(__name__)

ParamsUpdater = Callable[[ParameterSet], ParameterSet]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _factory_record() -> DefaultsRecord:
    return DefaultsRecord(params=factory_default_params(), last_modified=None)


def parse_defaults_document(raw: Any) -> DefaultsRecord:
    """
    Validate a decoded defaults document.

    Raises:
        ImportRejectedError: document is not an object or has no ``params``
    """
    if not isinstance(raw, Mapping):
        raise ImportRejectedError("document is not an object")
    params = raw.get("params")
    if params is None:
        raise ImportRejectedError("missing 'params'")
    if not isinstance(params, Mapping):
        raise ImportRejectedError("'params' is not an object")
    return DefaultsRecord(
        params=normalize(params),
        last_modified=parse_timestamp(raw.get("lastModified", raw.get("last_modified"))),
    )


class DefaultsStore:
    """
    Owns the single DefaultsRecord.

    Usage:
        defaults = DefaultsStore(storage)
        defaults.load()
        defaults.update(lambda p: p.with_value("sensor_error", 450))
        defaults.save()
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._storage = storage
        self._settings = settings or default_settings
        self._clock = clock
        self._record = _factory_record()
        self._committed = self._record

    # ── Accessors ──────────────────────────────────────────────────────

    @property
    def record(self) -> DefaultsRecord:
        return self._record

    @property
    def params(self) -> ParameterSet:
        return self._record.params

    @property
    def last_modified(self) -> Optional[datetime]:
        return self._record.last_modified

    @property
    def has_unsaved_changes(self) -> bool:
        """True when draft edits have not been saved yet."""
        return self._record.params != self._committed.params

    def seed_params(self) -> ParameterSet:
        """Value copy of the current params for seeding an assessment."""
        return self._record.params.model_copy(deep=True)

    # ── Lifecycle ──────────────────────────────────────────────────────

    def load(self) -> DefaultsRecord:
        """Rehydrate from storage; malformed or missing data gives factory defaults."""
        key = self._settings.defaults_storage_key
        try:
            raw = self._storage.get(key)
        except StorageError as e:
            logger.warning("defaults_load_failed", **e.to_dict())
            raw = None

        record = _factory_record()
        if raw is not None:
            try:
                record = self._decode(key, raw)
            except MalformedPersistedDataError as e:
                logger.warning("defaults_blob_discarded", **e.to_dict())

        self._record = record
        self._committed = record
        logger.info(
            "defaults_loaded",
            from_storage=raw is not None,
            last_modified=record.last_modified.isoformat() if record.last_modified else None,
        )
        return record

    @staticmethod
    def _decode(key: str, raw: str) -> DefaultsRecord:
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise MalformedPersistedDataError(key, f"invalid JSON: {e}") from e
        try:
            return parse_defaults_document(data)
        except ImportRejectedError as e:
            raise MalformedPersistedDataError(key, e.details["reason"]) from e

    # ── Operations ─────────────────────────────────────────────────────

    def update(self, updater: ParamsUpdater) -> DefaultsRecord:
        """Draft edit. Not persisted; ``last_modified`` is left alone."""
        next_params = updater(self._record.params)
        if not isinstance(next_params, ParameterSet):
            next_params = normalize(next_params)
        self._record = self._record.model_copy(update={"params": next_params})
        return self._record

    def save(self) -> DefaultsRecord:
        """Commit the draft with a fresh ``last_modified``."""
        self._record = DefaultsRecord(params=self._record.params, last_modified=self._clock())
        self._commit()
        logger.info("defaults_saved", last_modified=self._record.last_modified.isoformat())
        return self._record

    def reset(self) -> DefaultsRecord:
        """Restore factory defaults and persist."""
        self._record = _factory_record()
        self._commit()
        logger.info("defaults_reset")
        return self._record

    def export(self) -> str:
        """
        Human-readable JSON snapshot ``{params, lastModified}`` of the last
        committed record. Unsaved draft edits are not included.
        """
        return json.dumps(
            self._serialize(self._committed),
            indent=self._settings.export_indent,
            ensure_ascii=False,
        )

    def import_(self, serialized: Union[str, bytes, Mapping[str, Any]]) -> bool:
        """
        Replace the defaults from an exported snapshot.

        Args:
            serialized: JSON text (or an already decoded mapping)

        Returns:
            True if accepted and persisted, False if rejected (store unchanged)
        """
        try:
            if isinstance(serialized, Mapping):
                data = serialized
            else:
                try:
                    data = json.loads(serialized)
                except (json.JSONDecodeError, TypeError, UnicodeDecodeError) as e:
                    raise ImportRejectedError(f"invalid JSON: {e}") from e
            record = parse_defaults_document(data)
        except ImportRejectedError as e:
            logger.warning("defaults_import_rejected", **e.to_dict())
            return False

        if record.last_modified is None:
            record = record.model_copy(update={"last_modified": self._clock()})

        self._record = record
        self._commit()
        logger.info("defaults_imported", last_modified=record.last_modified.isoformat())
        return True

    # Public name matching the export/import pairing
    import_defaults = import_

    # ── Persistence ────────────────────────────────────────────────────

    @staticmethod
    def _serialize(record: DefaultsRecord) -> dict:
        return {
            "params": record.params.model_dump(mode="json", by_alias=True),
            "lastModified": record.last_modified.isoformat() if record.last_modified else None,
        }

    def _commit(self) -> None:
        """Write the whole record. Failures are logged and ignored."""
        self._committed = self._record
        try:
            self._storage.set(
                self._settings.defaults_storage_key,
                json.dumps(self._serialize(self._record), ensure_ascii=False),
            )
        except StorageError as e:
            logger.warning("defaults_persist_failed", **e.to_dict())
