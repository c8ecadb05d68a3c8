"""
Key-value storage backends.

The stores treat storage as a durable sink of whole JSON blobs: every commit
rewrites one key in full, so readers always see a consistent snapshot.

Backends:
- InMemoryStorage: dict-backed, for tests and throwaway sessions
- FileStorage: one JSON file per key, replaced atomically
- RedisStorage: synchronous redis client, namespaced keys

Backends raise StorageError; the stores catch it and keep going with their
in-memory state.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional

import structlog

from spindleuq.config import Settings, settings as default_settings
from spindleuq.exceptions import StorageError

logger = structlog.get_logger(__name__)


# ============================================================================
# BACKENDS
# ============================================================================


class KeyValueStorage:
    """Abstract backend interface."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class InMemoryStorage(KeyValueStorage):
    """In-memory backend for tests and ephemeral sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class FileStorage(KeyValueStorage):
    """
    Directory backend: ``<directory>/<key>.json``.

    Writes go to a temp file in the same directory followed by ``os.replace``,
    so a crash mid-write leaves the previous blob intact.
    """

    def __init__(self, directory: str | os.PathLike):
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        return self._directory / f"{_UNSAFE_FILENAME_CHARS.sub('_', key)}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read {path}", key=key, write=False, details={"error": str(e)}) from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_name = None
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{path.stem}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise StorageError(f"Failed to write {path}", key=key, details={"error": str(e)}) from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete {key}", key=key, details={"error": str(e)}) from e


class RedisStorage(KeyValueStorage):
    """Redis backend for shared workstation setups."""

    def __init__(self, redis_client, prefix: str = "spindleuq:"):
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> Optional[str]:
        try:
            data = self._redis.get(self._key(key))
            if isinstance(data, bytes):
                data = data.decode("utf-8")
        except Exception as e:
            raise StorageError("Redis read failed", key=key, write=False, details={"error": str(e)}) from e
        return data

    def set(self, key: str, value: str) -> None:
        try:
            self._redis.set(self._key(key), value)
        except Exception as e:
            raise StorageError("Redis write failed", key=key, details={"error": str(e)}) from e

    def delete(self, key: str) -> None:
        try:
            self._redis.delete(self._key(key))
        except Exception as e:
            raise StorageError("Redis delete failed", key=key, details={"error": str(e)}) from e


# ============================================================================
# FACTORY
# ============================================================================


def create_storage(settings: Optional[Settings] = None) -> KeyValueStorage:
    """
    Build the backend selected by ``storage_backend``.

    Args:
        settings: Engine settings (module settings if omitted)

    Returns:
        Configured KeyValueStorage
    """
    cfg = settings or default_settings
    backend = cfg.storage_backend.lower()

    if backend == "memory":
        storage: KeyValueStorage = InMemoryStorage()
    elif backend == "file":
        storage = FileStorage(cfg.storage_dir)
    elif backend == "redis":
        import redis

        client = redis.Redis.from_url(cfg.redis_url, decode_responses=True)
        storage = RedisStorage(client, prefix=cfg.redis_prefix)
    else:
        raise ValueError(f"Unknown storage backend: {cfg.storage_backend}")

    logger.info("storage_backend_selected", backend=backend)
    return storage
