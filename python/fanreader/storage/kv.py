"""Key-value persistence for session cookies and preference blobs.

Provides a minimal async interface (get / set / remove of string values) with:
- JsonFileStore: a single JSON document on disk
- MemoryStore: an in-process dict, used by tests

Values are opaque strings. Callers that persist structured data serialize
it themselves.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path

from fanreader.logging import get_logger

logger = get_logger(__name__)


class KeyValueStoreBase(ABC):
    """Abstract base class for key-value store implementations."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value for key, or None if absent."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove key. Removing a missing key is a no-op."""
        ...


class StoreError(Exception):
    """Store read or write failure."""

    def __init__(self, message: str, code: str = "E_STORE_ERROR"):
        super().__init__(message)
        self.message = message
        self.code = code


class JsonFileStore(KeyValueStoreBase):
    """File-backed store keeping every key in one JSON object.

    Reads and writes run in a worker thread so the event loop never blocks
    on disk I/O. An asyncio lock serializes read-modify-write cycles within
    the process; concurrent writers from other processes are not supported.
    """

    def __init__(self, path: str | Path):
        """Initialize the store.

        Args:
            path: Location of the JSON file. Parent directories are created on first write.
        """
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        raw = self._path.read_text(encoding="utf-8")
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreError(f"Store file is not valid JSON: {self._path}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Store file must contain a JSON object: {self._path}")
        return {str(k): str(v) for k, v in data.items()}

    def _write_all(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp_path.replace(self._path)

    async def get(self, key: str) -> str | None:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
        return data.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
            data[key] = value
            await asyncio.to_thread(self._write_all, data)
        logger.debug("store_key_written", key=key)

    async def remove(self, key: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
            if key not in data:
                return
            del data[key]
            await asyncio.to_thread(self._write_all, data)
        logger.debug("store_key_removed", key=key)


class MemoryStore(KeyValueStoreBase):
    """In-memory store for tests.

    Exposes the underlying dict as `data` so tests can seed or inspect it.
    """

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)


def get_store(path: str | Path) -> KeyValueStoreBase:
    """Build the application store for the configured path."""
    return JsonFileStore(path)
