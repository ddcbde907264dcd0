"""Storage module for key-value persistence.

Provides:
- KeyValueStoreBase interface
- JsonFileStore for on-disk persistence
- MemoryStore for tests
"""

from fanreader.storage.kv import (
    JsonFileStore,
    KeyValueStoreBase,
    MemoryStore,
    StoreError,
    get_store,
)

__all__ = [
    "KeyValueStoreBase",
    "JsonFileStore",
    "MemoryStore",
    "StoreError",
    "get_store",
]
