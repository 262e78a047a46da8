"""Key record storage."""

from .backends import JsonFileKeyValueStore, KeyValueStore, MemoryKeyValueStore
from .keystore import STORAGE_KEY, KeyRecord, KeyStore, KeyStoreState

__all__ = [
    "STORAGE_KEY",
    "JsonFileKeyValueStore",
    "KeyRecord",
    "KeyStore",
    "KeyStoreState",
    "KeyValueStore",
    "MemoryKeyValueStore",
]
