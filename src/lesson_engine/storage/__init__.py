"""
Durable storage.

- offline_store.py: DurableStore (lessons, progress, cached data, quota)
- backends.py: SQLite and flat-file backends plus capability probing
- eviction.py: expiry and low-water-mark eviction
"""

from lesson_engine.storage.backends import FileBackend, SqliteBackend, StorageBackend, select_backend
from lesson_engine.storage.eviction import EvictionManager
from lesson_engine.storage.offline_store import DurableStore

__all__ = [
    "DurableStore",
    "EvictionManager",
    "FileBackend",
    "SqliteBackend",
    "StorageBackend",
    "select_backend",
]
