"""Key-value backends for the durable store.

Records live in namespaces ("lessons", "progress", "cache"). Each record is a
JSON payload plus bookkeeping: estimated size, write timestamp and an
optional expiry.

Two backends share one interface:
- SqliteBackend: single table with indexes on write timestamp and expiry (preferred)
- FileBackend: one JSON file per record, replaced atomically (fallback)

``select_backend`` probes SQLite first and falls back to files when the
database cannot be opened.
"""

import hashlib
import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import closing
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from constants import (
    FALLBACK_STORAGE_CAPACITY_BYTES,
    LESSON_ENGINE_DB_PATH,
    LESSON_ENGINE_STORAGE_DIR,
    STORAGE_CAPACITY_BYTES,
)
from lesson_engine.utils.file_io import read_json, write_json

logger = logging.getLogger(__name__)


def payload_size(payload: str) -> int:
    return len(payload.encode("utf-8"))


class StorageBackend(ABC):
    """Namespaced key-value store with size and timestamp bookkeeping."""

    name = "base"
    default_capacity_bytes = STORAGE_CAPACITY_BYTES

    @abstractmethod
    def put(
        self,
        namespace: str,
        key: str,
        payload: str,
        timestamp: float,
        expiry: Optional[float] = None,
    ) -> int:
        """Insert or replace a record. Returns its size in bytes."""

    @abstractmethod
    def get(self, namespace: str, key: str) -> Optional[str]:
        """Payload for a key, or None."""

    @abstractmethod
    def values(self, namespace: str) -> List[str]:
        """All payloads in a namespace, oldest write first."""

    @abstractmethod
    def delete(self, namespace: str, key: str) -> int:
        """Delete a record. Returns the bytes freed (0 if it did not exist)."""

    @abstractmethod
    def size_of(self, namespace: str, key: str) -> int:
        """Size of a stored record, 0 if missing."""

    @abstractmethod
    def oldest(self, namespace: str, limit: int) -> List[Tuple[str, int]]:
        """Up to ``limit`` (key, size) pairs, oldest write first."""

    @abstractmethod
    def expired(self, namespace: str, now: float) -> List[Tuple[str, int]]:
        """(key, size) pairs whose expiry has passed."""

    @abstractmethod
    def count(self, namespace: str) -> int:
        """Number of records in a namespace."""

    @abstractmethod
    def total_size(self) -> int:
        """Sum of record sizes across all namespaces."""

    @abstractmethod
    def clear(self, namespace: Optional[str] = None) -> None:
        """Delete every record, or every record in one namespace."""


# ============================================================================
# SQLite
# ============================================================================


SCHEMA = """
CREATE TABLE IF NOT EXISTS records (
    namespace TEXT NOT NULL,
    key TEXT NOT NULL,
    payload TEXT NOT NULL,
    size INTEGER NOT NULL,
    timestamp REAL NOT NULL,
    expiry REAL,
    PRIMARY KEY (namespace, key)
);
CREATE INDEX IF NOT EXISTS idx_records_timestamp ON records (namespace, timestamp);
CREATE INDEX IF NOT EXISTS idx_records_expiry ON records (namespace, expiry);
"""


class SqliteBackend(StorageBackend):
    """Structured backend: one SQLite table, a connection per operation."""

    name = "sqlite"
    default_capacity_bytes = STORAGE_CAPACITY_BYTES

    def __init__(self, db_path: Union[str, Path] = LESSON_ENGINE_DB_PATH):
        """Open (or create) the database and apply the schema.

        Raises:
            sqlite3.Error: If the database cannot be opened or initialized
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        with closing(self.connect()) as connection:
            try:
                connection.execute("PRAGMA journal_mode = WAL;")
            except sqlite3.OperationalError:
                connection.execute("PRAGMA journal_mode = DELETE;")
            connection.executescript(SCHEMA)
            connection.commit()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(str(self._db_path), timeout=10.0)
        connection.row_factory = sqlite3.Row
        return connection

    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        with closing(self.connect()) as connection:
            return connection.execute(sql, params).fetchall()

    def _execute(self, sql: str, params: tuple = ()) -> int:
        with closing(self.connect()) as connection, connection:
            return connection.execute(sql, params).rowcount

    def put(self, namespace, key, payload, timestamp, expiry=None):
        size = payload_size(payload)
        self._execute(
            """
            INSERT INTO records (namespace, key, payload, size, timestamp, expiry)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(namespace, key) DO UPDATE SET
                payload = excluded.payload,
                size = excluded.size,
                timestamp = excluded.timestamp,
                expiry = excluded.expiry
            """,
            (namespace, key, payload, size, timestamp, expiry),
        )
        return size

    def get(self, namespace, key):
        rows = self._query(
            "SELECT payload FROM records WHERE namespace = ? AND key = ?", (namespace, key)
        )
        return rows[0]["payload"] if rows else None

    def values(self, namespace):
        rows = self._query(
            "SELECT payload FROM records WHERE namespace = ? ORDER BY timestamp ASC, key ASC",
            (namespace,),
        )
        return [row["payload"] for row in rows]

    def delete(self, namespace, key):
        with closing(self.connect()) as connection, connection:
            row = connection.execute(
                "SELECT size FROM records WHERE namespace = ? AND key = ?", (namespace, key)
            ).fetchone()
            if row is None:
                return 0
            connection.execute(
                "DELETE FROM records WHERE namespace = ? AND key = ?", (namespace, key)
            )
            return row["size"]

    def size_of(self, namespace, key):
        rows = self._query(
            "SELECT size FROM records WHERE namespace = ? AND key = ?", (namespace, key)
        )
        return rows[0]["size"] if rows else 0

    def oldest(self, namespace, limit):
        rows = self._query(
            """
            SELECT key, size FROM records WHERE namespace = ?
            ORDER BY timestamp ASC, key ASC LIMIT ?
            """,
            (namespace, limit),
        )
        return [(row["key"], row["size"]) for row in rows]

    def expired(self, namespace, now):
        rows = self._query(
            """
            SELECT key, size FROM records
            WHERE namespace = ? AND expiry IS NOT NULL AND expiry < ?
            """,
            (namespace, now),
        )
        return [(row["key"], row["size"]) for row in rows]

    def count(self, namespace):
        rows = self._query("SELECT COUNT(*) AS n FROM records WHERE namespace = ?", (namespace,))
        return rows[0]["n"]

    def total_size(self):
        rows = self._query("SELECT COALESCE(SUM(size), 0) AS total FROM records")
        return rows[0]["total"]

    def clear(self, namespace=None):
        if namespace is None:
            self._execute("DELETE FROM records")
        else:
            self._execute("DELETE FROM records WHERE namespace = ?", (namespace,))


# ============================================================================
# Flat files
# ============================================================================


class FileBackend(StorageBackend):
    """Flat key-value backend: ``<root>/<namespace>/<sha1(key)>.json``.

    Each file holds an envelope with the key, payload and bookkeeping. Writes
    go through an atomic replace, so a reader racing a write or delete sees
    the old record, the new record, or nothing.
    """

    name = "file"
    default_capacity_bytes = FALLBACK_STORAGE_CAPACITY_BYTES

    def __init__(self, root_dir: Union[str, Path] = LESSON_ENGINE_STORAGE_DIR / "records"):
        self.root_dir = Path(root_dir)
        self.root_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, namespace: str, key: str) -> Path:
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()
        return self.root_dir / namespace / f"{digest}.json"

    def _read(self, path: Path) -> Optional[dict]:
        try:
            return read_json(path)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping unreadable record {path}: {e}")
            return None

    def _envelopes(self, namespace: Optional[str] = None) -> Iterator[dict]:
        dirs = [self.root_dir / namespace] if namespace else [
            d for d in self.root_dir.iterdir() if d.is_dir()
        ]
        for directory in dirs:
            if not directory.is_dir():
                continue
            for path in directory.glob("*.json"):
                envelope = self._read(path)
                if envelope is not None:
                    yield envelope

    def put(self, namespace, key, payload, timestamp, expiry=None):
        size = payload_size(payload)
        envelope = {
            "key": key,
            "payload": payload,
            "size": size,
            "timestamp": timestamp,
            "expiry": expiry,
        }
        with self._lock:
            write_json(envelope, self._path(namespace, key))
        return size

    def get(self, namespace, key):
        envelope = self._read(self._path(namespace, key))
        return envelope["payload"] if envelope else None

    def values(self, namespace):
        envelopes = sorted(self._envelopes(namespace), key=lambda e: (e["timestamp"], e["key"]))
        return [e["payload"] for e in envelopes]

    def delete(self, namespace, key):
        path = self._path(namespace, key)
        with self._lock:
            envelope = self._read(path)
            if envelope is None:
                return 0
            path.unlink(missing_ok=True)
        return envelope["size"]

    def size_of(self, namespace, key):
        envelope = self._read(self._path(namespace, key))
        return envelope["size"] if envelope else 0

    def oldest(self, namespace, limit):
        envelopes = sorted(self._envelopes(namespace), key=lambda e: (e["timestamp"], e["key"]))
        return [(e["key"], e["size"]) for e in envelopes[:limit]]

    def expired(self, namespace, now):
        return [
            (e["key"], e["size"])
            for e in self._envelopes(namespace)
            if e.get("expiry") is not None and e["expiry"] < now
        ]

    def count(self, namespace):
        directory = self.root_dir / namespace
        if not directory.is_dir():
            return 0
        return sum(1 for _ in directory.glob("*.json"))

    def total_size(self):
        return sum(e["size"] for e in self._envelopes())

    def clear(self, namespace=None):
        with self._lock:
            dirs = [self.root_dir / namespace] if namespace else [
                d for d in self.root_dir.iterdir() if d.is_dir()
            ]
            for directory in dirs:
                if not directory.is_dir():
                    continue
                for path in directory.glob("*.json"):
                    path.unlink(missing_ok=True)


def select_backend(
    db_path: Union[str, Path] = LESSON_ENGINE_DB_PATH,
    storage_dir: Union[str, Path] = LESSON_ENGINE_STORAGE_DIR,
) -> StorageBackend:
    """Pick the best available backend.

    Tries to open SQLite at ``db_path``; if that fails, uses flat files under
    ``storage_dir/records``.
    """
    try:
        backend = SqliteBackend(db_path)
        logger.info(f"Using SQLite storage backend at {db_path}")
        return backend
    except (sqlite3.Error, OSError) as e:
        logger.warning(f"SQLite storage unavailable ({e}), falling back to file storage")

    return FileBackend(Path(storage_dir) / "records")
