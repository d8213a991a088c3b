"""
Key-Value Backends
==================

Byte-oriented key-value stores holding serialized metadata entries.

The file store only ever needs ``get``, ``set`` and ``delete``; any object
implementing ``KeyValueStore`` can back it, reporting failures as
``BackendError``.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Final, Iterator, Optional, Protocol, runtime_checkable


class BackendError(Exception):
    """Raised when a backend can not read or write a record."""
    pass


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal persistence contract for metadata records."""

    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, value: bytes) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def close(self) -> None:
        ...


class MemoryKeyValueStore:
    """Process-local store; contents vanish with the object."""

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def close(self) -> None:
        pass

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class SqliteKeyValueStore:
    """
    SQLite-backed store; one row per key.

    A connection is opened per call so nothing stays locked between store
    operations. Any ``sqlite3.Error`` surfaces as ``BackendError``.
    """

    _SCHEMA: Final[str] = """
    CREATE TABLE IF NOT EXISTS metadata (
        key TEXT PRIMARY KEY,
        value BLOB NOT NULL,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    );
    """

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path)
        self._log = logging.getLogger("securestore.db")
        self.initialize_db()

    @property
    def db_path(self) -> Path:
        return self._db_path

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._db_path)
            try:
                yield conn
            finally:
                conn.close()
        except sqlite3.Error as e:
            self._log.error("Metadata database error: %s", e)
            raise BackendError(str(e)) from e

    def initialize_db(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connection() as conn:
            with conn:
                conn.executescript(self._SCHEMA)
        self._log.debug("Metadata database ready at %s", self._db_path)

    def get(self, key: str) -> Optional[bytes]:
        with self._connection() as conn:
            row = conn.execute("SELECT value FROM metadata WHERE key = ?", (key,)).fetchone()
        return bytes(row[0]) if row else None

    def set(self, key: str, value: bytes) -> None:
        with self._connection() as conn:
            with conn:
                conn.execute("""
                    INSERT INTO metadata (key, value, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                """, (key, sqlite3.Binary(value)))

    def delete(self, key: str) -> None:
        with self._connection() as conn:
            with conn:
                conn.execute("DELETE FROM metadata WHERE key = ?", (key,))

    def keys(self) -> Iterator[str]:
        with self._connection() as conn:
            rows = conn.execute("SELECT key FROM metadata ORDER BY key").fetchall()
        return iter([row[0] for row in rows])

    def close(self) -> None:
        pass
