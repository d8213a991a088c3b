"""
Metadata Store
==============

Persists metadata entries in a key-value backend under their logical name.
"""

from __future__ import annotations

import logging
from typing import Optional

from securestore.core.files.metadata import MetadataEntry
from securestore.db.kv_store import KeyValueStore


class MetadataStore:
    """
    Serializes entries to JSON and keeps them in a ``KeyValueStore``.

    Acts as the ``EntrySink`` of every entry it loads or saves, so changes
    made through an entry's setters land here immediately.
    """

    def __init__(self, backend: KeyValueStore, encoding: str = "utf-8") -> None:
        self._backend = backend
        self._encoding = encoding
        self._log = logging.getLogger("securestore.db")

    @property
    def backend(self) -> KeyValueStore:
        return self._backend

    def save(self, entry: MetadataEntry) -> None:
        self._backend.set(entry.name, entry.to_json().encode(self._encoding))
        self._log.debug("Persisted metadata for %s", entry.name)

    def load(self, name: str) -> Optional[MetadataEntry]:
        """
        Fetch the entry stored under ``name`` and bind it to this store.

        Returns:
            The entry, or None if no record exists

        Raises:
            ValueError: If the stored record can not be parsed
        """
        raw = self._backend.get(name)
        if raw is None:
            return None
        return MetadataEntry.from_json(name, raw.decode(self._encoding), sink=self)

    def delete(self, name: str) -> None:
        self._backend.delete(name)
        self._log.debug("Deleted metadata for %s", name)

    def close(self) -> None:
        self._backend.close()
