"""
Database module - Key-value backends for metadata persistence.

Security Considerations:
- Metadata records hold encryption keys; the backend must be protected
  like the keys themselves
"""

from securestore.db.kv_store import BackendError, KeyValueStore, MemoryKeyValueStore, SqliteKeyValueStore

__all__ = [
    "BackendError",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqliteKeyValueStore",
]
