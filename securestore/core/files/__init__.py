"""
Managed files: metadata entries, the name index and the file store.
"""

from securestore.core.files.file_store import FileStore, WriteMode
from securestore.core.files.index import FileIndex
from securestore.core.files.metadata import EntrySnapshot, MetadataEntry
from securestore.core.files.metadata_store import MetadataStore

__all__ = [
    "FileStore",
    "WriteMode",
    "FileIndex",
    "EntrySnapshot",
    "MetadataEntry",
    "MetadataStore",
]
