"""
Metadata Entry
==============

The per-file record the store keeps for every logical name.

Every change goes through an explicit ``set_*`` method, and every such
method writes the whole entry through to the bound ``EntrySink`` before
returning. If the sink fails, the entry keeps its previous values and the
error propagates. Plain attribute assignment is not possible.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol


class EntrySink(Protocol):
    """Where an entry writes itself after each change."""

    def save(self, entry: MetadataEntry) -> None:
        ...


@dataclass(frozen=True, slots=True)
class EntrySnapshot:
    """Read-only copy of an entry handed out to callers."""

    name: str
    path: Path
    content_hash: str
    encryption_key: Optional[bytes]
    compression_enabled: bool

    @property
    def hashing_enabled(self) -> bool:
        return bool(self.content_hash)

    @property
    def encryption_enabled(self) -> bool:
        return bool(self.encryption_key)

    def __repr__(self) -> str:
        """Safe representation without key material."""
        return (
            f"EntrySnapshot(name={self.name!r}, path={str(self.path)!r}, "
            f"hashing={self.hashing_enabled}, encryption={self.encryption_enabled}, "
            f"compression={self.compression_enabled})"
        )


class MetadataEntry:
    """
    Metadata of one managed file.

    Attributes (read-only):
        name: Logical name, also the key the entry is persisted under
        path: Resolved location of the file's bytes
        content_hash: Integrity witness; empty when hashing is disabled
        encryption_key: AES key; None when encryption is disabled
        compression_enabled: Whether content is stored gzip-compressed

    Encryption and compression are mutually exclusive.
    """

    __slots__ = ("_name", "_path", "_content_hash", "_encryption_key", "_compression_enabled", "_sink")

    def __init__(
        self,
        name: str,
        path: Path | str,
        content_hash: str = "",
        encryption_key: Optional[bytes] = None,
        compression_enabled: bool = False,
        sink: Optional[EntrySink] = None,
    ) -> None:
        if encryption_key and compression_enabled:
            raise ValueError("A file can not be both encrypted and compressed")
        self._name = name
        self._path = Path(path)
        self._content_hash = content_hash or ""
        self._encryption_key = bytes(encryption_key) if encryption_key else None
        self._compression_enabled = bool(compression_enabled)
        self._sink = sink

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> Path:
        return self._path

    @property
    def content_hash(self) -> str:
        return self._content_hash

    @property
    def encryption_key(self) -> Optional[bytes]:
        return self._encryption_key

    @property
    def compression_enabled(self) -> bool:
        return self._compression_enabled

    @property
    def hashing_enabled(self) -> bool:
        return bool(self._content_hash)

    @property
    def encryption_enabled(self) -> bool:
        return bool(self._encryption_key)

    def bind(self, sink: EntrySink) -> None:
        """Attach the sink that receives every subsequent change."""
        self._sink = sink

    def set_path(self, path: Path | str) -> None:
        """Relocate the entry and persist it."""
        self._apply(_path=Path(path))

    def set_content_hash(self, content_hash: str) -> None:
        """Record a new integrity witness and persist it."""
        self._apply(_content_hash=content_hash or "")

    def set_encryption_key(self, key: bytes) -> None:
        """Replace the key after a re-encrypting write and persist it."""
        if not key:
            raise ValueError("Encryption key cannot be empty")
        if self._compression_enabled:
            raise ValueError("A file can not be both encrypted and compressed")
        self._apply(_encryption_key=bytes(key))

    def set_compression_enabled(self, enabled: bool) -> None:
        if enabled and self._encryption_key:
            raise ValueError("A file can not be both encrypted and compressed")
        self._apply(_compression_enabled=bool(enabled))

    def record_write(self, encryption_key: Optional[bytes] = None, content_hash: Optional[str] = None) -> None:
        """
        Store the key and witness produced by one write with a single persist.

        None leaves the corresponding field unchanged.
        """
        changes: dict[str, Any] = {}
        if encryption_key is not None:
            if self._compression_enabled:
                raise ValueError("A file can not be both encrypted and compressed")
            changes["_encryption_key"] = bytes(encryption_key)
        if content_hash is not None:
            changes["_content_hash"] = content_hash
        if changes:
            self._apply(**changes)

    def _apply(self, **changes: Any) -> None:
        """Set fields and persist; on a failed persist the old values come back."""
        previous = {attr: getattr(self, attr) for attr in changes}
        for attr, value in changes.items():
            setattr(self, attr, value)
        try:
            self.persist()
        except BaseException:
            for attr, value in previous.items():
                setattr(self, attr, value)
            raise

    def persist(self) -> None:
        """Write the entry through to its sink, if one is bound."""
        if self._sink is not None:
            self._sink.save(self)

    def snapshot(self) -> EntrySnapshot:
        return EntrySnapshot(
            name=self._name,
            path=self._path,
            content_hash=self._content_hash,
            encryption_key=self._encryption_key,
            compression_enabled=self._compression_enabled,
        )

    def to_dict(self) -> dict[str, Any]:
        key = base64.b64encode(self._encryption_key).decode("ascii") if self._encryption_key else None
        return {
            "path": str(self._path),
            "hash": self._content_hash,
            "key": key,
            "compression": self._compression_enabled,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, name: str, json_str: str | bytes, sink: Optional[EntrySink] = None) -> MetadataEntry:
        """
        Rebuild an entry from its serialized form.

        Raises:
            ValueError: If the record is malformed
        """
        try:
            data = json.loads(json_str)
            key = data.get("key")
            return cls(
                name=name,
                path=data["path"],
                content_hash=data.get("hash") or "",
                encryption_key=base64.b64decode(key, validate=True) if key else None,
                compression_enabled=bool(data.get("compression", False)),
                sink=sink,
            )
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise ValueError(f"Malformed metadata record for {name!r}") from e

    def __repr__(self) -> str:
        """Safe representation without key material."""
        return (
            f"MetadataEntry(name={self._name!r}, path={str(self._path)!r}, "
            f"hashing={self.hashing_enabled}, encryption={self.encryption_enabled}, "
            f"compression={self._compression_enabled})"
        )
