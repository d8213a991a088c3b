"""
File Store
==========

Registers logical files under short names and applies, per file, any of:
encryption at rest, compression at rest and content-hash tamper detection.

Sources of truth kept in step:
    1. The file's bytes on disk
    2. The integrity witness held in the file's metadata entry
    3. The entry's persisted copy in the key-value backend
plus the on-disk index listing every registered name.

Every public operation returns a ``Result``; nothing raises at this
boundary except lifecycle misuse (calling operations before ``init()``).
"""

from __future__ import annotations

import functools
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator, Optional, TypeVar

from securestore.core.config import StoreConfig
from securestore.core.crypto.aes_cbc import AesCbcStreamCipher, DecryptionError
from securestore.core.crypto.digest import compute_file_hash, hashes_match
from securestore.core.errors import Result, StoreError
from securestore.core.file_ops.compression import (
    CompressionError,
    compress_to_file,
    decompress_from_file,
)
from securestore.core.file_ops.primitives import (
    FileState,
    delete_file,
    directory_exists,
    expect_absent,
    expect_present,
    move_file,
    remove_quietly,
    replace_file,
)
from securestore.core.files.index import FileIndex
from securestore.core.files.metadata import EntrySnapshot, MetadataEntry
from securestore.core.files.metadata_store import MetadataStore
from securestore.db.kv_store import BackendError, KeyValueStore, SqliteKeyValueStore
from securestore.utils.paths import resolve_target_path, temporary_sibling
from securestore.utils.validators import ValidationError, validate_logical_name

F = TypeVar("F", bound=Callable[..., Result])


class WriteMode(Enum):
    """How a write treats the file's existing bytes."""
    CREATE_NEW = "xb"
    TRUNCATE = "wb"
    APPEND = "ab"


def _reports_io_errors(method: F) -> F:
    """Translate filesystem and backend exceptions escaping an operation into results."""

    @functools.wraps(method)
    def wrapper(self: FileStore, name: str, *args, **kwargs) -> Result:
        try:
            return method(self, name, *args, **kwargs)
        except FileNotFoundError:
            self._log.warning("File for %s disappeared during %s", name, method.__name__)
            return Result.fail(StoreError.FILE_DOES_NOT_EXIST)
        except FileExistsError:
            self._log.warning("Path for %s became occupied during %s", name, method.__name__)
            return Result.fail(StoreError.FILE_ALREADY_EXISTS)
        except OSError as e:
            self._log.error(
                "%s failed for %s: %s", method.__name__, name, e.strerror or type(e).__name__
            )
            return Result.fail(StoreError.IO_ERROR)
        except BackendError:
            self._log.error("%s failed for %s: metadata backend unavailable", method.__name__, name)
            return Result.fail(StoreError.IO_ERROR)

    return wrapper  # type: ignore[return-value]


class FileStore:
    """
    Managed file storage keyed by logical name.

    Usage:
        config = StoreConfig.for_directory("/srv/store")
        with FileStore(config) as store:
            store.create_file("notes", "hello", encrypt=True, hashing=True)
            result = store.read_file("notes")
            if result.error is StoreError.FILE_CORRUPTED:
                ...  # content may have been tampered with

    Write-mode selection for create/update/append: encrypted if the entry
    holds a key, else compressed if flagged, else plain. Encryption and
    compression are never both active for one file.

    Not safe for concurrent use; one caller at a time.
    """

    def __init__(
        self,
        config: StoreConfig,
        backend: Optional[KeyValueStore] = None,
    ) -> None:
        """
        Args:
            config: Store configuration (data directory, index name, codecs)
            backend: Key-value store for metadata. Defaults to an SQLite
                database in the data directory, which the store then owns
                and closes on shutdown. A backend passed in is shared and
                left open.
        """
        self._config = config
        self._backend = backend
        self._owns_backend = backend is None
        self._metadata: Optional[MetadataStore] = None
        self._index = FileIndex(config.index_path, config.storage.encoding)
        self._cipher = AesCbcStreamCipher(config.storage.chunk_size)
        self._entries: dict[str, MetadataEntry] = {}
        self._initialized = False
        self._log = logging.getLogger("securestore.files")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init(self) -> None:
        """
        Prepare directories and rebuild the name mapping from persisted state.

        Names listed in the index whose metadata record is missing or
        unreadable are dropped, and the index is rewritten to match.
        """
        if self._initialized:
            return

        self._config.ensure_directories()
        if self._backend is None:
            self._backend = SqliteKeyValueStore(self._config.metadata_db_path)
        self._metadata = MetadataStore(self._backend, self._config.storage.encoding)

        self._entries = {}
        dropped: list[str] = []
        for name in self._index.load():
            try:
                entry = self._metadata.load(name)
            except ValueError:
                self._log.warning("Metadata record for %s is unreadable", name)
                entry = None

            if entry is None:
                dropped.append(name)
                continue
            self._entries[name] = entry

        if dropped:
            self._log.warning("Dropping %d indexed names without metadata: %s", len(dropped), ", ".join(dropped))
            self._sync_index()

        self._initialized = True
        self._log.info("File store ready with %d registered files", len(self._entries))

    def shutdown(self) -> None:
        """Flush the index and release the mapping (and an owned backend)."""
        if not self._initialized:
            return

        self._sync_index()
        self._entries.clear()
        if self._owns_backend and self._metadata is not None:
            self._metadata.close()
            self._backend = None
        self._metadata = None
        self._initialized = False
        self._log.info("File store shut down")

    def __enter__(self) -> FileStore:
        self.init()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def names(self) -> list[str]:
        """Registered logical names in registration order."""
        return list(self._entries)

    def get_entry(self, name: str) -> Optional[EntrySnapshot]:
        """Read-only copy of the metadata entry for ``name``."""
        entry = self._entries.get(name)
        return entry.snapshot() if entry is not None else None

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @_reports_io_errors
    def create_file(
        self,
        name: str,
        content: str = "",
        directory: Optional[Path | str] = None,
        extension: Optional[str] = None,
        encrypt: bool = False,
        hashing: bool = False,
        compress: bool = False,
    ) -> Result[None]:
        """
        Register ``name`` and write its initial content.

        The file lands at ``directory/name.extension``; the directory defaults
        to the configured data directory and the extension to the configured
        default.

        Returns:
            OK, INVALID_ARGUMENT (encrypt and compress together, bad name or
            extension), INVALID_PATH (directory absent) or FILE_ALREADY_EXISTS
            (name registered or path occupied)
        """
        self._require_ready()

        if encrypt and compress:
            self._log.warning("Refusing to create %s: files can't be both encrypted and compressed", name)
            return Result.fail(StoreError.INVALID_ARGUMENT)
        data = self._encode(content)
        if data is None:
            return Result.fail(StoreError.INVALID_ARGUMENT)
        try:
            validate_logical_name(name)
        except ValidationError as e:
            self._log.warning("Refusing to create file: %s", e)
            return Result.fail(StoreError.INVALID_ARGUMENT)

        if name in self._entries:
            self._log.warning("A file named %s is already registered", name)
            return Result.fail(StoreError.FILE_ALREADY_EXISTS)

        if directory is None or str(directory) == "":
            directory = self._config.paths.data_dir
        elif not directory_exists(directory):
            self._log.warning("Given directory %s does not exist", directory)
            return Result.fail(StoreError.INVALID_PATH)

        if extension is None:
            extension = self._config.storage.default_extension
        try:
            path = resolve_target_path(directory, name, extension)
        except ValidationError as e:
            self._log.warning("Refusing to create %s: %s", name, e)
            return Result.fail(StoreError.INVALID_ARGUMENT)

        if expect_absent(path) is not FileState.SUCCESS:
            return Result.fail(StoreError.FILE_ALREADY_EXISTS)

        entry = MetadataEntry(name, path, compression_enabled=compress)
        try:
            self._write(entry, data, WriteMode.CREATE_NEW, encrypt=encrypt, hashing=hashing)
        except FileExistsError:
            raise
        except BaseException:
            remove_quietly(path)
            raise

        entry.bind(self._metadata)
        try:
            entry.persist()
        except BaseException:
            remove_quietly(path)
            raise
        self._entries[name] = entry
        self._sync_index()

        self._log.info(
            "Created %s (encryption=%s, hashing=%s, compression=%s)",
            name, entry.encryption_enabled, entry.hashing_enabled, entry.compression_enabled,
        )
        return Result.ok()

    @_reports_io_errors
    def read_file(self, name: str) -> Result[str]:
        """
        Read the full content of ``name``.

        A witness mismatch does not block the read: the content comes back
        with FILE_CORRUPTED so the caller can decide whether to trust it.
        Content that can not be decoded at all is a hard FILE_CORRUPTED.
        """
        self._require_ready()

        entry = self._lookup(name)
        if entry is None:
            return Result.fail(StoreError.NOT_REGISTERED)
        if expect_present(entry.path) is not FileState.SUCCESS:
            return Result.fail(StoreError.FILE_DOES_NOT_EXIST)

        intact = not entry.hashing_enabled or self._hash_matches(entry)

        try:
            content = self._read_bytes(entry).decode(self._config.storage.encoding)
        except (DecryptionError, CompressionError, UnicodeDecodeError):
            self._log.error("Content of %s could not be decoded", name)
            return Result.fail(StoreError.FILE_CORRUPTED)

        if not intact:
            self._log.warning("Hash of %s differs from the stored witness", name)
            return Result.warn(content, StoreError.FILE_CORRUPTED)
        return Result.ok(content)

    @_reports_io_errors
    def update_file(self, name: str, content: str) -> Result[None]:
        """Replace the whole content of ``name``, rotating its key if encrypted."""
        self._require_ready()

        entry = self._lookup(name)
        if entry is None:
            return Result.fail(StoreError.NOT_REGISTERED)
        data = self._encode(content)
        if data is None:
            return Result.fail(StoreError.INVALID_ARGUMENT)
        if expect_present(entry.path) is not FileState.SUCCESS:
            return Result.fail(StoreError.FILE_DOES_NOT_EXIST)

        self._write(entry, data, WriteMode.TRUNCATE)
        self._log.info("Updated %s", name)
        return Result.ok()

    @_reports_io_errors
    def append_file(self, name: str, content: str) -> Result[None]:
        """
        Append ``content`` to ``name``.

        Refused with FILE_CORRUPTED when hashing is active and the file no
        longer matches its witness; the file is left untouched. Encrypted
        files are decrypted, extended and rewritten under a fresh key.
        """
        self._require_ready()

        entry = self._lookup(name)
        if entry is None:
            return Result.fail(StoreError.NOT_REGISTERED)
        data = self._encode(content)
        if data is None:
            return Result.fail(StoreError.INVALID_ARGUMENT)
        if expect_present(entry.path) is not FileState.SUCCESS:
            return Result.fail(StoreError.FILE_DOES_NOT_EXIST)

        if entry.hashing_enabled and not self._hash_matches(entry):
            self._log.warning("Refusing to append to %s: hash differs from the stored witness", name)
            return Result.fail(StoreError.FILE_CORRUPTED)

        try:
            self._write(entry, data, WriteMode.APPEND)
        except DecryptionError:
            self._log.error("Refusing to append to %s: existing content could not be decrypted", name)
            return Result.fail(StoreError.FILE_CORRUPTED)

        self._log.info("Appended to %s", name)
        return Result.ok()

    @_reports_io_errors
    def change_file_path(self, name: str, new_directory: Path | str) -> Result[None]:
        """Move the file behind ``name`` into ``new_directory``, keeping its file name."""
        self._require_ready()

        entry = self._lookup(name)
        if entry is None:
            return Result.fail(StoreError.NOT_REGISTERED)
        if not new_directory or not directory_exists(new_directory):
            self._log.warning("Given directory %s does not exist", new_directory)
            return Result.fail(StoreError.INVALID_PATH)

        destination = Path(new_directory).expanduser().resolve() / entry.path.name
        if destination == entry.path or expect_absent(destination) is not FileState.SUCCESS:
            return Result.fail(StoreError.FILE_ALREADY_EXISTS)

        state = move_file(entry.path, destination)
        if state is FileState.MISSING:
            self._log.warning("No file for %s at %s", name, entry.path)
            return Result.fail(StoreError.FILE_DOES_NOT_EXIST)
        if state is FileState.ALREADY_EXISTS:
            return Result.fail(StoreError.FILE_ALREADY_EXISTS)

        source = entry.path
        try:
            entry.set_path(destination)
        except BaseException:
            move_file(destination, source)
            raise
        self._log.info("Moved %s to %s", name, destination.parent)
        return Result.ok()

    @_reports_io_errors
    def check_file_hash(self, name: str) -> Result[None]:
        """Compare the file's current hash against its stored witness."""
        self._require_ready()

        entry = self._lookup(name)
        if entry is None:
            return Result.fail(StoreError.NOT_REGISTERED)
        if not entry.hashing_enabled:
            self._log.warning("Hashing is not enabled for %s", name)
            return Result.fail(StoreError.HASHING_NOT_ENABLED)
        if expect_present(entry.path) is not FileState.SUCCESS:
            return Result.fail(StoreError.FILE_DOES_NOT_EXIST)

        if not self._hash_matches(entry):
            self._log.warning("Hash of %s differs from the stored witness", name)
            return Result.fail(StoreError.FILE_CORRUPTED)
        return Result.ok()

    @_reports_io_errors
    def delete_file(self, name: str) -> Result[None]:
        """Delete the file's bytes, its metadata record and its index line."""
        self._require_ready()

        entry = self._lookup(name)
        if entry is None:
            return Result.fail(StoreError.NOT_REGISTERED)

        if expect_present(entry.path) is not FileState.SUCCESS:
            return Result.fail(StoreError.FILE_DOES_NOT_EXIST)

        # Metadata first: a failed backend write must leave the file registered.
        self._metadata.delete(name)
        del self._entries[name]
        self._sync_index()
        delete_file(entry.path, passes=self._config.storage.secure_delete_passes)

        self._log.info("Deleted %s", name)
        return Result.ok()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_ready(self) -> None:
        if not self._initialized:
            raise RuntimeError("FileStore.init() must be called before use")

    def _lookup(self, name: str) -> Optional[MetadataEntry]:
        entry = self._entries.get(name)
        if entry is None:
            self._log.warning("No file has been registered under the name %s", name)
        return entry

    def _sync_index(self) -> None:
        self._index.write(self._entries)

    def _hash_matches(self, entry: MetadataEntry) -> bool:
        return hashes_match(entry.content_hash, compute_file_hash(entry.path))

    def _read_bytes(self, entry: MetadataEntry) -> bytes:
        if entry.encryption_enabled:
            return self._cipher.decrypt_from_file(entry.path, entry.encryption_key)
        if entry.compression_enabled:
            return decompress_from_file(entry.path)
        with open(entry.path, "rb") as stream:
            return stream.read()

    def _encode(self, content: object) -> Optional[bytes]:
        """Encoded content, or None when it is not text the configured encoding can hold."""
        if not isinstance(content, str):
            return None
        try:
            return content.encode(self._config.storage.encoding)
        except UnicodeEncodeError:
            self._log.warning("Refusing content that can not be encoded as %s", self._config.storage.encoding)
            return None

    def _write(
        self,
        entry: MetadataEntry,
        data: bytes,
        mode: WriteMode,
        encrypt: Optional[bool] = None,
        hashing: Optional[bool] = None,
    ) -> None:
        """
        Write through the entry's write mode and record its new key and witness.

        ``encrypt`` and ``hashing`` default to the entry's current state; they
        are only passed explicitly while creating a file. The metadata record
        is updated before a full rewrite replaces the file, and a failed
        update leaves both the file and the record as they were.
        """
        if encrypt is None:
            encrypt = entry.encryption_enabled
        if hashing is None:
            hashing = entry.hashing_enabled

        if encrypt:
            if mode is WriteMode.APPEND:
                # CBC output depends on everything before it; re-encrypt the whole file.
                data = self._cipher.decrypt_from_file(entry.path, entry.encryption_key) + data
                mode = WriteMode.TRUNCATE
            writer = lambda path, fmode: self._cipher.encrypt_to_file(path, data, fmode)
        elif entry.compression_enabled:
            level = self._config.storage.compression_level
            writer = lambda path, fmode: compress_to_file(path, data, fmode, level)
        else:
            writer = lambda path, fmode: _write_plain(path, data, fmode)

        if mode is WriteMode.TRUNCATE:
            self._rewrite(entry, writer, hashing)
            return

        size = entry.path.stat().st_size if mode is WriteMode.APPEND else None
        key = writer(entry.path, mode.value)
        try:
            entry.record_write(key, compute_file_hash(entry.path) if hashing else None)
        except BaseException:
            if size is not None:
                os.truncate(entry.path, size)
            raise

    def _rewrite(self, entry: MetadataEntry, writer: Callable[[Path, str], Optional[bytes]], hashing: bool) -> None:
        """Write to a scratch sibling, record the result, then swap it in."""
        previous_key, previous_hash = entry.encryption_key, entry.content_hash
        tmp = temporary_sibling(entry.path)
        try:
            key = writer(tmp, "wb")
            entry.record_write(key, compute_file_hash(tmp) if hashing else None)
            try:
                replace_file(tmp, entry.path)
            except BaseException:
                entry.record_write(previous_key, previous_hash or None)
                raise
        finally:
            remove_quietly(tmp)


def _write_plain(path: Path, data: bytes, mode: str) -> None:
    with open(path, mode) as stream:
        stream.write(data)
