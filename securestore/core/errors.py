"""
Store Results
=============

Error taxonomy and tagged result type returned by every FileStore operation.

The store never raises at its boundary. Each call returns a ``Result``
carrying either a value or a ``StoreError`` kind. The only case where both
are meaningful is a read whose integrity witness no longer matches: the
content is still handed back, flagged with ``FILE_CORRUPTED``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final, Generic, Optional, TypeVar

T = TypeVar("T")


class StoreError(Enum):
    """Kinds of outcome a store operation can report."""

    OK = "OK"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    INVALID_PATH = "INVALID_PATH"
    NOT_REGISTERED = "NOT_REGISTERED"
    FILE_CORRUPTED = "FILE_CORRUPTED"
    FILE_ALREADY_EXISTS = "FILE_ALREADY_EXISTS"
    FILE_DOES_NOT_EXIST = "FILE_DOES_NOT_EXIST"
    HASHING_NOT_ENABLED = "HASHING_NOT_ENABLED"
    IO_ERROR = "IO_ERROR"

    @property
    def message(self) -> str:
        """Human-readable description of this outcome."""
        return _MESSAGES[self]


_MESSAGES: Final[dict[StoreError, str]] = {
    StoreError.OK: "Operation completed successfully",
    StoreError.INVALID_ARGUMENT: (
        "Invalid argument; a file can not be both encrypted and compressed "
        "and its name must be a plain, non-empty identifier"
    ),
    StoreError.INVALID_PATH: "Given directory does not exist on the local system",
    StoreError.NOT_REGISTERED: "File has not been registered with create_file yet",
    StoreError.FILE_CORRUPTED: (
        "File has been changed outside of the store, accessing it might not be safe anymore"
    ),
    StoreError.FILE_ALREADY_EXISTS: (
        "A file already exists under that name or path, choose a different name or directory"
    ),
    StoreError.FILE_DOES_NOT_EXIST: (
        "There is no file at the registered path, ensure it wasn't moved or deleted"
    ),
    StoreError.HASHING_NOT_ENABLED: (
        "Tried to compare the hash, but hashing has not been enabled for this file"
    ),
    StoreError.IO_ERROR: "The file system refused the operation",
}


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """
    Outcome of a store operation.

    Attributes:
        error: Outcome kind (``StoreError.OK`` on success)
        value: Operation output, if the operation produces one
    """

    error: StoreError = StoreError.OK
    value: Optional[T] = None

    @classmethod
    def ok(cls, value: Optional[T] = None) -> Result[T]:
        return cls(StoreError.OK, value)

    @classmethod
    def fail(cls, error: StoreError) -> Result[T]:
        if error is StoreError.OK:
            raise ValueError("A failed result needs a non-OK error kind")
        return cls(error, None)

    @classmethod
    def warn(cls, value: T, error: StoreError) -> Result[T]:
        """Result that still carries a value alongside a non-OK kind."""
        if error is StoreError.OK:
            raise ValueError("A warning result needs a non-OK error kind")
        return cls(error, value)

    @property
    def is_ok(self) -> bool:
        return self.error is StoreError.OK

    @property
    def message(self) -> str:
        return self.error.message

    def __bool__(self) -> bool:
        return self.is_ok

    def __repr__(self) -> str:
        """Representation without the value, which may be file content."""
        has_value = self.value is not None
        return f"Result(error={self.error.value}, has_value={has_value})"
