"""
File Primitives
===============

Thin filesystem checks and mutations producing typed outcomes.

The store translates a ``FileState`` into its own error taxonomy rather than
letting raw ``OSError`` details escape. Only existence conditions are mapped
here; any other I/O failure propagates to the caller.

Deletion can optionally overwrite content before unlinking:
    Pass 1: All zeros
    Pass 2: All ones
    Pass 3+: Random data
This makes recovery harder, though not impossible on SSDs with wear levelling.
"""

from __future__ import annotations

import logging
import os
import secrets
import shutil
from enum import Enum
from pathlib import Path
from typing import Final

BLOCK_SIZE: Final[int] = 4096

logger = logging.getLogger("securestore.file_ops")


class FileState(Enum):
    """Outcome of a primitive file check or mutation."""
    SUCCESS = "SUCCESS"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    MISSING = "MISSING"


def exists(path: Path | str) -> bool:
    return Path(path).is_file()


def directory_exists(path: Path | str) -> bool:
    return Path(path).is_dir()


def expect_absent(path: Path | str) -> FileState:
    """Check that nothing occupies ``path``; warn if something does."""
    path = Path(path)
    if path.exists():
        logger.warning(
            "A file named %s already exists in folder %s", path.stem, path.parent
        )
        return FileState.ALREADY_EXISTS
    return FileState.SUCCESS


def expect_present(path: Path | str) -> FileState:
    """Check that a regular file exists at ``path``; warn if it does not."""
    path = Path(path)
    if not path.is_file():
        logger.warning(
            "No file named %s exists in folder %s", path.stem, path.parent
        )
        return FileState.MISSING
    return FileState.SUCCESS


def create_empty(path: Path | str) -> FileState:
    """Create an empty file, failing if one already exists."""
    try:
        with open(path, "xb"):
            pass
    except FileExistsError:
        return FileState.ALREADY_EXISTS
    return FileState.SUCCESS


def move_file(source: Path | str, destination: Path | str) -> FileState:
    """Move ``source`` to ``destination`` without overwriting anything."""
    source, destination = Path(source), Path(destination)
    if not source.is_file():
        return FileState.MISSING
    if destination.exists():
        return FileState.ALREADY_EXISTS
    shutil.move(str(source), str(destination))
    return FileState.SUCCESS


def replace_file(source: Path | str, destination: Path | str) -> FileState:
    """Atomically put ``source`` in place of ``destination``."""
    if not Path(source).is_file():
        return FileState.MISSING
    os.replace(source, destination)
    return FileState.SUCCESS


def delete_file(path: Path | str, passes: int = 0) -> FileState:
    """
    Delete a file, optionally overwriting its content first.

    Args:
        path: File to delete
        passes: Overwrite passes before unlinking (0 = plain unlink)
    """
    path = Path(path)
    if not path.is_file():
        return FileState.MISSING

    if passes > 0:
        _overwrite(path, passes)

    path.unlink()
    return FileState.SUCCESS


def remove_quietly(path: Path | str) -> None:
    """Remove a leftover file if present, e.g. after a failed write."""
    try:
        Path(path).unlink()
    except FileNotFoundError:
        pass


def _overwrite(path: Path, passes: int) -> None:
    size = path.stat().st_size

    with open(path, "r+b") as stream:
        for pass_num in range(passes):
            stream.seek(0)

            if pass_num == 0:
                pattern = b"\x00" * BLOCK_SIZE
            elif pass_num == 1:
                pattern = b"\xff" * BLOCK_SIZE
            else:
                pattern = None

            written = 0
            while written < size:
                length = min(BLOCK_SIZE, size - written)
                stream.write(secrets.token_bytes(length) if pattern is None else pattern[:length])
                written += length

            stream.flush()
            os.fsync(stream.fileno())
