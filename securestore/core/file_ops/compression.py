"""
Gzip Stream Compression
=======================

Stores file content as a raw gzip stream, with no header beyond gzip's own.

Appending writes a new gzip member after the existing ones. Gzip readers
decompress concatenated members back to back, so an append never needs to
rewrite what is already on disk.
"""

from __future__ import annotations

import gzip
import zlib
from pathlib import Path
from typing import Final

DEFAULT_COMPRESSION_LEVEL: Final[int] = 9
_WRITE_MODES: Final[frozenset[str]] = frozenset({"xb", "wb", "ab"})
_CHUNK_SIZE: Final[int] = 64 * 1024


class CompressionError(Exception):
    """Raised when a stored stream is not valid gzip data."""
    pass


def compress_to_file(
    path: Path | str,
    data: bytes,
    mode: str = "wb",
    level: int = DEFAULT_COMPRESSION_LEVEL,
) -> None:
    """
    Write ``data`` through a gzip compressor into ``path``.

    Args:
        path: Destination file
        data: Uncompressed content
        mode: ``"xb"`` (new file), ``"wb"`` (overwrite) or ``"ab"`` (new member)
        level: zlib compression level 0-9

    Raises:
        ValueError: If mode is not supported
        FileExistsError: If mode is ``"xb"`` and the file exists
    """
    if mode not in _WRITE_MODES:
        raise ValueError(f"Unsupported write mode for compressed files: {mode!r}")

    with gzip.open(path, mode, compresslevel=level) as stream:
        view = memoryview(data)
        for offset in range(0, len(view), _CHUNK_SIZE):
            stream.write(view[offset:offset + _CHUNK_SIZE])


def decompress_from_file(path: Path | str) -> bytes:
    """
    Read and decompress every gzip member in ``path``.

    Raises:
        CompressionError: If the stream is corrupt or truncated
        FileNotFoundError: If the file does not exist
    """
    output = bytearray()
    try:
        with gzip.open(path, "rb") as stream:
            while chunk := stream.read(_CHUNK_SIZE):
                output += chunk
    except (gzip.BadGzipFile, EOFError, zlib.error) as e:
        raise CompressionError("Stored content is not a valid gzip stream") from e
    return bytes(output)
