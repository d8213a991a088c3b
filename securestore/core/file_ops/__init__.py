"""
SecureStore File Operations Module
==================================

Byte-level building blocks the file store composes.

Components:
- compression.py: gzip stream compression at rest
- primitives.py: existence checks, moves, replacement and deletion
"""

from securestore.core.file_ops.compression import (
    CompressionError,
    compress_to_file,
    decompress_from_file,
)
from securestore.core.file_ops.primitives import (
    FileState,
    create_empty,
    delete_file,
    directory_exists,
    exists,
    expect_absent,
    expect_present,
    move_file,
    remove_quietly,
    replace_file,
)

__all__ = [
    "CompressionError",
    "compress_to_file",
    "decompress_from_file",
    "FileState",
    "create_empty",
    "delete_file",
    "directory_exists",
    "exists",
    "expect_absent",
    "expect_present",
    "move_file",
    "remove_quietly",
    "replace_file",
]
