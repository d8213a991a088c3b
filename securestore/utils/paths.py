"""
Path Utilities
==============

Path resolution for managed files.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from securestore.utils.validators import validate_extension, validate_logical_name


def resolve_target_path(directory: Path | str, name: str, extension: str) -> Path:
    """
    Build the absolute on-disk path ``directory/name.extension``.

    Raises:
        ValidationError: If name or extension are invalid
    """
    name = validate_logical_name(name)
    extension = validate_extension(extension)
    return Path(directory).expanduser().resolve() / f"{name}{extension}"


def temporary_sibling(path: Path) -> Path:
    """
    Create an empty scratch file next to ``path`` for write-then-replace updates.

    The file is created exclusively under a random name, so it never
    coincides with an existing file. The caller owns it and must remove it.
    """
    fd, name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    os.close(fd)
    return Path(name)
