"""
Validation Utilities
====================

Input validation for logical names and extensions.
"""

from __future__ import annotations

import re
from typing import Final

MAX_NAME_LENGTH: Final[int] = 200

# Path separators, control characters (the index is newline separated) and
# characters most filesystems reject.
_FORBIDDEN_NAME_CHARS: Final[re.Pattern[str]] = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_EXTENSION_PATTERN: Final[re.Pattern[str]] = re.compile(r"^\.?[A-Za-z0-9_-]{0,32}$")


class ValidationError(ValueError):
    """Raised when validation fails."""
    pass


def validate_logical_name(name: str) -> str:
    """
    Validate a caller-chosen logical file name.

    The name doubles as the metadata key and as the file's stem on disk, so
    it has to be a plain, single-line file name.

    Raises:
        ValidationError: If the name is unusable
    """
    if not isinstance(name, str):
        raise ValidationError("name must be a string")
    if not name or not name.strip():
        raise ValidationError("name cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"name must be at most {MAX_NAME_LENGTH} characters")
    if _FORBIDDEN_NAME_CHARS.search(name):
        raise ValidationError("name contains path separators or control characters")
    if name in {".", ".."} or name != name.strip():
        raise ValidationError("name cannot be a relative path marker or have surrounding spaces")
    return name


def validate_extension(extension: str) -> str:
    """
    Validate and normalize an extension to its dotted form.

    ``"txt"`` and ``".txt"`` both become ``".txt"``; an empty string means
    no extension at all.

    Raises:
        ValidationError: If the extension contains anything but [A-Za-z0-9_-]
    """
    if not isinstance(extension, str) or not _EXTENSION_PATTERN.match(extension):
        raise ValidationError(f"Invalid extension: {extension!r}")
    stripped = extension.lstrip(".")
    return f".{stripped}" if stripped else ""
