"""
Utils module - Utility functions and helpers.
"""

from securestore.utils.paths import resolve_target_path, temporary_sibling
from securestore.utils.validators import (
    ValidationError,
    validate_extension,
    validate_logical_name,
)

__all__ = [
    "resolve_target_path",
    "temporary_sibling",
    "ValidationError",
    "validate_extension",
    "validate_logical_name",
]
