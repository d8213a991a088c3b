"""
SecureStore - Managed File Storage
==================================

Registers files under logical names and transparently applies, per file,
encryption at rest, compression at rest and tamper detection.

Security Notice:
- Keys are never logged
- Every write uses a fresh key and IV
- Hash mismatches are always reported to the caller
"""

from securestore.core.config import StoreConfig
from securestore.core.errors import Result, StoreError
from securestore.core.files.file_store import FileStore
from securestore.core.logging import configure_logging, get_secure_logger

__version__ = "0.1.0"
__author__ = "SecureStore Team"

__all__ = [
    "FileStore",
    "StoreConfig",
    "Result",
    "StoreError",
    "configure_logging",
    "get_secure_logger",
    "__version__",
]
