"""
Core module - Contains configuration, logging, results and base components.
"""

from securestore.core.config import StoreConfig
from securestore.core.errors import Result, StoreError
from securestore.core.logging import configure_logging, get_secure_logger, SecureLogFilter

__all__ = [
    "StoreConfig",
    "Result",
    "StoreError",
    "configure_logging",
    "get_secure_logger",
    "SecureLogFilter",
]
