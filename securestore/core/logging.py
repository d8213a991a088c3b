"""
Secure Logging Module
=====================

Provides logging for the file store with key-material filtering.

Features:
- Automatic redaction of keys, IVs and other secrets in log records
- Rotating log files with size limits
- Optional structured (JSON) file output
- Content of managed files is never logged by the store itself
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Final, Optional, Pattern

if TYPE_CHECKING:
    from securestore.core.config import StoreConfig

_SENSITIVE_PATTERNS: Final[list[tuple[str, Pattern[str]]]] = [
    ("key", re.compile(r'(?i)\b(encryption[_-]?key|key|iv|nonce)\s*[=:]\s*["\']?[^\s"\',]+["\']?')),
    ("password", re.compile(r'(?i)\b(password|passwd|pwd)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("secret", re.compile(r'(?i)\b(secret|token|private[_-]?key)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    # Base64 encoded key material (a 32-byte key is 44 characters)
    ("base64_secret", re.compile(r'(?<![A-Za-z0-9+/])[A-Za-z0-9+/]{40,}={0,2}')),
]

_REDACTED_TEXT: Final[str] = "[REDACTED]"
_CONSOLE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_FILE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"


class SecureLogFilter(logging.Filter):
    """
    Log filter that removes key material from log messages.

    Records are always kept. Arguments are sanitized first, then the merged
    message is sanitized as a whole, so ``"key=%s"`` style calls are caught.
    """

    def __init__(self, name: str = "", additional_patterns: Optional[list[Pattern[str]]] = None) -> None:
        super().__init__(name)
        self._additional_patterns = additional_patterns or []

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._sanitize(v) if isinstance(v, str) else v
                               for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    self._sanitize(arg) if isinstance(arg, str)
                    else _REDACTED_TEXT if isinstance(arg, (bytes, bytearray))
                    else arg
                    for arg in record.args
                )

        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Leave malformed format calls to the handler's own error reporting.
            return True

        record.msg = self._sanitize(message)
        record.args = ()
        return True

    def _sanitize(self, text: str) -> str:
        result = text
        for name, pattern in _SENSITIVE_PATTERNS:
            result = pattern.sub(f"{name}={_REDACTED_TEXT}", result)
        for pattern in self._additional_patterns:
            result = pattern.sub(_REDACTED_TEXT, result)
        return result


class StructuredLogFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def _build_file_handler(
    log_file: Path,
    max_file_size: int,
    backup_count: int,
    enable_json: bool,
) -> RotatingFileHandler:
    log_file = log_file.resolve()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        str(log_file),
        maxBytes=max_file_size,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    if enable_json:
        handler.setFormatter(StructuredLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def get_secure_logger(
    name: str,
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    enable_console: bool = True,
    enable_file: bool = True,
    enable_json: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Create a logger with automatic key-material filtering.

    Args:
        name: Logger name (e.g. "securestore.files")
        log_dir: Directory for log files; file output is skipped without one
        level: Logging level name
        enable_console: Whether to output to stderr
        enable_file: Whether to output to a rotating file in ``log_dir``
        enable_json: Whether file output is JSON
        max_file_size: Maximum log file size before rotation
        backup_count: Number of rotated files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper()))
    secure_filter = SecureLogFilter()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        console_handler.addFilter(secure_filter)
        logger.addHandler(console_handler)

    if enable_file and log_dir:
        file_handler = _build_file_handler(
            log_dir / f"{name.replace('.', '_')}.log",
            max_file_size,
            backup_count,
            enable_json,
        )
        file_handler.addFilter(secure_filter)
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


def configure_logging(config: StoreConfig) -> logging.Logger:
    """
    Configure the ``securestore`` logger hierarchy from a StoreConfig.

    Child loggers ("securestore.files", "securestore.db", ...) propagate to
    it, so calling this once at startup covers the whole package.
    """
    log_config = config.logging
    return get_secure_logger(
        "securestore",
        log_dir=config.paths.log_dir,
        level=log_config.level,
        enable_console=log_config.enable_console,
        enable_file=log_config.enable_file,
        enable_json=log_config.enable_json,
        max_file_size=log_config.max_file_size_bytes,
        backup_count=log_config.backup_count,
    )
