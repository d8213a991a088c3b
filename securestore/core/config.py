"""
Store Configuration Module
==========================

Provides immutable, environment-aware configuration for the file store.

Features:
- Immutable configuration after initialization
- Environment variable override support (SECURESTORE_ prefix)
- No secrets in default values or accepted from the environment
- OS-aware path defaults
"""

from __future__ import annotations

import codecs
import hashlib
import os
import platform
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Optional

_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "token", "private", "credential", "auth", "salt",
    "encryption_key",
})

_VALID_LOG_LEVELS: Final[frozenset[str]] = frozenset({
    "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL",
})


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might contain sensitive data."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def _get_default_data_dir() -> Path:
    """Get OS-appropriate default data directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    elif system == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))

    return base / "SecureStore"


def _get_default_log_dir() -> Path:
    """Get OS-appropriate default log directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
        return base / "SecureStore" / "Logs"
    elif system == "darwin":
        return Path.home() / "Library" / "Logs" / "SecureStore"
    else:
        return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state")) / "SecureStore" / "logs"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class PathConfig:
    """Immutable path configuration with OS-aware defaults."""

    data_dir: Path = field(default_factory=_get_default_data_dir)
    log_dir: Path = field(default_factory=_get_default_log_dir)

    def __post_init__(self) -> None:
        for field_name in ("data_dir", "log_dir"):
            path = getattr(self, field_name)
            if not isinstance(path, Path):
                raise TypeError(f"{field_name} must be a pathlib.Path")
            if not path.is_absolute():
                raise ValueError(f"{field_name} must be an absolute path: {path}")


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Immutable settings for on-disk layout and codecs."""

    index_filename: str = "fileNames.save"
    metadata_db_name: str = "metadata.db"
    default_extension: str = ".txt"
    encoding: str = "utf-8"
    chunk_size: int = 64 * 1024
    compression_level: int = 9
    secure_delete_passes: int = 0

    def __post_init__(self) -> None:
        for field_name in ("index_filename", "metadata_db_name"):
            value = getattr(self, field_name)
            if not value or os.sep in value or "/" in value:
                raise ValueError(f"{field_name} must be a plain file name: {value!r}")
        if self.chunk_size < 1024:
            raise ValueError("Chunk size must be at least 1024 bytes")
        if not 0 <= self.compression_level <= 9:
            raise ValueError("Compression level must be between 0 and 9")
        if self.secure_delete_passes < 0:
            raise ValueError("Secure delete passes can not be negative")
        codecs.lookup(self.encoding)  # LookupError for unknown encodings


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Immutable logging configuration."""

    level: str = "INFO"
    max_file_size_bytes: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = False
    enable_json: bool = False

    def __post_init__(self) -> None:
        if self.level.upper() not in _VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.level}")


class StoreConfig:
    """
    Centralized, immutable configuration with environment override support.

    Usage:
        config = StoreConfig.load()
        index_path = config.index_path
        passes = config.storage.secure_delete_passes

    Unlike a process-wide singleton, a config is built explicitly and handed
    to the FileStore that uses it.
    """

    __slots__ = ("_paths", "_storage", "_logging", "_frozen", "_config_hash")

    def __init__(
        self,
        paths: Optional[PathConfig] = None,
        storage: Optional[StorageConfig] = None,
        logging: Optional[LoggingConfig] = None,
    ) -> None:
        """Initialize configuration. Use StoreConfig.load() to honour the environment."""
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_paths", paths or PathConfig())
        object.__setattr__(self, "_storage", storage or StorageConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_config_hash", self._compute_hash())
        object.__setattr__(self, "_frozen", True)

    def _compute_hash(self) -> str:
        config_str = f"{self._paths}|{self._storage}|{self._logging}"
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @property
    def paths(self) -> PathConfig:
        return self._paths

    @property
    def storage(self) -> StorageConfig:
        return self._storage

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @property
    def config_hash(self) -> str:
        return self._config_hash

    @property
    def index_path(self) -> Path:
        """Location of the logical-name index file."""
        return self._paths.data_dir / self._storage.index_filename

    @property
    def metadata_db_path(self) -> Path:
        """Location of the SQLite metadata database."""
        return self._paths.data_dir / self._storage.metadata_db_name

    @classmethod
    def for_directory(cls, data_dir: Path | str, **storage_kwargs: Any) -> StoreConfig:
        """Build a config rooted at ``data_dir``, logging to ``data_dir/logs``."""
        data_dir = Path(data_dir).resolve()
        return cls(
            paths=PathConfig(data_dir=data_dir, log_dir=data_dir / "logs"),
            storage=StorageConfig(**storage_kwargs) if storage_kwargs else None,
        )

    @classmethod
    def load(cls, env_prefix: str = "SECURESTORE") -> StoreConfig:
        """
        Load configuration with environment variable overrides.

        Environment variables use the prefix and double underscores for
        nested values.

        Examples:
            SECURESTORE_PATHS__DATA_DIR=/srv/store
            SECURESTORE_LOGGING__LEVEL=DEBUG
            SECURESTORE_STORAGE__SECURE_DELETE_PASSES=3

        Args:
            env_prefix: Prefix for environment variables

        Returns:
            Configured StoreConfig instance
        """
        env_overrides = cls._parse_env_overrides(env_prefix)

        paths_kwargs: dict[str, Any] = {}
        for key in ("data_dir", "log_dir"):
            if f"paths.{key}" in env_overrides:
                paths_kwargs[key] = Path(env_overrides[f"paths.{key}"])

        storage_kwargs: dict[str, Any] = {}
        for key in ("index_filename", "metadata_db_name", "default_extension", "encoding"):
            if f"storage.{key}" in env_overrides:
                storage_kwargs[key] = env_overrides[f"storage.{key}"]
        for key in ("chunk_size", "compression_level", "secure_delete_passes"):
            if f"storage.{key}" in env_overrides:
                storage_kwargs[key] = int(env_overrides[f"storage.{key}"])

        logging_kwargs: dict[str, Any] = {}
        if "logging.level" in env_overrides:
            logging_kwargs["level"] = env_overrides["logging.level"]
        for key in ("enable_console", "enable_file", "enable_json"):
            if f"logging.{key}" in env_overrides:
                logging_kwargs[key] = _parse_bool(env_overrides[f"logging.{key}"])

        return cls(
            paths=PathConfig(**paths_kwargs) if paths_kwargs else None,
            storage=StorageConfig(**storage_kwargs) if storage_kwargs else None,
            logging=LoggingConfig(**logging_kwargs) if logging_kwargs else None,
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                # SECURESTORE_SECTION__KEY -> section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")

                if _is_sensitive_key(config_key):
                    continue

                overrides[config_key] = value

        return overrides

    def ensure_directories(self) -> None:
        """Create the data directory (and log directory if file logging is on)."""
        directories = [self._paths.data_dir]
        if self._logging.enable_file:
            directories.append(self._paths.log_dir)

        for directory in directories:
            created = not directory.exists()
            directory.mkdir(parents=True, exist_ok=True)

            # Only tighten permissions on directories we created ourselves.
            if created and platform.system().lower() != "windows":
                directory.chmod(stat.S_IRWXU)

    def __repr__(self) -> str:
        return f"StoreConfig(hash={self._config_hash}, data_dir={str(self._paths.data_dir)!r})"

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if hasattr(self, "_frozen") and self._frozen:
            raise AttributeError("StoreConfig is immutable after initialization")
        super().__setattr__(name, value)
