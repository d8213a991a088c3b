"""Shared pytest fixtures for all tests."""

import pytest

from securestore import FileStore, StoreConfig
from securestore.db import BackendError, MemoryKeyValueStore, SqliteKeyValueStore


@pytest.fixture
def data_dir(tmp_path):
    """
    Create the store's data directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to an empty data directory
    """
    directory = tmp_path / 'data'
    directory.mkdir()
    return directory


@pytest.fixture
def config(data_dir):
    """StoreConfig rooted at the temporary data directory."""
    return StoreConfig.for_directory(data_dir)


@pytest.fixture
def backend():
    """In-memory metadata backend shared across store restarts in one test."""
    return MemoryKeyValueStore()


@pytest.fixture
def sqlite_backend(data_dir):
    """SQLite metadata backend inside the data directory."""
    return SqliteKeyValueStore(data_dir / 'metadata.db')


@pytest.fixture
def store(config, backend):
    """
    Initialized FileStore over the in-memory backend.

    Yields:
        FileStore, shut down after the test
    """
    file_store = FileStore(config, backend)
    file_store.init()
    yield file_store
    file_store.shutdown()


@pytest.fixture
def restart(config, backend):
    """
    Factory that shuts a store down and builds a fresh one from persisted state.

    Returns:
        Callable taking the old store and returning a new initialized one
    """
    stores = []

    def _restart(old_store):
        old_store.shutdown()
        new_store = FileStore(config, backend)
        new_store.init()
        stores.append(new_store)
        return new_store

    yield _restart

    for file_store in stores:
        file_store.shutdown()


@pytest.fixture
def other_dir(tmp_path):
    """Second directory used as a move target."""
    directory = tmp_path / 'elsewhere'
    directory.mkdir()
    return directory


class SwitchableBackend(MemoryKeyValueStore):
    """In-memory backend whose writes can be made to fail."""

    def __init__(self):
        super().__init__()
        self.failing = False

    def set(self, key, value):
        if self.failing:
            raise BackendError('metadata backend is down')
        super().set(key, value)

    def delete(self, key):
        if self.failing:
            raise BackendError('metadata backend is down')
        super().delete(key)


@pytest.fixture
def switchable_backend():
    """Backend that starts healthy; set ``failing`` to break writes."""
    return SwitchableBackend()


@pytest.fixture
def switchable_store(config, switchable_backend):
    """
    Initialized FileStore over the switchable backend.

    Yields:
        FileStore, shut down after the test
    """
    file_store = FileStore(config, switchable_backend)
    file_store.init()
    yield file_store
    switchable_backend.failing = False
    file_store.shutdown()
