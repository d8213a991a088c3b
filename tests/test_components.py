"""Tests for the building blocks under FileStore."""

import base64
import json
import os
import sqlite3

import pytest

from securestore.core.errors import Result, StoreError
from securestore.core.file_ops.primitives import (
    FileState,
    create_empty,
    delete_file,
    expect_absent,
    expect_present,
    move_file,
    replace_file,
    remove_quietly,
)
from securestore.core.files.index import FileIndex
from securestore.core.files.metadata import MetadataEntry
from securestore.core.files.metadata_store import MetadataStore
from securestore.db import BackendError, KeyValueStore, MemoryKeyValueStore, SqliteKeyValueStore
from securestore.utils.paths import resolve_target_path, temporary_sibling
from securestore.utils.validators import ValidationError, validate_extension, validate_logical_name


class RecordingSink:
    """EntrySink that remembers what it was asked to save."""

    def __init__(self):
        self.saved = []

    def save(self, entry):
        self.saved.append(entry.to_dict())


# ------------------------------------------------------------------
# Result
# ------------------------------------------------------------------

def test_result_constructors():
    """Test ok, fail and warn results."""
    ok = Result.ok('value')
    failed = Result.fail(StoreError.NOT_REGISTERED)
    warned = Result.warn('value', StoreError.FILE_CORRUPTED)

    assert ok.is_ok and bool(ok) and ok.value == 'value'
    assert not failed and failed.value is None
    assert not warned.is_ok and warned.value == 'value'
    assert failed.message == StoreError.NOT_REGISTERED.message


@pytest.mark.parametrize('factory', [
    lambda: Result.fail(StoreError.OK),
    lambda: Result.warn('x', StoreError.OK),
])
def test_result_rejects_ok_as_failure(factory):
    """Test that failures always carry a non-OK kind."""
    with pytest.raises(ValueError):
        factory()


def test_result_repr_hides_value():
    """Test that file content does not leak through repr."""
    assert 'secret' not in repr(Result.ok('secret'))


def test_every_error_kind_has_a_message():
    """Test the message table is complete."""
    for kind in StoreError:
        assert kind.message


# ------------------------------------------------------------------
# MetadataEntry
# ------------------------------------------------------------------

def test_setters_write_through_to_sink(tmp_path):
    """Test that each setter persists the whole entry before returning."""
    sink = RecordingSink()
    entry = MetadataEntry('doc', tmp_path / 'doc.txt', sink=sink)

    entry.set_content_hash('ab' * 32)
    entry.set_encryption_key(b'k' * 32)
    entry.set_path(tmp_path / 'moved.txt')

    assert len(sink.saved) == 3
    assert sink.saved[0]['hash'] == 'ab' * 32
    assert sink.saved[1]['key'] == base64.b64encode(b'k' * 32).decode()
    assert sink.saved[2]['path'] == str(tmp_path / 'moved.txt')


def test_entry_is_not_assignable(tmp_path):
    """Test that state only changes through setters."""
    entry = MetadataEntry('doc', tmp_path / 'doc.txt')

    with pytest.raises(AttributeError):
        entry.path = tmp_path / 'other.txt'


def test_entry_refuses_encryption_with_compression(tmp_path):
    """Test the mutual exclusion in the constructor and setters."""
    with pytest.raises(ValueError):
        MetadataEntry('doc', tmp_path / 'doc.txt', encryption_key=b'k' * 32, compression_enabled=True)

    compressed = MetadataEntry('packed', tmp_path / 'p.txt', compression_enabled=True)
    with pytest.raises(ValueError):
        compressed.set_encryption_key(b'k' * 32)

    encrypted = MetadataEntry('vault', tmp_path / 'v.txt', encryption_key=b'k' * 32)
    with pytest.raises(ValueError):
        encrypted.set_compression_enabled(True)


def test_empty_key_rejected(tmp_path):
    """Test that an empty key can not be recorded."""
    entry = MetadataEntry('doc', tmp_path / 'doc.txt')

    with pytest.raises(ValueError):
        entry.set_encryption_key(b'')


def test_json_form(tmp_path):
    """Test the serialized record fields."""
    entry = MetadataEntry('doc', tmp_path / 'doc.txt', content_hash='ff' * 32, encryption_key=b'\x01' * 32)

    data = json.loads(entry.to_json())

    assert data == {
        'path': str(tmp_path / 'doc.txt'),
        'hash': 'ff' * 32,
        'key': base64.b64encode(b'\x01' * 32).decode(),
        'compression': False,
    }
    restored = MetadataEntry.from_json('doc', entry.to_json())
    assert restored.snapshot() == entry.snapshot()


@pytest.mark.parametrize('raw', [
    '{not json',
    '[]',
    '{"hash": ""}',
    '{"path": "/x", "key": "***"}',
    '{"path": "/x", "key": "AAAA", "compression": true}',
])
def test_from_json_rejects_malformed(raw):
    """Test that any unusable record raises ValueError."""
    with pytest.raises(ValueError):
        MetadataEntry.from_json('doc', raw)


class FailingSink:
    def save(self, entry):
        raise BackendError('unavailable')


def test_failed_persist_restores_previous_values(tmp_path):
    """Test that an entry never holds state its sink did not accept."""
    key = b'\x03' * 32
    entry = MetadataEntry('doc', tmp_path / 'doc.txt', content_hash='aa' * 32, encryption_key=key)
    entry.bind(FailingSink())

    with pytest.raises(BackendError):
        entry.record_write(b'\x04' * 32, 'bb' * 32)
    with pytest.raises(BackendError):
        entry.set_path(tmp_path / 'moved.txt')

    assert entry.encryption_key == key
    assert entry.content_hash == 'aa' * 32
    assert entry.path == tmp_path / 'doc.txt'


def test_record_write_persists_once(tmp_path):
    """Test that key and witness of one write land in a single save."""
    sink = RecordingSink()
    entry = MetadataEntry('doc', tmp_path / 'doc.txt', sink=sink)

    entry.record_write(b'\x05' * 32, 'cc' * 32)
    entry.record_write(None, None)

    assert len(sink.saved) == 1
    assert sink.saved[0]['hash'] == 'cc' * 32
    assert sink.saved[0]['key'] == base64.b64encode(b'\x05' * 32).decode()


def test_entry_repr_hides_key(tmp_path):
    """Test that key bytes never show up in repr."""
    key = b'\x02' * 32
    entry = MetadataEntry('doc', tmp_path / 'doc.txt', encryption_key=key)

    assert base64.b64encode(key).decode() not in repr(entry)
    assert repr(key) not in repr(entry)
    assert 'encryption=True' in repr(entry)


# ------------------------------------------------------------------
# MetadataStore and key-value backends
# ------------------------------------------------------------------

def test_metadata_store_binds_loaded_entries(tmp_path):
    """Test that a loaded entry writes back to the store it came from."""
    backend = MemoryKeyValueStore()
    metadata = MetadataStore(backend)
    metadata.save(MetadataEntry('doc', tmp_path / 'doc.txt'))

    loaded = metadata.load('doc')
    loaded.set_content_hash('aa' * 32)

    assert json.loads(backend.get('doc'))['hash'] == 'aa' * 32
    assert metadata.load('missing') is None


def test_metadata_store_delete(tmp_path):
    """Test that delete removes the record."""
    metadata = MetadataStore(MemoryKeyValueStore())
    metadata.save(MetadataEntry('doc', tmp_path / 'doc.txt'))

    metadata.delete('doc')

    assert metadata.load('doc') is None


@pytest.fixture(params=['memory', 'sqlite'])
def kv(request, tmp_path):
    """Each key-value backend in turn."""
    if request.param == 'memory':
        return MemoryKeyValueStore()
    return SqliteKeyValueStore(tmp_path / 'kv' / 'metadata.db')


def test_kv_get_set_delete(kv):
    """Test the basic contract on every backend."""
    assert isinstance(kv, KeyValueStore)
    assert kv.get('a') is None

    kv.set('a', b'1')
    kv.set('a', b'2')
    kv.set('b', b'\x00\xff')

    assert kv.get('a') == b'2'
    assert kv.get('b') == b'\x00\xff'
    assert sorted(kv.keys()) == ['a', 'b']

    kv.delete('a')
    kv.delete('never-set')
    assert kv.get('a') is None


def test_sqlite_persists_across_instances(tmp_path):
    """Test that a second connection to the same file sees the data."""
    db_path = tmp_path / 'metadata.db'
    SqliteKeyValueStore(db_path).set('doc', b'{}')

    assert SqliteKeyValueStore(db_path).get('doc') == b'{}'


def test_sqlite_errors_surface_as_backend_error(tmp_path):
    """Test that driver errors are wrapped, not leaked."""
    backend = SqliteKeyValueStore(tmp_path / 'metadata.db')
    conn = sqlite3.connect(backend.db_path)
    try:
        with conn:
            conn.execute('DROP TABLE metadata')
    finally:
        conn.close()

    with pytest.raises(BackendError):
        backend.set('doc', b'{}')
    with pytest.raises(BackendError):
        backend.get('doc')


# ------------------------------------------------------------------
# FileIndex
# ------------------------------------------------------------------

def test_index_round_trip(tmp_path):
    """Test writing and reloading names in order."""
    index = FileIndex(tmp_path / 'fileNames.save')

    index.write(['b', 'a', 'c'])

    assert index.load() == ['b', 'a', 'c']
    assert [path.name for path in tmp_path.iterdir()] == ['fileNames.save']


def test_index_load_creates_missing_file(tmp_path):
    """Test that a missing index is created empty."""
    index = FileIndex(tmp_path / 'nested' / 'fileNames.save')

    assert index.load() == []
    assert index.path.exists()


def test_index_failed_write_keeps_old_list_and_cleans_up(tmp_path, monkeypatch):
    """Test that a failed replace leaves the previous index and no scratch file."""
    index = FileIndex(tmp_path / 'fileNames.save')
    index.write(['old'])

    def refuse(src, dst):
        raise PermissionError('read-only')

    monkeypatch.setattr(os, 'replace', refuse)
    with pytest.raises(PermissionError):
        index.write(['new'])
    monkeypatch.undo()

    assert index.load() == ['old']
    assert [path.name for path in tmp_path.iterdir()] == ['fileNames.save']


def test_index_write_leaves_neighbouring_files_alone(tmp_path):
    """Test that a file named like a scratch file survives an index rewrite."""
    neighbour = tmp_path / '.fileNames.save.tmp'
    neighbour.write_text('registered content')
    index = FileIndex(tmp_path / 'fileNames.save')

    index.write(['a'])

    assert neighbour.read_text() == 'registered content'


def test_temporary_siblings_are_unique_and_exclusive(tmp_path):
    target = tmp_path / 'notes.txt'

    first = temporary_sibling(target)
    second = temporary_sibling(target)

    assert first != second
    assert first.parent == second.parent == tmp_path
    assert first.exists() and second.exists()
    assert first.name.endswith('.tmp')


def test_index_skips_blank_and_duplicate_lines(tmp_path):
    """Test tolerant loading of hand-edited indexes."""
    path = tmp_path / 'fileNames.save'
    path.write_text('one\n\ntwo\r\none\n')

    assert FileIndex(path).load() == ['one', 'two']


# ------------------------------------------------------------------
# File primitives
# ------------------------------------------------------------------

def test_expect_absent_and_present(tmp_path):
    """Test the existence checks."""
    path = tmp_path / 'f.txt'

    assert expect_absent(path) is FileState.SUCCESS
    assert expect_present(path) is FileState.MISSING

    assert create_empty(path) is FileState.SUCCESS
    assert create_empty(path) is FileState.ALREADY_EXISTS
    assert expect_absent(path) is FileState.ALREADY_EXISTS
    assert expect_present(path) is FileState.SUCCESS


def test_move_file_outcomes(tmp_path):
    """Test move success, missing source and occupied destination."""
    source, destination = tmp_path / 'a.txt', tmp_path / 'b.txt'

    assert move_file(source, destination) is FileState.MISSING

    source.write_text('data')
    destination.write_text('taken')
    assert move_file(source, destination) is FileState.ALREADY_EXISTS
    assert destination.read_text() == 'taken'

    destination.unlink()
    assert move_file(source, destination) is FileState.SUCCESS
    assert destination.read_text() == 'data'
    assert not source.exists()


def test_replace_file(tmp_path):
    """Test that replace overwrites the destination."""
    source, destination = tmp_path / 'new', tmp_path / 'old'
    destination.write_text('old')

    assert replace_file(tmp_path / 'missing', destination) is FileState.MISSING

    source.write_text('new')
    assert replace_file(source, destination) is FileState.SUCCESS
    assert destination.read_text() == 'new'


@pytest.mark.parametrize('passes', [0, 1, 3])
def test_delete_file(tmp_path, passes):
    """Test plain and overwriting deletes."""
    path = tmp_path / 'f.bin'
    path.write_bytes(b'x' * 10000)

    assert delete_file(path, passes=passes) is FileState.SUCCESS
    assert not path.exists()
    assert delete_file(path) is FileState.MISSING


def test_remove_quietly_ignores_missing(tmp_path):
    """Test cleanup of a file that was never written."""
    remove_quietly(tmp_path / 'never')


# ------------------------------------------------------------------
# Validators and paths
# ------------------------------------------------------------------

@pytest.mark.parametrize('name', ['notes', 'my notes', 'report-2024_v1', 'ünïcode'])
def test_valid_names(name):
    assert validate_logical_name(name) == name


@pytest.mark.parametrize('name', ['', '   ', '.', '..', 'a/b', 'a\\b', 'line\nbreak', ' padded', 'x' * 201, None])
def test_invalid_names(name):
    with pytest.raises(ValidationError):
        validate_logical_name(name)


@pytest.mark.parametrize('extension, expected', [
    ('.txt', '.txt'),
    ('txt', '.txt'),
    ('', ''),
    ('.', ''),
])
def test_extension_normalized(extension, expected):
    assert validate_extension(extension) == expected


@pytest.mark.parametrize('extension', ['.t/x', '..txt', '.tar.gz', 'a b'])
def test_invalid_extensions(extension):
    with pytest.raises(ValidationError):
        validate_extension(extension)


def test_resolve_target_path(tmp_path):
    """Test path assembly from directory, name and extension."""
    path = resolve_target_path(tmp_path, 'notes', 'md')

    assert path == tmp_path.resolve() / 'notes.md'
    assert path.is_absolute()
