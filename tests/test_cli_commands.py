"""Tests for CLI command handlers and entry point."""

import json

import pytest
import yaml

from conftest import FakeBlobStore
from blobstore.http_store import HttpBlobStore
from blobstore.local_store import LocalBlobStore
from cli.commands import build_store, handle_backup, handle_restore
from cli.main import main
from cli.models import BackupCommand, RestoreCommand
from engine.content_addresser import blob_key, compute_digest
from engine.exceptions import BlobStoreError, ManifestError


def test_build_store_local(temp_config):
    """Test the default configuration yields a directory store."""
    store = build_store(temp_config)

    assert isinstance(store, LocalBlobStore)
    assert store.root == temp_config.get_store_path()


def test_build_store_http(temp_config):
    """Test an http store_type yields an HTTP client with the configured URL."""
    temp_config.data['store_type'] = 'http'
    temp_config.data['store_url'] = 'http://blobs.example:8080/bucket/'

    store = build_store(temp_config)

    assert isinstance(store, HttpBlobStore)
    assert store.base_url == 'http://blobs.example:8080/bucket'
    store.close()


def test_handle_backup_prints_json_manifest(temp_config, store, sparse_image):
    """Test backup returns a JSON manifest and uploads non-empty chunks."""
    output = handle_backup(BackupCommand(file_name=str(sparse_image)), temp_config, store=store)
    document = json.loads(output)

    assert document['fileName'] == str(sparse_image)
    assert document['totalSize'] == 64
    assert document['blobsLocation'] == '/here'
    assert [c['isEmpty'] for c in document['chunks']] == [False, True, False, True]
    assert len(store.write_calls) == 2


def test_handle_backup_yaml(temp_config, store, sparse_image):
    """Test --format yaml output."""
    output = handle_backup(BackupCommand(file_name=str(sparse_image), output_format='yaml'), temp_config, store=store)

    assert yaml.safe_load(output)['chunks'][0]['content'] == compute_digest(b'A' * 16)


def test_handle_restore_from_manifest_file(tmp_path, temp_config, store, sparse_image):
    """Test restore reads a manifest document and rebuilds the file."""
    manifest_path = tmp_path / 'disk.manifest.yaml'
    cmd = BackupCommand(file_name=str(sparse_image), output_format='yaml')
    manifest_path.write_text(handle_backup(cmd, temp_config, store=store))
    target = tmp_path / 'restored.img'

    summary = handle_restore(RestoreCommand(manifest_path=str(manifest_path), target=str(target)), temp_config, store=store)

    assert target.read_bytes() == sparse_image.read_bytes()
    assert 'Restored' in summary
    assert '2 fetched' in summary


def test_handle_restore_repair_flag(tmp_path, temp_config, store, sparse_image):
    """Test --repair rewrites drifted chunks and reports them."""
    manifest_path = tmp_path / 'disk.manifest.json'
    manifest_path.write_text(handle_backup(BackupCommand(file_name=str(sparse_image)), temp_config, store=store))
    sparse_image.write_bytes(b'Z' * 16 + sparse_image.read_bytes()[16:])

    summary = handle_restore(RestoreCommand(manifest_path=str(manifest_path), repair=True), temp_config, store=store)

    assert sparse_image.read_bytes()[:16] == b'A' * 16
    assert 'Mismatch at 0-15' in summary


def test_handle_restore_bad_manifest(tmp_path, temp_config, store):
    """Test a malformed manifest raises ManifestError."""
    manifest_path = tmp_path / 'broken.json'
    manifest_path.write_text('{"fileName": "x"}')

    with pytest.raises(ManifestError):
        handle_restore(RestoreCommand(manifest_path=str(manifest_path)), temp_config, store=store)


def test_handle_backup_store_failure(temp_config, store, sparse_image):
    """Test store failures propagate out of the handler."""
    store.fail_writes = True

    with pytest.raises(BlobStoreError):
        handle_backup(BackupCommand(file_name=str(sparse_image)), temp_config, store=store)


def write_config(tmp_path, **overrides):
    config_path = tmp_path / 'config.json'
    data = {'store_type': 'local', 'store_path': str(tmp_path / 'blobs'), 'chunk_size': 16, 'pool_capacity': 2}
    data.update(overrides)
    config_path.write_text(json.dumps(data))
    return config_path


def test_main_backup_then_restore(tmp_path, sparse_image, capsys):
    """Test the full CLI flow against a local store."""
    config_path = write_config(tmp_path)

    assert main(['--config', str(config_path), 'backup', str(sparse_image)]) == 0
    manifest_text = capsys.readouterr().out
    assert json.loads(manifest_text)['totalSize'] == 64
    assert (tmp_path / 'blobs' / blob_key(compute_digest(b'B' * 16))).exists()

    manifest_path = tmp_path / 'disk.manifest.json'
    manifest_path.write_text(manifest_text)
    target = tmp_path / 'copy.img'

    assert main(['--config', str(config_path), 'restore', str(manifest_path), '--target', str(target)]) == 0
    assert target.read_bytes() == sparse_image.read_bytes()


def test_main_missing_file_exits_nonzero(tmp_path, capsys):
    """Test a missing source file yields exit code 1 and no manifest on stdout."""
    config_path = write_config(tmp_path)

    assert main(['--config', str(config_path), 'backup', str(tmp_path / 'absent.img')]) == 1
    assert capsys.readouterr().out == ''


def test_main_parse_error(capsys):
    """Test bad arguments print usage to stderr and exit 1."""
    assert main(['snapshot']) == 1
    assert 'Unknown command' in capsys.readouterr().err


def test_main_help(capsys):
    """Test help prints usage and exits 0."""
    assert main(['help']) == 0
    assert 'Usage: chunkvault' in capsys.readouterr().out


def test_main_invalid_config_value(tmp_path, sparse_image):
    """Test configuration errors exit 1."""
    config_path = write_config(tmp_path, chunk_size=0)

    assert main(['--config', str(config_path), 'backup', str(sparse_image)]) == 1


class ClosableStore(FakeBlobStore):
    """In-memory store that remembers being closed."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.closed = False

    def close(self):
        self.closed = True


def test_handlers_close_the_store_they_build(tmp_path, temp_config, sparse_image, monkeypatch):
    """Test backup and restore release a store built from config."""
    built = []

    def fake_build_store(config):
        built.append(ClosableStore(blobs=built[0].blobs if built else None))
        return built[-1]

    monkeypatch.setattr('cli.commands.build_store', fake_build_store)
    manifest_path = tmp_path / 'disk.manifest.json'
    manifest_path.write_text(handle_backup(BackupCommand(file_name=str(sparse_image)), temp_config))
    handle_restore(RestoreCommand(manifest_path=str(manifest_path), target=str(tmp_path / 'out.img')), temp_config)

    assert len(built) == 2
    assert all(s.closed for s in built)


def test_handler_closes_store_after_failure(temp_config, sparse_image, monkeypatch):
    """Test the built store is closed even when the backup fails."""
    failing = ClosableStore(fail_writes=True)
    monkeypatch.setattr('cli.commands.build_store', lambda config: failing)

    with pytest.raises(BlobStoreError):
        handle_backup(BackupCommand(file_name=str(sparse_image)), temp_config)
    assert failing.closed


def test_injected_store_left_open(temp_config, sparse_image):
    """Test a caller-supplied store is not closed by the handler."""
    injected = ClosableStore()

    handle_backup(BackupCommand(file_name=str(sparse_image)), temp_config, store=injected)

    assert not injected.closed
