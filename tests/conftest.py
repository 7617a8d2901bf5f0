"""Shared pytest fixtures for all tests."""

import threading

import pytest

from cli.config import Config
from engine.exceptions import BlobNotFoundError, BlobStoreError


class FakeBlobStore:
    """
    Thread-safe in-memory blob store that records every call.
    """

    def __init__(self, blobs=None, fail_writes=False, fail_reads=False):
        self.blobs = dict(blobs or {})
        self.fail_writes = fail_writes
        self.fail_reads = fail_reads
        self.exists_calls = []
        self.read_calls = []
        self.write_calls = []
        self._lock = threading.Lock()

    def exists(self, key):
        with self._lock:
            self.exists_calls.append(key)
            return key in self.blobs

    def read(self, key):
        with self._lock:
            self.read_calls.append(key)
            if self.fail_reads:
                raise BlobStoreError(f"read failed: {key}")
            if key not in self.blobs:
                raise BlobNotFoundError(key)
            return self.blobs[key]

    def write(self, key, data):
        with self._lock:
            self.write_calls.append(key)
            if self.fail_writes:
                raise BlobStoreError(f"write failed: {key}")
            self.blobs[key] = bytes(data)
            return f"memory://{key}"

    def reset_calls(self):
        self.exists_calls.clear()
        self.read_calls.clear()
        self.write_calls.clear()

    @property
    def network_calls(self):
        return len(self.exists_calls) + len(self.read_calls) + len(self.write_calls)


@pytest.fixture
def store():
    """Empty in-memory blob store."""
    return FakeBlobStore()


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Returns:
        Path to temporary .chunkvault directory
    """
    config_dir = tmp_path / '.chunkvault'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance with a local store and small chunks.
    """
    config = Config(temp_config_dir / 'config.json')
    config.data['store_type'] = 'local'
    config.data['store_path'] = str(temp_config_dir / 'blobs')
    config.data['chunk_size'] = 16
    config.data['pool_capacity'] = 4
    return config


@pytest.fixture
def sparse_image(tmp_path):
    """
    Create a 64-byte image of four 16-byte chunks: data, zeros, data, zeros.

    Returns:
        Path to the image
    """
    path = tmp_path / 'disk.img'
    path.write_bytes(b'A' * 16 + bytes(16) + b'B' * 16 + bytes(16))
    return path
