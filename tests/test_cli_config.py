"""Tests for CLI configuration module."""

import json

import pytest

from cli.config import Config, ConfigError
from cli.main import main
from common.constants import CHUNK_SIZE_BYTES
from engine.restorer import MismatchPolicy


def test_config_creates_default_file(tmp_path):
    """Test that config file is created with defaults if missing."""
    config_path = tmp_path / '.chunkvault' / 'config.json'
    config = Config(config_path)

    assert config_path.exists()
    assert config.data['digest_algorithm'] == 'sha1'
    assert config.data['mismatch_policy'] == 'verify-only'
    assert config.data['manifest_format'] == 'json'
    assert config.data['timeout'] == 30
    assert config.data['max_retries'] == 0
    assert json.loads(config_path.read_text())['blobs_location'] == '/here'


def test_config_loads_existing_file(tmp_path):
    """Test loading existing config file merges over defaults."""
    config_path = tmp_path / '.chunkvault' / 'config.json'
    config_path.parent.mkdir(parents=True)
    config_path.write_text(json.dumps({
        'store_type': 'http',
        'store_url': 'http://example.com/blobs',
        'chunk_size': 1024,
    }))

    config = Config(config_path)

    assert config.get_store_type() == 'http'
    assert config.get_store_url() == 'http://example.com/blobs'
    assert config.get_chunk_size() == 1024
    assert config.get_timeout() == 30


def test_config_handles_corrupted_file(tmp_path):
    """Test recovery from corrupted config file."""
    config_path = tmp_path / '.chunkvault' / 'config.json'
    config_path.parent.mkdir(parents=True)
    config_path.write_text('{ invalid json content')

    config = Config(config_path)

    assert config.data['manifest_format'] == 'json'
    assert config_path.with_suffix('.json.bak').exists()


def test_missing_keys_fall_back_to_defaults(temp_config):
    """Test getters use built-in defaults for keys absent from the file."""
    del temp_config.data['chunk_size']
    del temp_config.data['blobs_location']

    assert temp_config.get_chunk_size() == Config.DEFAULT_CONFIG['chunk_size']
    assert CHUNK_SIZE_BYTES == 250 * 1024 * 1024
    assert temp_config.get_blobs_location() == '/here'


def test_api_token_from_environment(temp_config_dir, monkeypatch):
    """Test the token comes from CHUNKVAULT_API_TOKEN and is not written to disk."""
    monkeypatch.setenv('CHUNKVAULT_API_TOKEN', 'tok-123')
    config_path = temp_config_dir / 'token.json'

    config = Config(config_path)

    assert config.get_api_token() == 'tok-123'
    assert 'api_token' not in json.loads(config_path.read_text())


@pytest.mark.parametrize('value', [0, -5, 'big', True, 1.5])
def test_invalid_chunk_size(temp_config, value):
    """Test non-positive or non-integer sizes are rejected."""
    temp_config.data['chunk_size'] = value
    with pytest.raises(ConfigError):
        temp_config.get_chunk_size()


def test_invalid_store_type(temp_config):
    """Test unknown store types are rejected."""
    temp_config.data['store_type'] = 'ftp'
    with pytest.raises(ConfigError):
        temp_config.get_store_type()


def test_mismatch_policy(temp_config):
    """Test policy names are validated."""
    assert temp_config.get_mismatch_policy() is MismatchPolicy.VERIFY_ONLY

    temp_config.data['mismatch_policy'] = 'verify-and-repair'
    assert temp_config.get_mismatch_policy() is MismatchPolicy.VERIFY_AND_REPAIR

    temp_config.data['mismatch_policy'] = 'yolo'
    with pytest.raises(ConfigError):
        temp_config.get_mismatch_policy()


def test_digest_algorithm_and_format(temp_config):
    """Test algorithm and manifest format validation."""
    temp_config.data['digest_algorithm'] = 'sha256'
    assert temp_config.get_digest_algorithm() == 'sha256'

    temp_config.data['digest_algorithm'] = 'md5'
    with pytest.raises(ConfigError):
        temp_config.get_digest_algorithm()

    temp_config.data['manifest_format'] = 'toml'
    with pytest.raises(ConfigError):
        temp_config.get_manifest_format()


def test_config_get_retry_config(temp_config):
    """Test retry configuration retrieval."""
    retry_config = temp_config.get_retry_config()

    assert retry_config['max_retries'] == 0
    assert retry_config['retry_backoff_multiplier'] == 2


def test_store_path_expands_user(temp_config):
    """Test ~ in store_path is expanded."""
    temp_config.data['store_path'] = '~/blobs'
    assert '~' not in str(temp_config.get_store_path())


def test_sizes_given_as_strings(temp_config):
    """Test numeric strings, as environment overrides provide, are parsed."""
    temp_config.data['chunk_size'] = '1024'
    temp_config.data['pool_capacity'] = 'eight'

    assert temp_config.get_chunk_size() == 1024
    with pytest.raises(ConfigError, match='pool_capacity'):
        temp_config.get_pool_capacity()


def test_non_numeric_environment_size_exits_cleanly(tmp_path, monkeypatch, sparse_image):
    """Test a bad size in the environment is reported, not raised at import."""
    monkeypatch.setitem(Config.DEFAULT_CONFIG, 'chunk_size', 'lots')
    config_path = tmp_path / 'config.json'
    config_path.write_text(json.dumps({'store_type': 'local', 'store_path': str(tmp_path / 'blobs')}))

    assert main(['--config', str(config_path), 'backup', str(sparse_image)]) == 1


@pytest.mark.parametrize('value', ['false', 'true', 0, 1, None])
def test_zero_fill_requires_boolean(temp_config, value):
    """Test zero_fill accepts only true or false."""
    temp_config.data['zero_fill'] = value
    with pytest.raises(ConfigError, match='zero_fill'):
        temp_config.get_zero_fill()


def test_zero_fill_boolean(temp_config):
    """Test zero_fill defaults to False and honours true."""
    assert temp_config.get_zero_fill() is False
    temp_config.data['zero_fill'] = True
    assert temp_config.get_zero_fill() is True
