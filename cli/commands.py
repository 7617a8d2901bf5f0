"""Command handler functions for CLI operations."""

import sys
from typing import Optional

from blobstore.base import BlobStore
from blobstore.http_store import HttpBlobStore
from blobstore.local_store import LocalBlobStore
from cli.config import Config
from cli.models import BackupCommand, RestoreCommand
from cli.utils import format_file_size, format_restore_report
from common.logging_config import get_logger
from engine.manifest import dump_manifest, load_manifest
from engine.restorer import MismatchPolicy, RestoreReconstructor
from engine.uploader import DedupUploader

logger = get_logger(__name__)


def build_store(config: Config) -> BlobStore:
    """
    Create the blob store the configuration points at.

    Args:
        config: Loaded configuration

    Returns:
        LocalBlobStore or HttpBlobStore
    """
    if config.get_store_type() == "http":
        retry = config.get_retry_config()
        return HttpBlobStore(
            config.get_store_url(),
            timeout=config.get_timeout(),
            max_retries=retry['max_retries'],
            retry_backoff_multiplier=retry['retry_backoff_multiplier'],
            api_token=config.get_api_token(),
        )
    return LocalBlobStore(config.get_store_path())


def close_store(store: BlobStore) -> None:
    """Release the store's connections, if it holds any."""
    close = getattr(store, "close", None)
    if close is not None:
        close()


def handle_backup(cmd: BackupCommand, config: Config, store: Optional[BlobStore] = None) -> str:
    """
    Handle 'backup' command.

    Args:
        cmd: BackupCommand with file_name and optional output_format
        config: Loaded configuration
        store: Optional BlobStore for dependency injection (testing)

    Returns:
        Manifest document text

    Raises:
        ChunkVaultError, OSError: On any backup failure
    """
    logger.info(f"Executing backup command: file_name={cmd.file_name}")
    owns_store = store is None
    if owns_store:
        store = build_store(config)
    try:
        uploader = DedupUploader(
            store,
            pool_capacity=config.get_pool_capacity(),
            algorithm=config.get_digest_algorithm(),
            blobs_location=config.get_blobs_location(),
        )
        manifest = uploader.upload_file(cmd.file_name, config.get_chunk_size())
    finally:
        if owns_store:
            close_store(store)
    logger.info(
        f"Uploaded {uploader.stats.uploaded} blobs ({format_file_size(uploader.stats.bytes_uploaded)}), "
        f"{uploader.stats.deduplicated} deduplicated, {uploader.stats.empty} empty chunks skipped"
    )
    return dump_manifest(manifest, cmd.output_format or config.get_manifest_format())


def handle_restore(cmd: RestoreCommand, config: Config, store: Optional[BlobStore] = None) -> str:
    """
    Handle 'restore' command.

    Args:
        cmd: RestoreCommand with manifest_path, repair flag and optional target
        config: Loaded configuration
        store: Optional BlobStore for dependency injection (testing)

    Returns:
        Restore summary, one extra line per mismatched chunk

    Raises:
        ChunkVaultError, OSError: On any restore failure
    """
    logger.info(f"Executing restore command: manifest={cmd.manifest_path} target={cmd.target}")
    manifest = load_manifest(cmd.manifest_path)
    policy = MismatchPolicy.VERIFY_AND_REPAIR if cmd.repair else config.get_mismatch_policy()
    owns_store = store is None
    if owns_store:
        store = build_store(config)
    try:
        reconstructor = RestoreReconstructor(
            store,
            pool_capacity=config.get_pool_capacity(),
            policy=policy,
            zero_fill=config.get_zero_fill(),
        )
        report = reconstructor.restore_file(manifest, cmd.target)
    finally:
        if owns_store:
            close_store(store)
    path = cmd.target or manifest.file_name
    return format_restore_report(path, manifest.total_size, report, color=sys.stdout.isatty())
