"""Rebuilds a file from its manifest, fetching only chunks that are missing."""

import enum
import os
import threading
from typing import BinaryIO, Optional

from blobstore.base import BlobStore
from common.constants import DEFAULT_POOL_CAPACITY, ZERO_FILL_BLOCK_SIZE
from common.logging_config import get_logger
from common.types import ChunkMismatch, RestoreReport
from engine.content_addresser import blob_key, compute_digest, is_zero, verify_digest
from engine.exceptions import ChecksumMismatchError
from engine.manifest import ChunkDescriptor, FileManifest
from engine.task_pool import BoundedTaskPool

logger = get_logger(__name__)


class MismatchPolicy(str, enum.Enum):
    """What to do with a chunk whose live bytes disagree with the manifest."""

    VERIFY_ONLY = "verify-only"
    VERIFY_AND_REPAIR = "verify-and-repair"


class SharedFile:
    """
    A file handle used by several threads.

    The handle position is shared, so the lock is held across each
    seek+read and seek+write pair.
    """

    def __init__(self, handle: BinaryIO):
        self._handle = handle
        self._lock = threading.Lock()

    def read_range(self, start: int, length: int) -> bytes:
        with self._lock:
            self._handle.seek(start)
            return self._handle.read(length)

    def write_range(self, start: int, data: bytes) -> None:
        with self._lock:
            self._handle.seek(start)
            self._handle.write(data)


class RestoreReconstructor:
    """
    Reconciles a destination file with a manifest.

    Chunks that read back as zero but should hold content are fetched from
    the store on the task pool. Chunks with unexpected content are reported,
    and rewritten only under MismatchPolicy.VERIFY_AND_REPAIR.
    """

    def __init__(
        self,
        store: BlobStore,
        pool_capacity: int = DEFAULT_POOL_CAPACITY,
        policy: MismatchPolicy = MismatchPolicy.VERIFY_ONLY,
        zero_fill: bool = False,
    ):
        self.store = store
        self.pool_capacity = pool_capacity
        self.policy = MismatchPolicy(policy)
        self.zero_fill = zero_fill
        self._report_lock = threading.Lock()

    def restore_file(self, manifest: FileManifest, target_path=None) -> RestoreReport:
        """
        Rebuild the file described by manifest.

        Args:
            manifest: Manifest produced by a backup
            target_path: Destination; defaults to manifest.file_name

        Returns:
            RestoreReport with per-outcome counts and any mismatches

        Raises:
            OSError: If the destination cannot be opened or resized
            BlobStoreError: If a fetch failed (the first failure)
            ChecksumMismatchError: If a fetched blob does not match its digest
        """
        path = os.fspath(target_path if target_path is not None else manifest.file_name)
        report = RestoreReport()
        logger.info(
            f"Restoring {path} ({manifest.total_size} bytes, {len(manifest.chunks)} chunks, "
            f"policy={self.policy.value})"
        )

        fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o644)
        with os.fdopen(fd, "r+b") as handle:
            self._preallocate(handle, manifest.total_size)
            shared = SharedFile(handle)

            with BoundedTaskPool(self.pool_capacity, name="restore") as pool:
                for chunk in manifest.chunks:
                    if pool.should_stop():
                        logger.warning(f"Stopping at offset {chunk.start}: a fetch already failed")
                        break
                    self._reconcile_chunk(chunk, manifest.algorithm, shared, pool, report)
                error = pool.wait()

        if error is not None:
            logger.error(f"Restore of {path} failed: {error}")
            raise error

        logger.info(
            f"Restore of {path} complete: {report.consistent} consistent, {report.fetched} fetched, "
            f"{report.zeroed} zeroed, {len(report.mismatches)} mismatched"
        )
        return report

    def _preallocate(self, handle: BinaryIO, total_size: int) -> None:
        current_size = os.fstat(handle.fileno()).st_size
        handle.truncate(total_size)
        if self.zero_fill and current_size < total_size:
            logger.info(f"Zero-filling {total_size - current_size} bytes from offset {current_size}")
            block = bytes(ZERO_FILL_BLOCK_SIZE)
            handle.seek(current_size)
            remaining = total_size - current_size
            while remaining > 0:
                step = min(remaining, ZERO_FILL_BLOCK_SIZE)
                handle.write(block[:step])
                remaining -= step
            handle.flush()

    def _reconcile_chunk(
        self,
        chunk: ChunkDescriptor,
        algorithm: str,
        shared: SharedFile,
        pool: BoundedTaskPool,
        report: RestoreReport,
    ) -> None:
        report.chunks += 1
        local = shared.read_range(chunk.start, chunk.length)

        if is_zero(local):
            if chunk.is_empty:
                self._count(report, "consistent")
                return
            logger.info(f"Chunk at {chunk.start} is missing, fetching {blob_key(chunk.content_digest)}")
            pool.submit(self._fetch_chunk, chunk, algorithm, shared, report)
            return

        actual = compute_digest(local, algorithm)
        if actual == chunk.content_digest:
            self._count(report, "consistent")
            return

        logger.warning(
            f"Chunk at {chunk.start}-{chunk.end} differs: expected {chunk.content_digest or 'zeros'}, found {actual}"
        )
        report.mismatches.append(
            ChunkMismatch(start=chunk.start, end=chunk.end, expected=chunk.content_digest, actual=actual)
        )
        if self.policy is not MismatchPolicy.VERIFY_AND_REPAIR:
            return

        if chunk.is_empty:
            shared.write_range(chunk.start, bytes(chunk.length))
            self._count(report, "zeroed")
        else:
            pool.submit(self._fetch_chunk, chunk, algorithm, shared, report)

    def _fetch_chunk(
        self,
        chunk: ChunkDescriptor,
        algorithm: str,
        shared: SharedFile,
        report: RestoreReport,
    ) -> None:
        key = blob_key(chunk.content_digest)
        data = self.store.read(key)

        if len(data) != chunk.length:
            raise ChecksumMismatchError(
                f"Blob {key} is {len(data)} bytes, chunk at {chunk.start} needs {chunk.length}"
            )
        if not verify_digest(data, chunk.content_digest, algorithm):
            raise ChecksumMismatchError(f"Blob {key} does not match digest {chunk.content_digest}")

        shared.write_range(chunk.start, data)
        logger.debug(f"Restored chunk at {chunk.start} from {key}")
        self._count(report, "fetched")

    def _count(self, report: RestoreReport, field_name: str) -> None:
        with self._report_lock:
            setattr(report, field_name, getattr(report, field_name) + 1)


def parse_policy(value: Optional[str]) -> MismatchPolicy:
    """
    Map a policy name ("verify-only", "verify-and-repair") to MismatchPolicy.

    Raises:
        ValueError: If the name is unknown
    """
    if value is None:
        return MismatchPolicy.VERIFY_ONLY
    try:
        return MismatchPolicy(value)
    except ValueError:
        choices = ", ".join(p.value for p in MismatchPolicy)
        raise ValueError(f"Unknown mismatch policy {value!r} (expected one of {choices})") from None
