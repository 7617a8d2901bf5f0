"""Chunked, deduplicating backup of one file into a blob store."""

import os
import threading
from typing import BinaryIO, List, Set

from blobstore.base import BlobStore
from common.constants import DEFAULT_DIGEST_ALGORITHM, DEFAULT_POOL_CAPACITY
from common.logging_config import get_logger
from common.types import ChunkRange, UploadStats
from engine.chunk_planner import plan_chunks
from engine.content_addresser import blob_key, compute_digest, digest_length, is_zero
from engine.exceptions import ShortReadError
from engine.manifest import ChunkDescriptor, FileManifest, build_manifest
from engine.task_pool import BoundedTaskPool

logger = get_logger(__name__)


class DedupUploader:
    """
    Splits a file into fixed-size chunks and uploads every non-zero chunk
    not already present in the store.

    The store, the pool and the counters belong to the instance; nothing
    is shared between uploaders.
    """

    def __init__(
        self,
        store: BlobStore,
        pool_capacity: int = DEFAULT_POOL_CAPACITY,
        algorithm: str = DEFAULT_DIGEST_ALGORITHM,
        blobs_location: str = "",
    ):
        digest_length(algorithm)  # rejects unsupported algorithms early
        self.store = store
        self.pool_capacity = pool_capacity
        self.algorithm = algorithm
        self.blobs_location = blobs_location
        self.stats = UploadStats()
        self._stats_lock = threading.Lock()

    def upload_file(self, path, max_chunk_size: int) -> FileManifest:
        """
        Back up the file at path.

        Args:
            path: Source file
            max_chunk_size: Length of every chunk but the last

        Returns:
            Manifest describing the file, chunks in offset order

        Raises:
            InvalidInputError: If the file is empty or max_chunk_size is not positive
            ShortReadError: If the file shrank while being read
            OSError: If the file cannot be opened or read
            BlobStoreError: If any upload task failed (the first failure)
        """
        self.stats = UploadStats()
        file_name = os.fspath(path)

        with open(file_name, "rb") as source:
            total_size = os.fstat(source.fileno()).st_size
            ranges = plan_chunks(total_size, max_chunk_size)
            logger.info(f"Splitting {file_name} ({total_size} bytes) into {len(ranges)} chunks")

            with BoundedTaskPool(self.pool_capacity, name="upload") as pool:
                chunks = self._submit_chunks(source, ranges, pool)
                error = pool.wait()

        if error is not None:
            logger.error(f"Backup of {file_name} failed: {error}")
            raise error

        logger.info(
            f"Backup of {file_name} complete: {self.stats.chunks} chunks, "
            f"{self.stats.empty} empty, {self.stats.uploaded} uploaded, "
            f"{self.stats.deduplicated} already stored"
        )
        return build_manifest(
            file_name=file_name,
            total_size=total_size,
            blobs_location=self.blobs_location,
            algorithm=self.algorithm,
            chunks=chunks,
        )

    def _submit_chunks(
        self,
        source: BinaryIO,
        ranges: List[ChunkRange],
        pool: BoundedTaskPool,
    ) -> List[ChunkDescriptor]:
        chunks = []
        submitted: Set[str] = set()

        for chunk_range in ranges:
            if pool.should_stop():
                logger.warning(f"Stopping at chunk {chunk_range.index}: an upload already failed")
                break

            data = self._read_range(source, chunk_range)
            self.stats.chunks += 1

            if is_zero(data):
                logger.debug(f"Chunk {chunk_range.index} is empty")
                self.stats.empty += 1
                chunks.append(ChunkDescriptor(start=chunk_range.start, end=chunk_range.end, is_empty=True))
                continue

            digest = compute_digest(data, self.algorithm)
            chunks.append(ChunkDescriptor(start=chunk_range.start, end=chunk_range.end, content_digest=digest))

            if digest in submitted:
                logger.debug(f"Chunk {chunk_range.index} repeats an earlier chunk ({digest})")
                self._count_dedup()
                continue
            submitted.add(digest)
            pool.submit(self._store_blob, blob_key(digest), data)

        return chunks

    @staticmethod
    def _read_range(source: BinaryIO, chunk_range: ChunkRange) -> bytes:
        source.seek(chunk_range.start)
        data = source.read(chunk_range.length)
        if len(data) != chunk_range.length:
            where = "final chunk" if chunk_range.is_final else f"chunk {chunk_range.index}"
            raise ShortReadError(
                f"Read {len(data)} of {chunk_range.length} bytes for {where} at offset {chunk_range.start}"
            )
        return data

    def _store_blob(self, key: str, data: bytes) -> None:
        if self.store.exists(key):
            logger.info(f"Blob already exists: {key}")
            self._count_dedup()
            return

        locator = self.store.write(key, data)
        logger.info(f"Wrote blob: {locator}")
        with self._stats_lock:
            self.stats.uploaded += 1
            self.stats.bytes_uploaded += len(data)

    def _count_dedup(self) -> None:
        with self._stats_lock:
            self.stats.deduplicated += 1
