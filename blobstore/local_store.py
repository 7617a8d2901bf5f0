"""Blob store backed by a local (or mounted) directory."""

import os
import tempfile
from pathlib import Path

from common.constants import BLOB_SUFFIX
from common.logging_config import get_logger
from engine.exceptions import BlobNotFoundError, BlobStoreError

logger = get_logger(__name__)


class LocalBlobStore:
    """
    Stores each blob as `<root>/<key>`.

    Writes land in a temporary file first and are renamed into place, so
    an interrupted write never leaves a partial blob under its final key.
    """

    def __init__(self, root):
        self.root = Path(root).expanduser()

    def ensure_root(self) -> None:
        """Ensure the blob directory exists."""
        self.root.mkdir(parents=True, exist_ok=True)

    def get_blob_path(self, key: str) -> Path:
        """
        Get file path for a blob.

        Raises:
            BlobStoreError: If key would escape the store root
        """
        if not key or "/" in key or "\\" in key or key in (".", ".."):
            raise BlobStoreError(f"Invalid blob key: {key!r}")
        return self.root / key

    def exists(self, key: str) -> bool:
        return self.get_blob_path(key).is_file()

    def read(self, key: str) -> bytes:
        """
        Read an entire blob.

        Raises:
            BlobNotFoundError: If the blob does not exist
            BlobStoreError: If the read fails
        """
        path = self.get_blob_path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise BlobNotFoundError(f"Blob not found: {key}") from None
        except OSError as e:
            raise BlobStoreError(f"Failed to read blob {key}: {e}") from e

    def write(self, key: str, data: bytes) -> str:
        """
        Write a blob atomically.

        Returns:
            String path to written file
        """
        path = self.get_blob_path(key)
        try:
            self.ensure_root()
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".tmp-", suffix=BLOB_SUFFIX)
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise BlobStoreError(f"Failed to write blob {key}: {e}") from e
        logger.debug(f"Wrote blob {key} ({len(data)} bytes)")
        return str(path)

    def __repr__(self) -> str:
        return f"LocalBlobStore({str(self.root)!r})"
