"""Blob store contract shared by the uploader and the reconstructor."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class BlobStore(Protocol):
    """
    Content-addressed object store keyed by `<digest>.blob`.

    Implementations must be safe to call from several threads at once.
    Failures are raised as engine.exceptions.BlobStoreError.
    """

    def exists(self, key: str) -> bool:
        ...

    def read(self, key: str) -> bytes:
        """Raises BlobNotFoundError when key is absent."""
        ...

    def write(self, key: str, data: bytes) -> str:
        """Store data under key and return a locator for the written blob."""
        ...
