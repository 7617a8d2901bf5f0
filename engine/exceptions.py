"""Custom exception classes for the backup/restore engine."""


class ChunkVaultError(Exception):
    """
    Base exception class for all chunkvault errors.
    """
    pass


class InvalidInputError(ChunkVaultError):
    """
    Raised when a size, capacity or algorithm argument is out of range.
    """
    pass


class ShortReadError(ChunkVaultError):
    """
    Raised when the source file yields fewer bytes than a planned chunk needs.
    """
    pass


class ManifestError(ChunkVaultError):
    """
    Raised when a manifest document cannot be parsed or breaks its invariants.
    """
    pass


class BlobStoreError(ChunkVaultError):
    """
    Raised when the blob store fails an exists/read/write call.
    """
    pass


class BlobNotFoundError(BlobStoreError):
    """
    Raised when a blob requested for restore is not in the store.
    """
    pass


class ChecksumMismatchError(ChunkVaultError):
    """
    Raised when a fetched blob does not hash to the digest it was stored under.
    """
    pass
