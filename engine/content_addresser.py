"""Digest calculation, verification and zero-chunk detection helpers."""

import hashlib

from common.constants import BLOB_SUFFIX, DEFAULT_DIGEST_ALGORITHM
from engine.exceptions import InvalidInputError

SUPPORTED_ALGORITHMS = {
    "sha1": hashlib.sha1,
    "sha256": hashlib.sha256,
    "blake2b": hashlib.blake2b,
}


def _hasher(algorithm: str):
    try:
        return SUPPORTED_ALGORITHMS[algorithm]()
    except KeyError:
        raise InvalidInputError(
            f"Unsupported digest algorithm: {algorithm!r} "
            f"(expected one of {', '.join(sorted(SUPPORTED_ALGORITHMS))})"
        ) from None


def digest_length(algorithm: str) -> int:
    """
    Length in hex characters of a digest produced by the algorithm.

    Raises:
        InvalidInputError: If the algorithm is not supported
    """
    return _hasher(algorithm).digest_size * 2


def is_zero(data: bytes) -> bool:
    """
    Check whether every byte in data is zero.

    An empty buffer counts as zero.
    """
    return data.count(0) == len(data)


def compute_digest(data: bytes, algorithm: str = DEFAULT_DIGEST_ALGORITHM) -> str:
    """
    Compute the content digest of data.

    Args:
        data: Bytes to compute digest for
        algorithm: One of SUPPORTED_ALGORITHMS

    Returns:
        Lowercase hexadecimal digest
    """
    hasher = _hasher(algorithm)
    hasher.update(data)
    return hasher.hexdigest()


def verify_digest(data: bytes, expected: str, algorithm: str = DEFAULT_DIGEST_ALGORITHM) -> bool:
    """
    Verify that data matches an expected digest.

    Returns:
        True if digest matches, False otherwise
    """
    return compute_digest(data, algorithm) == expected


def blob_key(digest: str) -> str:
    """Store key for a chunk with the given digest."""
    return f"{digest}{BLOB_SUFFIX}"
