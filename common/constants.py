"""Project-wide constants (chunk size, pool capacity, blob naming)."""

CHUNK_SIZE_BYTES: int = 250 * 1024 * 1024  # 250 MiB default chunk size
DEFAULT_POOL_CAPACITY: int = 60

BLOB_SUFFIX: str = ".blob"
DEFAULT_DIGEST_ALGORITHM: str = "sha1"
DEFAULT_BLOBS_LOCATION: str = "/here"
DEFAULT_FILE_NAME: str = "file.img"

# Loggers configured by setup_logging, one per top-level package
LOGGER_NAMES: tuple[str, ...] = ("cli", "engine", "blobstore")

ZERO_FILL_BLOCK_SIZE: int = 4 * 1024 * 1024
