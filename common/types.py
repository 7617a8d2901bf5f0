"""Shared data type definitions (ChunkRange, UploadStats, RestoreReport, etc.)."""

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class ChunkRange:
    """
    One planned byte range of a file, offsets inclusive.
    """
    index: int
    start: int
    end: int
    is_final: bool

    @property
    def length(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class ChunkMismatch:
    """
    A chunk whose live bytes do not match the digest recorded in the manifest.
    """
    start: int
    end: int
    expected: str
    actual: str


@dataclass
class UploadStats:
    chunks: int = 0
    empty: int = 0
    uploaded: int = 0
    deduplicated: int = 0
    bytes_uploaded: int = 0


@dataclass
class RestoreReport:
    """
    Outcome of one restore run.
    """
    chunks: int = 0
    consistent: int = 0
    fetched: int = 0
    zeroed: int = 0
    mismatches: List[ChunkMismatch] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.mismatches
