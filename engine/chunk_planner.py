"""Splits a file of known size into fixed-size inclusive byte ranges."""

from typing import List

from common.types import ChunkRange
from engine.exceptions import InvalidInputError


def chunk_count(total_size: int, max_chunk_size: int) -> int:
    """Number of ranges plan_chunks produces, i.e. ceil(total / max)."""
    return -(-total_size // max_chunk_size)


def plan_chunks(total_size: int, max_chunk_size: int) -> List[ChunkRange]:
    """
    Partition [0, total_size) into ranges of max_chunk_size bytes.

    Only the final range may be shorter.

    Args:
        total_size: File size in bytes
        max_chunk_size: Length of every range but the last

    Returns:
        Ranges in ascending offset order

    Raises:
        InvalidInputError: If either size is not positive
    """
    if total_size <= 0:
        raise InvalidInputError(f"Cannot plan chunks for a file of size {total_size}")
    if max_chunk_size <= 0:
        raise InvalidInputError(f"Chunk size must be positive, got {max_chunk_size}")

    count = chunk_count(total_size, max_chunk_size)
    ranges = []
    for index in range(count):
        start = index * max_chunk_size
        end = min(start + max_chunk_size, total_size) - 1
        ranges.append(ChunkRange(index=index, start=start, end=end, is_final=index == count - 1))
    return ranges
