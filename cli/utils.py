"""Utility functions for CLI output."""

from common.types import RestoreReport
from cli.constants import GREEN, RESET, YELLOW


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"


def format_restore_report(path: str, total_size: int, report: RestoreReport, color: bool = False) -> str:
    """
    Summarize a restore run, one extra line per mismatched chunk.
    """
    ok, warn, reset = (GREEN, YELLOW, RESET) if color else ("", "", "")
    lines = [
        f"{ok}Restored {path}{reset} ({format_file_size(total_size)}): "
        f"{report.chunks} chunks, {report.consistent} consistent, "
        f"{report.fetched} fetched, {report.zeroed} zeroed"
    ]
    for mismatch in report.mismatches:
        expected = mismatch.expected or "zeros"
        lines.append(
            f"{warn}Mismatch{reset} at {mismatch.start}-{mismatch.end}: "
            f"expected {expected}, found {mismatch.actual}"
        )
    return "\n".join(lines)
