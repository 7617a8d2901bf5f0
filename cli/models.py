"""Command request data types for CLI."""

from dataclasses import dataclass
from typing import Literal, Optional

from common.constants import DEFAULT_FILE_NAME


@dataclass(frozen=True)
class BackupCommand:
    """Back up a file and print its manifest."""

    file_name: str = DEFAULT_FILE_NAME
    output_format: Optional[str] = None
    command: Literal["backup"] = "backup"


@dataclass(frozen=True)
class RestoreCommand:
    """Restore the file described by a manifest document."""

    manifest_path: str = DEFAULT_FILE_NAME
    repair: bool = False
    target: Optional[str] = None
    command: Literal["restore"] = "restore"


@dataclass(frozen=True)
class HelpCommand:
    """Show usage."""

    command: Literal["help"] = "help"


CommandRequest = BackupCommand | RestoreCommand | HelpCommand
