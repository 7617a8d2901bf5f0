"""Command parser for CLI arguments."""

from dataclasses import dataclass
from typing import Optional

from cli.constants import COMMANDS, DEFAULT_COMMAND
from cli.models import BackupCommand, CommandRequest, HelpCommand, RestoreCommand
from engine.manifest import MANIFEST_FORMATS


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


@dataclass(frozen=True)
class GlobalOptions:
    """Options accepted before or after the command."""

    debug: bool = False
    config_path: Optional[str] = None


def parse_args(argv: list[str]) -> tuple[GlobalOptions, CommandRequest]:
    """Parse command line arguments into global options and a command.

    Args:
        argv: Arguments without the program name

    Returns:
        (GlobalOptions, CommandRequest)

    Raises:
        ParseError: If arguments are invalid
    """
    debug = False
    config_path = None
    rest = []

    args = iter(argv)
    for arg in args:
        if arg == "--debug":
            debug = True
        elif arg == "--config":
            config_path = _option_value(arg, args)
        elif arg in ("-h", "--help"):
            return GlobalOptions(debug, config_path), HelpCommand()
        else:
            rest.append(arg)

    options = GlobalOptions(debug=debug, config_path=config_path)

    if not rest or rest[0].startswith("--"):
        command_name, command_args = DEFAULT_COMMAND, rest
    else:
        command_name, command_args = rest[0], rest[1:]

    if command_name == "backup":
        return options, _parse_backup(command_args)
    elif command_name == "restore":
        return options, _parse_restore(command_args)
    elif command_name == "help":
        return options, HelpCommand()
    else:
        raise ParseError(f"Unknown command: {command_name} (expected one of {', '.join(COMMANDS)})")


def _option_value(name: str, args) -> str:
    value = next(args, None)
    if value is None or value.startswith("--"):
        raise ParseError(f"{name} requires a value")
    return value


def _split_positional(args: list[str], flags: set[str], valued: set[str]) -> tuple[list[str], dict]:
    """Separate positional arguments from --options."""
    positional = []
    options: dict = {}
    it = iter(args)
    for arg in it:
        if arg in flags:
            options[arg] = True
        elif arg in valued:
            options[arg] = _option_value(arg, it)
        elif arg.startswith("--"):
            raise ParseError(f"Unknown option: {arg}")
        else:
            positional.append(arg)
    return positional, options


def _parse_backup(args: list[str]) -> BackupCommand:
    """Parse 'backup [fileName] [--format json|yaml]' command."""
    positional, options = _split_positional(args, flags=set(), valued={"--format"})
    if len(positional) > 1:
        raise ParseError("backup takes at most one file name")

    output_format = options.get("--format")
    if output_format is not None and output_format not in MANIFEST_FORMATS:
        raise ParseError(f"--format must be one of {', '.join(MANIFEST_FORMATS)}")

    if positional:
        return BackupCommand(file_name=positional[0], output_format=output_format)
    return BackupCommand(output_format=output_format)


def _parse_restore(args: list[str]) -> RestoreCommand:
    """Parse 'restore [manifest] [--repair] [--target PATH]' command."""
    positional, options = _split_positional(args, flags={"--repair"}, valued={"--target"})
    if len(positional) > 1:
        raise ParseError("restore takes at most one manifest path")

    repair = options.get("--repair", False)
    target = options.get("--target")
    if positional:
        return RestoreCommand(manifest_path=positional[0], repair=repair, target=target)
    return RestoreCommand(repair=repair, target=target)
