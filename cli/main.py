"""CLI entry point."""

import sys
import uuid
from typing import Optional

from cli.commands import handle_backup, handle_restore
from cli.config import Config, ConfigError, DEFAULT_CONFIG_PATH
from cli.constants import HELP_TEXT
from cli.models import BackupCommand, RestoreCommand
from cli.parser import ParseError, parse_args
from common.constants import LOGGER_NAMES
from common.logging_config import get_logger, setup_logging
from engine.exceptions import ChunkVaultError


def main(argv: Optional[list[str]] = None) -> int:
    """
    Entry point for CLI.

    Returns:
        Process exit code: 0 on success, 1 on any error
    """
    if argv is None:
        argv = sys.argv[1:]

    try:
        options, cmd = parse_args(argv)
    except ParseError as e:
        print(f"Error: {e}\n\n{HELP_TEXT}", file=sys.stderr)
        return 1

    run_id = uuid.uuid4().hex[:8]
    log_level = 'DEBUG' if options.debug else None
    for name in LOGGER_NAMES:
        setup_logging(name, log_level=log_level, correlation_id=run_id)
    logger = get_logger("cli")
    if options.debug:
        logger.info("Debug logging enabled")

    if not isinstance(cmd, (BackupCommand, RestoreCommand)):
        print(HELP_TEXT)
        return 0

    logger.info(f"Starting {cmd.command}")
    try:
        config = Config(options.config_path or DEFAULT_CONFIG_PATH)
        if isinstance(cmd, BackupCommand):
            output = handle_backup(cmd, config)
        else:
            output = handle_restore(cmd, config)
    except (ChunkVaultError, ConfigError, OSError) as e:
        logger.error(f"{cmd.command} failed: {type(e).__name__}: {e}")
        return 1
    except Exception as e:
        logger.error(f"{cmd.command} failed unexpectedly: {e}", exc_info=True)
        return 1

    print(output)
    logger.info(f"{cmd.command} finished")
    return 0


if __name__ == "__main__":
    sys.exit(main())
