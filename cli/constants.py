"""CLI constants and help text."""

COMMANDS = ["backup", "restore", "help"]

DEFAULT_COMMAND = "backup"

GREEN = "\033[32m"
YELLOW = "\033[33m"
RESET = "\033[0m"

HELP_TEXT = """Usage: chunkvault [--debug] [--config PATH] <command> [fileName] [options]

Commands:
  backup [fileName] [--format json|yaml]    Back up fileName (default file.img) and
                                            print its manifest to stdout
  restore [manifest] [--repair] [--target PATH]
                                            Rebuild the file a manifest describes
  help                                      Show this help

Options:
  --debug           Enable debug logging
  --config PATH     Config file (default ~/.chunkvault/config.json)
  --format FMT      Manifest output format for backup (json or yaml)
  --repair          Rewrite chunks whose content differs from the manifest
                    (verify-and-repair); default only reports them
  --target PATH     Restore into PATH instead of the manifest's fileName

Examples:
  chunkvault backup disk.img > disk.manifest.json
  chunkvault restore disk.manifest.json
  chunkvault restore disk.manifest.json --target /mnt/scratch/disk.img --repair"""
