"""CLI entry point: argument parsing and dispatch."""

import argparse
import sys

from .. import __version__
from .backup import execute_backup
from .common import add_ssh_args, create_global_parser

EPILOG = """\
Destinations:
  /path/to/backups                local directory
  [user@]host:/path/to/backups    remote directory over ssh (aliases work)
  ssh://[user@]host[:port]/path   remote directory with explicit port

Arguments after "--" are passed to rsync unchanged, after all defaults:
  rsync-backup-ng /home /mnt/backup -- --exclude=.cache
"""


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="rsync-backup-ng",
        parents=[create_global_parser()],
        description="Incremental, atomic and resumable snapshot backups with rsync",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        help="Path to configuration file",
    )

    add_ssh_args(parser)

    group = parser.add_argument_group("Backup options")
    group.add_argument(
        "--rsync-path",
        metavar="BINARY",
        help="rsync executable to run (default: rsync)",
    )
    group.add_argument(
        "--exclude-from",
        metavar="FILE",
        help="Read rsync exclude patterns from FILE",
    )
    group.add_argument(
        "--atomic-pointer",
        action="store_true",
        default=None,
        help="Replace the 'current' link with a single rename "
        "(needs GNU coreutils on the destination)",
    )
    group.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without making changes",
    )
    group.add_argument(
        "--no-lock",
        action="store_true",
        help="Do not guard against concurrent runs on the same destination",
    )

    parser.add_argument("source", help="Local directory to back up")
    parser.add_argument("destination", help="Backup directory (local or remote)")
    parser.add_argument(
        "rsync_args",
        nargs="*",
        metavar="-- RSYNC_ARGS",
        help="Extra arguments for rsync",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and run one backup.

    Returns:
        Exit code (argparse itself exits with 2 on usage errors)
    """
    parser = create_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    return execute_backup(args)
