"""Shared CLI utilities and argument parsers."""

import argparse


def create_global_parser() -> argparse.ArgumentParser:
    """Create a parser with global options that can be used as a parent."""
    parser = argparse.ArgumentParser(add_help=False)
    add_verbosity_args(parser)
    return parser


def add_verbosity_args(parser: argparse.ArgumentParser) -> None:
    """Add verbosity-related arguments to a parser."""
    group = parser.add_argument_group("Output options")
    group.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output (rsync lists transferred files)",
    )
    group.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )
    group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output",
    )
    group.add_argument(
        "--log-file",
        metavar="FILE",
        help="Also write log messages to FILE",
    )


def port_number(value: str) -> int:
    """argparse type for TCP ports."""
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}")
    if not 0 < port < 65536:
        raise argparse.ArgumentTypeError(f"port out of range: {port}")
    return port


def add_ssh_args(parser: argparse.ArgumentParser) -> None:
    """Add options for remote destinations."""
    group = parser.add_argument_group("SSH options")
    group.add_argument(
        "-p",
        "--port",
        type=port_number,
        metavar="PORT",
        help="SSH port of a remote destination",
    )
    group.add_argument(
        "-i",
        "--identity-file",
        metavar="FILE",
        help="SSH private key for a remote destination",
    )


def get_log_level(args) -> str:
    """Determine log level from parsed arguments.

    Args:
        args: Parsed command line arguments, or any object with
            ``debug``/``quiet``/``verbose`` attributes

    Returns:
        Log level string (DEBUG, INFO, WARNING, ERROR)
    """
    if getattr(args, "debug", False):
        return "DEBUG"
    elif getattr(args, "quiet", False):
        return "WARNING"
    elif getattr(args, "verbose", False):
        return "DEBUG"
    else:
        return "INFO"
