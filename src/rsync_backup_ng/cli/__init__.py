"""Command line interface for rsync-backup-ng."""

from .dispatcher import create_parser, main

__all__ = ["create_parser", "main"]
