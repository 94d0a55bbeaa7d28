# pyright: standard

"""rsync-backup-ng: rsync_backup_ng/endpoint/local.py
Run endpoint commands on the local machine.
"""

from pathlib import Path

from rsync_backup_ng import __util__
from rsync_backup_ng.__logger__ import logger

from .common import Endpoint
from .target import Target


class LocalEndpoint(Endpoint):
    """Create a local command endpoint."""

    def __init__(self, target: Target, config=None) -> None:
        """
        Initialize the LocalEndpoint.

        Args:
            target: Local destination directory, resolved to an absolute path.
            config (Config): Run configuration.
        """
        if target.is_remote:
            raise ValueError(f"LocalEndpoint needs a local target, got {target}")
        # Resolve paths
        super().__init__(Target.local(Path(target.path).expanduser().resolve()), config)

    def get_id(self):
        """Return an id string to identify this endpoint over multiple runs."""
        return str(self.target.path)

    def _exec_command(self, command):
        # Executed directly, never through a shell
        try:
            return __util__.exec_subprocess(command)
        except OSError as e:
            logger.error("Could not execute %s: %s", command[0], e)
            raise __util__.LocalIOError(
                f"execute {command[0]}", command, stderr=str(e)
            ) from e
