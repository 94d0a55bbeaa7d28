"""rsync invocation: argument construction and execution.

``build_rsync_args`` is pure; ``RsyncTransfer`` binds it to a configuration
and a destination endpoint and runs the resulting command.
"""

import logging
import shutil
import subprocess
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

from .. import __util__
from ..config import Config
from ..endpoint import Endpoint, SSHEndpoint, Target

logger = logging.getLogger(__name__)

BASE_ARGS = (
    "--recursive",
    "--links",
    "--perms",
    "--times",
    "--group",
    "--owner",
    "--delete",
    "--delete-excluded",
)


class BackupType(Enum):
    """Kind of backup, decided by the presence of the latest pointer."""

    FULL = "full"
    INCREMENTAL = "incremental"

    def __str__(self) -> str:
        return self.value


def _render_destination(target: Target) -> str:
    path = target.path.rstrip("/") + "/"
    if target.is_remote:
        return f"{target.login}:{path}"
    return path


def build_rsync_args(
    backup_type: BackupType,
    source,
    staging: Target,
    latest: Target,
    *,
    partial_dir: str = ".rsync-partial",
    extra_args: Sequence[str] = (),
    remote_shell: Optional[str] = None,
    exclude_from: Optional[str] = None,
    verbose: bool = False,
) -> list[str]:
    """Build the rsync arguments (without the binary) for one backup run.

    Args:
        backup_type: FULL or INCREMENTAL
        source: Local source directory; its contents are copied
        staging: Staging directory on the destination
        latest: Latest pointer on the destination, the hard-link base of
            incremental runs
        partial_dir: Partial-transfer cache, relative to the staging dir
        extra_args: Caller arguments, appended last so they win
        remote_shell: ssh command line for a remote staging target
        exclude_from: File with exclude patterns
        verbose: Let rsync report what it transfers

    Returns:
        The argument list
    """
    if staging.is_remote and not remote_shell:
        raise ValueError("A remote staging target needs a remote shell")

    args = list(BASE_ARGS)
    args.append(f"--partial-dir={partial_dir}")
    if backup_type is BackupType.INCREMENTAL:
        # Relative to the staging directory, so it resolves on any host
        args.append(f"--link-dest=../{latest.name}")
    if exclude_from:
        args.append(f"--exclude-from={exclude_from}")
    if verbose:
        args += ["--verbose", "--itemize-changes"]
    if staging.is_remote:
        args += ["-e", remote_shell]
    args += list(extra_args)
    args += [str(source).rstrip("/") + "/", _render_destination(staging)]
    return args


class RsyncTransfer:
    """Run rsync into a destination endpoint's staging directory."""

    def __init__(self, config: Optional[Config] = None) -> None:
        self.config = config or Config()

    @property
    def binary(self) -> str:
        return self.config.rsync.binary

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    def build_command(
        self,
        backup_type: BackupType,
        source,
        endpoint: Endpoint,
        staging: Target,
        latest: Target,
        extra_args: Sequence[str] = (),
    ) -> list[str]:
        remote_shell = None
        if isinstance(endpoint, SSHEndpoint):
            remote_shell = endpoint.remote_shell()

        exclude_from = self.config.rsync.exclude_from
        if exclude_from:
            exclude_from = str(Path(exclude_from).expanduser())

        args = build_rsync_args(
            backup_type,
            source,
            staging,
            latest,
            partial_dir=self.config.rsync.partial_dir,
            extra_args=[*self.config.rsync.args, *extra_args],
            remote_shell=remote_shell,
            exclude_from=exclude_from,
            verbose=self.config.rsync_verbose,
        )
        return [self.binary, *args]

    def run(self, command: Sequence[str]) -> None:
        """Run rsync; output goes straight to the terminal.

        Raises:
            TransferError: rsync is missing or exited with a nonzero status
        """
        logger.debug("Running rsync: %s", command)
        try:
            # No timeout, transfers may legitimately run for hours
            result = subprocess.run(list(command), check=False)
        except OSError as e:
            raise __util__.TransferError(f"Could not run {command[0]}: {e}") from e
        if result.returncode != 0:
            raise __util__.TransferError(
                f"rsync exited with status {result.returncode}", result.returncode
            )
