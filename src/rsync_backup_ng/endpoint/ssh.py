# pyright: strict

"""rsync-backup-ng: SSH Endpoint for managing remote operations.

This module provides the SSHEndpoint class, which runs the shared endpoint
commands on a remote host through SSHMasterManager.

The argument vector is quoted with shlex exactly once before it is handed
to ssh, because the remote sshd always passes the command to the login
shell as a single string.
"""

import shlex
from subprocess import CompletedProcess
from typing import Any, List, Optional

from rsync_backup_ng import __util__
from rsync_backup_ng.__logger__ import logger
from rsync_backup_ng.config import Config
from rsync_backup_ng.sshutil.master import SSHMasterManager

from .common import Endpoint
from .target import Target


class SSHEndpoint(Endpoint):
    """SSH-based endpoint for remote operations.

    The login user and port come from the target (``user@host:path`` or
    ``ssh://user@host:port/path``). When they are absent ssh resolves them
    itself, so aliases from ~/.ssh/config work unchanged.
    """

    _failure_class = __util__.RemoteExecutionError

    def __init__(self, target: Target, config: Optional[Config] = None) -> None:
        """Initialize the SSH endpoint.

        Args:
            target: Remote destination directory
            config: Run configuration
        """
        if not target.is_remote or not target.host:
            raise ValueError(f"SSHEndpoint needs a remote target, got {target}")
        super().__init__(target, config)

        ssh_config = self.config.ssh
        port = target.port if target.port is not None else ssh_config.port
        logger.debug(
            "Creating SSHMasterManager with: hostname=%s, username=%s, port=%s",
            target.host,
            target.user,
            port,
        )
        self.ssh_manager: SSHMasterManager = SSHMasterManager(
            hostname=target.host,
            username=target.user,
            port=port,
            ssh_opts=ssh_config.options,
            control_dir=ssh_config.control_dir,
            persist=ssh_config.control_persist,
            identity_file=ssh_config.identity_file,
            batch_mode=ssh_config.batch_mode,
            multiplex=ssh_config.multiplex,
        )

    def __repr__(self) -> str:
        return f"(SSH) {self.target}"

    def get_id(self) -> str:
        """Return a unique identifier for this SSH endpoint."""
        user_part = f"{self.target.user}@" if self.target.user else ""
        port_part = f":{self.ssh_manager.port}" if self.ssh_manager.port else ""
        return f"ssh://{user_part}{self.target.host}{port_part}{self.target.path}"

    def remote_shell(self) -> str:
        """ssh invocation for ``rsync -e``, sharing this endpoint's options."""
        return self.ssh_manager.remote_shell()

    def close(self) -> None:
        self.ssh_manager.stop_master()

    def _build_ssh_command(self, command: List[str]) -> List[str]:
        return self.ssh_manager.get_ssh_base_cmd() + ["--", shlex.join(command)]

    def _exec_command(self, command: List[Any]) -> CompletedProcess[str]:
        """Execute a command on the remote host via SSH."""
        ssh_cmd = self._build_ssh_command([str(c) for c in command])
        try:
            result = __util__.exec_subprocess(ssh_cmd)
        except OSError as e:
            logger.error("Failed to execute ssh: %s", e)
            raise __util__.RemoteExecutionError(
                f"execute ssh on {self.target.host}", ssh_cmd, stderr=str(e)
            ) from e
        if result.returncode == 255:
            # ssh's own failure status, the remote command never ran
            logger.debug("ssh to %s failed: %s", self.target.host, result.stderr)
        return result
