# pyright: standard

"""rsync-backup-ng: rsync_backup_ng/sshutil/master.py
ssh command lines and control master handling for one remote host.
"""

import shlex
import subprocess
from pathlib import Path
from typing import Optional, List

from rsync_backup_ng.__logger__ import logger


class SSHMasterManager:
    """Build ssh command lines for one host and manage its control master.

    Multiplexing is left to OpenSSH (ControlMaster=auto): the first command
    opens the master connection and later commands reuse it until
    ``stop_master`` is called or ControlPersist expires.
    """

    def __init__(
        self,
        hostname: str,
        username: Optional[str] = None,
        port: Optional[int] = None,
        ssh_opts: Optional[List[str]] = None,
        control_dir: Optional[str] = None,
        persist: str = "60",
        identity_file: Optional[str] = None,
        batch_mode: bool = True,
        multiplex: bool = True,
    ):
        self.hostname = hostname
        # None lets ssh pick the user from ~/.ssh/config or the login name
        self.username = username
        self.port = port
        self.ssh_opts = ssh_opts or []
        self.persist = persist
        self.identity_file = identity_file
        self.batch_mode = batch_mode
        self.multiplex = multiplex

        if control_dir:
            self.control_dir = Path(control_dir).expanduser()
        else:
            self.control_dir = Path.home() / ".ssh" / "controlmasters"

        # %C is ssh's hash of (local host, remote host, port, user)
        self.control_path = self.control_dir / "cm-%C"
        self._master_used = False

    @property
    def destination(self) -> str:
        if self.username:
            return f"{self.username}@{self.hostname}"
        return self.hostname

    def ssh_options(self) -> List[str]:
        """The ssh program and its options, without the destination."""
        cmd = ["ssh"]

        opts = []
        if self.multiplex:
            opts += [
                f"ControlPath={self.control_path}",
                "ControlMaster=auto",
                f"ControlPersist={self.persist}",
            ]
        opts += [
            "ServerAliveInterval=5",
            "ServerAliveCountMax=6",
            "ConnectTimeout=30",
        ]
        if self.batch_mode:
            # No password or host key prompts; unknown hosts are recorded
            opts += ["BatchMode=yes", "StrictHostKeyChecking=accept-new"]

        for opt in opts + list(self.ssh_opts):
            cmd.extend(["-o", opt])

        if self.port:
            cmd.extend(["-p", str(self.port)])

        if self.identity_file:
            cmd.extend(["-i", str(Path(self.identity_file).expanduser())])

        return cmd

    def get_ssh_base_cmd(self) -> List[str]:
        """Get the base SSH command with all necessary options.

        Returns:
            List[str]: The base SSH command as a list of strings
        """
        self._ensure_control_dir()
        return self.ssh_options() + [self.destination]

    def remote_shell(self) -> str:
        """The ssh invocation as a single string, for ``rsync -e``."""
        self._ensure_control_dir()
        return shlex.join(self.ssh_options())

    def _ensure_control_dir(self) -> None:
        if not self.multiplex or self._master_used:
            return
        self.control_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        self._master_used = True

    def stop_master(self) -> bool:
        if not (self.multiplex and self._master_used):
            return True

        cmd = self.ssh_options() + ["-O", "exit", self.destination]
        try:
            subprocess.run(cmd, check=True, capture_output=True)
        except (OSError, subprocess.CalledProcessError) as e:
            # No master running (e.g. it already timed out)
            logger.debug("Control master for %s not stopped: %s", self.destination, e)
            return False
        finally:
            self._master_used = False
        return True
