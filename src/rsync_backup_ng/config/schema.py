"""Configuration schema definitions using dataclasses.

Defines the structure for TOML configuration with sensible defaults.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class SSHConfig:
    """Remote transport configuration.

    Attributes:
        port: SSH port for remote destinations (None uses ssh's default)
        identity_file: Path to SSH private key
        options: Extra ``-o`` options passed to ssh (e.g. "Compression=yes")
        batch_mode: Never prompt for passwords or host keys
        multiplex: Reuse one connection through an ssh control master
        control_dir: Directory for control master sockets
        control_persist: How long an idle control master stays up
    """

    port: Optional[int] = None
    identity_file: Optional[str] = None
    options: list[str] = field(default_factory=list)
    batch_mode: bool = True
    multiplex: bool = True
    control_dir: Optional[str] = None
    control_persist: str = "60"


@dataclass
class RsyncConfig:
    """Transfer engine configuration.

    Attributes:
        binary: rsync executable name or path
        args: Extra rsync arguments placed before command line extras
        partial_dir: Directory (inside the staging dir) for partial files
        exclude_from: File with exclude patterns
    """

    binary: str = "rsync"
    args: list[str] = field(default_factory=list)
    partial_dir: str = ".rsync-partial"
    exclude_from: Optional[str] = None


@dataclass
class GlobalConfig:
    """Global configuration settings.

    Attributes:
        log_file: Path to log file (None for no file logging)
        transaction_log: Path to JSON-lines transaction log (None to disable)
        atomic_pointer: Swap the latest pointer with a rename instead of
            remove + create (needs GNU mv on the destination)
        lock: Refuse to run while another run holds the destination lock
        quiet: Suppress non-essential output
        verbose: Enable verbose output
        debug: Enable debug output
    """

    log_file: Optional[str] = None
    transaction_log: Optional[str] = None
    atomic_pointer: bool = False
    lock: bool = True
    quiet: bool = False
    verbose: bool = False
    debug: bool = False


@dataclass
class Config:
    """Root configuration object.

    Attributes:
        global_config: Global settings
        ssh: Remote transport settings
        rsync: Transfer engine settings
    """

    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    ssh: SSHConfig = field(default_factory=SSHConfig)
    rsync: RsyncConfig = field(default_factory=RsyncConfig)

    @property
    def rsync_verbose(self) -> bool:
        """Whether rsync itself should report what it transfers."""
        return self.global_config.verbose or self.global_config.debug
