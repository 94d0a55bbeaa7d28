# pyright: standard

"""rsync-backup-ng: rsync_backup_ng/__util__.py
Common utility code shared among the modules.
"""

import logging
import subprocess
import time
from datetime import datetime

logger = logging.getLogger(__name__)

SNAPSHOT_TIME_FORMAT = "%Y-%m-%d__%H-%M-%S"
IN_PROGRESS_NAME = "in-progress"
LATEST_NAME = "current"


class AbortError(Exception):
    """Exception where rsync-backup-ng should abort."""


class PreconditionError(AbortError):
    """A requirement for starting a backup is not met."""


class TargetParseError(AbortError, ValueError):
    """A destination string could not be parsed."""


class InvalidTargetKind(TargetParseError):
    """A remote destination string has an empty host portion."""


class CommandError(AbortError):
    """A command returned a failing exit status."""

    def __init__(self, operation, command, returncode=None, stderr=""):
        self.operation = operation
        self.command = list(command)
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        message = f"{operation} failed"
        if returncode is not None:
            message += f" (exit status {returncode})"
        if self.stderr:
            message += f": {self.stderr}"
        super().__init__(message)


class LocalIOError(CommandError):
    """A filesystem operation on a local destination failed."""


class RemoteExecutionError(CommandError):
    """A command on a remote destination failed."""


class DestinationExistsError(AbortError):
    """A rename would overwrite an existing path."""


class TransferError(AbortError):
    """rsync did not complete successfully."""

    def __init__(self, message, returncode=None):
        self.returncode = returncode
        super().__init__(message)


class PublishError(AbortError):
    """The staging directory could not be renamed to its snapshot name."""


class PointerUpdateError(AbortError):
    """The latest pointer could not be replaced."""


def date_to_str(timestamp=None, fmt=None):
    """Format a datetime (default: now) as a snapshot name."""
    if fmt is None:
        fmt = SNAPSHOT_TIME_FORMAT
    if timestamp is None:
        timestamp = datetime.now()
    return timestamp.strftime(fmt)


def str_to_date(name, fmt=None):
    """Parse a snapshot name back into a datetime."""
    if fmt is None:
        fmt = SNAPSHOT_TIME_FORMAT
    return datetime.strptime(name, fmt)


def new_snapshot_name(now=None):
    """Return the name for a snapshot captured at ``now``."""
    return date_to_str(now)


def is_snapshot_name(name):
    """Check whether ``name`` is a snapshot name."""
    try:
        str_to_date(name)
    except ValueError:
        return False
    return True


def exec_subprocess(command, **kwargs):
    """Run a command and return its CompletedProcess.

    Output is captured as text unless the caller passes its own streams.
    A missing executable raises FileNotFoundError like ``subprocess.run``.
    """
    if "stdout" not in kwargs and "stderr" not in kwargs:
        kwargs.setdefault("capture_output", True)
    kwargs.setdefault("text", True)
    kwargs.setdefault("check", False)
    logger.debug("Executing: %s", command)
    start = time.monotonic()
    result = subprocess.run(command, **kwargs)
    logger.debug(
        "Exit status %d after %.2fs: %s",
        result.returncode,
        time.monotonic() - start,
        command[0],
    )
    return result


def log_heading(caption):
    """Formatted heading for logging output sections."""
    return f"{f'--[ {caption} ]':-<50}"
