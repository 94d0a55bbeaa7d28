# pyright: standard

"""rsync-backup-ng: rsync_backup_ng/endpoint/common.py
Common functionality among endpoints.

Every filesystem operation on a destination is expressed as one argument
vector built here. Subclasses only decide how that vector is executed, so
local and remote destinations always run the very same commands.
"""

from rsync_backup_ng.__logger__ import logger
from rsync_backup_ng.__util__ import (
    DestinationExistsError,
    LocalIOError,
    PreconditionError,
)
from rsync_backup_ng.config import Config

from .target import Target


class Endpoint:
    """Generic structure of a command endpoint."""

    _failure_class = LocalIOError

    def __init__(self, target: Target, config=None) -> None:
        """
        Initialize the Endpoint.

        Args:
            target: The destination directory this endpoint operates in.
            config (Config): Run configuration; defaults are used if omitted.
        """
        self.target = target
        self.config = config or Config()

    def child(self, name) -> Target:
        """Return the target for ``name`` inside the destination directory."""
        return self.target.joinpath(name)

    def prepare(self) -> None:
        """Public access to _prepare, which is called after creating an endpoint."""
        logger.debug("Preparing endpoint %r ...", self)
        self._prepare()

    def close(self) -> None:
        """Release resources held by the endpoint."""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Capability set

    def path_exists(self, target: Target) -> bool:
        return self._test("-e", target)

    def directory_exists(self, target: Target) -> bool:
        return self._test("-d", target)

    def symlink_exists(self, target: Target) -> bool:
        return self._test("-L", target)

    def remove(self, target: Target, recursive=False) -> None:
        """Remove ``target``; a missing path is not an error."""
        cmd = self._build_remove_cmd(self._arg(target), recursive=recursive)
        self._run(f"remove {target}", cmd)

    def rename(self, source: Target, destination: Target, replace=False) -> None:
        """Rename ``source`` to ``destination`` on the same filesystem.

        Without ``replace`` an existing destination (even a dangling
        symlink) raises DestinationExistsError. With ``replace`` the
        destination is overwritten in a single rename(2), which relies on
        GNU ``mv -T``.
        """
        source_arg = self._arg(source)
        destination_arg = self._arg(destination)
        if not replace and (
            self.path_exists(destination) or self.symlink_exists(destination)
        ):
            raise DestinationExistsError(f"Destination already exists: {destination}")
        cmd = self._build_rename_cmd(source_arg, destination_arg, replace=replace)
        self._run(f"rename {source} -> {destination}", cmd)

    def create_symlink(self, link: Target, points_to: str) -> None:
        """Create symlink ``link`` whose value is ``points_to`` verbatim."""
        cmd = self._build_symlink_cmd(str(points_to), self._arg(link))
        self._run(f"symlink {link} -> {points_to}", cmd)

    # The following methods may be implemented by endpoints unless the
    # default behaviour is wanted.

    def __repr__(self) -> str:
        return f"{self.target}"

    def get_id(self) -> str:
        """Return an id string to identify this endpoint over multiple runs."""
        return f"unknown://{self.target.path}"

    def _prepare(self) -> None:
        """Called after endpoint creation for additional checks."""
        if not self.directory_exists(self.target):
            raise PreconditionError(
                f"Destination does not exist or is not a directory: {self.target}"
            )

    def _exec_command(self, command):
        """Execute an argument vector and return its CompletedProcess."""
        raise NotImplementedError

    @staticmethod
    def _build_test_cmd(flag, path):
        return ["test", flag, path]

    @staticmethod
    def _build_remove_cmd(path, recursive=False):
        return ["rm", "-rf" if recursive else "-f", "--", path]

    @staticmethod
    def _build_rename_cmd(source, destination, replace=False):
        if replace:
            return ["mv", "-f", "-T", "--", source, destination]
        return ["mv", "--", source, destination]

    @staticmethod
    def _build_symlink_cmd(points_to, link):
        return ["ln", "-s", "-n", "--", points_to, link]

    def _arg(self, target: Target) -> str:
        """Render ``target`` as a command argument for this endpoint."""
        if not self.target.same_host(target):
            raise ValueError(f"{target} is not on the same host as {self.target}")
        path = target.path
        # test(1) has no "--", keep paths from looking like options
        if path.startswith("-"):
            path = f"./{path}"
        return path

    def _test(self, flag, target: Target) -> bool:
        cmd = self._build_test_cmd(flag, self._arg(target))
        result = self._exec_command(cmd)
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise self._failure_class(
            f"test {flag} {target}", cmd, result.returncode, result.stderr
        )

    def _run(self, operation, cmd) -> None:
        logger.debug("%s: %s", operation, cmd)
        result = self._exec_command(cmd)
        if result.returncode != 0:
            raise self._failure_class(operation, cmd, result.returncode, result.stderr)
