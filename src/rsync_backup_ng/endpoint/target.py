# pyright: standard

"""rsync-backup-ng: rsync_backup_ng/endpoint/target.py
Parse destination strings into Target descriptors.
"""

import os
import urllib.parse
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import PurePosixPath
from typing import Optional

from ..__util__ import InvalidTargetKind, TargetParseError


class TargetKind(Enum):
    """Where a target lives."""

    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class Target:
    """A path on the local machine or on a remote host.

    Attributes:
        kind: local or remote
        path: Filesystem path on the target's host
        host: Hostname or ssh config alias (remote only)
        user: Login name, None lets ssh decide (remote only)
        port: SSH port, None lets ssh decide (remote only)
    """

    kind: TargetKind
    path: str
    host: Optional[str] = None
    user: Optional[str] = None
    port: Optional[int] = None

    @classmethod
    def local(cls, path) -> "Target":
        return cls(TargetKind.LOCAL, str(path))

    @classmethod
    def remote(cls, host, path, user=None, port=None) -> "Target":
        return cls(TargetKind.REMOTE, str(path), host=host, user=user, port=port)

    @property
    def is_remote(self) -> bool:
        return self.kind is TargetKind.REMOTE

    @property
    def name(self) -> str:
        """Last path component."""
        return PurePosixPath(self.path).name

    @property
    def login(self) -> str:
        """``[user@]host`` as understood by ssh and rsync."""
        if not self.is_remote:
            raise ValueError(f"{self} is not a remote target")
        return f"{self.user}@{self.host}" if self.user else str(self.host)

    def joinpath(self, name) -> "Target":
        """Return a target for ``name`` inside this one, on the same host."""
        return replace(self, path=str(PurePosixPath(self.path) / name))

    def with_port(self, port) -> "Target":
        return replace(self, port=port)

    def same_host(self, other: "Target") -> bool:
        return (self.kind, self.host, self.user, self.port) == (
            other.kind,
            other.host,
            other.user,
            other.port,
        )

    def __str__(self) -> str:
        if self.is_remote:
            return f"{self.login}:{self.path}"
        return self.path


def _find_separator(raw: str) -> int:
    """Index of the first colon not escaped with a backslash, or -1."""
    escaped = False
    for i, char in enumerate(raw):
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == ":":
            return i
    return -1


def _split_login(login: str, raw: str) -> tuple[Optional[str], str]:
    user, sep, host = login.rpartition("@")
    if not host:
        raise InvalidTargetKind(f"Missing host in remote destination: {raw!r}")
    if sep and not user:
        raise TargetParseError(f"Empty user name in remote destination: {raw!r}")
    return (user or None), host


def _remote_path(path: str) -> str:
    """Path on the remote host; "~/x" becomes "x" relative to the login dir."""
    if path == "~":
        return "."
    if path.startswith("~/"):
        path = path[2:].lstrip("/")
    return path or "."


def _parse_url(raw: str) -> Target:
    parsed = urllib.parse.urlparse(raw)
    if not parsed.hostname:
        raise InvalidTargetKind(f"No hostname for SSH specified: {raw!r}")
    try:
        port = parsed.port
    except ValueError as e:
        raise TargetParseError(f"Invalid port in {raw!r}: {e}") from e
    path = urllib.parse.unquote(parsed.path) or "."
    user = urllib.parse.unquote(parsed.username) if parsed.username else None
    return Target.remote(parsed.hostname, path, user=user, port=port)


def parse_target(raw: str) -> Target:
    """Parse a destination string.

    Accepted forms:
        /local/path, ./rel, ../rel, ~/path, rel/path  -> local
        [user@]host:path, alias:path                  -> remote
        ssh://[user@]host[:port]/path                 -> remote

    The remote separator is the first unescaped colon; everything after it,
    colons included, is the path. A colon after a "/" belongs to a local
    path. A leading "~/" on a remote path is dropped, since remote commands
    and rsync both start in the login directory. Parsing never touches the
    network or the filesystem.
    """
    if not raw:
        raise TargetParseError("Empty destination")

    if raw.startswith("ssh://"):
        return _parse_url(raw)

    if not raw.startswith(("/", "./", "../", "~")):
        index = _find_separator(raw)
        if index == 0:
            raise InvalidTargetKind(f"Missing host in remote destination: {raw!r}")
        if index > 0 and "/" not in raw[:index]:
            user, host = _split_login(raw[:index], raw)
            return Target.remote(host, _remote_path(raw[index + 1 :]), user=user)

    path = raw.replace("\\:", ":")
    return Target.local(os.path.expanduser(path))
