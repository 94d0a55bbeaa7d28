# pyright: standard

"""rsync-backup-ng: rsync_backup_ng/endpoint/__init__.py."""

from ..__logger__ import logger

from .common import Endpoint
from .local import LocalEndpoint
from .ssh import SSHEndpoint
from .target import Target, TargetKind, parse_target


def choose_endpoint(spec, config=None, port=None):
    """
    Chooses a suitable endpoint based on the destination given.

    Args:
        spec (str | Target): The destination (e.g. "/mnt/backup", "host:/backup").
        config (Config): Run configuration shared by all endpoints.
        port (int): SSH port overriding the one from the destination or config.

    Returns:
        Endpoint: An instance of the appropriate `Endpoint` subclass.

    Raises:
        TargetParseError: If the destination cannot be parsed.
    """
    target = spec if isinstance(spec, Target) else parse_target(spec)

    if target.is_remote:
        if port is not None:
            target = target.with_port(port)
        endpoint = SSHEndpoint(target, config)
    else:
        if port is not None:
            logger.warning("Ignoring SSH port %s for local destination %s", port, target)
        endpoint = LocalEndpoint(target, config)

    logger.debug("Endpoint created: %r", endpoint)
    return endpoint


__all__ = [
    "Endpoint",
    "LocalEndpoint",
    "SSHEndpoint",
    "Target",
    "TargetKind",
    "choose_endpoint",
    "parse_target",
]
