"""Backup command: run one snapshot backup from the command line."""

import argparse
import getpass
import hashlib
import logging
import shlex
import tempfile
from pathlib import Path

from filelock import FileLock, Timeout

from .. import __util__, endpoint
from ..__logger__ import create_logger
from ..config import Config, ConfigError, find_config_file, load_config
from ..core import BackupOrchestrator, RsyncTransfer
from ..transaction import TransactionLog
from .common import get_log_level

logger = logging.getLogger(__name__)


def _load_config(args: argparse.Namespace) -> tuple[Config, Path | None, list[str]]:
    """Load the config file (if any) and apply command line overrides."""
    config_path = find_config_file(getattr(args, "config", None))
    if config_path is None:
        config, warnings = Config(), []
    else:
        config, warnings = load_config(config_path)

    global_config = config.global_config
    for flag in ("verbose", "quiet", "debug"):
        if getattr(args, flag, False):
            setattr(global_config, flag, True)
    if getattr(args, "log_file", None):
        global_config.log_file = args.log_file
    if getattr(args, "atomic_pointer", None):
        global_config.atomic_pointer = True
    if getattr(args, "no_lock", False):
        global_config.lock = False

    if getattr(args, "identity_file", None):
        config.ssh.identity_file = args.identity_file
    if getattr(args, "rsync_path", None):
        config.rsync.binary = args.rsync_path
    if getattr(args, "exclude_from", None):
        config.rsync.exclude_from = args.exclude_from

    return config, config_path, warnings


def _check_preconditions(source: Path, config: Config) -> None:
    if not source.is_dir():
        raise __util__.PreconditionError(
            f"Source does not exist or is not a directory: {source}"
        )
    if not RsyncTransfer(config).is_available():
        raise __util__.PreconditionError(
            f"rsync executable not found: {config.rsync.binary}"
        )
    exclude_from = config.rsync.exclude_from
    if exclude_from and not Path(exclude_from).expanduser().is_file():
        raise __util__.PreconditionError(f"Exclude file not found: {exclude_from}")


def lock_path_for(destination: endpoint.Endpoint) -> Path:
    """Per-user lock file guarding one destination on this machine."""
    digest = hashlib.sha256(destination.get_id().encode()).hexdigest()[:16]
    return Path(tempfile.gettempdir()) / f".rsync-backup-ng.{getpass.getuser()}.{digest}.lock"


def _print_plan(plan, destination) -> None:
    print("Dry run mode - showing what would be done:")
    print("")
    print(f"Destination: {destination}")
    print(f"  Backup type: {plan.backup_type}")
    if plan.resume:
        print(f"  Resuming: {plan.staging} (left by a previous run)")
    print(f"  New snapshot: {plan.snapshot_name}")
    print(f"  rsync: {shlex.join(plan.rsync_command)}")
    print("")


def execute_backup(args: argparse.Namespace) -> int:
    """Execute one backup run.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    try:
        config, config_path, warnings = _load_config(args)
    except ConfigError as e:
        create_logger(get_log_level(args))
        logger.error("Configuration error: %s", e)
        return 1

    create_logger(get_log_level(config.global_config), config.global_config.log_file)
    if config_path is not None:
        logger.debug("Loaded configuration from: %s", config_path)
    for warning in warnings:
        logger.warning("Config: %s", warning)

    source = Path(args.source).expanduser()
    destination = None
    try:
        _check_preconditions(source, config)
        destination = endpoint.choose_endpoint(
            args.destination, config, port=getattr(args, "port", None)
        )
        destination.prepare()

        transaction_log = None
        if config.global_config.transaction_log:
            transaction_log = TransactionLog(config.global_config.transaction_log)

        orchestrator = BackupOrchestrator(
            source.resolve(),
            destination,
            config=config,
            extra_args=getattr(args, "rsync_args", None) or [],
            transaction_log=transaction_log,
        )

        if getattr(args, "dry_run", False):
            _print_plan(orchestrator.plan(), destination)
            return 0

        if not config.global_config.lock:
            orchestrator.run()
            return 0

        lock_path = lock_path_for(destination)
        try:
            with FileLock(lock_path, timeout=0):
                orchestrator.run()
        except Timeout:
            raise __util__.PreconditionError(
                f"Another backup to {destination} is running (lock: {lock_path})"
            ) from None
        return 0

    except __util__.TransferError as e:
        logger.error("Transfer failed: %s", e)
        logger.error("Run the same command again to resume the backup")
        return 1
    except __util__.AbortError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted; run the same command again to resume the backup")
        return 1
    finally:
        if destination is not None:
            destination.close()
