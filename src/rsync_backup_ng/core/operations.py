"""Core backup operation: one snapshot run against one destination.

The run is a small state machine::

    START -> DETERMINE_TYPE -> TRANSFERRING -> PUBLISHING
          -> UPDATING_POINTER -> DONE

with FAILED reachable from every state. Whatever fails, ``current`` keeps
pointing at a completed snapshot, except for the short window between
removing and recreating it in UPDATING_POINTER (see ``atomic_pointer``).
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Sequence

from .. import __util__
from ..config import Config
from ..endpoint import Endpoint, Target
from ..transaction import TransactionLog
from .transfer import BackupType, RsyncTransfer

logger = logging.getLogger(__name__)

POINTER_TMP_SUFFIX = ".new"


class BackupState(Enum):
    START = "start"
    DETERMINE_TYPE = "determine-type"
    TRANSFERRING = "transferring"
    PUBLISHING = "publishing"
    UPDATING_POINTER = "updating-pointer"
    DONE = "done"
    FAILED = "failed"


@dataclass
class BackupPlan:
    """What a run is going to do, decided before anything is written."""

    backup_type: BackupType
    snapshot_name: str
    staging: Target
    latest: Target
    rsync_command: list[str] = field(default_factory=list)
    resume: bool = False


@dataclass
class BackupResult:
    """Outcome of a successful run."""

    backup_type: BackupType
    snapshot_name: str
    snapshot: Target
    resumed: bool = False
    duration: float = 0.0


class BackupOrchestrator:
    """Sequence staging, transfer, publish and pointer update.

    Args:
        source: Local directory to back up
        endpoint: Destination endpoint (local or SSH)
        config: Run configuration
        transfer: rsync runner, built from ``config`` if omitted
        extra_args: rsync arguments appended after all defaults
        transaction_log: Where to record the run, if anywhere
        clock: Returns the capture time of the snapshot
    """

    def __init__(
        self,
        source,
        endpoint: Endpoint,
        config: Optional[Config] = None,
        transfer: Optional[RsyncTransfer] = None,
        extra_args: Sequence[str] = (),
        transaction_log: Optional[TransactionLog] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.source = Path(source)
        self.endpoint = endpoint
        self.config = config or endpoint.config
        self.transfer = transfer or RsyncTransfer(self.config)
        self.extra_args = list(extra_args)
        self.transaction_log = transaction_log
        self.clock = clock
        self.state = BackupState.START

        self.staging = endpoint.child(__util__.IN_PROGRESS_NAME)
        self.latest = endpoint.child(__util__.LATEST_NAME)

    def _enter(self, state: BackupState) -> None:
        logger.debug("State %s -> %s", self.state.value, state.value)
        self.state = state

    def plan(self) -> BackupPlan:
        """Decide the backup type and snapshot name without writing anything."""
        self._enter(BackupState.DETERMINE_TYPE)
        if self.endpoint.symlink_exists(self.latest):
            backup_type = BackupType.INCREMENTAL
        elif self.endpoint.path_exists(self.latest):
            # ln would create the new link inside it
            raise __util__.PointerUpdateError(
                f"{self.latest} exists but is not a symlink, refusing to back up"
            )
        else:
            backup_type = BackupType.FULL
        resume = self.endpoint.directory_exists(self.staging)
        snapshot_name = __util__.new_snapshot_name(self.clock())

        command = self.transfer.build_command(
            backup_type,
            self.source,
            self.endpoint,
            self.staging,
            self.latest,
            self.extra_args,
        )
        return BackupPlan(
            backup_type=backup_type,
            snapshot_name=snapshot_name,
            staging=self.staging,
            latest=self.latest,
            rsync_command=command,
            resume=resume,
        )

    def run(self) -> BackupResult:
        """Perform one backup.

        Returns:
            BackupResult describing the new snapshot

        Raises:
            TransferError: rsync failed; ``in-progress`` is kept for resume
            PublishError: ``in-progress`` could not be renamed
            PointerUpdateError: ``current`` could not be replaced, or is
                not a symlink
            LocalIOError, RemoteExecutionError: a destination query failed
        """
        start = time.monotonic()
        plan = None
        try:
            plan = self.plan()
            self._log_transaction("started", plan)
            logger.info("Backup type: %s", plan.backup_type)
            if plan.resume:
                logger.info(
                    "Previous backup failed or was interrupted, resuming from %s",
                    self.staging,
                )

            self._enter(BackupState.TRANSFERRING)
            logger.info(__util__.log_heading(f"Transferring to {self.staging}"))
            self.transfer.run(plan.rsync_command)

            self._enter(BackupState.PUBLISHING)
            snapshot = self._publish(plan.snapshot_name)

            self._enter(BackupState.UPDATING_POINTER)
            self._update_pointer(plan.snapshot_name)
        except (__util__.AbortError, KeyboardInterrupt) as e:
            failed_in = self.state
            self._enter(BackupState.FAILED)
            logger.debug("Backup failed while %s: %r", failed_in.value, e)
            self._log_transaction(
                "failed",
                plan,
                duration=time.monotonic() - start,
                error=str(e) or type(e).__name__,
                details={"state": failed_in.value},
            )
            raise

        self._enter(BackupState.DONE)
        duration = time.monotonic() - start
        self._log_transaction("completed", plan, duration=duration)
        logger.info(
            "Backup complete (%s): %s in %.1fs", plan.backup_type, snapshot, duration
        )
        return BackupResult(
            backup_type=plan.backup_type,
            snapshot_name=plan.snapshot_name,
            snapshot=snapshot,
            resumed=plan.resume,
            duration=duration,
        )

    def _publish(self, snapshot_name: str) -> Target:
        snapshot = self.endpoint.child(snapshot_name)
        logger.debug("Publishing %s as %s", self.staging, snapshot)
        try:
            self.endpoint.rename(self.staging, snapshot)
        except __util__.DestinationExistsError as e:
            raise __util__.PublishError(
                f"Snapshot {snapshot_name} already exists, "
                f"{self.staging} was left in place"
            ) from e
        except __util__.CommandError as e:
            raise __util__.PublishError(
                f"Could not rename {self.staging} to {snapshot}: {e}"
            ) from e
        return snapshot

    def _update_pointer(self, snapshot_name: str) -> None:
        """Point ``current`` at ``snapshot_name`` (a relative link)."""
        if self.config.global_config.atomic_pointer:
            self._swap_pointer(snapshot_name)
            return

        try:
            if self.endpoint.symlink_exists(self.latest):
                self.endpoint.remove(self.latest)
        except __util__.CommandError as e:
            raise __util__.PointerUpdateError(
                f"Could not remove {self.latest}: {e}"
            ) from e

        try:
            self.endpoint.create_symlink(self.latest, snapshot_name)
        except __util__.CommandError as e:
            raise __util__.PointerUpdateError(
                f"{self.latest} was removed but could not be recreated "
                f"(should point to {snapshot_name}): {e}"
            ) from e

    def _swap_pointer(self, snapshot_name: str) -> None:
        tmp = self.endpoint.child(__util__.LATEST_NAME + POINTER_TMP_SUFFIX)
        try:
            # Leftover from an interrupted swap
            self.endpoint.remove(tmp)
            self.endpoint.create_symlink(tmp, snapshot_name)
            self.endpoint.rename(tmp, self.latest, replace=True)
        except __util__.CommandError as e:
            raise __util__.PointerUpdateError(
                f"Could not replace {self.latest} with {tmp}: {e}"
            ) from e

    def _log_transaction(self, status, plan, duration=None, error=None, details=None):
        if self.transaction_log is None:
            return
        self.transaction_log.record(
            action="backup",
            status=status,
            source=str(self.source),
            destination=str(self.endpoint.target),
            snapshot=plan.snapshot_name if plan else None,
            backup_type=str(plan.backup_type) if plan else None,
            duration_seconds=duration,
            error=error,
            details=details,
        )
