"""Core backup operations for rsync-backup-ng.

The snapshot protocol lives in ``operations``; the rsync invocation it
drives lives in ``transfer``.
"""

from .operations import BackupOrchestrator, BackupPlan, BackupResult, BackupState
from .transfer import BackupType, RsyncTransfer, build_rsync_args

__all__ = [
    "BackupOrchestrator",
    "BackupPlan",
    "BackupResult",
    "BackupState",
    "BackupType",
    "RsyncTransfer",
    "build_rsync_args",
]
