"""rsync-backup-ng: rsync_backup_ng/__init__.py."""

__version__ = "0.1.0"
