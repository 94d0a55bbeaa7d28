"""rsync-backup-ng: rsync_backup_ng/sshutil/__init__.py."""
