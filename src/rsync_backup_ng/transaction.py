"""Transaction log: an append-only JSON-lines record of backup runs.

Each line is one JSON object with at least ``timestamp``, ``pid``,
``action`` and ``status``. The file is meant for humans and monitoring
scripts; rsync-backup-ng itself never reads it back during a run.
"""

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class TransactionLog:
    """Append records to a transaction log file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def record(
        self,
        action: str,
        status: str,
        *,
        source: Optional[str] = None,
        destination: Optional[str] = None,
        snapshot: Optional[str] = None,
        backup_type: Optional[str] = None,
        duration_seconds: Optional[float] = None,
        error: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Append one record and return it.

        Fields left as None are omitted. Failing to write the log is
        reported but never aborts a backup.
        """
        record: dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            "pid": os.getpid(),
            "action": action,
            "status": status,
        }
        optional = {
            "source": source,
            "destination": destination,
            "snapshot": snapshot,
            "backup_type": backup_type,
            "duration_seconds": (
                round(duration_seconds, 3) if duration_seconds is not None else None
            ),
            "error": error,
            "details": details,
        }
        record.update({k: v for k, v in optional.items() if v is not None})

        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record, sort_keys=True) + "\n")
        except OSError as e:
            logger.warning("Could not write transaction log %s: %s", self.path, e)
        return record

    def read(self, limit: Optional[int] = None) -> list[dict[str, Any]]:
        """Return the most recent records, oldest first."""
        if not self.path.exists():
            return []
        records = []
        with open(self.path, encoding="utf-8") as f:
            for number, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError:
                    logger.warning("Skipping corrupt line %d in %s", number, self.path)
        if limit is not None:
            records = records[-limit:] if limit > 0 else []
        return records
