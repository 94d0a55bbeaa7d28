"""Tests for transaction logging."""

import json
import os
from unittest.mock import patch

from rsync_backup_ng.transaction import TransactionLog


class TestRecord:
    """Tests for TransactionLog.record."""

    def test_creates_parent_directories(self, tmp_path):
        """Test creates parent directories if needed."""
        log_path = tmp_path / "deep" / "nested" / "transactions.jsonl"
        TransactionLog(log_path)
        assert log_path.parent.is_dir()

    def test_accepts_string_path(self, tmp_path):
        log = TransactionLog(str(tmp_path / "transactions.jsonl"))
        log.record("backup", "started")
        assert (tmp_path / "transactions.jsonl").exists()

    def test_writes_one_json_line(self, tmp_path):
        """Test each record is one JSON object on its own line."""
        log = TransactionLog(tmp_path / "log.jsonl")
        log.record("backup", "started", source="/a", destination="/b")
        log.record("backup", "completed", snapshot="2024-01-01__00-00-00")

        lines = (tmp_path / "log.jsonl").read_text().splitlines()
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["action"] == "backup"
        assert first["status"] == "started"
        assert first["source"] == "/a"
        assert first["pid"] == os.getpid()
        assert "timestamp" in first

    def test_omits_unset_fields(self, tmp_path):
        record = TransactionLog(tmp_path / "log.jsonl").record("backup", "started")
        assert set(record) == {"timestamp", "pid", "action", "status"}

    def test_rounds_duration(self, tmp_path):
        record = TransactionLog(tmp_path / "log.jsonl").record(
            "backup", "completed", duration_seconds=1.23456789
        )
        assert record["duration_seconds"] == 1.235

    def test_details(self, tmp_path):
        log = TransactionLog(tmp_path / "log.jsonl")
        log.record("backup", "failed", error="boom", details={"state": "publishing"})
        (record,) = log.read()
        assert record["error"] == "boom"
        assert record["details"] == {"state": "publishing"}

    def test_write_failure_is_not_fatal(self, tmp_path):
        """Test a write error is logged, not raised."""
        log = TransactionLog(tmp_path / "log.jsonl")
        with patch("builtins.open", side_effect=PermissionError("denied")):
            record = log.record("backup", "started")
        assert record["status"] == "started"


class TestRead:
    """Tests for TransactionLog.read."""

    def test_missing_file(self, tmp_path):
        assert TransactionLog(tmp_path / "log.jsonl").read() == []

    def test_oldest_first_and_limit(self, tmp_path):
        log = TransactionLog(tmp_path / "log.jsonl")
        for status in ("started", "failed", "started", "completed"):
            log.record("backup", status)

        assert [r["status"] for r in log.read()] == [
            "started",
            "failed",
            "started",
            "completed",
        ]
        assert [r["status"] for r in log.read(limit=2)] == ["started", "completed"]
        assert log.read(limit=0) == []

    def test_skips_corrupt_lines(self, tmp_path):
        """Test that corrupt and blank lines are skipped."""
        path = tmp_path / "log.jsonl"
        log = TransactionLog(path)
        log.record("backup", "started")
        with open(path, "a", encoding="utf-8") as f:
            f.write("{not json\n\n")
        log.record("backup", "completed")

        assert [r["status"] for r in log.read()] == ["started", "completed"]
