"""Pytest configuration and shared fixtures."""

import filecmp
import os
import shutil
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from rsync_backup_ng import __util__
from rsync_backup_ng.config import Config
from rsync_backup_ng.core import RsyncTransfer
from rsync_backup_ng.endpoint import LocalEndpoint, Target


class FakeRsync(RsyncTransfer):
    """Stand-in for rsync that copies a local tree into the staging dir.

    Honours ``--link-dest`` by hard linking unchanged files, so snapshot
    storage sharing can be checked without the real binary.
    """

    def __init__(self, config=None, fail_with=None):
        super().__init__(config)
        self.fail_with = fail_with
        self.commands = []
        self.staging_seen = []

    def run(self, command):
        self.commands.append(list(command))
        source = Path(command[-2])
        staging = Path(command[-1])
        self.staging_seen.append(sorted(p.name for p in staging.iterdir()) if staging.exists() else None)
        staging.mkdir(exist_ok=True)

        link_dest = None
        for arg in command:
            if arg.startswith("--link-dest="):
                link_dest = (staging / arg.split("=", 1)[1]).resolve()

        if self.fail_with is not None:
            partial = staging / ".rsync-partial"
            partial.mkdir(exist_ok=True)
            (partial / "half-written").write_text("partial")
            raise __util__.TransferError(
                f"rsync exited with status {self.fail_with}", self.fail_with
            )

        for path in sorted(source.rglob("*")):
            relative = path.relative_to(source)
            target = staging / relative
            if path.is_dir():
                target.mkdir(exist_ok=True)
                continue
            if target.exists():
                target.unlink()
            base = link_dest / relative if link_dest else None
            if base is not None and base.is_file() and filecmp.cmp(path, base, shallow=False):
                os.link(base, target)
            else:
                shutil.copy2(path, target)


class StepClock:
    """Clock returning a fixed start time, advancing by ``step`` per call."""

    def __init__(self, start=datetime(2024, 1, 1, 0, 0, 0), step=timedelta(minutes=5)):
        self.now = start
        self.step = step

    def __call__(self):
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture
def source_tree(tmp_path):
    """A source directory holding one file ``f``."""
    source = tmp_path / "a"
    source.mkdir()
    (source / "f").write_text("hello\n")
    return source


@pytest.fixture
def backup_dir(tmp_path):
    """An empty destination directory."""
    destination = tmp_path / "b"
    destination.mkdir()
    return destination


@pytest.fixture
def local_endpoint(backup_dir):
    return LocalEndpoint(Target.local(backup_dir), Config())


@pytest.fixture
def fake_rsync():
    return FakeRsync()


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def tmp_config_dir(tmp_path):
    """Create a temporary config directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def sample_config_toml():
    """Return a sample valid TOML configuration string."""
    return """
[global]
log_file = "/var/log/rsync-backup-ng.log"
transaction_log = "/var/lib/rsync-backup-ng/transactions.jsonl"
atomic_pointer = true
lock = false

[ssh]
port = 2222
identity_file = "~/.ssh/backup_key"
options = ["Compression=yes"]
batch_mode = true
multiplex = false

[rsync]
binary = "/usr/local/bin/rsync"
partial_dir = ".partial"
args = ["--numeric-ids", "--hard-links"]
"""


@pytest.fixture
def minimal_config_toml():
    """Return a minimal valid TOML configuration string."""
    return """
[rsync]
args = ["--numeric-ids"]
"""


@pytest.fixture
def config_file(tmp_config_dir, sample_config_toml):
    """Create a temporary config file with sample content."""
    config_path = tmp_config_dir / "config.toml"
    config_path.write_text(sample_config_toml)
    return config_path


@pytest.fixture
def minimal_config_file(tmp_config_dir, minimal_config_toml):
    """Create a temporary config file with minimal content."""
    config_path = tmp_config_dir / "minimal.toml"
    config_path.write_text(minimal_config_toml)
    return config_path
