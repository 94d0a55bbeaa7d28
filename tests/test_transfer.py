"""Tests for rsync argument construction and execution."""

import subprocess
from unittest.mock import patch

import pytest

from rsync_backup_ng import __util__
from rsync_backup_ng.config import Config
from rsync_backup_ng.core.transfer import (
    BASE_ARGS,
    BackupType,
    RsyncTransfer,
    build_rsync_args,
)
from rsync_backup_ng.endpoint import LocalEndpoint, SSHEndpoint, Target, parse_target

LOCAL_STAGING = Target.local("/b/in-progress")
LOCAL_LATEST = Target.local("/b/current")
REMOTE_STAGING = Target.remote("nas", "/srv/in-progress", user="backup")
REMOTE_LATEST = Target.remote("nas", "/srv/current", user="backup")


class TestBuildRsyncArgs:
    """build_rsync_args is pure and deterministic."""

    def test_full_backup_has_no_link_dest(self):
        args = build_rsync_args(BackupType.FULL, "/a", LOCAL_STAGING, LOCAL_LATEST)
        assert not any(a.startswith("--link-dest") for a in args)

    def test_incremental_backup_links_against_latest_pointer(self):
        args = build_rsync_args(
            BackupType.INCREMENTAL, "/a", LOCAL_STAGING, LOCAL_LATEST
        )
        assert "--link-dest=../current" in args

    def test_always_present_options(self):
        args = build_rsync_args(BackupType.FULL, "/a", LOCAL_STAGING, LOCAL_LATEST)
        for option in BASE_ARGS:
            assert option in args
        assert "--delete-excluded" in args
        assert "--partial-dir=.rsync-partial" in args

    def test_source_and_staging_are_last(self):
        args = build_rsync_args(BackupType.FULL, "/a", LOCAL_STAGING, LOCAL_LATEST)
        assert args[-2:] == ["/a/", "/b/in-progress/"]

    def test_source_trailing_slash_not_doubled(self):
        args = build_rsync_args(BackupType.FULL, "/a/", LOCAL_STAGING, LOCAL_LATEST)
        assert args[-2] == "/a/"

    def test_extra_args_come_after_defaults(self):
        args = build_rsync_args(
            BackupType.INCREMENTAL,
            "/a",
            LOCAL_STAGING,
            LOCAL_LATEST,
            extra_args=["--no-owner", "--exclude=.cache"],
        )
        assert args[-4:-2] == ["--no-owner", "--exclude=.cache"]
        assert args.index("--no-owner") > args.index("--owner")
        assert args.index("--no-owner") > args.index("--link-dest=../current")

    def test_custom_partial_dir(self):
        args = build_rsync_args(
            BackupType.FULL, "/a", LOCAL_STAGING, LOCAL_LATEST, partial_dir=".part"
        )
        assert "--partial-dir=.part" in args

    def test_exclude_from_and_verbose(self):
        args = build_rsync_args(
            BackupType.FULL,
            "/a",
            LOCAL_STAGING,
            LOCAL_LATEST,
            exclude_from="/etc/excludes",
            verbose=True,
        )
        assert "--exclude-from=/etc/excludes" in args
        assert "--verbose" in args

    def test_quiet_by_default(self):
        args = build_rsync_args(BackupType.FULL, "/a", LOCAL_STAGING, LOCAL_LATEST)
        assert "--verbose" not in args

    def test_remote_destination(self):
        args = build_rsync_args(
            BackupType.INCREMENTAL,
            "/a",
            REMOTE_STAGING,
            REMOTE_LATEST,
            remote_shell="ssh -p 2222 -o BatchMode=yes",
        )
        assert args[args.index("-e") + 1] == "ssh -p 2222 -o BatchMode=yes"
        assert args[-1] == "backup@nas:/srv/in-progress/"
        assert "--link-dest=../current" in args

    def test_remote_destination_needs_shell(self):
        with pytest.raises(ValueError):
            build_rsync_args(BackupType.FULL, "/a", REMOTE_STAGING, REMOTE_LATEST)

    def test_no_io(self, tmp_path):
        # Paths that do not exist are fine, nothing is looked up
        build_rsync_args(
            BackupType.INCREMENTAL,
            tmp_path / "missing",
            Target.local(tmp_path / "nope" / "in-progress"),
            Target.local(tmp_path / "nope" / "current"),
        )


class TestRsyncTransfer:
    """RsyncTransfer binds configuration and runs rsync."""

    def test_command_uses_configured_binary_and_args(self, backup_dir):
        config = Config()
        config.rsync.binary = "/opt/rsync"
        config.rsync.args = ["--numeric-ids"]
        endpoint = LocalEndpoint(Target.local(backup_dir), config)
        command = RsyncTransfer(config).build_command(
            BackupType.FULL,
            "/a",
            endpoint,
            endpoint.child("in-progress"),
            endpoint.child("current"),
            extra_args=["--dry-run"],
        )
        assert command[0] == "/opt/rsync"
        # config args first, command line args last
        assert command.index("--numeric-ids") < command.index("--dry-run")

    def test_verbose_config(self, backup_dir):
        config = Config()
        config.global_config.verbose = True
        endpoint = LocalEndpoint(Target.local(backup_dir), config)
        command = RsyncTransfer(config).build_command(
            BackupType.FULL,
            "/a",
            endpoint,
            endpoint.child("in-progress"),
            endpoint.child("current"),
        )
        assert "--verbose" in command

    def test_remote_command_uses_endpoint_ssh(self, tmp_path):
        config = Config()
        config.ssh.control_dir = str(tmp_path)
        endpoint = SSHEndpoint(Target.remote("nas", "/srv", port=2222), config)
        command = RsyncTransfer(config).build_command(
            BackupType.FULL,
            "/a",
            endpoint,
            endpoint.child("in-progress"),
            endpoint.child("current"),
        )
        shell = command[command.index("-e") + 1]
        assert shell.startswith("ssh ")
        assert "-p 2222" in shell
        assert command[-1] == "nas:/srv/in-progress/"

    def test_home_relative_remote_destination(self, tmp_path):
        config = Config()
        config.ssh.control_dir = str(tmp_path)
        endpoint = SSHEndpoint(parse_target("nas:~/backups"), config)
        command = RsyncTransfer(config).build_command(
            BackupType.FULL,
            "/a",
            endpoint,
            endpoint.child("in-progress"),
            endpoint.child("current"),
        )
        assert command[-1] == "nas:backups/in-progress/"

    def test_run_success(self):
        with patch(
            "rsync_backup_ng.core.transfer.subprocess.run",
            return_value=subprocess.CompletedProcess(["rsync"], 0),
        ) as run:
            RsyncTransfer().run(["rsync", "/a/", "/b/in-progress/"])
        assert run.call_args.args[0] == ["rsync", "/a/", "/b/in-progress/"]
        assert "timeout" not in run.call_args.kwargs

    def test_run_failure_raises_transfer_error(self):
        with patch(
            "rsync_backup_ng.core.transfer.subprocess.run",
            return_value=subprocess.CompletedProcess(["rsync"], 23),
        ):
            with pytest.raises(__util__.TransferError) as excinfo:
                RsyncTransfer().run(["rsync", "/a/", "/b/in-progress/"])
        assert excinfo.value.returncode == 23

    def test_run_missing_binary(self):
        with patch(
            "rsync_backup_ng.core.transfer.subprocess.run",
            side_effect=FileNotFoundError("rsync"),
        ):
            with pytest.raises(__util__.TransferError):
                RsyncTransfer().run(["rsync"])

    def test_is_available(self):
        with patch("rsync_backup_ng.core.transfer.shutil.which", return_value=None):
            assert not RsyncTransfer().is_available()
        with patch(
            "rsync_backup_ng.core.transfer.shutil.which", return_value="/usr/bin/rsync"
        ):
            assert RsyncTransfer().is_available()


def test_backup_type_str():
    assert str(BackupType.FULL) == "full"
    assert str(BackupType.INCREMENTAL) == "incremental"
