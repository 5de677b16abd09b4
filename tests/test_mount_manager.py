"""Tests for the snapshot mount state machine."""

import shutil
import subprocess
import time
from pathlib import Path
from typing import Any

import pytest

from filepulse.config.models import BackupSettings, PathSettings, TerminalSettings
from filepulse.errors import MountTimeoutError, UnmountError, WarningCode, WarningLog
from filepulse.mount import MountState, SnapshotMountManager

from conftest import FakePopen, FakeRunner, populate_mount


def _clear(mount_point: Path) -> None:
    for child in mount_point.iterdir():
        shutil.rmtree(child)


def _runner(mount_point: Path, *, umount_works: bool = True) -> FakeRunner:
    runner = FakeRunner(tools={"restic", "umount"})

    def _umount(args: list[str]) -> subprocess.CompletedProcess[str]:
        if umount_works:
            _clear(mount_point)
            return subprocess.CompletedProcess(args, 0, "", "")
        return subprocess.CompletedProcess(args, 32, "", "target is busy")

    runner.on("umount", handler=_umount)
    return runner


def _manager(
    tmp_path: Path,
    popen: FakePopen,
    runner: FakeRunner,
    *,
    repository: str = "/srv/restic",
    terminal: TerminalSettings | None = None,
    **backup: Any,
) -> tuple[SnapshotMountManager, WarningLog]:
    options: dict[str, Any] = {
        "mount_timeout": 1,
        "poll_interval_seconds": 0.05,
        "terminate_timeout_seconds": 0.1,
    }
    options.update(backup)
    warnings = WarningLog()
    manager = SnapshotMountManager(
        PathSettings(
            home_dir=str(tmp_path / "home"),
            mount_point=str(tmp_path / "mnt"),
            repository=repository,
        ),
        BackupSettings(**options),
        terminal or TerminalSettings(enabled=False),
        runner=runner,
        warnings=warnings,
        popen=popen,
    )
    return manager, warnings


def test_mount_then_cleanup_releases_once(tmp_path: Path) -> None:
    mount_point = tmp_path / "mnt"
    popen = FakePopen(mount_point)
    runner = _runner(mount_point)
    manager, warnings = _manager(tmp_path, popen, runner)

    assert manager.ensure_ready() is MountState.MOUNTED
    args, kwargs = popen.calls[0]
    assert args == ["restic", "mount", "--repo", "/srv/restic", str(mount_point)]
    assert kwargs["start_new_session"] is True
    assert kwargs["stdin"] is subprocess.DEVNULL

    manager.cleanup()
    manager.cleanup()

    assert manager.state is MountState.UNMOUNTED
    assert popen.processes[0].terminated
    assert manager.session.process is None
    assert len(runner.commands_starting_with("umount")) == 1
    assert len(warnings) == 0


def test_ensure_ready_on_mounted_session_does_not_spawn_again(tmp_path: Path) -> None:
    popen = FakePopen(tmp_path / "mnt")
    manager, _ = _manager(tmp_path, popen, _runner(tmp_path / "mnt"))

    manager.ensure_ready()
    assert manager.ensure_ready() is MountState.MOUNTED

    assert len(popen.calls) == 1


def test_existing_mount_is_adopted_and_left_in_place(tmp_path: Path) -> None:
    mount_point = tmp_path / "mnt"
    populate_mount(mount_point)
    popen = FakePopen(mount_point)
    runner = _runner(mount_point)
    manager, _ = _manager(tmp_path, popen, runner)

    assert manager.ensure_ready() is MountState.MOUNTED
    manager.cleanup()

    assert popen.calls == []
    assert runner.commands_starting_with("umount") == []
    assert manager.is_populated()


def test_mount_times_out_and_fails(tmp_path: Path) -> None:
    popen = FakePopen(tmp_path / "mnt", populate=False)
    manager, warnings = _manager(tmp_path, popen, _runner(tmp_path / "mnt"))

    started = time.monotonic()
    state = manager.ensure_ready()
    elapsed = time.monotonic() - started

    assert state is MountState.FAILED
    assert elapsed >= 1.0
    assert popen.processes[0].terminated
    assert manager.session.process is None
    assert [warning.code for warning in warnings.snapshot()] == [WarningCode.MOUNT_TIMEOUT]

    assert manager.ensure_ready() is MountState.FAILED
    assert len(popen.calls) == 1


def test_mount_process_exiting_early_fails_fast(tmp_path: Path) -> None:
    popen = FakePopen(tmp_path / "mnt", populate=False)
    manager, warnings = _manager(tmp_path, popen, _runner(tmp_path / "mnt"), mount_timeout=30)
    manager.start()
    popen.processes[0].returncode = 1

    started = time.monotonic()
    assert manager.wait_until_ready() is MountState.FAILED

    assert time.monotonic() - started < 5
    assert warnings.snapshot()[0].code is WarningCode.MOUNT_FAILED


def test_unresponsive_process_is_killed(tmp_path: Path) -> None:
    popen = FakePopen(tmp_path / "mnt", exits_on_terminate=False)
    manager, _ = _manager(tmp_path, popen, _runner(tmp_path / "mnt"))

    manager.ensure_ready()
    manager.unmount()

    process = popen.processes[0]
    assert process.terminated
    assert process.killed


def test_missing_mount_tool_fails_without_spawning(tmp_path: Path) -> None:
    popen = FakePopen(tmp_path / "mnt")
    runner = FakeRunner(tools={"umount"})
    manager, warnings = _manager(tmp_path, popen, runner)

    assert manager.ensure_ready() is MountState.FAILED

    assert popen.calls == []
    [warning] = warnings.snapshot()
    assert warning.code is WarningCode.TOOL_MISSING
    assert "restic" in warning.message


def test_missing_repository_fails(tmp_path: Path) -> None:
    popen = FakePopen(tmp_path / "mnt")
    manager, warnings = _manager(tmp_path, popen, _runner(tmp_path / "mnt"), repository="")

    with pytest.raises(MountTimeoutError):
        manager.mount()

    assert popen.calls == []
    assert warnings.snapshot()[0].code is WarningCode.MOUNT_FAILED


def test_unmount_failure_is_reported_with_instructions(tmp_path: Path) -> None:
    mount_point = tmp_path / "mnt"
    popen = FakePopen(mount_point)
    manager, warnings = _manager(tmp_path, popen, _runner(mount_point, umount_works=False))

    manager.ensure_ready()
    manager.cleanup()

    [warning] = warnings.snapshot()
    assert warning.code is WarningCode.UNMOUNT_FAILURE
    assert f"fusermount -u {mount_point}" in warning.message


def test_strict_unmount_raises(tmp_path: Path) -> None:
    mount_point = tmp_path / "mnt"
    populate_mount(mount_point)
    manager, _ = _manager(
        tmp_path, FakePopen(mount_point), _runner(mount_point, umount_works=False)
    )

    with pytest.raises(UnmountError, match="target is busy"):
        manager.unmount(strict=True)


def test_mount_runs_inside_terminal_when_available(tmp_path: Path) -> None:
    mount_point = tmp_path / "mnt"
    popen = FakePopen(mount_point)
    runner = _runner(mount_point)
    runner.tools.add("kitty")
    manager, _ = _manager(
        tmp_path, popen, runner, terminal=TerminalSettings(command="kitty", args="-e --hold")
    )

    snapshot_root = manager.mount()

    args, _ = popen.calls[0]
    assert args[:4] == ["kitty", "-e", "--hold", "restic"]
    assert snapshot_root == mount_point / "snapshots" / "latest" / "home" / "home"
