"""Lifecycle management for the mounted backup snapshot."""

from __future__ import annotations

import logging
import shlex
import subprocess
import threading
import time
from pathlib import Path
from typing import Callable

from filepulse.config.models import BackupSettings, PathSettings, TerminalSettings
from filepulse.errors import (
    BackendError,
    MountTimeoutError,
    ToolMissingError,
    UnmountError,
    WarningCode,
    WarningLog,
)
from filepulse.process import CommandRunner

from .models import MountSession, MountState

LOGGER = logging.getLogger(__name__)

PopenFactory = Callable[..., subprocess.Popen]


class SnapshotMountManager:
    """Mount the backup repository on demand and guarantee it is released.

    State transitions are serialized by a re-entrant lock, so concurrent
    callers of :meth:`ensure_ready` share a single mount attempt. A failed
    attempt is not retried within the same manager.
    """

    def __init__(
        self,
        paths: PathSettings,
        backup: BackupSettings,
        terminal: TerminalSettings,
        *,
        runner: CommandRunner,
        warnings: WarningLog,
        popen: PopenFactory = subprocess.Popen,
    ) -> None:
        self.session = MountSession(
            repository_id=paths.repository,
            mount_point=Path(paths.mount_point).expanduser(),
            timeout_seconds=backup.mount_timeout,
        )
        self._home_dir = Path(paths.home_dir).expanduser().resolve()
        self._backup = backup
        self._terminal = terminal
        self._runner = runner
        self._warnings = warnings
        self._popen = popen
        self._lock = threading.RLock()
        self._cancel = threading.Event()
        self._in_terminal = False
        self._cleaned = False

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> MountState:
        return self.session.state

    @property
    def mount_point(self) -> Path:
        return self.session.mount_point

    def is_populated(self) -> bool:
        """Return whether the mount point is a non-empty directory."""
        mount_point = self.session.mount_point
        try:
            return mount_point.is_dir() and any(mount_point.iterdir())
        except OSError:
            return False

    def snapshot_root(self) -> Path:
        """Return the directory mirroring the home directory in the latest snapshot."""
        return self.session.mount_point / self._backup.snapshot_subpath / self._home_dir.name

    def ensure_ready(self) -> MountState:
        """Mount the snapshot if needed and block until it is ready or has failed.

        Returns:
            MountState: ``MOUNTED`` on success; ``FAILED`` or ``UNMOUNTED`` otherwise.
        """
        with self._lock:
            if self.session.state is MountState.NOT_MOUNTED:
                self.start()
            if self.session.state is MountState.MOUNTING:
                self.wait_until_ready()
            return self.session.state

    def mount(self) -> Path:
        """Mount the snapshot and return the directory mirroring the home directory.

        Raises:
            MountTimeoutError: If the snapshot did not become ready.
        """
        state = self.ensure_ready()
        if state is not MountState.MOUNTED:
            raise MountTimeoutError(
                f"Snapshot at {self.session.mount_point} is not available (state: {state.value})."
            )
        return self.snapshot_root()

    def start(self) -> MountState:
        """Spawn the mount process without waiting for it.

        An already-populated mount point is adopted as ``MOUNTED`` without
        spawning anything.
        """
        with self._lock:
            if self.session.state is not MountState.NOT_MOUNTED:
                return self.session.state

            if self.is_populated():
                LOGGER.info("Snapshot already mounted at %s", self.session.mount_point)
                return self._transition(MountState.MOUNTED)

            tool = self._backup.mount_command
            if not self._runner.available(tool):
                if self._warnings.tool_missing(tool, "backup snapshot comparison"):
                    LOGGER.warning("'%s' not found; skipping backup comparison.", tool)
                return self._transition(MountState.FAILED)

            if not self.session.repository_id:
                return self._fail(
                    WarningCode.MOUNT_FAILED,
                    "No backup repository configured; set paths.repository.",
                )

            try:
                self.session.mount_point.mkdir(parents=True, exist_ok=True)
                process = self._popen(
                    self.build_command(),
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                    start_new_session=True,
                )
            except OSError as exc:
                return self._fail(
                    WarningCode.MOUNT_FAILED, f"Could not start snapshot mount: {exc}"
                )

            self.session.process = process
            self.session.owns_mount = True
            LOGGER.info(
                "Mounting %s at %s (waiting up to %ss)",
                self.session.repository_id,
                self.session.mount_point,
                self.session.timeout_seconds,
            )
            return self._transition(MountState.MOUNTING)

    def wait_until_ready(self) -> MountState:
        """Poll the mount point until it populates, the timeout elapses, or a cancel."""
        with self._lock:
            if self.session.state is not MountState.MOUNTING:
                return self.session.state

            interval = self._backup.poll_interval_seconds
            timeout = self.session.timeout_seconds
            deadline = time.monotonic() + timeout
            while True:
                if self.is_populated():
                    LOGGER.info("Snapshot mounted at %s", self.session.mount_point)
                    return self._transition(MountState.MOUNTED)

                process = self.session.process
                if process is not None and not self._in_terminal:
                    returncode = process.poll()
                    if returncode is not None:
                        return self._fail(
                            WarningCode.MOUNT_FAILED,
                            f"Mount process exited with status {returncode} before "
                            f"{self.session.mount_point} became ready.",
                        )

                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return self._fail(
                        WarningCode.MOUNT_TIMEOUT,
                        f"Snapshot mount at {self.session.mount_point} not ready after "
                        f"{timeout}s; untracked files are reported without comparison.",
                    )

                step = min(interval, remaining)
                if self._cancel.wait(step):
                    return self._fail(WarningCode.MOUNT_FAILED, "Snapshot mount was cancelled.")

    def cancel(self) -> None:
        """Abort a pending :meth:`wait_until_ready` from another thread."""
        self._cancel.set()

    def unmount(self, *, strict: bool = False) -> MountState:
        """Stop the mount process and release the mount point.

        Failures are recorded as warnings with manual instructions.

        Args:
            strict: Raise instead of only recording a failed unmount.

        Raises:
            UnmountError: If ``strict`` is set and the mount point could not be released.
        """
        self._cancel.set()
        with self._lock:
            if self.session.state is MountState.UNMOUNTED:
                return self.session.state

            LOGGER.info("Unmounting snapshot at %s", self.session.mount_point)
            self._release_process()
            problem = self._run_unmount_command() if self.is_populated() else None
            self.session.owns_mount = False
            if problem is not None and strict:
                raise UnmountError(problem)

            if self.session.state is MountState.FAILED:
                return self.session.state
            return self._transition(MountState.UNMOUNTED)

    def cleanup(self) -> None:
        """Release the mount created by this manager; runs at most once."""
        self._cancel.set()
        with self._lock:
            if self._cleaned:
                return
            self._cleaned = True
            if self.session.process is not None or self.session.owns_mount:
                self.unmount()
            elif self.session.state is MountState.MOUNTED:
                LOGGER.debug("Leaving pre-existing mount at %s", self.session.mount_point)

    def build_command(self) -> list[str]:
        """Return the mount invocation, wrapped in the configured terminal when available."""
        mount = [
            self._backup.mount_command,
            "mount",
            "--repo",
            self.session.repository_id,
            str(self.session.mount_point),
        ]
        terminal = self._terminal
        self._in_terminal = terminal.enabled and self._runner.available(terminal.command)
        if self._in_terminal:
            return [terminal.command, *shlex.split(terminal.args), *mount]
        return mount

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _transition(self, state: MountState) -> MountState:
        LOGGER.debug("Snapshot mount %s -> %s", self.session.state.value, state.value)
        self.session.state = state
        return state

    def _fail(self, code: WarningCode, message: str) -> MountState:
        self._warnings.add(code, message)
        LOGGER.warning(message)
        self._release_process()
        return self._transition(MountState.FAILED)

    def _release_process(self) -> None:
        process = self.session.process
        if process is None:
            return
        self.session.process = None
        if process.poll() is not None:
            return

        grace = self._backup.terminate_timeout_seconds
        process.terminate()
        try:
            process.wait(timeout=grace)
        except subprocess.TimeoutExpired:
            LOGGER.warning("Mount process %s ignored SIGTERM; killing it.", process.pid)
            process.kill()
            try:
                process.wait(timeout=grace)
            except subprocess.TimeoutExpired:
                LOGGER.warning("Mount process %s did not exit after SIGKILL.", process.pid)

    def _run_unmount_command(self) -> str | None:
        mount_point = self.session.mount_point
        command = self._backup.unmount_command
        try:
            self._runner.run(
                [command, str(mount_point)], timeout=self._backup.terminate_timeout_seconds
            )
        except (ToolMissingError, BackendError) as exc:
            problem = str(exc)
        else:
            problem = "mount point is still populated" if self.is_populated() else None

        if problem is None:
            return None
        message = (
            f"Could not unmount {mount_point}: {problem}. Unmount it manually with "
            f"`{command} {mount_point}` or `fusermount -u {mount_point}`."
        )
        self._warnings.add(WarningCode.UNMOUNT_FAILURE, message)
        LOGGER.warning(message)
        return message


__all__ = ["SnapshotMountManager", "PopenFactory"]
