"""Backup snapshot backend for files outside any version control."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from filepulse.errors import BackendError, ToolMissingError, WarningCode, WarningLog
from filepulse.models import (
    BackendResult,
    DiffStats,
    FileRecord,
    FileState,
    FileStatus,
    TrackingKind,
)
from filepulse.mount import MountState, SnapshotMountManager
from filepulse.process import CommandRunner

from .base import Analyzer, count_lines, parse_unified_diff

LOGGER = logging.getLogger(__name__)

DIFF_TOOL = "diff"


def untracked_result() -> BackendResult:
    """Result for an untracked file when no snapshot baseline is available."""
    return BackendResult(
        tracking=TrackingKind.UNTRACKED,
        status=FileStatus(
            raw_code="??",
            index_state=FileState.UNTRACKED,
            worktree_state=FileState.UNTRACKED,
        ),
    )


class UntrackedAnalyzer(Analyzer):
    """Report untracked files without a baseline when snapshots are disabled."""

    kind = TrackingKind.UNTRACKED

    def analyze(self, record: FileRecord) -> BackendResult:
        return untracked_result()


class SnapshotAnalyzer(Analyzer):
    """Compare untracked files with their copy in the latest backup snapshot.

    Files missing from the snapshot are reported as ``NEW`` with every line
    counted as an addition. When the snapshot cannot be mounted, every file
    degrades to an ``UNTRACKED`` record with a zero diff.
    """

    kind = TrackingKind.SNAPSHOT

    def __init__(
        self,
        mounts: SnapshotMountManager,
        home_dir: Path,
        *,
        runner: CommandRunner,
        warnings: WarningLog,
        timeout: float | None = None,
    ) -> None:
        super().__init__(warnings=warnings)
        self._mounts = mounts
        self._home_dir = home_dir.expanduser().resolve()
        self._runner = runner
        self._timeout = timeout
        self._lock = threading.Lock()
        self._missing_root_reported = False

    def analyze(self, record: FileRecord) -> BackendResult:
        if self._mounts.ensure_ready() is not MountState.MOUNTED:
            return untracked_result()

        snapshot_root = self._mounts.snapshot_root()
        if not snapshot_root.is_dir():
            self._report_missing_root(snapshot_root)
            return untracked_result()

        live = Path(record.absolute_path)
        try:
            relative = live.relative_to(self._home_dir)
        except ValueError:
            self._warnings.add(
                WarningCode.SNAPSHOT_UNAVAILABLE,
                f"File is outside {self._home_dir}; no snapshot baseline.",
                record.relative_path,
            )
            return untracked_result()

        counterpart = snapshot_root / relative
        if not counterpart.exists():
            lines = count_lines(live)
            return BackendResult(
                tracking=TrackingKind.NEW,
                status=FileStatus(
                    raw_code="A ",
                    index_state=FileState.ADDED,
                    worktree_state=FileState.ADDED,
                ),
                diff=DiffStats(additions=lines, deletions=0, chunks=1),
            )

        return self._compare(record, counterpart, live)

    def _compare(self, record: FileRecord, snapshot_file: Path, live: Path) -> BackendResult:
        if not self._runner.available(DIFF_TOOL):
            if self._warnings.tool_missing(DIFF_TOOL, "snapshot comparison"):
                LOGGER.warning("'diff' not found; cannot compare files with the snapshot.")
            return self.unavailable_result()

        try:
            completed = self._runner.run(
                [DIFF_TOOL, "-u", str(snapshot_file), str(live)],
                timeout=self._timeout,
                ok_codes=(0, 1),
            )
        except (BackendError, ToolMissingError) as exc:
            return self.error_result(record, str(exc))

        if completed.returncode == 0:
            return BackendResult(tracking=self.kind, status=FileStatus())

        return BackendResult(
            tracking=self.kind,
            status=FileStatus(
                raw_code=" M",
                index_state=FileState.CLEAN,
                worktree_state=FileState.MODIFIED,
            ),
            diff=parse_unified_diff(completed.stdout),
        )

    def _report_missing_root(self, snapshot_root: Path) -> None:
        with self._lock:
            if self._missing_root_reported:
                return
            self._missing_root_reported = True
        message = f"Latest snapshot not found at {snapshot_root}; comparing without a baseline."
        self._warnings.add(WarningCode.SNAPSHOT_UNAVAILABLE, message)
        LOGGER.warning(message)


__all__ = ["DIFF_TOOL", "SnapshotAnalyzer", "UntrackedAnalyzer", "untracked_result"]
