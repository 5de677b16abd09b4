"""Shared contract and parsing helpers for the tracking backends."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from filepulse.errors import WarningCode, WarningLog
from filepulse.models import (
    BackendResult,
    DiffStats,
    FileRecord,
    FileState,
    FileStatus,
    TrackingKind,
)

LOGGER = logging.getLogger(__name__)

_STATUS_CHARS = {
    "M": FileState.MODIFIED,
    "A": FileState.ADDED,
    "D": FileState.DELETED,
    "R": FileState.RENAMED,
    "C": FileState.COPIED,
    "U": FileState.UNMERGED,
    "?": FileState.UNTRACKED,
    " ": FileState.CLEAN,
}


def status_char_to_state(char: str) -> FileState:
    """Map one porcelain status column to a :class:`FileState`."""
    return _STATUS_CHARS.get(char, FileState.UNKNOWN)


def parse_porcelain_status(output: str) -> FileStatus:
    """Parse the first entry of ``status --porcelain=v1`` output.

    An empty listing means the file matches its baseline. When only the index
    column carries a change, the working copy still differs from ``HEAD`` by
    that change, so the worktree state mirrors the index state.
    """
    line = next((entry for entry in output.splitlines() if entry.strip()), "")
    if not line:
        return FileStatus()

    code = line[:2].ljust(2)
    index_state = status_char_to_state(code[0])
    worktree_state = status_char_to_state(code[1])
    if worktree_state is FileState.CLEAN and index_state is not FileState.CLEAN:
        worktree_state = index_state
    return FileStatus(raw_code=code, index_state=index_state, worktree_state=worktree_state)


def parse_unified_diff(output: str) -> DiffStats:
    """Count added lines, removed lines, and ``@@`` hunk markers in a unified diff.

    ``+++``/``---`` file headers are not counted.
    """
    additions = deletions = chunks = 0
    for line in output.splitlines():
        if line.startswith("@@"):
            chunks += 1
        elif line.startswith("+") and not line.startswith("++"):
            additions += 1
        elif line.startswith("-") and not line.startswith("--"):
            deletions += 1
    return DiffStats(additions=additions, deletions=deletions, chunks=chunks)


def count_lines(path: Path) -> int:
    """Return the number of lines in ``path``, or 0 when it cannot be read."""
    try:
        data = path.read_bytes()
    except OSError:
        return 0
    if not data:
        return 0
    return data.count(b"\n") + (0 if data.endswith(b"\n") else 1)


class Analyzer(ABC):
    """Compute status and diff statistics for files tracked by one backend."""

    kind: TrackingKind

    def __init__(self, *, warnings: WarningLog) -> None:
        self._warnings = warnings

    @abstractmethod
    def analyze(self, record: FileRecord) -> BackendResult:
        """Return the status and diff of ``record`` against this backend's baseline."""

    def error_result(self, record: FileRecord, message: str) -> BackendResult:
        """Record a per-file backend failure and return a degraded result."""
        self._warnings.add(WarningCode.BACKEND_ERROR, message, record.relative_path)
        LOGGER.warning("Could not analyze %s: %s", record.relative_path, message)
        return BackendResult(tracking=self.kind, status=FileStatus.error(), diff=DiffStats())

    def unavailable_result(self) -> BackendResult:
        """Return the result used when the backend's tool is not installed."""
        return BackendResult(
            tracking=self.kind,
            status=FileStatus(
                raw_code="--",
                index_state=FileState.UNKNOWN,
                worktree_state=FileState.UNKNOWN,
            ),
        )


__all__ = [
    "Analyzer",
    "count_lines",
    "parse_porcelain_status",
    "parse_unified_diff",
    "status_char_to_state",
]
