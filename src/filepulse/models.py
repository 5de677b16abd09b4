"""Core data models shared by discovery, the backends, and reporting."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TrackingKind(str, Enum):
    """System of record used to judge whether a file changed."""

    GIT = "Git"
    DOTFILE = "Dotfile"
    SNAPSHOT = "Snapshot"
    NEW = "New"
    UNTRACKED = "Untracked"


class FileState(str, Enum):
    """State of a file in one column of a status listing."""

    CLEAN = "Clean"
    ADDED = "Added"
    MODIFIED = "Modified"
    DELETED = "Deleted"
    UNTRACKED = "Untracked"
    UNMERGED = "Unmerged"
    RENAMED = "Renamed"
    COPIED = "Copied"
    UNKNOWN = "Unknown"
    ERROR = "Error"


class FileStatus(BaseModel):
    """Two-column status of a file relative to its baseline.

    Attributes:
        raw_code: Two-character status code (``--`` when nothing is reported).
        index_state: State recorded in the backend's index or staging area.
        worktree_state: State of the working copy relative to the baseline.
    """

    model_config = ConfigDict(frozen=True)

    raw_code: str = Field(default="--", min_length=2, max_length=2)
    index_state: FileState = FileState.CLEAN
    worktree_state: FileState = FileState.CLEAN

    @property
    def is_clean(self) -> bool:
        return self.worktree_state is FileState.CLEAN

    @classmethod
    def error(cls) -> "FileStatus":
        return cls(raw_code="!!", index_state=FileState.ERROR, worktree_state=FileState.ERROR)


class DiffStats(BaseModel):
    """Line-level change counts parsed from a unified diff."""

    model_config = ConfigDict(frozen=True)

    additions: int = Field(default=0, ge=0)
    deletions: int = Field(default=0, ge=0)
    chunks: int = Field(default=0, ge=0)

    @property
    def changes(self) -> int:
        return self.additions + self.deletions


class BackendResult(BaseModel):
    """Outcome of analyzing a single file with one backend."""

    model_config = ConfigDict(frozen=True)

    tracking: TrackingKind
    status: FileStatus
    diff: DiffStats = Field(default_factory=DiffStats)

    @model_validator(mode="after")
    def _clean_means_unchanged(self) -> "BackendResult":
        _check_clean_invariant(self.status, self.diff)
        return self


class FileRecord(BaseModel):
    """A discovered file and, once analyzed, its tracking backend and changes.

    Attributes:
        relative_path: Path relative to the analyzed root.
        absolute_path: Absolute filesystem path.
        modified_at: Local, timezone-aware modification time.
        size_bytes: File size at discovery time.
        tracking: Backend that produced ``status``/``diff``; ``None`` until analyzed.
        status: Status relative to the backend baseline.
        diff: Change counts relative to the backend baseline.
    """

    model_config = ConfigDict(frozen=True)

    relative_path: str
    absolute_path: str
    modified_at: datetime
    size_bytes: int = Field(ge=0)
    tracking: Optional[TrackingKind] = None
    status: FileStatus = Field(default_factory=FileStatus)
    diff: DiffStats = Field(default_factory=DiffStats)

    @model_validator(mode="after")
    def _clean_means_unchanged(self) -> "FileRecord":
        _check_clean_invariant(self.status, self.diff)
        return self

    @property
    def is_analyzed(self) -> bool:
        return self.tracking is not None

    def with_result(self, result: BackendResult) -> "FileRecord":
        """Return a copy carrying the backend result.

        Raises:
            ValueError: If the record was already analyzed.
        """
        if self.tracking is not None:
            raise ValueError(
                f"{self.relative_path} is already tracked as {self.tracking.value}"
            )
        return self.model_copy(
            update={"tracking": result.tracking, "status": result.status, "diff": result.diff}
        )


def _check_clean_invariant(status: FileStatus, diff: DiffStats) -> None:
    if status.worktree_state is FileState.CLEAN and diff.changes:
        raise ValueError("a clean file cannot report added or removed lines")


__all__ = [
    "TrackingKind",
    "FileState",
    "FileStatus",
    "DiffStats",
    "BackendResult",
    "FileRecord",
]
