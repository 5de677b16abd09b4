"""Error taxonomy and the warning log that records degraded conditions."""

from __future__ import annotations

import threading
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class FilePulseError(Exception):
    """Base exception for filepulse operations."""


class ToolMissingError(FilePulseError):
    """Raised when a required external utility is not installed."""

    def __init__(self, tool: str) -> None:
        super().__init__(f"'{tool}' command not found")
        self.tool = tool


class BackendError(FilePulseError):
    """Raised when a status or diff query fails for a file."""


class DiscoveryError(FilePulseError):
    """Raised when the file search could not produce a listing."""


class MountTimeoutError(FilePulseError):
    """Raised when the snapshot mount did not become ready in time."""


class UnmountError(FilePulseError):
    """Raised when a snapshot mount could not be released."""


class WarningCode(str, Enum):
    """Machine-readable identifiers for degraded conditions."""

    TOOL_MISSING = "tool_missing"
    BACKEND_ERROR = "backend_error"
    MOUNT_TIMEOUT = "mount_timeout"
    MOUNT_FAILED = "mount_failed"
    SNAPSHOT_UNAVAILABLE = "snapshot_unavailable"
    UNMOUNT_FAILURE = "unmount_failure"
    FILE_SKIPPED = "file_skipped"


class ActivityWarning(BaseModel):
    """A degraded condition surfaced to the caller alongside the report."""

    model_config = ConfigDict(frozen=True)

    code: WarningCode
    message: str
    path: Optional[str] = None


class WarningLog:
    """Thread-safe, append-only collection of warnings for one run."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[ActivityWarning] = []
        self._missing_tools: set[str] = set()

    def add(self, code: WarningCode, message: str, path: str | None = None) -> ActivityWarning:
        warning = ActivityWarning(code=code, message=message, path=path)
        with self._lock:
            self._items.append(warning)
        return warning

    def tool_missing(self, tool: str, capability: str) -> bool:
        """Record a missing tool once per run.

        Returns:
            bool: ``True`` when this is the first report for ``tool``.
        """
        with self._lock:
            if tool in self._missing_tools:
                return False
            self._missing_tools.add(tool)
            self._items.append(
                ActivityWarning(
                    code=WarningCode.TOOL_MISSING,
                    message=f"'{tool}' not found; {capability} skipped.",
                )
            )
        return True

    def snapshot(self) -> list[ActivityWarning]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


__all__ = [
    "FilePulseError",
    "ToolMissingError",
    "BackendError",
    "DiscoveryError",
    "MountTimeoutError",
    "UnmountError",
    "WarningCode",
    "ActivityWarning",
    "WarningLog",
]
