"""Mount session state for the backup snapshot filesystem."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class MountState(str, Enum):
    """Lifecycle states of a snapshot mount."""

    NOT_MOUNTED = "NotMounted"
    MOUNTING = "Mounting"
    MOUNTED = "Mounted"
    FAILED = "Failed"
    UNMOUNTED = "Unmounted"

    @property
    def is_terminal(self) -> bool:
        return self in (MountState.FAILED, MountState.UNMOUNTED)


@dataclass(slots=True)
class MountSession:
    """The single snapshot mount used during a run.

    Attributes:
        repository_id: Backup repository passed to the mount utility.
        mount_point: Directory the repository is mounted on.
        timeout_seconds: Seconds to wait for the mount point to populate.
        state: Current lifecycle state.
        process: Handle of the mount process this session spawned.
        owns_mount: Whether this session created the mount it holds.
    """

    repository_id: str
    mount_point: Path
    timeout_seconds: int
    state: MountState = MountState.NOT_MOUNTED
    process: Optional[subprocess.Popen] = None
    owns_mount: bool = False


__all__ = ["MountState", "MountSession"]
