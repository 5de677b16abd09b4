"""Backup snapshot mount lifecycle."""

from .manager import SnapshotMountManager
from .models import MountSession, MountState

__all__ = ["MountSession", "MountState", "SnapshotMountManager"]
