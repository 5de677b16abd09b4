"""Configuration models describing filepulse settings."""

from __future__ import annotations

import os
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FilePulseBaseModel(BaseModel):
    """Shared configuration for filepulse Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class PathSettings(FilePulseBaseModel):
    """Filesystem locations used during analysis.

    Attributes:
        home_dir: Home directory bounding the repository search and snapshot lookup.
        mount_point: Directory where the backup repository is mounted.
        repository: Backup repository identifier passed to the mount utility.
    """

    home_dir: str = "~"
    mount_point: str = "~/mnt/restic"
    repository: str = Field(default_factory=lambda: os.environ.get("RESTIC_REPOSITORY", ""))


class BackupSettings(FilePulseBaseModel):
    """Backup snapshot mount options.

    Attributes:
        mount_timeout: Seconds to wait for the mount point to populate.
        poll_interval_seconds: Delay between readiness checks.
        snapshot_subpath: Path below the mount point holding the latest home snapshot.
        mount_command: Executable used to mount the repository.
        unmount_command: Executable used to release a mount left behind.
        terminate_timeout_seconds: Grace period after SIGTERM before SIGKILL.
    """

    mount_timeout: int = Field(default=60, gt=0)
    poll_interval_seconds: float = Field(default=1.0, gt=0)
    snapshot_subpath: str = "snapshots/latest/home"
    mount_command: str = "restic"
    unmount_command: str = "umount"
    terminate_timeout_seconds: float = Field(default=10.0, gt=0)


class TerminalSettings(FilePulseBaseModel):
    """Terminal emulator used to host interactive mount sessions.

    Attributes:
        command: Terminal executable.
        args: Arguments placed between the terminal and the wrapped command.
        enabled: Whether to wrap the mount process in a terminal at all.
    """

    command: str = "kitty"
    args: str = "-e"
    enabled: bool = True


class DisplaySettings(FilePulseBaseModel):
    """Presentation preferences.

    Attributes:
        time_format: ``strftime`` pattern for modification times.
    """

    time_format: str = "%Y-%m-%d %H:%M:%S"

    @field_validator("time_format")
    @classmethod
    def _check_time_format(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("time_format must not be empty")
        try:
            datetime(2000, 1, 2, 3, 4, 5).strftime(value)
        except ValueError as exc:
            raise ValueError(f"invalid time_format {value!r}: {exc}") from exc
        return value


class DiscoverySettings(FilePulseBaseModel):
    """File search options.

    Attributes:
        include_hidden: Whether hidden files and directories are searched.
        no_ignore: Whether ``.gitignore``-style ignore files are disregarded.
        follow_symlinks: Whether symbolic links are traversed.
    """

    include_hidden: bool = True
    no_ignore: bool = False
    follow_symlinks: bool = False


class AnalysisSettings(FilePulseBaseModel):
    """Per-file analysis options.

    Attributes:
        workers: Size of the worker pool; ``1`` analyzes files sequentially.
        command_timeout_seconds: Timeout applied to each status/diff invocation.
        snapshot_enabled: Whether untracked files are compared against the backup.
    """

    workers: int = Field(default=1, ge=1)
    command_timeout_seconds: float = Field(default=15.0, gt=0)
    snapshot_enabled: bool = True


class LoggingSettings(FilePulseBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file_path: Optional log file; console-only when unset.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file_path: Optional[str] = None
    max_size_mb: int = Field(default=10, gt=0)
    backup_count: int = Field(default=3, ge=0)

    @field_validator("level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        normalized = value.upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown logging level {value!r}")
        return normalized


class FilePulseConfig(FilePulseBaseModel):
    """Top-level configuration struct for filepulse.

    Attributes:
        paths: Filesystem locations.
        backup: Backup snapshot mount options.
        terminal: Terminal used for interactive mounts.
        display: Presentation preferences.
        discovery: File search options.
        analysis: Per-file analysis options.
        logging: Logging configuration.
    """

    paths: PathSettings = Field(default_factory=PathSettings)
    backup: BackupSettings = Field(default_factory=BackupSettings)
    terminal: TerminalSettings = Field(default_factory=TerminalSettings)
    display: DisplaySettings = Field(default_factory=DisplaySettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


__all__ = [
    "FilePulseBaseModel",
    "PathSettings",
    "BackupSettings",
    "TerminalSettings",
    "DisplaySettings",
    "DiscoverySettings",
    "AnalysisSettings",
    "LoggingSettings",
    "FilePulseConfig",
]
