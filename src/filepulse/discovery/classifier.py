"""Assign each discovered file to the backend that tracks it."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Protocol

from filepulse.models import FileRecord, TrackingKind

REPOSITORY_MARKER = ".git"


class TrackedFileIndex(Protocol):
    """Membership test over the dotfile manager's tracked files."""

    def contains(self, path: Path) -> bool: ...


class RepositoryLocator:
    """Find the version-control root owning a path, bounded by the home directory.

    Lookups are cached per directory and shared by the classifier and the git
    backend so each directory is probed once per run.
    """

    def __init__(self, home_dir: Path) -> None:
        self.home_dir = home_dir.expanduser().resolve()
        self._lock = threading.Lock()
        self._roots: dict[Path, Path | None] = {}

    def find_root(self, path: Path) -> Path | None:
        """Return the closest ancestor of ``path`` holding a ``.git`` marker.

        The walk stops before reaching the home directory or the filesystem
        root; neither is tested.
        """
        start = path.parent
        visited: list[Path] = []
        found: Path | None = None
        directory = start
        while directory != directory.parent and directory != self.home_dir:
            with self._lock:
                if directory in self._roots:
                    found = self._roots[directory]
                    break
            visited.append(directory)
            if (directory / REPOSITORY_MARKER).exists():
                found = directory
                break
            directory = directory.parent

        with self._lock:
            for entry in visited:
                self._roots[entry] = found
        return found


class TrackingClassifier:
    """Route files to the git, dotfile, or snapshot backend."""

    def __init__(self, locator: RepositoryLocator, dotfiles: TrackedFileIndex) -> None:
        self._locator = locator
        self._dotfiles = dotfiles

    def classify(self, record: FileRecord) -> TrackingKind:
        """Return ``GIT``, ``DOTFILE``, or ``UNTRACKED`` for ``record``.

        A repository marker found while walking up wins over dotfile
        membership. ``UNTRACKED`` files are resolved to ``SNAPSHOT`` or ``NEW``
        by the snapshot backend once a baseline is known.
        """
        path = Path(record.absolute_path)
        if self._locator.find_root(path) is not None:
            return TrackingKind.GIT
        if self._dotfiles.contains(path):
            return TrackingKind.DOTFILE
        return TrackingKind.UNTRACKED


__all__ = ["REPOSITORY_MARKER", "RepositoryLocator", "TrackingClassifier", "TrackedFileIndex"]
