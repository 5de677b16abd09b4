"""Dotfile backend built on ``yadm``."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from filepulse.errors import BackendError, ToolMissingError, WarningCode, WarningLog
from filepulse.models import TrackingKind
from filepulse.process import CommandRunner

from .vcs import VcsAnalyzer

LOGGER = logging.getLogger(__name__)

DOTFILE_TOOL = "yadm"


class DotfileIndex:
    """Files tracked by the dotfile manager, listed once per run on first use."""

    def __init__(
        self,
        home_dir: Path,
        *,
        runner: CommandRunner,
        warnings: WarningLog,
        timeout: float | None = None,
    ) -> None:
        self.home_dir = home_dir.expanduser().resolve()
        self._runner = runner
        self._warnings = warnings
        self._timeout = timeout
        self._lock = threading.Lock()
        self._tracked: frozenset[str] | None = None

    @property
    def tracked(self) -> frozenset[str]:
        with self._lock:
            if self._tracked is None:
                self._tracked = self._load()
            return self._tracked

    def contains(self, path: Path) -> bool:
        try:
            relative = path.relative_to(self.home_dir).as_posix()
        except ValueError:
            return False
        return relative in self.tracked

    def _load(self) -> frozenset[str]:
        if not self._runner.available(DOTFILE_TOOL):
            self._warnings.tool_missing(DOTFILE_TOOL, "dotfile tracking")
            LOGGER.info("'%s' not found; dotfile tracking disabled.", DOTFILE_TOOL)
            return frozenset()
        try:
            completed = self._runner.run(
                [DOTFILE_TOOL, "list", "-a"], cwd=self.home_dir, timeout=self._timeout
            )
        except (BackendError, ToolMissingError) as exc:
            self._warnings.add(WarningCode.BACKEND_ERROR, f"Could not list dotfiles: {exc}")
            LOGGER.warning("Could not list dotfiles: %s", exc)
            return frozenset()
        return frozenset(line.strip() for line in completed.stdout.splitlines() if line.strip())


class DotfileAnalyzer(VcsAnalyzer):
    """Compare dotfiles against the dotfile repository's ``HEAD``."""

    kind = TrackingKind.DOTFILE
    tool = DOTFILE_TOOL
    capability = "dotfile status and diff"

    def __init__(
        self,
        home_dir: Path,
        *,
        runner: CommandRunner,
        warnings: WarningLog,
        timeout: float | None = None,
    ) -> None:
        super().__init__(runner=runner, warnings=warnings, timeout=timeout)
        self.home_dir = home_dir.expanduser().resolve()

    def locate(self, path: Path) -> tuple[Path, str]:
        try:
            return self.home_dir, path.relative_to(self.home_dir).as_posix()
        except ValueError as exc:
            raise BackendError(f"{path} is outside {self.home_dir}") from exc

    def command(self, workdir: Path, *args: str) -> list[str]:
        return [DOTFILE_TOOL, *args]


__all__ = ["DOTFILE_TOOL", "DotfileIndex", "DotfileAnalyzer"]
