"""Git working-tree backend."""

from __future__ import annotations

from pathlib import Path

from filepulse.discovery.classifier import RepositoryLocator
from filepulse.errors import BackendError, WarningLog
from filepulse.models import TrackingKind
from filepulse.process import CommandRunner

from .vcs import VcsAnalyzer


class GitAnalyzer(VcsAnalyzer):
    """Compare files inside a git work tree against the repository's ``HEAD``."""

    kind = TrackingKind.GIT
    tool = "git"
    capability = "git status and diff"

    def __init__(
        self,
        locator: RepositoryLocator,
        *,
        runner: CommandRunner,
        warnings: WarningLog,
        timeout: float | None = None,
    ) -> None:
        super().__init__(runner=runner, warnings=warnings, timeout=timeout)
        self._locator = locator

    def locate(self, path: Path) -> tuple[Path, str]:
        root = self._locator.find_root(path)
        if root is None:
            raise BackendError(f"{path} is not inside a git repository")
        return root, path.relative_to(root).as_posix()

    def command(self, workdir: Path, *args: str) -> list[str]:
        return ["git", "-C", str(workdir), *args]


__all__ = ["GitAnalyzer"]
