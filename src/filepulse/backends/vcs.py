"""Git-style status/diff analysis shared by the git and dotfile backends."""

from __future__ import annotations

import logging
import threading
from abc import abstractmethod
from pathlib import Path

from filepulse.errors import BackendError, ToolMissingError, WarningLog
from filepulse.models import BackendResult, DiffStats, FileRecord, FileState
from filepulse.process import CommandRunner

from .base import Analyzer, parse_porcelain_status, parse_unified_diff

LOGGER = logging.getLogger(__name__)

# Object id of the empty tree; diff baseline for repositories without commits.
EMPTY_TREE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"


class VcsAnalyzer(Analyzer):
    """Run ``status --porcelain`` and ``diff <head>`` through a git-compatible tool."""

    tool: str
    capability: str

    def __init__(
        self,
        *,
        runner: CommandRunner,
        warnings: WarningLog,
        timeout: float | None = None,
    ) -> None:
        super().__init__(warnings=warnings)
        self._runner = runner
        self._timeout = timeout
        self._head_lock = threading.Lock()
        self._heads: dict[Path, str] = {}

    @abstractmethod
    def locate(self, path: Path) -> tuple[Path, str]:
        """Return the working directory for commands and the pathspec for ``path``.

        Raises:
            BackendError: If no owning repository can be determined.
        """

    @abstractmethod
    def command(self, workdir: Path, *args: str) -> list[str]:
        """Build the tool invocation for ``args`` run against ``workdir``."""

    def analyze(self, record: FileRecord) -> BackendResult:
        if not self._runner.available(self.tool):
            if self._warnings.tool_missing(self.tool, self.capability):
                LOGGER.warning("'%s' not found; skipping %s.", self.tool, self.capability)
            return self.unavailable_result()

        try:
            workdir, pathspec = self.locate(Path(record.absolute_path))
            status_output = self._run(workdir, "status", "--porcelain=v1", "--", pathspec)
            status = parse_porcelain_status(status_output)
            if status.is_clean or status.worktree_state is FileState.UNTRACKED:
                diff = DiffStats()
            else:
                head = self.head_ref(workdir)
                diff_output = self._run(
                    workdir, "diff", "--no-color", "--no-ext-diff", head, "--", pathspec
                )
                diff = parse_unified_diff(diff_output)
        except (BackendError, ToolMissingError) as exc:
            return self.error_result(record, str(exc))

        LOGGER.debug("%s %s: %s %s", self.kind.value, record.relative_path, status.raw_code, diff)
        return BackendResult(tracking=self.kind, status=status, diff=diff)

    def head_ref(self, workdir: Path) -> str:
        """Return ``HEAD``, or the empty tree when the repository has no commits yet."""
        with self._head_lock:
            cached = self._heads.get(workdir)
        if cached is not None:
            return cached

        completed = self._runner.run(
            self.command(workdir, "rev-parse", "--verify", "--quiet", "HEAD"),
            cwd=workdir,
            timeout=self._timeout,
            ok_codes=(0, 1),
        )
        head = "HEAD" if completed.returncode == 0 else EMPTY_TREE
        with self._head_lock:
            self._heads[workdir] = head
        return head

    def _run(self, workdir: Path, *args: str) -> str:
        completed = self._runner.run(
            self.command(workdir, *args), cwd=workdir, timeout=self._timeout
        )
        return completed.stdout


__all__ = ["EMPTY_TREE", "VcsAnalyzer"]
