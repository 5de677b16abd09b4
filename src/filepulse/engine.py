"""Orchestrate discovery, classification, backend analysis, and reporting."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Sequence

from filepulse.backends import (
    Analyzer,
    DotfileAnalyzer,
    GitAnalyzer,
    SnapshotAnalyzer,
    UntrackedAnalyzer,
)
from filepulse.config import ConfigManager
from filepulse.config.models import FilePulseConfig
from filepulse.context import RunContext
from filepulse.discovery import FileFinder, TrackingClassifier
from filepulse.errors import DiscoveryError, FilePulseError
from filepulse.models import BackendResult, FileRecord, TrackingKind
from filepulse.mount.manager import PopenFactory
from filepulse.process import CommandRunner
from filepulse.report import Report, build_report

LOGGER = logging.getLogger(__name__)

DEFAULT_WINDOW = "24h"


class ActivityAnalyzer:
    """Produce an hourly activity report for recently modified files."""

    def __init__(
        self,
        config: FilePulseConfig,
        *,
        runner: CommandRunner | None = None,
        popen: PopenFactory | None = None,
    ) -> None:
        self._config = config
        self._runner = runner
        self._popen = popen

    def run(self, directory: Path | str, time_window: str = DEFAULT_WINDOW) -> Report:
        """Analyze files under ``directory`` modified within ``time_window``.

        Args:
            directory: Root directory to search.
            time_window: Duration accepted by ``fd --changed-within``.

        Returns:
            Report: Summary, hourly buckets, and any degraded-condition warnings.

        Raises:
            DiscoveryError: If the directory is missing or the file search failed.
        """
        root = Path(directory).expanduser().resolve()
        if not root.is_dir():
            raise DiscoveryError(f"{root} is not a directory")

        with RunContext(self._config, runner=self._runner, popen=self._popen) as context:
            finder = FileFinder(
                self._config.discovery, runner=context.runner, warnings=context.warnings
            )
            discovery_available = finder.search_tool() is not None
            records = finder.discover(root, time_window)
            analyzed = self._analyze(records, context) if records else []

        return build_report(
            analyzed,
            warnings=context.warnings.snapshot(),
            root=str(root),
            time_window=time_window,
            discovery_available=discovery_available,
        )

    def _analyze(self, records: Sequence[FileRecord], context: RunContext) -> list[FileRecord]:
        classifier = TrackingClassifier(context.locator, context.dotfiles)
        routed = [(record, classifier.classify(record)) for record in records]
        untracked = sum(1 for _, kind in routed if kind is TrackingKind.UNTRACKED)
        LOGGER.info("Analyzing %d files (%d untracked)", len(routed), untracked)

        analyzers = self._build_analyzers(context, needs_snapshot=untracked > 0)

        def analyze_one(item: tuple[FileRecord, TrackingKind]) -> FileRecord:
            record, kind = item
            return record.with_result(_run_analyzer(analyzers[kind], record))

        workers = self._config.analysis.workers
        if workers <= 1 or len(routed) <= 1:
            return [analyze_one(item) for item in routed]
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="filepulse") as pool:
            return list(pool.map(analyze_one, routed))

    def _build_analyzers(
        self, context: RunContext, *, needs_snapshot: bool
    ) -> dict[TrackingKind, Analyzer]:
        timeout = self._config.analysis.command_timeout_seconds
        untracked: Analyzer
        if needs_snapshot and self._config.analysis.snapshot_enabled:
            untracked = SnapshotAnalyzer(
                context.mounts,
                context.home_dir,
                runner=context.runner,
                warnings=context.warnings,
                timeout=timeout,
            )
        else:
            untracked = UntrackedAnalyzer(warnings=context.warnings)

        return {
            TrackingKind.GIT: GitAnalyzer(
                context.locator, runner=context.runner, warnings=context.warnings, timeout=timeout
            ),
            TrackingKind.DOTFILE: DotfileAnalyzer(
                context.home_dir, runner=context.runner, warnings=context.warnings, timeout=timeout
            ),
            TrackingKind.UNTRACKED: untracked,
        }


def _run_analyzer(analyzer: Analyzer, record: FileRecord) -> BackendResult:
    try:
        return analyzer.analyze(record)
    except (FilePulseError, OSError, ValueError) as exc:
        return analyzer.error_result(record, f"{analyzer.kind.value} analysis failed: {exc}")


def analyze(
    directory: Path | str,
    time_window: str = DEFAULT_WINDOW,
    *,
    config: FilePulseConfig | None = None,
) -> Report:
    """Analyze ``directory`` with ``config`` or the user's configuration file."""
    if config is None:
        config = ConfigManager().load(ensure_file=False)
    return ActivityAnalyzer(config).run(directory, time_window)


__all__ = ["ActivityAnalyzer", "DEFAULT_WINDOW", "analyze"]
