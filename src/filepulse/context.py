"""Run-scoped state shared by the analysis components."""

from __future__ import annotations

import logging
import signal
import threading
from pathlib import Path
from types import TracebackType
from typing import Any

from filepulse.backends.dotfile import DotfileIndex
from filepulse.config.models import FilePulseConfig
from filepulse.discovery.classifier import RepositoryLocator
from filepulse.errors import WarningLog
from filepulse.mount import SnapshotMountManager
from filepulse.mount.manager import PopenFactory
from filepulse.process import CommandRunner

LOGGER = logging.getLogger(__name__)


# Closing the controlling terminal sends SIGHUP.
_CLEANUP_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGTERM", "SIGHUP") if hasattr(signal, name)
)


def _raise_system_exit(signum: int, _frame: Any) -> None:
    raise SystemExit(128 + signum)


class RunContext:
    """Caches, warnings, and the snapshot mount for a single analysis run.

    Use as a context manager: leaving the ``with`` block, normally or through
    an exception, releases the snapshot mount exactly once. While active,
    SIGTERM and SIGHUP are turned into ``SystemExit`` so the release also runs
    when the process is asked to terminate or loses its terminal.
    """

    def __init__(
        self,
        config: FilePulseConfig,
        *,
        runner: CommandRunner | None = None,
        popen: PopenFactory | None = None,
    ) -> None:
        self.config = config
        self.runner = runner or CommandRunner()
        self.warnings = WarningLog()
        self.home_dir = Path(config.paths.home_dir).expanduser().resolve()
        self.locator = RepositoryLocator(self.home_dir)
        self.dotfiles = DotfileIndex(
            self.home_dir,
            runner=self.runner,
            warnings=self.warnings,
            timeout=config.analysis.command_timeout_seconds,
        )
        self._popen = popen
        self._lock = threading.Lock()
        self._mounts: SnapshotMountManager | None = None
        self._previous_handlers: dict[signal.Signals, Any] = {}
        self._closed = False

    @property
    def mounts(self) -> SnapshotMountManager:
        """Return the run's mount manager, creating it on first use."""
        with self._lock:
            if self._mounts is None:
                options: dict[str, Any] = {}
                if self._popen is not None:
                    options["popen"] = self._popen
                self._mounts = SnapshotMountManager(
                    self.config.paths,
                    self.config.backup,
                    self.config.terminal,
                    runner=self.runner,
                    warnings=self.warnings,
                    **options,
                )
            return self._mounts

    @property
    def mounts_created(self) -> bool:
        with self._lock:
            return self._mounts is not None

    def close(self) -> None:
        """Release run resources; later calls do nothing."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            mounts = self._mounts
        if mounts is not None:
            mounts.cleanup()

    def __enter__(self) -> "RunContext":
        if threading.current_thread() is threading.main_thread():
            for signum in _CLEANUP_SIGNALS:
                self._previous_handlers[signum] = signal.signal(signum, _raise_system_exit)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        try:
            self.close()
        finally:
            while self._previous_handlers:
                signum, previous = self._previous_handlers.popitem()
                signal.signal(signum, previous if previous is not None else signal.SIG_DFL)


__all__ = ["RunContext"]
