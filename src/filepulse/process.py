"""Thin wrapper around external command execution."""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
import threading
from pathlib import Path
from typing import Iterable, Sequence

from filepulse.errors import BackendError, ToolMissingError

LOGGER = logging.getLogger(__name__)


class CommandRunner:
    """Locate and run external tools with timeouts and uniform errors."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._which_cache: dict[str, str | None] = {}

    def which(self, name: str) -> str | None:
        """Return the resolved executable path for ``name`` or ``None``."""
        with self._lock:
            if name not in self._which_cache:
                self._which_cache[name] = shutil.which(name)
            return self._which_cache[name]

    def available(self, name: str) -> bool:
        return self.which(name) is not None

    def first_available(self, names: Iterable[str]) -> str | None:
        """Return the first of ``names`` found on PATH."""
        for name in names:
            if self.available(name):
                return name
        return None

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | str | None = None,
        timeout: float | None = None,
        ok_codes: Iterable[int] = (0,),
    ) -> subprocess.CompletedProcess[str]:
        """Run ``args`` and return the completed process.

        Args:
            args: Command and arguments; ``args[0]`` is looked up on PATH.
            cwd: Working directory for the command.
            timeout: Seconds before the command is killed.
            ok_codes: Exit statuses treated as success.

        Returns:
            subprocess.CompletedProcess[str]: Completed process with text output.

        Raises:
            ToolMissingError: If the executable is not installed.
            BackendError: On timeout, launch failure, or an unexpected exit status.
        """
        tool = args[0]
        if not self.available(tool):
            raise ToolMissingError(tool)

        command = shlex.join(args)
        LOGGER.debug("Running %s (cwd=%s)", command, cwd)
        try:
            completed = subprocess.run(
                list(args),
                cwd=str(cwd) if cwd is not None else None,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ToolMissingError(tool) from exc
        except subprocess.TimeoutExpired as exc:
            raise BackendError(f"{command} timed out after {timeout}s") from exc
        except OSError as exc:
            raise BackendError(f"{command} could not be started: {exc}") from exc

        if completed.returncode not in tuple(ok_codes):
            detail = completed.stderr.strip() or f"exit status {completed.returncode}"
            raise BackendError(f"{command} failed: {detail}")
        return completed


__all__ = ["CommandRunner"]
