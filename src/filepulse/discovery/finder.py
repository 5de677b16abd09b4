"""Recently-modified file discovery backed by ``fd``."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from filepulse.config.models import DiscoverySettings
from filepulse.errors import BackendError, DiscoveryError, ToolMissingError, WarningCode, WarningLog
from filepulse.models import FileRecord
from filepulse.process import CommandRunner

LOGGER = logging.getLogger(__name__)

SEARCH_TOOLS = ("fd", "fdfind")


class FileFinder:
    """List regular files under a root changed within a time window."""

    def __init__(
        self,
        settings: DiscoverySettings,
        *,
        runner: CommandRunner,
        warnings: WarningLog,
    ) -> None:
        self.settings = settings
        self._runner = runner
        self._warnings = warnings

    def search_tool(self) -> str | None:
        """Return the installed search executable, if any."""
        return self._runner.first_available(SEARCH_TOOLS)

    def build_command(self, tool: str, root: Path, window: str) -> list[str]:
        args = [tool, "--type", "f", "--changed-within", window]
        args.extend(["--absolute-path", "--color", "never"])
        if self.settings.include_hidden:
            args.append("--hidden")
        if self.settings.no_ignore:
            args.append("--no-ignore")
        if self.settings.follow_symlinks:
            args.append("--follow")
        args.extend([".", str(root)])
        return args

    def discover(self, root: Path, window: str) -> list[FileRecord]:
        """Return unanalyzed records for files under ``root`` changed within ``window``.

        Args:
            root: Directory to search.
            window: Duration accepted by ``fd --changed-within`` (``24h``, ``7d``...).

        Returns:
            list[FileRecord]: Records in no particular order. Empty when the
            search tool is missing, in which case a warning is recorded.

        Raises:
            DiscoveryError: If the search tool ran but produced no usable listing.
        """
        window = window.strip()
        if not window:
            raise DiscoveryError("time window must not be empty")

        tool = self.search_tool()
        if tool is None:
            if self._warnings.tool_missing("fd", "file discovery"):
                LOGGER.warning("'fd' not found; install fd to enable file discovery.")
            return []

        root = root.expanduser().resolve()
        try:
            # fd exits 1 when parts of the tree were unreadable but still lists the rest.
            completed = self._runner.run(self.build_command(tool, root, window), ok_codes=(0, 1))
        except (BackendError, ToolMissingError) as exc:
            raise DiscoveryError(f"File search failed: {exc}") from exc

        if completed.returncode != 0:
            if not completed.stdout.strip():
                detail = completed.stderr.strip() or "no output"
                raise DiscoveryError(f"File search failed: {detail}")
            detail = completed.stderr.strip() or f"exit status {completed.returncode}"
            message = f"File search skipped unreadable paths: {detail}"
            self._warnings.add(WarningCode.FILE_SKIPPED, message, str(root))
            LOGGER.warning(message)

        records: list[FileRecord] = []
        for line in completed.stdout.splitlines():
            line = line.strip()
            if not line:
                continue
            record = self._to_record(Path(line), root)
            if record is not None:
                records.append(record)

        LOGGER.info("Found %d recently modified files under %s", len(records), root)
        return records

    def _to_record(self, path: Path, root: Path) -> FileRecord | None:
        try:
            stat = path.stat()
        except OSError as exc:
            self._warnings.add(
                WarningCode.FILE_SKIPPED, f"Could not stat file: {exc.strerror}", str(path)
            )
            LOGGER.warning("Could not process file %s: %s", path, exc)
            return None

        try:
            relative = path.relative_to(root)
        except ValueError:
            relative = Path(path.name)

        return FileRecord(
            relative_path=relative.as_posix(),
            absolute_path=str(path),
            modified_at=datetime.fromtimestamp(stat.st_mtime).astimezone(),
            size_bytes=stat.st_size,
        )


__all__ = ["FileFinder", "SEARCH_TOOLS"]
