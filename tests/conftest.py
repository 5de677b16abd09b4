"""Shared fixtures: a scripted command runner and record factories."""

from __future__ import annotations

import subprocess
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Sequence

import pytest

from filepulse.errors import BackendError, ToolMissingError
from filepulse.models import FileRecord
from filepulse.process import CommandRunner

Response = subprocess.CompletedProcess
Handler = Callable[[list[str]], "Response[str] | BaseException"]


class FakeRunner(CommandRunner):
    """CommandRunner answering from scripted responses instead of running tools."""

    def __init__(self, tools: Iterable[str] = ()) -> None:
        super().__init__()
        self.tools = set(tools)
        self.calls: list[list[str]] = []
        self._handlers: list[tuple[tuple[str, ...], Handler]] = []

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if name in self.tools else None

    def on(
        self,
        *prefix: str,
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
        handler: Handler | None = None,
    ) -> None:
        """Answer commands starting with ``prefix``; later registrations win."""

        def _respond(args: list[str]) -> Response[str]:
            return subprocess.CompletedProcess(args, returncode, stdout, stderr)

        self._handlers.insert(0, (prefix, handler or _respond))

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | str | None = None,
        timeout: float | None = None,
        ok_codes: Iterable[int] = (0,),
    ) -> Response[str]:
        command = list(args)
        self.calls.append(command)
        if not self.available(command[0]):
            raise ToolMissingError(command[0])
        for prefix, handler in self._handlers:
            if tuple(command[: len(prefix)]) == prefix:
                outcome = handler(command)
                break
        else:
            outcome = subprocess.CompletedProcess(command, 0, "", "")
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome.returncode not in tuple(ok_codes):
            raise BackendError(f"{command[0]} failed: {outcome.stderr or outcome.returncode}")
        return outcome

    def commands_starting_with(self, *prefix: str) -> list[list[str]]:
        return [call for call in self.calls if tuple(call[: len(prefix)]) == prefix]


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


def make_record(
    relative_path: str,
    *,
    root: Path | None = None,
    modified_at: datetime | None = None,
    size_bytes: int = 0,
) -> FileRecord:
    base = root or Path("/work")
    return FileRecord(
        relative_path=relative_path,
        absolute_path=str(base / relative_path),
        modified_at=modified_at or datetime(2025, 7, 7, 14, 23),
        size_bytes=size_bytes,
    )


class FakeProcess:
    def __init__(self, *, exits_on_terminate: bool = True) -> None:
        self.pid = 4242
        self.returncode: int | None = None
        self.exits_on_terminate = exits_on_terminate
        self.terminated = False
        self.killed = False

    def poll(self) -> int | None:
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        if self.exits_on_terminate:
            self.returncode = -15

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9

    def wait(self, timeout: float | None = None) -> int:
        if self.returncode is None:
            raise subprocess.TimeoutExpired("restic", timeout or 0)
        return self.returncode


class FakePopen:
    """Popen stand-in that optionally populates the mount point when spawned."""

    def __init__(self, mount_point: Path, *, populate: bool = True, **process: Any) -> None:
        self.mount_point = mount_point
        self.populate = populate
        self.process_options = process
        self.calls: list[tuple[list[str], dict[str, Any]]] = []
        self.processes: list[FakeProcess] = []

    def __call__(self, args: list[str], **kwargs: Any) -> FakeProcess:
        self.calls.append((args, kwargs))
        if self.populate:
            populate_mount(self.mount_point)
        process = FakeProcess(**self.process_options)
        self.processes.append(process)
        return process




def populate_mount(mount_point: Path) -> None:
    """Make ``mount_point`` look like a mounted snapshot tree."""
    (mount_point / "snapshots").mkdir(parents=True, exist_ok=True)
