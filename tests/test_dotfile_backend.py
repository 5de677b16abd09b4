"""Tests for the yadm dotfile index and backend."""

from pathlib import Path

from filepulse.backends import DotfileAnalyzer, DotfileIndex
from filepulse.backends.vcs import EMPTY_TREE
from filepulse.errors import WarningCode, WarningLog
from filepulse.models import DiffStats, FileState, TrackingKind

from conftest import FakeRunner, make_record

BASHRC_DIFF = """\
diff --git a/.bashrc b/.bashrc
--- a/.bashrc
+++ b/.bashrc
@@ -3,2 +3,3 @@
 export EDITOR=vim
+alias ll='ls -l'
+alias la='ls -a'
-alias l='ls'
"""


def test_index_lists_tracked_files_once(tmp_path: Path) -> None:
    runner = FakeRunner(tools={"yadm"})
    runner.on("yadm", "list", stdout=".bashrc\n.config/nvim/init.lua\n")
    index = DotfileIndex(tmp_path, runner=runner, warnings=WarningLog())

    assert index.contains(tmp_path / ".bashrc")
    assert index.contains(tmp_path / ".config" / "nvim" / "init.lua")
    assert not index.contains(tmp_path / ".profile")
    assert not index.contains(Path("/etc/hosts"))
    assert runner.commands_starting_with("yadm", "list") == [["yadm", "list", "-a"]]


def test_index_without_yadm_is_empty(tmp_path: Path) -> None:
    warnings = WarningLog()
    index = DotfileIndex(tmp_path, runner=FakeRunner(), warnings=warnings)

    assert not index.contains(tmp_path / ".bashrc")
    [warning] = warnings.snapshot()
    assert warning.code is WarningCode.TOOL_MISSING


def test_index_listing_failure_is_recorded(tmp_path: Path) -> None:
    runner = FakeRunner(tools={"yadm"})
    runner.on("yadm", "list", stderr="no repo", returncode=1)
    warnings = WarningLog()
    index = DotfileIndex(tmp_path, runner=runner, warnings=warnings)

    assert index.tracked == frozenset()
    assert warnings.snapshot()[0].code is WarningCode.BACKEND_ERROR


def test_modified_dotfile_reports_diff(tmp_path: Path) -> None:
    runner = FakeRunner(tools={"yadm"})
    runner.on("yadm", "status", stdout=" M .bashrc\n")
    runner.on("yadm", "diff", stdout=BASHRC_DIFF)
    analyzer = DotfileAnalyzer(tmp_path, runner=runner, warnings=WarningLog())

    result = analyzer.analyze(make_record(".bashrc", root=tmp_path.resolve()))

    assert result.tracking is TrackingKind.DOTFILE
    assert result.status.worktree_state is FileState.MODIFIED
    assert result.diff == DiffStats(additions=2, deletions=1, chunks=1)
    [diff_call] = runner.commands_starting_with("yadm", "diff")
    assert diff_call[-3:] == ["HEAD", "--", ".bashrc"]


def test_clean_dotfile_skips_diff(tmp_path: Path) -> None:
    runner = FakeRunner(tools={"yadm"})
    analyzer = DotfileAnalyzer(tmp_path, runner=runner, warnings=WarningLog())

    result = analyzer.analyze(make_record(".vimrc", root=tmp_path.resolve()))

    assert result.status.is_clean
    assert result.diff == DiffStats()
    assert runner.commands_starting_with("yadm", "diff") == []


def test_repository_without_commits_uses_empty_tree(tmp_path: Path) -> None:
    runner = FakeRunner(tools={"yadm"})
    runner.on("yadm", "rev-parse", returncode=1)
    runner.on("yadm", "status", stdout="A  .zshrc\n")
    analyzer = DotfileAnalyzer(tmp_path, runner=runner, warnings=WarningLog())

    analyzer.analyze(make_record(".zshrc", root=tmp_path.resolve()))

    [diff_call] = runner.commands_starting_with("yadm", "diff")
    assert EMPTY_TREE in diff_call


def test_dotfile_outside_home_is_an_error(tmp_path: Path) -> None:
    warnings = WarningLog()
    analyzer = DotfileAnalyzer(
        tmp_path / "home", runner=FakeRunner(tools={"yadm"}), warnings=warnings
    )

    result = analyzer.analyze(make_record("hosts", root=Path("/etc")))

    assert result.status.worktree_state is FileState.ERROR
    assert warnings.snapshot()[0].code is WarningCode.BACKEND_ERROR
