"""Tests for porcelain status and unified diff parsing."""

from pathlib import Path

import pytest

from filepulse.backends import count_lines, parse_porcelain_status, parse_unified_diff
from filepulse.models import DiffStats, FileState

SAMPLE_DIFF = """\
diff --git a/src/a.rb b/src/a.rb
index 3b18e51..a1b2c3d 100644
--- a/src/a.rb
+++ b/src/a.rb
@@ -1,6 +1,9 @@
 class A
-  def old
+  def new
+    call
+    other
   end
@@ -20,3 +23,4 @@ end
-# removed
+# added
+# added again
"""


def test_parse_unified_diff_counts_lines_and_hunks() -> None:
    stats = parse_unified_diff(SAMPLE_DIFF)

    assert stats == DiffStats(additions=5, deletions=2, chunks=2)


def test_parse_unified_diff_ignores_file_headers() -> None:
    stats = parse_unified_diff("--- a/x\n+++ b/x\n")

    assert stats == DiffStats()


def test_parse_unified_diff_empty_output() -> None:
    assert parse_unified_diff("") == DiffStats()


@pytest.mark.parametrize(
    ("line", "index_state", "worktree_state"),
    [
        (" M src/a.rb", FileState.CLEAN, FileState.MODIFIED),
        ("MM src/a.rb", FileState.MODIFIED, FileState.MODIFIED),
        ("A  src/new.rb", FileState.ADDED, FileState.ADDED),
        (" D gone.txt", FileState.CLEAN, FileState.DELETED),
        ("?? scratch.txt", FileState.UNTRACKED, FileState.UNTRACKED),
        ("UU conflict.txt", FileState.UNMERGED, FileState.UNMERGED),
        ("R  old -> new", FileState.RENAMED, FileState.RENAMED),
        ("XY weird", FileState.UNKNOWN, FileState.UNKNOWN),
    ],
)
def test_parse_porcelain_status(
    line: str, index_state: FileState, worktree_state: FileState
) -> None:
    status = parse_porcelain_status(line + "\n")

    assert status.raw_code == line[:2]
    assert status.index_state is index_state
    assert status.worktree_state is worktree_state


def test_parse_porcelain_status_empty_is_clean() -> None:
    status = parse_porcelain_status("")

    assert status.raw_code == "--"
    assert status.is_clean
    assert status.index_state is FileState.CLEAN


def test_count_lines(tmp_path: Path) -> None:
    terminated = tmp_path / "terminated.txt"
    terminated.write_text("one\ntwo\nthree\n", encoding="utf-8")
    unterminated = tmp_path / "unterminated.txt"
    unterminated.write_text("one\ntwo", encoding="utf-8")
    empty = tmp_path / "empty.txt"
    empty.write_bytes(b"")

    assert count_lines(terminated) == 3
    assert count_lines(unterminated) == 2
    assert count_lines(empty) == 0
    assert count_lines(tmp_path / "missing.txt") == 0
