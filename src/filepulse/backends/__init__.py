"""Tracking backends that compute per-file status and diff statistics."""

from .base import Analyzer, count_lines, parse_porcelain_status, parse_unified_diff
from .dotfile import DotfileAnalyzer, DotfileIndex
from .git import GitAnalyzer
from .snapshot import SnapshotAnalyzer, UntrackedAnalyzer, untracked_result

__all__ = [
    "Analyzer",
    "DotfileAnalyzer",
    "DotfileIndex",
    "GitAnalyzer",
    "SnapshotAnalyzer",
    "UntrackedAnalyzer",
    "count_lines",
    "parse_porcelain_status",
    "parse_unified_diff",
    "untracked_result",
]
