"""Report data models produced by the aggregator."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from filepulse.errors import ActivityWarning
from filepulse.models import FileRecord, TrackingKind


def _empty_tracking_counts() -> Dict[str, int]:
    return {kind.value: 0 for kind in TrackingKind}


class ActivitySummary(BaseModel):
    """Aggregate statistics over a set of file records.

    Attributes:
        total_files: Number of records.
        active_hours: Number of distinct hour buckets.
        modified_files: Records whose worktree state is not clean.
        by_tracking: Record count per tracking kind, every kind present.
        total_additions: Sum of added lines.
        total_deletions: Sum of removed lines.
        total_chunks: Sum of diff hunks.
        top_files: Up to five paths with the most changed lines.
    """

    total_files: int = 0
    active_hours: int = 0
    modified_files: int = 0
    by_tracking: Dict[str, int] = Field(default_factory=_empty_tracking_counts)
    total_additions: int = 0
    total_deletions: int = 0
    total_chunks: int = 0
    top_files: List[str] = Field(default_factory=list)


class HourlyBucket(BaseModel):
    """Records modified within one wall-clock hour.

    Attributes:
        key: ``YYYY-MM-DD HH`` grouping key.
        label: Human-readable span of the hour.
        start: First instant of the hour.
        end: Last minute of the hour.
        records: Records in discovery order.
        summary: Statistics scoped to this bucket.
    """

    key: str
    label: str
    start: datetime
    end: datetime
    records: List[FileRecord] = Field(default_factory=list)
    summary: ActivitySummary = Field(default_factory=ActivitySummary)


class ReportMetadata(BaseModel):
    """Context describing how a report was produced."""

    generated_at: datetime
    root: Optional[str] = None
    time_window: Optional[str] = None


class Report(BaseModel):
    """Overall summary plus hourly buckets in ascending time order."""

    metadata: ReportMetadata
    summary: ActivitySummary = Field(default_factory=ActivitySummary)
    buckets: List[HourlyBucket] = Field(default_factory=list)
    warnings: List[ActivityWarning] = Field(default_factory=list)
    discovery_available: bool = True

    def records(self) -> list[FileRecord]:
        """Return every record, bucket by bucket."""
        return [record for bucket in self.buckets for record in bucket.records]


__all__ = ["ActivitySummary", "HourlyBucket", "ReportMetadata", "Report"]
