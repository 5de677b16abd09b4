"""Group analyzed file records into hourly buckets with summary statistics."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, Sequence

from filepulse.errors import ActivityWarning
from filepulse.models import FileRecord

from .models import ActivitySummary, HourlyBucket, Report, ReportMetadata

BUCKET_KEY_FORMAT = "%Y-%m-%d %H"
TOP_FILES_LIMIT = 5


def bucket_start(moment: datetime) -> datetime:
    """Truncate ``moment`` to the start of its hour."""
    return moment.replace(minute=0, second=0, microsecond=0)


def bucket_key(moment: datetime) -> str:
    return moment.strftime(BUCKET_KEY_FORMAT)


def bucket_label(start: datetime) -> str:
    """Return e.g. ``Monday, July 07, 2025 at 02:00 PM - 02:59 PM``."""
    end = start + timedelta(minutes=59)
    return f"{start.strftime('%A, %B %d, %Y at %I:%M %p')} - {end.strftime('%I:%M %p')}"


def format_size(size_bytes: int | float | None) -> str:
    """Format a byte count as ``512B``, ``1.5KB``, ``2.0MB`` or ``N/A``."""
    if size_bytes is None or isinstance(size_bytes, bool):
        return "N/A"
    units = ["B", "KB", "MB", "GB"]
    size = float(size_bytes)
    unit_index = 0
    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1
    if unit_index == 0:
        return f"{int(size)}{units[0]}"
    return f"{size:.1f}{units[unit_index]}"


def summarize(records: Sequence[FileRecord]) -> ActivitySummary:
    """Compute summary statistics for ``records``."""
    summary = ActivitySummary()
    hours: set[str] = set()
    for record in records:
        summary.total_files += 1
        hours.add(bucket_key(record.modified_at))
        if not record.status.is_clean:
            summary.modified_files += 1
        if record.tracking is not None:
            summary.by_tracking[record.tracking.value] += 1
        summary.total_additions += record.diff.additions
        summary.total_deletions += record.diff.deletions
        summary.total_chunks += record.diff.chunks
    summary.active_hours = len(hours)

    ranked = sorted(
        (record for record in records if record.diff.changes),
        key=lambda record: -record.diff.changes,
    )
    summary.top_files = [record.relative_path for record in ranked[:TOP_FILES_LIMIT]]
    return summary


def build_report(
    records: Iterable[FileRecord],
    *,
    warnings: Iterable[ActivityWarning] = (),
    root: str | None = None,
    time_window: str | None = None,
    generated_at: datetime | None = None,
    discovery_available: bool = True,
) -> Report:
    """Bucket ``records`` by hour of modification and summarize each bucket.

    The input is not modified; records keep their input order within a
    bucket and buckets are sorted ascending by key.
    """
    items = list(records)
    grouped: dict[str, list[FileRecord]] = {}
    starts: dict[str, datetime] = {}
    for record in items:
        key = bucket_key(record.modified_at)
        grouped.setdefault(key, []).append(record)
        starts.setdefault(key, bucket_start(record.modified_at))

    buckets = []
    for key in sorted(grouped):
        start = starts[key]
        buckets.append(
            HourlyBucket(
                key=key,
                label=bucket_label(start),
                start=start,
                end=start + timedelta(minutes=59, seconds=59),
                records=grouped[key],
                summary=summarize(grouped[key]),
            )
        )

    return Report(
        metadata=ReportMetadata(
            generated_at=generated_at or datetime.now(timezone.utc),
            root=root,
            time_window=time_window,
        ),
        summary=summarize(items),
        buckets=buckets,
        warnings=list(warnings),
        discovery_available=discovery_available,
    )


__all__ = [
    "BUCKET_KEY_FORMAT",
    "bucket_key",
    "bucket_label",
    "bucket_start",
    "build_report",
    "format_size",
    "summarize",
]
