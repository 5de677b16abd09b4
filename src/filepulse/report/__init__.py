"""Hourly activity reports."""

from .aggregator import build_report, format_size, summarize
from .models import ActivitySummary, HourlyBucket, Report, ReportMetadata
from .render import render_report

__all__ = [
    "ActivitySummary",
    "HourlyBucket",
    "Report",
    "ReportMetadata",
    "build_report",
    "format_size",
    "render_report",
    "summarize",
]
