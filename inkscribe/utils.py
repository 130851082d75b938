"""
inkscribe.utils - Shared time formatting helpers.

Contains the duration and timestamp formats used across the pipeline.
"""

from __future__ import annotations

import re

TIMESTAMP_TAG_RE = re.compile(r"\[(\d{2}):(\d{2}):(\d{2})\]")


def format_duration(seconds: float) -> str:
    """Format seconds as M:SS.

    Minutes are not wrapped into hours, so 75 minutes is "75:00".

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string
    """
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"


def format_timestamp_ms(ms: int) -> str:
    """Format milliseconds as HH:MM:SS, truncating sub-second precision."""
    total_seconds = int(ms) // 1000
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    secs = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def parse_timestamp_ms(hours: str | int, minutes: str | int, seconds: str | int) -> int:
    """Convert HH, MM, SS components to milliseconds."""
    return (int(hours) * 3600 + int(minutes) * 60 + int(seconds)) * 1000


def format_size(size: float) -> str:
    """Format a byte count in human-readable form."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"
