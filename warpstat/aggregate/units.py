"""Unit conversions shared by the aggregated statistics."""

from __future__ import annotations

from ..bench.durations import MILLISECOND, round_duration


def dur_to_millis(d: int) -> int:
    """Convert a duration in nanoseconds to whole milliseconds, rounded to nearest."""
    return round_duration(d, MILLISECOND) // MILLISECOND