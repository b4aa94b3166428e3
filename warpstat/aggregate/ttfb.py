"""Time-to-first-byte statistics in milliseconds."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..bench.durations import MILLISECOND, format_duration
from ..bench.segment import TTFB as BenchTTFB
from .units import dur_to_millis


@dataclass
class TTFB:
    """Times to first byte, in milliseconds."""

    average_millis: int = 0
    fastest_millis: int = 0
    p25_millis: int = 0
    median_millis: int = 0
    p75_millis: int = 0
    p90_millis: int = 0
    p99_millis: int = 0
    slowest_millis: int = 0
    std_dev_millis: int = 0
    percentiles_millis: list[int] = field(default_factory=lambda: [0] * 101)

    def __str__(self) -> str:
        if self.average_millis == 0:
            return ""

        def ms(value: int) -> str:
            return format_duration(value * MILLISECOND)

        return (
            f"Avg: {ms(self.average_millis)}, Best: {ms(self.fastest_millis)}, "
            f"25th: {ms(self.p25_millis)}, Median: {ms(self.median_millis)}, "
            f"75th: {ms(self.p75_millis)}, 90th: {ms(self.p90_millis)}, "
            f"99th: {ms(self.p99_millis)}, Worst: {ms(self.slowest_millis)} "
            f"StdDev: {ms(self.std_dev_millis)}"
        )


def ttfb_from_bench(t: BenchTTFB) -> Optional[TTFB]:
    """Convert nanosecond statistics; None when there is no data."""
    if t.average <= 0:
        return None
    return TTFB(
        average_millis=dur_to_millis(t.average),
        slowest_millis=dur_to_millis(t.worst),
        p25_millis=dur_to_millis(t.p25),
        median_millis=dur_to_millis(t.median),
        p75_millis=dur_to_millis(t.p75),
        p90_millis=dur_to_millis(t.p90),
        p99_millis=dur_to_millis(t.p99),
        std_dev_millis=dur_to_millis(t.std_dev),
        fastest_millis=dur_to_millis(t.best),
        percentiles_millis=[dur_to_millis(v) for v in t.percentiles],
    )