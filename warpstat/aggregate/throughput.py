"""Throughput summaries of benchmark runs and their time segments."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from ..bench.durations import MILLISECOND, format_clock, format_duration
from ..bench.operation import Throughput as BenchThroughput
from ..bench.segment import Segment, Segments
from .units import dur_to_millis

_MIB = 1 << 20


def _round_half_away(value: float) -> float:
    if not math.isfinite(value):
        return value
    return math.copysign(math.floor(abs(value) + 0.5), value)


def _fixed(value: float, places: int) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return f"{value:.{places}f}"


def _ieee_div(numerator: float, denominator: float) -> float:
    if denominator != 0:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator):
        return math.nan
    return math.copysign(math.inf, numerator)


def _speed(seg: Segment) -> tuple[float, float, float]:
    """MiB/s, ops ended/s and objects/s of a segment, also for empty segments."""
    if seg.ends_before != seg.start:
        return seg.speed_per_sec()
    return (
        _ieee_div(seg.total_bytes / _MIB, 0.0),
        _ieee_div(float(seg.ops_ended), 0.0),
        _ieee_div(float(seg.objects), 0.0),
    )


def _bps(seg: Segment) -> float:
    mib, _, _ = _speed(seg)
    return _round_half_away(mib * _MIB)


def _ops(seg: Segment) -> float:
    _, _, objs = _speed(seg)
    return _round_half_away(objs * 100) / 100


def bps_or_ops(bps: float, ops: float) -> str:
    """Bytes per second when non-zero, otherwise objects per second, as text."""
    if bps > 0:
        return str(BenchThroughput(bps))
    return f"{_fixed(ops, 2)} obj/s"


@dataclass
class SegmentSmall:
    """A compact time segment of a run; its length is kept elsewhere."""

    bps: float = 0.0
    ops: float = 0.0
    errors: int = 0
    start: int = 0

    def string_long(self, d: int, details: bool) -> str:
        """Speed text, with the duration ``d`` (nanoseconds) and start when ``details``."""
        speed = f"{BenchThroughput(self.bps)}, " if self.bps > 0 else ""
        detail = ""
        if details:
            detail = f" ({format_duration(d)}, starting {format_clock(self.start)})"
        return f"{speed}{_fixed(self.ops, 2)} obj/s{detail}"


def _clone_segments(segs: Segments) -> list[SegmentSmall]:
    return [
        SegmentSmall(bps=_bps(seg), ops=_ops(seg), errors=seg.errors, start=seg.start)
        for seg in segs
    ]


@dataclass
class ThroughputSegmented:
    """Time segmented throughput statistics."""

    segment_duration_millis: int = 0
    sorted_by: str = ""
    segments: list[SegmentSmall] = field(default_factory=list)
    fastest_start: int = 0
    fastest_bps: float = 0.0
    fastest_ops: float = 0.0
    median_start: int = 0
    median_bps: float = 0.0
    median_ops: float = 0.0
    slowest_start: int = 0
    slowest_bps: float = 0.0
    slowest_ops: float = 0.0

    def _fill(self, segs: Segments, total: Segment) -> None:
        segs.sort_by_time()
        self.segments = _clone_segments(segs)
        if total.total_bytes > 0:
            segs.sort_by_throughput()
            self.sorted_by = "bps"
        else:
            segs.sort_by_objs_per_sec()
            self.sorted_by = "ops"

        fast = segs.median(1)
        med = segs.median(0.5)
        slow = segs.median(0)
        self.fastest_start, self.fastest_bps, self.fastest_ops = fast.start, _bps(fast), _ops(fast)
        self.median_start, self.median_bps, self.median_ops = med.start, _bps(med), _ops(med)
        self.slowest_start, self.slowest_bps, self.slowest_ops = slow.start, _bps(slow), _ops(slow)


@dataclass
class Throughput:
    """Throughput over a measured period; times in nanoseconds since the epoch."""

    errors: int = 0
    measure_duration_millis: int = 0
    start_time: int = 0
    end_time: int = 0
    average_bps: float = 0.0
    average_ops: float = 0.0
    operations: int = 0
    segmented: Optional[ThroughputSegmented] = None

    def __str__(self) -> str:
        return self.string_details(True) + " " + self.string_duration()

    def string_duration(self) -> str:
        duration = format_duration(self.measure_duration_millis * MILLISECOND)
        return f"Duration: {duration}, starting {format_clock(self.start_time)}"

    def string_details(self, details: bool) -> str:
        speed = f"{_fixed(self.average_bps / _MIB, 2)} MiB/s, " if self.average_bps > 0 else ""
        errs = f", {self.errors} errors" if self.errors > 0 else ""
        return f"{speed}{_fixed(self.average_ops, 2)} obj/s{errs}"

    def _fill(self, total: Segment) -> None:
        mib, _, objs = _speed(total)
        self.operations = total.full_ops
        self.measure_duration_millis = dur_to_millis(total.ends_before - total.start)
        self.start_time = total.start
        self.end_time = total.ends_before
        self.average_bps = _round_half_away(mib * _MIB * 10) / 10
        self.average_ops = _round_half_away(objs * 100) / 100
        self.errors = total.errors
        self.segmented = None