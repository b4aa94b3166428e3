"""Comparison of two benchmark runs of the same operation type."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from .durations import MILLISECOND, format_duration, round_duration
from .operations import Operations, SegmentOptions
from .segment import TTFB, Segment, Segments


def _ieee_div(numerator: float, denominator: float) -> float:
    if denominator != 0:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator):
        return math.nan
    return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)


def _fixed(value: float, places: int) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return f"{value:.{places}f}"


def _plus_f(value: float) -> str:
    return "+" if value > 0 and not math.isinf(value) else ""


def _plus_d(value: int) -> str:
    return "+" if value > 0 else ""


def _percent(after: int, before: int) -> float:
    return _ieee_div(100 * (float(after) - float(before)), float(before))


def _latency_text(diff, before, after) -> str:
    """Shared text form of request and time-to-first-byte comparisons."""

    def part(label: str, name: str, shown: str) -> str:
        delta = getattr(diff, name)
        sign = _plus_d(delta)
        pct = _percent(getattr(after, name), getattr(before, name))
        return f"{label}: {sign}{shown} ({sign}{_fixed(pct, 0)}%)"

    average = format_duration(round_duration(diff.average, MILLISECOND // 20))
    parts = [
        part("Avg", "average", average),
        part("P50", "median", format_duration(diff.median)),
        part("P99", "p99", format_duration(diff.p99)),
        part("Best", "best", format_duration(diff.best)),
    ]
    worst = part("Worst", "worst", format_duration(diff.worst))
    std_dev = part("StdDev", "std_dev", format_duration(diff.std_dev))
    return ", ".join(parts) + ", " + worst + " " + std_dev


@dataclass
class CmpSegment:
    """Relative change in percent between two segments."""

    before: Optional[Segment] = None
    after: Optional[Segment] = None
    throughput_per_sec: float = 0.0
    obj_per_sec: float = 0.0
    ops_ended_per_sec: float = 0.0

    def compare(self, before: Segment, after: Segment) -> None:
        self.before = before
        self.after = after
        mb_b, ops_b, objs_b = before.speed_per_sec()
        mb_a, ops_a, objs_a = after.speed_per_sec()
        self.obj_per_sec = _ieee_div(100 * (objs_a - objs_b), objs_b)
        self.ops_ended_per_sec = _ieee_div(100 * (ops_a - ops_b), ops_b)
        if mb_b > 0:
            self.throughput_per_sec = 100 * (mb_a - mb_b) / mb_b
        else:
            self.throughput_per_sec = 0.0

    def __str__(self) -> str:
        mib_b, _, objs_b = self.before.speed_per_sec()
        mib_a, _, objs_a = self.after.speed_per_sec()
        speed = ""
        tp = self.throughput_per_sec
        if tp != 0:
            speed = (
                f"{_plus_f(tp)}{_fixed(tp, 2)}% "
                f"({_plus_f(tp)}{_fixed(mib_a - mib_b, 1)} MiB/s) throughput, "
            )
        objs_delta = objs_a - objs_b
        return (
            f"{speed}{_plus_f(self.obj_per_sec)}{_fixed(self.obj_per_sec, 2)}% "
            f"({_plus_f(objs_delta)}{_fixed(objs_delta, 1)}) obj/s"
        )


@dataclass
class CmpRequests:
    """Request duration statistics in nanoseconds."""

    avg_obj_size: int = 0
    requests: int = 0
    average: int = 0
    best: int = 0
    p25: int = 0
    median: int = 0
    p75: int = 0
    p90: int = 0
    p99: int = 0
    worst: int = 0
    std_dev: int = 0

    def _fill(self, ops: Operations) -> None:
        ops.sort_by_duration()
        self.requests = len(ops)
        self.avg_obj_size = ops.avg_size()
        self.average = ops.avg_duration()
        self.best = ops.median(0).duration()
        self.p25 = ops.median(0.25).duration()
        self.median = ops.median(0.5).duration()
        self.p75 = ops.median(0.75).duration()
        self.p90 = ops.median(0.9).duration()
        self.p99 = ops.median(0.99).duration()
        self.worst = ops.median(1).duration()
        self.std_dev = ops.std_dev()


@dataclass
class CmpReqs(CmpRequests):
    """Differences of request statistics, with both sides kept."""

    before: CmpRequests = field(default_factory=CmpRequests)
    after: CmpRequests = field(default_factory=CmpRequests)

    def compare(self, before: Operations, after: Operations) -> None:
        """Fill both sides from the operations (sorting them by duration)."""
        self.before._fill(before)
        self.after._fill(after)
        a, b = self.after, self.before
        self.average = a.average - b.average
        self.worst = a.worst - b.worst
        self.best = a.best - b.best
        self.median = a.median - b.median
        self.p25 = a.p25 - b.p25
        self.p75 = a.p75 - b.p75
        self.p90 = a.p90 - b.p90
        self.p99 = a.p99 - b.p99
        self.std_dev = a.std_dev - b.std_dev

    def __str__(self) -> str:
        return _latency_text(self, self.before, self.after)


@dataclass
class TTFBCmp(TTFB):
    """Differences of time-to-first-byte statistics, with both sides kept."""

    before: TTFB = field(default_factory=TTFB)
    after: TTFB = field(default_factory=TTFB)

    def __str__(self) -> str:
        return _latency_text(self, self.before, self.after)


def compare_ttfb(before: TTFB, after: TTFB) -> Optional[TTFBCmp]:
    """The change from ``before`` to ``after``, or None if ``before`` has no data."""
    if before.average == 0:
        return None
    return TTFBCmp(
        average=after.average - before.average,
        worst=after.worst - before.worst,
        best=after.best - before.best,
        median=after.median - before.median,
        p25=after.p25 - before.p25,
        p75=after.p75 - before.p75,
        p90=after.p90 - before.p90,
        p99=after.p99 - before.p99,
        std_dev=after.std_dev - before.std_dev,
        before=before,
        after=after,
    )


@dataclass
class Comparison:
    """Comparison between two benchmarks of one operation type."""

    op: str = ""
    ttfb: Optional[TTFBCmp] = None
    reqs: CmpReqs = field(default_factory=CmpReqs)
    average: CmpSegment = field(default_factory=CmpSegment)
    fastest: CmpSegment = field(default_factory=CmpSegment)
    median: CmpSegment = field(default_factory=CmpSegment)
    slowest: CmpSegment = field(default_factory=CmpSegment)


def _sorted_segments(ops: Operations, analysis: int, all_threads: bool) -> Segments:
    segs = ops.segment(SegmentOptions(per_seg_duration=analysis, all_threads=all_threads))
    if len(segs) <= 1:
        raise ValueError("too few samples")
    if ops.total(all_threads).total_bytes > 0:
        segs.sort_by_throughput()
    else:
        segs.sort_by_objs_per_sec()
    return segs


def compare(
    before: Operations, after: Operations, analysis: int, all_threads: bool
) -> Comparison:
    """Compare two runs of one operation type, segmented every ``analysis`` nanoseconds."""
    if before.first_op_type() != after.first_op_type():
        raise ValueError(
            f"different operation types. before: {before.first_op_type()}, "
            f"after {after.first_op_type()}"
        )
    if analysis <= 0:
        raise ValueError(f"invalid analysis duration: {format_duration(analysis)}")
    before_errors, after_errors = before.errors(), after.errors()
    if before_errors or after_errors:
        raise ValueError(
            f"errors recorded in benchmark run. before: {len(before_errors)}, "
            f"after {len(after_errors)}"
        )

    result = Comparison(op=before.first_op_type())
    try:
        before_segs = _sorted_segments(before, analysis, all_threads)
    except ValueError as exc:
        raise ValueError(f"segmenting before: {exc}") from exc
    try:
        after_segs = _sorted_segments(after, analysis, all_threads)
    except ValueError as exc:
        raise ValueError(f"segmenting after: {exc}") from exc

    result.median.compare(before_segs.median(0.5), after_segs.median(0.5))
    result.slowest.compare(before_segs.median(0.0), after_segs.median(0.0))
    result.fastest.compare(before_segs.median(1), after_segs.median(1))

    before_totals = before.total(all_threads)
    before_ttfb = before.ttfb(*before.time_range())
    after_totals = after.total(all_threads)
    after_ttfb = after.ttfb(*after.time_range())
    result.reqs.compare(before, after)

    result.average.compare(before_totals, after_totals)
    result.ttfb = compare_ttfb(before_ttfb, after_ttfb)
    return result