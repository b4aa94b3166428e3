"""Time segments of benchmark operations and time-to-first-byte statistics."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, TextIO

from .durations import (
    MILLISECOND,
    SECOND,
    format_clock,
    format_duration,
    format_timestamp,
    round_duration,
)
from .operation import csv_escape_string

_CSV_HEADER = (
    "index",
    "op",
    "host",
    "duration_s",
    "objects_per_op",
    "bytes",
    "full_ops",
    "partial_ops",
    "ops_started",
    "ops_ended",
    "errors",
    "mb_per_sec",
    "ops_ended_per_sec",
    "objs_per_sec",
    "reqs_ended_avg_ms",
    "start_time",
    "end_time",
)


def _round_half_away(value: float) -> float:
    if not math.isfinite(value):
        return value
    return math.copysign(math.floor(abs(value) + 0.5), value)


def _ieee_div(numerator: float, denominator: float) -> float:
    if denominator != 0:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator):
        return math.nan
    return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)


def _fixed(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return f"{value:.2f}"


def _go_float(value: float) -> str:
    """Shortest float text, switching to exponent form for large or tiny values."""
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    dec = Decimal(repr(value)).normalize()
    sign, digits, exponent = dec.as_tuple()
    exp = len(digits) + exponent - 1
    if exp < -4 or exp >= 6:
        mantissa = str(digits[0])
        rest = "".join(str(d) for d in digits[1:])
        if rest:
            mantissa += "." + rest
        exp_sign = "-" if exp < 0 else "+"
        return f"{'-' if sign else ''}{mantissa}e{exp_sign}{abs(exp):02d}"
    return format(dec, "f")


def _csv_line(fields: Iterable[str]) -> str:
    return "\t".join(csv_escape_string(f) for f in fields) + "\n"


@dataclass
class Segment:
    """Totals of operations in the span from ``start`` up to ``ends_before``."""

    op_type: str = ""
    host: str = ""
    objs_per_op: int = 0
    total_bytes: int = 0
    full_ops: int = 0
    partial_ops: int = 0
    ops_started: int = 0
    ops_ended: int = 0
    objects: float = 0.0
    errors: int = 0
    req_avg: float = 0.0
    start: int = 0
    ends_before: int = 0

    def speed_per_sec(self) -> tuple[float, float, float]:
        """MiB per second, operations ended per second and objects per second."""
        scale = (self.ends_before - self.start) / SECOND
        mib = _ieee_div(self.total_bytes / (1024 * 1024), scale)
        ops = _ieee_div(float(self.ops_ended), scale)
        objs = _ieee_div(self.objects, scale)
        return mib, ops, objs

    def duration(self) -> int:
        return self.ends_before - self.start

    def _speed_prefix(self, mib: float) -> str:
        return f"{_fixed(mib)} MiB/s, " if mib > 0 else ""

    def __str__(self) -> str:
        mib, _, objs = self.speed_per_sec()
        span = format_duration(round_duration(self.duration(), MILLISECOND))
        return (
            f"{self._speed_prefix(mib)}{_fixed(objs)} obj/s "
            f"({span}, starting {format_clock(self.start)})"
        )

    def short_string(self) -> str:
        """Like ``str`` but without the start time."""
        mib, _, objs = self.speed_per_sec()
        span = format_duration(round_duration(self.duration(), MILLISECOND))
        return f"{self._speed_prefix(mib)}{_fixed(objs)} obj/s ({span})"

    def csv_row(self, idx: int) -> list[str]:
        """The segment as one row of the tab-separated segment table."""
        mib, ops, objs = self.speed_per_sec()
        return [
            str(idx),
            self.op_type,
            self.host,
            _go_float(self.duration() / SECOND),
            str(self.objs_per_op),
            str(self.total_bytes),
            str(self.full_ops),
            str(self.partial_ops),
            str(self.ops_started),
            str(self.ops_ended),
            str(self.errors),
            _go_float(mib),
            _go_float(ops),
            _go_float(objs),
            _go_float(self.req_avg),
            format_timestamp(self.start),
            format_timestamp(self.ends_before),
        ]


class Segments(list):
    """A list of segments with sorting, median and output helpers."""

    def clone(self) -> "Segments":
        return Segments(self)

    def sort_by_throughput(self) -> None:
        """Slowest first."""
        self.sort(key=lambda s: s.speed_per_sec()[0])

    def sort_by_ops_ended(self) -> None:
        """Fewest operations ended per second first."""
        self.sort(key=lambda s: s.speed_per_sec()[1])

    def sort_by_objs_per_sec(self) -> None:
        """Fewest objects per second first."""
        self.sort(key=lambda s: s.speed_per_sec()[2])

    def sort_by_time(self) -> None:
        """Earliest first."""
        self.sort(key=lambda s: s.start)

    def median(self, m: float) -> Segment:
        """The element at fraction ``m`` (clamped to 0..1) of the list."""
        if not self:
            return Segment()
        index = _round_half_away(len(self) * m)
        index = min(max(index, 0), len(self) - 1)
        return self[int(index)]

    def print(self, out: TextIO) -> None:
        for i, seg in enumerate(self):
            out.write(f"{i}: {seg}\n")

    def write_csv(self, out: TextIO) -> None:
        """Write the segments as tab-separated values with a header row."""
        out.write(_csv_line(_CSV_HEADER))
        for i, seg in enumerate(self):
            out.write(_csv_line(seg.csv_row(i)))


@dataclass
class TTFB:
    """Time-to-first-byte statistics in nanoseconds."""

    average: int = 0
    best: int = 0
    p25: int = 0
    median: int = 0
    p75: int = 0
    p90: int = 0
    p99: int = 0
    worst: int = 0
    std_dev: int = 0
    percentiles: list[int] = field(default_factory=lambda: [0] * 101)

    def __str__(self) -> str:
        if self.average == 0:
            return ""

        def ms(value: int) -> str:
            return format_duration(round_duration(value, MILLISECOND))

        return (
            f"Average: {ms(self.average)}, Median: {ms(self.median)}, "
            f"Best: {ms(self.best)}, Worst: {ms(self.worst)}, StdDev: {ms(self.std_dev)}"
        )