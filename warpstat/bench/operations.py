"""Collections of benchmark operations: filtering, statistics and segmentation."""

from __future__ import annotations

import functools
import itertools
import math
from dataclasses import dataclass, field, replace
from typing import Optional

from .durations import SECOND
from .operation import Operation, Throughput
from .segment import TTFB, Segment, Segments

_LOG10_TO_SIZE = {
    0: "",
    1: "10B",
    2: "100B",
    3: "1KiB",
    4: "10KiB",
    5: "100KiB",
    6: "1MiB",
    7: "10MiB",
    8: "100MiB",
    9: "1GiB",
    10: "10GiB",
    11: "100GiB",
    12: "1TiB",
}

_LOG10_TO_LOG2_SIZE = {
    0: 1,
    1: 10,
    2: 100,
    3: 1 << 10,
    4: 10 << 10,
    5: 100 << 10,
    6: 1 << 20,
    7: 10 << 20,
    8: 100 << 20,
    9: 1 << 30,
    10: 10 << 30,
    11: 100 << 30,
    12: 1 << 40,
}

_IEC_SUFFIXES = ("B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB")


def _round_half_away(value: float) -> float:
    if not math.isfinite(value):
        return value
    return math.copysign(math.floor(abs(value) + 0.5), value)


def _trunc_div(numerator: int, denominator: int) -> int:
    """Integer division truncating toward zero."""
    quotient = abs(numerator) // abs(denominator)
    return -quotient if (numerator < 0) != (denominator < 0) else quotient


def _ratio(size: int, duration: int) -> float:
    if duration == 0:
        return math.nan if size == 0 else math.copysign(math.inf, size)
    return size / duration


def _ibytes(size: int) -> str:
    """Human readable size with binary prefixes, e.g. ``1.5 KiB``."""
    size &= (1 << 64) - 1
    if size < 10:
        return f"{size} B"
    exponent = math.floor(math.log(size) / math.log(1024))
    suffix = _IEC_SUFFIXES[exponent]
    value = math.floor(size / math.pow(1024, exponent) * 10 + 0.5) / 10
    if value < 10:
        return f"{value:.1f} {suffix}"
    return f"{value:.0f} {suffix}"


@dataclass
class SegmentOptions:
    """How operations are cut into time segments; times are in nanoseconds."""

    from_time: int = 0
    per_seg_duration: int = 0
    all_threads: bool = False
    multi_op: bool = False


@dataclass
class SizeSegment:
    """Operations whose sizes fall within one size range."""

    smallest: int = 0
    smallest_log10: int = 0
    biggest: int = 0
    biggest_log10: int = 0
    ops: "Operations" = field(default_factory=lambda: Operations())

    def size_string(self) -> str:
        lo, hi = self.sizes_string()
        return f"{lo} -> {hi}"

    def sizes_string(self) -> tuple[str, str]:
        """The lower and upper limit of the range as text."""
        if self.smallest_log10 <= 0 or self.biggest_log10 <= 0:
            return _ibytes(self.smallest), _ibytes(self.biggest)
        return (
            _LOG10_TO_SIZE.get(self.smallest_log10, ""),
            _LOG10_TO_SIZE.get(self.biggest_log10, ""),
        )


class Operations(list):
    """A list of operations with analysis helpers."""

    # Sorting and ranking.

    def sort_by_start_time(self) -> None:
        """Earliest start first."""
        self.sort(key=lambda op: op.start)

    def sort_by_end_time(self) -> None:
        """Earliest end first."""
        self.sort(key=lambda op: op.end)

    def sort_by_duration(self) -> None:
        """Fastest first."""
        self.sort(key=lambda op: op.end - op.start)

    def sort_by_throughput(self) -> None:
        """Highest throughput first; operations without size by duration."""

        def compare(a: Operation, b: Operation) -> int:
            a_dur, b_dur = a.duration(), b.duration()
            if a.size == 0 or b.size == 0:
                return (a_dur > b_dur) - (a_dur < b_dur)
            a_rate, b_rate = _ratio(a.size, a_dur), _ratio(b.size, b_dur)
            if a_rate > b_rate:
                return -1
            if a_rate < b_rate:
                return 1
            return 0

        self.sort(key=functools.cmp_to_key(compare))

    def sort_by_ttfb(self) -> None:
        """Smallest time to first byte first; by start where one is missing."""

        def compare(a: Operation, b: Operation) -> int:
            if a.first_byte is None or b.first_byte is None:
                return (a.start > b.start) - (a.start < b.start)
            a_ttfb, b_ttfb = a.ttfb(), b.ttfb()
            return (a_ttfb > b_ttfb) - (a_ttfb < b_ttfb)

        self.sort(key=functools.cmp_to_key(compare))

    def median(self, m: float) -> Operation:
        """The element at fraction ``m`` (clamped to 0..1) of the sorted list."""
        if not self:
            return Operation()
        index = _round_half_away(len(self) * m)
        index = max(index, 0)
        index = min(index, len(self) - 1 + 1e-10)
        return self[int(index)]

    # Filters.

    def filter_by_has_ttfb(self, has_ttfb: bool) -> "Operations":
        return Operations(op for op in self if (op.first_byte is not None) == has_ttfb)

    def filter_inside_range(self, start: int, end: int) -> "Operations":
        """Operations that start no earlier than ``start`` and end no later than ``end``."""
        return Operations(op for op in self if not (op.start < start or op.end > end))

    def filter_by_op(self, op_type: str) -> "Operations":
        """Operations of one type; an empty type matches all."""
        return Operations(op for op in self if op.op_type == op_type or op_type == "")

    def filter_by_endpoint(self, endpoint: str) -> "Operations":
        return Operations(op for op in self if op.endpoint == endpoint)

    def filter_successful(self) -> "Operations":
        """Operations without error; the list itself if none failed."""
        if not self:
            return Operations()
        failed = sum(1 for op in self if op.err)
        if failed == 0:
            return self
        if failed == len(self):
            return Operations()
        return Operations(op for op in self if not op.err)

    def filter_errors(self) -> "Operations":
        return Operations(op for op in self if op.err)

    def filter_first(self) -> "Operations":
        """The first operation on every file, sorting the list by start time."""
        if not self:
            return Operations()
        self.sort_by_start_time()
        seen: set[str] = set()
        result = Operations()
        for op in self:
            if op.file in seen:
                continue
            seen.add(op.file)
            result.append(op)
        return result

    def filter_last(self) -> "Operations":
        """The last operation on every file, latest first; sorts the list by start time."""
        if not self:
            return Operations()
        self.sort_by_start_time()
        seen: set[str] = set()
        result = Operations()
        for op in reversed(self):
            if op.file in seen:
                continue
            seen.add(op.file)
            result.append(op)
        return result

    def clone(self) -> "Operations":
        """A copy holding copies of the operations."""
        return Operations(replace(op) for op in self)

    def set_client_id(self, client_id: str) -> None:
        for op in self:
            op.client_id = client_id

    # Grouping.

    def by_op(self) -> dict[str, "Operations"]:
        result: dict[str, Operations] = {}
        for op in self:
            result.setdefault(op.op_type, Operations()).append(op)
        return result

    def by_endpoint(self) -> dict[str, "Operations"]:
        result: dict[str, Operations] = {}
        for op in self:
            result.setdefault(op.endpoint, Operations()).append(op)
        return result

    def op_types(self) -> list[str]:
        """Operation types in order of appearance, or sorted if they overlap."""
        types = list(dict.fromkeys(op.op_type for op in self))
        if self._is_mixed(types):
            types.sort()
        return types

    def is_mixed(self) -> bool:
        """Whether different operation types overlap in time."""
        return self._is_mixed(self.op_types())

    def _is_mixed(self, types: list[str]) -> bool:
        if len(types) <= 1:
            return False
        for a in types:
            a_start, a_end = self.filter_by_op(a).time_range()
            for b in types:
                if a == b:
                    continue
                b_start, b_end = self.filter_by_op(b).time_range()
                first_end, second_start = a_end, b_end
                if b_start < a_start:
                    first_end, second_start = b_end, a_start
                if first_end > second_start:
                    return True
        return False

    def is_multi_touch(self) -> bool:
        """Whether any file is touched more than once."""
        seen: set[str] = set()
        for op in self:
            if op.file in seen:
                return True
            seen.add(op.file)
        return False

    def has_error(self) -> bool:
        return any(op.err for op in self)

    # Simple properties.

    def first_op_type(self) -> str:
        return self[0].op_type if self else ""

    def first_obj_size(self) -> int:
        return self[0].size if self else 0

    def first_obj_per_op(self) -> int:
        return self[0].obj_per_op if self else 0

    def multiple_sizes(self) -> bool:
        """Whether successful operations have differing sizes."""
        if not self:
            return False
        size = self[0].size
        return any(not op.err and op.size != size for op in self)

    def min_max_size(self) -> tuple[int, int]:
        if not self:
            return 0, 0
        sizes = [op.size for op in self]
        return min(sizes), max(sizes)

    def avg_size(self) -> int:
        if not self:
            return 0
        return _trunc_div(sum(op.size for op in self), len(self))

    def avg_duration(self) -> int:
        if not self:
            return 0
        return _trunc_div(sum(op.duration() for op in self), len(self))

    def std_dev(self) -> int:
        """Sample standard deviation of the durations in nanoseconds."""
        if len(self) <= 1:
            return 0
        avg = self.avg_duration()
        total = sum(float(avg - op.duration()) ** 2 for op in self)
        return int(math.sqrt(total / (len(self) - 1)))

    def threads(self) -> int:
        if not self:
            return 0
        return max(op.thread for op in self) + 1

    def offset_threads(self, n: int) -> int:
        """Add ``n`` to every thread id and return the next free thread id."""
        if not self:
            return 0
        highest = 0
        for op in self:
            op.thread = (op.thread + n) & 0xFFFF
            highest = max(highest, op.thread)
        return (highest + 1) & 0xFFFF

    def hosts(self) -> int:
        return len({op.endpoint for op in self})

    def clients(self) -> int:
        return len({op.client_id for op in self})

    def endpoints(self) -> list[str]:
        """The endpoints, sorted."""
        return sorted({op.endpoint for op in self})

    def errors(self) -> list[str]:
        return [op.err for op in self if op.err]

    # Sizes.

    def single_size_segment(self) -> SizeSegment:
        lo, hi = self.min_max_size()
        lo_log = 0
        while lo_log + 1 in _LOG10_TO_LOG2_SIZE and lo > _LOG10_TO_LOG2_SIZE[lo_log + 1]:
            lo_log += 1
        hi_log = 0
        while hi_log in _LOG10_TO_LOG2_SIZE and hi >= _LOG10_TO_LOG2_SIZE[hi_log]:
            hi_log += 1
        return SizeSegment(
            smallest=lo,
            smallest_log10=lo_log,
            biggest=hi,
            biggest_log10=hi_log,
            ops=self,
        )

    def split_sizes(self, min_share: float) -> list[SizeSegment]:
        """Split by powers of ten; a range is kept once it holds ``min_share`` of the requests."""
        if not self.multiple_sizes():
            return [self.single_size_segment()]
        lo, hi = self.min_max_size()
        if lo == 0:
            lo = 1
        min_log = int(math.log10(lo))
        max_log = int(math.log10(hi))
        current = min_log
        want = int(len(self) * min_share)

        def fresh(log: int) -> SizeSegment:
            return SizeSegment(
                smallest=_LOG10_TO_LOG2_SIZE.get(log, 0),
                smallest_log10=log,
                biggest=0,
                ops=Operations(),
            )

        result: list[SizeSegment] = []
        seg = fresh(current)
        while current <= max_log:
            current += 1
            seg.biggest = _LOG10_TO_LOG2_SIZE.get(current, 0)
            seg.biggest_log10 = current
            seg.ops.extend(op for op in self if seg.smallest <= op.size < seg.biggest)
            if len(seg.ops) >= want:
                result.append(seg)
                seg = fresh(current)
        return result

    # Time.

    def duration(self) -> int:
        start, end = self.time_range()
        return end - start

    def time_range(self) -> tuple[int, int]:
        """Start of the earliest operation and end of the latest."""
        if not self:
            return 0, 0
        start, end = self[0].start, self[0].end
        for op in self:
            start = min(start, op.start)
            end = max(end, op.end)
        return start, end

    def active_time_range(self, all_threads: bool) -> tuple[int, int]:
        """The span in which every thread (or, without ``all_threads``, any) is busy.

        Both values are equal when there is no such span.
        """
        if not self:
            return 0, 0
        if not all_threads:
            start_f, end_f = self[0].start, self[0].end
            for op in self:
                if op.end < start_f:
                    start_f = op.end
                if end_f < op.start:
                    end_f = op.start
            start, end = end_f, start_f
            for op in self:
                if start_f < op.start < start:
                    start = op.start
                if end < op.end < end_f:
                    end = op.end
            if start > end:
                return start, start
            return start, end

        first_ended: dict[int, int] = {}
        last_started: dict[int, int] = {}
        start = end = 0
        for op in self:
            ended = first_ended.get(op.thread)
            if ended is None or ended > op.end:
                first_ended[op.thread] = op.end
            started = last_started.get(op.thread)
            if started is None or started < op.start:
                last_started[op.thread] = op.start
            end = max(end, op.end)
        for ended in first_ended.values():
            start = max(start, ended)
        for started in last_started.values():
            end = min(end, started)
        if start > end:
            return start, start
        return start, end

    # Analysis.

    def total(self, all_threads: bool) -> Segment:
        """Totals over the active time range as a single segment."""
        start, end = self.active_time_range(all_threads)
        if start == end:
            return Segment()
        return self.segment(
            SegmentOptions(
                from_time=start,
                per_seg_duration=end - start - 1,
                all_threads=all_threads,
                multi_op=self.is_mixed(),
            )
        )[0]

    def ttfb(self, start: int, end: int) -> TTFB:
        """Time to first byte of the operations entirely inside ``start``..``end``."""
        if start >= end:
            return TTFB()
        filtered = self.filter_by_has_ttfb(True).filter_inside_range(start, end)
        if not filtered:
            return TTFB()
        filtered.sort_by_ttfb()
        result = TTFB(
            best=filtered.median(0).ttfb(),
            p25=filtered.median(0.25).ttfb(),
            median=filtered.median(0.5).ttfb(),
            p75=filtered.median(0.75).ttfb(),
            p90=filtered.median(0.9).ttfb(),
            p99=filtered.median(0.99).ttfb(),
            worst=filtered.median(1).ttfb(),
            percentiles=[filtered.median(i / 100).ttfb() for i in range(101)],
        )
        values = [op.ttfb() for op in filtered]
        total = sum(values)
        avg = total / len(values)
        result.average = _trunc_div(total, len(values))
        if len(values) > 1:
            spread = sum((float(v) - avg) ** 2 for v in values)
            result.std_dev = int(math.sqrt(spread / (len(values) - 1)))
        return result

    def op_throughput(self) -> Throughput:
        """Average throughput in bytes per second of operations with a size."""
        sized = [op for op in self if op.size > 0]
        total_dur = sum(op.duration() for op in sized)
        if total_dur == 0:
            return Throughput(0)
        total_bytes = sum(op.size for op in sized)
        return Throughput(float(total_bytes) * float(SECOND) / float(total_dur))

    def segment(self, options: SegmentOptions) -> Segments:
        """Cut the operations into consecutive time segments; sorts by start time."""
        self.sort_by_start_time()
        per_seg = options.per_seg_duration
        if per_seg <= 0:
            return Segments()
        start, end = self.active_time_range(options.all_threads)
        seg_start = max(options.from_time, start)
        endpoints = self.endpoints()
        host = endpoints[0] if len(endpoints) == 1 else ""

        segments = Segments()
        while seg_start < end - per_seg:
            seg = Segment(
                op_type=self.first_op_type(),
                host=host,
                objs_per_op=self.first_obj_per_op(),
                start=seg_start,
                ends_before=seg_start + per_seg,
            )
            if options.multi_op:
                seg.op_type = ""
                seg.objs_per_op = 0
            first = 0
            for i, op in enumerate(self):
                if op.end > seg.start:
                    break
                first = i
            for op in itertools.islice(self, first, None):
                if op.aggregate(seg):
                    break
            if seg.ops_ended > 0:
                seg.req_avg /= seg.ops_ended
            segments.append(seg)
            seg_start += per_seg
        return segments


def _first_or_none(ops: Operations) -> Optional[Operation]:
    return ops[0] if ops else None