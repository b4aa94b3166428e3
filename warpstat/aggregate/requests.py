"""Request duration and throughput statistics of single operation types."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

from ..bench.operations import Operations, SizeSegment
from .ttfb import TTFB, ttfb_from_bench
from .units import dur_to_millis


@dataclass
class SingleSizedRequests:
    """Statistics when all objects have the same size; durations in milliseconds."""

    skipped: bool = False
    obj_size: int = 0
    requests: int = 0
    dur_avg_millis: int = 0
    dur_median_millis: int = 0
    dur_90_millis: int = 0
    dur_99_millis: int = 0
    fastest_millis: int = 0
    slowest_millis: int = 0
    std_dev: int = 0
    dur_pct: list[int] = field(default_factory=lambda: [0] * 101)
    first_byte: Optional[TTFB] = None
    first_access: Optional["SingleSizedRequests"] = None
    last_access: Optional["SingleSizedRequests"] = None
    host_names: list[str] = field(default_factory=list)
    by_host: dict[str, "SingleSizedRequests"] = field(default_factory=dict)

    def _fill(self, ops: Operations) -> None:
        start, end = ops.time_range()
        ops.sort_by_duration()
        self.requests = len(ops)
        self.obj_size = ops.first_obj_size()
        self.dur_avg_millis = dur_to_millis(ops.avg_duration())
        self.std_dev = dur_to_millis(ops.std_dev())
        self.dur_median_millis = dur_to_millis(ops.median(0.5).duration())
        self.dur_90_millis = dur_to_millis(ops.median(0.9).duration())
        self.dur_99_millis = dur_to_millis(ops.median(0.99).duration())
        self.slowest_millis = dur_to_millis(ops.median(1).duration())
        self.fastest_millis = dur_to_millis(ops.median(0).duration())
        self.first_byte = ttfb_from_bench(ops.ttfb(start, end))
        self.dur_pct = [dur_to_millis(ops.median(i / 100).duration()) for i in range(101)]

    def _fill_first_last(self, ops: Operations) -> None:
        if not ops.is_multi_touch():
            return
        first = SingleSizedRequests()
        first._fill(ops.filter_first())
        self.first_access = first
        last = SingleSizedRequests()
        last._fill(ops.filter_last())
        self.last_access = last


@dataclass
class RequestSizeRange:
    """Statistics of requests within one size range; speeds in bytes per second."""

    requests: int = 0
    min_size: int = 0
    min_size_string: str = ""
    max_size: int = 0
    max_size_string: str = ""
    avg_obj_size: int = 0
    avg_duration_millis: int = 0
    bps_average: float = 0.0
    bps_median: float = 0.0
    bps_90: float = 0.0
    bps_99: float = 0.0
    bps_fastest: float = 0.0
    bps_slowest: float = 0.0
    bps_pct: list[float] = field(default_factory=lambda: [0.0] * 101)
    first_access: Optional["RequestSizeRange"] = None
    first_byte: Optional[TTFB] = None

    def _fill(self, s: SizeSegment) -> None:
        ops = s.ops
        self.requests = len(ops)
        self.min_size = s.smallest
        self.max_size = s.biggest
        self.min_size_string, self.max_size_string = s.sizes_string()
        self.avg_obj_size = ops.avg_size()
        self.avg_duration_millis = dur_to_millis(ops.avg_duration())
        ops.sort_by_throughput()
        self.bps_average = ops.op_throughput().rounded()
        self.bps_median = ops.median(0.5).bytes_per_sec().rounded()
        self.bps_90 = ops.median(0.9).bytes_per_sec().rounded()
        self.bps_99 = ops.median(0.99).bytes_per_sec().rounded()
        self.bps_fastest = ops.median(0.0).bytes_per_sec().rounded()
        self.bps_slowest = ops.median(1).bytes_per_sec().rounded()
        self.bps_pct = [ops.median(i / 100).bytes_per_sec().rounded() for i in range(101)]

    def _fill_first(self, s: SizeSegment) -> None:
        if not s.ops.is_multi_touch():
            return
        first_ops = s.ops.filter_first()
        first = RequestSizeRange()
        first._fill(replace(s, ops=first_ops))
        first.first_byte = ttfb_from_bench(first_ops.ttfb(*first_ops.time_range()))
        self.first_access = first


@dataclass
class MultiSizedRequests:
    """Statistics when objects have different sizes."""

    skipped: bool = False
    requests: int = 0
    avg_obj_size: int = 0
    by_size: list[RequestSizeRange] = field(default_factory=list)
    host_names: list[str] = field(default_factory=list)
    by_host: dict[str, RequestSizeRange] = field(default_factory=dict)

    def _fill(self, ops: Operations) -> None:
        start, end = ops.time_range()
        self.requests = len(ops)
        if not ops:
            self.skipped = True
            return
        self.avg_obj_size = ops.avg_size()
        self.by_size = []
        for s in ops.split_sizes(0.05):
            r = RequestSizeRange()
            r._fill(s)
            r._fill_first(s)
            r.first_byte = ttfb_from_bench(s.ops.ttfb(start, end))
            self.by_size.append(r)


def request_analysis_single_sized(ops: Operations, all_threads: bool) -> SingleSizedRequests:
    """Analyse requests that all have the same object size."""
    result = SingleSizedRequests()
    start, end = ops.active_time_range(all_threads)
    active = ops.filter_inside_range(start, end)
    if not active:
        result.skipped = True
        return result
    result._fill(active)
    result._fill_first_last(ops)
    result.host_names = ops.endpoints()
    result.by_host = request_analysis_hosts_single_sized(ops)
    return result


def request_analysis_hosts_single_sized(ops: Operations) -> dict[str, SingleSizedRequests]:
    """Per-host analysis of equally sized requests; hosts with one request are left out."""
    result: dict[str, SingleSizedRequests] = {}
    for endpoint in ops.endpoints():
        filtered = ops.filter_by_endpoint(endpoint)
        if len(filtered) <= 1:
            continue
        stats = SingleSizedRequests()
        stats._fill(filtered)
        result[endpoint] = stats
    return result


def request_analysis_multi_sized(ops: Operations, all_threads: bool) -> MultiSizedRequests:
    """Analyse requests whose object sizes differ."""
    result = MultiSizedRequests()
    start, end = ops.active_time_range(all_threads)
    active = ops.filter_inside_range(start, end)
    result.requests = len(active)
    if not active:
        result.skipped = True
        return result
    result._fill(active)
    result.by_host = request_analysis_hosts_multi_sized(active)
    result.host_names = active.endpoints()
    return result


def request_analysis_hosts_multi_sized(ops: Operations) -> dict[str, RequestSizeRange]:
    """Per-host analysis of differently sized requests; hosts with one request are left out."""
    result: dict[str, RequestSizeRange] = {}
    start, end = ops.time_range()
    for endpoint in ops.endpoints():
        filtered = ops.filter_by_endpoint(endpoint)
        if len(filtered) <= 1:
            continue
        stats = RequestSizeRange()
        stats._fill(filtered.single_size_segment())
        stats.first_byte = ttfb_from_bench(filtered.ttfb(start, end))
        result[endpoint] = stats
    return result