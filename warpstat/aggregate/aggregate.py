"""Aggregated statistics of a whole benchmark run."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from ..bench.durations import SECOND, round_duration
from ..bench.operations import Operations, SegmentOptions
from .requests import (
    MultiSizedRequests,
    SingleSizedRequests,
    request_analysis_multi_sized,
    request_analysis_single_sized,
)
from .throughput import Throughput, ThroughputSegmented
from .units import dur_to_millis

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MAX_FIRST_ERRORS = 10


def _error_time(ns: int) -> str:
    seconds = round_duration(ns, SECOND) // SECOND
    moment = _EPOCH + timedelta(seconds=seconds)
    return f"{moment:%Y-%m-%d %H:%M:%S} +0000 UTC"


@dataclass
class Options:
    """How a run is aggregated.

    ``dur_func`` maps the total duration to the duration of each segment;
    ``skip_dur`` is skipped at the start of every operation type (nanoseconds).
    """

    dur_func: Callable[[int], int]
    prefiltered: bool = False
    skip_dur: int = 0


@dataclass
class OperationStats:
    """Statistics of a single operation type; times in nanoseconds since the epoch."""

    type: str = ""
    n: int = 0
    skipped: bool = False
    start_time: int = 0
    end_time: int = 0
    objects_per_operation: int = 0
    concurrency: int = 0
    clients: int = 0
    hosts: int = 0
    host_names: list[str] = field(default_factory=list)
    single_sized_requests: Optional[SingleSizedRequests] = None
    multi_sized_requests: Optional[MultiSizedRequests] = None
    errors: int = 0
    first_errors: list[str] = field(default_factory=list)
    throughput: Throughput = field(default_factory=Throughput)
    throughput_by_host: dict[str, Throughput] = field(default_factory=dict)


@dataclass
class Aggregated:
    """Aggregated data of one benchmark run."""

    type: str = "single"
    mixed: bool = False
    operations: list[OperationStats] = field(default_factory=list)
    mixed_server_stats: Optional[Throughput] = None
    mixed_throughput_by_host: Optional[dict[str, Throughput]] = None


def _segmented(segs, total, segment_dur: int) -> ThroughputSegmented:
    result = ThroughputSegmented(segment_duration_millis=dur_to_millis(segment_dur))
    result._fill(segs, total)
    return result


def _aggregate_mixed(
    o: Operations, result: Aggregated, opts: Options, prefiltered: bool
) -> Operations:
    result.mixed = True
    result.type = "mixed"
    errs = o.filter_errors()
    if not errs:
        start, end = o.active_time_range(not prefiltered)
        o = o.filter_inside_range(start + opts.skip_dur, end)
        ops = o
    else:
        if opts.skip_dur > 0:
            start, end = o.time_range()
            o = o.filter_inside_range(start + opts.skip_dur, end)
        ops = o.filter_successful()

    total = ops.total(False)
    total.errors = len(errs)
    stats = Throughput()
    stats._fill(total)
    result.mixed_server_stats = stats

    segment_dur = opts.dur_func(total.duration())
    segs = ops.segment(SegmentOptions(per_seg_duration=segment_dur, multi_op=True))
    if len(segs) > 1:
        stats.segmented = _segmented(segs, total, segment_dur)

    by_host: dict[str, Throughput] = {}
    for endpoint in o.endpoints():
        host = Throughput()
        host._fill(ops.filter_by_endpoint(endpoint).total(False))
        if errs:
            host.errors = len(errs.filter_by_endpoint(endpoint))
        by_host[endpoint] = host
    result.mixed_throughput_by_host = by_host
    return o


def _host_throughput(all_ops: Operations, endpoint: str, segment_dur: int) -> Optional[Throughput]:
    ops = all_ops.filter_by_endpoint(endpoint)
    segs = ops.segment(SegmentOptions(per_seg_duration=segment_dur))
    errs = ops.filter_errors()
    if errs:
        ops = ops.filter_successful()
        if not ops:
            return None
    total = ops.total(False)
    total.errors = len(errs)
    host = Throughput()
    host._fill(total)
    if len(segs) > 1:
        host.segmented = _segmented(segs, total, segment_dur)
    return host


def _aggregate_type(
    o: Operations, typ: str, opts: Options, prefiltered: bool, skip_dur: int
) -> OperationStats:
    stats = OperationStats(type=typ)
    ops = o.filter_by_op(typ)
    if skip_dur > 0:
        start, end = ops.time_range()
        ops = ops.filter_inside_range(start + skip_dur, end)
    errs = ops.filter_errors()
    if errs:
        stats.errors = len(errs)
        stats.first_errors = [
            f"{err.endpoint}, {_error_time(err.end)}: {err.err}"
            for err in errs[:_MAX_FIRST_ERRORS]
        ]

    segment_dur = opts.dur_func(ops.duration())
    segs = ops.segment(
        SegmentOptions(per_seg_duration=segment_dur, all_threads=not prefiltered)
    )
    stats.n = len(ops)
    if len(segs) <= 1:
        stats.skipped = True
        return stats

    all_ops = ops
    if errs:
        ops = ops.filter_successful()
        if not ops:
            stats.skipped = True
            return stats
    total = ops.total(not prefiltered)
    stats.start_time, stats.end_time = ops.time_range()
    stats.throughput._fill(total)
    stats.throughput.segmented = _segmented(segs, total, segment_dur)
    stats.objects_per_operation = ops.first_obj_per_op()
    stats.concurrency = ops.threads()
    stats.clients = ops.clients()
    stats.hosts = ops.hosts()
    stats.host_names = ops.endpoints()

    if not ops.multiple_sizes():
        stats.single_sized_requests = request_analysis_single_sized(ops, not prefiltered)
    else:
        stats.multi_sized_requests = request_analysis_multi_sized(ops, not prefiltered)

    for endpoint in ops.endpoints():
        host = _host_throughput(all_ops, endpoint, segment_dur)
        if host is not None:
            stats.throughput_by_host[endpoint] = host
    return stats


def aggregate(ops: Operations, opts: Options) -> Aggregated:
    """Aggregate a run; overlapping operation types are also summarised together."""
    o = ops
    o.sort_by_start_time()
    types = o.op_types()
    result = Aggregated()
    prefiltered = opts.prefiltered or o.has_error()
    skip_dur = opts.skip_dur

    if o.is_mixed():
        o = _aggregate_mixed(o, result, opts, prefiltered)
        prefiltered = True
        skip_dur = 0

    result.operations = [
        _aggregate_type(o, typ, opts, prefiltered, skip_dur) for typ in types
    ]
    return result