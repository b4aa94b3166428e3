import math

import pytest

from warpstat.aggregate.throughput import (
    SegmentSmall,
    Throughput,
    ThroughputSegmented,
    bps_or_ops,
)
from warpstat.bench.durations import MILLISECOND, SECOND
from warpstat.bench.operation import Operation
from warpstat.bench.operation import Throughput as BenchThroughput
from warpstat.bench.operations import Operations, SegmentOptions
from warpstat.bench.segment import Segment


def _ops(size=1 << 20, threads=4, count=10, dur=100 * MILLISECOND):
    ops = Operations()
    for t in range(threads):
        for i in range(count):
            start = i * dur
            ops.append(
                Operation(
                    op_type="PUT",
                    obj_per_op=1,
                    start=start,
                    end=start + dur + t * MILLISECOND,
                    size=size,
                    file=f"f-{t}-{i}",
                    thread=t,
                    endpoint="host0",
                )
            )
    return ops


def test_bps_or_ops_uses_ops_when_no_bytes():
    assert bps_or_ops(0, 3.456) == "3.46 obj/s"


def test_bps_or_ops_uses_bench_throughput_text():
    bps = 5.0 * (1 << 20)
    assert bps_or_ops(bps, 1.0) == str(BenchThroughput(bps))


def test_string_details_without_bytes_or_errors():
    t = Throughput(average_ops=2.5)
    assert t.string_details(True) == "2.50 obj/s"


def test_string_details_mentions_errors_and_speed():
    t = Throughput(average_bps=float(1 << 20), average_ops=1.0, errors=3)
    text = t.string_details(True)
    assert text.startswith("1.00 MiB/s, ")
    assert text.endswith(", 3 errors")


def test_string_duration_and_str():
    t = Throughput(measure_duration_millis=1500, start_time=0, average_ops=1.0)
    assert t.string_duration() == "Duration: 1.5s, starting 00:00:00 UTC"
    assert str(t) == t.string_details(True) + " " + t.string_duration()


def test_segment_small_string_long():
    s = SegmentSmall(bps=0.0, ops=4.0, start=0)
    assert s.string_long(SECOND, False) == "4.00 obj/s"
    assert s.string_long(SECOND, True) == "4.00 obj/s (1s, starting 00:00:00 UTC)"


def test_throughput_fill_from_segment():
    seg = Segment(
        start=0,
        ends_before=SECOND,
        total_bytes=1 << 20,
        objects=10.0,
        full_ops=10,
        errors=1,
    )
    t = Throughput()
    t._fill(seg)
    assert t.average_bps == float(1 << 20)
    assert t.average_ops == 10.0
    assert t.measure_duration_millis == 1000
    assert t.operations == 10
    assert t.errors == 1
    assert t.end_time == SECOND


def test_throughput_fill_of_empty_segment_is_nan():
    t = Throughput()
    t._fill(Segment())
    assert math.isnan(t.average_ops)
    assert t.measure_duration_millis == 0


@pytest.mark.parametrize("size,sorted_by", [(1 << 20, "bps"), (0, "ops")])
def test_segmented_fill_orders_medians(size, sorted_by):
    ops = _ops(size=size)
    segs = ops.segment(SegmentOptions(per_seg_duration=200 * MILLISECOND, all_threads=True))
    total = ops.total(True)
    ts = ThroughputSegmented(segment_duration_millis=200)
    ts._fill(segs, total)
    assert ts.sorted_by == sorted_by
    assert ts.segment_duration_millis == 200
    assert len(ts.segments) == len(segs)
    starts = [s.start for s in ts.segments]
    assert starts == sorted(starts)
    if sorted_by == "bps":
        assert ts.fastest_bps >= ts.median_bps >= ts.slowest_bps
    else:
        assert ts.fastest_ops >= ts.median_ops >= ts.slowest_ops