import math

import pytest

from warpstat.bench.compare import (
    CmpReqs,
    CmpSegment,
    compare,
    compare_ttfb,
)
from warpstat.bench.durations import MILLISECOND, SECOND
from warpstat.bench.operation import Operation
from warpstat.bench.operations import Operations
from warpstat.bench.segment import TTFB, Segment

T0 = 1_600_000_000 * SECOND


def make_ops(op_type="GET", dur=100 * MILLISECOND, count=50, threads=2, ttfb=10 * MILLISECOND, err=""):
    ops = Operations()
    for t in range(threads):
        for i in range(count):
            start = T0 + i * dur
            ops.append(
                Operation(
                    op_type=op_type,
                    obj_per_op=1,
                    start=start,
                    first_byte=start + ttfb,
                    end=start + dur,
                    size=1 << 20,
                    file=f"obj-{t}-{i}",
                    thread=t,
                    endpoint="http://host:9000",
                    err=err if i == 0 else "",
                )
            )
    return ops


def test_identical_runs_show_no_change():
    res = compare(make_ops(), make_ops(), SECOND, True)
    assert res.op == "GET"
    assert res.median.obj_per_sec == 0
    assert res.median.throughput_per_sec == 0
    assert res.reqs.average == 0
    assert res.ttfb is not None and res.ttfb.average == 0
    assert str(res.ttfb).startswith("Avg: ")


def test_slower_run_is_reported_as_slower():
    before = make_ops()
    after = make_ops(dur=200 * MILLISECOND, count=25, ttfb=20 * MILLISECOND)
    res = compare(before, after, SECOND, True)
    assert res.median.obj_per_sec < 0
    assert res.average.throughput_per_sec < 0
    assert res.reqs.average == 100 * MILLISECOND
    assert res.reqs.before.requests == len(before)
    assert res.reqs.after.requests == len(after)
    assert res.ttfb.average == 10 * MILLISECOND
    assert "throughput" in str(res.median)
    assert str(res.reqs).startswith("Avg: +")


def test_different_types_rejected():
    with pytest.raises(ValueError, match="different operation types"):
        compare(make_ops("GET"), make_ops("PUT"), SECOND, True)


def test_invalid_analysis_rejected():
    with pytest.raises(ValueError, match="invalid analysis duration"):
        compare(make_ops(), make_ops(), 0, True)


def test_errors_rejected():
    with pytest.raises(ValueError, match="errors recorded in benchmark run"):
        compare(make_ops(err="boom"), make_ops(), SECOND, True)


def test_too_few_samples():
    with pytest.raises(ValueError, match="segmenting before: too few samples"):
        compare(make_ops(), make_ops(), 60 * SECOND, True)


def test_cmp_segment_division_by_zero():
    before = Segment(start=0, ends_before=SECOND)
    after = Segment(start=0, ends_before=SECOND, objects=5.0)
    cmp = CmpSegment()
    cmp.compare(before, after)
    assert math.isinf(cmp.obj_per_sec)
    assert math.isnan(cmp.ops_ended_per_sec)
    assert cmp.throughput_per_sec == 0
    assert "+Inf%" in str(cmp)
    assert "throughput" not in str(cmp)


def test_compare_ttfb_without_before_data():
    assert compare_ttfb(TTFB(), TTFB(average=5)) is None


def test_compare_ttfb_differences():
    before = TTFB(average=10, best=1, median=8, p99=30, worst=40, std_dev=3)
    after = TTFB(average=15, best=2, median=9, p99=35, worst=60, std_dev=4)
    cmp = compare_ttfb(before, after)
    for name in ("average", "best", "median", "p99", "worst", "std_dev"):
        assert getattr(cmp, name) == getattr(after, name) - getattr(before, name)
    assert cmp.before is before
    assert cmp.after is after


def test_cmp_reqs_ordering():
    before = make_ops()
    after = make_ops(dur=150 * MILLISECOND)
    reqs = CmpReqs()
    reqs.compare(before, after)
    for side in (reqs.before, reqs.after):
        assert side.best <= side.median <= side.p99 <= side.worst
    assert reqs.median == reqs.after.median - reqs.before.median
    assert reqs.worst > 0
    durations = [op.duration() for op in before]
    assert durations == sorted(durations)