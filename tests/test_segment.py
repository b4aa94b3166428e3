import csv
import io
import math

import pytest

from warpstat.bench.durations import SECOND, format_timestamp
from warpstat.bench.segment import TTFB, Segment, Segments


def _segments():
    return Segments(
        [
            Segment(start=3 * SECOND, ends_before=4 * SECOND, total_bytes=300, ops_ended=1, objects=5.0),
            Segment(start=1 * SECOND, ends_before=2 * SECOND, total_bytes=100, ops_ended=4, objects=2.0),
            Segment(start=0, ends_before=SECOND, total_bytes=400, ops_ended=2, objects=7.0),
            Segment(start=2 * SECOND, ends_before=3 * SECOND, total_bytes=200, ops_ended=3, objects=1.0),
        ]
    )


def test_speed_per_sec_scales_by_duration():
    seg = Segment(start=0, ends_before=2 * SECOND, total_bytes=4 << 20, ops_ended=6, objects=8.0)
    mib, ops, objs = seg.speed_per_sec()
    assert mib * 2 * (1 << 20) == pytest.approx(seg.total_bytes)
    assert ops * 2 == pytest.approx(seg.ops_ended)
    assert objs * 2 == pytest.approx(seg.objects)


def test_speed_per_sec_zero_length_is_nan():
    result = Segment().speed_per_sec()
    assert len(result) == 3
    mib, ops, objs = result
    assert math.isnan(mib) is True
    assert math.isnan(ops) is True
    assert math.isnan(objs) is True


def test_duration():
    seg = Segment(start=5, ends_before=SECOND)
    assert seg.duration() == SECOND - 5


def test_str_mentions_speed_only_with_bytes():
    with_bytes = str(Segment(start=0, ends_before=SECOND, total_bytes=1 << 20, objects=1.0))
    without = str(Segment(start=0, ends_before=SECOND, objects=1.0))
    assert "MiB/s" in with_bytes
    assert "MiB/s" not in without
    assert "obj/s" in without
    assert "starting" in without


def test_short_string_has_no_start():
    text = Segment(start=0, ends_before=SECOND, objects=3.0).short_string()
    assert "obj/s" in text
    assert "starting" not in text


def test_csv_row_fields():
    seg = Segment(op_type="GET", host="h1", start=SECOND, ends_before=3 * SECOND, total_bytes=2 << 20)
    row = seg.csv_row(7)
    assert len(row) == 17
    assert row[0] == "7"
    assert row[1] == "GET"
    assert row[2] == "h1"
    assert row[5] == str(seg.total_bytes)
    assert row[15] == format_timestamp(seg.start)
    assert row[16] == format_timestamp(seg.ends_before)
    assert float(row[11]) == pytest.approx(seg.speed_per_sec()[0])


def test_csv_row_float_forms():
    seg = Segment(start=0, ends_before=SECOND, req_avg=1e6)
    assert seg.csv_row(0)[14] == "1e+06"
    assert seg.csv_row(0)[11] == "0"
    assert Segment(start=0, ends_before=SECOND, req_avg=0.5).csv_row(0)[14] == "0.5"


@pytest.mark.parametrize(
    "method,position",
    [
        ("sort_by_throughput", 0),
        ("sort_by_ops_ended", 1),
        ("sort_by_objs_per_sec", 2),
    ],
)
def test_speed_sorts_are_ascending(method, position):
    segs = _segments()
    getattr(segs, method)()
    keys = [s.speed_per_sec()[position] for s in segs]
    assert keys == sorted(keys)
    assert sorted(s.start for s in segs) == sorted(s.start for s in _segments())


def test_sort_by_time():
    segs = _segments()
    segs.sort_by_time()
    starts = [s.start for s in segs]
    assert starts == sorted(starts)


def test_clone_is_independent():
    segs = _segments()
    original = [s.start for s in segs]
    copy = segs.clone()
    copy.sort_by_time()
    assert [s.start for s in segs] == original
    assert isinstance(copy, Segments)
    assert sorted(original) == [s.start for s in copy]


def test_median_positions():
    segs = _segments()
    assert Segments().median(0.5) == Segment()
    assert segs.median(0) is segs[0]
    assert segs.median(1) is segs[-1]
    assert segs.median(-1) is segs[0]
    assert segs.median(2) is segs[-1]
    assert segs.median(0.5) is segs[2]


def test_median_rounds_half_away_from_zero():
    segs = Segments(_segments()[:3])
    assert segs.median(0.5) is segs[2]


def test_print_lines():
    segs = _segments()
    out = io.StringIO()
    segs.print(out)
    lines = out.getvalue().splitlines()
    assert len(lines) == len(segs)
    for i, (line, seg) in enumerate(zip(lines, segs)):
        assert line == f"{i}: {seg}"


def test_write_csv_round_trip():
    segs = _segments()
    segs[1].host = "a\tb"
    out = io.StringIO()
    segs.write_csv(out)
    rows = list(csv.reader(io.StringIO(out.getvalue()), delimiter="\t"))
    assert rows[0][0] == "index"
    assert len(rows) == len(segs) + 1
    assert all(len(r) == 17 for r in rows)
    assert rows[2][2] == "a\tb"
    assert [r[5] for r in rows[1:]] == [str(s.total_bytes) for s in segs]


def test_ttfb_string():
    assert str(TTFB()) == ""
    text = str(TTFB(average=SECOND, median=SECOND))
    assert text.startswith("Average:")
    assert "Median:" in text
    assert "StdDev:" in text


def test_ttfb_percentiles_length():
    assert len(TTFB().percentiles) == 101
    assert all(v == 0 for v in TTFB().percentiles)