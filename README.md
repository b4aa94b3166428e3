# warpstat

`warpstat` analyses the operation logs recorded by an object-storage benchmark.
Every recorded request is an `Operation` (`warpstat.bench.operation`) that carries
its type (`GET`, `PUT`, `DELETE`, `STAT`, ...), thread, client id, endpoint,
object size and its start, first-byte and end times. All times and durations are
integers in nanoseconds, with timestamps counted from the Unix epoch. The package
turns a list of operations into throughput, request-time and
time-to-first-byte statistics.

## Installation

```
pip install .
```

It needs Python 3.10 or newer and nothing outside the standard library.
Install the `test` extra to get pytest for the test suite.

## Loading and saving operations

Operation logs are tab-separated files with a header row and one row per
request. Lines starting with `#` are comments. `warpstat.bench.csvio.read_csv`
reads such a log from any iterable of text lines and `write_csv` writes one:

```python
from warpstat.bench.csvio import read_csv, write_csv

with open("run.csv", newline="") as f:
    ops = read_csv(f, False, 0, 0, None)

with open("copy.csv", "w", newline="") as f:
    write_csv(ops, f, "recorded on the test cluster")
```

`read_csv(stream, analyze_only, offset, limit, log)` skips `offset` records,
stops after `limit` records when that is positive, and with `analyze_only`
replaces file names with numbers and client ids with single letters. If `log`
is given it is called with progress messages. The function returns an
`Operations` object, which is a list of `Operation`. Malformed quoting raises
`CsvFormatError` (a `ValueError`), bad numbers or timestamps raise
`ValueError`, and input without a header raises `EOFError`.

`write_csv` puts the comment, if any, at the end of the file with every line
prefixed by `# `.

## Working with operations

`warpstat.bench.operations.Operations` offers:

- filters: `filter_by_op`, `filter_by_endpoint`, `filter_by_has_ttfb`,
  `filter_inside_range`, `filter_successful`, `filter_errors`, `filter_first`,
  `filter_last`;
- sorts: `sort_by_start_time`, `sort_by_end_time`, `sort_by_duration`,
  `sort_by_throughput`, `sort_by_ttfb`, and `median(m)` to pick an element at a
  fraction of the sorted list;
- grouping: `by_op`, `by_endpoint`, `op_types`, `is_mixed`, `is_multi_touch`;
- summaries: `time_range`, `active_time_range`, `duration`, `threads`, `hosts`,
  `clients`, `endpoints`, `errors`, `avg_size`, `avg_duration`, `std_dev`,
  `min_max_size`, `op_throughput`;
- size ranges: `single_size_segment` and `split_sizes`, returning `SizeSegment`s;
- time analysis: `segment`, `total` and `ttfb`.

```python
from warpstat.bench.operations import SegmentOptions

for op_type, group in ops.by_op().items():
    segs = group.segment(SegmentOptions(per_seg_duration=1_000_000_000, all_threads=True))
    segs.sort_by_throughput()
    print(op_type, "fastest:", segs.median(1))
    print(op_type, "average:", group.total(True))
    print(op_type, "TTFB:", group.ttfb(*group.active_time_range(True)))
```

`segment` returns `Segments` (`warpstat.bench.segment`), a list of `Segment`
with `speed_per_sec`, sorting helpers and `median`. `Segments.print` and
`Segments.write_csv` write segment listings to any text stream.

`warpstat.bench.durations` holds the helpers for the text forms of times:
`format_duration`, `round_duration`, `format_clock`, `format_timestamp` and
`parse_timestamp` (RFC 3339).

## Collecting operations

`warpstat.bench.collector.Collector` is a thread-safe sink. `receiver()`
returns a callable that records one operation and `close()` returns everything
recorded. `auto_term(op, threshold, want_samples, split_into, min_dur)` starts
a background watch and returns a `threading.Event` that is set once the
throughput of the latest segments stays within `threshold` of the last one.

## Comparing two runs

`warpstat.bench.compare.compare(before, after, analysis, all_threads)` compares
two runs of the same operation type, with `analysis` as the segment length in
nanoseconds. It returns a `Comparison` holding the average, fastest, median and
slowest segment changes (`CmpSegment`), the request-time changes (`CmpReqs`)
and the time-to-first-byte changes (`TTFBCmp`, or `None` without data). It
raises `ValueError` if the operation types differ, if the analysis duration is
not positive, if either run recorded errors, or if there are too few samples.

## Aggregated reports

`warpstat.aggregate.aggregate.aggregate(ops, opts)` produces an `Aggregated`
report for a whole run. It has one `OperationStats` per operation type with
throughput (`warpstat.aggregate.throughput.Throughput`), per-host throughput,
the first errors, and either single-sized or multi-sized request statistics
(`warpstat.aggregate.requests`). When operation types overlap, the report is of
type `mixed` and also holds run-wide server stats and their per-host split.

```python
from warpstat.aggregate.aggregate import Options, aggregate

report = aggregate(ops, Options(dur_func=lambda total: total // 25))
for stats in report.operations:
    print(stats.type, stats.throughput)
```

Durations in the aggregated report are whole milliseconds; speeds are bytes and
objects per second.

## What it does not do

`warpstat` only analyses operations that were already recorded. It does not
connect to a storage server, create buckets, upload or download objects, or
run benchmarks itself, and it has no command-line program.