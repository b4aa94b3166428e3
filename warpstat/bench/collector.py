"""Collection of operations while a benchmark runs, with automatic termination."""

from __future__ import annotations

import math
import threading
from typing import Callable, Optional

from .durations import MILLISECOND, format_duration, round_duration
from .operation import Operation
from .operations import Operations, SegmentOptions


class Collector:
    """Thread-safe sink for operations reported by benchmark workers."""

    check_interval = 1.0

    def __init__(self) -> None:
        self._ops = Operations()
        self._lock = threading.Lock()
        self._closed = threading.Event()

    def receiver(self) -> Callable[[Operation], None]:
        """A callable that records one operation."""
        return self._receive

    def _receive(self, op: Operation) -> None:
        with self._lock:
            if self._closed.is_set():
                raise RuntimeError("collector is closed")
            self._ops.append(op)

    def close(self) -> Operations:
        """Stop collecting and return everything received."""
        with self._lock:
            if self._closed.is_set():
                raise RuntimeError("collector is already closed")
            self._closed.set()
            return self._ops

    def auto_term(
        self,
        op: str,
        threshold: float,
        want_samples: int,
        split_into: int,
        min_dur: int,
    ) -> threading.Event:
        """Watch throughput and set the returned event once it is stable.

        Throughput is stable when the last ``want_samples`` of ``split_into``
        segments are all within ``threshold`` of the last one. Setting the
        event from outside stops the watch as well.
        """
        if want_samples >= split_into:
            raise ValueError("want_samples >= split_into")
        if split_into == 0:
            raise ValueError("split_into == 0")
        stop = threading.Event()
        watcher = threading.Thread(
            target=self._watch,
            args=(stop, op, threshold, want_samples, split_into, min_dur),
            daemon=True,
        )
        watcher.start()
        return stop

    def _watch(
        self,
        stop: threading.Event,
        op: str,
        threshold: float,
        want_samples: int,
        split_into: int,
        min_dur: int,
    ) -> None:
        while not stop.wait(self.check_interval):
            if self._closed.is_set():
                return
            with self._lock:
                ops = self._ops.filter_by_op(op)
            message = _stability_message(ops, threshold, want_samples, split_into, min_dur)
            if message is not None:
                print(message)
                stop.set()
                return


def _stability_message(
    ops: Operations,
    threshold: float,
    want_samples: int,
    split_into: int,
    min_dur: int,
) -> Optional[str]:
    start, end = ops.active_time_range(True)
    if end - start <= min_dur * split_into // want_samples:
        return None
    segs = ops.segment(
        SegmentOptions(
            from_time=start,
            per_seg_duration=(end - start) // split_into,
            all_threads=True,
        )
    )
    if len(segs) < want_samples:
        return None
    last = segs[-1]
    mb, _, objs = last.speed_per_sec()
    window = segs[len(segs) - want_samples : len(segs) - 1]
    for seg in window:
        seg_mb, _, seg_objs = seg.speed_per_sec()
        if mb > 0:
            if math.fabs(mb - seg_mb) > threshold * mb:
                return None
            continue
        if math.fabs(objs - seg_objs) > threshold * objs:
            return None

    base = window[0] if window else last
    span = format_duration(round_duration(base.duration(), MILLISECOND) * (len(window) + 1))
    if mb > 0:
        rate = f"{mb:0.1f}MiB/s"
    else:
        rate = f"{objs:0.1f} objects/s"
    return (
        f"Throughput {rate} within {threshold * 100:f}% for {span}. "
        "Assuming stability. Terminating benchmark."
    )