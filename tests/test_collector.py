import pytest

from warpstat.bench.collector import Collector
from warpstat.bench.durations import MILLISECOND, SECOND
from warpstat.bench.operation import Operation


def steady_ops(op_type="PUT", threads=2, count=100, dur=100 * MILLISECOND):
    return [
        Operation(
            op_type=op_type,
            obj_per_op=1,
            start=i * dur,
            end=(i + 1) * dur,
            size=1 << 20,
            file=f"obj-{t}-{i}",
            thread=t,
            endpoint="http://host:9000",
        )
        for t in range(threads)
        for i in range(count)
    ]


def test_receiver_collects_in_order():
    collector = Collector()
    send = collector.receiver()
    ops = steady_ops(count=3)
    for op in ops:
        send(op)
    assert collector.close() == ops


def test_send_after_close_raises():
    collector = Collector()
    send = collector.receiver()
    collector.close()
    with pytest.raises(RuntimeError):
        send(Operation(op_type="GET"))


def test_close_twice_raises():
    collector = Collector()
    collector.close()
    with pytest.raises(RuntimeError):
        collector.close()


@pytest.mark.parametrize("want, split", [(25, 25), (30, 25), (0, 0)])
def test_auto_term_rejects_bad_samples(want, split):
    with pytest.raises(ValueError):
        Collector().auto_term("PUT", 0.1, want, split, SECOND)


def test_auto_term_detects_stable_throughput():
    collector = Collector()
    collector.check_interval = 0.01
    send = collector.receiver()
    for op in steady_ops():
        send(op)
    stop = collector.auto_term("PUT", 0.1, 7, 25, SECOND)
    try:
        assert stop.wait(timeout=5)
    finally:
        collector.close()


def test_auto_term_waits_for_enough_data():
    collector = Collector()
    collector.check_interval = 0.01
    send = collector.receiver()
    for op in steady_ops(count=5):
        send(op)
    stop = collector.auto_term("PUT", 0.1, 7, 25, 60 * SECOND)
    try:
        assert not stop.wait(timeout=0.2)
    finally:
        stop.set()
        collector.close()


def test_auto_term_ignores_other_operation_types():
    collector = Collector()
    collector.check_interval = 0.01
    send = collector.receiver()
    for op in steady_ops(op_type="GET"):
        send(op)
    stop = collector.auto_term("PUT", 0.1, 7, 25, SECOND)
    try:
        assert not stop.wait(timeout=0.2)
    finally:
        stop.set()
        collector.close()