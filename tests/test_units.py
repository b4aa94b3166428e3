import pytest

from warpstat.aggregate.units import dur_to_millis
from warpstat.bench.durations import MILLISECOND, SECOND


@pytest.mark.parametrize("n", [0, 1, 7, 250, 1000])
def test_whole_milliseconds_round_trip(n):
    assert dur_to_millis(n * MILLISECOND) == n


def test_rounds_down_below_half():
    assert dur_to_millis(3 * MILLISECOND + MILLISECOND // 2 - 1) == 3


def test_rounds_up_at_half():
    assert dur_to_millis(3 * MILLISECOND + MILLISECOND // 2) == 4


def test_negative_is_symmetric():
    d = 3 * MILLISECOND + MILLISECOND // 2
    assert dur_to_millis(-d) == -dur_to_millis(d)


def test_second():
    assert dur_to_millis(SECOND) * MILLISECOND == SECOND