import random

import pytest

from pixgrab.delay import MIN_DELAY_MS, Backoff, compute_delay, polite_sleep


class _SequenceRandom:
    """Stand-in for random.Random returning preset uniform draws."""

    def __init__(self, *values: float) -> None:
        self._values = list(values)

    def random(self) -> float:
        return self._values.pop(0)


@pytest.mark.parametrize("base", [1, 200, 1000, 4321])
def test_fixed_delay_is_base(base):
    assert compute_delay(base, False) == base


@pytest.mark.parametrize("base", [500, 1000, 3000])
def test_randomized_delay_stays_within_forty_percent(base):
    rng = random.Random(1234)
    for _ in range(2000):
        d = compute_delay(base, True, rng=rng)
        assert d >= MIN_DELAY_MS
        assert abs(d - base) <= 0.4 * base


def test_randomized_delay_floor():
    rng = random.Random(7)
    delays = [compute_delay(250, True, rng=rng) for _ in range(1000)]
    assert min(delays) >= MIN_DELAY_MS
    assert max(delays) <= 350


def test_randomized_delay_is_clamped():
    # u1 close to 0 gives a gaussian of ~6.8 stddevs; cos(0) = 1 keeps it positive
    high = compute_delay(1000, True, rng=_SequenceRandom(1.0 - 1e-10, 0.0))
    assert high == 1400
    low = compute_delay(1000, True, rng=_SequenceRandom(1.0 - 1e-10, 0.5))
    assert low == 600


def test_randomized_delay_centered_draw():
    # u1 = 1 makes the gaussian exactly zero
    assert compute_delay(1000, True, rng=_SequenceRandom(0.0, 0.3)) == 1000


def test_backoff_escalates_and_caps():
    b = Backoff(1000)
    waits = [b.record_rate_limit() for _ in range(6)]
    assert waits == [2000, 4000, 6000, 8000, 8000, 8000]
    assert b.multiplier == 8
    b.reset()
    assert b.consecutive_errors == 0
    assert b.multiplier == 1
    assert b.record_rate_limit() == 2000


def test_polite_sleep_converts_to_seconds(sleeps):
    polite_sleep(1500)
    polite_sleep(0)
    assert sleeps == [1.5]
