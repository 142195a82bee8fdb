import numpy as np
import pytest

from utils.ring_buffer import RollingWindow


def test_starts_empty():
    w = RollingWindow()
    assert len(w) == 0
    assert w.capacity == 10
    assert not w.is_full
    assert w.values().size == 0


def test_twelve_samples_keep_last_ten():
    w = RollingWindow(10)
    for v in range(1, 13):
        w.append(float(v))
    assert list(w) == [3, 4, 5, 6, 7, 8, 9, 10, 11, 12]
    assert w.is_full


@pytest.mark.parametrize("arrivals", [0, 1, 5, 9, 10, 11, 25])
def test_length_is_min_of_arrivals_and_capacity(arrivals):
    w = RollingWindow(10)
    for v in range(arrivals):
        w.append(float(v))
    assert len(w) == min(arrivals, 10)
    assert list(w) == [float(v) for v in range(arrivals)][-10:]


def test_values_is_float_array():
    w = RollingWindow(3)
    w.append(np.float32(21.5))
    w.append(22.0)
    assert w.values().dtype == float
    np.testing.assert_allclose(w.values(), [21.5, 22.0])


def test_y_range_always_contains_include():
    w = RollingWindow()
    assert w.y_range((15.0, 30.0)) == (15.0, 30.0)
    w.append(22.0)
    assert w.y_range((15.0, 30.0)) == (15.0, 30.0)
    w.append(-3.0)
    w.append(41.0)
    assert w.y_range((15.0, 30.0)) == (-3.0, 41.0)


def test_clear():
    w = RollingWindow(2)
    w.append(1.0)
    w.clear()
    assert len(w) == 0


def test_rejects_zero_capacity():
    with pytest.raises(ValueError):
        RollingWindow(0)
