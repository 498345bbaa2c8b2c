import numpy as np
import pytest

from fsm_merge.gaps import find_gaps
from fsm_merge.intervals import (find_intervals, interval_lengths,
                                 interval_values, split_by_intervals)


def _random_gappy_series(rng, n_runs=6, dt=0.25):
    """Concatenated runs with random lengths separated by random gaps."""
    t, t0 = [], 0.0
    for _ in range(n_runs):
        n = int(rng.integers(1, 40))
        t.append(t0 + dt * np.arange(n))
        t0 = t[-1][-1] + dt * int(rng.integers(2, 20))
    return np.concatenate(t)


def test_two_intervals_around_one_gap():
    t = np.array([0, 1, 2, 3, 10, 11, 12], dtype=float)
    np.testing.assert_array_equal(find_intervals(t, 1.0), [[0, 3], [4, 6]])


def test_continuous_series_is_one_interval():
    np.testing.assert_array_equal(find_intervals(np.array([0.0, 1.0, 2.0])), [[0, 2]])


def test_single_sample_is_trivial_interval():
    iv = find_intervals(np.array([42.0]))
    np.testing.assert_array_equal(iv, [[0, 0]])
    assert iv.dtype.kind == 'i'


def test_tolerance_merges_small_gaps(gappy_time):
    np.testing.assert_array_equal(find_intervals(gappy_time),
                                  [[0, 99], [100, 294], [295, 464]])
    np.testing.assert_array_equal(find_intervals(gappy_time, tol=6),
                                  [[0, 294], [295, 464]])
    np.testing.assert_array_equal(find_intervals(gappy_time, tol=100),
                                  [[0, 464]])


@pytest.mark.parametrize('seed', [0, 1, 2, 3])
def test_intervals_cover_series_exactly_once(seed):
    rng = np.random.default_rng(seed)
    t = _random_gappy_series(rng)
    iv = find_intervals(t, 0.25)

    covered = np.concatenate([np.arange(a, b + 1) for a, b in iv])
    np.testing.assert_array_equal(covered, np.arange(len(t)))
    assert len(iv) == len(find_gaps(t, 0.25)) + 1
    assert interval_lengths(iv).sum() == len(t)


@pytest.mark.parametrize('seed', [4, 5])
def test_intervals_do_not_split_further(seed):
    rng = np.random.default_rng(seed)
    t = _random_gappy_series(rng)
    for a, b in find_intervals(t, 0.25):
        sub = find_intervals(t[a:b + 1], 0.25)
        np.testing.assert_array_equal(sub, [[0, b - a]])


def test_interval_helpers():
    t = np.array([0, 1, 2, 3, 10, 11, 12], dtype=float)
    v = t ** 2
    iv = find_intervals(t)

    np.testing.assert_array_equal(interval_lengths(iv), [4, 3])
    np.testing.assert_array_equal(interval_values(t, iv), [[0, 3], [10, 12]])

    parts = split_by_intervals(t, v, iv)
    assert len(parts) == 2
    np.testing.assert_array_equal(parts[1][0], [10, 11, 12])
    np.testing.assert_array_equal(parts[1][1], [100, 121, 144])


def test_interval_values_rejects_out_of_range_index():
    with pytest.raises(ValueError):
        interval_values(np.arange(5.0), [[0, 5]])
    with pytest.raises(ValueError):
        interval_lengths([[3, 2]])
