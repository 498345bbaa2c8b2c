# fsm_merge/intervals.py
# ------------------------------------------------------------
# Continuous-interval detection
# ------------------------------------------------------------
# An interval is a maximal run of samples with no gap between
# consecutive members.  Intervals are returned as a (K, 2) int
# array of inclusive [start, end] indices:
#
#   gaps at (i0, i0+1), (i1, i1+1)  →  [[0, i0], [i0+1, i1], [i1+1, N-1]]
#
# • interval_lengths()   – samples per interval
# • interval_values()    – time stamps at interval boundaries
# • split_by_intervals() – (t, values) slices, one per interval
# ------------------------------------------------------------
from __future__ import annotations
from typing import List, Optional, Tuple

import numpy as np

from .gaps import find_gaps
from .series import as_interval_array, as_time_array


def find_intervals(t, delta_t: Optional[float] = None, *, tol: float = 1) -> np.ndarray:
    """
    Continuous intervals of an evenly spaced, monotonic time vector.

    Parameters
    ----------
    t       : (N,) time stamps (seconds or datetime64)
    delta_t : nominal sampling interval; median step if omitted
    tol     : largest rounded step count still considered continuous

    Returns
    -------
    (K, 2) int array, K = number of gaps + 1.  The intervals cover
    0..N-1 exactly once, in order.
    """
    t = as_time_array(t)
    n = len(t)
    if n == 1:
        return np.array([[0, 0]], dtype=int)

    gaps = find_gaps(t, delta_t, tol=tol)
    starts = np.concatenate([[0], gaps.after])
    ends = np.concatenate([gaps.before, [n - 1]])
    return np.column_stack([starts, ends]).astype(int)


def interval_lengths(intervals) -> np.ndarray:
    """Number of samples in each interval."""
    iv = as_interval_array(intervals)
    return iv[:, 1] - iv[:, 0] + 1


def interval_values(t, intervals) -> np.ndarray:
    """Series values at the interval boundaries, shape (K, 2)."""
    t = np.asarray(t)
    iv = as_interval_array(intervals, len(t))
    if len(iv) == 0:
        return np.empty((0, 2), dtype=t.dtype)
    return t[iv]


def split_by_intervals(t, values, intervals) -> List[Tuple[np.ndarray, np.ndarray]]:
    """Slice (t, values) into one (t_k, v_k) pair per interval."""
    t = np.asarray(t)
    v = np.asarray(values)
    if len(v) != len(t):
        raise ValueError("t and values must have the same length")
    iv = as_interval_array(intervals, len(t))
    return [(t[i0:i1 + 1], v[i0:i1 + 1]) for i0, i1 in iv]
