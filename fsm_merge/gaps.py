# fsm_merge/gaps.py
# ------------------------------------------------------------
# Data-gap detection & minor-gap filling
# ------------------------------------------------------------
# Gaps are located from the number of nominal sampling intervals
# spanned by each step,  ndt = round(diff(t) / dt).
#
#   any_gap()        – ndt > tol                 (continuity test)
#   gap_in_range()   – n_min <= ndt < n_max      (gaps of a given size)
#
# • find_gaps() / find_gaps_in_range() return (i_before, i_after)
#   index pairs plus the number of samples missing in each gap.
# • count_minor_gaps() / fill_gaps() handle the short gaps that sit
#   *inside* continuous intervals (e.g. Cluster's 5-sample dropouts).
# ------------------------------------------------------------
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import numpy as np

from .series import as_interval_array, as_time_array, sampling_interval


# ------------------------------------------------------------------
# Result container
# ------------------------------------------------------------------
@dataclass(frozen=True)
class GapResult:
    index: np.ndarray      # (K, 2) int – last sample before / first after
    size: np.ndarray       # (K,) int  – samples missing in each gap
    delta_t: float         # nominal interval used for the rounding

    def __len__(self) -> int:
        return len(self.index)

    @property
    def before(self) -> np.ndarray:
        return self.index[:, 0]

    @property
    def after(self) -> np.ndarray:
        return self.index[:, 1]


# ------------------------------------------------------------------
# Predicates on rounded step counts
# ------------------------------------------------------------------
def _round_half_away(x: np.ndarray) -> np.ndarray:
    """Round half away from zero (numpy's np.round rounds half to even)."""
    return np.sign(x) * np.floor(np.abs(x) + 0.5)


def step_counts(t: np.ndarray, delta_t: float) -> np.ndarray:
    """Number of nominal sampling intervals spanned by each step of *t*."""
    return _round_half_away(np.diff(t) / delta_t)


def any_gap(ndt: np.ndarray, tol: float = 1) -> np.ndarray:
    """True where a step spans more than *tol* sampling intervals."""
    return np.asarray(ndt) > tol


def gap_in_range(ndt: np.ndarray,
                 n_min: float,
                 n_max: float = np.inf) -> np.ndarray:
    """True where ``n_min <= ndt < n_max``."""
    ndt = np.asarray(ndt)
    return (ndt >= n_min) & (ndt < n_max)


# ------------------------------------------------------------------
# Gap finders
# ------------------------------------------------------------------
def _gap_result(t,
                delta_t: Optional[float],
                predicate: Callable[[np.ndarray], np.ndarray]) -> GapResult:
    t = as_time_array(t)
    if t.size < 2:
        dt = sampling_interval(t, delta_t) if delta_t is not None else np.nan
        return GapResult(index=np.empty((0, 2), dtype=int),
                         size=np.empty(0, dtype=int),
                         delta_t=dt)

    dt = sampling_interval(t, delta_t)
    ndt = step_counts(t, dt)
    i_before = np.flatnonzero(predicate(ndt))
    index = np.column_stack([i_before, i_before + 1]).astype(int)
    span = t[index[:, 1]] - t[index[:, 0]]
    size = (_round_half_away(span / dt) - 1).astype(int)
    return GapResult(index=index, size=size, delta_t=dt)


def find_gaps(t, delta_t: Optional[float] = None, *, tol: float = 1) -> GapResult:
    """
    Locate every discontinuity in an evenly spaced, monotonic vector.

    Parameters
    ----------
    t       : (N,) time stamps (seconds or datetime64)
    delta_t : nominal sampling interval; median step if omitted
    tol     : a step counts as a gap when it rounds to more than
              *tol* sampling intervals (default 1)

    Returns
    -------
    GapResult with (i_before, i_after) pairs and gap sizes.  A size of
    0 marks a rounding false-positive and is kept as-is.
    """
    return _gap_result(t, delta_t, lambda ndt: any_gap(ndt, tol))


def find_gaps_in_range(t,
                       n_min: float,
                       n_max: float = np.inf,
                       delta_t: Optional[float] = None) -> GapResult:
    """Gaps whose rounded step count lies in ``[n_min, n_max)``."""
    if n_max <= n_min:
        raise ValueError("n_max must be greater than n_min")
    return _gap_result(t, delta_t, lambda ndt: gap_in_range(ndt, n_min, n_max))


# ------------------------------------------------------------------
# Minor gaps inside continuous intervals
# ------------------------------------------------------------------
def _internal_gaps(t: np.ndarray,
                   intervals: np.ndarray,
                   n_min: float,
                   n_max: float,
                   delta_t: float) -> GapResult:
    """In-range gaps whose two boundary samples share an interval."""
    gaps = find_gaps_in_range(t, n_min, n_max, delta_t)
    inside = np.zeros(len(t), dtype=bool)
    for i0, i1 in intervals:
        inside[i0:i1] = True
    sel = inside[gaps.before] if len(gaps) else np.zeros(0, dtype=bool)
    return GapResult(index=gaps.index[sel], size=gaps.size[sel], delta_t=gaps.delta_t)


def count_minor_gaps(t,
                     intervals,
                     n_min: float,
                     n_max: float = np.inf,
                     delta_t: Optional[float] = None) -> int:
    """Total number of in-range gaps inside all *intervals*."""
    t = as_time_array(t)
    intervals = as_interval_array(intervals, len(t))
    if t.size < 2:
        return 0
    dt = sampling_interval(t, delta_t)
    return len(_internal_gaps(t, intervals, n_min, n_max, dt))


def fill_gaps(t,
              values,
              n_min: float,
              n_max: float = np.inf,
              intervals=None,
              delta_t: Optional[float] = None
              ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Fill minor gaps with evenly spaced samples.

    Gaps whose rounded step count is in ``[n_min, n_max)`` and whose
    boundary samples belong to the same interval receive ``size`` new
    stamps at ``t[i] + k*dt``; values are linearly interpolated between
    the two boundary samples.  Gaps between intervals are left alone.

    Returns
    -------
    t_filled, values_filled, intervals_filled
        The interval indices are shifted to point into the filled arrays.
    """
    t = as_time_array(t)
    v = np.asarray(values, dtype=float)
    if len(v) != len(t):
        raise ValueError("t and values must have the same length")
    if intervals is None:
        intervals = np.array([[0, len(t) - 1]])
    intervals = as_interval_array(intervals, len(t))

    if t.size < 2:
        return t.copy(), v.copy(), intervals.copy()

    dt = sampling_interval(t, delta_t)
    gaps = _internal_gaps(t, intervals, n_min, n_max, dt)
    n_insert = np.maximum(gaps.size, 0)
    before = gaps.before[n_insert > 0]
    n_insert = n_insert[n_insert > 0]
    if before.size == 0:
        return t.copy(), v.copy(), intervals.copy()

    # Position of every original sample in the filled arrays
    counts = np.zeros(len(t), dtype=int)
    counts[before] = n_insert
    pos = np.arange(len(t)) + np.concatenate([[0], np.cumsum(counts)[:-1]])

    n_out = len(t) + int(counts.sum())
    t_out = np.empty(n_out, dtype=float)
    v_out = np.empty((n_out,) + v.shape[1:], dtype=float)
    t_out[pos] = t
    v_out[pos] = v

    for i, k in zip(before, n_insert):
        steps = np.arange(1, k + 1)
        t_new = t[i] + steps * dt
        frac = (t_new - t[i]) / (t[i + 1] - t[i])
        frac = frac.reshape((-1,) + (1,) * (v.ndim - 1))
        slots = pos[i] + steps
        t_out[slots] = t_new
        v_out[slots] = v[i] + frac * (v[i + 1] - v[i])

    return t_out, v_out, pos[intervals]
