# fsm_merge/align.py
# ------------------------------------------------------------
# Dual-series interval alignment  (X = e.g. FGM, Y = e.g. SCM)
# ------------------------------------------------------------
# Two independently sampled series are split into continuous
# intervals, then
#
#   remove – drop X intervals with no temporal overlap in Y,
#            then Y intervals with no overlap in the pruned X
#   sync   – per interval pair, keep the later start / earlier
#            end and snap the other series to its nearest sample
#
# Out-of-range nearest-sample lookups clamp to the first or last
# sample, and a pair whose snapped end falls before its start
# collapses to a single point. Each clamp is warned about and
# counted in AlignResult.
# ------------------------------------------------------------
from __future__ import annotations
from dataclasses import dataclass
from typing import Literal, Optional, Tuple
import warnings

import numpy as np

from .intervals import find_intervals
from .series import as_interval_array, as_time_array


# ------------------------------------------------------------------
# Config
# ------------------------------------------------------------------
class AlignerCfg:
    """
    Switches for align_intervals().
    """
    remove: bool = False        # prune non-overlapping intervals
    sync:   bool = False        # snap interval boundaries across series
    tol_x:  float = 1           # gap tolerance (sampling intervals) for X
    tol_y:  float = 1           # … and for Y
    tie_breaker: Literal['later', 'earlier'] = 'later'   # equal-distance match

    def __init__(self, **kw):
        for k, v in kw.items():
            if not hasattr(self, k):
                raise ValueError(f'Unknown AlignerCfg key {k}')
            setattr(self, k, v)
        if self.tie_breaker not in ('later', 'earlier'):
            raise ValueError(f"tie_breaker must be 'later' or 'earlier', got {self.tie_breaker!r}")
        if self.tol_x <= 0 or self.tol_y <= 0:
            raise ValueError('tol_x and tol_y must be positive')

    def __repr__(self) -> str:
        return (f"AlignerCfg(remove={self.remove}, sync={self.sync}, "
                f"tol_x={self.tol_x}, tol_y={self.tol_y}, "
                f"tie_breaker={self.tie_breaker!r})")


@dataclass
class AlignResult:
    ix: np.ndarray          # (K, 2) X interval indices
    iy: np.ndarray          # (K', 2) Y interval indices (K' == K after sync)
    n_removed_x: int = 0
    n_removed_y: int = 0
    n_clamped: int = 0


# ------------------------------------------------------------------
# Remove
# ------------------------------------------------------------------
def _boundary_values(vals, n: int, name: str) -> np.ndarray:
    vals = np.asarray(vals, dtype=float)
    if n == 0 and vals.size == 0:
        return np.empty((0, 2))
    if vals.shape != (n, 2):
        raise ValueError(f"{name} must have shape ({n}, 2), got {vals.shape}")
    return vals


def remove_non_overlapping(ix, iy, x_vals, y_vals) -> np.ndarray:
    """
    Drop the X intervals that have no temporal overlap with any Y interval.

    Parameters
    ----------
    ix, iy          : (K, 2) interval indices of X and Y, sorted by start
    x_vals, y_vals  : series values at those indices, i.e. x[ix], y[iy]

    Returns
    -------
    Subsequence of *ix*, original order preserved.  Overlap is strict:
    intervals that only touch at one instant do not overlap.
    """
    ix = as_interval_array(ix)
    iy = as_interval_array(iy)
    x_vals = _boundary_values(x_vals, len(ix), 'x_vals')
    y_vals = _boundary_values(y_vals, len(iy), 'y_vals')

    keep = np.zeros(len(ix), dtype=bool)
    jj = 0
    ny = len(iy)
    for ii, (xs, xe) in enumerate(x_vals):
        # Y intervals ending before X starts can't overlap any later X either
        while jj < ny and y_vals[jj, 1] <= xs:
            jj += 1
        if jj == ny:
            break
        keep[ii] = y_vals[jj, 0] < xe
    return ix[keep]


# ------------------------------------------------------------------
# Sync
# ------------------------------------------------------------------
def _nearest(t: np.ndarray,
             t0: float,
             tie_breaker: str) -> Tuple[int, bool]:
    """Nearest index into *t* plus a flag telling whether it was clamped."""
    n = len(t)
    j = int(np.searchsorted(t, t0, side='left'))
    if j == n:
        return n - 1, True
    if j == 0 and t0 < t[0]:
        return 0, True
    if j > 0:
        d_prev = abs(t[j - 1] - t0)
        d_next = abs(t[j] - t0)
        if d_prev < d_next or (d_prev == d_next and tie_breaker == 'earlier'):
            j -= 1
    return j, False


def nearest_index(t, t0: float,
                  tie_breaker: Literal['later', 'earlier'] = 'later') -> int:
    """
    Index of the sample in *t* closest to *t0*.

    Equal distances go to the later sample unless *tie_breaker* is
    'earlier'.  Targets outside *t* clamp to the first or last index.
    """
    if tie_breaker not in ('later', 'earlier'):
        raise ValueError(f"tie_breaker must be 'later' or 'earlier', got {tie_breaker!r}")
    t = as_time_array(t)
    return _nearest(t, float(t0), tie_breaker)[0]


def _synchronize(x: np.ndarray,
                 y: np.ndarray,
                 ix: np.ndarray,
                 iy: np.ndarray,
                 tie_breaker: str) -> Tuple[np.ndarray, np.ndarray, int]:
    nx, ny = len(ix), len(iy)
    if nx == 0 and ny == 0:
        return np.empty((0, 2), dtype=int), np.empty((0, 2), dtype=int), 0
    if nx == 0 or ny == 0:
        raise ValueError('cannot synchronize: one series has no intervals')

    n = max(nx, ny)
    ox = np.empty((n, 2), dtype=int)
    oy = np.empty((n, 2), dtype=int)
    n_clamped = 0

    def snap(t, t0, what):
        nonlocal n_clamped
        j, clamped = _nearest(t, t0, tie_breaker)
        if clamped:
            n_clamped += 1
            warnings.warn(f"[align] {what} target {t0:g} outside samples "
                          f"[{t[0]:g}, {t[-1]:g}] – clamped to index {j}")
        return j

    def next_pair(iv, k, last_end, n_samples, what):
        nonlocal n_clamped
        if k < len(iv):
            return iv[k]
        start = last_end + 1
        if start > n_samples - 1:
            n_clamped += 1
            warnings.warn(f"[align] {what} exhausted – remainder interval "
                          f"clamped to index {n_samples - 1}")
            start = n_samples - 1
        return start, n_samples - 1

    def collapse(start, end, what, k):
        nonlocal n_clamped
        if end >= start:
            return end
        n_clamped += 1
        warnings.warn(f"[align] {what} interval {k} end index {end} precedes "
                      f"start {start} – collapsed to a single sample")
        return start

    x0, x1 = ix[0]
    y0, y1 = iy[0]
    for k in range(n):
        # Later start drives (ties → X)
        if x[x0] >= y[y0]:
            sx, sy = x0, snap(y, x[x0], 'Y start')
        else:
            sx, sy = snap(x, y[y0], 'X start'), y0
        # Earlier end drives (ties → X)
        if x[x1] <= y[y1]:
            ex, ey = x1, snap(y, x[x1], 'Y end')
        else:
            ex, ey = snap(x, y[y1], 'X end'), y1

        ex = collapse(sx, ex, 'X', k)
        ey = collapse(sy, ey, 'Y', k)
        ox[k] = sx, ex
        oy[k] = sy, ey

        if k + 1 < n:
            x0, x1 = next_pair(ix, k + 1, ex, len(x), 'X')
            y0, y1 = next_pair(iy, k + 1, ey, len(y), 'Y')

    return as_interval_array(ox, len(x)), as_interval_array(oy, len(y)), n_clamped


def synchronize(x, y, ix, iy, *,
                tie_breaker: Literal['later', 'earlier'] = 'later'
                ) -> Tuple[np.ndarray, np.ndarray]:
    """
    Snap the boundaries of paired X / Y intervals to a common time base.

    For pair k the series that starts later keeps its start index and
    the other series' start moves to its nearest sample; likewise the
    series that ends earlier keeps its end index.  When one series runs
    out of intervals its remaining samples form the next interval, so
    both outputs have max(len(ix), len(iy)) rows.  A pair whose snapped
    end lands before its start is collapsed to its start sample.
    """
    if tie_breaker not in ('later', 'earlier'):
        raise ValueError(f"tie_breaker must be 'later' or 'earlier', got {tie_breaker!r}")
    x = as_time_array(x)
    y = as_time_array(y)
    ix = as_interval_array(ix, len(x))
    iy = as_interval_array(iy, len(y))
    ox, oy, _ = _synchronize(x, y, ix, iy, tie_breaker)
    return ox, oy


# ------------------------------------------------------------------
# Composite
# ------------------------------------------------------------------
def align_intervals(x, y,
                    cfg: Optional[AlignerCfg] = None,
                    *,
                    delta_x: Optional[float] = None,
                    delta_y: Optional[float] = None) -> AlignResult:
    """
    Find the continuous intervals of *x* and *y*, then prune and/or
    synchronize them as requested by *cfg*.

    Example
    -------
    >>> res = align_intervals(t_fgm, t_scm, AlignerCfg(remove=True, sync=True))
    >>> for (a, b), (c, d) in zip(res.ix, res.iy):
    ...     merge(fgm[a:b+1], scm[c:d+1])
    """
    cfg = cfg or AlignerCfg()
    x = as_time_array(x)
    y = as_time_array(y)
    ix = find_intervals(x, delta_x, tol=cfg.tol_x)
    iy = find_intervals(y, delta_y, tol=cfg.tol_y)
    nx0, ny0 = len(ix), len(iy)

    if cfg.remove:
        ix = remove_non_overlapping(ix, iy, x[ix], y[iy])
        iy = remove_non_overlapping(iy, ix, y[iy], x[ix])
    n_removed_x, n_removed_y = nx0 - len(ix), ny0 - len(iy)

    n_clamped = 0
    if cfg.sync:
        ix, iy, n_clamped = _synchronize(x, y, ix, iy, cfg.tie_breaker)

    return AlignResult(ix=ix, iy=iy,
                       n_removed_x=n_removed_x,
                       n_removed_y=n_removed_y,
                       n_clamped=n_clamped)
