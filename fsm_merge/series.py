# fsm_merge/series.py
# ------------------------------------------------------------
# Sample-series containers & boundary validation
# ------------------------------------------------------------
# • as_time_array()      – float seconds from seconds / datetime64
# • as_field_array()     – fixed (N, 3) row-major field container
# • sampling_interval()  – nominal spacing (median of differences)
# • SampleSeries         – paired (t, values) with length check
# Shapes are decided here, once, so the algorithms downstream
# never branch on row/column orientation.
# ------------------------------------------------------------
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

import numpy as np


# ------------------------------------------------------------------
# Time stamps
# ------------------------------------------------------------------
def as_time_array(t, *, check_monotonic: bool = True) -> np.ndarray:
    """
    Return *t* as a 1-D float64 array of seconds.

    datetime64 input is converted to seconds since 1970-01-01.
    Raises ValueError for empty, multi-dimensional, non-finite or
    decreasing stamps.
    """
    t = np.asarray(t)
    if t.ndim != 1:
        raise ValueError(f"time array must be 1-D, got shape {t.shape}")
    if t.size == 0:
        raise ValueError("time array must contain at least one sample")

    if np.issubdtype(t.dtype, np.datetime64):
        epoch1970 = np.datetime64('1970-01-01T00:00:00', 'ns')
        t_sec = (t.astype('datetime64[ns]') - epoch1970) / np.timedelta64(1, 's')
        t_sec = t_sec.astype(np.float64)
    else:
        t_sec = t.astype(np.float64)

    if not np.all(np.isfinite(t_sec)):
        raise ValueError("time array contains non-finite values")
    if check_monotonic and np.any(np.diff(t_sec) < 0):
        raise ValueError("time array must be monotonically increasing")
    return t_sec


def sampling_interval(t: np.ndarray,
                      delta_t: Optional[float] = None) -> float:
    """
    Nominal sampling interval of *t*.

    Uses *delta_t* when given, otherwise the median of the differences
    between adjacent points (the mean is biased by gaps).
    """
    if delta_t is None:
        if len(t) < 2:
            raise ValueError("need at least two samples to estimate the sampling interval")
        delta_t = float(np.median(np.diff(t)))
    delta_t = float(delta_t)
    if not np.isfinite(delta_t) or delta_t <= 0:
        raise ValueError(f"sampling interval must be positive, got {delta_t}")
    return delta_t


# ------------------------------------------------------------------
# Field data
# ------------------------------------------------------------------
def as_field_array(field, n_samples: Optional[int] = None,
                   n_components: int = 3) -> np.ndarray:
    """Validate a row-major (N, n_components) field matrix."""
    b = np.asarray(field, dtype=float)
    if b.ndim != 2 or b.shape[1] != n_components:
        raise ValueError(
            f"field must have shape (N, {n_components}), got {b.shape}")
    if n_samples is not None and b.shape[0] != n_samples:
        raise ValueError(
            f"field has {b.shape[0]} samples but time array has {n_samples}")
    return b


# ------------------------------------------------------------------
# Interval index arrays
# ------------------------------------------------------------------
def as_interval_array(intervals, n_samples: Optional[int] = None) -> np.ndarray:
    """
    Validate a (K, 2) array of inclusive [start, end] sample indices.

    A single (start, end) pair is promoted to shape (1, 2).
    """
    iv = np.asarray(intervals)
    if iv.size == 0:
        return np.empty((0, 2), dtype=int)
    if iv.ndim == 1 and iv.size == 2:
        iv = iv.reshape(1, 2)
    if iv.ndim != 2 or iv.shape[1] != 2:
        raise ValueError(f"intervals must have shape (K, 2), got {iv.shape}")
    if not np.issubdtype(iv.dtype, np.integer):
        if not np.all(iv == np.round(iv)):
            raise ValueError("interval indices must be integers")
    iv = iv.astype(int)
    if np.any(iv[:, 1] < iv[:, 0]):
        raise ValueError("interval end index precedes its start index")
    if np.any(iv < 0):
        raise ValueError("interval indices must be non-negative")
    if n_samples is not None and np.any(iv >= n_samples):
        raise ValueError(f"interval index out of range for {n_samples} samples")
    return iv


# ------------------------------------------------------------------
# Container
# ------------------------------------------------------------------
@dataclass
class SampleSeries:
    """Time stamps (s) paired with per-sample values, (N,) or (N, C)."""
    t: np.ndarray
    values: np.ndarray

    def __post_init__(self) -> None:
        self.t = as_time_array(self.t)
        self.values = np.asarray(self.values)
        if self.values.ndim not in (1, 2):
            raise ValueError("values must be 1-D or 2-D")
        if len(self.values) != len(self.t):
            raise ValueError("t and values must have the same length")

    def __len__(self) -> int:
        return len(self.t)

    @property
    def delta_t(self) -> float:
        return sampling_interval(self.t)
