# fsm_merge/visualize.py
# ---------------------------------------------------------------------
# Quick-look plotting helpers
# ---------------------------------------------------------------------
# • _set_style()        – one-shot Matplotlib style
# • shade_intervals()   – translucent shading of continuous intervals
# • plot_intervals()    – interval bars for one or two series
# • plot_calibration()  – raw vs calibrated field, one panel per axis
# ---------------------------------------------------------------------
from __future__ import annotations
from typing import Iterable, List, Optional, Tuple

import numpy as np
import matplotlib.pyplot as plt

from .calibrate import CalibrationResult
from .series import as_interval_array

# =====================================================================
# Global style
# =====================================================================
def _set_style() -> None:
    plt.style.use('seaborn-v0_8-white')
    plt.rcParams.update({
        'axes.prop_cycle': plt.cycler(
            'color', ['#1f77b4', '#ff7f0e', '#2ca02c', '#d62728']),
        'axes.grid': True,
        'grid.alpha': 0.3,
        'font.size': 10,
        'figure.dpi': 120,
        'savefig.dpi': 300,
        'axes.titleweight': 'bold'
    })

_set_style()

# =====================================================================
# Internal helper – plot only if finite data exist
# =====================================================================
def _safe_plot(ax: plt.Axes,
               t: np.ndarray,
               y: np.ndarray,
               *args, **kwargs) -> None:
    """Silently skip all-NaN series so autoscaling behaves."""
    if np.isfinite(y).any():
        ax.plot(t, y, *args, **kwargs)

# =====================================================================
# Interval shading
# =====================================================================
def shade_intervals(ax: plt.Axes,
                    t: np.ndarray,
                    intervals,
                    *,
                    color: str = 'skyblue',
                    alpha: float = 0.15) -> None:
    """
    intervals = (K, 2) inclusive [start, end] indices into `t`
    """
    for i0, i1 in as_interval_array(intervals, len(t)):
        ax.axvspan(t[i0], t[i1], color=color, alpha=alpha, lw=0)

# =====================================================================
# Interval bars (one row per series)
# =====================================================================
def plot_intervals(t_x: np.ndarray,
                   ix,
                   t_y: Optional[np.ndarray] = None,
                   iy=None,
                   *,
                   labels: Tuple[str, str] = ('X', 'Y'),
                   title: str = 'Continuous intervals',
                   ax: Optional[plt.Axes] = None,
                   show: bool = True) -> plt.Axes:
    """
    Horizontal bars spanning each interval; a second row is drawn when
    `t_y` / `iy` are given, so pruned or synchronized pairs line up.
    """
    if ax is None:
        fig, ax = plt.subplots(1, 1, figsize=(8, 2.5))

    rows = [(t_x, ix, labels[0])]
    if t_y is not None and iy is not None:
        rows.append((t_y, iy, labels[1]))

    for row, (t, iv, lab) in enumerate(rows):
        t = np.asarray(t)
        iv = as_interval_array(iv, len(t))
        spans = [(t[i0], t[i1] - t[i0]) for i0, i1 in iv]
        ax.broken_barh(spans, (row - 0.3, 0.6),
                       facecolors=f'C{row}', label=lab)

    ax.set_yticks(range(len(rows)))
    ax.set_yticklabels([r[2] for r in rows])
    ax.set_ylim(-0.6, len(rows) - 0.4)
    ax.set_xlabel('Time (s)')
    ax.set_title(title)

    if show:
        plt.tight_layout()
        plt.show()
    return ax

# =====================================================================
# Raw vs calibrated field
# =====================================================================
def plot_calibration(t_raw: np.ndarray,
                     raw: np.ndarray,
                     result: CalibrationResult,
                     *,
                     labels: Iterable[str] = ('B$_x$', 'B$_y$', 'B$_z$'),
                     title: str = '',
                     figsize: Tuple[int, int] = (9, 7),
                     show: bool = True,
                     ax: Optional[Iterable[plt.Axes]] = None) -> List[plt.Axes]:
    """
    Panels
    ------
    0-2 – one field component each, raw (thin) and calibrated
    Skipped intervals are shaded grey.
    """
    if ax is None:
        fig, ax = plt.subplots(3, 1, sharex=True, figsize=figsize)
    ax = list(ax)
    raw = np.asarray(raw, dtype=float)

    bad = np.flatnonzero(~result.good)
    for i, lab in enumerate(labels):
        _safe_plot(ax[i], t_raw, raw[:, i], lw=0.6, color='grey', label='raw')
        _safe_plot(ax[i], result.t, result.field[:, i], lw=1.0, label='calibrated')
        ax[i].set_ylabel(lab)
        if len(result.skipped):
            shade_intervals(ax[i], result.t, _runs(bad), color='lightgrey', alpha=0.4)
        ax[i].legend(loc='upper right')

    ax[-1].set_xlabel('Time (s)')
    if title:
        ax[0].set_title(title)

    if show:
        plt.tight_layout()
        plt.show()
    return ax


def _runs(idx: np.ndarray) -> np.ndarray:
    """Consecutive runs of sorted indices as (K, 2) [start, end]."""
    if idx.size == 0:
        return np.empty((0, 2), dtype=int)
    brk = np.flatnonzero(np.diff(idx) > 1)
    starts = np.concatenate([[idx[0]], idx[brk + 1]])
    ends = np.concatenate([idx[brk], [idx[-1]]])
    return np.column_stack([starts, ends])
