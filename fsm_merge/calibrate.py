# fsm_merge/calibrate.py
# ------------------------------------------------------------
# Overlap-add search-coil calibration
# ------------------------------------------------------------
# Each continuous interval is cut into FFT blocks of block_len
# samples advancing by block_len/4:
#
#   first    – Hamming, writes the whole block
#   interior – Tukey,   writes the middle quarter [3/8 L, 5/8 L)
#   last     – Hamming, snapped to end on the interval's last
#              sample, writes only what is still unwritten
#
# Blocks are written in order, so each interior block overwrites
# the tail of the one before it.  Per block:
#   amp · B · window → FFT → ÷ transfer fn → IFFT → · inv(rotation)
#
# Intervals shorter than one block are skipped with a warning.
# ------------------------------------------------------------
from __future__ import annotations
from dataclasses import dataclass, field as dc_field
from typing import List, Literal, Optional
import warnings

import numpy as np

from .intervals import find_intervals
from .series import as_field_array, as_interval_array, as_time_array
from .spectral import fft_window, n_blocks


# ------------------------------------------------------------------
# Config & inputs
# ------------------------------------------------------------------
class CalibratorCfg:
    """
    Block and window settings for calibrate().
    """
    block_len: Optional[int] = None   # FFT length; defaults to len(transfer_fn)
    edge_window: str = 'hamming'      # first / last block
    interior_window: str = 'tukey'    # everything in between
    tukey_alpha: float = 0.5          # taper fraction of the Tukey window
    gap_tol: float = 1                # interval gap tolerance (sampling intervals)
    fill_value: float = np.nan        # skipped samples inside the output span

    def __init__(self, **kw):
        for k, v in kw.items():
            if not hasattr(self, k):
                raise ValueError(f'Unknown CalibratorCfg key {k}')
            setattr(self, k, v)
        if self.block_len is not None:
            _check_block_len(self.block_len)
        if not 0.0 <= self.tukey_alpha <= 1.0:
            raise ValueError('tukey_alpha must lie in [0, 1]')
        if self.gap_tol <= 0:
            raise ValueError('gap_tol must be positive')


def _check_block_len(block_len) -> int:
    if int(block_len) != block_len or block_len < 4 or block_len % 4:
        raise ValueError(f'block_len must be a positive multiple of 4, got {block_len}')
    return int(block_len)


@dataclass(frozen=True, eq=False)
class CalibrationSpec:
    """Amplitude factor, 3×3 rotation and (block_len, 3) transfer function."""
    amp_factor: float
    rotation: np.ndarray
    transfer_fn: np.ndarray

    def __post_init__(self):
        rot = np.asarray(self.rotation, dtype=float)
        if rot.shape != (3, 3):
            raise ValueError(f'rotation must be 3×3, got {rot.shape}')
        try:
            inv = np.linalg.inv(rot)
        except np.linalg.LinAlgError as err:
            raise ValueError(f'rotation matrix is not invertible ({err})') from err

        tf = np.asarray(self.transfer_fn, dtype=complex)
        if tf.ndim != 2 or tf.shape[1] != 3:
            raise ValueError(f'transfer_fn must have shape (block_len, 3), got {tf.shape}')
        _check_block_len(tf.shape[0])
        if np.any(tf == 0) or np.any(np.isnan(tf)):
            raise ValueError('transfer_fn contains zero or NaN bins')
        if not np.isfinite(self.amp_factor):
            raise ValueError('amp_factor must be finite')

        object.__setattr__(self, 'rotation', rot)
        object.__setattr__(self, 'transfer_fn', tf)
        object.__setattr__(self, '_inv_rotation', inv)

    @property
    def block_len(self) -> int:
        return self.transfer_fn.shape[0]

    @property
    def inv_rotation(self) -> np.ndarray:
        return self._inv_rotation

    @classmethod
    def identity(cls, block_len: int) -> 'CalibrationSpec':
        """No-op calibration: unit gain, identity rotation, flat response."""
        return cls(amp_factor=1.0,
                   rotation=np.eye(3),
                   transfer_fn=np.ones((block_len, 3), dtype=complex))


# ------------------------------------------------------------------
# Block plan
# ------------------------------------------------------------------
@dataclass(frozen=True)
class Block:
    state: Literal['first', 'interior', 'last']
    start: int          # offset of the block inside the interval
    keep_start: int     # written region, relative to start (half-open)
    keep_stop: int

    @property
    def written(self) -> range:
        """Interval-relative sample indices this block writes."""
        return range(self.start + self.keep_start, self.start + self.keep_stop)


def plan_blocks(n_samples: int, block_len: int) -> List[Block]:
    """
    Lay FFT blocks over an interval of *n_samples* samples.

    The first block starts at 0, interior blocks advance by a quarter
    block, and the last block ends on sample n_samples-1.  Writing the
    blocks' kept regions in order fills 0 … n_samples-1 completely.
    """
    block_len = _check_block_len(block_len)
    if n_samples < block_len:
        raise ValueError(f'interval of {n_samples} samples is shorter than '
                         f'block_len={block_len}')
    if n_samples == block_len:
        return [Block('first', 0, 0, block_len)]

    shift = block_len // 4
    keep0 = (3 * block_len) // 8
    n = max(2, n_blocks(n_samples, block_len, shift))

    blocks = [Block('first', 0, 0, block_len)]
    last_written = block_len - 1
    for m in range(1, n - 1):
        start = m * shift
        blocks.append(Block('interior', start, keep0, keep0 + shift))
        last_written = start + keep0 + shift - 1

    start = n_samples - block_len
    blocks.append(Block('last', start, last_written + 1 - start, block_len))
    return blocks


# ------------------------------------------------------------------
# Per-block calibration
# ------------------------------------------------------------------
def calibrate_block(segment, window, spec: CalibrationSpec) -> np.ndarray:
    """
    Calibrate one (block_len, 3) segment.

    amp · segment · window is transformed per component, divided by
    the transfer function (inf bins → 0), transformed back and
    rotated into the reference frame with inv(rotation).
    """
    seg = as_field_array(segment, spec.block_len)
    window = np.asarray(window, dtype=float)
    if window.shape != (spec.block_len,):
        raise ValueError(f'window must have shape ({spec.block_len},), got {window.shape}')

    spec_f = np.fft.fft(spec.amp_factor * seg * window[:, None], axis=0)
    spec_f = spec_f / spec.transfer_fn
    return np.fft.ifft(spec_f, axis=0).real @ spec.inv_rotation


# ------------------------------------------------------------------
# Driver
# ------------------------------------------------------------------
@dataclass
class CalibrationResult:
    t: np.ndarray                   # (M,) seconds, truncated after last calibrated sample
    field: np.ndarray               # (M, 3) calibrated field
    good: np.ndarray                # (M,) False where an interval was skipped
    n_blocks: int = 0
    skipped: np.ndarray = dc_field(default_factory=lambda: np.empty((0, 2), dtype=int))


def calibrate(t, field_data, spec: CalibrationSpec,
              cfg: Optional[CalibratorCfg] = None,
              *,
              intervals=None) -> CalibrationResult:
    """
    Overlap-add calibration of a (N, 3) search-coil record.

    Parameters
    ----------
    t           : (N,) time stamps (seconds or datetime64)
    field_data  : (N, 3) raw field (already decoded to physical units)
    spec        : amplitude / rotation / transfer function
    cfg         : CalibratorCfg; block_len defaults to spec.block_len
    intervals   : (K, 2) continuous intervals; found from *t* if omitted

    Returns
    -------
    CalibrationResult, truncated after the last calibrated sample.
    """
    cfg = cfg or CalibratorCfg()
    block_len = spec.block_len if cfg.block_len is None else _check_block_len(cfg.block_len)
    if block_len != spec.block_len:
        raise ValueError(f'block_len={block_len} does not match transfer function '
                         f'length {spec.block_len}')

    t = as_time_array(t)
    b = as_field_array(field_data, len(t))
    if intervals is None:
        iv = find_intervals(t, tol=cfg.gap_tol)
    else:
        iv = as_interval_array(intervals, len(t))

    edge = fft_window(cfg.edge_window, block_len)
    interior = fft_window(cfg.interior_window, block_len, alpha=cfg.tukey_alpha)

    out = np.full(b.shape, cfg.fill_value, dtype=float)
    good = np.zeros(len(t), dtype=bool)
    skipped = []
    n_blocks = 0
    last = -1

    for k, (i0, i1) in enumerate(iv):
        n = i1 - i0 + 1
        if n < block_len:
            warnings.warn(f'[calibrate] Skipping interval {k + 1} of {len(iv)}: '
                          f'{n} samples < block_len={block_len}')
            skipped.append((i0, i1))
            continue

        for blk in plan_blocks(n, block_len):
            win = interior if blk.state == 'interior' else edge
            a = i0 + blk.start
            cal = calibrate_block(b[a:a + block_len], win, spec)
            out[a + blk.keep_start:a + blk.keep_stop] = cal[blk.keep_start:blk.keep_stop]
            n_blocks += 1
        good[i0:i1 + 1] = True
        last = max(last, i1)

    skipped = np.array(skipped, dtype=int).reshape(-1, 2)
    return CalibrationResult(t=t[:last + 1],
                             field=out[:last + 1],
                             good=good[:last + 1],
                             n_blocks=n_blocks,
                             skipped=skipped)
