# fsm_merge/spectral.py
# ------------------------------------------------------------
# FFT block helpers shared by the calibration pipeline
# ------------------------------------------------------------
# • fft_df()     – frequency resolution of a block
# • fft_freqs()  – non-negative bin frequencies 0 … Nyquist
# • n_blocks()   – how many shifted blocks fit in a record
# • fft_window() – Hamming / Tukey / any scipy window by name
# • lowpass()    – brick-wall FFT low-pass filter
# ------------------------------------------------------------
from __future__ import annotations
from typing import Optional

import numpy as np
from scipy import signal


def fft_df(dt: float, block_len: int) -> float:
    """Frequency resolution (Hz) of a *block_len*-point FFT at spacing *dt*."""
    return 1.0 / (dt * block_len)


def fft_freqs(dt: float, block_len: int) -> np.ndarray:
    """Bin frequencies 0, df, …, Nyquist  (block_len//2 + 1 values)."""
    return fft_df(dt, block_len) * np.arange(block_len // 2 + 1)


def n_blocks(n_samples: int, block_len: int, n_shift: Optional[int] = None) -> int:
    """
    Number of blocks of *block_len* samples, each shifted by *n_shift*
    (default a quarter block), that fit inside *n_samples*.
    """
    if n_shift is None:
        n_shift = block_len / 4
    if n_shift <= 0:
        raise ValueError('n_shift must be positive')
    return int(np.floor((n_samples - block_len) / n_shift)) + 1


def fft_window(name: str, n: int, *, alpha: float = 0.5) -> np.ndarray:
    """
    Symmetric window of length *n*.

    'tukey' uses the taper fraction *alpha*; every other name is
    handed to scipy.signal.get_window unchanged.
    """
    if n < 1:
        raise ValueError('window length must be >= 1')
    if name == 'tukey':
        return signal.get_window(('tukey', alpha), n, fftbins=False)
    return signal.get_window(name, n, fftbins=False)


def lowpass(dt: float, field: np.ndarray, f_cutoff: float) -> np.ndarray:
    """
    Zero every FFT bin above *f_cutoff* (Hz) and transform back.

    Operates along axis 0, so ``field`` may be (N,) or (N, C).
    """
    field = np.asarray(field, dtype=float)
    if field.shape[0] < 2:
        return field.copy()
    freqs = np.fft.fftfreq(field.shape[0], d=dt)
    spec = np.fft.fft(field, axis=0)
    spec[np.abs(freqs) > f_cutoff] = 0
    return np.fft.ifft(spec, axis=0).real
