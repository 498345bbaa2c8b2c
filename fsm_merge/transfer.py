# fsm_merge/transfer.py
# ------------------------------------------------------------
# Search-coil transfer functions & instrument constants
# ------------------------------------------------------------
# • read_transfer_fn()   – STAFF ASCII tables (freq, re, im) per axis
# • interp_transfer_fn() – table → full-length FFT bin array
#                          (DC = 1, conjugate-mirrored negative half,
#                           bins outside the table → inf = suppressed)
# • decode_counts()      – 16-bit telemetry counts → volts
# • spin_rotation_matrix()  / cluster_scm_params()
# • cluster_calibration_spec() – everything above in one call
# ------------------------------------------------------------
from __future__ import annotations
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import numpy as np
import pandas as pd
from scipy.interpolate import interp1d

from .calibrate import CalibrationSpec
from .spectral import fft_df

# Cluster STAFF-SC amplitude correction and sensor-to-spin-plane angle
_CLUSTER_SCM: Dict[int, Tuple[float, float]] = {
    1: (1.240, -53.0),
    2: (1.073, -52.5),
    3: (1.073, -51.8),
    4: (1.080, -52.5),
}

_HEADER_LINES = 23


# ------------------------------------------------------------------
# Instrument constants
# ------------------------------------------------------------------
def cluster_scm_params(sc: Union[int, str]) -> Tuple[float, float]:
    """(amplitude factor, rotation angle in degrees) for Cluster *sc*."""
    try:
        return _CLUSTER_SCM[int(sc)]
    except (KeyError, ValueError):
        raise ValueError(f"spacecraft must be one of 1, 2, 3, 4 – got {sc!r}") from None


def spin_rotation_matrix(theta_deg: float) -> np.ndarray:
    """Rotation by *theta_deg* about the third axis."""
    th = np.deg2rad(theta_deg)
    c, s = np.cos(th), np.sin(th)
    return np.array([[c,  s, 0.0],
                     [-s, c, 0.0],
                     [0.0, 0.0, 1.0]])


def decode_counts(counts) -> np.ndarray:
    """Unsigned 16-bit ADC counts → ±5 V."""
    return 10.0 * (np.asarray(counts, dtype=float) - 32767.0) / 65535.0


# ------------------------------------------------------------------
# Transfer-function tables
# ------------------------------------------------------------------
def _detect_product(directory: Path, sc: str) -> str:
    for product in ('Hbr', 'Nbr'):
        if (directory / f'STAFF_SC_{product}{sc}_X.txt').exists():
            return product
    raise FileNotFoundError(f'No Hbr or Nbr transfer files for SC{sc} in "{directory}"')


def read_transfer_fn(directory: Union[str, Path],
                     sc: Union[int, str],
                     product: Optional[str] = None
                     ) -> Tuple[np.ndarray, np.ndarray]:
    """
    Read the three STAFF_SC_<product><sc>_<X|Y|Z>.txt tables.

    Parameters
    ----------
    directory : folder holding the tables
    sc        : spacecraft 1–4
    product   : 'Hbr' or 'Nbr'; picked automatically when omitted

    Returns
    -------
    freqs : (M,) frequencies of the X table (Hz)
    table : (M, 3) complex transfer function, one column per axis
    """
    directory = Path(directory)
    sc = str(sc)
    if sc not in ('1', '2', '3', '4'):
        raise ValueError(f"spacecraft must be one of 1, 2, 3, 4 – got {sc!r}")
    if product is None:
        product = _detect_product(directory, sc)
    elif product not in ('Hbr', 'Nbr'):
        raise ValueError(f"product must be 'Hbr' or 'Nbr', got {product!r}")

    freqs = None
    cols = []
    for comp in 'XYZ':
        path = directory / f'STAFF_SC_{product}{sc}_{comp}.txt'
        if not path.exists():
            raise FileNotFoundError(f'File not found: "{path}"')
        df = pd.read_csv(path, sep=r'\s+', skiprows=_HEADER_LINES,
                         header=None, usecols=[0, 1, 2],
                         names=['freq', 're', 'im'])
        if freqs is None:
            freqs = df['freq'].to_numpy(dtype=float)
        elif len(df) != len(freqs):
            raise ValueError(f'{path.name}: {len(df)} rows, X table has {len(freqs)}')
        cols.append(df['re'].to_numpy(dtype=float) + 1j * df['im'].to_numpy(dtype=float))

    return freqs, np.column_stack(cols)


def interp_transfer_fn(transf, freqs, n: int, df: float) -> np.ndarray:
    """
    Interpolate a tabulated transfer function onto the bins of an
    *n*-point FFT with resolution *df*.

    Positive bins df … n/2·df are linearly interpolated; the Nyquist
    bin keeps only its magnitude; bins outside the table become inf so
    dividing by them suppresses the bin.  DC is 1 and the negative
    half mirrors the conjugate of the positive half.

    *transf* may be (M,) or (M, C); the result is (n,) or (n, C).
    """
    if n % 2 != 0 or n < 2:
        raise ValueError(f'FFT length must be even and >= 2, got {n}')
    transf = np.asarray(transf, dtype=complex)
    freqs = np.asarray(freqs, dtype=float)
    if len(freqs) != len(transf):
        raise ValueError('freqs and transf must have the same length')

    pivot = n // 2
    f_out = df * np.arange(1, pivot + 1)
    kw = dict(kind='linear', axis=0, bounds_error=False, fill_value=np.nan)
    comp = (interp1d(freqs, transf.real, **kw)(f_out)
            + 1j * interp1d(freqs, transf.imag, **kw)(f_out))
    comp[pivot - 1] = np.abs(comp[pivot - 1])
    comp[np.isnan(comp)] = np.inf

    dc = np.ones((1,) + comp.shape[1:], dtype=complex)
    return np.concatenate([dc, comp, np.conj(comp[:-1])[::-1]], axis=0)


def cluster_calibration_spec(sc: Union[int, str],
                             directory: Union[str, Path],
                             block_len: int,
                             dt: float,
                             product: Optional[str] = None) -> CalibrationSpec:
    """Amplitude, rotation and interpolated transfer function for Cluster *sc*."""
    amp, theta = cluster_scm_params(sc)
    freqs, table = read_transfer_fn(directory, sc, product)
    tf = interp_transfer_fn(table, freqs, block_len, fft_df(dt, block_len))
    return CalibrationSpec(amp_factor=amp,
                           rotation=spin_rotation_matrix(theta),
                           transfer_fn=tf)
