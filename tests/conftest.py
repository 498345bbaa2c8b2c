"""
Pytest configuration and fixtures for fsm_merge tests
"""
import os
# Force non-interactive matplotlib backend early to avoid GUI hangs
os.environ.setdefault("MPLBACKEND", "Agg")

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
# Ensure any accidental plt.show() during tests is a no-op
plt.show = lambda *args, **kwargs: None

import pytest
import numpy as np
import sys
import faulthandler


# Auto-close figures after each test to prevent resource buildup
@pytest.fixture(autouse=True)
def _close_figures():
    yield
    plt.close('all')

# Dump stack traces if a test runs too long; helps diagnose rare stalls
@pytest.fixture(autouse=True)
def _faulthandler_timeout():
    faulthandler.enable()
    faulthandler.dump_traceback_later(120, repeat=False, file=sys.stderr)
    try:
        yield
    finally:
        faulthandler.cancel_dump_traceback_later()


@pytest.fixture
def gappy_time():
    """0.1 s cadence with a 5-sample and a 30-sample dropout"""
    dt = 0.1
    idx = np.concatenate([np.arange(0, 100),
                          np.arange(105, 300),
                          np.arange(330, 500)])
    return idx * dt


@pytest.fixture
def sine_field():
    """(t, B) with bin-aligned sines on all three axes, 1024 samples"""
    n, dt = 1024, 1.0 / 64
    t = np.arange(n) * dt
    B = np.column_stack([np.sin(2 * np.pi * 4.0 * t),
                         0.5 * np.cos(2 * np.pi * 8.0 * t),
                         2.0 + np.sin(2 * np.pi * 1.0 * t)])
    return t, B


def _write_staff_table(path, freqs, re, im):
    header = [f'# STAFF-SC calibration table line {i + 1}' for i in range(23)]
    rows = [f'{f:12.4f} {r:14.6e} {i:14.6e}' for f, r, i in zip(freqs, re, im)]
    path.write_text('\n'.join(header + rows) + '\n')


@pytest.fixture
def transfer_dir(tmp_path):
    """Folder of Hbr tables for SC3 with a flat unit response on X/Y/Z"""
    freqs = np.linspace(0.0, 100.0, 101)
    for comp in 'XYZ':
        _write_staff_table(tmp_path / f'STAFF_SC_Hbr3_{comp}.txt',
                           freqs, np.ones_like(freqs), np.zeros_like(freqs))
    return tmp_path
