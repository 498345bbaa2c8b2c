# fsm_merge/__init__.py
"""
FGM / SCM Merge Toolkit

Interval bookkeeping and search-coil calibration for merging fluxgate
(FGM) and search-coil (SCM) magnetometer records.

Features:
- Gap detection with sized gaps (any-gap / gap-in-range predicates)
- Continuous-interval partitioning of evenly sampled time series
- Minor-gap filling inside continuous intervals
- Dual-series interval pruning (remove) and boundary snapping (sync)
- Overlap-add windowed-FFT calibration (Hamming edges, Tukey interior)
- Cluster STAFF-SC transfer-function tables & instrument constants
- One-command CLI + CSV / JSON / PNG output
"""

__version__ = "1.0.0"
__author__ = "FSM-Merge Development Team"
__email__ = "contact@example.com"
__license__ = "MIT"

# Core modules
from . import series
from . import gaps
from . import intervals
from . import align
from . import spectral
from . import calibrate
from . import transfer
from . import visualize
from . import cli

# Make key functions easily accessible
from .series import SampleSeries
from .gaps import find_gaps, find_gaps_in_range, fill_gaps, GapResult
from .intervals import find_intervals
from .align import align_intervals, remove_non_overlapping, synchronize, AlignerCfg, AlignResult
from .calibrate import (calibrate as calibrate_field, plan_blocks,
                        CalibratorCfg, CalibrationSpec, CalibrationResult)
from .transfer import read_transfer_fn, interp_transfer_fn, cluster_calibration_spec

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__email__",
    "__license__",

    # Modules
    "series",
    "gaps",
    "intervals",
    "align",
    "spectral",
    "calibrate",
    "transfer",
    "visualize",
    "cli",

    # Key functions
    "SampleSeries",
    "find_gaps",
    "find_gaps_in_range",
    "fill_gaps",
    "GapResult",
    "find_intervals",
    "align_intervals",
    "remove_non_overlapping",
    "synchronize",
    "AlignerCfg",
    "AlignResult",
    "calibrate_field",
    "plan_blocks",
    "CalibratorCfg",
    "CalibrationSpec",
    "CalibrationResult",
    "read_transfer_fn",
    "interp_transfer_fn",
    "cluster_calibration_spec",
]
