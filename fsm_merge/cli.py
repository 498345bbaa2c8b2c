# fsm_merge/cli.py
# ------------------------------------------------------------
# Command-line interface for the FGM/SCM merge toolkit
#   $ python -m fsm_merge intervals scm.csv --tol 1
#   $ python -m fsm_merge align fgm.csv scm.csv --remove --sync
#   $ python -m fsm_merge calibrate scm.csv --transfer-dir tf/ \
#         --sc 3 --block-len 512 --raw-counts --plot
# ------------------------------------------------------------
import argparse
from pathlib import Path
import json
import numpy as np
import pandas as pd
from typing import List, Optional, Tuple

# Local imports
from . import align, calibrate, gaps, intervals, series, transfer, visualize

# ------------------------------------------------------------------
# CLI helpers
# ------------------------------------------------------------------
def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog='fsm-merge',
        description="Interval detection, alignment and SCM calibration")
    sub = p.add_subparsers(dest='command', required=True)

    pi = sub.add_parser('intervals', help='Gaps & continuous intervals of one series')
    pi.add_argument('file', help='CSV or .npy table, first column = time (s)')
    pi.add_argument('--delta-t', type=float, default=None,
                    help='Nominal sampling interval (default median step)')
    pi.add_argument('--tol', type=float, default=1,
                    help='Largest step (in sampling intervals) still continuous')
    pi.add_argument('--plot', action='store_true', help='Interval bar PNG')
    pi.add_argument('--outdir', default='results',
                    help='Directory for JSON/figures')

    pa = sub.add_parser('align', help='Prune / synchronize intervals of two series')
    pa.add_argument('file_x', help='First series (e.g. FGM)')
    pa.add_argument('file_y', help='Second series (e.g. SCM)')
    pa.add_argument('--remove', action='store_true',
                    help='Drop intervals without overlap in the other series')
    pa.add_argument('--sync', action='store_true',
                    help='Snap interval boundaries to the nearest common samples')
    pa.add_argument('--tie-breaker', default='later', choices=['later', 'earlier'],
                    help='Sample chosen on an exact distance tie (default later)')
    pa.add_argument('--plot', action='store_true', help='Interval bar PNG')
    pa.add_argument('--outdir', default='results',
                    help='Directory for JSON/figures')

    pc = sub.add_parser('calibrate', help='Overlap-add SCM calibration')
    pc.add_argument('file', help='Table: time + 3 field columns')
    pc.add_argument('--transfer-dir', required=True,
                    help='Folder holding STAFF_SC_<Hbr|Nbr><sc>_<X|Y|Z>.txt')
    pc.add_argument('--sc', required=True, choices=['1', '2', '3', '4'],
                    help='Cluster spacecraft')
    pc.add_argument('--product', default=None, choices=['Hbr', 'Nbr'],
                    help='Transfer-function product (default auto-detect)')
    pc.add_argument('--block-len', type=int, default=512,
                    help='FFT block length, multiple of 4 (default 512)')
    pc.add_argument('--gap-tol', type=float, default=1,
                    help='Gap tolerance for interval detection')
    pc.add_argument('--fill-gaps', type=float, default=None, metavar='N',
                    help='Interpolate over gaps shorter than N sampling intervals first')
    pc.add_argument('--raw-counts', action='store_true',
                    help='Input holds 16-bit telemetry counts')
    pc.add_argument('--plot', action='store_true', help='Raw vs calibrated PNG')
    pc.add_argument('--outdir', default='results',
                    help='Directory for CSV/figures')
    return p.parse_args(argv)


def load_table(path) -> Tuple[np.ndarray, np.ndarray]:
    """
    (t, values) from a CSV (header row, first column time) or a 2-D .npy.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f'Input file not found: "{path}"')
    if path.suffix == '.npy':
        arr = np.load(path)
    else:
        arr = pd.read_csv(path).to_numpy(dtype=float)
    if arr.ndim != 2 or arr.shape[1] < 1:
        raise ValueError(f'{path.name}: expected a 2-D table, got shape {arr.shape}')
    return series.as_time_array(arr[:, 0]), arr[:, 1:]


def _interval_records(t: np.ndarray, iv: np.ndarray) -> List[dict]:
    return [{'start': int(a), 'end': int(b),
             't_start': float(t[a]), 't_end': float(t[b]),
             'n_samples': int(b - a + 1)} for a, b in iv]


def _write_json(out: dict, path: Path) -> None:
    path.write_text(json.dumps(out, indent=2))
    print(f'[✓] JSON  → {path}')


# ------------------------------------------------------------------
# Sub-commands
# ------------------------------------------------------------------
def run_intervals(args: argparse.Namespace, out_dir: Path) -> None:
    print(f'[1] Reading {args.file} …')
    t, _ = load_table(args.file)

    print('[2] Finding gaps & intervals …')
    g = gaps.find_gaps(t, args.delta_t, tol=args.tol)
    iv = intervals.find_intervals(t, args.delta_t, tol=args.tol)
    print(f'    {len(t)} samples, {len(g)} gaps, {len(iv)} intervals')
    for (a, b), n in zip(g.index, g.size):
        print(f'    gap {t[a]:.6f} → {t[b]:.6f}  ({n} samples missing)')

    out = {
        'n_samples': int(len(t)),
        'delta_t': g.delta_t,
        'gaps': [{'before': int(a), 'after': int(b), 'size': int(n)}
                 for (a, b), n in zip(g.index, g.size)],
        'intervals': _interval_records(t, iv),
    }
    _write_json(out, out_dir / 'intervals.json')

    if args.plot:
        ax = visualize.plot_intervals(t, iv, labels=(Path(args.file).stem, ''), show=False)
        _save_fig(ax.figure, out_dir / 'figures' / 'intervals.png')


def run_align(args: argparse.Namespace, out_dir: Path) -> None:
    print(f'[1] Reading {args.file_x} and {args.file_y} …')
    tx, _ = load_table(args.file_x)
    ty, _ = load_table(args.file_y)

    print('[2] Aligning intervals …')
    cfg = align.AlignerCfg(remove=args.remove, sync=args.sync,
                           tie_breaker=args.tie_breaker)
    res = align.align_intervals(tx, ty, cfg)
    print(f'    X: {len(res.ix)} intervals ({res.n_removed_x} removed)')
    print(f'    Y: {len(res.iy)} intervals ({res.n_removed_y} removed)')
    if res.n_clamped:
        print(f'    {res.n_clamped} boundary lookups clamped')

    out = {
        'config': {'remove': cfg.remove, 'sync': cfg.sync,
                   'tie_breaker': cfg.tie_breaker},
        'x': _interval_records(tx, res.ix),
        'y': _interval_records(ty, res.iy),
        'n_removed_x': res.n_removed_x,
        'n_removed_y': res.n_removed_y,
        'n_clamped': res.n_clamped,
    }
    _write_json(out, out_dir / 'aligned_intervals.json')

    if args.plot:
        ax = visualize.plot_intervals(tx, res.ix, ty, res.iy,
                                      labels=(Path(args.file_x).stem, Path(args.file_y).stem),
                                      title='Aligned intervals', show=False)
        _save_fig(ax.figure, out_dir / 'figures' / 'aligned_intervals.png')


def run_calibrate(args: argparse.Namespace, out_dir: Path) -> None:
    print(f'[1] Reading {args.file} …')
    t, b = load_table(args.file)
    b = series.as_field_array(b, len(t))
    if args.raw_counts:
        b = transfer.decode_counts(b)

    if args.fill_gaps is not None:
        n_before = len(t)
        t, b, _ = gaps.fill_gaps(t, b, 2, args.fill_gaps)
        print(f'    filled {len(t) - n_before} samples in minor gaps')

    print('[2] Loading transfer functions …')
    dt = series.sampling_interval(t)
    spec = transfer.cluster_calibration_spec(args.sc, args.transfer_dir,
                                             args.block_len, dt, args.product)

    print('[3] Calibrating …')
    cfg = calibrate.CalibratorCfg(block_len=args.block_len, gap_tol=args.gap_tol)
    res = calibrate.calibrate(t, b, spec, cfg)
    print(f'    {res.n_blocks} FFT blocks, {len(res.skipped)} intervals skipped, '
          f'{len(res.t)} samples out')

    df = pd.DataFrame({'t': res.t,
                       'bx': res.field[:, 0],
                       'by': res.field[:, 1],
                       'bz': res.field[:, 2],
                       'good': res.good})
    csv_path = out_dir / 'calibrated.csv'
    df.to_csv(csv_path, index=False)
    print(f'[✓] CSV   → {csv_path}')

    if args.plot:
        axes = visualize.plot_calibration(t, b, res, title=f'C{args.sc} SCM', show=False)
        _save_fig(axes[0].figure, out_dir / 'figures' / 'calibration.png')


def _save_fig(fig, path: Path) -> None:
    fig.tight_layout()
    fig.savefig(path)
    print(f'[✓] PNG   → {path}')


# ------------------------------------------------------------------
# Main
# ------------------------------------------------------------------
def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    out_dir = Path(args.outdir)
    (out_dir / 'figures').mkdir(parents=True, exist_ok=True)

    if args.command == 'intervals':
        run_intervals(args, out_dir)
    elif args.command == 'align':
        run_align(args, out_dir)
    else:
        run_calibrate(args, out_dir)


if __name__ == '__main__':
    main()
