import warnings

import numpy as np
import pytest

from fsm_merge.align import (AlignerCfg, align_intervals, nearest_index,
                             remove_non_overlapping, synchronize)


# ------------------------------------------------------------------
# Remove
# ------------------------------------------------------------------
class TestRemoveNonOverlapping:

    def test_intervals_inside_other_series_are_kept(self):
        x = np.arange(16.0)
        y = np.arange(21.0)
        ix = np.array([[0, 5], [10, 15]])
        iy = np.array([[0, 20]])
        out = remove_non_overlapping(ix, iy, x[ix], y[iy])
        np.testing.assert_array_equal(out, ix)

    def test_interval_past_other_series_is_removed(self):
        x = np.arange(106.0)
        y = np.arange(11.0)
        ix = np.array([[0, 5], [100, 105]])
        iy = np.array([[0, 10]])
        out = remove_non_overlapping(ix, iy, x[ix], y[iy])
        np.testing.assert_array_equal(out, [[0, 5]])

    def test_interval_inside_other_series_gap_is_removed(self):
        x_vals = np.array([[0.0, 4.0], [12.0, 18.0], [30.0, 40.0]])
        y_vals = np.array([[2.0, 10.0], [20.0, 35.0]])
        ix = np.array([[0, 4], [5, 11], [12, 22]])
        iy = np.array([[0, 8], [9, 24]])
        out = remove_non_overlapping(ix, iy, x_vals, y_vals)
        np.testing.assert_array_equal(out, [[0, 4], [12, 22]])

    def test_touching_intervals_do_not_overlap(self):
        out = remove_non_overlapping([[0, 3]], [[0, 3]],
                                     [[10.0, 20.0]], [[0.0, 10.0]])
        assert out.shape == (0, 2)
        out = remove_non_overlapping([[0, 3]], [[0, 3]],
                                     [[0.0, 10.0]], [[10.0, 20.0]])
        assert out.shape == (0, 2)

    def test_exhausted_other_series_removes_the_rest(self):
        x_vals = np.array([[0.0, 5.0], [10.0, 15.0], [20.0, 25.0]])
        out = remove_non_overlapping([[0, 5], [6, 11], [12, 17]], [[0, 3]],
                                     x_vals, [[1.0, 4.0]])
        np.testing.assert_array_equal(out, [[0, 5]])

    def test_empty_other_series_removes_everything(self):
        out = remove_non_overlapping([[0, 5]], np.empty((0, 2), int),
                                     [[0.0, 5.0]], np.empty((0, 2)))
        assert out.shape == (0, 2)

    @pytest.mark.parametrize('seed', [0, 1, 2])
    def test_output_is_ordered_subsequence(self, seed):
        rng = np.random.default_rng(seed)
        edges_x = np.sort(rng.choice(1000, 20, replace=False)).reshape(-1, 2).astype(float)
        edges_y = np.sort(rng.choice(1000, 8, replace=False)).reshape(-1, 2).astype(float)
        ix = np.arange(20).reshape(-1, 2)
        iy = np.arange(8).reshape(-1, 2)

        out = remove_non_overlapping(ix, iy, edges_x, edges_y)
        assert len(out) <= len(ix)
        rows = [int(np.flatnonzero((ix == r).all(axis=1))[0]) for r in out]
        assert rows == sorted(rows)
        # every survivor overlaps some Y interval, every casualty none
        for k, (xs, xe) in enumerate(edges_x):
            overlaps = np.any((edges_y[:, 1] > xs) & (edges_y[:, 0] < xe))
            assert overlaps == (k in rows)

    def test_mismatched_boundary_values_raise(self):
        with pytest.raises(ValueError):
            remove_non_overlapping([[0, 5], [6, 9]], [[0, 3]],
                                   [[0.0, 5.0]], [[0.0, 3.0]])


# ------------------------------------------------------------------
# Nearest-sample matching
# ------------------------------------------------------------------
def test_nearest_index_rules():
    t = np.array([0.0, 1.0, 2.0, 3.0])
    assert nearest_index(t, 1.4) == 1
    assert nearest_index(t, 1.6) == 2
    assert nearest_index(t, 2.0) == 2
    assert nearest_index(t, -5.0) == 0
    assert nearest_index(t, 1.5) == 2
    assert nearest_index(t, 1.5, 'earlier') == 1
    assert nearest_index(t, 99.0) == 3

    with pytest.raises(ValueError):
        nearest_index(t, 1.5, 'middle')


# ------------------------------------------------------------------
# Sync
# ------------------------------------------------------------------
class TestSynchronize:

    def test_later_start_and_earlier_end_drive(self):
        x = np.arange(10.0)
        y = 2.2 + 0.5 * np.arange(12)
        ox, oy = synchronize(x, y, [[0, 9]], [[0, 11]])
        np.testing.assert_array_equal(ox, [[2, 8]])
        np.testing.assert_array_equal(oy, [[0, 11]])

    def test_exhausted_series_absorbs_remaining_samples(self):
        x = np.concatenate([np.arange(5.0), np.arange(10.0, 15.0)])
        y = np.arange(15.0)
        ox, oy = synchronize(x, y, [[0, 4], [5, 9]], [[0, 14]])
        np.testing.assert_array_equal(ox, [[0, 4], [5, 9]])
        np.testing.assert_array_equal(oy, [[0, 4], [10, 14]])

    def test_output_lengths_match(self):
        x = np.arange(30.0)
        y = np.concatenate([np.arange(0.0, 5.0), np.arange(10.0, 15.0), np.arange(20.0, 25.0)])
        ox, oy = synchronize(x, y, [[0, 29]], [[0, 4], [5, 9], [10, 14]])
        assert len(ox) == len(oy) == 3

    def test_empty_inputs(self):
        ox, oy = synchronize(np.arange(3.0), np.arange(3.0),
                             np.empty((0, 2), int), np.empty((0, 2), int))
        assert ox.shape == oy.shape == (0, 2)
        with pytest.raises(ValueError):
            synchronize(np.arange(3.0), np.arange(3.0), [[0, 2]], np.empty((0, 2), int))

    def test_out_of_range_match_clamps_with_warning(self):
        x = np.arange(5.0)
        y = np.arange(10.0, 15.0)
        with pytest.warns(UserWarning, match=r'\[align\]'):
            ox, oy = synchronize(x, y, [[0, 4]], [[0, 4]])
        assert ox[0, 0] == 4

    def test_target_before_first_sample_is_a_clamp(self):
        x = np.arange(5.0)
        y = np.arange(10.0, 15.0)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            ox, oy = synchronize(x, y, [[0, 4]], [[0, 4]])
        # X start past X's last sample, Y end before Y's first sample
        msgs = [str(w.message) for w in caught]
        assert len(msgs) == 2
        assert any('Y end target 4 outside samples' in m for m in msgs)
        np.testing.assert_array_equal(ox, [[4, 4]])
        np.testing.assert_array_equal(oy, [[0, 0]])


# ------------------------------------------------------------------
# Composite
# ------------------------------------------------------------------
class TestAlignIntervals:

    @staticmethod
    def _fgm_scm():
        x = np.concatenate([np.arange(0.0, 40.0), np.arange(60.0, 100.0)])
        y = np.arange(70, 400) * 0.25
        return x, y

    def test_no_flags_returns_raw_intervals(self):
        x, y = self._fgm_scm()
        res = align_intervals(x, y)
        np.testing.assert_array_equal(res.ix, [[0, 39], [40, 79]])
        np.testing.assert_array_equal(res.iy, [[0, 329]])
        assert (res.n_removed_x, res.n_removed_y, res.n_clamped) == (0, 0, 0)

    def test_remove_and_sync(self):
        x, y = self._fgm_scm()
        with warnings.catch_warnings():
            warnings.simplefilter('error')
            res = align_intervals(x, y, AlignerCfg(remove=True, sync=True))
        np.testing.assert_array_equal(res.ix, [[18, 39], [40, 79]])
        np.testing.assert_array_equal(res.iy, [[0, 86], [170, 326]])
        assert res.n_clamped == 0

    def test_tie_breaker_earlier(self):
        x, y = self._fgm_scm()
        res = align_intervals(x, y, AlignerCfg(sync=True, tie_breaker='earlier'))
        assert res.ix[0, 0] == 17

    def test_remove_counts(self):
        x = np.concatenate([np.arange(0.0, 10.0), np.arange(50.0, 60.0)])
        y = np.arange(0.0, 21.0)
        res = align_intervals(x, y, AlignerCfg(remove=True))
        np.testing.assert_array_equal(res.ix, [[0, 9]])
        np.testing.assert_array_equal(res.iy, [[0, 20]])
        assert res.n_removed_x == 1
        assert res.n_removed_y == 0

    def test_clamps_are_counted(self):
        x = np.concatenate([np.arange(0.0, 5.0), np.arange(10.0, 15.0)])
        y = np.arange(0.0, 5.0)
        with pytest.warns(UserWarning, match=r'\[align\]'):
            res = align_intervals(x, y, AlignerCfg(sync=True))
        # Y exhausted, Y start past its end, X end snapped before X start
        assert res.n_clamped == 3
        np.testing.assert_array_equal(res.ix, [[0, 4], [5, 5]])
        np.testing.assert_array_equal(res.iy, [[0, 4], [4, 4]])

    @pytest.mark.parametrize('seed', range(6))
    def test_synced_intervals_are_valid(self, seed):
        rng = np.random.default_rng(seed)

        def gappy(n, dt):
            steps = np.where(rng.random(n) < 0.03, rng.integers(3, 40, n), 1)
            return rng.uniform(0, 50) + dt * np.cumsum(steps)

        x = gappy(int(rng.integers(20, 300)), 1.0)
        y = gappy(int(rng.integers(20, 600)), 0.25)
        for remove in (False, True):
            with warnings.catch_warnings():
                warnings.simplefilter('ignore')
                try:
                    res = align_intervals(x, y, AlignerCfg(remove=remove, sync=True))
                except ValueError:
                    # remove can leave one side with no intervals
                    assert remove
                    continue
            assert len(res.ix) == len(res.iy)
            for iv, n in ((res.ix, len(x)), (res.iy, len(y))):
                assert np.all(iv[:, 0] <= iv[:, 1])
                assert np.all((iv >= 0) & (iv < n))

    def test_config_validation(self):
        with pytest.raises(ValueError):
            AlignerCfg(tie_breaker='closest')
        with pytest.raises(ValueError):
            AlignerCfg(tol_x=0)
        with pytest.raises(ValueError):
            AlignerCfg(merge=True)
