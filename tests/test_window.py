import numpy as np
import pandas as pd
import pytest

from balancenet.dynamic.window import sliding_window_connectivity


def _sample(n_roi: int = 4, n_time: int = 40, seed: int = 0) -> np.ndarray:
    return np.random.default_rng(seed).standard_normal((n_roi, n_time))


def test_window_count_and_span():
    ts = _sample(n_roi=3, n_time=20)
    dconn = sliding_window_connectivity(ts, window_length=5)
    assert dconn.shape == (15, 3, 3)
    # window t spans t..t+WL inclusive
    assert np.allclose(dconn[0], np.corrcoef(ts[:, 0:6]))
    assert np.allclose(dconn[-1], np.corrcoef(ts[:, 14:20]))


def test_matrices_are_symmetric_with_unit_diagonal():
    dconn = sliding_window_connectivity(_sample(), window_length=10)
    assert np.allclose(dconn, np.transpose(dconn, (0, 2, 1)))
    assert np.allclose(np.diagonal(dconn, axis1=1, axis2=2), 1.0)


def test_spearman_matches_pandas():
    ts = _sample(n_roi=3, n_time=15)
    dconn = sliding_window_connectivity(ts, window_length=8, method='spearman')
    expected = pd.DataFrame(ts[:, 2:11].T).corr(method='spearman').to_numpy()
    assert np.allclose(dconn[2], expected)


def test_kendall_runs():
    dconn = sliding_window_connectivity(_sample(n_time=12), window_length=6, method='kendall')
    assert dconn.shape == (6, 4, 4)
    assert np.all(np.abs(dconn) <= 1.0 + 1e-12)


def test_degenerate_window_yields_missing_values():
    ts = _sample(n_roi=3, n_time=12)
    ts[1, :6] = 2.5  # constant over the first window
    dconn = sliding_window_connectivity(ts, window_length=5)
    assert np.isnan(dconn[0, 0, 1]) and np.isnan(dconn[0, 1, 2])
    assert not np.isnan(dconn[0, 0, 2])
    assert not np.isnan(dconn[-1]).any()


def test_missing_samples_pairwise_vs_complete():
    ts = _sample(n_roi=3, n_time=12)
    ts[2, 1] = np.nan
    pairwise = sliding_window_connectivity(ts, window_length=5, use='pairwise')
    complete = sliding_window_connectivity(ts, window_length=5, use='complete')
    # pairwise keeps the sample for the ROI pair that is fully observed
    assert np.isclose(pairwise[0, 0, 1], np.corrcoef(ts[0, 0:6], ts[1, 0:6])[0, 1])
    keep = [0, 2, 3, 4, 5]
    assert np.isclose(complete[0, 0, 1], np.corrcoef(ts[0, keep], ts[1, keep])[0, 1])
    assert np.isclose(pairwise[0, 0, 2], complete[0, 0, 2])


def test_progress_callback_is_called():
    calls = []
    sliding_window_connectivity(
        _sample(n_time=30), window_length=5, progress_every=10,
        progress=lambda done, total: calls.append((done, total)),
    )
    assert calls == [(10, 25), (20, 25)]


def test_window_length_equal_to_series_length_raises():
    with pytest.raises(ValueError, match="window_length"):
        sliding_window_connectivity(_sample(n_time=20), window_length=20)


def test_window_length_below_two_raises():
    with pytest.raises(ValueError, match="at least 2"):
        sliding_window_connectivity(_sample(), window_length=1)


def test_invalid_inputs_raise():
    with pytest.raises(ValueError, match="2D"):
        sliding_window_connectivity(np.zeros((2, 3, 4)), window_length=2)
    with pytest.raises(TypeError):
        sliding_window_connectivity(np.array([['a', 'b', 'c']]), window_length=2)
    with pytest.raises(ValueError, match="method"):
        sliding_window_connectivity(_sample(), window_length=5, method='cosine')
    with pytest.raises(ValueError, match="policy"):
        sliding_window_connectivity(_sample(), window_length=5, use='everything')
