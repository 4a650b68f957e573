import numpy as np
import pytest

from balancenet.dynamic import analyzer as analyzer_module
from balancenet.dynamic.analyzer import TriadAnalyzer
from balancenet.dynamic.config import TriadConfig
from balancenet.dynamic.io import load_metrics
from balancenet.dynamic.triads import check_connectivity, triangle_indices
from balancenet.dynamic.window import sliding_window_connectivity


def _sample(n_roi: int = 6, n_time: int = 40, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    shared = rng.standard_normal(n_time)
    return rng.standard_normal((n_roi, n_time)) + 0.3 * shared


def _assert_metrics_close(a, b):
    for name in ('lifetime', 'energy', 'fractions', 'subnetwork_lifetime', 'subnetwork_energy'):
        sa, sb = getattr(a, name), getattr(b, name)
        if sa is None:
            assert sb is None
            continue
        assert sa.codes == sb.codes
        assert np.allclose(sa.values, sb.values, equal_nan=True)
        assert np.array_equal(sa.counts, sb.counts)
    assert np.array_equal(a.transition_counts, b.transition_counts)
    assert np.allclose(a.transition_matrix, b.transition_matrix, equal_nan=True)


def test_analyse_end_to_end():
    result = TriadAnalyzer(TriadConfig(window_length=10)).analyse(_sample())
    assert result.connectivity.shape == (30, 6, 6)
    assert result.codes.values.shape == (30, 20)
    assert result.energy.values.shape == (30, 20)
    assert len(result.lifetimes) == len(result.peak_energy) == 20
    metrics = result.metrics
    assert metrics.lifetime.labels == ('Triad_+++', 'Triad_-+-', 'Triad_+-+', 'Triad_---')
    assert np.all(metrics.lifetime.values[~np.isnan(metrics.lifetime.values)] >= 1)
    assert np.isclose(np.nansum(metrics.transition_matrix), 1.0)
    assert metrics.transition_counts.sum() == 29 * 20
    assert np.isclose(metrics.fractions.values.sum(), 1.0)
    assert metrics.subnetwork_lifetime is None and metrics.subnetwork_energy is None


@pytest.mark.parametrize("chunk_size, n_jobs", [(3, 1), (7, 2), (2048, 1)])
def test_summarise_matches_analyse(chunk_size, n_jobs):
    cfg = TriadConfig(window_length=8, subnetwork=[0, 2, 3, 5], chunk_size=chunk_size, n_jobs=n_jobs)
    ts = _sample(seed=4)
    full = TriadAnalyzer(cfg).analyse(ts).metrics
    streamed = TriadAnalyzer(cfg).summarise(ts)
    _assert_metrics_close(full, streamed)


def test_subnetwork_matches_restricted_analysis():
    ts = _sample(n_roi=7, seed=1)
    rois = [1, 3, 4, 6]
    full = TriadAnalyzer(TriadConfig(window_length=12, subnetwork=rois)).analyse(ts).metrics
    restricted = TriadAnalyzer(TriadConfig(window_length=12)).analyse(ts[rois]).metrics
    assert np.allclose(full.subnetwork_lifetime.values, restricted.lifetime.values, equal_nan=True)
    assert np.allclose(full.subnetwork_energy.values, restricted.energy.values, equal_nan=True)


def test_small_subnetwork_is_missing():
    cfg = TriadConfig(window_length=10, subnetwork=[1, 4])
    ts = _sample()
    full = TriadAnalyzer(cfg).analyse(ts).metrics
    streamed = TriadAnalyzer(cfg).summarise(ts)
    for metrics in (full, streamed):
        assert np.isnan(metrics.subnetwork_lifetime.values).all()
        assert np.isnan(metrics.subnetwork_energy.values).all()


def test_remapped_scheme_and_seconds():
    ts = _sample(seed=2)
    raw = TriadAnalyzer(TriadConfig(window_length=10)).analyse(ts).metrics
    cfg = TriadConfig(window_length=10, code_scheme='remapped', window_step_seconds=2.0)
    metrics = TriadAnalyzer(cfg).analyse(ts).metrics
    assert metrics.lifetime.display_codes == (3, -2, 1, -3)
    assert list(metrics.transition_frame().index) == [3, -2, 1, -3]
    assert np.allclose(metrics.lifetime.values, raw.lifetime.values * 2.0, equal_nan=True)
    assert np.allclose(metrics.energy.values, raw.energy.values, equal_nan=True)


def test_progress_callback():
    calls = []
    cfg = TriadConfig(window_length=10, progress_every=10)
    TriadAnalyzer(cfg, progress=lambda done, total: calls.append(done)).analyse(_sample())
    assert calls == [10, 20, 30]


def test_output_dir_saves_metrics(tmp_path):
    out = tmp_path / "sub-01"
    cfg = TriadConfig(window_length=10, subnetwork=[0, 1, 2], output_dir=str(out))
    metrics = TriadAnalyzer(cfg).summarise(_sample())
    assert (out / "summaries.csv").exists()
    assert (out / "transition_matrix.csv").exists()
    _assert_metrics_close(metrics, load_metrics(out))


def test_analyse_surrogate_is_reproducible():
    ts = _sample(seed=3)
    analyzer = TriadAnalyzer(TriadConfig(window_length=10, random_state=8))
    a = analyzer.analyse_surrogate(ts)
    b = analyzer.analyse_surrogate(ts)
    c = analyzer.analyse_surrogate(ts, random_state=9)
    observed = analyzer.analyse(ts)
    assert np.allclose(a.connectivity, b.connectivity)
    assert not np.allclose(a.connectivity, c.connectivity)
    assert not np.allclose(a.connectivity, observed.connectivity)
    _assert_metrics_close(a.metrics, b.metrics)


@pytest.mark.parametrize(
    "kwargs, match",
    [
        ({'window_length': 40}, "window_length"),
        ({'window_length': 1}, "at least 2"),
        ({'method': 'cosine'}, "method"),
        ({'code_scheme': 'signed'}, "code scheme"),
        ({'window_step_seconds': -1.0}, "window_step_seconds"),
        ({'n_jobs': 0}, "n_jobs"),
        ({'chunk_size': 0}, "chunk_size"),
        ({'subnetwork': [0, 6]}, "subnetwork"),
    ],
)
def test_invalid_config_raises(kwargs, match):
    cfg = TriadConfig(**{'window_length': 10, **kwargs})
    with pytest.raises(ValueError, match=match):
        TriadAnalyzer(cfg).analyse(_sample())


def test_too_few_rois_raises():
    with pytest.raises(ValueError, match="3 ROIs"):
        TriadAnalyzer(TriadConfig(window_length=5)).summarise(_sample(n_roi=2))


def test_chunk_statistics_use_connectivity_in_place(monkeypatch):
    cfg = TriadConfig(window_length=10)
    dconn = sliding_window_connectivity(_sample(), cfg.window_length)
    seen = []

    def spy(func):
        def wrapped(d, triangles=None):
            seen.append(np.shares_memory(check_connectivity(d), dconn))
            return func(d, triangles)
        return wrapped

    monkeypatch.setattr(analyzer_module, 'classify_triads', spy(analyzer_module.classify_triads))
    monkeypatch.setattr(analyzer_module, 'triad_energy', spy(analyzer_module.triad_energy))
    chunk = triangle_indices(6)[:5]
    analyzer_module._chunk_statistics(dconn, chunk, cfg, None)
    assert seen == [True, True]


def test_worker_receives_tensor_once(monkeypatch):
    cfg = TriadConfig(window_length=10)
    dconn = sliding_window_connectivity(_sample(), cfg.window_length)
    chunk = triangle_indices(6)[4:11]
    monkeypatch.setattr(analyzer_module, '_WORKER_DCONN', None)
    with pytest.raises(RuntimeError, match="not initialised"):
        analyzer_module._worker_chunk_statistics(chunk, cfg, None)
    analyzer_module._init_worker(dconn)
    assert analyzer_module._WORKER_DCONN is dconn
    from_worker = analyzer_module._worker_chunk_statistics(chunk, cfg, None)
    direct = analyzer_module._chunk_statistics(dconn, chunk, cfg, None)
    assert np.array_equal(from_worker.transitions, direct.transitions)
    assert np.array_equal(from_worker.lifetime.counts, direct.lifetime.counts)
    assert np.allclose(from_worker.energy.sums, direct.energy.sums)


def test_degenerate_window_stays_missing_through_pipeline():
    ts = _sample()
    ts[1, :11] = 2.5  # constant over window 0 only
    cfg = TriadConfig(window_length=10, subnetwork=[0, 1, 2])
    result = TriadAnalyzer(cfg).analyse(ts)
    touches = np.any(result.codes.triangles == 1, axis=1)
    assert np.isnan(result.codes.values[0, touches]).all()
    assert np.isnan(result.energy.values[0, touches]).all()
    assert not np.isnan(result.codes.values[0, ~touches]).any()
    assert not np.isnan(result.codes.values[1:]).any()
    for tri, seg in result.lifetimes.items():
        assert seg.n_dropped == (1 if 1 in tri else 0)
        assert seg.lengths.sum() + seg.n_dropped == result.codes.n_windows
    metrics = result.metrics
    for summary in (metrics.lifetime, metrics.energy, metrics.subnetwork_lifetime,
                    metrics.subnetwork_energy):
        observed = summary.values[~np.isnan(summary.values)]
        assert observed.size and np.all(observed > 0)
    n_missing = int(touches.sum())
    assert metrics.fractions.counts.sum() == 30 * 20 - n_missing
    assert np.isclose(metrics.fractions.values.sum(), 1.0)
    assert metrics.transition_counts.sum() == 29 * 20 - n_missing
    _assert_metrics_close(metrics, TriadAnalyzer(cfg).summarise(ts))
