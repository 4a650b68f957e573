"""Tests for triad analysis IO helpers."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from balancenet.dynamic.aggregate import fraction_summary
from balancenet.dynamic.io import load_connectivity, load_metrics, save_connectivity, save_metrics
from balancenet.dynamic.model import TRIAD_CODES, TriadMetrics, TriadSummary


def _summary(values, name, scheme='raw') -> TriadSummary:
    return TriadSummary(TRIAD_CODES, np.array(values, dtype=float), np.array([3, 0, 2, 1]), scheme, name)


def _metrics(with_subnetwork: bool = True) -> TriadMetrics:
    counts = np.array([[4, 1, 0, 0], [2, 3, 1, 0], [0, 1, 5, 2], [0, 0, 1, 6]])
    trans = counts.astype(float)
    np.fill_diagonal(trans, np.nan)
    trans /= np.nansum(trans)
    metrics = TriadMetrics(
        lifetime=_summary([2.5, np.nan, 1.5, 3.0], 'lifetime', 'remapped'),
        energy=_summary([0.4, np.nan, 0.2, 0.3], 'energy', 'remapped'),
        fractions=fraction_summary(np.array([3, 0, 2, 1]), 7, 'remapped'),
        transition_counts=counts,
        transition_matrix=trans,
    )
    if with_subnetwork:
        metrics.subnetwork_lifetime = _summary([np.nan] * 4, 'subnetwork_lifetime', 'remapped')
        metrics.subnetwork_energy = _summary([0.1, np.nan, np.nan, np.nan], 'subnetwork_energy', 'remapped')
    return metrics


def test_connectivity_roundtrip(tmp_path: Path) -> None:
    dconn = np.random.default_rng(0).uniform(-1, 1, (5, 4, 4))
    save_connectivity(dconn, tmp_path / "nested")
    assert np.array_equal(load_connectivity(tmp_path / "nested"), dconn)


@pytest.mark.parametrize("with_subnetwork", [True, False])
def test_metrics_roundtrip(tmp_path: Path, with_subnetwork: bool) -> None:
    metrics = _metrics(with_subnetwork)
    save_metrics(metrics, tmp_path)
    loaded = load_metrics(tmp_path)
    for name in ('lifetime', 'energy', 'fractions', 'subnetwork_lifetime', 'subnetwork_energy'):
        original = getattr(metrics, name)
        restored = getattr(loaded, name)
        if original is None:
            assert restored is None
            continue
        assert restored.codes == original.codes
        assert restored.code_scheme == 'remapped'
        assert restored.name == original.name
        assert np.array_equal(restored.values, original.values, equal_nan=True)
        assert np.array_equal(restored.counts, original.counts)
    assert np.array_equal(loaded.transition_counts, metrics.transition_counts)
    assert np.array_equal(loaded.transition_matrix, metrics.transition_matrix, equal_nan=True)


def test_summary_tables(tmp_path: Path) -> None:
    save_metrics(_metrics(), tmp_path)
    table = pd.read_csv(tmp_path / "summaries.csv", index_col='triad')
    assert list(table.index) == ['Triad_+++', 'Triad_-+-', 'Triad_+-+', 'Triad_---']
    assert 'subnetwork_energy' in table.columns
    assert table.loc['Triad_+++', 'lifetime'] == 2.5
    assert np.isnan(table.loc['Triad_-+-', 'lifetime'])
    trans = pd.read_csv(tmp_path / "transition_matrix.csv", index_col=0)
    assert list(trans.index) == [3, -2, 1, -3]


def test_missing_files_raise(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_metrics(tmp_path)
    with pytest.raises(FileNotFoundError):
        load_connectivity(tmp_path)
