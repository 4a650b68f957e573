"""Utility helpers for saving triad analysis outputs.

This module provides functions to persist results from dynamic triad
analyses to disk. Summaries are written in both CSV and NumPy formats
for easy inspection and efficient reloading.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

import numpy as np
import pandas as pd

from .model import TriadMetrics, TriadSummary

_SUMMARIES = (
    'lifetime',
    'energy',
    'fractions',
    'subnetwork_lifetime',
    'subnetwork_energy',
)


def _ensure_dir(path: Path) -> None:
    """Create directory if it does not already exist."""
    path.mkdir(parents=True, exist_ok=True)


def save_connectivity(dconn: np.ndarray, output_dir: str | Path) -> None:
    """Save a windowed connectivity tensor to ``output_dir``.

    Parameters
    ----------
    dconn : np.ndarray
        Array of shape (n_windows, N_ROI, N_ROI).
    output_dir : str or Path
        Destination directory. It will be created if necessary.
    """
    out = Path(output_dir)
    _ensure_dir(out)
    np.save(out / "connectivity.npy", dconn)


def load_connectivity(input_dir: str | Path) -> np.ndarray:
    """Load a connectivity tensor saved by :func:`save_connectivity`."""
    npy = Path(input_dir) / "connectivity.npy"
    if not npy.exists():
        raise FileNotFoundError(f"No connectivity file found in {input_dir}.")
    return np.load(npy)


def save_metrics(metrics: TriadMetrics, output_dir: str | Path) -> None:
    """Save pooled triad metrics.

    Writes ``summaries.csv`` (one row per triad label, one column per
    summary), ``transition_matrix.csv`` and a ``metrics.npz`` archive
    holding every array together with the summary sample counts.

    Parameters
    ----------
    metrics : TriadMetrics
        Metrics returned by the analyzer.
    output_dir : str or Path
        Destination directory. It will be created if necessary.
    """
    out = Path(output_dir)
    _ensure_dir(out)
    arrays: Dict[str, np.ndarray] = {
        'transition_counts': metrics.transition_counts,
        'transition_matrix': metrics.transition_matrix,
        'codes': np.asarray(metrics.lifetime.codes),
        'code_scheme': np.asarray(metrics.lifetime.code_scheme),
    }
    columns = {}
    for name in _SUMMARIES:
        summary: Optional[TriadSummary] = getattr(metrics, name)
        if summary is None:
            continue
        arrays[name] = summary.values
        arrays[f"{name}_counts"] = summary.counts
        columns[name] = summary.values
    frame = pd.DataFrame(columns, index=list(metrics.lifetime.labels))
    frame.index.name = 'triad'
    frame.to_csv(out / "summaries.csv")
    metrics.transition_frame().to_csv(out / "transition_matrix.csv")
    np.savez(out / "metrics.npz", **arrays)


def load_metrics(input_dir: str | Path) -> TriadMetrics:
    """Load :class:`TriadMetrics` from ``input_dir``.

    Parameters
    ----------
    input_dir : str or Path
        Directory containing a ``metrics.npz`` written by
        :func:`save_metrics`.

    Returns
    -------
    TriadMetrics
        Metrics object with the same fields as originally saved.
    """
    npz = Path(input_dir) / "metrics.npz"
    if not npz.exists():
        raise FileNotFoundError(f"No metrics file found in {input_dir}.")
    with np.load(npz) as data:
        codes = tuple(int(c) for c in data['codes'])
        scheme = str(data['code_scheme'])
        summaries: Dict[str, Optional[TriadSummary]] = {}
        for name in _SUMMARIES:
            if name in data.files:
                summaries[name] = TriadSummary(
                    codes, data[name], data[f"{name}_counts"], scheme,
                    name='fraction' if name == 'fractions' else name,
                )
            else:
                summaries[name] = None
        return TriadMetrics(
            lifetime=summaries['lifetime'],
            energy=summaries['energy'],
            fractions=summaries['fractions'],
            transition_counts=data['transition_counts'],
            transition_matrix=data['transition_matrix'],
            subnetwork_lifetime=summaries['subnetwork_lifetime'],
            subnetwork_energy=summaries['subnetwork_energy'],
        )


__all__ = [
    "save_connectivity",
    "load_connectivity",
    "save_metrics",
    "load_metrics",
]
