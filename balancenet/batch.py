"""
batch
=====

Run the triad pipeline over many subjects.

Each subject is processed in its own :class:`TriadAnalyzer` call, so no
intermediate tensor outlives the subject it belongs to.  Subjects are
independent and can be distributed over a pool of worker processes.
The resulting :class:`~balancenet.dynamic.model.TriadMetrics` objects are
collected into a :class:`pandas.DataFrame` with one row per subject,
which is the input expected by downstream group statistics.

Example
-------
>>> from balancenet import TriadConfig
>>> from balancenet.batch import analyse_subjects, metrics_frame
>>> cfg = TriadConfig(window_length=50)
>>> observed = analyse_subjects(series, cfg)
>>> null = analyse_subjects(series, cfg, surrogate=True)
>>> df = metrics_frame(observed, subject_ids)
"""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import replace
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from .dynamic.analyzer import TriadAnalyzer, resolve_n_jobs
from .dynamic.config import TriadConfig
from .dynamic.model import TriadMetrics
from .dynamic.surrogates import surrogate_timeseries

logger = logging.getLogger(__name__)


def _analyse_subject(
    roi_timeseries: np.ndarray,
    config: TriadConfig,
    surrogate: bool,
    seed: Optional[int],
) -> TriadMetrics:
    if surrogate:
        roi_timeseries = surrogate_timeseries(roi_timeseries, seed)
    return TriadAnalyzer(config).summarise(roi_timeseries)


def analyse_subjects(
    series: Sequence[np.ndarray],
    config: Optional[TriadConfig] = None,
    surrogate: bool = False,
    n_jobs: Optional[int] = None,
) -> List[TriadMetrics]:
    """Compute triad metrics for a list of subjects.

    Parameters
    ----------
    series : sequence of np.ndarray
        One (N_ROI, T) time series matrix per subject.
    config : TriadConfig, optional
        Shared configuration.  ``config.output_dir`` is ignored here so
        that subjects do not overwrite each other's files.
    surrogate : bool, optional
        If True, each subject is analysed on a phase-randomised copy of
        its time series.  Seeds are derived from ``config.random_state``
        so that every subject gets a different, reproducible surrogate.
    n_jobs : int, optional
        Number of worker processes; defaults to ``config.n_jobs``.

    Returns
    -------
    list of TriadMetrics
        Metrics in the order of ``series``.
    """
    cfg = config if config is not None else TriadConfig()
    # per-subject runs share one config, so file output is disabled
    cfg = replace(cfg, output_dir=None)
    if surrogate:
        seeds: List[Optional[int]] = [
            int(s) for s in np.random.SeedSequence(cfg.random_state).generate_state(len(series))
        ]
    else:
        seeds = [None] * len(series)
    workers = min(resolve_n_jobs(cfg.n_jobs if n_jobs is None else n_jobs), max(len(series), 1))
    if workers > 1:
        # subject-level parallelism; each subject runs serially inside its worker
        inner = replace(cfg, n_jobs=1)
        with ProcessPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(_analyse_subject, ts, inner, surrogate, seed)
                for ts, seed in zip(series, seeds)
            ]
            results = [future.result() for future in futures]
    else:
        results = []
        for n, (ts, seed) in enumerate(zip(series, seeds)):
            results.append(_analyse_subject(ts, cfg, surrogate, seed))
            logger.info("Processed subject %d/%d", n + 1, len(series))
    return results


def metrics_frame(
    results: Sequence[TriadMetrics],
    subject_ids: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Collect per-subject metrics into a table.

    Columns are named ``<summary>_<triad label>`` (e.g.
    ``lifetime_Triad_+++``); missing values stay NaN.
    """
    if subject_ids is not None and len(subject_ids) != len(results):
        raise ValueError("Number of subject_ids must match number of results")
    rows = [m.to_series() for m in results]
    frame = pd.DataFrame(rows)
    if subject_ids is not None:
        frame.index = pd.Index(list(subject_ids), name='subject')
    return frame


__all__ = [
    'analyse_subjects',
    'metrics_frame',
]
