"""
balancenet
==========

This package measures the dynamic structural balance of functional
brain networks.  Starting from ROI time series it computes sliding
window connectivity, classifies every triangle of regions as a signed
triad in each window, measures how long triangles keep the same triad
(lifetimes) and how much tension they carry (triadic energy), and pools
these quantities over the whole brain or a subnetwork.  A
phase-randomised surrogate generator provides the matching null model.

The key modules include:

* ``dynamic`` – the per-subject pipeline: configuration, windowed
  connectivity, triad classification, lifetime encoding, aggregation,
  transition statistics, surrogates and the :class:`TriadAnalyzer`.
* ``batch`` – running the pipeline over many subjects and collecting
  the results into a table.

Example
-------
>>> import numpy as np
>>> from balancenet import TriadAnalyzer, TriadConfig
>>> ts = np.random.default_rng(42).standard_normal((20, 180))
>>> result = TriadAnalyzer(TriadConfig(window_length=30)).analyse(ts)
>>> result.metrics.lifetime.to_series()

Note
----
ROI indices are 0-based and time series are oriented with one row per
region and one column per time point.
"""

from .dynamic import (
    TRIAD_CODES,
    TRIAD_LABELS,
    TriadAnalysis,
    TriadAnalyzer,
    TriadConfig,
    TriadMetrics,
    TriadSegments,
    TriadSummary,
    TriadTensor,
    surrogate_timeseries,
)
from .batch import analyse_subjects, metrics_frame

__version__ = '0.1.0'

__all__ = [
    'TRIAD_CODES',
    'TRIAD_LABELS',
    'TriadAnalysis',
    'TriadAnalyzer',
    'TriadConfig',
    'TriadMetrics',
    'TriadSegments',
    'TriadSummary',
    'TriadTensor',
    'surrogate_timeseries',
    'analyse_subjects',
    'metrics_frame',
]
