"""
balancenet.dynamic
==================

This subpackage provides tools for analysing the structural balance of
time-varying functional connectivity.  The code is broken into modules
that follow the pipeline stages: windowed connectivity, triad
classification and energy, lifetime encoding, pooled aggregation and
transition statistics, plus a phase-randomised surrogate generator for
null models.  The high level :class:`TriadAnalyzer` class orchestrates
these components based on user-provided configuration.

Modules
-------

config
    Defines the :class:`TriadConfig` dataclass used to specify
    parameters for triad analysis.

model
    Defines the triad code conventions and the containers passed
    between stages (:class:`TriadTensor`, :class:`TriadSegments`,
    :class:`TriadSummary`, :class:`TriadMetrics`, :class:`TriadAnalysis`).

window
    Computes correlation matrices for sliding windows.

triads
    Enumerates triangles and computes signed triad codes and triadic
    energies per window.

lifetime
    Run-length encodes code sequences into lifetimes and reduces each
    lifetime to its peak absolute energy.

aggregate
    Pools lifetimes, energies and code fractions over the whole brain
    or a subnetwork.

metrics
    Tabulates the triad code transition matrix.

surrogates
    Generates phase-randomised surrogate time series.

analyzer
    Contains :class:`TriadAnalyzer`, which runs the whole pipeline for
    one subject, either keeping every intermediate result or streaming
    over chunks of triangles.

io
    Saves and loads connectivity tensors and metrics.
"""

from .config import TriadConfig
from .model import (
    TRIAD_CODES,
    TRIAD_LABELS,
    SegmentList,
    TriadAnalysis,
    TriadMetrics,
    TriadSegments,
    TriadSummary,
    TriadTensor,
)
from .window import sliding_window_connectivity
from .triads import classify_triads, triad_energy, triangle_indices
from .lifetime import encode_lifetimes, peak_energy
from .aggregate import (
    energy_brain,
    energy_subnetwork,
    lifetime_brain,
    lifetime_subnetwork,
    pooled_mean,
    triad_fractions,
)
from .metrics import transition_counts, transition_matrix
from .surrogates import phase_randomize, surrogate_timeseries
from .analyzer import TriadAnalyzer

__all__ = [
    'TriadConfig',
    'TRIAD_CODES',
    'TRIAD_LABELS',
    'SegmentList',
    'TriadAnalysis',
    'TriadMetrics',
    'TriadSegments',
    'TriadSummary',
    'TriadTensor',
    'sliding_window_connectivity',
    'classify_triads',
    'triad_energy',
    'triangle_indices',
    'encode_lifetimes',
    'peak_energy',
    'energy_brain',
    'energy_subnetwork',
    'lifetime_brain',
    'lifetime_subnetwork',
    'pooled_mean',
    'triad_fractions',
    'transition_counts',
    'transition_matrix',
    'phase_randomize',
    'surrogate_timeseries',
    'TriadAnalyzer',
]
