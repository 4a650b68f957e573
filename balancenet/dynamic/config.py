"""
balancenet.dynamic.config
=========================

This module defines the configuration dataclass for dynamic structural
balance analysis.  :class:`TriadConfig` specifies how windowed
connectivity is estimated, how triad code sequences are run-length
encoded and summarised, and how the computation is scheduled.  It
includes validation to ensure the options are consistent with the
input data.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from .model import CODE_SCHEMES
from .window import CORRELATION_METHODS, MISSING_POLICIES


@dataclass
class TriadConfig:
    """Configuration options for dynamic triad analysis.

    Attributes
    ----------
    window_length : int
        Sliding window length ``WL`` in time points; each window spans
        ``WL + 1`` samples.  Defaults to 50.
    method : str, optional
        Correlation method, ``'pearson'`` (default), ``'spearman'`` or
        ``'kendall'``.
    use : str, optional
        Missing-value policy for correlations, ``'pairwise'`` (default)
        or ``'complete'``.
    drop_undefined_runs : bool, optional
        If True (default) runs of undefined codes are dropped from the
        lifetime encoding.
    include_zero_sign : bool, optional
        If True, codes produced by a zero pairwise sign are treated as
        defined codes rather than undefined.  Defaults to False.
    code_scheme : str, optional
        Reporting convention for the two-negative/one-positive triad:
        ``'raw'`` reports ``-1`` (default), ``'remapped'`` reports ``-2``.
    window_step_seconds : float | None, optional
        If provided, lifetimes are reported in seconds by multiplying
        window counts with this value.
    subnetwork : sequence of int | None, optional
        0-based ROI indices of a subnetwork whose pooled lifetimes and
        energies are reported next to the whole-brain values.
    progress_every : int, optional
        Period, in windows, of connectivity progress notifications.
    chunk_size : int, optional
        Number of triangles processed per chunk by
        :meth:`balancenet.dynamic.analyzer.TriadAnalyzer.summarise`.
    n_jobs : int, optional
        Number of worker processes for chunked and batch computation.
        ``1`` (default) runs serially, ``-1`` uses all CPUs.
    output_dir : str | None, optional
        If provided, metrics computed by
        :class:`balancenet.dynamic.analyzer.TriadAnalyzer` are written
        to this directory using helpers in :mod:`balancenet.dynamic.io`.
    random_state : int | None, optional
        Seed for phase-randomised surrogates.  Defaults to None.
    """

    window_length: int = 50
    method: str = 'pearson'
    use: str = 'pairwise'
    drop_undefined_runs: bool = True
    include_zero_sign: bool = False
    code_scheme: str = 'raw'
    window_step_seconds: Optional[float] = None
    subnetwork: Optional[Sequence[int]] = None
    progress_every: int = 50
    chunk_size: int = 2048
    n_jobs: int = 1
    output_dir: Optional[str] = None
    random_state: Optional[int] = None

    def validate(self, n_timepoints: Optional[int] = None, n_roi: Optional[int] = None) -> None:
        """Validate configuration parameters, optionally against input data.

        Parameters
        ----------
        n_timepoints : int, optional
            Number of time points in the ROI time series.
        n_roi : int, optional
            Number of ROIs in the time series.

        Raises
        ------
        ValueError
            If any option is invalid or inconsistent with the data.
        """
        if self.window_length < 2:
            raise ValueError("window_length must be at least 2 time points")
        if n_timepoints is not None and self.window_length >= n_timepoints:
            raise ValueError(
                f"window_length ({self.window_length}) must be smaller than the number "
                f"of time points ({n_timepoints})"
            )
        if self.method not in CORRELATION_METHODS:
            raise ValueError(f"Unknown correlation method '{self.method}'")
        if self.use not in MISSING_POLICIES:
            raise ValueError(f"Unknown missing-value policy '{self.use}'")
        if self.code_scheme not in CODE_SCHEMES:
            raise ValueError(f"Unknown code scheme '{self.code_scheme}'")
        if self.window_step_seconds is not None and not self.window_step_seconds > 0:
            raise ValueError("window_step_seconds must be a positive number if provided")
        if self.progress_every < 1 or self.chunk_size < 1:
            raise ValueError("progress_every and chunk_size must be positive integers")
        if self.n_jobs == 0 or self.n_jobs < -1:
            raise ValueError("n_jobs must be a positive integer or -1")
        if self.subnetwork is not None and n_roi is not None:
            if any(r < 0 or r >= n_roi for r in self.subnetwork):
                raise ValueError(f"subnetwork contains ROI indices outside [0, {n_roi})")
        if n_roi is not None and n_roi < 3:
            raise ValueError(f"At least 3 ROIs are required to form triads, got {n_roi}")


__all__ = [
    'TriadConfig',
]
