"""
balancenet.dynamic.analyzer
===========================

This module defines the :class:`TriadAnalyzer` class, a high level
interface for dynamic structural balance analysis of ROI time series.
It uses the configuration supplied via
:class:`balancenet.dynamic.config.TriadConfig` to

1. compute sliding window connectivity,
2. classify every triangle's signed triad per window and compute its
   triadic energy,
3. run-length encode the code sequences into lifetimes and reduce each
   lifetime to its peak absolute energy,
4. pool lifetimes and energies by triad code (whole brain and optional
   subnetwork) and tabulate code-to-code transitions.

Two entry points are provided.  :meth:`TriadAnalyzer.analyse` keeps
every intermediate result and returns a
:class:`balancenet.dynamic.model.TriadAnalysis`.
:meth:`TriadAnalyzer.summarise` processes the triangles in chunks,
optionally across worker processes, and keeps only the pooled
statistics, so memory no longer grows with the cube of the ROI count.
Both produce the same :class:`balancenet.dynamic.model.TriadMetrics`.

An analyzer holds no state between calls; each call builds its own
intermediate results and discards them once the metrics are returned.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np

from .aggregate import (
    PooledAccumulator,
    code_counts,
    energy_brain,
    energy_subnetwork,
    fraction_summary,
    lifetime_brain,
    lifetime_subnetwork,
    subnetwork_mask,
    triad_fractions,
    validate_rois,
)
from .config import TriadConfig
from .io import save_metrics
from .lifetime import encode_lifetimes, peak_energy
from .metrics import normalise_transitions, transition_counts
from .model import TRIAD_CODES, TriadAnalysis, TriadMetrics, TriadSegments, TriadTensor
from .surrogates import surrogate_timeseries
from .triads import check_connectivity, classify_triads, triad_energy, triangle_indices
from .window import sliding_window_connectivity, validate_timeseries

logger = logging.getLogger(__name__)


def resolve_n_jobs(n_jobs: int) -> int:
    if n_jobs == -1:
        return os.cpu_count() or 1
    return max(1, n_jobs)


@dataclass
class _ChunkStatistics:
    """Pooled statistics of one chunk of triangles."""

    lifetime: PooledAccumulator
    energy: PooledAccumulator
    sub_lifetime: PooledAccumulator
    sub_energy: PooledAccumulator
    counts: np.ndarray
    n_defined: int
    transitions: np.ndarray

    def merge(self, other: '_ChunkStatistics') -> None:
        self.lifetime.merge(other.lifetime)
        self.energy.merge(other.energy)
        self.sub_lifetime.merge(other.sub_lifetime)
        self.sub_energy.merge(other.sub_energy)
        self.counts += other.counts
        self.n_defined += other.n_defined
        self.transitions += other.transitions


def _empty_statistics() -> _ChunkStatistics:
    k = len(TRIAD_CODES)
    return _ChunkStatistics(
        PooledAccumulator(), PooledAccumulator(), PooledAccumulator(), PooledAccumulator(),
        np.zeros(k, dtype=int), 0, np.zeros((k, k), dtype=int),
    )


def _chunk_statistics(
    dconn: np.ndarray,
    triangles: np.ndarray,
    config: TriadConfig,
    rois: Optional[np.ndarray],
) -> _ChunkStatistics:
    """Run stages 2-4 on a subset of triangles.

    ``dconn`` must already be validated; float64 input is used in place.
    """
    stats = _empty_statistics()
    codes = classify_triads(dconn, triangles)
    lifetimes = encode_lifetimes(codes, config.drop_undefined_runs, config.include_zero_sign)
    peaks = peak_energy(triad_energy(dconn, triangles), lifetimes)
    in_sub = (
        subnetwork_mask(triangles, rois)
        if rois is not None and rois.size >= 3
        else np.zeros(len(triangles), dtype=bool)
    )
    for n, tri in enumerate(lifetimes):
        stats.lifetime.update(lifetimes[tri])
        stats.energy.update(peaks[tri])
        if in_sub[n]:
            stats.sub_lifetime.update(lifetimes[tri])
            stats.sub_energy.update(peaks[tri])
    stats.counts, stats.n_defined = code_counts(codes)
    stats.transitions = transition_counts(codes)
    return stats


# connectivity tensor of the current worker process, set once per worker
_WORKER_DCONN: Optional[np.ndarray] = None


def _init_worker(dconn: np.ndarray) -> None:
    global _WORKER_DCONN
    _WORKER_DCONN = dconn


def _worker_chunk_statistics(
    triangles: np.ndarray,
    config: TriadConfig,
    rois: Optional[np.ndarray],
) -> _ChunkStatistics:
    if _WORKER_DCONN is None:
        raise RuntimeError("Worker process was not initialised with a connectivity tensor")
    return _chunk_statistics(_WORKER_DCONN, triangles, config, rois)


class TriadAnalyzer:
    """High level wrapper for dynamic structural balance analysis.

    Parameters
    ----------
    config : TriadConfig, optional
        Configuration for windowing, encoding, reporting and
        scheduling.  Defaults to ``TriadConfig()``.
    progress : callable, optional
        Called as ``progress(done, total)`` during connectivity
        estimation every ``config.progress_every`` windows.

    Examples
    --------
    >>> from balancenet.dynamic import TriadConfig, TriadAnalyzer
    >>> cfg = TriadConfig(window_length=30, subnetwork=[0, 1, 2, 3, 4, 5])
    >>> analyzer = TriadAnalyzer(cfg)
    >>> result = analyzer.analyse(roi_timeseries)
    >>> print(result.metrics.lifetime.to_series())
    """

    def __init__(
        self,
        config: Optional[TriadConfig] = None,
        progress: Optional[Callable[[int, int], None]] = None,
    ) -> None:
        self.config = config if config is not None else TriadConfig()
        self.progress = progress

    # --------------------------------------------------------------
    def connectivity(self, roi_timeseries: np.ndarray) -> np.ndarray:
        """Validate the input and compute sliding window connectivity."""
        ts = validate_timeseries(roi_timeseries)
        cfg = self.config
        cfg.validate(n_timepoints=ts.shape[1], n_roi=ts.shape[0])
        return sliding_window_connectivity(
            ts,
            cfg.window_length,
            method=cfg.method,
            use=cfg.use,
            progress_every=cfg.progress_every,
            progress=self.progress,
        )

    def _subnetwork(self, n_roi: int) -> Optional[np.ndarray]:
        if self.config.subnetwork is None:
            return None
        return validate_rois(self.config.subnetwork, n_roi)

    def analyse(self, roi_timeseries: np.ndarray) -> TriadAnalysis:
        """Run the full triad pipeline and keep every intermediate result.

        Parameters
        ----------
        roi_timeseries : np.ndarray
            Array of shape (N_ROI, T) with one row per region.

        Returns
        -------
        TriadAnalysis
            Connectivity, code and energy tensors, lifetime and
            peak-energy segments, and the pooled metrics.
        """
        cfg = self.config
        dconn = self.connectivity(roi_timeseries)
        logger.info("Classifying triads for %d ROIs over %d windows", dconn.shape[1], dconn.shape[0])
        codes = classify_triads(dconn)
        energy = triad_energy(dconn)
        lifetimes = encode_lifetimes(codes, cfg.drop_undefined_runs, cfg.include_zero_sign)
        peaks = peak_energy(energy, lifetimes)
        metrics = self._metrics(codes, lifetimes, peaks)
        self._save(metrics)
        return TriadAnalysis(dconn, codes, energy, lifetimes, peaks, metrics)

    def _metrics(self, codes: TriadTensor, lifetimes: TriadSegments, peaks: TriadSegments) -> TriadMetrics:
        cfg = self.config
        rois = self._subnetwork(codes.n_roi)
        counts = transition_counts(codes)
        metrics = TriadMetrics(
            lifetime=lifetime_brain(
                lifetimes, code_scheme=cfg.code_scheme, window_step_seconds=cfg.window_step_seconds
            ),
            energy=energy_brain(peaks, code_scheme=cfg.code_scheme),
            fractions=triad_fractions(codes, code_scheme=cfg.code_scheme),
            transition_counts=counts,
            transition_matrix=normalise_transitions(counts),
        )
        if rois is not None:
            metrics.subnetwork_lifetime = lifetime_subnetwork(
                lifetimes, rois, code_scheme=cfg.code_scheme,
                window_step_seconds=cfg.window_step_seconds,
            )
            metrics.subnetwork_energy = energy_subnetwork(peaks, rois, code_scheme=cfg.code_scheme)
        return metrics

    def summarise(self, roi_timeseries: np.ndarray) -> TriadMetrics:
        """Compute pooled metrics chunk by chunk without keeping tensors.

        Triangles are processed in chunks of ``config.chunk_size``; with
        ``config.n_jobs > 1`` the chunks are distributed over a pool of
        worker processes.  The result equals ``analyse(...).metrics`` up
        to floating point summation order.
        """
        cfg = self.config
        dconn = check_connectivity(self.connectivity(roi_timeseries))
        n_roi = dconn.shape[1]
        rois = self._subnetwork(n_roi)
        triangles = triangle_indices(n_roi)
        chunks: List[np.ndarray] = [
            triangles[start:start + cfg.chunk_size]
            for start in range(0, len(triangles), cfg.chunk_size)
        ]
        n_jobs = min(resolve_n_jobs(cfg.n_jobs), len(chunks))
        logger.info(
            "Summarising %d triangles in %d chunk(s) with %d worker(s)",
            len(triangles), len(chunks), n_jobs,
        )
        total = _empty_statistics()
        if n_jobs == 1:
            for chunk in chunks:
                total.merge(_chunk_statistics(dconn, chunk, cfg, rois))
        else:
            # the tensor is shipped once per worker, chunks carry only triangles
            with ProcessPoolExecutor(
                max_workers=n_jobs, initializer=_init_worker, initargs=(dconn,)
            ) as executor:
                futures = [
                    executor.submit(_worker_chunk_statistics, chunk, cfg, rois)
                    for chunk in chunks
                ]
                for future in futures:
                    total.merge(future.result())
        metrics = self._metrics_from_statistics(total, rois)
        self._save(metrics)
        return metrics

    def _metrics_from_statistics(self, stats: _ChunkStatistics, rois: Optional[np.ndarray]) -> TriadMetrics:
        cfg = self.config
        scale = cfg.window_step_seconds if cfg.window_step_seconds is not None else 1.0
        metrics = TriadMetrics(
            lifetime=stats.lifetime.summary(cfg.code_scheme, 'lifetime', scale),
            energy=stats.energy.summary(cfg.code_scheme, 'energy'),
            fractions=fraction_summary(stats.counts, stats.n_defined, cfg.code_scheme),
            transition_counts=stats.transitions,
            transition_matrix=normalise_transitions(stats.transitions),
        )
        if rois is not None:
            if rois.size < 3:
                logger.warning(
                    "Subnetwork with %d distinct ROI(s) contains no triangle; returning missing values",
                    rois.size,
                )
            metrics.subnetwork_lifetime = stats.sub_lifetime.summary(
                cfg.code_scheme, 'subnetwork_lifetime', scale
            )
            metrics.subnetwork_energy = stats.sub_energy.summary(cfg.code_scheme, 'subnetwork_energy')
        return metrics

    def analyse_surrogate(self, roi_timeseries: np.ndarray, random_state=None) -> TriadAnalysis:
        """Run :meth:`analyse` on a phase-randomised copy of the input.

        ``random_state`` defaults to ``config.random_state``.
        """
        seed = self.config.random_state if random_state is None else random_state
        return self.analyse(surrogate_timeseries(roi_timeseries, seed))

    def _save(self, metrics: TriadMetrics) -> None:
        if self.config.output_dir is None:
            return
        save_metrics(metrics, self.config.output_dir)
        logger.info("Saved triad metrics to %s", self.config.output_dir)


__all__ = [
    'TriadAnalyzer',
    'resolve_n_jobs',
]
