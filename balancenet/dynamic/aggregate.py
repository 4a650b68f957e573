"""
balancenet.dynamic.aggregate
============================

Pooled whole-brain and subnetwork summaries of triad segments.

The pooled mean of a code flattens the values of every matching segment
across every qualifying triangle into one sample set and averages it,
ignoring missing values.  Triangles therefore contribute in proportion to
the number of segments they hold; this is *not* a mean of per-triangle
means.  A code that never occurs in scope is reported as NaN, never as
zero.

Qualifying triangles are all triangles for the whole brain, or the
triangles whose three ROIs all belong to the requested subnetwork.  ROI
indices are 0-based.  A subnetwork with fewer than three distinct ROIs
holds no triangle and yields an all-missing summary; out-of-range
indices raise ``ValueError``.

:class:`PooledAccumulator` keeps only running sums and counts, so the
same statistics can be accumulated chunk by chunk without holding every
triangle's segments in memory.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from .model import (
    TRIAD_CODES,
    SegmentList,
    TriadSegments,
    TriadSummary,
    TriadTensor,
    canonical_code,
)

logger = logging.getLogger(__name__)


class PooledAccumulator:
    """Running sums and counts of segment values per triad code.

    Parameters
    ----------
    codes : sequence of int, optional
        Canonical codes to accumulate.  Defaults to all four.
    """

    def __init__(self, codes: Sequence[int] = TRIAD_CODES) -> None:
        self.codes: Tuple[int, ...] = tuple(int(c) for c in codes)
        self.sums = np.zeros(len(self.codes), dtype=float)
        self.counts = np.zeros(len(self.codes), dtype=int)

    def update(self, segments: SegmentList) -> None:
        """Add the values of one triangle's segments."""
        valid = ~np.isnan(segments.values)
        for n, code in enumerate(self.codes):
            picked = segments.values[valid & (segments.codes == code)]
            self.sums[n] += picked.sum()
            self.counts[n] += picked.size

    def merge(self, other: 'PooledAccumulator') -> None:
        if other.codes != self.codes:
            raise ValueError("Cannot merge accumulators over different codes")
        self.sums += other.sums
        self.counts += other.counts

    def means(self) -> np.ndarray:
        """Pooled mean per code; NaN for codes without samples."""
        out = np.full(len(self.codes), np.nan)
        seen = self.counts > 0
        out[seen] = self.sums[seen] / self.counts[seen]
        return out

    def summary(self, code_scheme: str = 'raw', name: str = '', scale: float = 1.0) -> TriadSummary:
        return TriadSummary(self.codes, self.means() * scale, self.counts.copy(), code_scheme, name)


def resolve_codes(codes: Optional[Iterable[int]], code_scheme: str = 'raw') -> Tuple[int, ...]:
    """Translate requested codes from ``code_scheme`` to canonical codes."""
    if codes is None:
        return TRIAD_CODES
    return tuple(canonical_code(int(c), code_scheme) for c in codes)


def validate_rois(rois: Iterable[int], n_roi: int) -> np.ndarray:
    """Return the sorted distinct ROI indices of a subnetwork.

    Raises
    ------
    ValueError
        If any index falls outside ``[0, n_roi)`` or is not an integer.
    """
    if isinstance(rois, (set, frozenset)):
        rois = sorted(rois)
    arr = np.asarray(rois).ravel()
    if arr.size and not np.issubdtype(arr.dtype, np.number):
        raise ValueError("rois must contain integer ROI indices")
    if arr.size and not np.issubdtype(arr.dtype, np.integer):
        if not np.all(np.equal(np.mod(arr, 1), 0)):
            raise ValueError("rois must contain integer ROI indices")
        arr = arr.astype(int)
    if np.any((arr < 0) | (arr >= n_roi)):
        raise ValueError(f"rois contains indices out of range [0, {n_roi}): {arr.tolist()}")
    return np.unique(arr.astype(int))


def subnetwork_mask(triangles: np.ndarray, rois: np.ndarray) -> np.ndarray:
    """Boolean mask of the triangles whose three ROIs all lie in ``rois``."""
    triangles = np.asarray(triangles, dtype=int).reshape(-1, 3)
    return np.isin(triangles, rois).all(axis=1)


def pooled_mean(
    segments: TriadSegments,
    codes: Optional[Iterable[int]] = None,
    rois: Optional[Sequence[int]] = None,
    code_scheme: str = 'raw',
    scale: float = 1.0,
    name: str = '',
) -> TriadSummary:
    """Pooled mean of segment values per triad code.

    Parameters
    ----------
    segments : TriadSegments
        Lifetime or peak-energy segments.
    codes : iterable of int, optional
        Codes to report, expressed in ``code_scheme``.  Defaults to the
        four canonical codes in the order ``(+3, -1, +1, -3)``.
    rois : sequence of int, optional
        Restrict the pool to triangles within this ROI subset.
    code_scheme : str, optional
        ``'raw'`` or ``'remapped'``.
    scale : float, optional
        Multiplier applied to the pooled means (e.g. seconds per window).
    name : str, optional
        Name attached to the returned summary.

    Returns
    -------
    TriadSummary
        Pooled means; NaN for codes without any observed segment.
    """
    wanted = resolve_codes(codes, code_scheme)
    acc = PooledAccumulator(wanted)
    if rois is None:
        for seg in segments.values():
            acc.update(seg)
        return acc.summary(code_scheme, name, scale)
    members = validate_rois(rois, segments.n_roi)
    if members.size < 3:
        logger.warning(
            "Subnetwork with %d distinct ROI(s) contains no triangle; returning missing values",
            members.size,
        )
        return acc.summary(code_scheme, name, scale)
    member_set = set(members.tolist())
    for tri, seg in segments.items():
        if member_set.issuperset(tri):
            acc.update(seg)
    return acc.summary(code_scheme, name, scale)


def _require_kind(segments: TriadSegments, kind: str) -> None:
    if segments.kind != kind:
        raise ValueError(f"Expected segments of kind '{kind}', got '{segments.kind}'")


def _lifetime_scale(window_step_seconds: Optional[float]) -> float:
    if window_step_seconds is None:
        return 1.0
    if not window_step_seconds > 0:
        raise ValueError("window_step_seconds must be a positive number if provided")
    return float(window_step_seconds)


def lifetime_brain(
    lifetimes: TriadSegments,
    codes: Optional[Iterable[int]] = None,
    code_scheme: str = 'raw',
    window_step_seconds: Optional[float] = None,
) -> TriadSummary:
    """Whole-brain pooled mean lifetime per triad code."""
    _require_kind(lifetimes, 'lifetime')
    scale = _lifetime_scale(window_step_seconds)
    return pooled_mean(lifetimes, codes, None, code_scheme, scale, name='lifetime')


def lifetime_subnetwork(
    lifetimes: TriadSegments,
    rois: Sequence[int],
    codes: Optional[Iterable[int]] = None,
    code_scheme: str = 'raw',
    window_step_seconds: Optional[float] = None,
) -> TriadSummary:
    """Pooled mean lifetime per triad code within a ROI subset."""
    _require_kind(lifetimes, 'lifetime')
    scale = _lifetime_scale(window_step_seconds)
    return pooled_mean(lifetimes, codes, rois, code_scheme, scale, name='subnetwork_lifetime')


def energy_brain(
    peaks: TriadSegments,
    codes: Optional[Iterable[int]] = None,
    code_scheme: str = 'raw',
) -> TriadSummary:
    """Whole-brain pooled mean peak ``|energy|`` per triad code."""
    _require_kind(peaks, 'peak_energy')
    return pooled_mean(peaks, codes, None, code_scheme, name='energy')


def energy_subnetwork(
    peaks: TriadSegments,
    rois: Sequence[int],
    codes: Optional[Iterable[int]] = None,
    code_scheme: str = 'raw',
) -> TriadSummary:
    """Pooled mean peak ``|energy|`` per triad code within a ROI subset."""
    _require_kind(peaks, 'peak_energy')
    return pooled_mean(peaks, codes, rois, code_scheme, name='subnetwork_energy')


def code_counts(codes: TriadTensor, rois: Optional[Sequence[int]] = None) -> Tuple[np.ndarray, int]:
    """Count entries per canonical code and entries with any defined code.

    Returns
    -------
    counts : np.ndarray
        Number of (window, triangle) entries equal to each code of
        ``TRIAD_CODES``.
    n_defined : int
        Number of non-missing entries, including codes with a zero
        pairwise sign.
    """
    values = codes.values
    if rois is not None:
        members = validate_rois(rois, codes.n_roi)
        values = values[:, subnetwork_mask(codes.triangles, members)]
    counts = np.array([np.count_nonzero(values == c) for c in TRIAD_CODES], dtype=int)
    return counts, int(np.count_nonzero(~np.isnan(values)))


def fraction_summary(counts: np.ndarray, n_defined: int, code_scheme: str = 'raw') -> TriadSummary:
    values = np.full(len(TRIAD_CODES), np.nan)
    if n_defined > 0:
        values = counts / float(n_defined)
    return TriadSummary(TRIAD_CODES, values, counts, code_scheme, name='fraction')


def triad_fractions(
    codes: TriadTensor,
    rois: Optional[Sequence[int]] = None,
    code_scheme: str = 'raw',
) -> TriadSummary:
    """Fraction of (window, triangle) entries carrying each canonical code.

    The denominator counts every entry with a non-missing code, so the
    four fractions sum to less than one when zero pairwise signs occur.
    """
    if codes.kind != 'code':
        raise ValueError(f"Expected a triad code tensor, got kind '{codes.kind}'")
    counts, n_defined = code_counts(codes, rois)
    return fraction_summary(counts, n_defined, code_scheme)


__all__ = [
    'PooledAccumulator',
    'resolve_codes',
    'validate_rois',
    'subnetwork_mask',
    'pooled_mean',
    'lifetime_brain',
    'lifetime_subnetwork',
    'energy_brain',
    'energy_subnetwork',
    'code_counts',
    'fraction_summary',
    'triad_fractions',
]
