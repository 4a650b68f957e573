"""
balancenet.dynamic.lifetime
===========================

Run-length encoding of triad code sequences and the reduction of each
lifetime segment to its peak absolute energy.

A *lifetime* is a maximal run of consecutive windows during which a
triangle keeps the same triad code.  :func:`encode_lifetimes` turns the
code sequence of every triangle into a :class:`SegmentList` of
``(code, run length)`` pairs and :func:`peak_energy` reuses exactly the
same segment boundaries, replacing each run length with the maximum of
``|energy|`` inside the segment.
"""

from __future__ import annotations

from typing import Dict, Tuple

import numpy as np

from .model import SegmentList, Triangle, TriadSegments, TriadTensor, defined_mask


def run_length_encode(sequence: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Collapse consecutive equal values of a 1D sequence.

    Consecutive NaN entries form a single run.

    Returns
    -------
    values, starts, lengths : np.ndarray
        Value, first index and length of every run, in order.
    """
    x = np.asarray(sequence, dtype=float).ravel()
    n = x.size
    if n == 0:
        return np.empty(0), np.empty(0, dtype=int), np.empty(0, dtype=int)
    nan = np.isnan(x)
    same = (x[1:] == x[:-1]) | (nan[1:] & nan[:-1])
    starts = np.concatenate(([0], np.flatnonzero(~same) + 1))
    lengths = np.diff(np.append(starts, n))
    return x[starts], starts, lengths


def encode_sequence(
    sequence: np.ndarray,
    drop_undefined: bool = True,
    include_zero_sign: bool = False,
) -> SegmentList:
    """Run-length encode one triangle's code sequence.

    Parameters
    ----------
    sequence : np.ndarray
        Per-window triad codes of one triangle (NaN = missing).
    drop_undefined : bool, optional
        Drop runs whose code is undefined: missing codes and, unless
        ``include_zero_sign`` is True, codes produced by a zero pairwise
        sign.  The dropped windows are counted in ``n_dropped``.
    include_zero_sign : bool, optional
        Treat codes with a zero pairwise sign as defined.
    """
    values, starts, lengths = run_length_encode(sequence)
    n_dropped = 0
    if drop_undefined:
        keep = defined_mask(values, include_zero_sign)
        n_dropped = int(lengths[~keep].sum())
        values, starts, lengths = values[keep], starts[keep], lengths[keep]
    return SegmentList(values, lengths.astype(float), starts, lengths, n_dropped)


def encode_lifetimes(
    codes: TriadTensor,
    drop_undefined: bool = True,
    include_zero_sign: bool = False,
) -> TriadSegments:
    """Run-length encode the code sequence of every triangle.

    Parameters
    ----------
    codes : TriadTensor
        Triad codes as returned by
        :func:`balancenet.dynamic.triads.classify_triads`.
    drop_undefined : bool, optional
        Drop runs of undefined codes (default True).
    include_zero_sign : bool, optional
        Treat codes with a zero pairwise sign as defined.

    Returns
    -------
    TriadSegments
        Lifetime segments keyed by triangle.  For each triangle the run
        lengths plus ``n_dropped`` sum to the number of windows.
    """
    if codes.kind != 'code':
        raise ValueError(f"Expected a triad code tensor, got kind '{codes.kind}'")
    segments: Dict[Triangle, SegmentList] = {}
    for col, tri in enumerate(codes.triangles):
        key = (int(tri[0]), int(tri[1]), int(tri[2]))
        segments[key] = encode_sequence(codes.values[:, col], drop_undefined, include_zero_sign)
    return TriadSegments(segments, n_roi=codes.n_roi, n_windows=codes.n_windows, kind='lifetime')


def _peak_abs(values: np.ndarray) -> float:
    """Maximum absolute value ignoring NaN; NaN if nothing is defined."""
    values = np.abs(values[~np.isnan(values)])
    if values.size == 0:
        return np.nan
    return float(values.max())


def peak_energy(energy: TriadTensor, lifetimes: TriadSegments) -> TriadSegments:
    """Replace each lifetime segment's length with its peak ``|energy|``.

    Segment boundaries are taken verbatim from ``lifetimes``; a segment
    whose windows all have undefined energy gets a NaN peak.

    Parameters
    ----------
    energy : TriadTensor
        Triadic energies as returned by
        :func:`balancenet.dynamic.triads.triad_energy`.
    lifetimes : TriadSegments
        Lifetime segments as returned by :func:`encode_lifetimes`.

    Returns
    -------
    TriadSegments
        Segments of kind ``'peak_energy'`` with the same keys, codes and
        boundaries as ``lifetimes``.

    Raises
    ------
    ValueError
        If the inputs have mismatching kinds, window counts or ROI counts.
    KeyError
        If a triangle of ``lifetimes`` has no energy series.
    """
    if energy.kind != 'energy':
        raise ValueError(f"Expected an energy tensor, got kind '{energy.kind}'")
    if lifetimes.kind != 'lifetime':
        raise ValueError(f"Expected lifetime segments, got kind '{lifetimes.kind}'")
    if energy.n_windows != lifetimes.n_windows or energy.n_roi != lifetimes.n_roi:
        raise ValueError(
            f"Energy tensor ({energy.n_windows} windows, {energy.n_roi} ROIs) does not match "
            f"lifetimes ({lifetimes.n_windows} windows, {lifetimes.n_roi} ROIs)"
        )
    peaks: Dict[Triangle, SegmentList] = {}
    for tri, seg in lifetimes.items():
        series = energy.series(tri)
        values = [
            _peak_abs(series[start:start + length])
            for start, length in zip(seg.starts, seg.lengths)
        ]
        peaks[tri] = seg.with_values(np.array(values, dtype=float))
    return TriadSegments(peaks, n_roi=lifetimes.n_roi, n_windows=lifetimes.n_windows, kind='peak_energy')


__all__ = [
    'run_length_encode',
    'encode_sequence',
    'encode_lifetimes',
    'peak_energy',
]
