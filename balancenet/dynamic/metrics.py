"""
balancenet.dynamic.metrics
==========================

This module tabulates transitions between triad codes.  For every
triangle and every pair of consecutive windows the code at ``t`` and at
``t + 1`` are looked up; when both are canonical codes the
corresponding cell of a ``4×4`` count matrix shared by all triangles is
incremented.  Entries that are missing or carry a code produced by a
zero pairwise sign are skipped: such a window pair simply does not
count as a transition.

Rows and columns follow the order ``(+3, -1, +1, -3)``; rows are the
code at ``t`` and columns the code at ``t + 1``.

Functions
---------

``transition_counts(codes)``
    Raw counts including self-transitions on the diagonal.

``normalise_transitions(counts)``
    Mask the diagonal with NaN and divide by the off-diagonal total.

``transition_matrix(codes)``
    Both steps at once.

See Also
--------
balancenet.dynamic.model.TriadMetrics
    Dataclass holding the counts and the normalised matrix.
"""

from __future__ import annotations

import numpy as np

from .model import TRIAD_CODES, TriadTensor


def _code_index(values: np.ndarray) -> np.ndarray:
    """Position of each value in ``TRIAD_CODES``; -1 when not canonical."""
    index = np.full(values.shape, -1, dtype=int)
    for n, code in enumerate(TRIAD_CODES):
        index[values == code] = n
    return index


def transition_counts(codes: TriadTensor) -> np.ndarray:
    """Count code-to-code transitions pooled over all triangles.

    Parameters
    ----------
    codes : TriadTensor
        Triad codes as returned by
        :func:`balancenet.dynamic.triads.classify_triads`.

    Returns
    -------
    np.ndarray
        Integer array of shape ``(4, 4)``.  Entry ``(a, b)`` counts the
        window pairs where a triangle moved from ``TRIAD_CODES[a]`` to
        ``TRIAD_CODES[b]``.  Self-transitions are counted on the
        diagonal.
    """
    if codes.kind != 'code':
        raise ValueError(f"Expected a triad code tensor, got kind '{codes.kind}'")
    k = len(TRIAD_CODES)
    if codes.n_windows < 2:
        return np.zeros((k, k), dtype=int)
    index = _code_index(codes.values)
    src = index[:-1]
    dst = index[1:]
    valid = (src >= 0) & (dst >= 0)
    flat = src[valid] * k + dst[valid]
    return np.bincount(flat, minlength=k * k).reshape(k, k)


def normalise_transitions(counts: np.ndarray) -> np.ndarray:
    """Normalise transition counts to a matrix with NaN diagonal.

    The off-diagonal cells are divided by their total so that they sum
    to one.  When no off-diagonal transition was observed every cell is
    NaN.
    """
    trans = np.array(counts, dtype=float)
    np.fill_diagonal(trans, np.nan)
    total = np.nansum(trans)
    if total == 0:
        return np.full(trans.shape, np.nan)
    return trans / total


def transition_matrix(codes: TriadTensor) -> np.ndarray:
    """Compute the normalised ``4×4`` triad transition matrix.

    Parameters
    ----------
    codes : TriadTensor
        Triad codes over time.

    Returns
    -------
    np.ndarray
        Float array of shape ``(4, 4)`` in code order
        ``(+3, -1, +1, -3)``.  The diagonal is NaN and the off-diagonal
        entries sum to one.
    """
    return normalise_transitions(transition_counts(codes))


__all__ = [
    'transition_counts',
    'normalise_transitions',
    'transition_matrix',
]
