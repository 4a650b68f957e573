"""
balancenet.dynamic.triads
=========================

Triangle enumeration, signed triad classification and triadic energy.

For every triangle ``(i, j, k)`` with ``i < j < k`` and every window:

* the **triad code** is ``sign(r_ij) + sign(r_ik) + sign(r_jk)``, where
  positive correlations map to ``+1``, negative to ``-1`` and exact
  zeros stay ``0``;
* the **triadic energy** is ``cbrt(a)`` with ``a = -(r_ij * r_ik * r_jk)``
  computed from the unthresholded correlations.  The real cube root
  keeps the sign of ``a``, so negative ``a`` gives a negative energy.

Sign correspondence
-------------------
The product of the three correlations is positive exactly when an even
number of them is negative, i.e. for the balanced codes ``+3`` and
``-1``.  Balanced triads therefore have **negative** energy and
imbalanced triads (``+1``, ``-3``) have **positive** energy.  A missing
correlation makes both the code and the energy NaN.

The work is cubic in the number of ROIs and linear in the number of
windows.  Both functions accept a ``triangles`` subset so callers can
process the triangles in chunks (see
:meth:`balancenet.dynamic.analyzer.TriadAnalyzer.summarise`).
"""

from __future__ import annotations

from itertools import combinations
from typing import Optional

import numpy as np

from .model import TriadTensor


def triangle_indices(n_roi: int, rois: Optional[np.ndarray] = None) -> np.ndarray:
    """Enumerate triangles ``(i, j, k)`` with ``i < j < k``.

    Parameters
    ----------
    n_roi : int
        Number of ROIs.
    rois : array-like of int, optional
        Restrict the enumeration to this subset of ROI indices.

    Returns
    -------
    np.ndarray
        Integer array of shape ``(n_triangles, 3)`` in lexicographic
        order.
    """
    nodes = range(n_roi) if rois is None else sorted(set(int(r) for r in rois))
    return np.array(list(combinations(nodes, 3)), dtype=int).reshape(-1, 3)


def check_connectivity(dconn: np.ndarray) -> np.ndarray:
    """Validate a connectivity tensor and return it as float.

    A float64 input is returned without copying.
    """
    arr = np.asarray(dconn)
    if not (np.issubdtype(arr.dtype, np.number) or np.issubdtype(arr.dtype, np.bool_)):
        raise TypeError("dconn must be numeric")
    if arr.ndim != 3:
        raise ValueError(f"dconn must be a 3D array [n_win × n_ROI × n_ROI], got {arr.ndim} dimension(s)")
    if arr.shape[1] != arr.shape[2]:
        raise ValueError(f"dconn slices must be square, got {arr.shape[1]}×{arr.shape[2]}")
    if arr.shape[1] < 3:
        raise ValueError(f"At least 3 ROIs are required to form triads, got {arr.shape[1]}")
    return np.asarray(arr, dtype=float)


def _edges(dconn: np.ndarray, triangles: Optional[np.ndarray]):
    if triangles is None:
        triangles = triangle_indices(dconn.shape[1])
    triangles = np.asarray(triangles, dtype=int).reshape(-1, 3)
    i, j, k = triangles.T
    return triangles, dconn[:, i, j], dconn[:, i, k], dconn[:, j, k]


def classify_triads(dconn: np.ndarray, triangles: Optional[np.ndarray] = None) -> TriadTensor:
    """Compute the signed-sum triad code of every triangle per window.

    Parameters
    ----------
    dconn : np.ndarray
        Connectivity tensor of shape ``(n_windows, n_roi, n_roi)``.
    triangles : np.ndarray, optional
        Subset of triangles as returned by :func:`triangle_indices`.
        Defaults to all triangles.

    Returns
    -------
    TriadTensor
        Codes in ``{-3, ..., 3}``; NaN where a correlation is missing.
    """
    dconn = check_connectivity(dconn)
    triangles, r_ij, r_ik, r_jk = _edges(dconn, triangles)
    # np.sign keeps exact zeros at 0 and NaN as NaN
    codes = np.sign(r_ij) + np.sign(r_ik) + np.sign(r_jk)
    return TriadTensor(triangles, codes, n_roi=dconn.shape[1], kind='code')


def triad_energy(dconn: np.ndarray, triangles: Optional[np.ndarray] = None) -> TriadTensor:
    """Compute the triadic energy of every triangle per window.

    The energy is ``sign(a) * |a| ** (1/3)`` with
    ``a = -(r_ij * r_ik * r_jk)``, evaluated on the raw correlations.

    Parameters
    ----------
    dconn : np.ndarray
        Connectivity tensor of shape ``(n_windows, n_roi, n_roi)``.
    triangles : np.ndarray, optional
        Subset of triangles.  Defaults to all triangles.

    Returns
    -------
    TriadTensor
        Real-valued energies; NaN where a correlation is missing.
    """
    dconn = check_connectivity(dconn)
    triangles, r_ij, r_ik, r_jk = _edges(dconn, triangles)
    a = -(r_ij * r_ik * r_jk)
    return TriadTensor(triangles, np.cbrt(a), n_roi=dconn.shape[1], kind='energy')


__all__ = [
    'triangle_indices',
    'check_connectivity',
    'classify_triads',
    'triad_energy',
]
