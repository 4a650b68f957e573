"""
balancenet.dynamic.window
=========================

This module computes time-resolved functional connectivity by sliding
a window across ROI time series.  For each window the correlation
between all pairs of ROIs is computed and stored unchanged: the
diagonal is kept, and entries that cannot be estimated (e.g. a region
with zero variance inside the window) stay NaN so that missing data
propagate to later stages instead of being silently replaced by zero.

Window convention
-----------------
With ``T`` time points and window length ``WL`` there are ``T - WL``
windows.  Window ``t`` (0-based) covers time points ``t .. t + WL``
inclusive, i.e. ``WL + 1`` samples.

Functions
---------

``sliding_window_connectivity(roi_timeseries, window_length, ...)``
    Compute one correlation matrix per window.

``validate_timeseries(roi_timeseries)``
    Coerce and check a ROI × time matrix.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

import numpy as np
import pandas as pd
from scipy.stats import rankdata

logger = logging.getLogger(__name__)

CORRELATION_METHODS = ('pearson', 'spearman', 'kendall')
MISSING_POLICIES = ('pairwise', 'complete')


def validate_timeseries(roi_timeseries: np.ndarray) -> np.ndarray:
    """Return ``roi_timeseries`` as a float array of shape (N_ROI, T).

    Raises
    ------
    TypeError
        If the input is not numeric.
    ValueError
        If the input is not a two-dimensional matrix.
    """
    arr = np.asarray(roi_timeseries)
    if arr.dtype == object or not (
        np.issubdtype(arr.dtype, np.number) or np.issubdtype(arr.dtype, np.bool_)
    ):
        raise TypeError("roi_timeseries must be numeric (rows = ROIs, columns = time points)")
    if arr.ndim != 2:
        raise ValueError(
            f"roi_timeseries must be a 2D array of shape (N_ROI, T), got {arr.ndim} dimension(s)"
        )
    return arr.astype(float)


def _window_correlation(segment: np.ndarray, method: str, use: str) -> np.ndarray:
    """Correlation matrix between the rows of ``segment``."""
    if not np.isnan(segment).any() and method in ('pearson', 'spearman'):
        if method == 'spearman':
            segment = rankdata(segment, axis=1)
        # zero-variance rows produce NaN entries, which are kept
        with np.errstate(divide='ignore', invalid='ignore'):
            return np.corrcoef(segment)
    frame = pd.DataFrame(segment.T)
    if use == 'complete':
        frame = frame.dropna()
    return frame.corr(method=method).to_numpy(dtype=float)


def sliding_window_connectivity(
    roi_timeseries: np.ndarray,
    window_length: int,
    method: str = 'pearson',
    use: str = 'pairwise',
    progress_every: int = 50,
    progress: Optional[Callable[[int, int], None]] = None,
) -> np.ndarray:
    """Compute connectivity matrices for sliding windows.

    Parameters
    ----------
    roi_timeseries : np.ndarray
        Array of shape (N_ROI, T); each row holds the signal of one
        region of interest.  Missing samples may be NaN.
    window_length : int
        Window length ``WL`` in time points.  Each window spans
        ``WL + 1`` samples.  Must be at least 2 and smaller than ``T``.
    method : str, optional
        Correlation method: ``'pearson'`` (default), ``'spearman'`` or
        ``'kendall'``.
    use : str, optional
        Missing-value policy.  ``'pairwise'`` (default) uses all time
        points where both regions are observed; ``'complete'`` uses
        only time points where every region is observed.
    progress_every : int, optional
        Emit a progress notification every this many windows.
    progress : callable, optional
        Called as ``progress(done, total)`` together with each progress
        notification.

    Returns
    -------
    np.ndarray
        Array of shape ``(T - WL, N_ROI, N_ROI)``.  Each slice is a
        symmetric correlation matrix; undefined entries are NaN.

    Raises
    ------
    TypeError
        If the input is not numeric.
    ValueError
        If the input is not 2D, the window length is invalid or the
        method/policy is unknown.
    """
    ts = validate_timeseries(roi_timeseries)
    n_roi, n_time = ts.shape
    if method not in CORRELATION_METHODS:
        raise ValueError(f"Unknown correlation method '{method}'; expected one of {CORRELATION_METHODS}")
    if use not in MISSING_POLICIES:
        raise ValueError(f"Unknown missing-value policy '{use}'; expected one of {MISSING_POLICIES}")
    if window_length < 2:
        raise ValueError(f"window_length must be at least 2 time points, got {window_length}")
    n_win = n_time - window_length
    if n_win < 1:
        raise ValueError(
            f"window_length ({window_length}) must be smaller than the number of time points ({n_time})"
        )
    dconn = np.empty((n_win, n_roi, n_roi), dtype=float)
    logger.info("Computing dynamic connectivity across %d windows", n_win)
    for t in range(n_win):
        segment = ts[:, t:t + window_length + 1]
        dconn[t] = _window_correlation(segment, method, use)
        done = t + 1
        if progress_every and done % progress_every == 0:
            logger.debug("Processed window %d/%d", done, n_win)
            if progress is not None:
                progress(done, n_win)
    logger.info("Dynamic connectivity computation completed")
    return dconn


__all__ = [
    'CORRELATION_METHODS',
    'MISSING_POLICIES',
    'validate_timeseries',
    'sliding_window_connectivity',
]
