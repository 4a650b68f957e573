"""
balancenet.dynamic.surrogates
=============================

Phase-randomised surrogate time series.

A surrogate keeps the amplitude spectrum of a region's signal (and hence
the magnitude of its autocorrelation) while drawing new Fourier phases,
which destroys the temporal alignment between regions.  Running the
triad pipeline on surrogates gives the null distribution that the
observed lifetimes and energies are compared against.

Randomisation steps for a series of length ``T``:

1. Take the discrete Fourier transform and keep its magnitudes.
2. Draw each positive-frequency phase uniformly from ``(-π, π]``.
3. Write the complex conjugates onto the mirrored negative frequencies
   so the inverse transform is real.
4. Leave the zero-frequency term untouched, preserving the mean.
5. When ``T`` is even, redraw the Nyquist term as well.  A real signal
   can only carry phase ``0`` or ``π`` at Nyquist, so the drawn phase is
   projected onto the nearer of the two, which keeps its magnitude.
6. Invert the transform and keep the real part.

Each region is randomised independently; there is no cross-region phase
coupling.
"""

from __future__ import annotations

import logging
from typing import Union

import numpy as np

from .window import validate_timeseries

logger = logging.getLogger(__name__)

RandomState = Union[None, int, np.random.Generator]


def phase_randomize(x: np.ndarray, random_state: RandomState = None) -> np.ndarray:
    """Return a phase-randomised surrogate of a single time series.

    Parameters
    ----------
    x : array-like
        One-dimensional real-valued signal.
    random_state : int | numpy.random.Generator | None, optional
        Seed or generator used to draw the phases.

    Returns
    -------
    np.ndarray
        New array of the same length.  Series shorter than two samples
        are returned unchanged (as a copy).

    Raises
    ------
    ValueError
        If ``x`` is not one-dimensional or contains non-finite samples.
    """
    x = np.array(x, dtype=float)
    if x.ndim != 1:
        raise ValueError(f"x must be a one-dimensional series, got {x.ndim} dimension(s)")
    n = x.size
    if n < 2:
        return x
    if not np.all(np.isfinite(x)):
        raise ValueError("Phase randomisation requires finite samples; interpolate missing values first")
    rng = np.random.default_rng(random_state)
    spectrum = np.fft.fft(x)
    amplitude = np.abs(spectrum)
    surrogate = spectrum.copy()
    # positive frequencies 1..n_pos, excluding DC and Nyquist
    n_pos = (n - 1) // 2
    if n_pos > 0:
        pos = np.arange(1, n_pos + 1)
        phases = rng.uniform(-np.pi, np.pi, n_pos)
        surrogate[pos] = amplitude[pos] * np.exp(1j * phases)
        surrogate[n - pos] = np.conj(surrogate[pos])
    if n % 2 == 0:
        nyquist = rng.uniform(-np.pi, np.pi)
        surrogate[n // 2] = amplitude[n // 2] * (1.0 if np.cos(nyquist) >= 0 else -1.0)
    return np.fft.ifft(surrogate).real


def surrogate_timeseries(roi_timeseries: np.ndarray, random_state: RandomState = None) -> np.ndarray:
    """Phase-randomise every region of a ROI × time matrix independently.

    Parameters
    ----------
    roi_timeseries : np.ndarray
        Array of shape (N_ROI, T).
    random_state : int | numpy.random.Generator | None, optional
        Seed or generator; all regions draw from the same generator so
        a fixed seed reproduces the whole surrogate matrix.

    Returns
    -------
    np.ndarray
        New array of shape (N_ROI, T); the input is left untouched.
    """
    ts = validate_timeseries(roi_timeseries)
    rng = np.random.default_rng(random_state)
    logger.debug("Generating phase-randomised surrogates for %d regions", ts.shape[0])
    out = np.empty_like(ts)
    for r, row in enumerate(ts):
        out[r] = phase_randomize(row, rng)
    return out


__all__ = [
    'phase_randomize',
    'surrogate_timeseries',
]
