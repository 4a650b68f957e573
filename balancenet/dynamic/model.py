"""
balancenet.dynamic.model
========================

This module defines the data structures shared by every stage of the
dynamic structural balance pipeline.  The stages communicate through a
small number of explicit containers:

``TriadTensor``
    Per-window values (triad codes or triadic energies) for every
    triangle ``(i, j, k)`` with ``i < j < k``.  Instead of a dense
    window × ROI × ROI × ROI array the values are kept as a
    ``(n_windows, n_triangles)`` matrix next to a triangle index table;
    :meth:`TriadTensor.to_dense` recovers the dense view when needed.

``SegmentList`` and ``TriadSegments``
    The run-length encoding of each triangle's code sequence.  A
    :class:`TriadSegments` object maps each triangle tuple to its own
    :class:`SegmentList`, so results for a single triangle can be
    inspected independently.  The same structure carries either run
    lengths (``kind='lifetime'``) or peak absolute energies
    (``kind='peak_energy'``).

``TriadSummary``, ``TriadMetrics`` and ``TriadAnalysis``
    Pooled aggregates for the four canonical triad codes and the
    complete per-subject result.

Code conventions
----------------
A triad code is the sum of the three pairwise signs of a triangle.  When
no pairwise sign is zero the code is one of ``+3`` (all positive), ``-1``
(two negative, one positive), ``+1`` (two positive, one negative) and
``-3`` (all negative).  Summaries always report these codes in the order
``(+3, -1, +1, -3)``.  Internally the two-negative/one-positive triad is
always ``-1``; the ``'remapped'`` code scheme reports it as ``-2``.
Structural balance theory calls ``+3`` and ``-1`` balanced and ``+1``
and ``-3`` imbalanced.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

Triangle = Tuple[int, int, int]

TRIAD_CODES: Tuple[int, ...] = (3, -1, 1, -3)
TRIAD_LABELS: Dict[int, str] = {
    3: 'Triad_+++',
    -1: 'Triad_-+-',
    1: 'Triad_+-+',
    -3: 'Triad_---',
}
BALANCED_CODES: Tuple[int, ...] = (3, -1)
IMBALANCED_CODES: Tuple[int, ...] = (1, -3)
CODE_SCHEMES: Dict[str, Dict[int, int]] = {
    'raw': {3: 3, -1: -1, 1: 1, -3: -3},
    'remapped': {3: 3, -1: -2, 1: 1, -3: -3},
}


def _check_scheme(code_scheme: str) -> Dict[int, int]:
    try:
        return CODE_SCHEMES[code_scheme]
    except KeyError:
        raise ValueError(
            f"Unknown code scheme '{code_scheme}'; expected one of {sorted(CODE_SCHEMES)}"
        ) from None


def display_code(code: int, code_scheme: str = 'raw') -> int:
    """Return the reported value of canonical ``code`` under ``code_scheme``."""
    mapping = _check_scheme(code_scheme)
    if code not in mapping:
        raise ValueError(f"{code} is not a canonical triad code {TRIAD_CODES}")
    return mapping[code]


def canonical_code(code: int, code_scheme: str = 'raw') -> int:
    """Translate a code expressed in ``code_scheme`` to the internal code.

    Raises
    ------
    ValueError
        If ``code`` does not belong to the given scheme (for instance
        ``-1`` under the ``'remapped'`` scheme, which uses ``-2``).
    """
    mapping = _check_scheme(code_scheme)
    for internal, shown in mapping.items():
        if shown == code:
            return internal
    raise ValueError(
        f"Triad code {code} is not part of the '{code_scheme}' scheme "
        f"{tuple(mapping.values())}"
    )


def defined_mask(values: np.ndarray, include_zero_sign: bool = False) -> np.ndarray:
    """Boolean mask of entries holding a defined triad code.

    Missing codes (NaN) are never defined.  Codes produced by a zero
    pairwise sign (the even values ``-2, 0, 2``) count as defined only
    when ``include_zero_sign`` is True.
    """
    values = np.asarray(values, dtype=float)
    mask = np.isin(values, TRIAD_CODES)
    if include_zero_sign:
        mask |= np.isin(values, (-2, 0, 2))
    return mask


# ---------------------------------------------------------------------------
@dataclass(frozen=True, eq=False)
class TriadTensor:
    """Per-window values for every triangle of a set of ROIs.

    Attributes
    ----------
    triangles : np.ndarray
        Integer array of shape ``(n_triangles, 3)``; each row is a
        triangle ``(i, j, k)`` with ``0 <= i < j < k < n_roi``.
    values : np.ndarray
        Read-only float array of shape ``(n_windows, n_triangles)``.
        NaN marks windows where the value is undefined.
    n_roi : int
        Number of ROIs the triangles are drawn from.
    kind : str
        ``'code'`` for signed-sum triad codes or ``'energy'`` for
        triadic energies.
    """

    triangles: np.ndarray
    values: np.ndarray
    n_roi: int
    kind: str = 'code'
    _index: Dict[Triangle, int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        triangles = np.asarray(self.triangles, dtype=int).reshape(-1, 3)
        values = np.array(self.values, dtype=float)
        if values.ndim != 2:
            raise ValueError("values must be a 2D array of shape (n_windows, n_triangles)")
        if values.shape[1] != triangles.shape[0]:
            raise ValueError(
                f"values has {values.shape[1]} columns but {triangles.shape[0]} triangles were given"
            )
        if triangles.size and not (
            np.all(triangles[:, 0] < triangles[:, 1])
            and np.all(triangles[:, 1] < triangles[:, 2])
            and triangles.min() >= 0
            and triangles.max() < self.n_roi
        ):
            raise ValueError("triangles must satisfy 0 <= i < j < k < n_roi")
        if self.kind not in ('code', 'energy'):
            raise ValueError(f"Unknown tensor kind '{self.kind}'")
        values.flags.writeable = False
        triangles.flags.writeable = False
        object.__setattr__(self, 'triangles', triangles)
        object.__setattr__(self, 'values', values)
        object.__setattr__(
            self, '_index', {tuple(int(v) for v in tri): n for n, tri in enumerate(triangles)}
        )

    @property
    def n_windows(self) -> int:
        return self.values.shape[0]

    @property
    def n_triangles(self) -> int:
        return self.values.shape[1]

    def series(self, triangle: Sequence[int]) -> np.ndarray:
        """Return the per-window values of one triangle."""
        key = tuple(int(v) for v in triangle)
        if key not in self._index:
            raise KeyError(f"Triangle {key} is not part of this tensor")
        return self.values[:, self._index[key]]

    def to_dense(self) -> np.ndarray:
        """Expand to a ``(n_windows, n_roi, n_roi, n_roi)`` array.

        Only entries with ``i < j < k`` are filled; every other entry is
        NaN, meaning "not applicable" rather than zero.
        """
        n = self.n_roi
        dense = np.full((self.n_windows, n, n, n), np.nan)
        i, j, k = self.triangles.T
        dense[:, i, j, k] = self.values
        return dense


@dataclass(frozen=True, eq=False)
class SegmentList:
    """Run-length segments of a single triangle.

    Attributes
    ----------
    codes : np.ndarray
        Triad code of each segment, in order of occurrence.
    values : np.ndarray
        Payload of each segment: the run length for lifetimes or the
        peak absolute energy for peak-energy segments.
    starts : np.ndarray
        Index of the first window of each segment.
    lengths : np.ndarray
        Number of windows covered by each segment.  These boundaries are
        shared verbatim between lifetime and peak-energy segments.
    n_dropped : int
        Number of windows that belonged to dropped undefined runs.
    """

    codes: np.ndarray
    values: np.ndarray
    starts: np.ndarray
    lengths: np.ndarray
    n_dropped: int = 0

    def __post_init__(self) -> None:
        arrays = {
            'codes': np.array(self.codes, dtype=float).ravel(),
            'values': np.array(self.values, dtype=float).ravel(),
            'starts': np.array(self.starts, dtype=int).ravel(),
            'lengths': np.array(self.lengths, dtype=int).ravel(),
        }
        sizes = {arr.size for arr in arrays.values()}
        if len(sizes) > 1:
            raise ValueError("codes, values, starts and lengths must have equal length")
        for name, arr in arrays.items():
            arr.flags.writeable = False
            object.__setattr__(self, name, arr)

    def __len__(self) -> int:
        return self.codes.size

    def decode(self, n_windows: int) -> np.ndarray:
        """Reconstruct the per-window code sequence.

        Windows covered by dropped runs come back as NaN.
        """
        out = np.full(n_windows, np.nan)
        for code, start, length in zip(self.codes, self.starts, self.lengths):
            out[start:start + length] = code
        return out

    def with_values(self, values: np.ndarray) -> 'SegmentList':
        """Return a copy with the same boundaries and a new payload."""
        return SegmentList(self.codes, values, self.starts, self.lengths, self.n_dropped)


@dataclass(frozen=True, eq=False)
class TriadSegments(Mapping):
    """Mapping from triangle tuples to their :class:`SegmentList`.

    Attributes
    ----------
    segments : Dict[Triangle, SegmentList]
        Segment list for each triangle ``(i, j, k)``.
    n_roi : int
        Number of ROIs the triangles are drawn from.
    n_windows : int
        Number of time windows that were encoded.
    kind : str
        ``'lifetime'`` when values are run lengths or ``'peak_energy'``
        when values are peak absolute energies.
    """

    segments: Dict[Triangle, SegmentList]
    n_roi: int
    n_windows: int
    kind: str = 'lifetime'

    def __post_init__(self) -> None:
        if self.kind not in ('lifetime', 'peak_energy'):
            raise ValueError(f"Unknown segment kind '{self.kind}'")

    def __getitem__(self, triangle: Sequence[int]) -> SegmentList:
        return self.segments[tuple(int(v) for v in triangle)]

    def __iter__(self) -> Iterator[Triangle]:
        return iter(self.segments)

    def __len__(self) -> int:
        return len(self.segments)


# ---------------------------------------------------------------------------
@dataclass(eq=False)
class TriadSummary:
    """Pooled statistic for each requested canonical triad code.

    Attributes
    ----------
    codes : Tuple[int, ...]
        Internal (canonical) codes in report order.
    values : np.ndarray
        Statistic for each code; NaN marks a code that was never
        observed in scope.
    counts : np.ndarray
        Number of samples that contributed to each value.
    code_scheme : str
        Convention used when reporting codes (``'raw'`` or
        ``'remapped'``).
    name : str
        Short description of the statistic, used as the pandas name.
    """

    codes: Tuple[int, ...]
    values: np.ndarray
    counts: np.ndarray
    code_scheme: str = 'raw'
    name: str = ''

    def __post_init__(self) -> None:
        _check_scheme(self.code_scheme)
        self.codes = tuple(int(c) for c in self.codes)
        self.values = np.asarray(self.values, dtype=float)
        self.counts = np.asarray(self.counts, dtype=int)

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(TRIAD_LABELS[c] for c in self.codes)

    @property
    def display_codes(self) -> Tuple[int, ...]:
        return tuple(display_code(c, self.code_scheme) for c in self.codes)

    def as_dict(self) -> Dict[str, float]:
        """Map each triad label to its value (NaN when missing)."""
        return {label: float(v) for label, v in zip(self.labels, self.values)}

    def by_code(self) -> Dict[int, float]:
        """Map each reported code to its value (NaN when missing)."""
        return {code: float(v) for code, v in zip(self.display_codes, self.values)}

    def to_series(self) -> pd.Series:
        return pd.Series(self.values, index=list(self.labels), name=self.name or None)

    def __getitem__(self, key: Union[str, int]) -> float:
        if isinstance(key, str):
            return self.as_dict()[key]
        return self.by_code()[key]

    def __repr__(self) -> str:
        body = ', '.join(f"{label}={v:.4g}" for label, v in zip(self.labels, self.values))
        return f"TriadSummary({self.name}: {body})"


@dataclass(eq=False)
class TriadMetrics:
    """Per-subject pooled metrics of triad dynamics.

    Attributes
    ----------
    lifetime : TriadSummary
        Whole-brain pooled mean lifetime per code (windows, or seconds
        when a window step was configured).
    energy : TriadSummary
        Whole-brain pooled mean peak absolute energy per code.
    fractions : TriadSummary
        Fraction of (window, triangle) entries carrying each code.
    transition_counts : np.ndarray
        Raw ``4×4`` code-to-code transition counts including the
        diagonal.  Rows are the code at ``t``, columns at ``t + 1``.
    transition_matrix : np.ndarray
        Normalised ``4×4`` transition matrix with NaN diagonal.
    subnetwork_lifetime, subnetwork_energy : TriadSummary | None
        Pooled means restricted to the configured ROI subset.
    """

    lifetime: TriadSummary
    energy: TriadSummary
    fractions: TriadSummary
    transition_counts: np.ndarray
    transition_matrix: np.ndarray
    subnetwork_lifetime: Optional[TriadSummary] = None
    subnetwork_energy: Optional[TriadSummary] = None

    def transition_frame(self) -> pd.DataFrame:
        """Return the transition matrix labelled with the reported codes."""
        codes = self.lifetime.display_codes
        return pd.DataFrame(self.transition_matrix, index=list(codes), columns=list(codes))

    def to_series(self) -> pd.Series:
        """Flatten the summaries into one labelled series.

        Used to build one row per subject in
        :func:`balancenet.batch.metrics_frame`.
        """
        parts = {
            'lifetime': self.lifetime,
            'energy': self.energy,
            'fraction': self.fractions,
            'sub_lifetime': self.subnetwork_lifetime,
            'sub_energy': self.subnetwork_energy,
        }
        flat: Dict[str, float] = {}
        for prefix, summary in parts.items():
            if summary is None:
                continue
            for label, value in summary.as_dict().items():
                flat[f"{prefix}_{label}"] = value
        return pd.Series(flat)


@dataclass(eq=False)
class TriadAnalysis:
    """Complete result of the per-subject triad pipeline.

    Attributes
    ----------
    connectivity : np.ndarray
        Windowed correlation tensor of shape ``(n_windows, n_roi, n_roi)``.
    codes : TriadTensor
        Signed-sum triad codes.
    energy : TriadTensor
        Triadic energies computed from unthresholded connectivity.
    lifetimes : TriadSegments
        Run-length segments of each triangle's codes.
    peak_energy : TriadSegments
        Same segments with the peak absolute energy as payload.
    metrics : TriadMetrics
        Pooled summaries derived from the above.
    """

    connectivity: np.ndarray
    codes: TriadTensor
    energy: TriadTensor
    lifetimes: TriadSegments
    peak_energy: TriadSegments
    metrics: TriadMetrics


__all__ = [
    'Triangle',
    'TRIAD_CODES',
    'TRIAD_LABELS',
    'BALANCED_CODES',
    'IMBALANCED_CODES',
    'CODE_SCHEMES',
    'display_code',
    'canonical_code',
    'defined_mask',
    'TriadTensor',
    'SegmentList',
    'TriadSegments',
    'TriadSummary',
    'TriadMetrics',
    'TriadAnalysis',
]
