import numpy as np
import pytest

from balancenet.dynamic.metrics import normalise_transitions, transition_counts, transition_matrix
from balancenet.dynamic.model import TriadTensor
from balancenet.dynamic.triads import triangle_indices


def _codes(*series) -> TriadTensor:
    n_roi = {1: 3, 4: 4}[len(series)]
    return TriadTensor(triangle_indices(n_roi), np.array(series, dtype=float).T, n_roi=n_roi)


def test_single_triangle_counts():
    counts = transition_counts(_codes([3, 3, -1]))
    expected = np.zeros((4, 4), dtype=int)
    expected[0, 0] = 1
    expected[0, 1] = 1
    assert np.array_equal(counts, expected)


def test_single_triangle_matrix():
    trans = transition_matrix(_codes([3, 3, -1]))
    assert np.isnan(np.diag(trans)).all()
    assert trans[0, 1] == 1.0
    off = ~np.eye(4, dtype=bool)
    assert np.nansum(trans[off]) == 1.0


def test_counts_pool_triangles():
    counts = transition_counts(_codes(
        [3, -1, 1],
        [-3, -3, -3],
        [1, -1, 3],
        [-1, 3, -1],
    ))
    assert counts[0, 1] == 2 and counts[1, 2] == 1
    assert counts[3, 3] == 2
    assert counts[2, 1] == 1 and counts[1, 0] == 2
    assert counts.sum() == 8


def test_off_diagonal_entries_sum_to_one():
    rng = np.random.default_rng(0)
    values = rng.choice([3.0, -1.0, 1.0, -3.0], size=(40, 10))
    codes = TriadTensor(triangle_indices(5), values, n_roi=5)
    trans = transition_matrix(codes)
    assert np.isclose(np.nansum(trans), 1.0)
    assert np.isnan(np.diag(trans)).all()
    counts = transition_counts(codes)
    assert counts.sum() == 39 * 10


def test_undefined_codes_are_skipped():
    counts = transition_counts(_codes([3, np.nan, -1, 0, 1, -3]))
    expected = np.zeros((4, 4), dtype=int)
    expected[2, 3] = 1
    assert np.array_equal(counts, expected)


def test_no_transitions_gives_missing_matrix():
    assert np.isnan(transition_matrix(_codes([3, 3, 3, 3]))).all()
    assert np.isnan(transition_matrix(_codes([1]))).all()
    assert transition_counts(_codes([1])).sum() == 0


def test_normalise_transitions_is_pure():
    counts = np.arange(16).reshape(4, 4)
    trans = normalise_transitions(counts)
    assert counts[0, 0] == 0 and counts[1, 1] == 5
    assert np.isclose(trans[0, 1], 1 / np.sum(counts[~np.eye(4, dtype=bool)]))


def test_rejects_energy_tensor():
    energy = TriadTensor(triangle_indices(3), np.zeros((3, 1)), n_roi=3, kind='energy')
    with pytest.raises(ValueError, match="code tensor"):
        transition_counts(energy)
