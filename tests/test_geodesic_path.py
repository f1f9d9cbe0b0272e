"""Tests for longest geodesic path reconstruction."""

import numpy as np
import pytest

from src.data.phantom import create_label_phantom
from src.distmap.errors import NoDescendingNeighbor
from src.distmap.geodesic import geodesic_distance_map
from src.geodesic.diameter import GeodesicDiameterEstimator
from src.geodesic.path import is_valid_path, longest_geodesic_path


def _distance_from(labels, seed, mask):
    marker = np.zeros_like(labels)
    marker[seed] = 1
    return geodesic_distance_map(marker, labels, mask)


@pytest.fixture(scope="module")
def l_shape():
    labels = np.zeros((8, 8), dtype=np.int32)
    labels[1:7, 1:3] = 1
    labels[5:7, 1:7] = 1
    return labels


@pytest.fixture(scope="module")
def phantom_run():
    labels = create_label_phantom(shape=(64, 96), seed=11)["labels"]
    estimator = GeodesicDiameterEstimator()
    results, distance_map = estimator.analyze(labels, compute_paths=True)
    return labels, results, distance_map, estimator.resolve_mask(labels.ndim)


def test_path_endpoints(l_shape):
    """The walk starts at the far point and stops at the seed."""
    dist = _distance_from(l_shape, (1, 1), (1, 1))
    path = longest_geodesic_path(dist, l_shape, (6, 6), (1, 1), (1, 1))
    assert path[0] == (6, 6)
    assert path[-1] == (1, 1)
    assert is_valid_path(path, dist, l_shape, (1, 1), start=(6, 6), end=(1, 1))


def test_path_length_chessboard(l_shape):
    """With unit weights the path has one point per unit of distance, plus one."""
    dist = _distance_from(l_shape, (1, 1), (1, 1))
    path = longest_geodesic_path(dist, l_shape, (6, 6), (1, 1), (1, 1))
    assert len(path) == int(dist[6, 6]) + 1


def test_tie_break_is_first_offset():
    """Among equal lower neighbours, the first offset in raster order wins."""
    labels = np.ones((3, 3), dtype=np.int32)
    labels[1, 1] = 0
    dist = _distance_from(labels, (0, 0), (1, 1))
    # (1, 2) and (2, 1) both hold 2 around (2, 2); offset (-1, 0) comes first
    assert dist[1, 2] == dist[2, 1] == 2
    path = longest_geodesic_path(dist, labels, (2, 2), (0, 0), (1, 1))
    assert path[1] == (1, 2)


def test_knight_moves():
    """5x5 masks may step by a knight move across background."""
    labels = np.zeros((3, 5), dtype=np.int32)
    labels[0, 0] = labels[1, 2] = labels[2, 4] = 1
    dist = _distance_from(labels, (0, 0), (5, 7, 11))
    assert dist[2, 4] == 22
    path = longest_geodesic_path(dist, labels, (2, 4), (0, 0), (5, 7, 11))
    assert path == [(2, 4), (1, 2), (0, 0)]
    assert is_valid_path(path, dist, labels, (5, 7, 11))
    assert not is_valid_path(path, dist, labels, (1, 1))


def test_plateau_raises():
    labels = np.ones((1, 5), dtype=np.int32)
    dist = np.array([[0.0, 1.0, 1.0, 1.0, 1.0]])
    with pytest.raises(NoDescendingNeighbor) as excinfo:
        longest_geodesic_path(dist, labels, (0, 4), (0, 0), (1, 1))
    assert excinfo.value.position == (0, 4)
    assert excinfo.value.label == 1


def test_infinite_start_gives_empty_path():
    labels = np.ones((1, 5), dtype=np.int32)
    dist = np.array([[0.0, 1.0, 2.0, np.inf, np.inf]])
    assert longest_geodesic_path(dist, labels, (0, 4), (0, 0), (1, 1)) == []


def test_path_stays_in_label():
    """The walk never crosses into an abutting region with lower values."""
    labels = np.ones((3, 6), dtype=np.int32)
    labels[:, 3:] = 2
    dist = np.zeros(labels.shape)
    dist[:, :3] = [[1, 1, 2], [0, 1, 2], [1, 1, 2]]
    path = longest_geodesic_path(dist, labels, (1, 2), (1, 0), (1, 1))
    assert path == [(1, 2), (0, 1), (1, 0)]


# ---- is_valid_path ----

def test_invalid_paths(l_shape):
    dist = _distance_from(l_shape, (1, 1), (1, 1))
    assert not is_valid_path([], dist, l_shape)
    # jump of two pixels
    assert not is_valid_path([(3, 1), (1, 1)], dist, l_shape, (1, 1))
    # increasing values
    assert not is_valid_path([(1, 1), (2, 1)], dist, l_shape, (1, 1))
    # leaves the region
    assert not is_valid_path([(2, 3), (1, 2)], dist, l_shape, (1, 1))
    # wrong endpoint
    assert not is_valid_path([(2, 1), (1, 1)], dist, l_shape, (1, 1), end=(1, 2))
    assert is_valid_path([(2, 1), (1, 1)], dist, l_shape, (1, 1), end=(1, 1))


def test_phantom_paths_valid(phantom_run):
    """Every finite region gets a valid descending path between its extremities."""
    labels, results, distance_map, mask = phantom_run
    for r in results.values():
        assert np.isfinite(r.diameter)
        assert is_valid_path(
            r.path, distance_map, labels, mask,
            start=r.second_extremity, end=r.first_extremity,
        )
