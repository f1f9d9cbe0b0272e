"""Tests for the geodesic diameter estimator."""

import math

import numpy as np
import pytest

import src.geodesic.diameter as diameter_module
from src.data.phantom import create_label_phantom, cube_edge_graph
from src.distmap.errors import (
    MaxIterationsExceededWarning,
    NoDescendingNeighbor,
    PathExtractionWarning,
    RegionNotFoundWarning,
)
from src.geodesic.diameter import (
    GeodesicDiameterEstimator,
    GeodesicResult,
    geodesic_diameter,
    longest_geodesic_paths,
)


def _bar():
    """Horizontal one-pixel bar of 10 pixels."""
    labels = np.zeros((5, 12), dtype=np.int32)
    labels[2, 1:11] = 1
    return labels


@pytest.fixture(scope="module")
def cube_results():
    estimator = GeodesicDiameterEstimator(mask="city-block", weight_type="int")
    return estimator.analyze(cube_edge_graph(), compute_paths=True)


@pytest.fixture(scope="module")
def phantom_labels():
    return create_label_phantom(shape=(64, 96), seed=3)["labels"]


# ---- Known values ----

def test_single_pixel():
    """A single-pixel region has diameter 1 and coinciding extremities."""
    labels = np.zeros((5, 5), dtype=np.uint8)
    labels[2, 2] = 1
    results, _ = GeodesicDiameterEstimator().analyze(labels, compute_paths=True)
    r = results[1]
    assert r.diameter == 1.0
    assert r.inner_radius == 1.0
    assert r.center == r.first_extremity == r.second_extremity == (2, 2)
    assert r.path == [(2, 2)]


def test_bar():
    results, _ = GeodesicDiameterEstimator(mask=(1, 2)).analyze(_bar(), compute_paths=True)
    r = results[1]
    assert r.diameter == 10.0
    assert r.inner_radius == 1.0
    assert r.elongation == 5.0
    assert r.center == (2, 1)
    assert r.first_extremity == (2, 10)
    assert r.second_extremity == (2, 1)
    assert r.path == [(2, x) for x in range(1, 11)]


def test_cube_edge_graph(cube_results):
    """Corner to opposite corner is 24 city-block steps, plus one pixel."""
    results, distance_map = cube_results
    r = results[1]
    assert r.diameter == 25.0
    assert r.inner_radius == 1.0
    assert r.center == (1, 1, 1)
    assert r.first_extremity == (9, 9, 9)
    assert r.second_extremity == (1, 1, 1)
    assert distance_map[1, 1, 1] == 24
    assert r.path[0] == (1, 1, 1)
    assert r.path[-1] == (9, 9, 9)


def test_diameter_scaled_by_orthogonal_weight():
    """Results are in pixel steps whatever the weight scale."""
    unit = geodesic_diameter(_bar(), mask=(1, 2))[1]
    scaled = geodesic_diameter(_bar(), mask=(3, 4))[1]
    assert scaled.diameter == unit.diameter
    assert scaled.inner_radius == unit.inner_radius


def test_results_sorted_by_label():
    labels = np.zeros((6, 12), dtype=np.int32)
    labels[1:5, 1:5] = 9
    labels[1:5, 8:11] = 4
    results, distance_map = GeodesicDiameterEstimator(mask="chessboard").analyze(labels)
    assert list(results) == [4, 9]
    assert all(r.label == label for label, r in results.items())
    assert np.all(np.isnan(distance_map[labels == 0]))
    assert results[9].diameter == 4.0
    assert results[4].diameter == 4.0


# ---- Degenerate regions ----

def test_disconnected_label_is_infinite():
    """Two components sharing a label give an infinite diameter and empty path."""
    labels = np.zeros((5, 12), dtype=np.int32)
    labels[1:4, 1:4] = 1
    labels[1:4, 7:10] = 1
    with pytest.warns(RegionNotFoundWarning):
        results, _ = GeodesicDiameterEstimator().analyze(labels, compute_paths=True)
    r = results[1]
    assert math.isinf(r.diameter)
    assert math.isinf(r.elongation)
    assert math.isfinite(r.inner_radius)
    assert r.path == []


def test_label_aware_centers():
    """Touching regions only get finite radii when measured per label."""
    labels = np.ones((4, 8), dtype=np.int32)
    labels[:, 4:] = 2

    binary, _ = GeodesicDiameterEstimator(mask="chessboard").analyze(labels)
    assert math.isinf(binary[1].inner_radius)

    aware, _ = GeodesicDiameterEstimator(
        mask="chessboard", label_aware_centers=True
    ).analyze(labels)
    assert aware[1].inner_radius == 4.0
    assert aware[1].center == (0, 0)
    assert aware[2].inner_radius == 4.0
    assert aware[2].center == (0, 7)
    assert aware[1].diameter == 4.0


def test_path_failure_is_local(monkeypatch):
    """A failed path walk leaves the label's other measures intact."""
    def _stuck(distance_map, labels, start, end, mask):
        raise NoDescendingNeighbor(1, tuple(start))

    monkeypatch.setattr(diameter_module, "longest_geodesic_path", _stuck)
    with pytest.warns(PathExtractionWarning):
        results, _ = GeodesicDiameterEstimator(mask=(1, 2)).analyze(_bar(), compute_paths=True)
    assert results[1].path is None
    assert results[1].diameter == 10.0


def test_iteration_bound_warns():
    labels = np.zeros((5, 7), dtype=np.uint8)
    labels[0, :] = labels[2, :] = labels[4, :] = 1
    labels[1, 6] = labels[3, 0] = 1
    with pytest.warns(MaxIterationsExceededWarning):
        GeodesicDiameterEstimator(mask=(1, 2), max_iterations=1).analyze(labels)


# ---- Phantom ----

def test_phantom_diameters_at_least_one(phantom_labels):
    results = geodesic_diameter(phantom_labels)
    assert len(results) == 6
    for r in results.values():
        assert r.diameter >= 1.0
        assert r.inner_radius >= 1.0
        assert r.elongation >= 1.0


def test_hybrid_matches_raster(phantom_labels):
    raster = geodesic_diameter(phantom_labels, mask=(5, 7, 11))
    hybrid = geodesic_diameter(phantom_labels, mask=(5, 7, 11), method="hybrid")
    for label in raster:
        assert hybrid[label].diameter == pytest.approx(raster[label].diameter)
        assert hybrid[label].second_extremity == raster[label].second_extremity


def test_longest_geodesic_paths(phantom_labels):
    paths = longest_geodesic_paths(phantom_labels)
    assert sorted(paths) == [1, 2, 3, 4, 5, 6]
    assert all(len(p) >= 1 for p in paths.values())


def test_progress_phases():
    calls = []
    GeodesicDiameterEstimator(mask=(1, 2)).analyze(
        _bar(), compute_paths=True, progress=lambda s, f: calls.append((s, f))
    )
    fractions = [f for _, f in calls if f is not None]
    assert fractions == [0.0, 0.25, 0.5, 0.75, 1.0]
    assert any(f is None for _, f in calls)


# ---- Result object ----

def test_to_dict():
    r = GeodesicResult(
        label=3,
        diameter=math.inf,
        inner_radius=2.0,
        center=(1, 2),
        first_extremity=(0, 0),
        second_extremity=(4, 4),
    )
    d = r.to_dict()
    assert d["label"] == 3
    assert d["center"] == [1, 2]
    assert d["path"] is None
    assert math.isinf(d["elongation"])


def test_elongation_undefined_radius():
    r = GeodesicResult(1, 5.0, math.nan, (-1, -1), (0, 0), (0, 4))
    assert math.isnan(r.elongation)


def test_invalid_arguments():
    with pytest.raises(ValueError):
        GeodesicDiameterEstimator(method="bfs")
    with pytest.raises(ValueError):
        GeodesicDiameterEstimator(weight_type="double")
