"""End-to-end pipeline tests for the geodesic diameter project."""

import json
import math

import matplotlib.pyplot as plt
import numpy as np
import pytest

from scripts.run_pipeline import main as run_pipeline
from src.data.loaders import load_label_image
from src.data.phantom import create_label_phantom, cube_edge_graph
from src.geodesic.diameter import GeodesicDiameterEstimator
from src.geodesic.path import is_valid_path
from src.visualization.projections import create_geodesic_figure
from src.visualization.report import generate_report, save_geodesic_results

SHAPE = (64, 96)


@pytest.fixture(scope="module")
def pipeline_results(tmp_path_factory):
    """Run the full pipeline once and cache all intermediate results."""
    out_dir = tmp_path_factory.mktemp("geodesic")

    # 1. Generate and save a phantom, then load it back
    phantom = create_label_phantom(shape=SHAPE, seed=5)
    source = out_dir / "labels.npy"
    np.save(str(source), phantom["labels"])
    labels, metadata = load_label_image(source)

    # 2. Geodesic diameters with paths
    estimator = GeodesicDiameterEstimator()
    results, distance_map = estimator.analyze(labels, compute_paths=True)

    # 3. Figure
    fig = create_geodesic_figure(
        labels, distance_map, results, save_path=out_dir / "figures" / "geodesic.png"
    )
    plt.close(fig)

    # 4. Persist
    written = save_geodesic_results(results, out_dir, distance_map=distance_map)
    report = generate_report(results, {"shape": list(labels.shape)}, out_dir)

    return {
        "phantom": phantom,
        "labels": labels,
        "metadata": metadata,
        "mask": estimator.resolve_mask(labels.ndim),
        "results": results,
        "distance_map": distance_map,
        "written": written,
        "report": report,
        "out_dir": out_dir,
    }


def test_full_pipeline_runs(pipeline_results):
    """The complete pipeline runs on a small phantom without errors."""
    assert pipeline_results["labels"].shape == SHAPE
    assert pipeline_results["distance_map"].dtype == np.float64
    assert pipeline_results["metadata"]["labels"] == [1, 2, 3, 4, 5, 6]
    assert (pipeline_results["out_dir"] / "figures" / "geodesic.png").exists()


def test_pipeline_measures_every_region(pipeline_results):
    """Every phantom region gets a finite diameter and a valid path."""
    labels = pipeline_results["labels"]
    for label, r in pipeline_results["results"].items():
        assert math.isfinite(r.diameter)
        assert labels[r.center] == label
        assert is_valid_path(
            r.path, pipeline_results["distance_map"], labels, pipeline_results["mask"]
        )
    assert pipeline_results["report"]["summary"]["num_infinite_diameters"] == 0


def test_pipeline_meander_longest(pipeline_results):
    """The meander is the most elongated region of the phantom."""
    names = pipeline_results["phantom"]["metadata"]["label_names"]
    results = pipeline_results["results"]
    meander = next(k for k, v in names.items() if v == "meander")
    assert max(results, key=lambda k: results[k].elongation) == meander


def test_pipeline_outputs_written(pipeline_results):
    written = pipeline_results["written"]
    assert set(written) == {"results", "paths", "distance_map"}
    with open(written["results"]) as fh:
        entries = json.load(fh)
    assert [e["label"] for e in entries] == [1, 2, 3, 4, 5, 6]
    saved = np.load(str(written["distance_map"]))
    np.testing.assert_array_equal(saved, pipeline_results["distance_map"])


def test_run_pipeline_script(tmp_path, capsys):
    """The command-line pipeline writes results, report and figure."""
    run_pipeline([
        "--config", str(tmp_path / "missing.yaml"),
        "--output", str(tmp_path),
        "--paths",
    ])
    out = capsys.readouterr().out
    assert "Pipeline complete!" in out
    for rel in (
        "results/geodesic_diameter.json",
        "results/geodesic_paths.json",
        "results/metrics.json",
        "results/summary.txt",
        "figures/geodesic.png",
    ):
        assert (tmp_path / rel).exists(), rel


def test_cube_figure(tmp_path):
    """3-D rasters are drawn as projections."""
    cube = cube_edge_graph()
    results, distance_map = GeodesicDiameterEstimator(mask="city-block").analyze(
        cube, compute_paths=True
    )
    fig = create_geodesic_figure(cube, distance_map, results, save_path=tmp_path / "cube.png")
    assert len(fig.axes) >= 3
    plt.close(fig)
    assert (tmp_path / "cube.png").exists()
