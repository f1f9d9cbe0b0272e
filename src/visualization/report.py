"""Geodesic measurement reporting and result persistence utilities."""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Mapping

import numpy as np

from src.geodesic.diameter import GeodesicResult


def _default(obj: Any) -> Any:
    """JSON serialiser for numpy types."""
    if isinstance(obj, (np.integer,)):
        return int(obj)
    if isinstance(obj, (np.floating,)):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def _finite_values(values: list[float]) -> list[float]:
    return [v for v in values if math.isfinite(v)]


def save_geodesic_results(
    results: Mapping[int, GeodesicResult],
    save_dir: str | Path,
    distance_map: np.ndarray | None = None,
) -> dict[str, Path]:
    """Persist per-label geodesic results, paths and the distance map.

    Infinite diameters and undefined radii are written as the JSON tokens
    ``Infinity`` and ``NaN`` so they survive a round trip through
    :func:`json.load`.

    Parameters
    ----------
    results : mapping
        Label -> :class:`GeodesicResult`, as returned by
        ``GeodesicDiameterEstimator.analyze``.
    save_dir : str | Path
        Root output directory.  Files are written into ``save_dir/results/``.
    distance_map : np.ndarray or None
        If given, saved as ``distance_map.npy``.

    Returns
    -------
    dict
        Written file paths keyed by ``"results"``, ``"paths"`` and, when
        saved, ``"distance_map"``.
    """
    results_dir = Path(save_dir) / "results"
    results_dir.mkdir(parents=True, exist_ok=True)

    entries = []
    paths: dict[str, Any] = {}
    for label, result in results.items():
        entry = result.to_dict()
        path = entry.pop("path")
        entry["path_length"] = None if path is None else len(path)
        entries.append(entry)
        paths[str(label)] = path

    written: dict[str, Path] = {}

    written["results"] = results_dir / "geodesic_diameter.json"
    with open(written["results"], "w") as fh:
        json.dump(entries, fh, indent=2, default=_default)

    written["paths"] = results_dir / "geodesic_paths.json"
    with open(written["paths"], "w") as fh:
        json.dump(paths, fh, default=_default)

    if distance_map is not None:
        written["distance_map"] = results_dir / "distance_map.npy"
        np.save(str(written["distance_map"]), distance_map)

    return written


def generate_report(
    results: Mapping[int, GeodesicResult],
    params: dict,
    save_dir: str | Path,
) -> dict:
    """Compile geodesic results into JSON metrics and a text summary.

    Parameters
    ----------
    results : mapping
        Label -> :class:`GeodesicResult`.
    params : dict
        Run parameters to record alongside the metrics (mask weights,
        method, input shape, ...).
    save_dir : str | Path
        Root output directory.  Files are written into ``save_dir/results/``.

    Returns
    -------
    dict
        A report dictionary with the run *params* and *summary* statistics.
    """
    results_dir = Path(save_dir) / "results"
    results_dir.mkdir(parents=True, exist_ok=True)

    diameters = [r.diameter for r in results.values()]
    radii = [r.inner_radius for r in results.values()]
    finite_diameters = _finite_values(diameters)
    finite_radii = _finite_values(radii)

    summary = {
        "num_labels": len(results),
        "num_infinite_diameters": sum(1 for d in diameters if math.isinf(d)),
        "num_missing_paths": sum(1 for r in results.values() if r.path is None),
        "max_diameter": max(finite_diameters) if finite_diameters else None,
        "mean_diameter": float(np.mean(finite_diameters)) if finite_diameters else None,
        "mean_inner_radius": float(np.mean(finite_radii)) if finite_radii else None,
    }
    report = {"params": params, "summary": summary}

    with open(results_dir / "metrics.json", "w") as fh:
        json.dump(report, fh, indent=2, default=_default)

    # ---- Save text summary ---------------------------------------------
    lines: list[str] = []
    lines.append("=" * 72)
    lines.append("  Geodesic Diameter -- Summary Report")
    lines.append("=" * 72)
    lines.append("")
    for key in ("mask", "weights", "method", "shape"):
        if key in params:
            lines.append(f"  {key.capitalize():<10}: {params[key]}")
    lines.append(f"  {'Labels':<10}: {summary['num_labels']}")
    lines.append("")
    lines.append(
        f"  {'Label':>6} {'Diameter':>10} {'Radius':>8} {'Elong.':>7}"
        f"  {'Extremity 1':<16} {'Extremity 2':<16}"
    )
    lines.append("  " + "-" * 68)
    for label, r in results.items():
        lines.append(
            f"  {label:>6} {r.diameter:>10.2f} {r.inner_radius:>8.2f} {r.elongation:>7.2f}"
            f"  {str(r.first_extremity):<16} {str(r.second_extremity):<16}"
        )
    lines.append("")
    lines.append("=" * 72)
    lines.append("")

    (results_dir / "summary.txt").write_text("\n".join(lines))

    return report
