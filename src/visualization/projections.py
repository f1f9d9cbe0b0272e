"""MIP projections and summary figure generation for geodesic measurements."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

import numpy as np
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.patches import Circle

from src.geodesic.diameter import GeodesicResult


def compute_mip(volume: np.ndarray, axis: int = 0) -> np.ndarray:
    """Maximum Intensity Projection along given axis.

    Parameters
    ----------
    volume : np.ndarray
        3-D array (Z, Y, X).  2-D arrays are returned unchanged.
    axis : int
        Axis along which to project. 0 = Z (axial), 1 = Y (coronal), 2 = X (sagittal).

    Returns
    -------
    np.ndarray
        2-D projected image.
    """
    if volume.ndim == 2:
        return volume
    return np.max(volume, axis=axis)


def _finite_mip(distance_map: np.ndarray) -> np.ma.MaskedArray:
    """Projection of the finite part of a distance map, masked elsewhere."""
    finite = np.isfinite(distance_map)
    projected = compute_mip(np.where(finite, distance_map, -1.0), axis=0)
    return np.ma.masked_less(projected, 0.0)


def _yx(position: tuple[int, ...]) -> tuple[int, int]:
    """In-plane (y, x) coordinates of a 2-D or projected 3-D position."""
    return int(position[-2]), int(position[-1])


def create_geodesic_figure(
    labels: np.ndarray,
    distance_map: np.ndarray,
    results: Mapping[int, GeodesicResult],
    save_path: str | Path | None = None,
) -> plt.Figure:
    """Create a 3-panel summary figure of a geodesic diameter run.

    Layout (1 row x 3 cols):
        Labels | Geodesic distance | Paths, extremities and inscribed circles

    3-D inputs are shown as projections along Z.

    Parameters
    ----------
    labels : np.ndarray
        2-D or 3-D label raster.
    distance_map : np.ndarray
        Final geodesic distance map (``NaN`` on background).
    results : mapping
        Label -> :class:`GeodesicResult`.
    save_path : str | Path | None
        If given, figure is saved to this path.

    Returns
    -------
    plt.Figure
        The generated matplotlib figure.
    """
    label_mip = compute_mip(labels, axis=0)
    dist_mip = _finite_mip(distance_map)
    background = np.ma.masked_equal(label_mip, 0)

    fig, axes = plt.subplots(1, 3, figsize=(18, 6))

    axes[0].imshow(background, cmap="tab20", interpolation="nearest")
    axes[0].set_title("Labels")

    image = axes[1].imshow(dist_mip, cmap="viridis", interpolation="nearest")
    fig.colorbar(image, ax=axes[1], fraction=0.046, pad=0.04)
    axes[1].set_title("Geodesic distance")

    axes[2].imshow(label_mip > 0, cmap="gray", vmin=0, vmax=1, interpolation="nearest")
    for result in results.values():
        if result.path:
            pts = np.array([_yx(p) for p in result.path])
            axes[2].plot(pts[:, 1], pts[:, 0], "-", color="orange", linewidth=1.2)
        for pos, marker, colour in (
            (result.first_extremity, "o", "red"),
            (result.second_extremity, "^", "cyan"),
        ):
            if min(pos) >= 0:
                y, x = _yx(pos)
                axes[2].plot(x, y, marker, color=colour, markersize=4)
        if min(result.center) >= 0 and np.isfinite(result.inner_radius):
            y, x = _yx(result.center)
            axes[2].add_patch(
                Circle((x, y), result.inner_radius, fill=False, color="lime", linewidth=0.8)
            )
    axes[2].set_title("Longest geodesic paths")

    for ax in axes:
        ax.axis("off")

    fig.tight_layout()

    if save_path is not None:
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(str(save_path), dpi=150, bbox_inches="tight")

    return fig
