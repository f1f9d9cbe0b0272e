"""Synthetic label images for testing geodesic measurements.

Creates label rasters made of simple regions whose geodesic behaviour is
easy to reason about (convex, holed, bent and winding shapes, a single
pixel) plus the 3-D cube-edge graph used as a regression scenario.
"""

from __future__ import annotations

from typing import Callable

import numpy as np
from scipy import ndimage
from skimage import draw

ShapeDrawer = Callable[[int, int, np.random.Generator], np.ndarray]


def cube_edge_graph(size: int = 11, margin: int = 1) -> np.ndarray:
    """Voxels along the 12 edges of a cube, all carrying label 1.

    Parameters
    ----------
    size : int
        Side of the cubic raster.
    margin : int
        Empty voxels between the cube and the raster border.

    Returns
    -------
    np.ndarray
        uint8 array of shape ``(size, size, size)``.  The cube corners are
        ``margin`` and ``size - 1 - margin`` along every axis, so opposite
        corners are ``3 * (size - 1 - 2 * margin)`` orthogonal steps apart
        along the edges.
    """
    lo, hi = margin, size - 1 - margin
    if hi <= lo:
        raise ValueError(f"size={size} leaves no room for a cube with margin={margin}")

    volume = np.zeros((size, size, size), dtype=np.uint8)
    span = slice(lo, hi + 1)
    for a in (lo, hi):
        for b in (lo, hi):
            volume[span, a, b] = 1
            volume[a, span, b] = 1
            volume[a, b, span] = 1
    return volume


# ---------------------------------------------------------------------------
# 2-D region drawers; each returns a bool array of shape (h, w)
# ---------------------------------------------------------------------------
def _disk(h: int, w: int, rng: np.random.Generator) -> np.ndarray:
    out = np.zeros((h, w), dtype=bool)
    rr, cc = draw.disk(((h - 1) / 2.0, (w - 1) / 2.0), min(h, w) / 2.0 - 0.5, shape=(h, w))
    out[rr, cc] = True
    return out


def _ring(h: int, w: int, rng: np.random.Generator) -> np.ndarray:
    out = _disk(h, w, rng)
    inner = min(h, w) / 4.0
    rr, cc = draw.disk(((h - 1) / 2.0, (w - 1) / 2.0), inner, shape=(h, w))
    out[rr, cc] = False
    return out


def _l_shape(h: int, w: int, rng: np.random.Generator) -> np.ndarray:
    out = np.zeros((h, w), dtype=bool)
    t = max(3, min(h, w) // 4)
    out[:, :t] = True
    out[h - t:, :] = True
    return out


def _meander(h: int, w: int, rng: np.random.Generator) -> np.ndarray:
    """Vertical bars joined alternately at the top and the bottom."""
    out = np.zeros((h, w), dtype=bool)
    t = 3
    xs = list(range(0, w - t + 1, 2 * t))
    for k, x in enumerate(xs):
        out[:, x:x + t] = True
        if k + 1 < len(xs):
            rows = slice(0, t) if k % 2 else slice(h - t, h)
            out[rows, x:xs[k + 1] + t] = True
    return out


def _blob(h: int, w: int, rng: np.random.Generator) -> np.ndarray:
    """Largest component of thresholded smooth noise inside an ellipse."""
    field = ndimage.gaussian_filter(rng.standard_normal((h, w)), sigma=min(h, w) / 6.0)
    support = np.zeros((h, w), dtype=bool)
    rr, cc = draw.ellipse((h - 1) / 2.0, (w - 1) / 2.0, h / 2.0, w / 2.0, shape=(h, w))
    support[rr, cc] = True

    out = support & (field >= np.median(field[support]))
    components, n = ndimage.label(out)
    if n == 0:
        return _single_pixel(h, w, rng)
    sizes = ndimage.sum(out, components, index=np.arange(1, n + 1))
    return components == (int(np.argmax(sizes)) + 1)


def _single_pixel(h: int, w: int, rng: np.random.Generator) -> np.ndarray:
    out = np.zeros((h, w), dtype=bool)
    out[h // 2, w // 2] = True
    return out


_DRAWERS: dict[str, ShapeDrawer] = {
    "disk": _disk,
    "ring": _ring,
    "l_shape": _l_shape,
    "meander": _meander,
    "blob": _blob,
    "single_pixel": _single_pixel,
}

SHAPE_NAMES = tuple(_DRAWERS)


def create_label_phantom(
    shape: tuple[int, int] = (96, 128),
    shapes: tuple[str, ...] = SHAPE_NAMES,
    margin: int = 3,
    seed: int = 42,
) -> dict:
    """Create a 2-D label image with one region per requested shape.

    Regions are drawn in a grid of equal cells, separated by at least
    ``2 * margin`` background pixels, and labelled 1, 2, ... in the order
    of *shapes*.

    Parameters
    ----------
    shape : tuple[int, int]
        Raster dimensions (Y, X).
    shapes : tuple of str
        Region kinds, from :data:`SHAPE_NAMES`.
    margin : int
        Background border kept inside every cell.
    seed : int
        Random seed for the ``"blob"`` region.

    Returns
    -------
    dict
        Keys:
        - ``"labels"`` -- int32 label raster.
        - ``"metadata"`` -- dict with ``shape``, ``num_labels``,
          ``label_names`` (label -> shape name) and ``label_pixel_counts``.
    """
    if len(shape) != 2:
        raise ValueError(f"shape must be 2-D, got {shape}")
    unknown = [s for s in shapes if s not in _DRAWERS]
    if unknown:
        raise ValueError(f"Unknown phantom shapes {unknown}. Expected any of {SHAPE_NAMES}")
    if not shapes:
        raise ValueError("At least one shape is required")

    rng = np.random.default_rng(seed)
    n = len(shapes)
    cols = int(np.ceil(np.sqrt(n * shape[1] / shape[0])))
    rows = int(np.ceil(n / cols))
    cell_h, cell_w = shape[0] // rows, shape[1] // cols
    h, w = cell_h - 2 * margin, cell_w - 2 * margin
    if h < 7 or w < 7:
        raise ValueError(f"shape={shape} is too small for {n} regions with margin={margin}")

    labels = np.zeros(shape, dtype=np.int32)
    names: dict[int, str] = {}
    counts: dict[int, int] = {}
    for k, name in enumerate(shapes):
        label = k + 1
        r, c = divmod(k, cols)
        y0, x0 = r * cell_h + margin, c * cell_w + margin
        region = _DRAWERS[name](h, w, rng)
        labels[y0:y0 + h, x0:x0 + w][region] = label
        names[label] = name
        counts[label] = int(region.sum())

    metadata = {
        "shape": tuple(shape),
        "num_labels": n,
        "label_names": names,
        "label_pixel_counts": counts,
    }
    return {"labels": labels, "metadata": metadata}
