"""Two-pass chamfer distance transform.

Computes, for every foreground pixel, the chamfer distance to the nearest
background pixel.  A forward scan (first pixel to last) followed by a
backward scan (last to first) is enough to reach the final value, as each
scan only reads neighbours already visited in its own direction.

Non-zero pixels are foreground.  When the input is a label image, a
neighbour carrying a different label counts as background, so every region
gets its own distance-to-boundary map.  Offsets falling outside the image
are ignored (the image border is not background).
"""

from __future__ import annotations

import logging
import math
from typing import Any, Sequence

import numpy as np

from src.distmap.mask import ChamferMask, MaskPreset, Weight
from src.distmap.raster import OUTSIDE, ProgressCallback, RasterLayout, as_label_raster

logger = logging.getLogger(__name__)


def _scan(
    dist: list,
    labels: list[int],
    indices: Sequence[int],
    neighbours: list[tuple[int, Weight]],
) -> bool:
    """Relax *indices* in the given order; return True if any value dropped."""
    modified = False
    for i in indices:
        label = labels[i]
        current = dist[i]
        best = current
        for delta, weight in neighbours:
            other = labels[i + delta]
            if other == label:
                value = dist[i + delta] + weight
            elif other == OUTSIDE:
                continue
            else:
                # distance to the nearest pixel of another region
                value = weight
            if value < best:
                best = value
        if best < current:
            dist[i] = best
            modified = True
    return modified


def chamfer_distance_map(
    image: Any,
    mask: ChamferMask | MaskPreset | str | Sequence[Weight] | None = None,
    weight_type: str = "float",
    normalize: bool = False,
    progress: ProgressCallback | None = None,
) -> np.ndarray:
    """Compute the chamfer distance of each foreground pixel to the background.

    Parameters
    ----------
    image : array_like
        2-D or 3-D binary or label raster.  Zero pixels are background.
    mask : ChamferMask, MaskPreset, str, sequence or None
        Weight specification, see :meth:`ChamferMask.resolve`.
    weight_type : str
        ``"int"`` or ``"float"``; only used when *mask* is a preset.
    normalize : bool
        Divide the result by the orthogonal weight so distances are
        expressed in pixel steps.
    progress : callable, optional
        ``progress(status, fraction)`` called before each scan.

    Returns
    -------
    distance_map : np.ndarray
        float64 array with the same shape as *image*.  Background pixels
        hold 0.  Regions that never meet background within the image hold
        ``inf``.

    Raises
    ------
    DimensionMismatch
        If *image* is not 2-D or 3-D, or *mask* has another dimensionality.
    InvalidWeightSpec
        If *mask* is not a valid weight specification.
    """
    labels = as_label_raster(image, name="image")
    mask = ChamferMask.resolve(mask, ndim=labels.ndim, weight_type=weight_type)

    layout = RasterLayout(labels.shape, mask.radius)
    flat_labels = layout.pad_labels(labels)
    order = layout.scan_order(flat_labels)

    dist = [0 if lab == 0 else math.inf for lab in flat_labels]

    forward = layout.neighbours(mask.forward_offsets())
    backward = layout.neighbours(mask.backward_offsets())

    logger.debug(
        "Chamfer distance map: shape=%s, weights=%s, %d foreground pixels",
        labels.shape, mask.weights, len(order),
    )

    if progress is not None:
        progress("Forward scan", 0.0)
    _scan(dist, flat_labels, order, forward)

    if progress is not None:
        progress("Backward scan", 0.5)
    _scan(dist, flat_labels, order[::-1], backward)

    if progress is not None:
        progress("Distance map done", 1.0)

    result = layout.unpad(dist)
    if normalize:
        result /= float(mask.normalization_weight)
    return result
